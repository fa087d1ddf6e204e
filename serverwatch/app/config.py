import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

BROWSER_UA = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/124.0 Safari/537.36")

@dataclass(frozen=True)
class Settings:
    TARGET_URL: str = os.getenv("SW_TARGET_URL", "https://epoch.strykersoft.us/")
    UA: str = os.getenv("SW_UA", BROWSER_UA)
    CONNECT_TIMEOUT_S: float = float(os.getenv("SW_CONNECT_TIMEOUT_S", "5"))
    READ_TIMEOUT_S: float = float(os.getenv("SW_READ_TIMEOUT_S", "10"))
    TOTAL_TIMEOUT_S: float = float(os.getenv("SW_TOTAL_TIMEOUT_S", "15"))
    MAX_BODY_BYTES: int = int(os.getenv("SW_MAX_BODY_BYTES", "3000000"))
    POLL_INTERVAL_S: float = float(os.getenv("SW_POLL_INTERVAL_S", "60"))
    REDIS_URL: str = os.getenv("SW_REDIS_URL", "redis://localhost:6379/0")
    STORE_KEY: str = os.getenv("SW_STORE_KEY", "serverwatch:status")
    STORE_TIMEOUT_S: float = float(os.getenv("SW_STORE_TIMEOUT_S", "3"))
    EXTRACTOR_PATH: str = os.getenv("SW_EXTRACTOR_PATH", "res/extractor.yaml")
    LISTENER_QUEUE_SIZE: int = int(os.getenv("SW_LISTENER_QUEUE_SIZE", "16"))
    HEARTBEAT_S: float = float(os.getenv("SW_HEARTBEAT_S", "25"))
    RELOAD_TOKEN: str = os.getenv("SW_RELOAD_TOKEN", "change-me")
    LOG_LEVEL: str = os.getenv("SW_LOG_LEVEL", "INFO")

settings = Settings()
