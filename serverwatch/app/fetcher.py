from typing import Dict, Optional
import httpx
from .config import settings


class FetchError(Exception):
    """The status page could not be downloaded."""


def default_headers() -> Dict[str, str]:
    return {"User-Agent": settings.UA,
            "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9"}


def default_timeout() -> httpx.Timeout:
    return httpx.Timeout(settings.TOTAL_TIMEOUT_S,
                         connect=settings.CONNECT_TIMEOUT_S,
                         read=settings.READ_TIMEOUT_S)


async def fetch_document(client: httpx.AsyncClient, url: str,
                         headers: Optional[Dict[str, str]] = None,
                         max_bytes: Optional[int] = None) -> bytes:
    """GET the page body; bodies over max_bytes are rejected, not truncated."""
    limit = settings.MAX_BODY_BYTES if max_bytes is None else max_bytes
    chunks, size = [], 0
    try:
        async with client.stream("GET", url, headers=headers or default_headers(),
                                 follow_redirects=True, timeout=default_timeout()) as r:
            r.raise_for_status()
            async for chunk in r.aiter_bytes():
                size += len(chunk)
                if size > limit:
                    raise FetchError(f"Body from {url} exceeds {limit} bytes")
                chunks.append(chunk)
    except httpx.HTTPStatusError as e:
        raise FetchError(f"HTTP {e.response.status_code} from {url}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"{type(e).__name__} fetching {url}: {e}") from e
    return b"".join(chunks)
