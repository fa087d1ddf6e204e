"""
Redis-backed persistence of the last accepted snapshot.

Every call is bounded by a timeout and any backend failure surfaces as
StoreUnavailable, which callers treat as "skip this step, retry next
cycle".
"""

import asyncio
import logging
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .snapshot import CorruptStoredValue, Snapshot, deserialize

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """The key-value backend could not be reached or answered with an error."""


class SnapshotStore:
    def __init__(self, redis_client: aioredis.Redis, key: str = "serverwatch:status",
                 timeout_s: float = 3.0):
        self._redis = redis_client
        self.key = key
        self.changed_at_key = f"{key}:changed_at"
        self.timeout_s = timeout_s

    async def _call(self, op: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_s)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailable(f"{op} {self.key}: {str(e) or type(e).__name__}") from e

    async def get(self) -> Optional[bytes]:
        raw = await self._call("GET", self._redis.get(self.key))
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        return raw

    async def set(self, value: bytes) -> None:
        if not value:
            raise ValueError("refusing to store an empty snapshot")
        await self._call("SET", self._redis.set(self.key, value))

    async def delete(self) -> None:
        await self._call("DEL", self._redis.delete(self.key))

    async def get_changed_at(self) -> Optional[str]:
        raw = await self._call("GET", self._redis.get(self.changed_at_key))
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        return raw

    async def set_changed_at(self, iso_ts: str) -> None:
        await self._call("SET", self._redis.set(self.changed_at_key, iso_ts))

    async def close(self) -> None:
        await self._redis.aclose()


async def read_snapshot(store: SnapshotStore) -> Snapshot:
    """Current stored snapshot for readers; [] when absent, corrupt or unreachable."""
    try:
        raw = await store.get()
    except StoreUnavailable as e:
        logger.warning(f"Snapshot read failed: {e}")
        return []
    if raw is None:
        return []
    try:
        return deserialize(raw)
    except CorruptStoredValue as e:
        logger.warning(f"Stored snapshot unreadable, serving empty list: {e}")
        return []
