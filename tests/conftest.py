"""
Shared fixtures: an in-memory async Redis double and sample status pages.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from serverwatch.app.store import SnapshotStore


class FakeRedis:
    """Minimal async stand-in for redis.asyncio.Redis (get/set/delete)."""

    def __init__(self):
        self.data = {}
        self.down = False
        self.calls = []
        self.closed = False

    def _check(self, op):
        self.calls.append(op)
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def get(self, key):
        self._check("get")
        return self.data.get(key)

    async def set(self, key, value):
        self._check("set")
        if isinstance(value, str):
            value = value.encode("utf-8")
        self.data[key] = value
        return True

    async def delete(self, key):
        self._check("delete")
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return SnapshotStore(fake_redis, key="test:status", timeout_s=1.0)


def table_page(rows):
    body = "".join(f"<tr><td>{name}</td><td>{status}</td></tr>" for name, status in rows)
    return (
        "<html><body><table>"
        "<thead><tr><th>Server</th><th>Status</th></tr></thead>"
        f"<tbody>{body}</tbody>"
        "</table></body></html>"
    ).encode("utf-8")


@pytest.fixture
def make_table_page():
    return table_page
