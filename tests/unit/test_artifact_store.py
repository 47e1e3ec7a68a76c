from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.domain.errors import NotFoundError, StorageError
from src.infrastructure.database.artifact_store import (
    MemoryArtifactStore,
    RedisArtifactStore,
    artifact_key,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_artifact_key():
    assert artifact_key("image", "abc") == "image:abc"


async def test_memory_store_roundtrip_and_expiry():
    clock = FakeClock()
    store = MemoryArtifactStore(clock=clock)
    await store.put("image", "a", b"\x00payload", ttl=10)
    assert await store.get("image", "a") == b"\x00payload"

    clock.now += 10
    with pytest.raises(NotFoundError) as exc:
        await store.get("image", "a")
    assert exc.value.message == "Image with id 'a' not found"


async def test_memory_store_last_write_wins():
    store = MemoryArtifactStore(clock=FakeClock())
    await store.put("analysis", "x", b"one", ttl=5)
    await store.put("analysis", "x", b"two", ttl=5)
    assert await store.get("analysis", "x") == b"two"


async def test_memory_store_index_refreshes_ttl():
    clock = FakeClock()
    store = MemoryArtifactStore(clock=clock)
    await store.index_add("session:s:images", "b", ttl=10)
    clock.now += 8
    await store.index_add("session:s:images", "a", ttl=10)
    clock.now += 8
    assert await store.index_members("session:s:images") == ["a", "b"]
    clock.now += 2
    assert await store.index_members("session:s:images") == []


async def test_memory_store_sweeps_expired_keys_on_write():
    clock = FakeClock()
    store = MemoryArtifactStore(clock=clock, sweep_every=2)
    await store.put("image", "old", b"x", ttl=5)
    await store.index_add("session:s:images", "old", ttl=5)

    clock.now += 10
    await store.put("image", "new", b"y", ttl=5)
    await store.put("image", "newer", b"z", ttl=5)

    assert set(store._items) == {"image:new", "image:newer"}
    assert store._indices == {}


async def test_memory_store_rejects_non_positive_ttl():
    with pytest.raises(StorageError):
        await MemoryArtifactStore().put("image", "a", b"x", ttl=0)


def _redis_client():
    client = MagicMock()
    client.set = AsyncMock()
    client.get = AsyncMock()
    client.smembers = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


async def test_redis_store_sets_with_expiry():
    client = _redis_client()
    store = RedisArtifactStore(client)
    await store.put("regenerated", "r1", b"data", ttl=86400)
    client.set.assert_awaited_once_with("regenerated:r1", b"data", ex=86400)


async def test_redis_store_missing_key_is_not_found():
    client = _redis_client()
    client.get.return_value = None
    with pytest.raises(NotFoundError):
        await RedisArtifactStore(client).get("improved", "nope")


async def test_redis_store_wraps_redis_errors():
    client = _redis_client()
    client.get.side_effect = RedisConnectionError("connection refused")
    with pytest.raises(StorageError) as exc:
        await RedisArtifactStore(client).get("image", "a")
    assert "connection refused" in exc.value.message


async def test_redis_store_index_uses_pipeline():
    client = _redis_client()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, True])
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=pipe)
    ctx.__aexit__ = AsyncMock(return_value=False)
    client.pipeline.return_value = ctx

    await RedisArtifactStore(client).index_add("image:i:analyses", "a1", ttl=60)
    client.pipeline.assert_called_once_with(transaction=False)
    pipe.sadd.assert_called_once_with("image:i:analyses", "a1")
    pipe.expire.assert_called_once_with("image:i:analyses", 60)
    pipe.execute.assert_awaited_once()


async def test_redis_store_members_are_decoded_and_sorted():
    client = _redis_client()
    client.smembers.return_value = {b"b", b"a"}
    assert await RedisArtifactStore(client).index_members("session:s:images") == ["a", "b"]


async def test_redis_store_close_releases_pool():
    client = _redis_client()
    store = RedisArtifactStore(client)
    assert await store.ping() is True
    await store.close()
    client.aclose.assert_awaited_once()
