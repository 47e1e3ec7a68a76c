"""Keyed, TTL-bounded persistence for pipeline artifacts.

Keys are ``"{namespace}:{id}"`` so artifacts of different kinds never
collide. Reverse-lookup sets (session to images, image to analyses) live
beside them and expire on the same schedule. There are no cross-key
transactions: an index may outlive the artifacts it names, and readers are
expected to skip members that no longer resolve.
"""
from __future__ import annotations

import time
from typing import Callable, Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.domain.errors import NotFoundError, StorageError
from src.infrastructure.database.redis_client import check_connection

logger = structlog.get_logger(__name__)


def artifact_key(namespace: str, artifact_id: str) -> str:
    return f"{namespace}:{artifact_id}"


class ArtifactStore(Protocol):
    async def put(self, namespace: str, artifact_id: str, payload: bytes, ttl: int) -> None: ...

    async def get(self, namespace: str, artifact_id: str) -> bytes: ...

    async def index_add(self, index_key: str, member: str, ttl: int) -> None: ...

    async def index_members(self, index_key: str) -> list[str]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisArtifactStore:
    """Artifact store backed by Redis ``SET EX`` and sets."""

    def __init__(self, client: Redis) -> None:
        self.client = client

    async def put(self, namespace: str, artifact_id: str, payload: bytes, ttl: int) -> None:
        key = artifact_key(namespace, artifact_id)
        try:
            await self.client.set(key, payload, ex=ttl)
        except RedisError as exc:
            raise StorageError(f"Redis write failed for '{key}': {exc}") from exc
        logger.debug("Artifact stored", key=key, size=len(payload), ttl=ttl)

    async def get(self, namespace: str, artifact_id: str) -> bytes:
        key = artifact_key(namespace, artifact_id)
        try:
            value = await self.client.get(key)
        except RedisError as exc:
            raise StorageError(f"Redis read failed for '{key}': {exc}") from exc
        if value is None:
            raise NotFoundError(namespace, artifact_id)
        return value

    async def index_add(self, index_key: str, member: str, ttl: int) -> None:
        try:
            async with self.client.pipeline(transaction=False) as pipe:
                pipe.sadd(index_key, member)
                pipe.expire(index_key, ttl)
                await pipe.execute()
        except RedisError as exc:
            raise StorageError(f"Redis index update failed for '{index_key}': {exc}") from exc

    async def index_members(self, index_key: str) -> list[str]:
        try:
            members = await self.client.smembers(index_key)
        except RedisError as exc:
            raise StorageError(f"Redis index read failed for '{index_key}': {exc}") from exc
        return sorted(m.decode() if isinstance(m, bytes) else str(m) for m in members)

    async def ping(self) -> bool:
        return await check_connection(self.client)

    async def close(self) -> None:
        await self.client.aclose()


class MemoryArtifactStore:
    """In-process store with the same TTL semantics, for local runs and tests.

    Expired entries are dropped on access, and every ``sweep_every`` writes all
    expired keys are purged. ``clock`` returns seconds and can be replaced to
    make expiry deterministic.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 256,
    ) -> None:
        self._clock = clock
        self._sweep_every = max(1, sweep_every)
        self._writes = 0
        self._items: dict[str, tuple[bytes, float]] = {}
        self._indices: dict[str, tuple[set[str], float]] = {}

    @staticmethod
    def _check_ttl(ttl: int) -> None:
        if ttl <= 0:
            raise StorageError(f"TTL must be positive, got {ttl}")

    async def put(self, namespace: str, artifact_id: str, payload: bytes, ttl: int) -> None:
        self._check_ttl(ttl)
        self._count_write()
        self._items[artifact_key(namespace, artifact_id)] = (bytes(payload), self._clock() + ttl)

    async def get(self, namespace: str, artifact_id: str) -> bytes:
        key = artifact_key(namespace, artifact_id)
        entry = self._items.get(key)
        if entry is None or entry[1] <= self._clock():
            self._items.pop(key, None)
            raise NotFoundError(namespace, artifact_id)
        return entry[0]

    async def index_add(self, index_key: str, member: str, ttl: int) -> None:
        self._check_ttl(ttl)
        self._count_write()
        members = self._live_index(index_key)
        members.add(member)
        self._indices[index_key] = (members, self._clock() + ttl)

    async def index_members(self, index_key: str) -> list[str]:
        return sorted(self._live_index(index_key))

    def _live_index(self, index_key: str) -> set[str]:
        entry = self._indices.get(index_key)
        if entry is None or entry[1] <= self._clock():
            self._indices.pop(index_key, None)
            return set()
        return set(entry[0])

    def _count_write(self) -> None:
        self._writes += 1
        if self._writes % self._sweep_every == 0:
            self._sweep()

    def _sweep(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires) in self._items.items() if expires <= now]:
            del self._items[key]
        for key in [k for k, (_, expires) in self._indices.items() if expires <= now]:
            del self._indices[key]

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._items.clear()
        self._indices.clear()
