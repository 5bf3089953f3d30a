"""Key-value storage backends for the durable catalog cache."""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from catalog_cache.core.errors import StorageFault


class KeyValueStore(abc.ABC):
    """Abstract string-to-string store surviving process restarts."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the raw payload stored under ``key``."""

    @abc.abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, overwriting any previous payload."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abc.abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """List keys starting with ``prefix``."""

    async def close(self) -> None:  # pragma: no cover - optional override
        """Close underlying resources if supported."""

        return None


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, optionally bounded by a byte quota."""

    def __init__(self, *, max_bytes: Optional[int] = None) -> None:
        super().__init__()
        self._data: Dict[str, str] = {}
        self._max_bytes = max_bytes

    def _size(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self._max_bytes is not None:
            previous = self._data.get(key)
            used = self._size() - (len(key) + len(previous) if previous is not None else 0)
            if used + len(key) + len(value) > self._max_bytes:
                raise StorageFault(f"quota exceeded writing {key} ({self._max_bytes} bytes)")
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; every driver error surfaces as ``StorageFault``."""

    def __init__(self, redis: aioredis.Redis) -> None:
        super().__init__()
        self._redis = redis

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisKeyValueStore":
        client = aioredis.from_url(url, decode_responses=True, **kwargs)
        return cls(client)

    @staticmethod
    def _text(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def get(self, key: str) -> Optional[str]:
        try:
            payload = await self._redis.get(key)
        except RedisError as exc:
            raise StorageFault(f"get {key}: {exc}") from exc
        if payload is None:
            return None
        return self._text(payload)

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as exc:
            raise StorageFault(f"set {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise StorageFault(f"delete {key}: {exc}") from exc

    async def keys(self, prefix: str = "") -> List[str]:
        found: List[str] = []
        try:
            async for key in self._redis.scan_iter(match=f"{prefix}*"):
                found.append(self._text(key))
        except RedisError as exc:
            raise StorageFault(f"scan {prefix}*: {exc}") from exc
        return found

    async def close(self) -> None:
        try:
            await self._redis.aclose()
        except RedisError as exc:
            self._logger.warning("Redis close failed: %s", exc)


def build_kv_store(*, redis_url: Optional[str] = None) -> KeyValueStore:
    """Factory helper producing a store based on configuration."""

    if redis_url:
        return RedisKeyValueStore.from_url(redis_url)
    return InMemoryKeyValueStore()


__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "build_kv_store",
]
