from __future__ import annotations

import abc
import logging
import time
import typing as tp

import anyio

from httpsource._lfu_cache import LFUCache

try:
    import redis.asyncio as redis
except ImportError:  # pragma: no cover
    redis = None  # type: ignore

logger = logging.getLogger("httpsource.storages")

__all__ = ("AsyncBaseStore", "AsyncInMemoryStore", "AsyncRedisStore")


class AsyncBaseStore(abc.ABC):
    """
    Key-value store contract used by the data source.

    Hosts may pass any object exposing the same coroutine methods; inheriting
    from this class is optional. Implementations own their concurrency
    safety: the data source never holds a lock across calls.
    """

    @abc.abstractmethod
    async def get(self, key: str) -> tp.Optional[bytes]:
        """Return the value stored under ``key`` or ``None`` when absent or expired."""
        raise NotImplementedError()

    @abc.abstractmethod
    async def set(self, key: str, value: bytes, ttl: tp.Optional[float] = None) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value.

        Args:
            ttl: Optional hint, in seconds, after which the value is useless.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; return whether something was removed."""
        raise NotImplementedError()

    async def aclose(self) -> None:
        return None


class AsyncInMemoryStore(AsyncBaseStore):
    """
    A process-local store with LFU eviction.

    :param capacity: The maximum number of values kept, defaults to 128
    :type capacity: int, optional
    """

    def __init__(self, capacity: int = 128) -> None:
        self._cache: LFUCache[str, tp.Tuple[bytes, tp.Optional[float]]] = LFUCache(capacity=capacity)
        self._lock = anyio.Lock()

    async def get(self, key: str) -> tp.Optional[bytes]:
        async with self._lock:
            try:
                value, expires_at = self._cache.get(key)
            except KeyError:
                return None
            if expires_at is not None and time.monotonic() >= expires_at:
                logger.debug(f"Dropping expired value for {key!r}")
                self._cache.remove_key(key)
                return None
            return value

    async def set(self, key: str, value: bytes, ttl: tp.Optional[float] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl is not None else None
        async with self._lock:
            self._cache.put(key, (value, expires_at))

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key not in self._cache:
                return False
            self._cache.remove_key(key)
            return True

    def __len__(self) -> int:
        return len(self._cache)


class AsyncRedisStore(AsyncBaseStore):
    """
    A redis-backed store.

    :param client: A ``redis.asyncio`` client, defaults to a client for localhost
    :type client: tp.Optional[redis.Redis], optional
    :param namespace: Prefix added to every key, defaults to "httpsource"
    :type namespace: str, optional
    """

    def __init__(
        self,
        client: tp.Optional["redis.Redis"] = None,  # type: ignore
        namespace: str = "httpsource",
    ) -> None:
        if client is None:
            if redis is None:  # pragma: no cover
                raise RuntimeError(
                    f"The `{type(self).__name__}` was used, but the required packages were not found. "
                    "Check that you have `httpsource` installed with the `redis` extension as shown.\n"
                    "```pip install httpsource[redis]```"
                )
            client = redis.Redis()
        self._client = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    async def get(self, key: str) -> tp.Optional[bytes]:
        return tp.cast(tp.Optional[bytes], await self._client.get(self._key(key)))

    async def set(self, key: str, value: bytes, ttl: tp.Optional[float] = None) -> None:
        # redis rejects a zero expiry, so sub-millisecond TTLs are rounded up
        px = max(1, int(ttl * 1000)) if ttl is not None else None
        await self._client.set(self._key(key), value, px=px)

    async def delete(self, key: str) -> bool:
        return bool(await self._client.delete(self._key(key)))

    async def aclose(self) -> None:  # pragma: no cover
        await self._client.aclose()
