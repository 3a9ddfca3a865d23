"""
Two-Tier Cache - Shared Redis store fronted by a bounded in-process map.

Reads try the shared store first and fall through to the in-process tier
when the shared store misses or is unreachable. Writes go to both tiers; a
failed shared write never stops the in-process tier from receiving the
value. Values travel as JSON text in both tiers.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from otakuhub.core.exceptions import CacheUnavailable


logger = logging.getLogger(__name__)


DEFAULT_TTL = 3600
DEFAULT_REDIS_URL = "redis://localhost:6379"


def cache_key(source: str, operation: str, *args: Any) -> str:
    """
    Build a namespaced cache key.

    Keys follow ``source:operation:arg1:arg2`` and are lowercased so that
    lookups are case-insensitive across callers.

    Args:
        source: Source name
        operation: Operation name
        *args: Operation arguments in call order

    Returns:
        Colon-delimited lowercase key
    """
    parts = [source, operation, *(str(arg).strip() for arg in args)]
    return ":".join(parts).lower()


class MemoryCache:
    """
    Bounded in-process key/value map with per-entry expiry.

    When the map grows past ``max_entries`` the oldest ``evict_count``
    entries by insertion order are dropped. All access is serialized by a
    lock, so the map can be shared between threads as well as tasks.
    """

    def __init__(
        self,
        max_entries: int = 100,
        evict_count: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.evict_count = evict_count
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

            if len(self._entries) > self.max_entries:
                stale = list(self._entries)[:self.evict_count]
                for old_key in stale:
                    del self._entries[old_key]
                logger.debug(f"Evicted {len(stale)} in-process cache entries")

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class RedisCache:
    """
    Lazily connected Redis tier.

    Every failure surfaces as :class:`CacheUnavailable`. After a failed
    connection attempt the tier stays offline for ``retry_interval`` seconds
    instead of paying a connection timeout on every call.
    """

    def __init__(
        self,
        url: str = DEFAULT_REDIS_URL,
        client: Optional[aioredis.Redis] = None,
        connect_timeout: float = 2.0,
        retry_interval: float = 30.0,
    ):
        self.url = url
        self.connect_timeout = connect_timeout
        self.retry_interval = retry_interval
        self._client = client
        self._ready = client is not None
        self._offline_until = 0.0

    async def _get_client(self) -> aioredis.Redis:
        if self._ready and self._client is not None:
            return self._client

        if time.monotonic() < self._offline_until:
            raise CacheUnavailable(f"Redis at {self.url} is offline")

        try:
            if self._client is None:
                self._client = aioredis.from_url(
                    self.url,
                    decode_responses=True,
                    socket_connect_timeout=self.connect_timeout,
                    socket_timeout=self.connect_timeout,
                )
            await self._client.ping()
            self._ready = True
            logger.info(f"Connected to Redis at {self.url}")
            return self._client
        except (RedisError, OSError) as e:
            self._offline_until = time.monotonic() + self.retry_interval
            logger.warning(f"Redis connection failed, running on in-process cache: {e}")
            raise CacheUnavailable(f"Redis connection failed: {e}", details=str(e))

    def _mark_failed(self, error: Exception) -> CacheUnavailable:
        self._ready = False
        self._offline_until = time.monotonic() + self.retry_interval
        return CacheUnavailable(f"Redis operation failed: {error}", details=str(error))

    async def get(self, key: str) -> Optional[str]:
        client = await self._get_client()
        try:
            return await client.get(key)
        except (RedisError, OSError) as e:
            raise self._mark_failed(e)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        client = await self._get_client()
        try:
            if ttl:
                await client.set(key, value, ex=int(ttl))
            else:
                await client.set(key, value)
        except (RedisError, OSError) as e:
            raise self._mark_failed(e)

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(key)
        except (RedisError, OSError) as e:
            raise self._mark_failed(e)

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as e:
                logger.debug(f"Error closing Redis client: {e}")
        self._client = None
        self._ready = False


class TwoTierCache:
    """
    Cache service shared by every source adapter.

    Keys are namespaced per source (see :func:`cache_key`), so one instance
    can front all adapters without collisions.
    """

    def __init__(
        self,
        primary: Optional[RedisCache] = None,
        memory: Optional[MemoryCache] = None,
        default_ttl: int = DEFAULT_TTL,
    ):
        self.primary = primary
        self.memory = memory or MemoryCache()
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        """
        Look up a key in the shared tier, then the in-process tier.

        Args:
            key: Cache key

        Returns:
            Decoded JSON value, or None when absent in both tiers
        """
        raw: Optional[str] = None

        if self.primary is not None:
            try:
                raw = await self.primary.get(key)
            except CacheUnavailable as e:
                logger.debug(f"Primary cache miss for {key}: {e}")

        if raw is None:
            raw = self.memory.get(key)

        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a JSON-serializable value in both tiers.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Time to live in seconds (defaults to the configured TTL).
                A non-positive TTL expires immediately, so any existing
                entry is dropped and nothing is stored.
        """
        if ttl is None:
            ttl = self.default_ttl
        if ttl <= 0:
            await self.delete(key)
            return

        text = json.dumps(value, ensure_ascii=False)

        if self.primary is not None:
            try:
                await self.primary.set(key, text, ttl)
            except CacheUnavailable as e:
                logger.debug(f"Primary cache write skipped for {key}: {e}")

        self.memory.set(key, text, ttl)

    async def delete(self, key: str) -> None:
        if self.primary is not None:
            try:
                await self.primary.delete(key)
            except CacheUnavailable as e:
                logger.debug(f"Primary cache delete skipped for {key}: {e}")

        self.memory.delete(key)

    async def close(self) -> None:
        if self.primary is not None:
            await self.primary.close()


# Export cache components
__all__ = [
    "cache_key",
    "MemoryCache",
    "RedisCache",
    "TwoTierCache",
    "DEFAULT_TTL",
    "DEFAULT_REDIS_URL",
]
