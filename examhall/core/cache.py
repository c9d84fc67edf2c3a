"""
Key/value cache for derived read models such as exam reports.

Values are JSON-compatible structures. The Redis backend is used when
``REDIS_URL`` is configured; otherwise a per-process memory backend is used.
"""
import json
import time
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Dict

from examhall.core.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def incr(self, key: str) -> Optional[int]:
        pass

    @abstractmethod
    async def clear(self) -> bool:
        pass


class MemoryCacheBackend(CacheBackend):
    """Per-process cache with lazy expiry on read."""

    def __init__(self, default_ttl: int = 300):
        self.default_ttl = default_ttl
        self._entries: Dict[str, tuple] = {}

    def _expires_at(self, ttl: Optional[int]) -> Optional[float]:
        ttl = self.default_ttl if ttl is None else ttl
        return time.monotonic() + ttl if ttl > 0 else None

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._entries[key] = (value, self._expires_at(ttl))
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def incr(self, key: str) -> Optional[int]:
        current = await self.get(key) or 0
        self._entries[key] = (current + 1, None)
        return current + 1

    async def clear(self) -> bool:
        self._entries.clear()
        return True


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache. Connection failures are logged and treated as misses."""

    def __init__(self, redis_url: str, default_ttl: int = 300):
        import redis.asyncio as redis
        self.redis = redis.from_url(redis_url, decode_responses=True)
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(key)
        except Exception as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Dropping undecodable cache entry {key}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ttl = self.default_ttl if ttl is None else ttl
        try:
            payload = json.dumps(value)
            if ttl > 0:
                await self.redis.set(key, payload, ex=ttl)
            else:
                await self.redis.set(key, payload)
            return True
        except Exception as e:
            logger.error(f"Redis SET failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.redis.delete(key) > 0
        except Exception as e:
            logger.error(f"Redis DELETE failed for {key}: {e}")
            return False

    async def incr(self, key: str) -> Optional[int]:
        try:
            return await self.redis.incr(key)
        except Exception as e:
            logger.error(f"Redis INCR failed for {key}: {e}")
            return None

    async def clear(self) -> bool:
        try:
            await self.redis.flushdb()
            return True
        except Exception as e:
            logger.error(f"Redis FLUSHDB failed: {e}")
            return False


def create_cache_backend() -> CacheBackend:
    if settings.REDIS_URL:
        logger.info("Using Redis cache backend")
        return RedisCacheBackend(settings.REDIS_URL, default_ttl=settings.CACHE_TTL)

    logger.info("Using in-memory cache backend")
    return MemoryCacheBackend(default_ttl=settings.CACHE_TTL)


class CacheManager:
    def __init__(self, backend: CacheBackend, enabled: bool = True):
        self.backend = backend
        self.enabled = enabled

    def generate_key(self, prefix: str, *args) -> str:
        return ":".join([prefix, *map(str, args)])

    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        return await self.backend.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        return await self.backend.set(key, value, ttl)

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[Any]],
                             ttl: Optional[int] = None, version_key: Optional[str] = None) -> Any:
        """Cached value for ``key``, computing and storing it on a miss.

        With ``version_key`` the value is stored together with the counter read
        before computing; an entry whose counter has since moved on is a miss.
        """
        if not self.enabled:
            return await compute()

        version = 0
        if version_key:
            version = await self.backend.get(version_key) or 0
        entry = await self.backend.get(key)
        if isinstance(entry, dict) and entry.get("version") == version:
            logger.debug(f"Cache hit: {key}")
            return entry["value"]

        value = await compute()
        await self.backend.set(key, {"version": version, "value": value}, ttl)
        return value

    # Invalidation bypasses the enabled flag.
    async def incr(self, key: str) -> Optional[int]:
        return await self.backend.incr(key)

    async def delete(self, key: str) -> bool:
        return await self.backend.delete(key)

    async def clear(self) -> bool:
        return await self.backend.clear()


cache = CacheManager(create_cache_backend(), enabled=settings.CACHE_ENABLED)
