"""
Key cache backends for the signing key slots.

Both backends speak the same small contract: ``get`` returns the stored JSON
value or ``None`` once the entry has expired, ``put``/``put_many`` store JSON
values with a TTL in seconds. ``put_many`` writes all entries with one TTL in
a single operation so that the halves of a key pair expire together.
"""

import json
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

from shared.errors import CacheUnavailableError
from shared.logging import get_logger


class KeyCache(Protocol):
    """Cache substrate used by the key manager and publisher."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def get(self, key: str) -> Optional[Any]: ...

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def put_many(self, entries: Dict[str, Any], ttl_seconds: int) -> None: ...

    async def health_check(self) -> bool: ...


class RedisKeyCache:
    """Redis-backed key cache."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.logger = get_logger("identity.keys.cache.redis")
        self.redis: redis.Redis = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30
        )

    async def start(self):
        """Verify the Redis connection."""
        try:
            await self.redis.ping()
            self.logger.info("Redis key cache started")
        except redis.RedisError as e:
            self.logger.error("Failed to start Redis key cache", error=str(e))
            raise CacheUnavailableError(details={"error": str(e)}) from e

    async def stop(self):
        """Close the Redis connection pool."""
        await self.redis.aclose()
        self.logger.info("Redis key cache stopped")

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.redis.setex(key, ttl_seconds, json.dumps(value))
        self.logger.debug("Cached key entry", cache_key=key, ttl=ttl_seconds)

    async def put_many(self, entries: Dict[str, Any], ttl_seconds: int) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            for key, value in entries.items():
                pipe.setex(key, ttl_seconds, json.dumps(value))
            await pipe.execute()
        self.logger.debug("Cached key entries", cache_keys=list(entries), ttl=ttl_seconds)

    async def health_check(self) -> bool:
        try:
            await self.redis.ping()
            return True
        except redis.RedisError:
            return False


class MemoryKeyCache:
    """Process-local key cache with TTL expiry, for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self.logger = get_logger("identity.keys.cache.memory")

    async def start(self) -> None:
        self.logger.info("Memory key cache started")

    async def stop(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        raw, expires_at = entry
        if expires_at <= self._clock():
            # Passive eviction
            del self._entries[key]
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (json.dumps(value), self._clock() + ttl_seconds)

    async def put_many(self, entries: Dict[str, Any], ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds
        for key, value in entries.items():
            self._entries[key] = (json.dumps(value), expires_at)

    async def health_check(self) -> bool:
        return True


def create_key_cache(backend: str, redis_url: str) -> KeyCache:
    """Build the key cache selected by configuration."""
    if backend == "memory":
        return MemoryKeyCache()
    return RedisKeyCache(redis_url)
