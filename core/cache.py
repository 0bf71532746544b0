"""
List-result cache.

A store is constructed once by the application factory (main.create_app)
and handed to request handlers through the `get_cache` dependency; nothing
here is a module-level cache instance.

Two backends:
- MemoryCacheStore: process-local cachetools TTLCache (default)
- RedisCacheStore: shared Redis with graceful degradation if Redis is down

Keys are one per (resource type, owner). Each query variant (page, limit,
sort) of a key is its own entry with its own expiry; invalidating the key
drops every variant at once.
"""
import copy
import itertools
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import redis
from cachetools import TTLCache
from fastapi import Request
from redis.exceptions import ConnectionError, TimeoutError, RedisError

from core.config import settings

logger = logging.getLogger(__name__)

# Redis connection (singleton, shared with the rate limiter)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client with connection pooling. Returns None if Redis unavailable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        client.ping()
        logger.info("Redis connection established")
        _redis_client = client
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


def cache_key(prefix: str, *args) -> str:
    """Generate cache key from prefix and arguments (None values skipped)."""
    key_parts = [prefix]
    for arg in args:
        if arg is not None:
            key_parts.append(str(arg))
    return ":".join(key_parts)


def expense_cache_key(owner_id) -> str:
    return cache_key("expenses", owner_id)


def todo_cache_key(owner_id) -> str:
    return cache_key("todos", owner_id)


def training_cache_key(owner_id) -> str:
    return cache_key("trainings", owner_id)


PUBLIC_TRAINING_CACHE_KEY = cache_key("trainings", "public")
# Shared by every owner: the weekly listing is not owner-filtered either
WEEKLY_TRAINING_CACHE_KEY = cache_key("weekly_trainings")


class CacheStore(ABC):
    """
    Key-value store with a fixed TTL measured from write time.

    List results are stored one entry per (key, generation, variant), so
    every variant expires on its own. `invalidate` bumps the key's
    generation: every variant written under the old generation becomes
    unreachable at once, including one whose load was still running.
    """

    def __init__(self, ttl: int):
        self.ttl = ttl

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value, or None on a miss (absent or expired)."""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value for `ttl` seconds. Returns True if stored."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Drop the key immediately."""

    @abstractmethod
    def clear(self) -> None:
        """Drop everything."""

    @abstractmethod
    def generation(self, key: str) -> int:
        """Current generation of `key`; 0 until first invalidated."""

    @abstractmethod
    def bump_generation(self, key: str) -> None:
        """Move `key` to a generation it has never had before."""

    @staticmethod
    def variant_key(key: str, generation: int, variant: str) -> str:
        return f"{key}@{generation}|{variant}"

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            self.bump_generation(key)
            self.delete(key)
            logger.debug(f"Cache invalidated: {key}")

    def read_through(self, key: str, variant: str, loader: Callable[[], Any]) -> Tuple[Any, bool]:
        """
        Return (value, from_cache) for one query variant under `key`.

        On a miss the loader runs; its result is stored only if `key` was
        not invalidated while it ran.
        """
        generation = self.generation(key)
        slot = self.variant_key(key, generation, variant)

        value = self.get(slot)
        if value is not None:
            logger.debug(f"Cache hit: {key} [{variant}]")
            return value, True

        logger.debug(f"Cache miss: {key} [{variant}]")
        value = loader()
        if self.generation(key) == generation:
            self.set(slot, value)
        else:
            logger.debug(f"Cache write skipped, {key} invalidated during load")
        return value, False


class MemoryCacheStore(CacheStore):
    """
    In-process store on a cachetools TTLCache.

    Values are deep-copied in and out so callers cannot mutate what is
    stored. Generations live outside the TTL cache so they never reset.
    """

    def __init__(
        self,
        ttl: int,
        maxsize: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(ttl)
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._generations: Dict[str, int] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._entries.get(key)
            return None if value is None else copy.deepcopy(value)

    def set(self, key: str, value: Any) -> bool:
        stored = copy.deepcopy(value)
        with self._lock:
            self._entries[key] = stored
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def generation(self, key: str) -> int:
        with self._lock:
            return self._generations.get(key, 0)

    def bump_generation(self, key: str) -> None:
        with self._lock:
            self._generations[key] = next(self._counter)

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)


class RedisCacheStore(CacheStore):
    """
    Redis-backed store. Every Redis failure degrades to a cache miss.

    Generations are Redis counters (`<key>#generation`) with no expiry, so
    every process sees the same invalidations.
    """

    def __init__(self, ttl: int, client_factory: Callable[[], Optional[redis.Redis]] = get_redis_client):
        super().__init__(ttl)
        self._client_factory = client_factory

    @staticmethod
    def _generation_key(key: str) -> str:
        return f"{key}#generation"

    def get(self, key: str) -> Optional[Any]:
        client = self._client_factory()
        if not client:
            return None
        try:
            value = client.get(key)
            if value:
                return json.loads(value)
            return None
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache get error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> bool:
        client = self._client_factory()
        if not client:
            return False
        try:
            client.setex(key, self.ttl, json.dumps(value, default=str))
            return True
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._client_factory()
        if not client:
            return False
        try:
            client.delete(key)
            return True
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache delete error for key {key}: {e}")
            return False

    def clear(self) -> None:
        client = self._client_factory()
        if not client:
            return
        try:
            for pattern in ("expenses:*", "todos:*", "trainings:*", "weekly_trainings*"):
                keys = [k for k in client.keys(pattern) if not k.endswith("#generation")]
                if keys:
                    client.delete(*keys)
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache clear error: {e}")

    def generation(self, key: str) -> int:
        client = self._client_factory()
        if not client:
            return 0
        try:
            return int(client.get(self._generation_key(key)) or 0)
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache generation read error for key {key}: {e}")
            return 0

    def bump_generation(self, key: str) -> None:
        client = self._client_factory()
        if not client:
            return
        try:
            client.incr(self._generation_key(key))
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"Cache invalidation error for key {key}: {e}")


def build_cache_store() -> CacheStore:
    """Construct the configured store (called by the application factory)."""
    backend = settings.CACHE_BACKEND.lower()
    if backend == "redis":
        logger.info("Using Redis cache store")
        return RedisCacheStore(ttl=settings.CACHE_TTL_SECONDS)
    if backend != "memory":
        raise ValueError(f"Unknown CACHE_BACKEND: {settings.CACHE_BACKEND}")
    return MemoryCacheStore(ttl=settings.CACHE_TTL_SECONDS, maxsize=settings.CACHE_MAX_ENTRIES)


def get_cache(request: Request) -> CacheStore:
    """FastAPI dependency: the store owned by the running application."""
    return request.app.state.cache
