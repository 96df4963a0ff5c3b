"""
Response cache for the search paths.

Keys are built from the recognized parameters of a request only, so order
and unrecognized extras never change them. Entries expire after a fixed TTL
and are never updated or deleted by the query engine.

A cache that cannot be reached behaves like an empty one: `get` returns None
and `set` is skipped, both with a warning.
"""
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..core.errors import CacheError


def build_cache_key(namespace: str, params: Mapping[str, Any]) -> str:
    """
    Canonical key for a set of normalized parameters.

    Absent parameters are dropped and the remainder serialized with sorted
    keys, then hashed to bound key length.
    """
    canonical = {k: v for k, v in params.items() if v is not None}
    blob = json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(blob.encode("utf-8")).hexdigest()
    return f"{namespace}:{digest}"


class QueryCache(ABC):
    """get/set over JSON payloads; backend failures are absorbed here."""

    name = "cache"

    @abstractmethod
    async def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def _write(self, key: str, value: str, ttl_seconds: int):
        ...

    async def ping(self) -> bool:
        return True

    async def close(self):
        pass

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self._read(key)
        except CacheError as e:
            logging.warning(f"[QueryCache] Read failed for {key}, serving live: {e}")
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError as e:
            logging.warning(f"[QueryCache] Unreadable entry {key}, ignoring: {e}")
            return None

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: int):
        try:
            await self._write(key, json.dumps(value, ensure_ascii=False), ttl_seconds)
        except CacheError as e:
            logging.warning(f"[QueryCache] Write skipped for {key}: {e}")


# -------------------------
# REDIS
# -------------------------

class RedisQueryCache(QueryCache):
    name = "redis"

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisQueryCache":
        return cls(redis.from_url(url, decode_responses=True))

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except (RedisError, OSError) as e:
            raise CacheError(str(e)) from e

    async def _write(self, key: str, value: str, ttl_seconds: int):
        try:
            await self.client.setex(key, ttl_seconds, value)
        except (RedisError, OSError) as e:
            raise CacheError(str(e)) from e

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self):
        await self.client.aclose()
        logging.info("[QueryCache] Redis connection closed")


# -------------------------
# IN-PROCESS
# -------------------------

class MemoryQueryCache(QueryCache):
    """
    Process-local TTL cache for single-worker deployments and tests.

    Expired entries read as absent. When full, expired entries are purged
    first and the whole cache is cleared if that is not enough.
    """

    name = "memory"

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def _read(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def _write(self, key: str, value: str, ttl_seconds: int):
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._entries = {k: e for k, e in self._entries.items() if e[0] > now}
                if len(self._entries) >= self.max_entries:
                    self._entries.clear()
            self._entries[key] = (now + ttl_seconds, value)


def create_query_cache(backend: str, redis_url: str, max_entries: int = 10000) -> QueryCache:
    if backend == "memory":
        return MemoryQueryCache(max_entries=max_entries)
    if backend == "redis":
        return RedisQueryCache.from_url(redis_url)
    raise ValueError(f"Unknown CACHE_BACKEND: {backend}")
