"""
Cache stores used by the router for cache-aside lookups.

Every store exposes the same three operations. Callers treat any exception raised
here as a cache miss, so stores are free to raise CacheUnavailableError.
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

import redis

from ..utils import get_logger
from ..utils.error_handling import CacheUnavailableError


class CacheStore(ABC):
    """Key/value store with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: timedelta) -> None:
        """Store ``value`` under ``key``, replacing any previous entry and its TTL."""

    @abstractmethod
    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; returns the number removed."""


class NullCacheStore(CacheStore):
    """Cache that stores nothing. Valid for deployments without a cache."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str, ttl: timedelta) -> None:
        return None

    def delete_by_prefix(self, prefix: str) -> int:
        return 0


class InMemoryCacheStore(CacheStore):
    """Thread-safe in-process TTL cache. Oldest entries are evicted when full."""

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic):
        self._max_entries = max_entries
        self._clock = clock
        # key -> (expires_at, stored_at, value)
        self._store: Dict[str, Tuple[float, float, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, _, value = entry
            if self._clock() >= expires_at:
                # expired
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: timedelta) -> None:
        now = self._clock()
        with self._lock:
            if key not in self._store and len(self._store) >= self._max_entries:
                self._evict(now)
            self._store[key] = (now + ttl.total_seconds(), now, value)

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._store if key.startswith(prefix)]
            for key in doomed:
                del self._store[key]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _evict(self, now: float) -> None:
        expired = [key for key, (expires_at, _, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]
        if len(self._store) >= self._max_entries:
            oldest_key = min(self._store.items(), key=lambda kv: kv[1][1])[0]
            del self._store[oldest_key]


class RedisCacheStore(CacheStore):
    """Redis-backed store shared by every process of the deployment."""

    def __init__(self, url: str = "redis://localhost:6379/0", socket_timeout: float = 2.0,
                 client: Optional[redis.Redis] = None):
        self.logger = get_logger(__name__)
        self._client = client or redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"Redis get failed: {e}", operation="get") from e

    def set(self, key: str, value: str, ttl: timedelta) -> None:
        seconds = max(1, int(ttl.total_seconds()))
        try:
            self._client.set(key, value, ex=seconds)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"Redis set failed: {e}", operation="set") from e

    def delete_by_prefix(self, prefix: str) -> int:
        # KEYS-style patterns are not accepted by DEL, so walk the keyspace with SCAN.
        deleted = 0
        try:
            batch = []
            for key in self._client.scan_iter(match=f"{prefix}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += self._client.delete(*batch)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"Redis delete failed: {e}", operation="delete") from e
        self.logger.info(f"Deleted {deleted} cache entries with prefix {prefix}")
        return deleted

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
