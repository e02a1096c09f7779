"""
Generic in-memory cache with TTL support.
Thread-safe; expiry is enforced lazily on read, plus a sweep every
`sweep_every` writes so keys that are never read again do not pile up.
Can be replaced with a networked adapter implementing CacheInterface.
"""
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

Clock = Callable[[], float]


class CacheInterface(ABC, Generic[K, T]):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: K) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        pass

    @abstractmethod
    def set(self, key: K, value: T, ttl_seconds: Optional[float] = None) -> None:
        """Set value with optional TTL."""
        pass

    @abstractmethod
    def delete(self, key: K) -> bool:
        """Delete key, returns True if existed."""
        pass

    @abstractmethod
    def delete_where(self, predicate: Callable[[K], bool]) -> int:
        """Atomically delete every key matching predicate, returns count removed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all entries."""
        pass


class CacheEntry(Generic[T]):
    """Single cache entry with expiration tracking."""

    def __init__(self, value: T, expires_at: Optional[float]) -> None:
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class InMemoryCache(CacheInterface[K, T]):
    """
    Thread-safe in-memory cache with TTL support.

    Usage:
        cache: CacheInterface[ResultCacheKey, RecommendationResponse] = InMemoryCache(
            default_ttl_seconds=600
        )
        cache.set(key, response)
        cache.delete_where(lambda k: k.viewer_id == "viewer-1")
    """

    def __init__(
        self,
        default_ttl_seconds: Optional[float] = None,
        clock: Clock = time.time,
        sweep_every: int = 100,
    ) -> None:
        self._store: Dict[K, CacheEntry[T]] = {}
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._sweep_every = sweep_every
        self._writes = 0
        self._lock = Lock()

    def get(self, key: K) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return entry.value

    def set(self, key: K, value: T, ttl_seconds: Optional[float] = None) -> None:
        """Set value with optional TTL. Last write for a key wins."""
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._store[key] = CacheEntry(value, expires_at)
            self._writes += 1
            if self._sweep_every and self._writes % self._sweep_every == 0:
                self._remove_expired()

    def delete(self, key: K) -> bool:
        """Delete key, returns True if existed."""
        with self._lock:
            if key in self._store:
                del self._store[key]
                return True
            return False

    def delete_where(self, predicate: Callable[[K], bool]) -> int:
        """Delete every key matching predicate under a single lock."""
        with self._lock:
            doomed = [k for k in self._store if predicate(k)]
            for key in doomed:
                del self._store[key]
        return len(doomed)

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        """Return number of entries (including possibly expired)."""
        with self._lock:
            return len(self._store)

    def cleanup_expired(self) -> int:
        """Remove expired entries, return count removed."""
        with self._lock:
            return self._remove_expired()

    def _remove_expired(self) -> int:
        now = self._clock()
        expired_keys = [k for k, v in self._store.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._store[key]
        return len(expired_keys)
