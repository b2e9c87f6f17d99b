"""
Result Cache

Short-lived caches owned by the collaborators around the scoring core
(data provider, board). The core itself is deterministic and never
touches a cache, so any policy can wrap it.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple


def make_key(*parts: Any) -> str:
    """Build a stable cache key from natural request parameters."""
    return ':'.join('' if p is None else str(getattr(p, 'value', p)) for p in parts)


class Cache(ABC):
    """Minimal get/set/TTL cache interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get cached value, or None if missing or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """Set cached value; `ttl` in seconds overrides the default."""

    @abstractmethod
    def delete(self, key: str):
        pass

    @abstractmethod
    def clear(self):
        pass


class TTLCache(Cache):
    """
    Thread-safe in-memory cache with per-entry expiry.

    Args:
        default_ttl: Seconds an entry lives when `set` gets no ttl
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, default_ttl: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (now + ttl, value)

    def _purge_expired(self, now: float):
        # Caller holds the lock
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]

    def delete(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullCache(Cache):
    """Cache that never stores anything."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        pass

    def delete(self, key: str):
        pass

    def clear(self):
        pass
