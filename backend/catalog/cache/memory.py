import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from catalog.cache.base import CacheBackend

log = logging.getLogger("catalog.cache.memory")


class InMemoryCache(CacheBackend):
    """
    Process-local cache for development and tests.

    Entries expire lazily on read; ``sweep_expired`` drops the rest and is
    run on a schedule by the application while it is up.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at or None)
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}

    def _expired(self, expires_at: Optional[float], now: float) -> bool:
        return expires_at is not None and expires_at <= now

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at, self._clock()):
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        with self._lock:
            self._store[key] = (value, expires_at)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._store.pop(key, None) is not None:
                    removed += 1
        return removed

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for key in doomed:
                del self._store[key]
        return len(doomed)

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [k for k, (_, exp) in self._store.items() if self._expired(exp, now)]
            for key in doomed:
                del self._store[key]
        if doomed:
            log.debug("swept %d expired cache entries", len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self):
        with self._lock:
            return len(self._store)


class NullCache(CacheBackend):
    """Caching disabled: every read misses, every write is dropped."""

    name = "none"

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        return None

    def delete(self, *keys: str) -> int:
        return 0

    def delete_prefix(self, prefix: str) -> int:
        return 0
