"""
In-memory TTL cache for proximity and featured-hospital results, bounded with LRU eviction.
One instance per concern, held on app.state.
"""
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 600
DEFAULT_MAX_ENTRIES = 1000


class ProximityCache:
    """Key -> (value, stored_at). Entries are valid while now - stored_at < ttl."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._max = max(1, max_entries)
        self._clock = clock
        self._store: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self._ttl:
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = (value, self._clock())
            self._store.move_to_end(key)
            while len(self._store) > self._max:
                self._store.popitem(last=False)

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, stored_at) in self._store.items() if now - stored_at >= self._ttl]
            for k in expired:
                del self._store[k]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


def proximity_key(lat: float | None, lon: float | None, client_ip: str, limit: int) -> str:
    """Rounded coordinates when both are given, else the client IP; the limit is always part of the key."""
    if lat is not None and lon is not None:
        return f"geo:{lat:.2f}:{lon:.2f}:{limit}"
    return f"ip:{client_ip or 'unknown'}:{limit}"
