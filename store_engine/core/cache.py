#store_engine\core\cache.py

"""Bounded LRU cache with per-entry expiry."""

import time
from collections import OrderedDict
from threading import Lock
from typing import Callable, Generic, Optional, Tuple, TypeVar

V = TypeVar("V")

_MISSING = object()


class TTLCache(Generic[V]):
    """
    Least-recently-used cache; entries also expire after ttl_seconds.

    ttl_seconds=None keeps entries until they are evicted by size.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[V, Optional[float]]]" = OrderedDict()
        self._lock = Lock()

    def get(self, key: str, default=None):
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default

            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return default

            self._entries.move_to_end(key)
            return value

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        expires_at = self._clock() + ttl if ttl is not None else None

        with self._lock:
            self._entries[key] = (value, expires_at)
            self._entries.move_to_end(key)

            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
