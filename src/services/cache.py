"""Thread-safe in-memory LRU cache with a byte-size ceiling.

Used by the tool service clients for lookups that never change between
calls (e.g. geocoding a city name).  The agent loop itself keeps no
state and never touches this cache.

• ``OrderedDict`` gives O(1) eviction and promotion.
• Entry size is the UTF-8 length of ``json.dumps(value)``.
• Data is lost on process restart.

>>> cache = LRUCache(max_bytes=1024 * 1024)
>>> cache.put("city:warsaw", {"latitude": 52.23, "longitude": 21.01})
>>> cache.get("city:warsaw")
{'latitude': 52.23, 'longitude': 21.01}
"""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class LRUCache:
    """Least-Recently-Used cache bounded by total estimated byte size."""

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._max_bytes = max_bytes
        self._current_bytes = 0
        # key → (value, estimated_size_bytes)
        self._store: OrderedDict[str, tuple[Any, int]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _estimate_bytes(value: Any) -> int:
        try:
            return len(json.dumps(value, default=str).encode("utf-8"))
        except (TypeError, ValueError, OverflowError):
            return len(str(value).encode("utf-8"))

    def get(self, key: str) -> Any | None:
        """Return the cached value (promoting it to MRU) or ``None``."""
        with self._lock:
            if key not in self._store:
                return None
            self._store.move_to_end(key)
            return self._store[key][0]

    def put(self, key: str, value: Any) -> None:
        """Insert or overwrite *key*, evicting LRU entries to make room."""
        size = self._estimate_bytes(value)
        if size > self._max_bytes:
            logger.debug("Cache: skipping key %s (size %d > max %d)", key, size, self._max_bytes)
            return

        with self._lock:
            if key in self._store:
                self._current_bytes -= self._store.pop(key)[1]

            while self._current_bytes + size > self._max_bytes and self._store:
                evicted_key, (_, evicted_size) = self._store.popitem(last=False)
                self._current_bytes -= evicted_size
                logger.debug("Cache: evicted %s (%d bytes)", evicted_key, evicted_size)

            self._store[key] = (value, size)
            self._current_bytes += size

    def invalidate(self, key: str) -> bool:
        """Remove a single key.  Returns ``True`` if the key existed."""
        with self._lock:
            if key not in self._store:
                return False
            self._current_bytes -= self._store.pop(key)[1]
            return True

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._current_bytes = 0

    @property
    def current_bytes(self) -> int:
        return self._current_bytes

    @property
    def entry_count(self) -> int:
        return len(self._store)

    def has(self, key: str) -> bool:
        """Check if a key is present *without* promoting it."""
        return key in self._store
