"""
response_cache.py

In-process TTL cache for catalog responses, bounded by entry count with
least-recently-used eviction. Lookups are synchronous so they never yield
to the event loop between check and use.
"""
import time
import logging
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

# Sentinel for a cache miss; None is a legitimate cached payload.
MISS = object()


class ResponseCache:
    """TTL + LRU cache keyed by request signature.

    Entries are (payload, fetched_at) pairs. An entry is valid only while
    `clock() - fetched_at < ttl`. Once more than `max_entries` are held the
    least recently used entry is evicted.
    """

    def __init__(self, ttl: float, max_entries: int, name: str = "catalog", clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, bypass: bool = False) -> Any:
        """Return the cached payload or MISS. `bypass` forces a miss without evicting."""
        if bypass:
            self.misses += 1
            return MISS
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return MISS
        payload, fetched_at = entry
        if self._clock() - fetched_at >= self.ttl:
            del self._entries[key]
            self.misses += 1
            return MISS
        self._entries.move_to_end(key)
        self.hits += 1
        return payload

    def put(self, key: str, payload: Any) -> None:
        self._entries[key] = (payload, self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"{self.name} cache full, evicted {evicted}")

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
