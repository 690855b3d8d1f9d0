"""In-memory cache of idempotent tool results for a single agent run."""

from dataclasses import dataclass
from typing import Any

from loguru import logger

# Entries under these prefixes keep their last value when invalidated,
# so a re-fetch can be reduced to a delta against it.
SNAPSHOT_PREFIXES = ("diff:",)


def is_error_result(result: Any) -> bool:
    """Check whether a tool result is an error message rather than data.

    Tools report failures as strings like ``Error reading file 'x': ...``.
    """
    return isinstance(result, str) and result.lstrip().startswith("Error")


@dataclass
class CacheEntry:
    """A cached tool result.

    ``baseline`` is what gets preserved on invalidation; it defaults to
    ``value``.  The delta-diff wrapper stores a delta as ``value`` and the
    full diff it was computed from as ``baseline``.
    """
    key: str
    value: str
    baseline: str | None = None

    @property
    def snapshot(self) -> str:
        return self.value if self.baseline is None else self.baseline


@dataclass
class CacheStats:
    """Cache counters for one run. Hits, misses and invalidations only grow."""
    hits: int = 0
    misses: int = 0
    invalidations: int = 0
    size: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage, 0.0 when nothing was looked up."""
        if not self.lookups:
            return 0.0
        return self.hits / self.lookups * 100

    def __str__(self) -> str:
        return (
            f"{self.hits} hits, {self.misses} misses ({self.hit_rate:.1f}% hit rate), "
            f"{self.invalidations} invalidations, {self.size} entries"
        )


class PreviousValues:
    """Last values of invalidated snapshot entries, keyed like the cache.

    Written only by ``ToolResultCache`` at invalidation time and never
    evicted; a later invalidation of the same key overwrites it.
    """

    def __init__(self):
        self._values: dict[str, str] = {}

    def record(self, key: str, value: str) -> None:
        self._values[key] = value

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


class ToolResultCache:
    """Key/value store for tool results with hit/miss/invalidation counters.

    One instance per agent run, shared by every subagent's tools in that
    run and discarded with it.  Keys come from the caller's key extractor,
    e.g. ``file:<path>:<branch>`` or ``diff:<pr>``.
    """

    def __init__(self, snapshot_prefixes: tuple[str, ...] | list[str] = SNAPSHOT_PREFIXES):
        self._store: dict[str, CacheEntry] = {}
        self._snapshot_prefixes = tuple(snapshot_prefixes)
        self.previous = PreviousValues()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def get(self, key: str) -> str | None:
        """Look up a value, counting a hit or a miss."""
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: str, baseline: str | None = None) -> None:
        self._store[key] = CacheEntry(key=key, value=value, baseline=baseline)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        if key not in self._store:
            return False
        self._evict(key)
        self._invalidations += 1
        return True

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix. Returns the count."""
        keys = [k for k in self._store if k.startswith(prefix)]
        for key in keys:
            self._evict(key)
        self._invalidations += len(keys)
        return len(keys)

    def invalidate_by_prefix_and_suffix(self, prefix: str, suffix: str) -> int:
        """Remove entries matching both prefix and suffix, e.g. one branch's trees."""
        keys = [k for k in self._store if k.startswith(prefix) and k.endswith(suffix)]
        for key in keys:
            self._evict(key)
        self._invalidations += len(keys)
        return len(keys)

    def clear(self) -> None:
        """Drop all entries. Counters and previous values are kept."""
        self._store.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            invalidations=self._invalidations,
            size=len(self._store),
        )

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def _evict(self, key: str) -> None:
        entry = self._store.pop(key)
        # An error is never a comparison point for a later delta
        if key.startswith(self._snapshot_prefixes) and not is_error_result(entry.snapshot):
            self.previous.record(key, entry.snapshot)
            logger.debug(f"Cache snapshot kept for {key} ({len(entry.snapshot)} chars)")
