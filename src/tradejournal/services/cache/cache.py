"""
Trade cache.

Namespaced, TTL-bounded memo of derived journal data (statistics
snapshots, chart series, per-date lookups). Keys combine a scope (the user
id or "global") with a trade-set fingerprint:

    make_cache_key("user-1", fingerprint_trades(trades))
    -> "user-1:42_2025-01-02_2025-03-28_1234.5"

The cache stores references: values are never copied or mutated, so a hit
returns the identical object that was stored. A disabled cache misses on
every get and ignores every set, which never changes computed results.

Cache errors are logged and swallowed; callers fall back to recomputing.
"""

import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from tradejournal.libraries.trades import Trade
from tradejournal.services.cache.config import CacheConfig
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

NAMESPACES: tuple[str, ...] = ("statistics", "chart", "performance", "pnl", "trades_by_date")


@dataclass
class CacheEntry:
    """One cached value and the clock reading when it was stored."""

    key: str
    value: Any
    timestamp: float


def make_cache_key(scope: str, fingerprint: str) -> str:
    """Combine scope and fingerprint into a cache key."""
    return f"{scope}:{fingerprint}"


def fingerprint_trades(trades: Sequence[Trade]) -> str:
    """
    Cheap trade-set fingerprint: count, date range and summed P&L.

    Not cryptographic: two different trade sets with the same count, first
    and last date and total P&L share a fingerprint. JournalStore compares
    the trade list itself before reusing a cached snapshot.
    """
    if not trades:
        return "0_none_none_0"
    first = min(t.date for t in trades)
    last = max(t.date for t in trades)
    total = sum((t.pnl for t in trades), Decimal("0"))
    # full precision: any change to total P&L, however small, changes the key
    return f"{len(trades)}_{first.isoformat()}_{last.isoformat()}_{format(total.normalize(), 'f')}"


class TradeCache:
    """
    Namespaced TTL cache.

    Example:
        >>> cache = TradeCache.create(CacheConfig(ttl_seconds=60))
        >>> key = make_cache_key("global", fingerprint_trades(trades))
        >>> cache.set("statistics", key, snapshot)
        >>> cache.get("statistics", key) is snapshot
        True
        >>> cache.invalidate("global")
        1
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize cache.

        Args:
            config: Sizing and TTL (defaults: 300 s TTL, 10 000 entries per namespace)
            clock: Monotonic seconds source; injectable for tests
        """
        self.config = config or CacheConfig()
        self._clock = clock
        self._stores: dict[str, dict[str, CacheEntry]] = {ns: {} for ns in NAMESPACES}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.debug(
            "cache.initialized",
            enabled=self.config.enabled,
            ttl_seconds=self.config.ttl_seconds,
            max_size=self.config.max_size,
        )

    @classmethod
    def create(cls, config: Optional[CacheConfig] = None, clock: Callable[[], float] = time.monotonic) -> "TradeCache":
        """Factory used by AppContext."""
        return cls(config, clock=clock)

    def dispose(self) -> None:
        """Drop every entry and reset counters."""
        self.invalidate_all()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.debug("cache.disposed")

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _namespace(self, namespace: str) -> dict[str, CacheEntry]:
        try:
            return self._stores[namespace]
        except KeyError:
            raise ValueError(f"Unknown cache namespace: {namespace}") from None

    def get(self, namespace: str, key: str) -> Any:
        """
        Return the cached value, or None on miss or expiry.

        Expired entries are removed on access.
        """
        if not self.config.enabled:
            return None
        try:
            store = self._namespace(namespace)
            entry = store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() - entry.timestamp >= self.config.ttl_seconds:
                del store[key]
                self._misses += 1
                logger.debug("cache.expired", namespace=namespace, key=key)
                return None
            self._hits += 1
            return entry.value
        except Exception as e:
            logger.warning("cache.get_failed", namespace=namespace, key=key, error=str(e))
            return None

    def set(self, namespace: str, key: str, value: Any) -> None:
        """Store a value; evicts the oldest entries when the namespace overflows."""
        if not self.config.enabled:
            return
        try:
            store = self._namespace(namespace)
            store[key] = CacheEntry(key=key, value=value, timestamp=self._clock())
            if len(store) > self.config.max_size:
                self._evict(namespace, store)
        except Exception as e:
            logger.warning("cache.set_failed", namespace=namespace, key=key, error=str(e))

    def _evict(self, namespace: str, store: dict[str, CacheEntry]) -> None:
        count = max(1, math.floor(self.config.max_size * self.config.eviction_fraction))
        oldest = sorted(store.values(), key=lambda entry: entry.timestamp)[:count]
        for entry in oldest:
            del store[entry.key]
        self._evictions += len(oldest)
        logger.debug("cache.evicted", namespace=namespace, evicted=len(oldest), remaining=len(store))

    def invalidate(self, scope: str) -> int:
        """
        Remove every entry, in every namespace, whose key references the scope.

        Returns:
            Number of entries removed
        """
        removed = 0
        for store in self._stores.values():
            stale = [key for key in store if scope in key.split(":")]
            for key in stale:
                del store[key]
            removed += len(stale)
        if removed:
            logger.debug("cache.invalidated", scope=scope, removed=removed)
        return removed

    def invalidate_namespace(self, namespace: str) -> int:
        """Empty one namespace. Returns the number of entries removed."""
        try:
            store = self._namespace(namespace)
        except ValueError as e:
            logger.warning("cache.invalidate_failed", namespace=namespace, error=str(e))
            return 0
        removed = len(store)
        store.clear()
        return removed

    def invalidate_all(self) -> None:
        """Empty every namespace."""
        for store in self._stores.values():
            store.clear()
        logger.debug("cache.cleared")

    def stats(self) -> dict[str, Any]:
        """
        Cache statistics.

        Returns:
            Dict with per-namespace sizes, hits, misses, hit_rate (0-100),
            evictions and estimated_bytes (rough: 2 bytes per character of
            each value's string form).
        """
        sizes = {ns: len(store) for ns, store in self._stores.items()}
        lookups = self._hits + self._misses
        estimated = 0
        for store in self._stores.values():
            for entry in store.values():
                try:
                    estimated += (len(entry.key) + len(str(entry.value))) * 2
                except Exception as e:
                    logger.warning("cache.size_estimate_failed", key=entry.key, error=str(e))
        return {
            "enabled": self.config.enabled,
            "sizes": sizes,
            "total_entries": sum(sizes.values()),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / lookups * 100, 2) if lookups else 0.0,
            "evictions": self._evictions,
            "estimated_bytes": estimated,
        }
