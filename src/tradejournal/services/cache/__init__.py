"""Trade cache service."""

from tradejournal.services.cache.cache import (
    NAMESPACES,
    CacheEntry,
    TradeCache,
    fingerprint_trades,
    make_cache_key,
)
from tradejournal.services.cache.config import CacheConfig

__all__ = [
    "NAMESPACES",
    "CacheConfig",
    "CacheEntry",
    "TradeCache",
    "fingerprint_trades",
    "make_cache_key",
]
