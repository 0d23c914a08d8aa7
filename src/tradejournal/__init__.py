"""
TradeJournal - Trading Performance Analytics Engine

Public API for turning raw trade records into P&L, performance statistics
and cached, observable journal snapshots, plus bulk trade import.
"""

from importlib.metadata import version

try:
    __version__ = version("tradejournal")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
