"""
TradeJournal engine.

AppContext builds and owns the bus, cache, store and import pipeline.
"""

from tradejournal.engine.context import AppContext

__all__ = ["AppContext"]
