"""Journal store: the observable source of truth for trades and statistics."""

from tradejournal.services.journal.models import (
    CalendarDay,
    DataSummary,
    EquityPoint,
    FilterOptions,
    ImportAnalytics,
    MonthlyGrowthPoint,
    Pagination,
    PortfolioMetrics,
    RiskRewardPoint,
    TradeFilters,
    TradePage,
    WinLossDistribution,
)
from tradejournal.services.journal.store import JournalStore, StoreUpdate

__all__ = [
    "JournalStore",
    "StoreUpdate",
    # View models
    "CalendarDay",
    "DataSummary",
    "EquityPoint",
    "FilterOptions",
    "ImportAnalytics",
    "MonthlyGrowthPoint",
    "Pagination",
    "PortfolioMetrics",
    "RiskRewardPoint",
    "TradeFilters",
    "TradePage",
    "WinLossDistribution",
]
