"""Read-view models for the journal store.

Everything a UI surface reads from the store besides the StatisticsSnapshot
itself: filters, pages, calendar cells, chart series and summaries.
"""

import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tradejournal.libraries.calculations import Direction
from tradejournal.libraries.trades import Trade, TradeStatus


class TradeFilters(BaseModel):
    """
    Trade list filter.

    Every criterion is optional; "all" or an empty string means "no filter"
    so form values can be passed straight through. Date bounds are
    inclusive. search matches pair, notes and setup case-insensitively.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: Optional[TradeStatus] = None
    pair: Optional[str] = None
    direction: Optional[Direction] = None
    setup: Optional[str] = None
    date_from: Optional[datetime.date] = None
    date_to: Optional[datetime.date] = None
    search: Optional[str] = None

    @field_validator("status", "pair", "direction", "setup", "date_from", "date_to", "search", mode="before")
    @classmethod
    def blank_means_any(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in ("", "all"):
            return None
        return v

    @field_validator("pair")
    @classmethod
    def upper_pair(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else None


class Pagination(BaseModel):
    """Page metadata; start_index and end_index are 1-based and inclusive."""

    model_config = ConfigDict(frozen=True)

    current_page: int
    total_pages: int
    total_trades: int
    page_size: int
    has_next_page: bool
    has_previous_page: bool
    start_index: int
    end_index: int


class TradePage(BaseModel):
    """One page of (filtered) trades."""

    model_config = ConfigDict(frozen=True)

    trades: list[Trade]
    pagination: Pagination


class CalendarDay(BaseModel):
    """
    Calendar cell for one day of a month.

    intensity blends the day's P&L magnitude and trade count relative to the
    trader's own averages (0-1). performance_intensity scales P&L against
    the best (profit) or worst (loss) day on record (0-1).
    """

    model_config = ConfigDict(frozen=True)

    day: int
    trades: list[Trade] = Field(default_factory=list)
    total_pnl: Decimal = Decimal("0.00")
    trade_count: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: Decimal = Decimal("0.00")
    intensity: Decimal = Decimal("0.00")
    performance_level: str = "neutral"
    performance_intensity: Decimal = Decimal("0.00")


class EquityPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime.date
    pnl: Decimal
    cumulative_pnl: Decimal
    pair: str


class WinLossDistribution(BaseModel):
    """Closed-trade P&L histogram with fixed currency buckets."""

    model_config = ConfigDict(frozen=True)

    buckets: dict[str, int]
    total_wins: int = 0
    total_losses: int = 0
    avg_win: Decimal = Decimal("0.00")
    avg_loss: Decimal = Decimal("0.00")


class RiskRewardPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_reward: Decimal
    pnl: Decimal
    pair: str
    setup: str
    date: datetime.date
    size: Decimal


class MonthlyGrowthPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    cumulative_pnl: Decimal
    monthly_return: Decimal
    portfolio_value: Decimal


class PortfolioMetrics(BaseModel):
    """Portfolio value and growth relative to an initial balance."""

    model_config = ConfigDict(frozen=True)

    initial_balance: Decimal
    current_value: Decimal
    total_return: Decimal
    percentage_growth: Decimal
    annualized_return: Decimal
    max_portfolio_value: Decimal
    min_portfolio_value: Decimal
    current_drawdown_pct: Decimal


class FilterOptions(BaseModel):
    """Distinct values for filter dropdowns; years and months newest first."""

    model_config = ConfigDict(frozen=True)

    pairs: list[str] = Field(default_factory=list)
    setups: list[str] = Field(default_factory=list)
    years: list[str] = Field(default_factory=list)
    months: list[str] = Field(default_factory=list)


class ImportAnalytics(BaseModel):
    """Quick preview of a batch of trades before it is imported."""

    model_config = ConfigDict(frozen=True)

    total_trades: int = 0
    closed_trades: int = 0
    open_trades: int = 0
    total_pnl: Decimal = Decimal("0.00")
    pairs: list[str] = Field(default_factory=list)
    setups: list[str] = Field(default_factory=list)
    date_from: Optional[datetime.date] = None
    date_to: Optional[datetime.date] = None
    avg_lot_size: Decimal = Decimal("0.00")
    win_rate: Decimal = Decimal("0.0")
    profit_factor: Decimal = Decimal("0.00")


class DataSummary(BaseModel):
    """Store diagnostics."""

    model_config = ConfigDict(frozen=True)

    total_trades: int
    quarantined: int
    worth_score: Decimal
    win_rate: Decimal
    total_pnl: Decimal
    last_update: Optional[datetime.datetime]
    data_age_seconds: float
    subscriber_count: int
