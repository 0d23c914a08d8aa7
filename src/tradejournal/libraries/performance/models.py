"""Performance statistics data models.

Immutable pydantic models produced by the aggregator. A StatisticsSnapshot
is the pure output of (trades, account_balance) and is replaced wholesale
on every recompute; views and the CLI read from it.
"""

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

ZERO = Decimal("0")


class DrawdownPoint(BaseModel):
    """
    One step of the running-balance drawdown series.

    The first point carries the starting balance and has no date.
    """

    model_config = ConfigDict(frozen=True)

    date: datetime.date | None
    balance: Decimal
    drawdown_pct: Decimal
    peak: Decimal


class BreakdownRow(BaseModel):
    """
    Aggregates for one pair or one setup tag.

    Wins and losses count closed trades only; totals include open trades.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    total_trades: int
    wins: int
    losses: int
    total_pnl: Decimal
    win_rate: Decimal
    avg_pnl: Decimal
    best_trade: Decimal
    worst_trade: Decimal
    avg_lot_size: Decimal
    avg_risk_reward: Decimal


class PeriodBucket(BaseModel):
    """Closed-trade aggregates for one month ("2025-01") or one day ("2025-01-15")."""

    model_config = ConfigDict(frozen=True)

    key: str
    trades: int
    pnl: Decimal
    wins: int
    losses: int
    win_rate: Decimal


class RiskMetrics(BaseModel):
    """Risk-per-trade, average R:R and 95% value at risk (percent of balance)."""

    model_config = ConfigDict(frozen=True)

    max_risk_per_trade: Decimal = ZERO
    avg_risk_per_trade: Decimal = ZERO
    risk_reward_ratio: Decimal = ZERO
    value_at_risk: Decimal = ZERO


class WorthComponents(BaseModel):
    """The six 0-100 component scores blended into the Worth Score."""

    model_config = ConfigDict(frozen=True)

    win_rate: Decimal = ZERO
    risk_management: Decimal = ZERO
    consistency: Decimal = ZERO
    profit_factor: Decimal = ZERO
    discipline: Decimal = ZERO
    market_timing: Decimal = ZERO


class WorthScore(BaseModel):
    """Composite 0-100 trader quality score with letter grade."""

    model_config = ConfigDict(frozen=True)

    score: Decimal = ZERO
    grade: str = "D"
    label: str = "Beginner"
    components: WorthComponents = WorthComponents()


class StatisticsSnapshot(BaseModel):
    """
    Complete statistics for a trade set.

    Percentages are expressed 0-100 (win_rate 62.5 means 62.5%). Money is
    in account currency. Lists are ordered: drawdown_history and period
    buckets chronologically, breakdowns by total P&L descending.
    """

    model_config = ConfigDict(frozen=True)

    account_balance: Decimal

    # Counts
    total_trades: int = 0
    closed_trades: int = 0
    open_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    breakeven_trades: int = 0
    win_rate: Decimal = ZERO

    # P&L
    total_pnl: Decimal = ZERO
    gross_profit: Decimal = ZERO
    gross_loss: Decimal = ZERO
    avg_win: Decimal = ZERO
    avg_loss: Decimal = ZERO
    largest_win: Decimal = ZERO
    largest_loss: Decimal = ZERO
    profit_factor: Decimal = ZERO

    # Streaks
    max_win_streak: int = 0
    max_loss_streak: int = 0
    current_streak: int = 0

    # Drawdown
    max_drawdown: Decimal = ZERO
    current_drawdown: Decimal = ZERO
    drawdown_history: list[DrawdownPoint] = []

    # Ratios
    expectancy: Decimal = ZERO
    recovery_factor: Decimal = ZERO
    calmar_ratio: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    sortino_ratio: Decimal = ZERO
    volatility: Decimal = ZERO
    skewness: Decimal = ZERO
    kurtosis: Decimal = ZERO
    kelly_criterion: Decimal = ZERO

    # Scores
    worth_score: WorthScore = WorthScore()
    consistency_score: Decimal = ZERO
    discipline_score: Decimal = ZERO
    risk_management_score: Decimal = ZERO

    # Breakdowns
    pair_performance: list[BreakdownRow] = []
    setup_performance: list[BreakdownRow] = []
    best_pair: BreakdownRow | None = None
    worst_pair: BreakdownRow | None = None
    best_setup: BreakdownRow | None = None
    worst_setup: BreakdownRow | None = None
    monthly_performance: list[PeriodBucket] = []
    daily_performance: list[PeriodBucket] = []
    best_day: PeriodBucket | None = None
    worst_day: PeriodBucket | None = None
    total_trading_days: int = 0
    trades_per_day: Decimal = ZERO
    avg_trades_per_month: Decimal = ZERO

    # Risk and portfolio
    risk: RiskMetrics = RiskMetrics()
    portfolio_value: Decimal = ZERO
    portfolio_growth: Decimal = ZERO

    @property
    def loss_rate(self) -> Decimal:
        """Percentage of closed trades that lost."""
        if self.closed_trades == 0:
            return ZERO
        return (Decimal(self.losing_trades) / Decimal(self.closed_trades) * 100).quantize(Decimal("0.01"))
