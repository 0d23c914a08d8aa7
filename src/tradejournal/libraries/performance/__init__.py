"""
Trading performance statistics.

aggregate() turns a list of trades into a StatisticsSnapshot: counts, P&L,
streaks, drawdown series, risk-adjusted ratios, breakdowns by pair, setup,
month and day, and the Worth Score.
"""

from tradejournal.libraries.performance.aggregator import UNKNOWN_SETUP, aggregate, empty_snapshot, sort_trades
from tradejournal.libraries.performance.calculators import (
    BreakdownCalculator,
    DrawdownCalculator,
    PeriodBucketCalculator,
    StreakCalculator,
)
from tradejournal.libraries.performance.models import (
    BreakdownRow,
    DrawdownPoint,
    PeriodBucket,
    RiskMetrics,
    StatisticsSnapshot,
    WorthComponents,
    WorthScore,
)
from tradejournal.libraries.performance.scoring import (
    GRADE_THRESHOLDS,
    WORTH_WEIGHTS,
    calculate_worth_components,
    calculate_worth_score,
    grade_for,
)

__all__ = [
    # Aggregation
    "aggregate",
    "empty_snapshot",
    "sort_trades",
    "UNKNOWN_SETUP",
    # Calculators
    "BreakdownCalculator",
    "DrawdownCalculator",
    "PeriodBucketCalculator",
    "StreakCalculator",
    # Models
    "BreakdownRow",
    "DrawdownPoint",
    "PeriodBucket",
    "RiskMetrics",
    "StatisticsSnapshot",
    "WorthComponents",
    "WorthScore",
    # Scoring
    "GRADE_THRESHOLDS",
    "WORTH_WEIGHTS",
    "calculate_worth_components",
    "calculate_worth_score",
    "grade_for",
]
