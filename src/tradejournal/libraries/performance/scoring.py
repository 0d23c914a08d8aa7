"""
Worth Score: composite 0-100 trader quality score.

Weighted blend of six component scores (each 0-100):

    component        weight
    win rate           20
    risk management    25
    consistency        20
    profit factor      15
    discipline         15
    market timing       5

Grades: 90 A+, 80 A, 70 B+, 60 B, 50 C+, 40 C, else D.
"""

from decimal import Decimal

from tradejournal.libraries.performance.metrics import ZERO, quantize
from tradejournal.libraries.performance.models import WorthComponents, WorthScore

WORTH_WEIGHTS: dict[str, Decimal] = {
    "win_rate": Decimal("20"),
    "risk_management": Decimal("25"),
    "consistency": Decimal("20"),
    "profit_factor": Decimal("15"),
    "discipline": Decimal("15"),
    "market_timing": Decimal("5"),
}

GRADE_THRESHOLDS: tuple[tuple[Decimal, str, str], ...] = (
    (Decimal("90"), "A+", "Elite Trader"),
    (Decimal("80"), "A", "Professional"),
    (Decimal("70"), "B+", "Advanced"),
    (Decimal("60"), "B", "Competent"),
    (Decimal("50"), "C+", "Developing"),
    (Decimal("40"), "C", "Needs Work"),
)

_HUNDRED = Decimal("100")
_THREE = Decimal("3")


def _capped_ratio(value: Decimal, target: Decimal) -> Decimal:
    """min(value / target, 1) x 100, floored at 0."""
    return max(min(value / target, Decimal("1")), ZERO) * _HUNDRED


def _percentage(part: int, whole: int) -> Decimal:
    if whole == 0:
        return ZERO
    return Decimal(part) / Decimal(whole) * _HUNDRED


def calculate_worth_components(
    *,
    win_rate: Decimal,
    profit_factor: Decimal,
    avg_risk_reward: Decimal,
    max_drawdown_pct: Decimal,
    max_loss_streak: int,
    closed_trades: int,
    trades_with_stop_and_target: int,
    active_days: int,
    positive_days: int,
) -> WorthComponents:
    """
    Compute the six component scores.

    Args:
        win_rate: 0-100
        profit_factor: Gross profit / gross loss
        avg_risk_reward: Average planned R:R over trades that have one
        max_drawdown_pct: Maximum drawdown, 0-100
        max_loss_streak: Longest run of losing trades
        closed_trades: Number of closed trades
        trades_with_stop_and_target: Closed trades with both stop and target set
        active_days: Days with at least one closed trade
        positive_days: Active days whose summed P&L is positive
    """
    risk_management = (_capped_ratio(profit_factor, _THREE) + _capped_ratio(avg_risk_reward, _THREE)) / 2
    consistency = (
        _HUNDRED
        - min(max_drawdown_pct * 2, Decimal("60"))
        - min(Decimal(max_loss_streak * 5), Decimal("40"))
    )

    return WorthComponents(
        win_rate=quantize(win_rate),
        risk_management=quantize(risk_management),
        consistency=quantize(max(consistency, ZERO)),
        profit_factor=quantize(_capped_ratio(profit_factor, _THREE)),
        discipline=quantize(_percentage(trades_with_stop_and_target, closed_trades)),
        market_timing=quantize(_percentage(positive_days, active_days)),
    )


def grade_for(score: Decimal) -> tuple[str, str]:
    """
    Letter grade and label for a score.

    Example:
        >>> grade_for(Decimal("84.5"))
        ('A', 'Professional')
    """
    for threshold, grade, label in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade, label
    return "D", "Beginner"


def calculate_worth_score(components: WorthComponents) -> WorthScore:
    """Blend component scores by WORTH_WEIGHTS into a graded WorthScore."""
    weighted = sum(
        (getattr(components, name) * weight for name, weight in WORTH_WEIGHTS.items()),
        ZERO,
    )
    score = quantize(weighted / _HUNDRED)
    grade, label = grade_for(score)
    return WorthScore(score=score, grade=grade, label=label, components=components)
