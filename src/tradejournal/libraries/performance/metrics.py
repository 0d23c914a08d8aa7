"""Performance metrics calculation functions.

Pure functions over closed-trade P&L and per-trade returns. All functions
are stateless, accept Decimal sequences and return quantized Decimals.
Degenerate input (empty, single value, zero variance) returns 0 rather
than raising.

Returns are per-trade percentages of account balance (pnl / balance x 100).
Standard deviations are population deviations.

Usage:
    >>> from tradejournal.libraries.performance import metrics
    >>> from decimal import Decimal
    >>>
    >>> metrics.calculate_profit_factor(Decimal("300"), Decimal("100"))
    Decimal('3.00')
    >>> metrics.calculate_sharpe_ratio([Decimal("1"), Decimal("-0.5"), Decimal("2")])
    Decimal('0.811')
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Profit factor reported when there are profits but no losses
PROFIT_FACTOR_CAP = Decimal("999")


def quantize(value: Decimal | float, places: str = "0.01") -> Decimal:
    """Round half-up to the given exponent; floats go through str() first."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def calculate_win_rate(winning: int, closed: int) -> Decimal:
    """
    Winning closed trades as a percentage of all closed trades.

    Example:
        >>> calculate_win_rate(5, 8)
        Decimal('62.50')
    """
    if closed == 0:
        return Decimal("0.00")
    return quantize(Decimal(winning) / Decimal(closed) * HUNDRED)


def calculate_profit_factor(gross_profit: Decimal, gross_loss: Decimal) -> Decimal:
    """
    Gross profit divided by gross loss (both non-negative).

    Returns 999 when there is profit but no loss, 0 when both are 0.
    """
    if gross_loss > ZERO:
        return quantize(gross_profit / gross_loss)
    if gross_profit > ZERO:
        return PROFIT_FACTOR_CAP
    return Decimal("0.00")


def calculate_expectancy(win_rate: Decimal, avg_win: Decimal, avg_loss: Decimal) -> Decimal:
    """
    Expected P&L per closed trade.

    win_rate is 0-100; avg_loss is a positive magnitude. Breakeven trades
    count toward the loss rate.
    """
    win_fraction = win_rate / HUNDRED
    return quantize(win_fraction * avg_win - (1 - win_fraction) * avg_loss)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _population_std(values: Sequence[float], mean: float) -> float:
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def calculate_volatility(returns: Sequence[Decimal]) -> Decimal:
    """Population standard deviation of returns."""
    if len(returns) < 2:
        return Decimal("0.00")
    values = [float(r) for r in returns]
    return quantize(_population_std(values, _mean(values)))


def calculate_sharpe_ratio(returns: Sequence[Decimal]) -> Decimal:
    """
    Per-trade Sharpe ratio: mean return / population standard deviation.

    No risk-free rate and no annualization; trades are not evenly spaced.
    """
    if len(returns) < 2:
        return Decimal("0.000")
    values = [float(r) for r in returns]
    mean = _mean(values)
    std_dev = _population_std(values, mean)
    if std_dev == 0:
        return Decimal("0.000")
    return quantize(mean / std_dev, "0.001")


def calculate_sortino_ratio(returns: Sequence[Decimal]) -> Decimal:
    """
    Mean return / downside deviation.

    Downside deviation is the population deviation (around the mean) of the
    returns that fall below the mean.
    """
    if len(returns) < 2:
        return Decimal("0.000")
    values = [float(r) for r in returns]
    mean = _mean(values)
    downside = [v for v in values if v < mean]
    if not downside:
        return Decimal("0.000")
    downside_dev = math.sqrt(sum((v - mean) ** 2 for v in downside) / len(downside))
    if downside_dev == 0:
        return Decimal("0.000")
    return quantize(mean / downside_dev, "0.001")


def calculate_skewness(returns: Sequence[Decimal]) -> Decimal:
    """Sample skewness with small-sample correction; 0 below 3 values."""
    n = len(returns)
    if n < 3:
        return Decimal("0.000")
    values = [float(r) for r in returns]
    mean = _mean(values)
    std_dev = _population_std(values, mean)
    if std_dev == 0:
        return Decimal("0.000")
    total = sum(((v - mean) / std_dev) ** 3 for v in values)
    return quantize((n / ((n - 1) * (n - 2))) * total, "0.001")


def calculate_kurtosis(returns: Sequence[Decimal]) -> Decimal:
    """Excess kurtosis with small-sample correction; 0 below 4 values."""
    n = len(returns)
    if n < 4:
        return Decimal("0.000")
    values = [float(r) for r in returns]
    mean = _mean(values)
    std_dev = _population_std(values, mean)
    if std_dev == 0:
        return Decimal("0.000")
    total = sum(((v - mean) / std_dev) ** 4 for v in values)
    kurt = (n * (n + 1)) / ((n - 1) * (n - 2) * (n - 3)) * total - (3 * (n - 1) ** 2) / ((n - 2) * (n - 3))
    return quantize(kurt, "0.001")


def calculate_kelly_criterion(win_rate: Decimal, avg_win: Decimal, avg_loss: Decimal) -> Decimal:
    """
    Kelly fraction W - (1 - W) / R with R = avg_win / avg_loss, clamped to [0, 1].

    Args:
        win_rate: 0-100
        avg_win: Average winning trade (positive)
        avg_loss: Average losing trade magnitude (positive)

    Example:
        >>> calculate_kelly_criterion(Decimal("60"), Decimal("200"), Decimal("100"))
        Decimal('0.4000')
    """
    if avg_win <= ZERO or avg_loss <= ZERO:
        return Decimal("0.0000")
    win_fraction = win_rate / HUNDRED
    payoff = avg_win / avg_loss
    kelly = win_fraction - (1 - win_fraction) / payoff
    return quantize(min(max(kelly, ZERO), Decimal("1")), "0.0001")


def calculate_value_at_risk(returns: Sequence[Decimal], confidence: Decimal = Decimal("0.95")) -> Decimal:
    """
    Historical VaR: |sorted_returns[floor(n x (1 - confidence))]|.

    Example:
        >>> calculate_value_at_risk([Decimal("-2"), Decimal("1"), Decimal("3")])
        Decimal('2.00')
    """
    if not returns:
        return Decimal("0.00")
    ordered = sorted(returns)
    index = math.floor(len(ordered) * float(1 - confidence))
    return quantize(abs(ordered[index]))


def calculate_max_drawdown_amount(max_drawdown_pct: Decimal, account_balance: Decimal) -> Decimal:
    """Convert a drawdown percentage into account currency."""
    if max_drawdown_pct <= ZERO:
        return ZERO
    return max_drawdown_pct / HUNDRED * account_balance


def calculate_recovery_factor(total_pnl: Decimal, max_drawdown_amount: Decimal) -> Decimal:
    """|total_pnl / max_drawdown_amount|, 0 without drawdown."""
    if max_drawdown_amount <= ZERO:
        return Decimal("0.00")
    return quantize(abs(total_pnl / max_drawdown_amount))


def calculate_calmar_ratio(total_pnl: Decimal, max_drawdown_amount: Decimal) -> Decimal:
    """total_pnl / max_drawdown_amount (signed), 0 without drawdown."""
    if max_drawdown_amount <= ZERO:
        return Decimal("0.00")
    return quantize(total_pnl / max_drawdown_amount)


def calculate_consistency_score(monthly_pnls: Sequence[Decimal], closed_count: int) -> Decimal:
    """
    Month-to-month P&L consistency, 0-100.

    100 - cv x 50 where cv is the coefficient of variation of monthly P&L
    (population), clamped to [0, 100]. Fewer than 3 closed trades score 0;
    a single active month scores 50.
    """
    if closed_count < 3:
        return Decimal("0")
    if len(monthly_pnls) < 2:
        return Decimal("50")
    values = [float(p) for p in monthly_pnls]
    mean = _mean(values)
    std_dev = _population_std(values, mean)
    coefficient = std_dev / abs(mean) if mean != 0 else 1.0
    return quantize(max(0.0, min(100.0, 100 - coefficient * 50)), "1")


def calculate_portfolio_growth(account_balance: Decimal, total_pnl: Decimal) -> Decimal:
    """Percentage growth of balance + total_pnl over balance."""
    if account_balance <= ZERO:
        return Decimal("0.00")
    return quantize(total_pnl / account_balance * HUNDRED)
