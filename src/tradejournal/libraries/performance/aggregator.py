"""
Statistics aggregator.

aggregate(trades, account_balance) is a pure function from a trade list to
a StatisticsSnapshot. Trades are sorted by (date, id) before any
order-sensitive computation, so input order never changes the result.

Closed trades drive P&L, streaks, drawdown, ratios and period buckets.
Pair and setup breakdowns include open trades in their totals.
"""

from collections.abc import Iterable
from decimal import Decimal, localcontext

from tradejournal.libraries.calculations import calculate_risk_amount
from tradejournal.libraries.performance import metrics
from tradejournal.libraries.performance.calculators import (
    BreakdownCalculator,
    DrawdownCalculator,
    PeriodBucketCalculator,
    StreakCalculator,
)
from tradejournal.libraries.performance.metrics import ZERO, quantize
from tradejournal.libraries.performance.models import RiskMetrics, StatisticsSnapshot, WorthScore
from tradejournal.libraries.performance.scoring import calculate_worth_components, calculate_worth_score
from tradejournal.libraries.trades import Trade

UNKNOWN_SETUP = "Unknown"

_DISCIPLINE_PENALTY = Decimal("5")
_POOR_RR_PENALTY = Decimal("3")

# Quantizing sums of large P&L to cents needs more than the default 28 digits
_PRECISION = 60


def empty_snapshot(account_balance: Decimal) -> StatisticsSnapshot:
    """Snapshot for an empty journal: every number 0, every list empty."""
    return StatisticsSnapshot(account_balance=account_balance)


def sort_trades(trades: Iterable[Trade]) -> list[Trade]:
    """Chronological order with id as tie-breaker."""
    return sorted(trades, key=lambda t: (t.date, t.id))


def _risk_metrics(closed: list[Trade], returns: list[Decimal], account_balance: Decimal) -> RiskMetrics:
    if not closed or account_balance <= ZERO:
        return RiskMetrics()

    risk_pcts = []
    for trade in closed:
        if trade.stop_loss is None:
            continue
        amount = calculate_risk_amount(trade.entry_price, trade.stop_loss, trade.lot_size, trade.pair)
        if amount > ZERO:
            risk_pcts.append(amount / account_balance * 100)

    rr_values = [t.risk_reward for t in closed if t.risk_reward is not None and t.risk_reward > ZERO]

    return RiskMetrics(
        max_risk_per_trade=quantize(max(risk_pcts)) if risk_pcts else Decimal("0.00"),
        avg_risk_per_trade=quantize(sum(risk_pcts, ZERO) / len(risk_pcts)) if risk_pcts else Decimal("0.00"),
        risk_reward_ratio=quantize(sum(rr_values, ZERO) / len(rr_values)) if rr_values else Decimal("0.00"),
        value_at_risk=metrics.calculate_value_at_risk(returns),
    )


def _penalty_score(penalized: int, penalty: Decimal) -> Decimal:
    return max(Decimal("100") - penalty * penalized, ZERO)


def aggregate(trades: Iterable[Trade], account_balance: Decimal) -> StatisticsSnapshot:
    """
    Compute the full statistics snapshot.

    Args:
        trades: Any iterable of trades, in any order
        account_balance: Starting balance for drawdown, returns and risk percentages

    Returns:
        StatisticsSnapshot; empty_snapshot(account_balance) when there are no trades
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return _aggregate(trades, account_balance)


def _aggregate(trades: Iterable[Trade], account_balance: Decimal) -> StatisticsSnapshot:
    ordered = sort_trades(trades)
    if not ordered:
        return empty_snapshot(account_balance)

    closed = [t for t in ordered if t.is_closed]
    winners = [t for t in closed if t.is_winner]
    losers = [t for t in closed if t.is_loser]

    total_pnl = sum((t.pnl for t in closed), ZERO)
    gross_profit = sum((t.pnl for t in winners), ZERO)
    gross_loss = abs(sum((t.pnl for t in losers), ZERO))
    avg_win = gross_profit / len(winners) if winners else ZERO
    avg_loss = gross_loss / len(losers) if losers else ZERO

    win_rate = metrics.calculate_win_rate(len(winners), len(closed))
    profit_factor = metrics.calculate_profit_factor(gross_profit, gross_loss)

    drawdown = DrawdownCalculator(account_balance)
    streaks = StreakCalculator()
    monthly = PeriodBucketCalculator("monthly")
    daily = PeriodBucketCalculator("daily")
    for trade in closed:
        drawdown.update(trade.date, trade.pnl)
        streaks.update(trade.pnl)
        monthly.add(trade)
        daily.add(trade)

    pairs = BreakdownCalculator(lambda t: t.pair)
    setups = BreakdownCalculator(lambda t: t.setup_tag or UNKNOWN_SETUP)
    for trade in ordered:
        pairs.add(trade)
        setups.add(trade)
    pair_rows = pairs.rows()
    setup_rows = setups.rows()

    monthly_buckets = monthly.buckets()
    daily_buckets = daily.buckets()

    if account_balance > ZERO:
        returns = [t.pnl / account_balance * 100 for t in closed]
    else:
        returns = []

    max_dd_amount = metrics.calculate_max_drawdown_amount(drawdown.max_drawdown_pct, account_balance)
    risk = _risk_metrics(closed, returns, account_balance)

    components = calculate_worth_components(
        win_rate=win_rate,
        profit_factor=profit_factor,
        avg_risk_reward=risk.risk_reward_ratio,
        max_drawdown_pct=drawdown.max_drawdown_pct,
        max_loss_streak=streaks.max_loss_streak,
        closed_trades=len(closed),
        trades_with_stop_and_target=sum(1 for t in closed if t.has_stop and t.has_target),
        active_days=len(daily_buckets),
        positive_days=sum(1 for day in daily_buckets if day.pnl > ZERO),
    )
    worth_score = calculate_worth_score(components) if closed else WorthScore()

    without_stop = sum(1 for t in closed if not t.has_stop)
    poor_rr = sum(1 for t in closed if t.risk_reward is not None and ZERO < t.risk_reward < 1)
    discipline_score = _penalty_score(without_stop, _DISCIPLINE_PENALTY) if closed else ZERO
    risk_management_score = _penalty_score(poor_rr, _POOR_RR_PENALTY) if closed else ZERO

    if monthly_buckets:
        avg_trades_per_month = quantize(Decimal(len(closed)) / len(monthly_buckets))
    else:
        avg_trades_per_month = Decimal("0.00")

    best_day = max(daily_buckets, key=lambda d: d.pnl, default=None)
    worst_day = min(daily_buckets, key=lambda d: d.pnl, default=None)

    return StatisticsSnapshot(
        account_balance=account_balance,
        total_trades=len(ordered),
        closed_trades=len(closed),
        open_trades=len(ordered) - len(closed),
        winning_trades=len(winners),
        losing_trades=len(losers),
        breakeven_trades=len(closed) - len(winners) - len(losers),
        win_rate=win_rate,
        total_pnl=quantize(total_pnl),
        gross_profit=quantize(gross_profit),
        gross_loss=quantize(gross_loss),
        avg_win=quantize(avg_win),
        avg_loss=quantize(avg_loss),
        largest_win=quantize(max((t.pnl for t in winners), default=ZERO)),
        largest_loss=quantize(abs(min((t.pnl for t in losers), default=ZERO))),
        profit_factor=profit_factor,
        max_win_streak=streaks.max_win_streak,
        max_loss_streak=streaks.max_loss_streak,
        current_streak=streaks.current_streak,
        max_drawdown=drawdown.max_drawdown_pct,
        current_drawdown=drawdown.current_drawdown_pct,
        drawdown_history=drawdown.series,
        expectancy=metrics.calculate_expectancy(win_rate, avg_win, avg_loss) if closed else Decimal("0.00"),
        recovery_factor=metrics.calculate_recovery_factor(total_pnl, max_dd_amount),
        calmar_ratio=metrics.calculate_calmar_ratio(total_pnl, max_dd_amount),
        sharpe_ratio=metrics.calculate_sharpe_ratio(returns),
        sortino_ratio=metrics.calculate_sortino_ratio(returns),
        volatility=metrics.calculate_volatility(returns),
        skewness=metrics.calculate_skewness(returns),
        kurtosis=metrics.calculate_kurtosis(returns),
        kelly_criterion=metrics.calculate_kelly_criterion(win_rate, avg_win, avg_loss),
        worth_score=worth_score,
        consistency_score=metrics.calculate_consistency_score([m.pnl for m in monthly_buckets], len(closed)),
        discipline_score=discipline_score,
        risk_management_score=risk_management_score,
        pair_performance=pair_rows,
        setup_performance=setup_rows,
        best_pair=pair_rows[0] if pair_rows else None,
        worst_pair=pair_rows[-1] if pair_rows else None,
        best_setup=setup_rows[0] if setup_rows else None,
        worst_setup=setup_rows[-1] if setup_rows else None,
        monthly_performance=monthly_buckets,
        daily_performance=daily_buckets,
        best_day=best_day,
        worst_day=worst_day,
        total_trading_days=len(daily_buckets),
        trades_per_day=quantize(Decimal(len(closed)) / len(daily_buckets)) if daily_buckets else Decimal("0.00"),
        avg_trades_per_month=avg_trades_per_month,
        risk=risk,
        portfolio_value=quantize(account_balance + total_pnl),
        portfolio_growth=metrics.calculate_portfolio_growth(account_balance, total_pnl),
    )
