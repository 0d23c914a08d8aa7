"""Read views over the journal's trades.

Pure functions of (trades, snapshot); the store calls them on demand.
Functions that depend on order expect trades sorted by (date, id), which is
how the store keeps them.
"""

import datetime
import math
from collections.abc import Sequence
from decimal import Decimal

from tradejournal.libraries.performance import StatisticsSnapshot, metrics
from tradejournal.libraries.performance.metrics import ZERO, quantize
from tradejournal.libraries.trades import Trade
from tradejournal.services.journal.models import (
    CalendarDay,
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

ONE = Decimal("1")

# (lower bound inclusive, label), checked top-down; anything lower is "-500+"
WIN_LOSS_BUCKETS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("500"), "500+"),
    (Decimal("250"), "250to500"),
    (Decimal("100"), "100to250"),
    (Decimal("50"), "50to100"),
    (Decimal("10"), "10to50"),
    (Decimal("0"), "0to10"),
    (Decimal("-10"), "0to-10"),
    (Decimal("-50"), "-10to-50"),
    (Decimal("-100"), "-50to-100"),
    (Decimal("-250"), "-100to-250"),
    (Decimal("-500"), "-250to-500"),
)
LARGEST_LOSS_BUCKET = "-500+"


def filter_trades(trades: Sequence[Trade], filters: TradeFilters) -> list[Trade]:
    """Apply every set criterion (logical AND)."""
    result = list(trades)
    if filters.status is not None:
        result = [t for t in result if t.status == filters.status]
    if filters.pair is not None:
        result = [t for t in result if t.pair == filters.pair]
    if filters.direction is not None:
        result = [t for t in result if t.direction == filters.direction]
    if filters.setup is not None:
        result = [t for t in result if t.setup_tag == filters.setup]
    if filters.date_from is not None:
        result = [t for t in result if t.date >= filters.date_from]
    if filters.date_to is not None:
        result = [t for t in result if t.date <= filters.date_to]
    if filters.search:
        needle = filters.search.lower()
        result = [
            t
            for t in result
            if needle in t.pair.lower() or needle in t.notes.lower() or needle in t.setup_tag.lower()
        ]
    return result


def paginate(trades: Sequence[Trade], page: int, page_size: int) -> TradePage:
    """
    Slice a trade list into a 1-based page.

    Raises:
        ValueError: If page or page_size is below 1
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    total = len(trades)
    total_pages = math.ceil(total / page_size)
    start = (page - 1) * page_size
    end = start + page_size
    return TradePage(
        trades=list(trades[start:end]),
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_trades=total,
            page_size=page_size,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
            start_index=start + 1,
            end_index=min(end, total),
        ),
    )


def trades_for_date(trades: Sequence[Trade], day: datetime.date) -> list[Trade]:
    return [t for t in trades if t.date == day]


def pnl_for_date(trades: Sequence[Trade], day: datetime.date) -> Decimal:
    """Summed P&L of every trade on a date (open trades contribute their recorded P&L)."""
    return quantize(sum((t.pnl for t in trades if t.date == day), ZERO))


def _daily_pnl(trades: Sequence[Trade]) -> dict[datetime.date, Decimal]:
    totals: dict[datetime.date, Decimal] = {}
    for trade in trades:
        totals[trade.date] = totals.get(trade.date, ZERO) + trade.pnl
    return totals


def average_trades_per_day(trades: Sequence[Trade]) -> Decimal:
    """Trades per distinct trade date; 1 for an empty journal."""
    if not trades:
        return ONE
    return Decimal(len(trades)) / Decimal(len({t.date for t in trades}))


def calendar_data(trades: Sequence[Trade], year: int, month: int) -> dict[int, CalendarDay]:
    """
    Calendar cells for a month (1-12), keyed by day of month.

    Only days with at least one trade appear. Intensities are normalized
    against the whole journal, not just the month.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")

    nonzero_days = [pnl for pnl in _daily_pnl(trades).values() if pnl != ZERO]
    max_pnl = max(nonzero_days) if nonzero_days else Decimal("100")
    min_pnl = min(nonzero_days) if nonzero_days else Decimal("-100")
    if nonzero_days:
        avg_volume = sum((abs(p) for p in nonzero_days), ZERO) / len(nonzero_days)
    else:
        avg_volume = Decimal("50")
    avg_per_day = max(average_trades_per_day(trades), ONE)

    grouped: dict[int, list[Trade]] = {}
    for trade in trades:
        if trade.date.year == year and trade.date.month == month:
            grouped.setdefault(trade.date.day, []).append(trade)

    days: dict[int, CalendarDay] = {}
    for day, day_trades in sorted(grouped.items()):
        total = sum((t.pnl for t in day_trades), ZERO)
        wins = sum(1 for t in day_trades if t.is_winner)
        losses = sum(1 for t in day_trades if t.is_loser)

        pnl_intensity = abs(total) / max(avg_volume, ONE)
        volume_intensity = Decimal(len(day_trades)) / avg_per_day
        intensity = min((pnl_intensity + volume_intensity) / 2, ONE)

        if total > ZERO:
            level = "profit"
            perf = min(total / max_pnl, ONE) if max_pnl > ZERO else ONE
        elif total < ZERO:
            level = "loss"
            perf = min(abs(total) / abs(min_pnl), ONE) if min_pnl < ZERO else ONE
        else:
            level = "neutral"
            perf = ZERO

        days[day] = CalendarDay(
            day=day,
            trades=day_trades,
            total_pnl=quantize(total),
            trade_count=len(day_trades),
            wins=wins,
            losses=losses,
            win_rate=metrics.calculate_win_rate(wins, wins + losses),
            intensity=quantize(intensity),
            performance_level=level,
            performance_intensity=quantize(perf),
        )
    return days


def equity_curve(trades: Sequence[Trade]) -> list[EquityPoint]:
    """Cumulative P&L after each trade, in chronological order."""
    running = ZERO
    points = []
    for trade in trades:
        running += trade.pnl
        points.append(EquityPoint(date=trade.date, pnl=trade.pnl, cumulative_pnl=quantize(running), pair=trade.pair))
    return points


def _bucket_label(pnl: Decimal) -> str:
    for lower, label in WIN_LOSS_BUCKETS:
        if pnl >= lower:
            return label
    return LARGEST_LOSS_BUCKET


def win_loss_distribution(trades: Sequence[Trade]) -> WinLossDistribution:
    closed = [t for t in trades if t.is_closed]
    # most negative bucket first
    buckets = dict.fromkeys([LARGEST_LOSS_BUCKET, *(label for _, label in reversed(WIN_LOSS_BUCKETS))], 0)
    for trade in closed:
        buckets[_bucket_label(trade.pnl)] += 1

    wins = [t.pnl for t in closed if t.pnl > ZERO]
    losses = [t.pnl for t in closed if t.pnl < ZERO]
    return WinLossDistribution(
        buckets=buckets,
        total_wins=len(wins),
        total_losses=len(losses),
        avg_win=quantize(sum(wins, ZERO) / len(wins)) if wins else Decimal("0.00"),
        avg_loss=quantize(abs(sum(losses, ZERO)) / len(losses)) if losses else Decimal("0.00"),
    )


def risk_reward_scatter(trades: Sequence[Trade]) -> list[RiskRewardPoint]:
    """Closed trades with a non-zero planned R:R."""
    return [
        RiskRewardPoint(
            risk_reward=t.risk_reward,
            pnl=t.pnl,
            pair=t.pair,
            setup=t.setup_tag,
            date=t.date,
            size=abs(t.pnl),
        )
        for t in trades
        if t.is_closed and t.risk_reward
    ]


def monthly_growth(trades: Sequence[Trade], account_balance: Decimal) -> list[MonthlyGrowthPoint]:
    """Month-end cumulative P&L and portfolio value."""
    months: dict[str, dict[str, Decimal]] = {}
    running = ZERO
    for trade in trades:
        key = trade.date.strftime("%Y-%m")
        running += trade.pnl
        entry = months.setdefault(key, {"monthly": ZERO, "cumulative": ZERO})
        entry["monthly"] += trade.pnl
        entry["cumulative"] = running
    return [
        MonthlyGrowthPoint(
            month=key,
            cumulative_pnl=quantize(data["cumulative"]),
            monthly_return=quantize(data["monthly"]),
            portfolio_value=quantize(account_balance + data["cumulative"]),
        )
        for key, data in months.items()
    ]


def filter_options(trades: Sequence[Trade]) -> FilterOptions:
    return FilterOptions(
        pairs=sorted({t.pair for t in trades}),
        setups=sorted({t.setup_tag for t in trades if t.setup_tag}),
        years=sorted({str(t.date.year) for t in trades}, reverse=True),
        months=sorted({t.date.strftime("%Y-%m") for t in trades}, reverse=True),
    )


def _annualized_return(trades: Sequence[Trade], growth_pct: Decimal) -> Decimal:
    if not trades:
        return Decimal("0.00")
    first = min(t.date for t in trades)
    last = max(t.date for t in trades)
    years = (last - first).days / 365.25
    if years <= 0:
        return quantize(growth_pct)
    base = 1 + float(growth_pct) / 100
    if base <= 0:
        return Decimal("-100.00")
    return quantize((base ** (1 / years) - 1) * 100)


def portfolio_metrics(
    trades: Sequence[Trade], snapshot: StatisticsSnapshot, initial_balance: Decimal
) -> PortfolioMetrics:
    """
    Portfolio value path relative to an initial balance.

    Max/min values walk every trade's recorded P&L in date order.
    """
    current = initial_balance + snapshot.total_pnl
    if initial_balance > ZERO:
        growth = (current / initial_balance - ONE) * 100
    else:
        growth = ZERO

    running = high = low = initial_balance
    for trade in trades:
        running += trade.pnl
        high = max(high, running)
        low = min(low, running)

    return PortfolioMetrics(
        initial_balance=initial_balance,
        current_value=quantize(current),
        total_return=snapshot.total_pnl,
        percentage_growth=quantize(growth),
        annualized_return=_annualized_return(trades, growth),
        max_portfolio_value=quantize(high),
        min_portfolio_value=quantize(low),
        current_drawdown_pct=snapshot.current_drawdown,
    )


def import_analytics(trades: Sequence[Trade]) -> ImportAnalytics:
    """Preview numbers for a batch of normalized trades."""
    if not trades:
        return ImportAnalytics()

    closed = [t for t in trades if t.is_closed]
    wins = [t for t in closed if t.is_winner]
    gross_profit = sum((t.pnl for t in wins), ZERO)
    gross_loss = abs(sum((t.pnl for t in closed if t.is_loser), ZERO))
    win_rate = Decimal(len(wins)) / Decimal(len(closed)) * 100 if closed else ZERO

    return ImportAnalytics(
        total_trades=len(trades),
        closed_trades=len(closed),
        open_trades=len(trades) - len(closed),
        total_pnl=quantize(sum((t.pnl for t in closed), ZERO)),
        pairs=sorted({t.pair for t in trades}),
        setups=sorted({t.setup_tag for t in trades if t.setup_tag}),
        date_from=min(t.date for t in trades),
        date_to=max(t.date for t in trades),
        avg_lot_size=quantize(sum((t.lot_size for t in trades), ZERO) / len(trades)),
        win_rate=quantize(win_rate, "0.1"),
        profit_factor=metrics.calculate_profit_factor(gross_profit, gross_loss),
    )
