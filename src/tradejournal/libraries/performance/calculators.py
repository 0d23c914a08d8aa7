"""Stateful performance calculators fed one trade at a time.

The aggregator walks the chronologically sorted trades once and feeds each
calculator. Calculators that depend on order (drawdown, streaks) must be fed
in (date, id) order.

Usage:
    >>> from tradejournal.libraries.performance.calculators import DrawdownCalculator
    >>> from datetime import date
    >>> from decimal import Decimal
    >>>
    >>> calc = DrawdownCalculator(Decimal("10000"))
    >>> calc.update(date(2025, 1, 1), Decimal("100"))
    >>> calc.update(date(2025, 1, 2), Decimal("-200"))
    >>> calc.max_drawdown_pct
    Decimal('1.98')
"""

import datetime
from collections.abc import Callable
from decimal import Decimal

from tradejournal.libraries.performance.metrics import ZERO, calculate_win_rate, quantize
from tradejournal.libraries.performance.models import BreakdownRow, DrawdownPoint, PeriodBucket
from tradejournal.libraries.trades import Trade


class DrawdownCalculator:
    """
    Tracks running balance, peak and drawdown percentage.

    Starts from the account balance (recorded as the initial, undated
    point). Each closed trade's P&L moves the balance; the peak is the
    highest balance seen so far, and drawdown% = (peak - balance) / peak x 100.
    """

    def __init__(self, starting_balance: Decimal) -> None:
        self._balance = starting_balance
        self._peak = starting_balance
        self._max_drawdown_pct = Decimal("0.00")
        self._current_drawdown_pct = Decimal("0.00")
        self._series: list[DrawdownPoint] = [
            DrawdownPoint(date=None, balance=starting_balance, drawdown_pct=Decimal("0.00"), peak=starting_balance)
        ]

    def update(self, date: datetime.date, pnl: Decimal) -> None:
        """
        Apply one closed trade's P&L.

        Args:
            date: Trade date
            pnl: Realized P&L
        """
        self._balance += pnl
        if self._balance > self._peak:
            self._peak = self._balance

        if self._peak > ZERO:
            drawdown = quantize((self._peak - self._balance) / self._peak * Decimal("100"))
        else:
            drawdown = Decimal("0.00")

        self._current_drawdown_pct = drawdown
        if drawdown > self._max_drawdown_pct:
            self._max_drawdown_pct = drawdown

        self._series.append(DrawdownPoint(date=date, balance=self._balance, drawdown_pct=drawdown, peak=self._peak))

    @property
    def balance(self) -> Decimal:
        """Current running balance."""
        return self._balance

    @property
    def peak(self) -> Decimal:
        """Highest balance seen."""
        return self._peak

    @property
    def max_drawdown_pct(self) -> Decimal:
        """Maximum drawdown percentage observed."""
        return self._max_drawdown_pct

    @property
    def current_drawdown_pct(self) -> Decimal:
        """Drawdown percentage after the last update."""
        return self._current_drawdown_pct

    @property
    def series(self) -> list[DrawdownPoint]:
        """Full drawdown series, initial point first."""
        return self._series.copy()


class StreakCalculator:
    """
    Win/loss streak tracking.

    A win extends the win streak and resets the loss streak, and vice versa.
    A zero-P&L trade breaks both.
    """

    def __init__(self) -> None:
        self._win_streak = 0
        self._loss_streak = 0
        self._max_win_streak = 0
        self._max_loss_streak = 0

    def update(self, pnl: Decimal) -> None:
        if pnl > ZERO:
            self._win_streak += 1
            self._loss_streak = 0
            self._max_win_streak = max(self._max_win_streak, self._win_streak)
        elif pnl < ZERO:
            self._loss_streak += 1
            self._win_streak = 0
            self._max_loss_streak = max(self._max_loss_streak, self._loss_streak)
        else:
            self._win_streak = 0
            self._loss_streak = 0

    @property
    def max_win_streak(self) -> int:
        return self._max_win_streak

    @property
    def max_loss_streak(self) -> int:
        return self._max_loss_streak

    @property
    def current_streak(self) -> int:
        """Signed current streak: +n consecutive wins or -n consecutive losses."""
        if self._win_streak:
            return self._win_streak
        return -self._loss_streak


class _BreakdownAccumulator:
    def __init__(self, key: str) -> None:
        self.key = key
        self.total_trades = 0
        self.wins = 0
        self.losses = 0
        self.total_pnl = ZERO
        self.best_trade = ZERO
        self.worst_trade = ZERO
        self.lot_total = ZERO
        self.rr_values: list[Decimal] = []

    def add(self, trade: Trade) -> None:
        self.total_trades += 1
        self.total_pnl += trade.pnl
        self.lot_total += trade.lot_size
        self.best_trade = max(self.best_trade, trade.pnl)
        self.worst_trade = min(self.worst_trade, trade.pnl)
        if trade.risk_reward is not None:
            self.rr_values.append(trade.risk_reward)
        if trade.is_closed:
            if trade.is_winner:
                self.wins += 1
            elif trade.is_loser:
                self.losses += 1

    def to_row(self) -> BreakdownRow:
        decided = self.wins + self.losses
        avg_rr = sum(self.rr_values, ZERO) / len(self.rr_values) if self.rr_values else ZERO
        return BreakdownRow(
            key=self.key,
            total_trades=self.total_trades,
            wins=self.wins,
            losses=self.losses,
            total_pnl=quantize(self.total_pnl),
            win_rate=calculate_win_rate(self.wins, decided),
            avg_pnl=quantize(self.total_pnl / self.total_trades),
            best_trade=quantize(self.best_trade),
            worst_trade=quantize(self.worst_trade),
            avg_lot_size=quantize(self.lot_total / self.total_trades, "0.001"),
            avg_risk_reward=quantize(avg_rr),
        )


class BreakdownCalculator:
    """
    Groups trades by a key (pair, setup tag) and summarizes each group.

    Includes open trades in totals; wins/losses and win rate count closed
    trades only (breakeven excluded from the win-rate denominator).
    Rows are sorted by total P&L descending.
    """

    def __init__(self, key_fn: Callable[[Trade], str]) -> None:
        self._key_fn = key_fn
        self._groups: dict[str, _BreakdownAccumulator] = {}

    def add(self, trade: Trade) -> None:
        key = self._key_fn(trade)
        group = self._groups.get(key)
        if group is None:
            group = self._groups[key] = _BreakdownAccumulator(key)
        group.add(trade)

    def rows(self) -> list[BreakdownRow]:
        rows = [group.to_row() for group in self._groups.values()]
        return sorted(rows, key=lambda row: (-row.total_pnl, row.key))


class PeriodBucketCalculator:
    """
    Buckets closed trades by calendar period.

    Periods: "monthly" keys as YYYY-MM, "daily" as YYYY-MM-DD. Buckets are
    returned in chronological order.
    """

    def __init__(self, period_type: str) -> None:
        if period_type not in ("monthly", "daily"):
            raise ValueError(f"Invalid period_type: {period_type}")
        self._period_type = period_type
        self._buckets: dict[str, dict] = {}

    def _period_key(self, date: datetime.date) -> str:
        if self._period_type == "monthly":
            return date.strftime("%Y-%m")
        return date.isoformat()

    def add(self, trade: Trade) -> None:
        key = self._period_key(trade.date)
        bucket = self._buckets.setdefault(key, {"trades": 0, "pnl": ZERO, "wins": 0, "losses": 0})
        bucket["trades"] += 1
        bucket["pnl"] += trade.pnl
        if trade.is_winner:
            bucket["wins"] += 1
        elif trade.is_loser:
            bucket["losses"] += 1

    def buckets(self) -> list[PeriodBucket]:
        return [
            PeriodBucket(
                key=key,
                trades=data["trades"],
                pnl=quantize(data["pnl"]),
                wins=data["wins"],
                losses=data["losses"],
                win_rate=calculate_win_rate(data["wins"], data["wins"] + data["losses"]),
            )
            for key, data in sorted(self._buckets.items())
        ]
