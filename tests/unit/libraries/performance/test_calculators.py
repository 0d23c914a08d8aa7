"""Unit tests for performance calculators.

Tests DrawdownCalculator, StreakCalculator, BreakdownCalculator and
PeriodBucketCalculator classes.
"""

from datetime import date
from decimal import Decimal

import pytest

from tradejournal.libraries.performance import (
    BreakdownCalculator,
    DrawdownCalculator,
    PeriodBucketCalculator,
    StreakCalculator,
)


class TestDrawdownCalculator:
    """Test DrawdownCalculator functionality."""

    @pytest.fixture
    def calculator(self) -> DrawdownCalculator:
        return DrawdownCalculator(Decimal("10000"))

    def test_initial_point(self, calculator) -> None:
        """Initial point."""
        series = calculator.series
        assert len(series) == 1
        assert series[0].date is None
        assert series[0].balance == Decimal("10000")
        assert calculator.max_drawdown_pct == Decimal("0.00")

    def test_peak_and_drawdown(self, calculator) -> None:
        """Peak and drawdown."""
        calculator.update(date(2025, 1, 2), Decimal("100"))
        calculator.update(date(2025, 1, 3), Decimal("-200"))
        calculator.update(date(2025, 1, 6), Decimal("150"))

        assert calculator.balance == Decimal("10050")
        assert calculator.peak == Decimal("10100")
        assert calculator.max_drawdown_pct == Decimal("1.98")
        assert calculator.current_drawdown_pct == Decimal("0.50")
        assert [p.peak for p in calculator.series] == [Decimal(v) for v in ("10000", "10100", "10100", "10100")]

    def test_new_high_resets_current_drawdown(self, calculator) -> None:
        """New high resets current drawdown."""
        calculator.update(date(2025, 1, 2), Decimal("-500"))
        calculator.update(date(2025, 1, 3), Decimal("700"))
        assert calculator.current_drawdown_pct == Decimal("0.00")
        assert calculator.max_drawdown_pct == Decimal("5.00")

    def test_series_is_a_copy(self, calculator) -> None:
        """Series is a copy."""
        calculator.series.clear()
        assert len(calculator.series) == 1

    def test_zero_peak(self) -> None:
        """Zero peak."""
        calculator = DrawdownCalculator(Decimal("0"))
        calculator.update(date(2025, 1, 2), Decimal("-50"))
        assert calculator.max_drawdown_pct == Decimal("0.00")


class TestStreakCalculator:
    """Test StreakCalculator functionality."""

    def test_streaks(self) -> None:
        """Streaks."""
        calculator = StreakCalculator()
        for pnl in ("10", "20", "-5", "30", "40", "50", "-1", "-2"):
            calculator.update(Decimal(pnl))

        assert calculator.max_win_streak == 3
        assert calculator.max_loss_streak == 2
        assert calculator.current_streak == -2

    def test_breakeven_breaks_both(self) -> None:
        """Breakeven breaks both."""
        calculator = StreakCalculator()
        calculator.update(Decimal("10"))
        calculator.update(Decimal("0"))
        assert calculator.current_streak == 0
        calculator.update(Decimal("10"))
        assert calculator.max_win_streak == 1


class TestBreakdownCalculator:
    """Test BreakdownCalculator functionality."""

    def test_groups_sorted_by_total_pnl(self, make_trade) -> None:
        """Groups sorted by total P&L."""
        calculator = BreakdownCalculator(lambda trade: trade.pair)
        calculator.add(make_trade(id="a", pair="EURUSD", pnl="100", risk_reward="2"))
        calculator.add(make_trade(id="b", pair="EURUSD", pnl="-40"))
        calculator.add(make_trade(id="c", pair="XAUUSD", pnl="300", lot_size="0.5"))
        calculator.add(make_trade(id="d", pair="EURUSD", exit=None))

        xau, eur = calculator.rows()
        assert xau.key == "XAUUSD"
        assert eur.total_trades == 3
        assert (eur.wins, eur.losses) == (1, 1)
        assert eur.win_rate == Decimal("50.00")
        assert eur.total_pnl == Decimal("60.00")
        assert eur.avg_pnl == Decimal("20.00")
        assert eur.best_trade == Decimal("100.00")
        assert eur.worst_trade == Decimal("-40.00")
        # only trades with an R:R count towards the average
        assert eur.avg_risk_reward == Decimal("2.00")
        assert xau.avg_lot_size == Decimal("0.500")

    def test_ties_sorted_by_key(self, make_trade) -> None:
        """Ties sorted by key."""
        calculator = BreakdownCalculator(lambda trade: trade.setup_tag)
        calculator.add(make_trade(id="a", setup="b-side", pnl="10"))
        calculator.add(make_trade(id="b", setup="a-side", pnl="10"))
        assert [row.key for row in calculator.rows()] == ["a-side", "b-side"]


class TestPeriodBucketCalculator:
    """Test PeriodBucketCalculator functionality."""

    def test_invalid_period(self) -> None:
        """Invalid period."""
        with pytest.raises(ValueError, match="Invalid period_type"):
            PeriodBucketCalculator("weekly")

    def test_monthly(self, make_trade) -> None:
        """Monthly."""
        calculator = PeriodBucketCalculator("monthly")
        calculator.add(make_trade(id="a", date="2025-02-03", pnl="50"))
        calculator.add(make_trade(id="b", date="2025-01-30", pnl="-20"))
        calculator.add(make_trade(id="c", date="2025-01-02", pnl="80"))

        january, february = calculator.buckets()
        assert january.key == "2025-01"
        assert january.trades == 2
        assert january.pnl == Decimal("60.00")
        assert january.win_rate == Decimal("50.00")
        assert february.key == "2025-02"

    def test_daily_keys(self, make_trade) -> None:
        """Daily keys."""
        calculator = PeriodBucketCalculator("daily")
        calculator.add(make_trade(date="2025-01-02", pnl="0"))
        (bucket,) = calculator.buckets()
        assert bucket.key == "2025-01-02"
        assert (bucket.wins, bucket.losses) == (0, 0)
        assert bucket.win_rate == Decimal("0.00")
