"""Tests for the Worth Score."""

from decimal import Decimal

import pytest

from tradejournal.libraries.performance import (
    WORTH_WEIGHTS,
    WorthComponents,
    calculate_worth_components,
    calculate_worth_score,
    grade_for,
)


class TestGrades:
    """Test grade_for thresholds."""

    @pytest.mark.parametrize(
        "score, grade, label",
        [
            ("95", "A+", "Elite Trader"),
            ("90", "A+", "Elite Trader"),
            ("84.5", "A", "Professional"),
            ("70", "B+", "Advanced"),
            ("65", "B", "Competent"),
            ("50", "C+", "Developing"),
            ("40", "C", "Needs Work"),
            ("39.99", "D", "Beginner"),
        ],
    )
    def test_thresholds(self, score, grade, label) -> None:
        """Thresholds."""
        assert grade_for(Decimal(score)) == (grade, label)


class TestWorthScore:
    """Test component calculation and blending."""

    def test_weights_sum_to_hundred(self) -> None:
        """Weights sum to hundred."""
        assert sum(WORTH_WEIGHTS.values()) == Decimal("100")

    def test_perfect_components(self) -> None:
        """Perfect components."""
        components = WorthComponents(**{name: Decimal("100") for name in WORTH_WEIGHTS})
        score = calculate_worth_score(components)
        assert score.score == Decimal("100.00")
        assert score.grade == "A+"

    def test_components(self) -> None:
        """Components."""
        components = calculate_worth_components(
            win_rate=Decimal("60"),
            profit_factor=Decimal("1.5"),
            avg_risk_reward=Decimal("3"),
            max_drawdown_pct=Decimal("10"),
            max_loss_streak=3,
            closed_trades=10,
            trades_with_stop_and_target=8,
            active_days=5,
            positive_days=4,
        )
        assert components.win_rate == Decimal("60.00")
        assert components.profit_factor == Decimal("50.00")
        assert components.risk_management == Decimal("75.00")
        assert components.consistency == Decimal("65.00")
        assert components.discipline == Decimal("80.00")
        assert components.market_timing == Decimal("80.00")

    def test_consistency_floors_at_zero(self) -> None:
        """Consistency floors at zero."""
        components = calculate_worth_components(
            win_rate=Decimal("0"),
            profit_factor=Decimal("0"),
            avg_risk_reward=Decimal("0"),
            max_drawdown_pct=Decimal("80"),
            max_loss_streak=20,
            closed_trades=0,
            trades_with_stop_and_target=0,
            active_days=0,
            positive_days=0,
        )
        assert components.consistency == Decimal("0.00")
        assert components.discipline == Decimal("0.00")
        assert calculate_worth_score(components).grade == "D"
