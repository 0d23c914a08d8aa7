"""Tests for financial number, date and direction parsing."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from tradejournal.libraries.calculations import (
    Direction,
    ErrorReason,
    parse_financial_number,
    pick_field,
    raw_field,
    try_parse_direction,
    try_parse_financial_number,
    try_parse_trade_date,
)


class TestParseFinancialNumber:
    """Test parse_financial_number / try_parse_financial_number."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("$1,234.50", Decimal("1234.50")),
            ("1.234,50", Decimal("1234.50")),
            ("1,234,567", Decimal("1234567")),
            ("1.234.567", Decimal("1234567")),
            ("1,5", Decimal("1.5")),
            ("€ 99.90", Decimal("99.90")),
            ("(45.00)", Decimal("-45.00")),
            ("12.5%", Decimal("0.125")),
            ("-3", Decimal("-3")),
            (7, Decimal("7")),
            (1.25, Decimal("1.25")),
            (Decimal("2.5"), Decimal("2.5")),
        ],
    )
    def test_valid_inputs(self, value, expected) -> None:
        """Formatted strings and numbers parse to the same Decimal."""
        assert try_parse_financial_number(value).unwrap() == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "N/A", "-", "null"])
    def test_empty_inputs(self, value) -> None:
        """Blank markers are EMPTY, not invalid."""
        result = try_parse_financial_number(value)
        assert result.is_err()
        assert result.reason == ErrorReason.EMPTY

    @pytest.mark.parametrize("value", ["abc", "1,2,3", True, float("nan"), "1.2.3"])
    def test_invalid_inputs(self, value) -> None:
        """Garbage and ambiguous separators are INVALID_NUMBER."""
        result = try_parse_financial_number(value)
        assert result.is_err()
        assert result.reason == ErrorReason.INVALID_NUMBER

    def test_plain_variant_returns_zero_on_bad_input(self) -> None:
        """parse_financial_number never raises."""
        assert parse_financial_number("garbage") == Decimal("0")
        assert parse_financial_number(None) == Decimal("0")


class TestParseTradeDate:
    """Test try_parse_trade_date."""

    @pytest.mark.parametrize(
        "value",
        ["2025-03-15", "2025-03-15T10:30:00Z", "15.03.2025", "15/03/2025", "2025/03/15"],
    )
    def test_accepted_formats(self, value) -> None:
        """Accepted formats."""
        assert try_parse_trade_date(value).unwrap() == date(2025, 3, 15)

    def test_datetime_object_drops_time(self) -> None:
        """Datetime object drops time."""
        assert try_parse_trade_date(datetime(2025, 3, 15, 23, 59)).unwrap() == date(2025, 3, 15)

    @pytest.mark.parametrize("value", ["yesterday", "31/02/2025", "2025-13-01"])
    def test_invalid_dates(self, value) -> None:
        """Invalid dates."""
        result = try_parse_trade_date(value)
        assert result.is_err()
        assert result.reason == ErrorReason.INVALID_DATE

    def test_missing_date_is_empty(self) -> None:
        """Missing date is empty."""
        assert try_parse_trade_date(None).reason == ErrorReason.EMPTY


class TestParseDirection:
    """Test try_parse_direction."""

    @pytest.mark.parametrize("value", ["buy", "BUY", "long", "b", "0"])
    def test_buy_aliases(self, value) -> None:
        """Buy aliases."""
        assert try_parse_direction(value).unwrap() == Direction.BUY

    @pytest.mark.parametrize("value", ["sell", "Short", "s", "1"])
    def test_sell_aliases(self, value) -> None:
        """Sell aliases."""
        assert try_parse_direction(value).unwrap() == Direction.SELL

    def test_unknown_direction(self) -> None:
        """Unknown direction."""
        result = try_parse_direction("hold")
        assert result.is_err()
        assert result.reason == ErrorReason.INVALID_ENUM

    def test_blank_direction(self) -> None:
        """Blank direction."""
        assert try_parse_direction(" ").reason == ErrorReason.EMPTY


class TestFieldAliases:
    """Test raw_field / pick_field alias lookup."""

    def test_camel_and_snake_case_keys(self) -> None:
        """Camel and snake case keys."""
        assert raw_field({"stopLoss": "1.2"}, "stop_loss") == "1.2"
        assert raw_field({"stop_loss": "1.3"}, "stop_loss") == "1.3"

    def test_blank_values_are_skipped(self) -> None:
        """Blank values are skipped."""
        assert pick_field({"a": "  ", "b": "x"}, "a", "b") == "x"
        assert pick_field({"a": None}, "a") is None
