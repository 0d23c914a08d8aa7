"""Tests for raw trade normalization, export and patching."""

from datetime import date
from decimal import Decimal

import pytest

from tradejournal.libraries.calculations import Direction, ErrorReason
from tradejournal.libraries.trades import (
    DEFAULT_LOT_SIZE,
    Outcome,
    Provenance,
    TradeStatus,
    apply_patch,
    compute_dedup_hash,
    missing_required_fields,
    normalize_trade,
    trade_to_raw,
)


class TestNormalizeTrade:
    """Test normalize_trade."""

    def test_closed_trade_gets_calculated_pnl(self, raw_eurusd_win) -> None:
        """Closed trade gets calculated P&L."""
        trade = normalize_trade(raw_eurusd_win).unwrap()
        assert trade.pair == "EURUSD"
        assert trade.direction == Direction.BUY
        assert trade.status == TradeStatus.CLOSED
        assert trade.pnl == Decimal("800.00")
        assert trade.outcome == Outcome.WIN
        assert trade.provenance == Provenance.MANUAL

    def test_open_trade_without_exit(self, raw_eurusd_win) -> None:
        """Open trade without exit."""
        raw = {**raw_eurusd_win, "exit": ""}
        trade = normalize_trade(raw).unwrap()
        assert trade.status == TradeStatus.OPEN
        assert trade.exit_price is None
        assert trade.pnl == Decimal("0")

    def test_supplied_pnl_is_kept(self, raw_eurusd_win) -> None:
        """Supplied P&L is kept."""
        trade = normalize_trade({**raw_eurusd_win, "pnl": "-12.50"}).unwrap()
        assert trade.pnl == Decimal("-12.50")

    def test_zero_pnl_on_closed_trade_is_recalculated(self, raw_eurusd_win) -> None:
        """Zero P&L on closed trade is recalculated."""
        trade = normalize_trade({**raw_eurusd_win, "pnl": "0"}).unwrap()
        assert trade.pnl == Decimal("800.00")

    def test_missing_lot_size_defaults_to_micro_lot(self, raw_eurusd_win) -> None:
        """Missing lot size defaults to micro lot."""
        raw = dict(raw_eurusd_win)
        del raw["lotSize"]
        trade = normalize_trade(raw).unwrap()
        assert trade.lot_size == DEFAULT_LOT_SIZE
        assert trade.pnl == Decimal("8.00")

    def test_risk_reward_needs_stop_and_target(self, raw_eurusd_win) -> None:
        """Risk reward needs stop and target."""
        with_both = normalize_trade({**raw_eurusd_win, "stopLoss": "1.2450", "takeProfit": "1.2600"}).unwrap()
        assert with_both.risk_reward == Decimal("2.00")
        stop_only = normalize_trade({**raw_eurusd_win, "stopLoss": "1.2450"}).unwrap()
        assert stop_only.risk_reward is None
        assert stop_only.has_stop and not stop_only.has_target

    def test_zero_stop_means_not_set(self, raw_eurusd_win) -> None:
        """Zero stop means not set."""
        trade = normalize_trade({**raw_eurusd_win, "stopLoss": "0"}).unwrap()
        assert trade.stop_loss is None

    def test_snake_case_keys(self) -> None:
        """Snake case keys."""
        raw = {
            "trade_date": "03/01/2025",
            "symbol": "xauusd",
            "side": "short",
            "entry_price": 2010,
            "exit_price": 2000,
            "lot_size": 1,
        }
        trade = normalize_trade(raw, provenance=Provenance.IMPORTED).unwrap()
        assert trade.date == date(2025, 1, 3)
        assert trade.pnl == Decimal("1000.00")
        assert trade.provenance == Provenance.IMPORTED

    def test_notes_and_setup_truncated(self, raw_eurusd_win) -> None:
        """Notes and setup truncated."""
        trade = normalize_trade({**raw_eurusd_win, "notes": "n" * 600, "setup": "s" * 300}).unwrap()
        assert len(trade.notes) == 500
        assert len(trade.setup_tag) == 200

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"pair": ""}, ErrorReason.MISSING_REQUIRED_FIELDS),
            ({"entry": None}, ErrorReason.MISSING_REQUIRED_FIELDS),
            ({"date": "not a date"}, ErrorReason.INVALID_DATE),
            ({"type": "hold"}, ErrorReason.INVALID_ENUM),
            ({"type": None}, ErrorReason.INVALID_ENUM),
            ({"entry": "abc"}, ErrorReason.INVALID_NUMBER),
            ({"entry": "-1"}, ErrorReason.INVALID_NUMBER),
            ({"lotSize": "-2"}, ErrorReason.INVALID_NUMBER),
            ({"exit": "x"}, ErrorReason.INVALID_NUMBER),
            ({"pnl": "1e27"}, ErrorReason.INVALID_NUMBER),
            ({"pnl": "-1e15"}, ErrorReason.INVALID_NUMBER),
            ({"entry": "1e16"}, ErrorReason.INVALID_NUMBER),
            ({"exit": "1e15"}, ErrorReason.INVALID_NUMBER),
            ({"lotSize": "1e20"}, ErrorReason.INVALID_NUMBER),
        ],
    )
    def test_rejections(self, raw_eurusd_win, overrides, reason) -> None:
        """Rejections."""
        result = normalize_trade({**raw_eurusd_win, **overrides})
        assert result.is_err()
        assert result.reason == reason

    def test_missing_required_fields_lists_names(self) -> None:
        """Missing required fields lists names."""
        assert missing_required_fields({"pair": "EURUSD"}) == ["entry", "date"]

    def test_large_but_in_range_pnl_is_kept(self, raw_eurusd_win) -> None:
        """P&L just below the persisted numeric range is accepted as given."""
        trade = normalize_trade({**raw_eurusd_win, "pnl": "999999999999999"}).unwrap()
        assert trade.pnl == Decimal("999999999999999")

    def test_out_of_range_message_names_field(self, raw_eurusd_win) -> None:
        """Out-of-range values are reported with the offending field."""
        result = normalize_trade({**raw_eurusd_win, "pnl": "1e27"})
        assert result.message.startswith("pnl out of range")

    def test_explicit_id_is_used(self, raw_eurusd_win) -> None:
        """Explicit id is used."""
        assert normalize_trade({**raw_eurusd_win, "id": "abc"}).unwrap().id == "abc"
        assert normalize_trade(raw_eurusd_win, trade_id="xyz").unwrap().id == "xyz"


class TestDedupHash:
    """Test compute_dedup_hash."""

    def test_trailing_zeros_hash_identically(self) -> None:
        """Trailing zeros hash identically."""
        args = (date(2025, 1, 2), "EURUSD", Direction.BUY)
        a = compute_dedup_hash(*args, Decimal("1.2500"), Decimal("1"), None)
        b = compute_dedup_hash(*args, Decimal("1.25"), Decimal("1.0"), None)
        assert a == b
        assert len(a) == 16

    def test_exit_changes_hash(self, raw_eurusd_win) -> None:
        """Exit changes hash."""
        closed = normalize_trade(raw_eurusd_win).unwrap()
        opened = normalize_trade({**raw_eurusd_win, "exit": None}).unwrap()
        assert closed.dedup_hash != opened.dedup_hash


class TestTradeToRawAndPatch:
    """Test trade_to_raw and apply_patch."""

    def test_round_trip(self, raw_eurusd_win) -> None:
        """Round trip."""
        trade = normalize_trade({**raw_eurusd_win, "stopLoss": "1.245", "notes": "clean"}).unwrap()
        again = normalize_trade(trade_to_raw(trade), provenance=trade.provenance).unwrap()
        assert again == trade

    def test_patch_exit_recalculates_pnl(self, raw_eurusd_win) -> None:
        """Patch exit recalculates P&L."""
        trade = normalize_trade(raw_eurusd_win).unwrap()
        patched = apply_patch(trade, {"exit": "1.2600"}).unwrap()
        assert patched.pnl == Decimal("1000.00")
        assert patched.id == trade.id

    def test_patch_notes_keeps_pnl(self, raw_eurusd_win) -> None:
        """Patch notes keeps P&L."""
        trade = normalize_trade({**raw_eurusd_win, "pnl": "750"}).unwrap()
        patched = apply_patch(trade, {"notes": "late entry"}).unwrap()
        assert patched.pnl == Decimal("750")
        assert patched.notes == "late entry"

    def test_reopen_clears_exit_and_pnl(self, raw_eurusd_win) -> None:
        """Reopen clears exit and P&L."""
        trade = normalize_trade(raw_eurusd_win).unwrap()
        reopened = apply_patch(trade, {"status": "open"}).unwrap()
        assert reopened.status == TradeStatus.OPEN
        assert reopened.exit_price is None
        assert reopened.pnl == Decimal("0")

    def test_patch_id_is_ignored(self, raw_eurusd_win) -> None:
        """Patch id is ignored."""
        trade = normalize_trade(raw_eurusd_win).unwrap()
        assert apply_patch(trade, {"id": "other"}).unwrap().id == trade.id

    def test_invalid_patch_is_err(self, raw_eurusd_win) -> None:
        """Invalid patch is err."""
        trade = normalize_trade(raw_eurusd_win).unwrap()
        assert apply_patch(trade, {"entry": "abc"}).reason == ErrorReason.INVALID_NUMBER
