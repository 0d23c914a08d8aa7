"""Trade entry validation with user-facing messages."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from tradejournal.libraries.calculations.parsing import (
    Direction,
    parse_financial_number,
    raw_field,
    try_parse_trade_date,
)
from tradejournal.libraries.calculations.pnl import match_direction

LARGE_LOT_SIZE = Decimal("100")


@dataclass(frozen=True)
class TradeValidation:
    """
    Outcome of validate_trade.

    Errors block saving the trade; warnings are shown but do not.
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def _poor_rr_warning(risk: Decimal, reward: Decimal) -> str | None:
    if risk <= 0 or reward <= 0:
        return None
    rr = reward / risk
    if rr < 1:
        return f"Poor risk/reward ratio: {rr:.2f}:1 (consider 1:1 minimum)"
    return None


def validate_trade(raw: Mapping[str, Any]) -> TradeValidation:
    """
    Validate a raw trade record before it is saved.

    Structural checks (required fields, positive prices and lots) run
    first, then directional checks for stop and target placement when
    entry, stop and target are all present.

    Args:
        raw: Raw trade mapping (camelCase or snake_case keys)

    Returns:
        TradeValidation with error and warning messages
    """
    errors: list[str] = []
    warnings: list[str] = []

    entry = parse_financial_number(raw_field(raw, "entry"))
    lot_size = parse_financial_number(raw_field(raw, "lot_size"))
    stop_raw = raw_field(raw, "stop_loss")
    target_raw = raw_field(raw, "take_profit")
    stop = parse_financial_number(stop_raw)
    target = parse_financial_number(target_raw)
    direction = raw_field(raw, "direction")

    if not raw_field(raw, "pair"):
        errors.append("Currency pair is required")
    if entry <= 0:
        errors.append("Valid entry price is required")
    if lot_size <= 0:
        errors.append("Valid lot size is required")
    if direction is None:
        errors.append("Trade type is required")

    if stop_raw is not None and stop <= 0:
        errors.append("Invalid stop loss price")
    if target_raw is not None and target <= 0:
        errors.append("Invalid take profit price")

    if entry > 0 and stop > 0 and target > 0:
        side = match_direction(direction)
        if side == Direction.BUY:
            if stop >= entry:
                errors.append("BUY trade: Stop Loss must be below Entry Price")
            if target <= entry:
                errors.append("BUY trade: Take Profit must be above Entry Price")
            warning = _poor_rr_warning(entry - stop, target - entry)
        elif side == Direction.SELL:
            if stop <= entry:
                errors.append("SELL trade: Stop Loss must be above Entry Price")
            if target >= entry:
                errors.append("SELL trade: Take Profit must be below Entry Price")
            warning = _poor_rr_warning(stop - entry, entry - target)
        else:
            warning = None
        if warning:
            warnings.append(warning)

    date_value = raw_field(raw, "date")
    if date_value is not None and try_parse_trade_date(date_value).is_err():
        errors.append("Invalid date format")

    if str(raw_field(raw, "status") or "").lower() == "closed":
        if parse_financial_number(raw_field(raw, "exit")) <= 0:
            errors.append("Closed trade requires valid exit price")

    if lot_size > LARGE_LOT_SIZE:
        warnings.append("Very large lot size - please verify")

    return TradeValidation(is_valid=not errors, errors=errors, warnings=warnings)
