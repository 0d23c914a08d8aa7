"""
Normalization of raw trade records into Trade models.

normalize_trade is the only path from an untyped mapping (form entry, broker
export row, JSON payload) to a Trade. Manual entry, bulk import and the
journal store's raw-record handling all call it, so parsing rules live in
one place.

Rules:
    - pair, entry and date are required
    - exit present => closed, otherwise open
    - zero or blank stop/target/exit mean "not set"
    - missing lot size defaults to 0.01 (micro lot), as broker exports often omit it
    - supplied non-zero P&L is kept as given; otherwise closed trades get calculate_pnl
    - risk/reward is calculated only when both stop and target are set
    - notes and setup are truncated to 500 and 200 characters
    - prices, lot size and P&L must stay below 1e15 in magnitude
"""

from decimal import Decimal
from typing import Any, Mapping
from uuid import uuid4

from pydantic import ValidationError

from tradejournal.libraries.calculations import (
    RAW_FIELD_ALIASES,
    Err,
    ErrorReason,
    Ok,
    Result,
    calculate_pnl,
    calculate_risk_reward,
    raw_field,
    try_parse_direction,
    try_parse_financial_number,
    try_parse_trade_date,
)
from tradejournal.libraries.trades.models import (
    MAX_NOTES_LENGTH,
    MAX_SETUP_LENGTH,
    Provenance,
    Trade,
    TradeStatus,
)

DEFAULT_LOT_SIZE = Decimal("0.01")
REQUIRED_FIELDS = ("pair", "entry", "date")

# Largest magnitude a price, lot size or P&L may carry (persisted numeric range)
MAX_ABS_AMOUNT = Decimal("1e15")


def missing_required_fields(raw: Mapping[str, Any]) -> list[str]:
    """Names of required fields absent from a raw record."""
    return [name for name in REQUIRED_FIELDS if raw_field(raw, name) is None]


def _out_of_range(name: str, value: Decimal) -> Err | None:
    if abs(value) >= MAX_ABS_AMOUNT:
        return Err(ErrorReason.INVALID_NUMBER, f"{name} out of range: {value}")
    return None


def _optional_price(raw: Mapping[str, Any], name: str) -> Result[Decimal | None]:
    value = raw_field(raw, name)
    if value is None:
        return Ok(None)
    parsed = try_parse_financial_number(value)
    if parsed.is_err():
        if parsed.reason == ErrorReason.EMPTY:
            return Ok(None)
        return Err(ErrorReason.INVALID_NUMBER, f"{name}: {parsed.message}")
    price = parsed.unwrap()
    if price == 0:
        return Ok(None)
    if price < 0:
        return Err(ErrorReason.INVALID_NUMBER, f"{name} must be positive, got {price}")
    out_of_range = _out_of_range(name, price)
    if out_of_range is not None:
        return out_of_range
    return Ok(price)


def normalize_trade(
    raw: Mapping[str, Any],
    *,
    provenance: Provenance = Provenance.MANUAL,
    trade_id: str | None = None,
) -> Result[Trade]:
    """
    Turn a raw trade mapping into a Trade.

    Args:
        raw: Raw record (camelCase or snake_case keys, numbers or strings)
        provenance: manual or imported
        trade_id: Id to assign when the record carries none

    Returns:
        Ok(Trade), or Err with one of missing_required_fields, invalid_date,
        invalid_enum, invalid_number or processing_error

    Example:
        >>> result = normalize_trade({"date": "2025-01-02", "pair": "eurusd", "type": "long",
        ...                           "entry": "1.2500", "exit": "1.2580", "lotSize": "1"})
        >>> result.unwrap().pnl
        Decimal('800.00')
    """
    missing = missing_required_fields(raw)
    if missing:
        return Err(ErrorReason.MISSING_REQUIRED_FIELDS, f"missing: {', '.join(missing)}")

    trade_date = try_parse_trade_date(raw_field(raw, "date"))
    if trade_date.is_err():
        return trade_date

    direction = try_parse_direction(raw_field(raw, "direction"))
    if direction.is_err():
        return Err(ErrorReason.INVALID_ENUM, direction.message)

    entry = try_parse_financial_number(raw_field(raw, "entry"))
    if entry.is_err():
        return Err(ErrorReason.INVALID_NUMBER, f"entry: {entry.message}")
    if entry.unwrap() <= 0:
        return Err(ErrorReason.INVALID_NUMBER, f"entry must be positive, got {entry.unwrap()}")
    entry_range = _out_of_range("entry", entry.unwrap())
    if entry_range is not None:
        return entry_range

    lot_value = raw_field(raw, "lot_size")
    if lot_value is None:
        lot_size = DEFAULT_LOT_SIZE
    else:
        parsed_lot = try_parse_financial_number(lot_value)
        if parsed_lot.is_err():
            return Err(ErrorReason.INVALID_NUMBER, f"lot_size: {parsed_lot.message}")
        lot_size = parsed_lot.unwrap()
        if lot_size == 0:
            lot_size = DEFAULT_LOT_SIZE
        elif lot_size < 0:
            return Err(ErrorReason.INVALID_NUMBER, f"lot_size must be positive, got {lot_size}")
        lot_range = _out_of_range("lot_size", lot_size)
        if lot_range is not None:
            return lot_range

    prices: dict[str, Decimal | None] = {}
    for name in ("exit", "stop_loss", "take_profit"):
        price = _optional_price(raw, name)
        if price.is_err():
            return price
        prices[name] = price.unwrap()

    pair = str(raw_field(raw, "pair")).strip().upper()
    exit_price = prices["exit"]
    status = TradeStatus.CLOSED if exit_price is not None else TradeStatus.OPEN

    pnl_value = raw_field(raw, "pnl")
    supplied_pnl = try_parse_financial_number(pnl_value) if pnl_value is not None else None
    pnl_given = supplied_pnl is not None and supplied_pnl.is_ok()
    if pnl_given and (supplied_pnl.unwrap() != 0 or exit_price is None):
        pnl = supplied_pnl.unwrap()
        pnl_range = _out_of_range("pnl", pnl)
        if pnl_range is not None:
            return pnl_range
    elif exit_price is not None:
        pnl = calculate_pnl(entry.unwrap(), exit_price, lot_size, direction.unwrap(), pair)
    else:
        pnl = Decimal("0")

    stop_loss = prices["stop_loss"]
    take_profit = prices["take_profit"]
    risk_reward = None
    if stop_loss is not None and take_profit is not None:
        risk_reward = calculate_risk_reward(entry.unwrap(), stop_loss, take_profit, direction.unwrap())

    try:
        trade = Trade(
            id=str(raw_field(raw, "id") or trade_id or uuid4().hex),
            date=trade_date.unwrap(),
            pair=pair,
            direction=direction.unwrap(),
            entry_price=entry.unwrap(),
            exit_price=exit_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            lot_size=lot_size,
            pnl=pnl,
            status=status,
            risk_reward=risk_reward,
            setup_tag=str(raw_field(raw, "setup") or "")[:MAX_SETUP_LENGTH],
            notes=str(raw_field(raw, "notes") or "")[:MAX_NOTES_LENGTH],
            provenance=provenance,
        )
    except ValidationError as e:
        return Err(ErrorReason.PROCESSING_ERROR, str(e))

    return Ok(trade)


def trade_to_raw(trade: Trade) -> dict[str, Any]:
    """
    Inverse of normalize_trade for export: camelCase keys, string numbers.

    normalize_trade(trade_to_raw(t), provenance=t.provenance) reproduces t.
    """

    def _num(value: Decimal | None) -> str | None:
        return None if value is None else str(value)

    return {
        "id": trade.id,
        "date": trade.date.isoformat(),
        "pair": trade.pair,
        "type": trade.direction.value,
        "entry": _num(trade.entry_price),
        "exit": _num(trade.exit_price),
        "stopLoss": _num(trade.stop_loss),
        "takeProfit": _num(trade.take_profit),
        "lotSize": _num(trade.lot_size),
        "pnl": _num(trade.pnl),
        "status": trade.status.value,
        "rr": _num(trade.risk_reward),
        "setup": trade.setup_tag,
        "notes": trade.notes,
        "provenance": trade.provenance.value,
    }


_PNL_INPUTS = frozenset({"pair", "direction", "entry", "exit", "lot_size"})


def _canonical_name(key: str) -> str | None:
    for name, aliases in RAW_FIELD_ALIASES.items():
        if key in aliases:
            return name
    return None


def apply_patch(trade: Trade, patch: Mapping[str, Any]) -> Result[Trade]:
    """
    Re-normalize a trade with some raw fields replaced.

    Patch keys may use any accepted alias; a None value clears the field.
    Setting status "open" without an exit clears the exit. When the patch
    changes any P&L input and carries no P&L, the P&L is recalculated.
    The id and provenance are preserved.

    Example:
        >>> apply_patch(trade, {"exit": "1.2600"}).unwrap().pnl
        Decimal('1000.00')
    """
    raw = trade_to_raw(trade)
    touched: set[str] = set()
    for key, value in patch.items():
        name = _canonical_name(key)
        if name is None or name == "id":
            continue
        touched.add(name)
        for alias in RAW_FIELD_ALIASES[name]:
            raw.pop(alias, None)
        raw[RAW_FIELD_ALIASES[name][0]] = value

    if "status" in touched and "exit" not in touched:
        if str(patch.get("status", "")).strip().lower() == TradeStatus.OPEN.value:
            raw["exit"] = None
            touched.add("exit")

    if touched & _PNL_INPUTS and "pnl" not in touched:
        raw["pnl"] = None

    return normalize_trade(raw, provenance=trade.provenance, trade_id=trade.id)
