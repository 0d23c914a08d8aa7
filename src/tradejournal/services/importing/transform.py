"""
Trade <-> persistence record conversion.

Persisted rows follow contracts/schemas/trade_record.v1.json: snake_case
keys, numbers as floats, ISO dates. Every outgoing record is validated
against that contract before it reaches a backend.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

import jsonschema

from tradejournal.events.events import load_and_compile_schema
from tradejournal.libraries.calculations import Err, ErrorReason, Ok, Result
from tradejournal.libraries.trades import Provenance, Trade, normalize_trade

TRADE_RECORD_SCHEMA = "trade_record.v1.json"


def _float(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def transform_for_persistence(trade: Trade, user_id: str) -> Result[dict[str, Any]]:
    """
    Build the persisted row for a trade.

    Returns:
        Ok(record), or Err(processing_error) when the record violates the
        trade_record.v1 contract
    """
    record = {
        "id": trade.id,
        "user_id": user_id,
        "date": trade.date.isoformat(),
        "pair": trade.pair,
        "type": trade.direction.value,
        "entry": float(trade.entry_price),
        "exit": _float(trade.exit_price),
        "stop_loss": _float(trade.stop_loss),
        "take_profit": _float(trade.take_profit),
        "lot_size": float(trade.lot_size),
        "pnl": float(trade.pnl),
        "status": trade.status.value,
        "notes": trade.notes,
        "setup": trade.setup_tag,
        "rr": _float(trade.risk_reward),
        "outcome": trade.outcome.value,
        "trade_hash": trade.dedup_hash,
        "provenance": trade.provenance.value,
    }
    try:
        load_and_compile_schema(TRADE_RECORD_SCHEMA).validate(record)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.path) or "<root>"
        return Err(ErrorReason.PROCESSING_ERROR, f"{path}: {e.message}")
    return Ok(record)


def record_to_trade(record: Mapping[str, Any]) -> Result[Trade]:
    """Read a persisted row back into a Trade (provenance defaults to imported)."""
    provenance = record.get("provenance") or Provenance.IMPORTED.value
    try:
        parsed = Provenance(provenance)
    except ValueError:
        return Err(ErrorReason.INVALID_ENUM, f"unknown provenance: {provenance}")
    return normalize_trade(record, provenance=parsed)
