"""Trade model and the single raw-record normalization path."""

from tradejournal.libraries.trades.models import (
    MAX_NOTES_LENGTH,
    MAX_SETUP_LENGTH,
    Outcome,
    Provenance,
    Trade,
    TradeStatus,
    compute_dedup_hash,
)
from tradejournal.libraries.trades.normalize import (
    DEFAULT_LOT_SIZE,
    REQUIRED_FIELDS,
    apply_patch,
    missing_required_fields,
    normalize_trade,
    trade_to_raw,
)

__all__ = [
    "DEFAULT_LOT_SIZE",
    "MAX_NOTES_LENGTH",
    "MAX_SETUP_LENGTH",
    "Outcome",
    "Provenance",
    "REQUIRED_FIELDS",
    "Trade",
    "TradeStatus",
    "apply_patch",
    "compute_dedup_hash",
    "missing_required_fields",
    "normalize_trade",
    "trade_to_raw",
]
