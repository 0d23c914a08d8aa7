"""Instrument conventions: pip size, contract size and asset class per symbol."""

from tradejournal.libraries.instruments.catalog import (
    get_instrument_info,
    is_supported,
    list_instruments,
    search_instruments,
)
from tradejournal.libraries.instruments.specs import (
    DEFAULT_SPEC,
    INSTRUMENT_SPECS,
    InstrumentKind,
    InstrumentSpec,
    is_usd_base_pair,
    normalize_symbol,
    resolve_instrument,
)

__all__ = [
    "DEFAULT_SPEC",
    "INSTRUMENT_SPECS",
    "InstrumentKind",
    "InstrumentSpec",
    "get_instrument_info",
    "is_supported",
    "is_usd_base_pair",
    "list_instruments",
    "normalize_symbol",
    "resolve_instrument",
    "search_instruments",
]
