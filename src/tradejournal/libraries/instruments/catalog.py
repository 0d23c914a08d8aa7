"""Lookup helpers over the known instrument table (pair pickers, import hints)."""

from typing import Any

from tradejournal.libraries.instruments.specs import (
    INSTRUMENT_SPECS,
    InstrumentKind,
    InstrumentSpec,
    normalize_symbol,
)


def list_instruments(kind: InstrumentKind | None = None) -> list[str]:
    """Known symbols, alphabetically, optionally restricted to one asset class."""
    return sorted(symbol for symbol, spec in INSTRUMENT_SPECS.items() if kind is None or spec.kind == kind)


def is_supported(symbol: Any) -> bool:
    """True when the symbol has an exact entry in the instrument table."""
    return normalize_symbol(symbol) in INSTRUMENT_SPECS


def get_instrument_info(symbol: Any) -> InstrumentSpec | None:
    """Exact-match spec for a symbol, or None (no fuzzy fallback)."""
    return INSTRUMENT_SPECS.get(normalize_symbol(symbol))


def search_instruments(query: str, limit: int = 10) -> list[str]:
    """
    Search known symbols by substring.

    Prefix matches rank ahead of inner matches; ties are alphabetical.

    Example:
        >>> search_instruments("jpy", limit=3)
        ['AUDJPY', 'CADJPY', 'CHFJPY']
    """
    needle = normalize_symbol(query)
    if not needle or limit <= 0:
        return []

    prefix = sorted(s for s in INSTRUMENT_SPECS if s.startswith(needle))
    inner = sorted(s for s in INSTRUMENT_SPECS if needle in s and not s.startswith(needle))
    return (prefix + inner)[:limit]
