"""
Instrument specification resolver.

Maps any user-supplied symbol to its pip size and contract size. Resolution
never fails: symbols that match nothing fall back to the 4-decimal major
forex spec.

Resolution order (first match wins):
    1. Exact table match on the normalized symbol
    2. Substring rules, in priority order: GOLD/XAU, SILVER/XAG,
       BTC/BITCOIN, ETH, OIL/CRUDE
    3. Contains "JPY" -> 2-decimal forex
    4. Default 4-decimal major forex

Usage:
    >>> from tradejournal.libraries.instruments import resolve_instrument
    >>> resolve_instrument("eur/usd").pip_value
    Decimal('0.0001')
    >>> resolve_instrument("XAUUSD.m").contract_size
    Decimal('100')
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class InstrumentKind(str, Enum):
    """Asset class of an instrument, drives the P&L formula."""

    FOREX = "forex"
    METAL = "metal"
    CRYPTO = "crypto"
    INDEX = "index"
    ENERGY = "energy"


@dataclass(frozen=True)
class InstrumentSpec:
    """
    Pip and contract conventions for one instrument.

    Attributes:
        pip_value: Smallest standardized price increment
        pip_position: Decimal places of the pip
        contract_size: Units represented by one lot
        kind: Asset class
    """

    pip_value: Decimal
    pip_position: int
    contract_size: Decimal
    kind: InstrumentKind = InstrumentKind.FOREX

    def __post_init__(self) -> None:
        if self.pip_value <= 0:
            raise ValueError(f"pip_value must be positive, got {self.pip_value}")
        if self.pip_position < 0:
            raise ValueError(f"pip_position must be non-negative, got {self.pip_position}")
        if self.contract_size <= 0:
            raise ValueError(f"contract_size must be positive, got {self.contract_size}")


def _spec(pip_value: str, pip_position: int, contract_size: str, kind: InstrumentKind) -> InstrumentSpec:
    return InstrumentSpec(Decimal(pip_value), pip_position, Decimal(contract_size), kind)


FOREX_SPEC = _spec("0.0001", 4, "100000", InstrumentKind.FOREX)
JPY_SPEC = _spec("0.01", 2, "100000", InstrumentKind.FOREX)
GOLD_SPEC = _spec("0.01", 2, "100", InstrumentKind.METAL)
SILVER_SPEC = _spec("0.001", 3, "5000", InstrumentKind.METAL)
BTC_SPEC = _spec("1", 0, "1", InstrumentKind.CRYPTO)
ETH_SPEC = _spec("0.01", 2, "1", InstrumentKind.CRYPTO)
CRUDE_SPEC = _spec("0.01", 2, "1000", InstrumentKind.ENERGY)

DEFAULT_SPEC = FOREX_SPEC

_FOREX_MAJORS_AND_CROSSES = (
    "EURUSD",
    "GBPUSD",
    "AUDUSD",
    "NZDUSD",
    "USDCAD",
    "USDCHF",
    "EURGBP",
    "EURAUD",
    "EURCAD",
    "EURCHF",
    "EURNZD",
    "GBPAUD",
    "GBPCAD",
    "GBPCHF",
    "GBPNZD",
    "AUDCAD",
    "AUDCHF",
    "AUDNZD",
    "CADCHF",
    "NZDCAD",
    "NZDCHF",
)
_JPY_PAIRS = ("USDJPY", "EURJPY", "GBPJPY", "AUDJPY", "CADJPY", "CHFJPY", "NZDJPY")

INSTRUMENT_SPECS: dict[str, InstrumentSpec] = {
    **{symbol: FOREX_SPEC for symbol in _FOREX_MAJORS_AND_CROSSES},
    **{symbol: JPY_SPEC for symbol in _JPY_PAIRS},
    # Metals
    "XAUUSD": GOLD_SPEC,
    "XAUEUR": GOLD_SPEC,
    "GOLD": GOLD_SPEC,
    "XAGUSD": SILVER_SPEC,
    "SILVER": SILVER_SPEC,
    # Crypto
    "BTCUSD": BTC_SPEC,
    "BITCOIN": BTC_SPEC,
    "ETHUSD": ETH_SPEC,
    "ETHEREUM": ETH_SPEC,
    "LTCUSD": ETH_SPEC,
    "XRPUSD": _spec("0.00001", 5, "1", InstrumentKind.CRYPTO),
    # Indices
    "US30": _spec("1", 0, "1", InstrumentKind.INDEX),
    "GER40": _spec("1", 0, "1", InstrumentKind.INDEX),
    "UK100": _spec("1", 0, "1", InstrumentKind.INDEX),
    "JPN225": _spec("1", 0, "1", InstrumentKind.INDEX),
    "SPX500": _spec("0.1", 1, "1", InstrumentKind.INDEX),
    "NAS100": _spec("0.25", 2, "1", InstrumentKind.INDEX),
    # Energies
    "CRUDE": CRUDE_SPEC,
    "BRENT": CRUDE_SPEC,
    "USOIL": CRUDE_SPEC,
    "UKOIL": CRUDE_SPEC,
}

# Ordered: an ambiguous symbol resolves to the first rule that matches
_SUBSTRING_RULES: tuple[tuple[tuple[str, ...], InstrumentSpec], ...] = (
    (("GOLD", "XAU"), GOLD_SPEC),
    (("SILVER", "XAG"), SILVER_SPEC),
    (("BTC", "BITCOIN"), BTC_SPEC),
    (("ETH",), ETH_SPEC),
    (("OIL", "CRUDE"), CRUDE_SPEC),
)

_NON_LETTERS = re.compile(r"[^A-Z]")
_INDEX_SYMBOL = re.compile(r"[^A-Z0-9]")


def normalize_symbol(symbol: Any) -> str:
    """
    Normalize a symbol for lookup: uppercase, letters only.

    Index symbols keep their digits (US30, NAS100) when the letters-only
    form is not itself a known symbol.
    """
    if symbol is None:
        return ""
    upper = str(symbol).upper().strip()
    with_digits = _INDEX_SYMBOL.sub("", upper)
    if with_digits in INSTRUMENT_SPECS:
        return with_digits
    return _NON_LETTERS.sub("", upper)


def resolve_instrument(symbol: Any) -> InstrumentSpec:
    """
    Resolve a symbol to its InstrumentSpec.

    Args:
        symbol: Any string (case-insensitive, separators and suffixes allowed)

    Returns:
        Matching InstrumentSpec, or DEFAULT_SPEC when no rule matches
    """
    normalized = normalize_symbol(symbol)
    if not normalized:
        return DEFAULT_SPEC

    exact = INSTRUMENT_SPECS.get(normalized)
    if exact is not None:
        return exact

    for needles, spec in _SUBSTRING_RULES:
        if any(needle in normalized for needle in needles):
            return spec

    if "JPY" in normalized:
        return JPY_SPEC

    return DEFAULT_SPEC


def is_usd_base_pair(symbol: Any) -> bool:
    """True for forex pairs quoted with USD as base currency (USDJPY, USDCAD), excluding USDX."""
    normalized = normalize_symbol(symbol)
    return (
        normalized.startswith("USD")
        and normalized != "USDX"
        and resolve_instrument(normalized).kind == InstrumentKind.FOREX
    )
