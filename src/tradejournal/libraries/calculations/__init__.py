"""
Financial calculator: parsing, P&L, risk/reward, position sizing and trade validation.

All functions are pure. ``try_*`` variants return Ok/Err results; the plain
variants return 0 for degenerate input and never raise.
"""

from tradejournal.libraries.calculations.parsing import (
    RAW_FIELD_ALIASES,
    Direction,
    parse_financial_number,
    pick_field,
    raw_field,
    try_parse_direction,
    try_parse_financial_number,
    try_parse_trade_date,
)
from tradejournal.libraries.calculations.pnl import (
    calculate_pips,
    calculate_pnl,
    calculate_position_size,
    calculate_risk_amount,
    calculate_risk_reward,
    format_pnl,
    lots_to_units,
    match_direction,
    try_calculate_pnl,
    units_to_lots,
)
from tradejournal.libraries.calculations.results import Err, ErrorReason, Ok, Result
from tradejournal.libraries.calculations.validation import TradeValidation, validate_trade

__all__ = [
    # Results
    "Ok",
    "Err",
    "ErrorReason",
    "Result",
    # Parsing
    "Direction",
    "RAW_FIELD_ALIASES",
    "parse_financial_number",
    "pick_field",
    "raw_field",
    "try_parse_direction",
    "try_parse_financial_number",
    "try_parse_trade_date",
    # Calculators
    "calculate_pips",
    "calculate_pnl",
    "calculate_position_size",
    "calculate_risk_amount",
    "calculate_risk_reward",
    "format_pnl",
    "lots_to_units",
    "match_direction",
    "try_calculate_pnl",
    "units_to_lots",
    # Validation
    "TradeValidation",
    "validate_trade",
]
