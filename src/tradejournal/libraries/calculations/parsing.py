"""
Input parsing for financial values, dates and trade directions.

Broker exports and manual forms deliver numbers as strings with currency
symbols, thousands separators, percent signs, and either US (1,234.56) or
European (1.234,56) separators. These parsers turn such values into Decimal,
date and Direction, returning Ok/Err results. The plain ``parse_*`` wrappers
keep the forgiving "0 on bad input" behavior used by calculators.

Separator rules:
    - Both "," and "." present: the last one is the decimal separator
    - Only ",": thousands separator when every group after it has exactly
      three digits ("1,234,567"), otherwise the decimal separator ("1,5")
    - Only ".", repeated with three-digit groups ("1.234.567"): thousands
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from tradejournal.libraries.calculations.results import Err, ErrorReason, Ok, Result

_CURRENCY_CHARS = re.compile(r"[$€£¥₹₩\s ]")
_US_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")
_EU_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(\.\d{3}){2,}$")
_EMPTY_MARKERS = {"", "-", "N/A", "NA", "NONE", "NULL", "NAN"}


class Direction(str, Enum):
    """Trade direction."""

    BUY = "buy"
    SELL = "sell"


_DIRECTION_ALIASES: dict[str, Direction] = {
    "buy": Direction.BUY,
    "long": Direction.BUY,
    "b": Direction.BUY,
    "0": Direction.BUY,
    "sell": Direction.SELL,
    "short": Direction.SELL,
    "s": Direction.SELL,
    "1": Direction.SELL,
}


def try_parse_financial_number(value: Any) -> Result[Decimal]:
    """
    Parse a number or formatted numeric string into Decimal.

    Args:
        value: int, float, Decimal or string such as "$1,234.50", "1.234,50 €",
               "12.5%" (returned as 0.125) or "(45.00)" (accounting negative)

    Returns:
        Ok(Decimal) or Err with reason EMPTY or INVALID_NUMBER
    """
    if value is None:
        return Err(ErrorReason.EMPTY, "value is missing")
    if isinstance(value, bool):
        return Err(ErrorReason.INVALID_NUMBER, f"boolean is not a number: {value!r}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            return Err(ErrorReason.INVALID_NUMBER, f"non-finite number: {value}")
        return Ok(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Err(ErrorReason.INVALID_NUMBER, f"non-finite number: {value}")
        return Ok(Decimal(str(value)))

    text = str(value).strip()
    if text.upper() in _EMPTY_MARKERS:
        return Err(ErrorReason.EMPTY, f"empty value: {value!r}")

    text = _CURRENCY_CHARS.sub("", text)

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    percent = "%" in text
    text = text.replace("%", "")

    text = _normalize_separators(text)
    if text is None:
        return Err(ErrorReason.INVALID_NUMBER, f"ambiguous separators: {value!r}")

    try:
        number = Decimal(text)
    except InvalidOperation:
        return Err(ErrorReason.INVALID_NUMBER, f"not a number: {value!r}")

    if not number.is_finite():
        return Err(ErrorReason.INVALID_NUMBER, f"non-finite number: {value!r}")

    if percent:
        number = number / Decimal("100")
    if negative:
        number = -number
    return Ok(number)


def _normalize_separators(text: str) -> str | None:
    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if has_comma:
        if _US_THOUSANDS.match(text):
            return text.replace(",", "")
        if text.count(",") == 1:
            return text.replace(",", ".")
        return None

    if has_dot and text.count(".") > 1:
        if _EU_THOUSANDS.match(text):
            return text.replace(".", "")
        return None

    return text


def parse_financial_number(value: Any) -> Decimal:
    """
    Parse a financial value, returning Decimal("0") for empty or invalid input.

    Never raises.

    Example:
        >>> parse_financial_number("$1,234.50")
        Decimal('1234.50')
        >>> parse_financial_number("1.234,50")
        Decimal('1234.50')
        >>> parse_financial_number("N/A")
        Decimal('0')
    """
    return try_parse_financial_number(value).unwrap_or(Decimal("0"))


def try_parse_trade_date(value: Any) -> Result[date]:
    """
    Parse a trade date.

    Accepts date/datetime objects, ISO strings (time part ignored) and
    day-first DD.MM.YYYY or DD/MM/YYYY. Year-first YYYY/MM/DD is also read.
    """
    if value is None:
        return Err(ErrorReason.EMPTY, "date is missing")
    if isinstance(value, datetime):
        return Ok(value.date())
    if isinstance(value, date):
        return Ok(value)

    text = str(value).strip()
    if not text:
        return Err(ErrorReason.EMPTY, "date is empty")

    head = re.split(r"[T ]", text, maxsplit=1)[0]

    try:
        if "-" in head:
            return Ok(date.fromisoformat(head))
        for separator in (".", "/"):
            if separator in head:
                parts = head.split(separator)
                if len(parts) != 3:
                    break
                if len(parts[0]) == 4:
                    year, month, day = parts
                else:
                    day, month, year = parts
                return Ok(date(int(year), int(month), int(day)))
    except ValueError:
        pass

    return Err(ErrorReason.INVALID_DATE, f"unrecognized date: {value!r}")


def try_parse_direction(value: Any) -> Result[Direction]:
    """Map buy/sell/long/short/b/s/0/1 (case-insensitive) to Direction."""
    if isinstance(value, Direction):
        return Ok(value)
    if value is None or str(value).strip() == "":
        return Err(ErrorReason.EMPTY, "trade type is missing")
    direction = _DIRECTION_ALIASES.get(str(value).strip().lower())
    if direction is None:
        return Err(ErrorReason.INVALID_ENUM, f"unknown trade type: {value!r}")
    return Ok(direction)


def pick_field(raw: Mapping[str, Any], *keys: str) -> Any:
    """
    First present, non-empty value among ``keys`` in a raw record.

    Raw records arrive with camelCase form keys (``stopLoss``) or snake_case
    export keys (``stop_loss``); callers list every accepted alias.
    """
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and value.strip() == "":
            continue
        return value
    return None


# Accepted spellings for each raw trade field, in lookup order
RAW_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "date": ("date", "trade_date"),
    "pair": ("pair", "symbol"),
    "direction": ("type", "direction", "side"),
    "entry": ("entry", "entry_price", "entryPrice"),
    "exit": ("exit", "exit_price", "exitPrice"),
    "stop_loss": ("stopLoss", "stop_loss", "sl"),
    "take_profit": ("takeProfit", "take_profit", "tp"),
    "lot_size": ("lotSize", "lot_size", "lots", "volume"),
    "pnl": ("pnl", "profit"),
    "status": ("status",),
    "setup": ("setup", "setup_tag", "setupTag"),
    "notes": ("notes",),
}


def raw_field(raw: Mapping[str, Any], name: str) -> Any:
    """Read a canonical field from a raw record, trying every accepted alias."""
    return pick_field(raw, *RAW_FIELD_ALIASES[name])
