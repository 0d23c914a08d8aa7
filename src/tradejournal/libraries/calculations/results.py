"""
Explicit result types for fallible calculations.

Parsing, P&L calculation and import transforms return ``Ok(value)`` or
``Err(reason, message)`` instead of silently falling back to zero, so every
failure path is enumerable. Convenience wrappers that need the historical
"0 on failure" behavior call ``unwrap_or``.

Usage:
    >>> result = try_parse_financial_number("$1,234.50")
    >>> result.is_ok()
    True
    >>> result.unwrap()
    Decimal('1234.50')
    >>> try_parse_financial_number("N/A").unwrap_or(Decimal("0"))
    Decimal('0')
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, NoReturn, TypeVar, Union

T = TypeVar("T")


class ErrorReason(str, Enum):
    """Enumerable failure reasons shared by parsers, calculators and the importer."""

    EMPTY = "empty"
    INVALID_NUMBER = "invalid_number"
    INVALID_DATE = "invalid_date"
    INVALID_ENUM = "invalid_enum"
    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    ZERO_INPUT = "zero_input"
    PROCESSING_ERROR = "processing_error"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed result carrying a reason code and a human readable message."""

    reason: ErrorReason
    message: str = ""

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"{self.reason.value}: {self.message}")

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err]
