"""Trade data model.

A Trade is one logical position: entered once, optionally exited once.
Trades are immutable; updates go through model_copy and re-normalization.
"""

import datetime
import hashlib
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tradejournal.libraries.calculations.parsing import Direction

MAX_NOTES_LENGTH = 500
MAX_SETUP_LENGTH = 200


class TradeStatus(str, Enum):
    """Position status."""

    OPEN = "open"
    CLOSED = "closed"


class Provenance(str, Enum):
    """Where a trade came from."""

    MANUAL = "manual"
    IMPORTED = "imported"


class Outcome(str, Enum):
    """Result classification by P&L sign."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


def _decimal_key(value: Decimal | None) -> str:
    # 1.2500 and 1.25 must hash identically
    if value is None:
        return "open"
    return format(value.normalize(), "f")


def compute_dedup_hash(
    date: datetime.date,
    pair: str,
    direction: Direction,
    entry_price: Decimal,
    lot_size: Decimal,
    exit_price: Decimal | None,
) -> str:
    """
    Duplicate-detection hash over the fields that identify a position.

    Not cryptographic: blake2b with an 8-byte digest, hex encoded. Prices
    that differ only in trailing zeros hash identically.
    """
    key = "_".join(
        [
            date.isoformat(),
            pair.upper(),
            direction.value,
            _decimal_key(entry_price),
            _decimal_key(lot_size),
            _decimal_key(exit_price),
        ]
    )
    return hashlib.blake2b(key.encode("utf-8"), digest_size=8).hexdigest()


class Trade(BaseModel):
    """
    One logical trading position.

    Invariants:
        - status is CLOSED exactly when exit_price is set
        - entry_price > 0 and lot_size > 0
        - risk_reward is only set when both stop_loss and take_profit are set

    Attributes:
        id: Opaque identifier, stable across persistence
        date: Trade date (no time-of-day)
        pair: Uppercase instrument symbol
        direction: buy or sell
        entry_price: Entry price
        exit_price: Exit price (None while open)
        stop_loss: Stop loss price
        take_profit: Take profit price
        lot_size: Position size in lots
        pnl: Realized P&L in account currency
        status: open or closed
        risk_reward: Planned reward/risk ratio
        setup_tag: Strategy or setup label
        notes: Free text
        provenance: manual or imported
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: uuid4().hex)
    date: datetime.date
    pair: str = Field(min_length=1)
    direction: Direction
    entry_price: Decimal
    exit_price: Decimal | None = None
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    lot_size: Decimal
    pnl: Decimal = Decimal("0")
    status: TradeStatus = TradeStatus.OPEN
    risk_reward: Decimal | None = None
    setup_tag: str = Field(default="", max_length=MAX_SETUP_LENGTH)
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)
    provenance: Provenance = Provenance.MANUAL

    @field_validator("pair")
    @classmethod
    def upper_pair(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_invariants(self) -> "Trade":
        if self.entry_price <= 0:
            raise ValueError(f"entry_price must be positive, got {self.entry_price}")
        if self.lot_size <= 0:
            raise ValueError(f"lot_size must be positive, got {self.lot_size}")
        if (self.status == TradeStatus.CLOSED) != (self.exit_price is not None):
            raise ValueError(f"status {self.status.value} inconsistent with exit_price {self.exit_price}")
        if self.risk_reward is not None and (self.stop_loss is None or self.take_profit is None):
            raise ValueError("risk_reward requires both stop_loss and take_profit")
        return self

    @property
    def dedup_hash(self) -> str:
        """Hash of (date, pair, direction, entry, lot size, exit or 'open')."""
        return compute_dedup_hash(
            self.date, self.pair, self.direction, self.entry_price, self.lot_size, self.exit_price
        )

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def is_winner(self) -> bool:
        return self.pnl > 0

    @property
    def is_loser(self) -> bool:
        return self.pnl < 0

    @property
    def outcome(self) -> Outcome:
        if self.pnl > 0:
            return Outcome.WIN
        if self.pnl < 0:
            return Outcome.LOSS
        return Outcome.BREAKEVEN

    @property
    def has_stop(self) -> bool:
        return self.stop_loss is not None

    @property
    def has_target(self) -> bool:
        return self.take_profit is not None
