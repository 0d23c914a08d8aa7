"""
Event system for TradeJournal - Pydantic models validated against JSON Schema contracts.

Architecture:
    JSON Schema (*.v1.json) <- Source of truth for wire-visible payloads
         |
    Pydantic Event <- Python implementation with automatic validation
         |
    Event Bus

Every event validates its envelope against envelope.v1.json. ValidatedEvents
also validate their payload against {SCHEMA_BASE}.v{event_version}.json.
ControlEvents carry in-process objects (trade lists, snapshots) and skip
payload validation.
"""

import json
from datetime import datetime, timezone
from functools import lru_cache
from importlib import resources
from typing import Any, ClassVar, Optional
from uuid import uuid4

import jsonschema
from jsonschema import Draft202012Validator, FormatChecker
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from tradejournal.libraries.performance import StatisticsSnapshot
from tradejournal.libraries.trades import Trade

# Reserved envelope field names (excluded from payload validation)
RESERVED_ENVELOPE_KEYS = {
    "event_id",
    "event_type",
    "event_version",
    "occurred_at",
    "correlation_id",
    "causation_id",
    "source_service",
}

SCHEMA_PACKAGE = "tradejournal.contracts.schemas"


@lru_cache(maxsize=32)
def load_and_compile_schema(schema_name: str) -> Draft202012Validator:
    """
    Load and compile a JSON Schema validator with caching.

    Uses importlib.resources so schemas load from an installed wheel.

    Args:
        schema_name: Schema filename (e.g., "trade_record.v1.json")

    Returns:
        Pre-compiled validator with format checker

    Raises:
        FileNotFoundError: If schema file doesn't exist
    """
    try:
        schema_file = resources.files(SCHEMA_PACKAGE).joinpath(schema_name)
        with schema_file.open("r", encoding="utf-8") as f:
            schema = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Schema not found: {schema_name} in package {SCHEMA_PACKAGE}")

    return Draft202012Validator(schema, format_checker=FormatChecker())


@lru_cache(maxsize=1)
def load_envelope_schema() -> Draft202012Validator:
    """Load and compile envelope schema validator."""
    return load_and_compile_schema("envelope.v1.json")


class BaseEvent(BaseModel):
    """
    Base for all events - provides envelope fields only.
    All events (including control/lifecycle) validate envelope.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str = "base"
    event_version: int = Field(default=1, description="Schema major version")
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="UTC timestamp RFC3339"
    )
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None
    source_service: str = "unknown"

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("occurred_at", mode="before")
    @classmethod
    def ensure_utc(cls, v: Any) -> datetime:
        """Ensure timestamp is UTC timezone-aware."""
        if isinstance(v, str):
            dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
        elif isinstance(v, datetime):
            dt = v
        else:
            raise ValueError(f"Cannot parse datetime from {type(v)}: {v}")

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        elif dt.tzinfo != timezone.utc:
            dt = dt.astimezone(timezone.utc)

        return dt

    @field_serializer("occurred_at")
    def _serialize_occurred_at(self, v: datetime) -> str:
        """Serialize datetime to RFC3339 with Z suffix."""
        return v.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

    @model_validator(mode="after")
    def _validate_envelope(self) -> "BaseEvent":
        """Validate envelope fields against envelope.v1.json (None optionals dropped)."""
        envelope_data = {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "event_version": self.event_version,
            "occurred_at": self.occurred_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "source_service": self.source_service,
        }
        if self.correlation_id is not None:
            envelope_data["correlation_id"] = self.correlation_id
        if self.causation_id is not None:
            envelope_data["causation_id"] = self.causation_id

        try:
            load_envelope_schema().validate(envelope_data)
        except jsonschema.ValidationError as e:
            raise ValueError(
                f"{self.__class__.__name__} envelope validation failed (envelope.v1.json): {e.message}\n"
                f"Path: {list(e.path)}"
            )

        return self


class ValidatedEvent(BaseEvent):
    """
    Base for events whose payload is validated against a JSON Schema.

    Subclasses set SCHEMA_BASE; event_type must equal it.
    """

    SCHEMA_BASE: ClassVar[Optional[str]] = None

    @model_validator(mode="after")
    def _validate_payload(self) -> "ValidatedEvent":
        """
        Validate payload fields against {SCHEMA_BASE}.v{event_version}.json.

        Raises:
            ValueError: If validation fails, with full error context
        """
        if self.SCHEMA_BASE is None:
            raise ValueError(f"{self.__class__.__name__} must specify SCHEMA_BASE")

        if self.event_type != self.SCHEMA_BASE:
            raise ValueError(
                f"{self.__class__.__name__}: event_type '{self.event_type}' must equal '{self.SCHEMA_BASE}'"
            )

        data = self.model_dump(mode="json")
        payload_data = {k: v for k, v in data.items() if k not in RESERVED_ENVELOPE_KEYS}
        schema_file = f"{self.SCHEMA_BASE}.v{self.event_version}.json"

        try:
            load_and_compile_schema(schema_file).validate(payload_data)
        except FileNotFoundError as e:
            raise ValueError(f"{self.__class__.__name__}: Schema not found: {schema_file}") from e
        except jsonschema.ValidationError as e:
            raise ValueError(
                f"{self.__class__.__name__} payload validation failed against {schema_file}: {e.message}\n"
                f"Path: {list(e.path)}\n"
                f"Failed value: {e.instance}"
            )

        return self


class ControlEvent(BaseEvent):
    """
    Base for in-process events that don't require payload validation.

    Only validates envelope. Use for store notifications and lifecycle events.
    """

    pass


# ============================================
# Journal Events
# ============================================


class StoreUpdatedEvent(ControlEvent):
    """
    The journal's trades and statistics were replaced.

    Published synchronously after every successful store mutation. Handlers
    receive the new state; both the trade tuple and the snapshot are
    immutable.
    """

    event_type: str = "store_updated"
    source_service: str = "journal"

    trades: tuple[Trade, ...]
    statistics: StatisticsSnapshot
    reason: str = "set_trades"

    @property
    def timestamp(self) -> datetime:
        """When the update was published."""
        return self.occurred_at


# ============================================
# Import Events
# ============================================


class ImportStartedEvent(ControlEvent):
    """Lifecycle event - an import job started."""

    event_type: str = "import_started"
    source_service: str = "importing"

    job_id: str
    user_id: str
    total: int
    filename: str | None = None


class ImportProgressEvent(ValidatedEvent):
    """Import job progress - validates against import_progress.v1.json."""

    SCHEMA_BASE: ClassVar[Optional[str]] = "import_progress"
    event_type: str = "import_progress"
    source_service: str = "importing"

    job_id: str
    user_id: str
    phase: str
    processed: int
    total: int
    succeeded: int
    failed: int
    duplicate: int
    progress: float


class ImportFinishedEvent(ControlEvent):
    """Lifecycle event - an import job reached a terminal status."""

    event_type: str = "import_finished"
    source_service: str = "importing"

    job_id: str
    user_id: str
    status: str
    succeeded: int = 0
    failed: int = 0
    duplicate: int = 0
    error: str | None = None
