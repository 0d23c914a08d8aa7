"""Import job models.

This module defines the data models for bulk imports:
- ImportStatus: Job lifecycle state machine
- SkipReason / SkippedRecord: Why a record never reached persistence
- ValidationReport: Outcome of the validate/dedup pass
- ImportJob: Mutable job with totals, polled through the job registry
- ImportProgress: Immutable progress snapshot passed to callbacks
- ChunkResult, ImportVerification, ImportResult: Persist outcomes
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from tradejournal.libraries.trades import Trade


class ImportStatus(str, Enum):
    """Import job lifecycle.

    State Transitions:
        INITIALIZING → VALIDATING → PROCESSING → FINALIZING → COMPLETED
        INITIALIZING | VALIDATING | PROCESSING → CANCELLED
        Any non-terminal → FAILED
    """

    INITIALIZING = "initializing"
    VALIDATING = "validating"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_cancellable(self) -> bool:
        return self in CANCELLABLE_STATUSES


TERMINAL_STATUSES = frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({ImportStatus.INITIALIZING, ImportStatus.VALIDATING, ImportStatus.PROCESSING})


class SkipReason(str, Enum):
    """Why a record was not persisted."""

    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    INVALID_DATE = "invalid_date"
    INVALID_ENUM = "invalid_enum"
    INVALID_NUMBER = "invalid_number"
    PROCESSING_ERROR = "processing_error"
    SCHEMA_VIOLATION = "schema_violation"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class SkippedRecord:
    """One record rejected before persistence, by input position."""

    index: int
    reason: SkipReason
    message: str = ""


@dataclass
class ValidationReport:
    """
    Result of validate_records.

    Attributes:
        valid: Normalized trades in input order, duplicates removed
        skipped: Every rejected record with its reason
        total: Number of input records
    """

    valid: list[Trade] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)
    total: int = 0

    @property
    def breakdown(self) -> dict[str, int]:
        """Skip counts per reason."""
        counts: dict[str, int] = {}
        for record in self.skipped:
            counts[record.reason.value] = counts.get(record.reason.value, 0) + 1
        return counts

    @property
    def duplicate_count(self) -> int:
        return sum(1 for record in self.skipped if record.reason == SkipReason.DUPLICATE)

    @property
    def invalid_count(self) -> int:
        return len(self.skipped) - self.duplicate_count


@dataclass
class ImportTotals:
    """Running counts; processed is every record with a final outcome."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    duplicate: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.duplicate


@dataclass
class ImportJob:
    """
    Mutable import job, tracked by the job registry.

    Created per ImportPipeline.run invocation; stays pollable after it
    finishes until the retention window passes, then moves to history.
    """

    user_id: str
    id: str = field(default_factory=lambda: f"import_{uuid4().hex[:12]}")
    status: ImportStatus = ImportStatus.INITIALIZING
    totals: ImportTotals = field(default_factory=ImportTotals)
    chunk_size: Optional[int] = None
    filename: Optional[str] = None
    started_at: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))
    last_updated_at: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))
    finished_at: Optional[datetime.datetime] = None
    progress: float = 0.0
    error: Optional[str] = None
    settings: dict[str, Any] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    cancel_requested: bool = False

    @property
    def phase(self) -> str:
        return self.status.value

    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal


@dataclass(frozen=True)
class ImportProgress:
    """Progress snapshot delivered to on_progress callbacks (progress is 0-100)."""

    phase: str
    processed: int
    total: int
    succeeded: int
    failed: int
    duplicate: int
    progress: float


@dataclass(frozen=True)
class ChunkResult:
    """Outcome of persisting one chunk."""

    index: int
    size: int
    inserted: int
    error: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None

    @property
    def failed(self) -> int:
        return self.size - self.inserted

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ImportVerification:
    """Persisted count after import versus count before + succeeded."""

    verified: bool
    expected: int
    actual: Optional[int] = None
    error: Optional[str] = None

    @property
    def difference(self) -> int:
        return 0 if self.actual is None else self.actual - self.expected


@dataclass(frozen=True)
class ImportResult:
    """Final outcome of ImportPipeline.run."""

    job_id: str
    status: ImportStatus
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    duplicate: int = 0
    breakdown: dict[str, int] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    chunk_errors: list[ChunkResult] = field(default_factory=list)
    verification: Optional[ImportVerification] = None
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """Completed, including partial imports where some chunks failed."""
        return self.status == ImportStatus.COMPLETED
