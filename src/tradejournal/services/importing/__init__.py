"""Bulk trade import: validation, dedup, chunked persistence and job tracking."""

from tradejournal.services.importing.backend import InMemoryBackend, JsonLinesBackend, PersistenceBackend
from tradejournal.services.importing.config import ImportConfig
from tradejournal.services.importing.jobs import JobRegistry
from tradejournal.services.importing.models import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    ChunkResult,
    ImportJob,
    ImportProgress,
    ImportResult,
    ImportStatus,
    ImportTotals,
    ImportVerification,
    SkippedRecord,
    SkipReason,
    ValidationReport,
)
from tradejournal.services.importing.pipeline import ImportPipeline
from tradejournal.services.importing.transform import (
    TRADE_RECORD_SCHEMA,
    record_to_trade,
    transform_for_persistence,
)
from tradejournal.services.importing.validation import (
    calculate_optimal_chunk_size,
    issue_messages,
    validate_records,
)

__all__ = [
    "CANCELLABLE_STATUSES",
    "TERMINAL_STATUSES",
    "TRADE_RECORD_SCHEMA",
    "ChunkResult",
    "ImportConfig",
    "ImportJob",
    "ImportPipeline",
    "ImportProgress",
    "ImportResult",
    "ImportStatus",
    "ImportTotals",
    "ImportVerification",
    "InMemoryBackend",
    "JobRegistry",
    "JsonLinesBackend",
    "PersistenceBackend",
    "SkipReason",
    "SkippedRecord",
    "ValidationReport",
    "calculate_optimal_chunk_size",
    "issue_messages",
    "record_to_trade",
    "transform_for_persistence",
    "validate_records",
]
