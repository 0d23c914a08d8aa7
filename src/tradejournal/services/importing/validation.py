"""
Validate and deduplicate raw records before persistence.

Records are streamed in batches; the event loop gets a turn between batches
so progress callbacks and cancellation requests are serviced on large files.
"""

import asyncio
import json
import math
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Optional

from tradejournal.libraries.calculations import ErrorReason
from tradejournal.libraries.trades import Provenance, missing_required_fields, normalize_trade
from tradejournal.services.importing.models import SkippedRecord, SkipReason, ValidationReport

DEFAULT_CHUNK_SIZE = 500

_REASON_MAP = {
    ErrorReason.MISSING_REQUIRED_FIELDS: SkipReason.MISSING_REQUIRED_FIELDS,
    ErrorReason.INVALID_DATE: SkipReason.INVALID_DATE,
    ErrorReason.INVALID_ENUM: SkipReason.INVALID_ENUM,
    ErrorReason.INVALID_NUMBER: SkipReason.INVALID_NUMBER,
}

_ISSUE_TEMPLATES = {
    SkipReason.MISSING_REQUIRED_FIELDS: "{n} trades missing required fields (pair, date, entry)",
    SkipReason.INVALID_DATE: "{n} trades with unparseable dates",
    SkipReason.INVALID_ENUM: "{n} trades with an unknown direction or status",
    SkipReason.INVALID_NUMBER: "{n} trades with invalid numeric values",
    SkipReason.PROCESSING_ERROR: "{n} trades failed processing",
    SkipReason.SCHEMA_VIOLATION: "{n} trades rejected by the record schema",
    SkipReason.DUPLICATE: "{n} duplicate trades detected",
}

BatchCallback = Callable[[int, ValidationReport], Optional[Awaitable[None]]]


async def validate_records(
    records: Sequence[Mapping[str, Any]],
    *,
    existing_hashes: Iterable[str] = frozenset(),
    deduplicate: bool = True,
    batch_size: int = 1000,
    on_batch: Optional[BatchCallback] = None,
) -> ValidationReport:
    """
    Normalize raw records and drop invalid ones and duplicates.

    Args:
        records: Raw trade mappings in file order
        existing_hashes: Dedup hashes already persisted for the user
        deduplicate: Skip records whose hash was seen in this import or persisted
        batch_size: Records handled between event-loop yields
        on_batch: Called with (records_seen, report) after every batch; may be async

    Returns:
        ValidationReport with valid trades in input order
    """
    report = ValidationReport(total=len(records))
    seen = set(existing_hashes)

    for start in range(0, len(records), batch_size):
        for index in range(start, min(start + batch_size, len(records))):
            raw = records[index]
            missing = missing_required_fields(raw)
            if missing:
                report.skipped.append(
                    SkippedRecord(index, SkipReason.MISSING_REQUIRED_FIELDS, f"missing: {', '.join(missing)}")
                )
                continue

            result = normalize_trade(raw, provenance=Provenance.IMPORTED)
            if result.is_err():
                reason = _REASON_MAP.get(result.reason, SkipReason.PROCESSING_ERROR)
                report.skipped.append(SkippedRecord(index, reason, result.message))
                continue

            trade = result.unwrap()
            if deduplicate:
                if trade.dedup_hash in seen:
                    report.skipped.append(SkippedRecord(index, SkipReason.DUPLICATE, trade.dedup_hash))
                    continue
                seen.add(trade.dedup_hash)
            report.valid.append(trade)

        if on_batch is not None:
            pending = on_batch(min(start + batch_size, len(records)), report)
            if pending is not None:
                await pending
        await asyncio.sleep(0)

    return report


def issue_messages(breakdown: Mapping[str, int]) -> list[str]:
    """User-facing summary lines for a skip breakdown, in SkipReason order."""
    messages = []
    for reason in SkipReason:
        n = breakdown.get(reason.value, 0)
        if n:
            messages.append(_ISSUE_TEMPLATES[reason].format(n=n))
    return messages


def calculate_optimal_chunk_size(
    records: Sequence[Any],
    max_memory_mb: int = 100,
    min_size: int = 100,
    max_size: int = 5000,
) -> int:
    """
    Size persist chunks from the serialized size of a sample record.

    A quarter of the memory budget is spent per chunk; strings are counted at
    two bytes per character.

    Example:
        >>> calculate_optimal_chunk_size([])
        500
    """
    if not records:
        return DEFAULT_CHUNK_SIZE
    sample = records[0]
    record_kb = max(len(json.dumps(sample, default=str)) * 2 / 1024, 1e-6)
    budget_kb = max_memory_mb * 1024 * 0.25
    size = math.floor(budget_kb / record_kb)
    return max(min_size, min(max_size, size))
