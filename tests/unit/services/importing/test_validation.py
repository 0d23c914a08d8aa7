"""Tests for record validation, dedup and chunk sizing."""

import pytest

from tradejournal.libraries.trades import Provenance
from tradejournal.services.importing import (
    SkipReason,
    calculate_optimal_chunk_size,
    issue_messages,
    validate_records,
)


class TestValidateRecords:
    """Test validate_records."""

    @pytest.mark.asyncio
    async def test_valid_records_keep_input_order(self, make_records) -> None:
        """Valid records keep input order."""
        records = make_records(3)
        report = await validate_records(records)
        assert report.total == 3
        assert [str(t.entry_price) for t in report.valid] == ["1.2000", "1.2001", "1.2002"]
        assert all(t.provenance == Provenance.IMPORTED for t in report.valid)
        assert report.skipped == []

    @pytest.mark.asyncio
    async def test_invalid_records_classified(self, make_records) -> None:
        """Invalid records classified."""
        good = make_records(1)[0]
        records = [
            good,
            {"pair": "EURUSD"},
            {**good, "date": "sometime", "entry": "1.3"},
            {**good, "type": "hold", "entry": "1.31"},
            {**good, "lotSize": "abc", "entry": "1.32"},
        ]
        report = await validate_records(records)
        assert len(report.valid) == 1
        assert report.breakdown == {
            SkipReason.MISSING_REQUIRED_FIELDS.value: 1,
            SkipReason.INVALID_DATE.value: 1,
            SkipReason.INVALID_ENUM.value: 1,
            SkipReason.INVALID_NUMBER.value: 1,
        }
        assert [s.index for s in report.skipped] == [1, 2, 3, 4]
        assert report.invalid_count == 4

    @pytest.mark.asyncio
    async def test_duplicates_within_file(self, make_records) -> None:
        """Duplicates within file."""
        record = make_records(1)[0]
        report = await validate_records([record, dict(record), {**record, "entry": "1.2000"}])
        assert len(report.valid) == 1
        assert report.duplicate_count == 2
        assert report.skipped[0].message == report.valid[0].dedup_hash

    @pytest.mark.asyncio
    async def test_existing_hashes_are_duplicates(self, make_records) -> None:
        """Existing hashes are duplicates."""
        records = make_records(2)
        first = await validate_records(records[:1])
        report = await validate_records(records, existing_hashes={first.valid[0].dedup_hash})
        assert len(report.valid) == 1
        assert report.skipped[0].index == 0
        assert report.skipped[0].reason == SkipReason.DUPLICATE

    @pytest.mark.asyncio
    async def test_dedup_disabled(self, make_records) -> None:
        """Dedup disabled."""
        record = make_records(1)[0]
        report = await validate_records([record, record], deduplicate=False)
        assert len(report.valid) == 2

    @pytest.mark.asyncio
    async def test_on_batch_called_per_batch(self, make_records) -> None:
        """On batch called per batch."""
        calls = []
        await validate_records(make_records(5), batch_size=2, on_batch=lambda seen, report: calls.append(seen))
        assert calls == [2, 4, 5]

    @pytest.mark.asyncio
    async def test_async_on_batch_awaited(self, make_records) -> None:
        """Async on batch awaited."""
        calls = []

        async def on_batch(seen, report):
            calls.append(len(report.valid))

        await validate_records(make_records(3), batch_size=2, on_batch=on_batch)
        assert calls == [2, 3]


class TestIssueMessages:
    """Test issue_messages."""

    def test_messages_in_reason_order(self) -> None:
        """Messages in reason order."""
        breakdown = {"duplicate": 3, "invalid_date": 2, "missing_required_fields": 1}
        assert issue_messages(breakdown) == [
            "1 trades missing required fields (pair, date, entry)",
            "2 trades with unparseable dates",
            "3 duplicate trades detected",
        ]

    def test_zero_counts_omitted(self) -> None:
        """Zero counts omitted."""
        assert issue_messages({"schema_violation": 0}) == []
        assert issue_messages({"schema_violation": 2}) == ["2 trades rejected by the record schema"]


class TestOptimalChunkSize:
    """Test calculate_optimal_chunk_size."""

    def test_empty_uses_default(self) -> None:
        """Empty uses default."""
        assert calculate_optimal_chunk_size([]) == 500

    def test_small_records_hit_max(self, make_records) -> None:
        """Small records hit max."""
        assert calculate_optimal_chunk_size(make_records(1)) == 5000

    def test_large_records_hit_min(self) -> None:
        """Large records hit min."""
        assert calculate_optimal_chunk_size([{"notes": "x" * 300_000}]) == 100

    def test_in_range(self) -> None:
        """In range."""
        # ~20 KB per record: 25600 KB budget / 20 KB
        size = calculate_optimal_chunk_size([{"notes": "x" * 10_000}])
        assert 100 < size < 5000
