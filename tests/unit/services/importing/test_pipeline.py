"""
Tests for ImportPipeline.

Covers the job lifecycle, chunked persistence, partial failure, dedup across
imports, cancellation, fatal errors and the side effects of a finished
import (events, cache invalidation, store refresh).
"""

import asyncio

import pytest

from tradejournal.errors import BackendError, JobNotFoundError
from tradejournal.events import EventBus
from tradejournal.services.cache import CacheConfig, TradeCache
from tradejournal.services.importing import (
    ImportConfig,
    ImportPipeline,
    ImportStatus,
    InMemoryBackend,
    SkipReason,
)

USER = "user-1"


# ============================================
# Backends
# ============================================


class FailingChunkBackend(InMemoryBackend):
    """Rejects the n-th insert_chunk call (1-based)."""

    def __init__(self, fail_on: int, code: str = BackendError.NUMERIC_OUT_OF_RANGE):
        super().__init__()
        self.fail_on = fail_on
        self.code = code

    async def insert_chunk(self, user_id, records):
        if self.insert_calls + 1 == self.fail_on:
            self.insert_calls += 1
            raise BackendError('numeric field overflow on column "pnl"', code=self.code)
        return await super().insert_chunk(user_id, records)


class GatedBackend(InMemoryBackend):
    """Blocks every insert until `release` is set."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def insert_chunk(self, user_id, records):
        self.entered.set()
        await self.release.wait()
        return await super().insert_chunk(user_id, records)


# ============================================
# Fixtures
# ============================================


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def config():
    return ImportConfig(chunk_size=500)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def pipeline(backend, config, bus):
    return ImportPipeline(backend, config, event_bus=bus)


# ============================================
# Happy path
# ============================================


class TestSuccessfulImport:
    """Test complete imports."""

    @pytest.mark.asyncio
    async def test_chunks_and_totals(self, pipeline, backend, make_records) -> None:
        """Chunks and totals."""
        result = await pipeline.run(make_records(1200), USER, filename="trades.csv")

        assert result.status == ImportStatus.COMPLETED
        assert result.success
        assert (result.total, result.succeeded, result.failed, result.duplicate) == (1200, 1200, 0, 0)
        assert backend.insert_calls == 3
        assert await backend.count(USER) == 1200
        assert result.issues == []
        assert result.verification.verified
        assert result.verification.expected == 1200

        job = pipeline.get_job(result.job_id)
        assert job.chunk_size == 500
        assert job.progress == 100.0
        assert job.finished_at is not None

    @pytest.mark.asyncio
    async def test_auto_chunk_size(self, backend, make_records) -> None:
        """Auto chunk size."""
        pipeline = ImportPipeline(backend, ImportConfig())
        await pipeline.run(make_records(1200), USER)
        # small records clamp to max_chunk_size
        assert backend.insert_calls == 1

    @pytest.mark.asyncio
    async def test_status_poll(self, pipeline, make_records) -> None:
        """Status poll."""
        result = await pipeline.run(make_records(3), USER)
        assert pipeline.get_status(result.job_id) == {
            "status": "completed",
            "progress": 100.0,
            "processed": 3,
            "succeeded": 3,
            "failed": 0,
            "duplicate": 0,
            "error": None,
        }

    @pytest.mark.asyncio
    async def test_unknown_job_status(self, pipeline) -> None:
        """Unknown job status."""
        with pytest.raises(JobNotFoundError):
            pipeline.get_status("import_missing")

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, pipeline, make_records) -> None:
        """Progress is monotonic."""
        snapshots = []
        await pipeline.run(make_records(1200), USER, on_progress=snapshots.append)

        values = [s.progress for s in snapshots]
        assert values == sorted(values)
        assert snapshots[0].phase == "validating"
        assert snapshots[0].progress == 8.33  # 1000 of 1200 validated
        assert snapshots[-1].phase == "completed"
        assert snapshots[-1].progress == 100.0
        assert all(s.progress <= 90.0 for s in snapshots if s.phase == "processing")

    @pytest.mark.asyncio
    async def test_failing_progress_callback_does_not_abort(self, pipeline, make_records) -> None:
        """Failing progress callback does not abort."""
        def explode(snapshot):
            raise RuntimeError("ui went away")

        result = await pipeline.run(make_records(5), USER, on_progress=explode)
        assert result.status == ImportStatus.COMPLETED
        assert result.succeeded == 5


# ============================================
# Partial failures
# ============================================


class TestPartialFailures:
    """Test that record and chunk failures are counted, not fatal."""

    @pytest.mark.asyncio
    async def test_failed_chunk_does_not_stop_later_chunks(self, config, make_records) -> None:
        """Failed chunk does not stop later chunks."""
        backend = FailingChunkBackend(fail_on=2)
        pipeline = ImportPipeline(backend, config)

        result = await pipeline.run(make_records(1200), USER)

        assert result.status == ImportStatus.COMPLETED
        assert result.succeeded == 700
        assert result.failed == 500
        assert backend.insert_calls == 3
        assert len(result.chunk_errors) == 1
        assert result.chunk_errors[0].index == 1
        assert result.chunk_errors[0].category == "numeric_overflow"
        assert result.issues == ['Chunk 2 failed (numeric_overflow): numeric field overflow on column "pnl"']
        assert result.verification.verified

    @pytest.mark.asyncio
    async def test_invalid_records_counted(self, pipeline, make_records) -> None:
        """Invalid records counted."""
        records = make_records(3) + [{"pair": "EURUSD"}, {**make_records(1, 10)[0], "date": "sometime"}]
        result = await pipeline.run(records, USER)

        assert result.status == ImportStatus.COMPLETED
        assert result.succeeded == 3
        assert result.failed == 2
        assert result.breakdown == {
            SkipReason.MISSING_REQUIRED_FIELDS.value: 1,
            SkipReason.INVALID_DATE.value: 1,
        }
        assert result.issues == [
            "1 trades missing required fields (pair, date, entry)",
            "1 trades with unparseable dates",
        ]

    @pytest.mark.asyncio
    async def test_schema_violation_counted(self, pipeline, make_records) -> None:
        """Schema violation counted."""
        records = make_records(2) + [{**make_records(1, 5)[0], "pair": "X" * 60}]
        result = await pipeline.run(records, USER)

        assert result.succeeded == 2
        assert result.failed == 1
        assert result.breakdown == {SkipReason.SCHEMA_VIOLATION.value: 1}


# ============================================
# Deduplication
# ============================================


class TestDeduplication:
    """Test duplicate handling within and across imports."""

    @pytest.mark.asyncio
    async def test_second_import_is_all_duplicates(self, pipeline, backend, make_records) -> None:
        """Second import is all duplicates."""
        records = make_records(20)
        await pipeline.run(records, USER)
        result = await pipeline.run(records, USER)

        assert result.status == ImportStatus.COMPLETED
        assert result.succeeded == 0
        assert result.duplicate == 20
        assert result.issues == ["20 duplicate trades detected"]
        assert await backend.count(USER) == 20
        assert result.verification.verified

    @pytest.mark.asyncio
    async def test_duplicates_within_file(self, pipeline, make_records) -> None:
        """Duplicates within file."""
        records = make_records(3)
        result = await pipeline.run(records + records[:2], USER)
        assert result.succeeded == 3
        assert result.duplicate == 2

    @pytest.mark.asyncio
    async def test_other_users_do_not_collide(self, pipeline, make_records) -> None:
        """Other users do not collide."""
        records = make_records(4)
        await pipeline.run(records, USER)
        result = await pipeline.run(records, "user-2")
        assert result.succeeded == 4

    @pytest.mark.asyncio
    async def test_dedup_disabled_lets_backend_reject(self, backend, make_records) -> None:
        """Dedup disabled lets backend reject."""
        pipeline = ImportPipeline(backend, ImportConfig(deduplicate=False, chunk_size=500))
        records = make_records(3)
        await pipeline.run(records, USER)
        result = await pipeline.run(records, USER)

        assert result.succeeded == 0
        assert result.failed == 3
        assert result.chunk_errors[0].category == "duplicate_key"


# ============================================
# Cancellation
# ============================================


class TestCancellation:
    """Test cancel() and task cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_stops_at_chunk_boundary(self, pipeline, backend, make_records) -> None:
        """Cancel stops at chunk boundary."""
        cancelled = []

        def on_progress(snapshot):
            if snapshot.phase == "processing" and snapshot.succeeded == 500 and not cancelled:
                job = pipeline.get_user_active_imports(USER)[0]
                cancelled.append(pipeline.cancel(job.id))

        result = await pipeline.run(make_records(1200), USER, on_progress=on_progress)

        assert cancelled == [True]
        assert result.status == ImportStatus.CANCELLED
        assert result.succeeded == 500
        assert backend.insert_calls == 1
        assert result.verification is None

    @pytest.mark.asyncio
    async def test_cancel_finished_job_is_refused(self, pipeline, make_records) -> None:
        """Cancel finished job is refused."""
        result = await pipeline.run(make_records(1), USER)
        assert pipeline.cancel(result.job_id) is False
        assert pipeline.cancel("import_missing") is False

    @pytest.mark.asyncio
    async def test_task_cancellation_marks_job(self, config, make_records) -> None:
        """Task cancellation marks job."""
        backend = GatedBackend()
        pipeline = ImportPipeline(backend, config)
        task = asyncio.create_task(pipeline.run(make_records(10), USER))
        await backend.entered.wait()

        job = pipeline.get_user_active_imports(USER)[0]
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert job.status == ImportStatus.CANCELLED
        assert job.cancel_requested
        assert pipeline.get_user_active_imports(USER) == []


# ============================================
# Fatal errors
# ============================================


class TestFatalErrors:
    """Test job-level failures."""

    @pytest.mark.asyncio
    async def test_missing_user(self, pipeline, make_records) -> None:
        """Missing user."""
        result = await pipeline.run(make_records(1), "")
        assert result.status == ImportStatus.FAILED
        assert not result.success
        assert result.error == "user_id is required"
        assert pipeline.get_status(result.job_id)["status"] == "failed"

    @pytest.mark.asyncio
    async def test_no_records(self, pipeline) -> None:
        """No records."""
        result = await pipeline.run([], USER)
        assert result.status == ImportStatus.FAILED
        assert result.error == "No records to import"

    @pytest.mark.asyncio
    async def test_backend_unreachable(self, pipeline, backend, make_records) -> None:
        """Backend unreachable."""
        backend.available = False
        result = await pipeline.run(make_records(1), USER)
        assert result.status == ImportStatus.FAILED
        assert result.error == "connection refused"
        assert backend.insert_calls == 0

    @pytest.mark.asyncio
    async def test_unexpected_error(self, pipeline, backend, make_records) -> None:
        """Unexpected error."""
        async def broken_count(user_id):
            raise RuntimeError("socket closed")

        backend.count = broken_count
        result = await pipeline.run(make_records(1), USER)
        assert result.status == ImportStatus.FAILED
        assert result.error == "Unexpected error: socket closed"

    @pytest.mark.asyncio
    async def test_concurrent_import_for_same_user_rejected(self, config, make_records) -> None:
        """Concurrent import for same user rejected."""
        backend = GatedBackend()
        pipeline = ImportPipeline(backend, config)
        first = asyncio.create_task(pipeline.run(make_records(10), USER))
        await backend.entered.wait()

        second = await pipeline.run(make_records(10, 100), USER)
        assert second.status == ImportStatus.FAILED
        assert "already running" in second.error

        backend.release.set()
        result = await first
        assert result.status == ImportStatus.COMPLETED
        assert result.succeeded == 10


# ============================================
# Side effects
# ============================================


class TestSideEffects:
    """Test events, cache invalidation and refresh."""

    @pytest.mark.asyncio
    async def test_lifecycle_events(self, pipeline, bus, make_records) -> None:
        """Lifecycle events."""
        result = await pipeline.run(make_records(1200), USER, filename="trades.csv")

        started = bus.get_history("import_started")
        assert len(started) == 1
        assert started[0].total == 1200
        assert started[0].filename == "trades.csv"

        progress = bus.get_history("import_progress")
        assert all(e.job_id == result.job_id for e in progress)
        assert all(e.correlation_id == result.job_id for e in progress)
        assert progress[-1].progress == 100.0

        finished = bus.get_history("import_finished")
        assert len(finished) == 1
        assert finished[0].status == "completed"
        assert finished[0].succeeded == 1200

    @pytest.mark.asyncio
    async def test_failed_import_publishes_finished(self, pipeline, bus) -> None:
        """Failed import publishes finished."""
        await pipeline.run([], USER)
        finished = bus.get_history("import_finished")
        assert finished[0].status == "failed"
        assert finished[0].error == "No records to import"
        assert bus.get_history("import_started") == []

    @pytest.mark.asyncio
    async def test_cache_invalidated_for_user(self, backend, config, make_records) -> None:
        """Cache invalidated for user."""
        cache = TradeCache(CacheConfig())
        cache.set("statistics", f"{USER}:3_2025-01-02_2025-01-06_50@10000", "stale")
        cache.set("statistics", "user-2:fp@10000", "other")
        pipeline = ImportPipeline(backend, config, cache=cache)

        await pipeline.run(make_records(2), USER)

        assert cache.get("statistics", f"{USER}:3_2025-01-02_2025-01-06_50@10000") is None
        assert cache.get("statistics", "user-2:fp@10000") == "other"

    @pytest.mark.asyncio
    async def test_refresh_called_sync_and_async(self, backend, config, make_records) -> None:
        """Refresh called sync and async."""
        calls = []

        async def refresh(user_id):
            calls.append(("async", user_id, await backend.count(user_id)))

        await ImportPipeline(backend, config, on_refresh=refresh).run(make_records(2), USER)
        await ImportPipeline(backend, config, on_refresh=lambda u: calls.append(("sync", u))).run(
            make_records(2, 10), USER
        )
        assert calls == [("async", USER, 2), ("sync", USER)]

    @pytest.mark.asyncio
    async def test_refresh_failure_is_not_fatal(self, backend, config, make_records) -> None:
        """Refresh failure is not fatal."""
        def refresh(user_id):
            raise RuntimeError("store disposed")

        result = await ImportPipeline(backend, config, on_refresh=refresh).run(make_records(2), USER)
        assert result.status == ImportStatus.COMPLETED


class TestHousekeeping:
    """Test cleanup and stats passthrough."""

    @pytest.mark.asyncio
    async def test_cleanup_and_stats(self, pipeline, make_records) -> None:
        """Cleanup and stats."""
        result = await pipeline.run(make_records(2), USER)
        assert pipeline.get_stats()["completed_today"] == 1

        later = pipeline.get_job(result.job_id).finished_at.replace(year=2099)
        assert pipeline.cleanup_completed(later) == 1
        with pytest.raises(JobNotFoundError):
            pipeline.get_status(result.job_id)
