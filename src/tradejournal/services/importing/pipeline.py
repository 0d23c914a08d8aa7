"""
Bulk import pipeline.

Drives an ImportJob through its lifecycle:

    initializing → validating → processing → finalizing → completed

Validation and dedup (0-10% progress), transform + chunked persist
(10-90%), then verification, cache invalidation and store refresh
(90-100%). Failures of individual records or chunks are counted and the
job carries on; only job-level problems (no user, no records, backend
unreachable, an import already running) end in status failed.
"""

import asyncio
import datetime
import inspect
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from tradejournal.errors import BackendError, ImportAlreadyRunningError
from tradejournal.events import (
    EventBus,
    ImportFinishedEvent,
    ImportProgressEvent,
    ImportStartedEvent,
)
from tradejournal.services.cache import TradeCache
from tradejournal.services.importing.backend import PersistenceBackend
from tradejournal.services.importing.config import ImportConfig
from tradejournal.services.importing.jobs import JobRegistry
from tradejournal.services.importing.models import (
    ChunkResult,
    ImportJob,
    ImportProgress,
    ImportResult,
    ImportStatus,
    ImportVerification,
    SkipReason,
    ValidationReport,
)
from tradejournal.services.importing.transform import transform_for_persistence
from tradejournal.services.importing.validation import (
    calculate_optimal_chunk_size,
    issue_messages,
    validate_records,
)
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

ProgressCallback = Callable[[ImportProgress], Any]
RefreshCallback = Callable[[str], Any]

VALIDATE_END = 10.0
PROCESS_END = 90.0


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class ImportPipeline:
    """
    Validates, deduplicates and persists raw trade records for one user.

    Args:
        backend: Persistence backend
        config: Pipeline tuning (defaults apply when omitted)
        event_bus: Receives ImportStarted/Progress/Finished events when given
        cache: Invalidated for the user's scope after an import
        on_refresh: Called with the user id once new rows are persisted, sync or async
        registry: Job registry; a private one is created when omitted

    Example:
        >>> pipeline = ImportPipeline(InMemoryBackend())
        >>> result = await pipeline.run([{"pair": "EURUSD", "type": "buy", "date": "2025-01-02", "entry": "1.25"}], "user-1")
        >>> result.succeeded
        1
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        config: Optional[ImportConfig] = None,
        event_bus: Optional[EventBus] = None,
        cache: Optional[TradeCache] = None,
        on_refresh: Optional[RefreshCallback] = None,
        registry: Optional[JobRegistry] = None,
    ) -> None:
        self.backend = backend
        self.config = config or ImportConfig()
        self.event_bus = event_bus
        self.cache = cache
        self.on_refresh = on_refresh
        self.registry = registry or JobRegistry(self.config)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def run(
        self,
        records: Sequence[Mapping[str, Any]],
        user_id: str,
        *,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """
        Import raw records for a user.

        Never raises for data or backend problems; inspect the returned
        ImportResult. Task cancellation (e.g. asyncio.wait_for timing out)
        marks the job cancelled and propagates.
        """
        started = time.monotonic()
        records = list(records)
        running = self.registry.running_for_user(user_id) if user_id else None
        job = self.registry.create(
            user_id,
            len(records),
            filename,
            deduplicate=self.config.deduplicate,
            chunk_size=self.config.chunk_size,
        )

        try:
            if not user_id:
                raise ValueError("user_id is required")
            if running is not None:
                raise ImportAlreadyRunningError(f"Import {running.id} is already running for user {user_id}")
            if not records:
                raise ValueError("No records to import")
            if not await self.backend.ping():
                raise BackendError("Persistence backend unreachable", code=BackendError.CONNECTION_FAILED)

            self._publish(ImportStartedEvent(job_id=job.id, user_id=user_id, total=len(records), filename=filename))
            logger.info("import.started", job_id=job.id, user_id=user_id, records=len(records), filename=filename)
            return await self._execute(job, records, on_progress, started)
        except asyncio.CancelledError:
            self.registry.touch(job, status=ImportStatus.CANCELLED, cancel_requested=True, error="Import task cancelled")
            self._publish_finished(job)
            logger.warning("import.task_cancelled", job_id=job.id, user_id=user_id)
            raise
        except (ValueError, ImportAlreadyRunningError, BackendError) as e:
            return self._fail(job, str(e), started)
        except Exception as e:
            logger.error("import.unexpected_error", job_id=job.id, user_id=user_id, error=str(e), exc_info=True)
            return self._fail(job, f"Unexpected error: {e}", started)

    def cancel(self, job_id: str) -> bool:
        """
        Request cancellation of a running job.

        Honored while initializing, validating or processing; the pipeline
        stops at the next chunk boundary. In-flight inserts complete.

        Returns:
            True if the job was cancelled
        """
        job = self.registry.get(job_id)
        if job is None or not job.status.is_cancellable:
            return False
        self.registry.touch(job, status=ImportStatus.CANCELLED, cancel_requested=True)
        logger.info("import.cancel_requested", job_id=job_id, user_id=job.user_id)
        return True

    def get_job(self, job_id: str) -> Optional[ImportJob]:
        return self.registry.get(job_id)

    def get_status(self, job_id: str) -> dict[str, Any]:
        """
        Pollable status of a job.

        Raises:
            JobNotFoundError: If the job is unknown or expired into history
        """
        job = self.registry.require(job_id)
        return {
            "status": job.status.value,
            "progress": job.progress,
            "processed": job.totals.processed,
            "succeeded": job.totals.succeeded,
            "failed": job.totals.failed,
            "duplicate": job.totals.duplicate,
            "error": job.error,
        }

    def get_user_active_imports(self, user_id: str) -> list[ImportJob]:
        return [job for job in self.registry.for_user(user_id) if job.is_active]

    def cleanup_completed(self, now: Optional[datetime.datetime] = None) -> int:
        return self.registry.cleanup_completed(now)

    def get_stats(self) -> dict[str, int]:
        return self.registry.stats()

    # ------------------------------------------------------------------ #
    # Phases
    # ------------------------------------------------------------------ #

    async def _execute(
        self,
        job: ImportJob,
        records: list[Mapping[str, Any]],
        on_progress: Optional[ProgressCallback],
        started: float,
    ) -> ImportResult:
        user_id = job.user_id

        # Validating
        self.registry.touch(job, status=ImportStatus.VALIDATING)
        count_before = await self.backend.count(user_id)
        existing = await self.backend.fetch_hashes(user_id) if self.config.deduplicate else set()

        async def on_batch(seen: int, report: ValidationReport) -> None:
            job.totals.failed = report.invalid_count
            job.totals.duplicate = report.duplicate_count
            self.registry.touch(job, progress=round(VALIDATE_END * seen / len(records), 2))
            await self._report(job, on_progress)

        report = await validate_records(
            records,
            existing_hashes=existing,
            deduplicate=self.config.deduplicate,
            batch_size=self.config.validation_batch_size,
            on_batch=on_batch,
        )
        breakdown = report.breakdown
        logger.debug(
            "import.validated",
            job_id=job.id,
            valid=len(report.valid),
            invalid=report.invalid_count,
            duplicate=report.duplicate_count,
        )
        if job.cancel_requested:
            return self._finish(job, started, breakdown, [], None)

        # Processing
        self.registry.touch(job, status=ImportStatus.PROCESSING, progress=VALIDATE_END)
        rows = []
        for trade in report.valid:
            transformed = transform_for_persistence(trade, user_id)
            if transformed.is_err():
                job.totals.failed += 1
                breakdown[SkipReason.SCHEMA_VIOLATION.value] = breakdown.get(SkipReason.SCHEMA_VIOLATION.value, 0) + 1
                logger.debug("import.record_rejected", job_id=job.id, trade_id=trade.id, error=transformed.message)
                continue
            rows.append(transformed.unwrap())

        chunk_errors = await self._persist(job, rows, on_progress)
        if job.cancel_requested:
            await self._refresh(job)
            return self._finish(job, started, breakdown, chunk_errors, None)

        # Finalizing
        self.registry.touch(job, status=ImportStatus.FINALIZING, progress=PROCESS_END)
        verification = await self._verify(job, count_before)
        await self._refresh(job)
        self.registry.touch(job, status=ImportStatus.COMPLETED, progress=100.0)
        await self._report(job, on_progress)
        return self._finish(job, started, breakdown, chunk_errors, verification)

    async def _persist(
        self,
        job: ImportJob,
        rows: list[dict[str, Any]],
        on_progress: Optional[ProgressCallback],
    ) -> list[ChunkResult]:
        if not rows:
            return []
        chunk_size = self.config.chunk_size or calculate_optimal_chunk_size(
            rows,
            max_memory_mb=self.config.max_memory_mb,
            min_size=self.config.min_chunk_size,
            max_size=self.config.max_chunk_size,
        )
        self.registry.touch(job, chunk_size=chunk_size)
        chunks = [rows[i : i + chunk_size] for i in range(0, len(rows), chunk_size)]
        width = self.config.max_concurrent_chunks

        errors: list[ChunkResult] = []
        persisted = 0
        for wave_start in range(0, len(chunks), width):
            if job.cancel_requested:
                logger.info("import.cancelled", job_id=job.id, chunks_done=wave_start, chunks=len(chunks))
                break
            tasks = [
                asyncio.create_task(self._persist_chunk(job, index, chunks[index]))
                for index in range(wave_start, min(wave_start + width, len(chunks)))
            ]
            for result in await asyncio.gather(*tasks):
                job.totals.succeeded += result.inserted
                job.totals.failed += result.failed
                persisted += result.size
                if not result.ok:
                    errors.append(result)
                progress = VALIDATE_END + (PROCESS_END - VALIDATE_END) * persisted / len(rows)
                self.registry.touch(job, progress=round(progress, 2))
                await self._report(job, on_progress)
        return errors

    async def _persist_chunk(self, job: ImportJob, index: int, chunk: list[dict[str, Any]]) -> ChunkResult:
        try:
            inserted = await self.backend.insert_chunk(job.user_id, chunk)
        except BackendError as e:
            logger.warning(
                "import.chunk_failed",
                job_id=job.id,
                chunk=index + 1,
                size=len(chunk),
                code=e.code,
                category=e.category,
                error=str(e),
            )
            return ChunkResult(index, len(chunk), 0, str(e), e.code, e.category)
        except Exception as e:
            logger.error("import.chunk_failed", job_id=job.id, chunk=index + 1, size=len(chunk), error=str(e), exc_info=True)
            return ChunkResult(index, len(chunk), 0, str(e), None, "unknown")
        logger.debug("import.chunk_persisted", job_id=job.id, chunk=index + 1, inserted=inserted)
        return ChunkResult(index, len(chunk), min(inserted, len(chunk)))

    async def _verify(self, job: ImportJob, count_before: int) -> ImportVerification:
        expected = count_before + job.totals.succeeded
        try:
            actual = await self.backend.count(job.user_id)
        except Exception as e:
            logger.warning("import.verification_failed", job_id=job.id, error=str(e))
            return ImportVerification(False, expected, None, str(e))
        if actual != expected:
            logger.warning("import.verification_mismatch", job_id=job.id, expected=expected, actual=actual)
        return ImportVerification(actual == expected, expected, actual)

    async def _refresh(self, job: ImportJob) -> None:
        if self.cache is not None:
            removed = self.cache.invalidate(job.user_id)
            logger.debug("import.cache_invalidated", job_id=job.id, scope=job.user_id, entries=removed)
        if self.on_refresh is None:
            return
        try:
            await _maybe_await(self.on_refresh(job.user_id))
        except Exception as e:
            logger.warning("import.refresh_failed", job_id=job.id, user_id=job.user_id, error=str(e))

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    async def _report(self, job: ImportJob, on_progress: Optional[ProgressCallback]) -> None:
        totals = job.totals
        snapshot = ImportProgress(
            phase=job.phase,
            processed=totals.processed,
            total=totals.total,
            succeeded=totals.succeeded,
            failed=totals.failed,
            duplicate=totals.duplicate,
            progress=job.progress,
        )
        self._publish(
            ImportProgressEvent(
                job_id=job.id,
                user_id=job.user_id,
                phase=snapshot.phase,
                processed=snapshot.processed,
                total=snapshot.total,
                succeeded=snapshot.succeeded,
                failed=snapshot.failed,
                duplicate=snapshot.duplicate,
                progress=snapshot.progress,
                correlation_id=job.id,
            )
        )
        if on_progress is None:
            return
        try:
            await _maybe_await(on_progress(snapshot))
        except Exception as e:
            logger.warning("import.progress_callback_failed", job_id=job.id, error=str(e))

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def _publish_finished(self, job: ImportJob) -> None:
        self._publish(
            ImportFinishedEvent(
                job_id=job.id,
                user_id=job.user_id,
                status=job.status.value,
                succeeded=job.totals.succeeded,
                failed=job.totals.failed,
                duplicate=job.totals.duplicate,
                error=job.error,
                correlation_id=job.id,
            )
        )

    def _finish(
        self,
        job: ImportJob,
        started: float,
        breakdown: dict[str, int],
        chunk_errors: list[ChunkResult],
        verification: Optional[ImportVerification],
    ) -> ImportResult:
        issues = issue_messages(breakdown)
        issues.extend(
            f"Chunk {result.index + 1} failed ({result.category or 'unknown'}): {result.error}" for result in chunk_errors
        )
        job.issues = issues
        self._publish_finished(job)

        result = ImportResult(
            job_id=job.id,
            status=job.status,
            total=job.totals.total,
            succeeded=job.totals.succeeded,
            failed=job.totals.failed,
            duplicate=job.totals.duplicate,
            breakdown=breakdown,
            issues=issues,
            chunk_errors=chunk_errors,
            verification=verification,
            duration_seconds=round(time.monotonic() - started, 3),
            error=job.error,
        )
        logger.info(
            "import.finished",
            job_id=job.id,
            user_id=job.user_id,
            status=job.status.value,
            succeeded=result.succeeded,
            failed=result.failed,
            duplicate=result.duplicate,
            duration=result.duration_seconds,
        )
        return result

    def _fail(self, job: ImportJob, message: str, started: float) -> ImportResult:
        self.registry.touch(job, status=ImportStatus.FAILED, error=message)
        logger.error("import.failed", job_id=job.id, user_id=job.user_id, error=message)
        self._publish_finished(job)
        return ImportResult(
            job_id=job.id,
            status=ImportStatus.FAILED,
            total=job.totals.total,
            duration_seconds=round(time.monotonic() - started, 3),
            error=message,
        )
