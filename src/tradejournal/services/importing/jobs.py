"""Import job registry.

Holds jobs while they run and for a retention window after they finish so
callers can poll status. cleanup_completed moves expired jobs to a bounded
history.
"""

import datetime
from collections.abc import Callable
from typing import Any, Optional

from tradejournal.errors import JobNotFoundError
from tradejournal.services.importing.config import ImportConfig
from tradejournal.services.importing.models import ImportJob, ImportStatus
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class JobRegistry:
    """Active and retained import jobs plus a capped history."""

    def __init__(
        self,
        config: Optional[ImportConfig] = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self.config = config or ImportConfig()
        self._clock = clock
        self._jobs: dict[str, ImportJob] = {}
        self._history: list[ImportJob] = []

    def now(self) -> datetime.datetime:
        return self._clock()

    def create(self, user_id: str, total: int, filename: Optional[str] = None, **settings: Any) -> ImportJob:
        now = self._clock()
        job = ImportJob(user_id=user_id, filename=filename, started_at=now, last_updated_at=now, settings=settings)
        job.totals.total = total
        self._jobs[job.id] = job
        return job

    def touch(self, job: ImportJob, **updates: Any) -> None:
        """Apply attribute updates and bump last_updated_at."""
        for name, value in updates.items():
            setattr(job, name, value)
        job.last_updated_at = self._clock()
        if job.status.is_terminal and job.finished_at is None:
            job.finished_at = job.last_updated_at

    def get(self, job_id: str) -> Optional[ImportJob]:
        return self._jobs.get(job_id)

    def require(self, job_id: str) -> ImportJob:
        """
        Raises:
            JobNotFoundError: If the job is unknown or already moved to history
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def running_for_user(self, user_id: str) -> Optional[ImportJob]:
        """The user's non-terminal job, if any."""
        for job in self._jobs.values():
            if job.user_id == user_id and job.is_active:
                return job
        return None

    def for_user(self, user_id: str) -> list[ImportJob]:
        """Every tracked (running or retained) job of a user, oldest first."""
        return sorted((j for j in self._jobs.values() if j.user_id == user_id), key=lambda j: j.started_at)

    @property
    def history(self) -> list[ImportJob]:
        return list(self._history)

    def cleanup_completed(self, now: Optional[datetime.datetime] = None) -> int:
        """
        Move finished jobs older than the retention window into history.

        History is trimmed to the newest `history_trim_to` entries once it
        exceeds `history_limit`.

        Returns:
            Number of jobs moved
        """
        now = now or self._clock()
        cutoff = now - datetime.timedelta(minutes=self.config.job_retention_minutes)
        expired = [job for job in self._jobs.values() if job.status.is_terminal and job.last_updated_at < cutoff]
        for job in expired:
            del self._jobs[job.id]
            self._history.append(job)

        if len(self._history) > self.config.history_limit:
            self._history = self._history[-self.config.history_trim_to :] if self.config.history_trim_to else []

        if expired:
            logger.debug("import.jobs_cleaned", moved=len(expired), history=len(self._history))
        return len(expired)

    def stats(self, now: Optional[datetime.datetime] = None) -> dict[str, int]:
        now = now or self._clock()
        day_ago = now - datetime.timedelta(hours=24)
        finished = [j for j in [*self._history, *self._jobs.values()] if j.finished_at is not None]
        return {
            "active_imports": sum(1 for j in self._jobs.values() if j.is_active),
            "tracked_jobs": len(self._jobs),
            "completed_today": sum(
                1 for j in finished if j.status == ImportStatus.COMPLETED and j.finished_at >= day_ago
            ),
            "total_history_records": len(self._history),
            "max_concurrent_chunks": self.config.max_concurrent_chunks,
        }
