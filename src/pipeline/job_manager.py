"""Background job registry with progress fan-out to listeners.

Tracks every indexing job by id and broadcasts each change to registered
listener callbacks.  Two event names are emitted per mutation:

    ``"progress"``        -- every job, for "list active jobs" views
    ``"progress:<id>"``   -- one job, for a client following a single run

Jobs are immutable :class:`~src.models.job.Job` snapshots; the manager's
job map is the only mutable state, and each transition swaps in a new
snapshot via ``model_copy``.  All mutation happens on the event loop
thread, so no locking is needed.

The manager is constructed explicitly and passed to whoever needs it;
tests build a fresh instance per case.
"""

from __future__ import annotations

import asyncio
import traceback
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.models.job import Job, JobError, JobStatus
from src.utils.errors import JobStateError

logger = structlog.get_logger(logger_name=__name__)

PROGRESS_EVENT = "progress"

JobListener = Callable[[Job], Any]

# Fields a progress update may change.  Status and timestamps move only
# through the explicit transition methods.
_UPDATABLE_FIELDS = frozenset(
    {
        "stage",
        "progress",
        "message",
        "metadata",
        "version",
        "documents_processed",
        "chunks_indexed",
        "total_documents",
    }
)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class JobManager:
    """Owns background jobs and notifies listeners of every change.

    Parameters
    ----------
    retention_hours:
        Terminal jobs older than this are removed by :meth:`cleanup`.
    cleanup_interval_seconds:
        Default period of the task started by :meth:`start_cleanup_task`.
    """

    def __init__(self, retention_hours: float = 24, cleanup_interval_seconds: float = 3600) -> None:
        self._jobs: dict[str, Job] = {}
        self._listeners: dict[str, list[JobListener]] = {}
        self._retention = timedelta(hours=retention_hours)
        self._cleanup_interval = cleanup_interval_seconds
        self._cleanup_task: asyncio.Task[None] | None = None
        # Strong references to scheduled async callbacks; the event loop
        # only keeps weak ones.
        self._pending_callbacks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def create_job(self, job_type: str, metadata: dict[str, Any] | None = None) -> str:
        """Register a new pending job and return its id."""
        job = Job(id=str(uuid.uuid4()), type=job_type, metadata=dict(metadata or {}))
        self._jobs[job.id] = job
        logger.info("job_created", job_id=job.id, job_type=job_type)
        return job.id

    def update_job(self, job_id: str, **updates: Any) -> Job | None:
        """Apply progress fields to a non-terminal job and notify listeners.

        Parameters
        ----------
        job_id:
            Job to update.
        **updates:
            Any of ``stage``, ``progress``, ``message``, ``metadata``,
            ``version``, ``documents_processed``, ``chunks_indexed``,
            ``total_documents``.

        Returns
        -------
        Job | None
            The new snapshot, or ``None`` when the id is unknown (logged
            as a warning, not raised).

        Raises
        ------
        JobStateError
            If the job is already completed or failed.
        ValueError
            If *updates* names a field outside the list above.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")

        job = self._jobs.get(job_id)
        if job is None:
            logger.warning("job_not_found", job_id=job_id)
            return None
        self._ensure_not_terminal(job, "update")

        if "progress" in updates:
            updates["progress"] = max(0, min(100, int(updates["progress"])))
        updated = self._replace(job, **updates)
        logger.debug("job_updated", job_id=job_id, stage=updated.stage, progress=updated.progress)
        return updated

    def start_job(self, job_id: str) -> Job:
        """Move a pending job to RUNNING."""
        job = self._require(job_id)
        if job.status is not JobStatus.PENDING:
            raise JobStateError(
                message=f"Cannot start job {job_id} in state {job.status.value}",
                provider_name="job_manager",
            )
        now = _utcnow()
        updated = self._replace(job, status=JobStatus.RUNNING, started_at=now, updated_at=now)
        logger.info("job_started", job_id=job_id, job_type=job.type)
        return updated

    def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> Job:
        """Move a job to COMPLETED with progress 100."""
        job = self._require(job_id)
        self._ensure_not_terminal(job, "complete")
        updated = self._replace(
            job,
            status=JobStatus.COMPLETED,
            progress=100,
            stage="completed",
            message="Job completed successfully",
            result=result,
            completed_at=_utcnow(),
        )
        logger.info("job_completed", job_id=job_id, job_type=job.type)
        return updated

    def fail_job(self, job_id: str, error: BaseException) -> Job:
        """Move a job to FAILED, keeping the exception message and traceback."""
        job = self._require(job_id)
        self._ensure_not_terminal(job, "fail")
        message = str(error) or type(error).__name__
        updated = self._replace(
            job,
            status=JobStatus.FAILED,
            stage="error",
            message=message,
            error=JobError(
                message=message,
                stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            ),
            failed_at=_utcnow(),
        )
        logger.error("job_failed", job_id=job_id, job_type=job.type, error=message)
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def get_all_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def get_active_jobs(self) -> list[Job]:
        """Return jobs that are currently RUNNING."""
        return [job for job in self._jobs.values() if job.status is JobStatus.RUNNING]

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on(self, event: str, callback: JobListener) -> Callable[[], None]:
        """Register *callback* for *event*; returns a function that unregisters it.

        Callbacks receive the new :class:`Job` snapshot.  Async callbacks
        are scheduled on the running loop rather than awaited.
        """
        listeners = self._listeners.setdefault(event, [])
        if callback not in listeners:
            listeners.append(callback)
            logger.debug("listener_registered", event_name=event, total_listeners=len(listeners))
        return lambda: self.off(event, callback)

    def off(self, event: str, callback: JobListener) -> None:
        """Remove a previously registered callback.  Unknown callbacks are ignored."""
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)
            logger.debug(
                "listener_unregistered", event_name=event, remaining_listeners=len(listeners)
            )
        if not listeners:
            self._listeners.pop(event, None)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def cleanup(self, max_age: timedelta | None = None, now: datetime | None = None) -> int:
        """Remove terminal jobs last updated more than *max_age* ago.

        Returns the number of jobs removed.
        """
        cutoff = (now or _utcnow()) - (max_age if max_age is not None else self._retention)
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status.is_terminal and job.updated_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._listeners.pop(f"{PROGRESS_EVENT}:{job_id}", None)
        if expired:
            logger.info("jobs_cleaned_up", removed=len(expired), remaining=len(self._jobs))
        return len(expired)

    def start_cleanup_task(self, interval_seconds: float | None = None) -> asyncio.Task[None]:
        """Run :meth:`cleanup` every *interval_seconds* on the running loop.

        Defaults to the interval given at construction.  Calling it again
        while the task runs returns the running task.
        """
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(
                self._cleanup_loop(interval_seconds or self._cleanup_interval)
            )
        return self._cleanup_task

    async def stop_cleanup_task(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.cleanup()

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobStateError(message=f"Unknown job {job_id}", provider_name="job_manager")
        return job

    @staticmethod
    def _ensure_not_terminal(job: Job, action: str) -> None:
        if job.status.is_terminal:
            raise JobStateError(
                message=f"Cannot {action} job {job.id}: already {job.status.value}",
                provider_name="job_manager",
            )

    def _replace(self, job: Job, **changes: Any) -> Job:
        changes.setdefault("updated_at", _utcnow())
        updated = job.model_copy(update=changes)
        self._jobs[job.id] = updated
        self._emit(PROGRESS_EVENT, updated)
        self._emit(f"{PROGRESS_EVENT}:{job.id}", updated)
        return updated

    def _emit(self, event: str, job: Job) -> None:
        """Invoke every listener for *event*.

        Iterates over a copy so a callback may unsubscribe itself.  A
        failing listener is logged and skipped.
        """
        for callback in list(self._listeners.get(event, [])):
            outcome = None
            try:
                outcome = callback(job)
                if asyncio.iscoroutine(outcome):
                    task = asyncio.get_running_loop().create_task(outcome)
                    self._pending_callbacks.add(task)
                    task.add_done_callback(self._on_callback_done)
            except Exception as exc:
                # No running loop: the coroutine was never scheduled.
                if asyncio.iscoroutine(outcome):
                    outcome.close()
                logger.warning(
                    "listener_callback_error",
                    event_name=event,
                    job_id=job.id,
                    error=str(exc),
                )

    def _on_callback_done(self, task: asyncio.Task[Any]) -> None:
        self._pending_callbacks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("listener_callback_error", error=str(exc))
