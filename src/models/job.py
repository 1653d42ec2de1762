"""Background job models.

A :class:`Job` records one asynchronous indexing run.  The record is
frozen; :class:`~src.pipeline.job_manager.JobManager` owns the only mutable
reference (its job map) and replaces the stored instance with a
``model_copy(update={...})`` on every transition.  Listeners therefore
always receive a consistent snapshot that later updates cannot change
under them.

State machine::

    PENDING --start--> RUNNING --complete--> COMPLETED
                               --fail------> FAILED

COMPLETED and FAILED are terminal.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Lifecycle states of a background job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobError(BaseModel):
    """Diagnostic details kept on a failed job."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(description="The exception message.")
    stack: str = Field(default="", description="Formatted traceback of the failure.")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Job(BaseModel):
    """Snapshot of one background job.

    The progress counters (``version``, ``documents_processed`` ...) are
    copied in from the indexing run's progress reports so a single record
    answers "how far along is it?".
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="UUID4 job identifier.")
    type: str = Field(description='Kind of work, e.g. "index".')
    status: JobStatus = Field(default=JobStatus.PENDING)
    stage: str = Field(default="created", description="Current stage name.")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage.")
    message: str = Field(default="Job created")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Caller-supplied context.")
    version: str | None = Field(default=None)
    documents_processed: int | None = Field(default=None)
    chunks_indexed: int | None = Field(default=None)
    total_documents: int | None = Field(default=None)
    result: dict[str, Any] | None = Field(default=None)
    error: JobError | None = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    failed_at: datetime | None = Field(default=None)

    def to_broadcast(self) -> dict[str, Any]:
        """Return the camelCase JSON payload pushed to live-update transports.

        ``id``, ``type``, ``status``, ``stage``, ``progress``, ``message`` and
        ``version`` are always present; the counters, ``result`` and ``error``
        only once known.
        """
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload.setdefault("version", None)
        return payload
