"""Runs indexing as detached background jobs.

:meth:`IndexJobRunner.submit` registers a job with the
:class:`~src.pipeline.job_manager.JobManager`, schedules the run as an
``asyncio`` task and returns the job id straight away.  The run then:

    1. starts the job
    2. drives IndexService, forwarding every progress report to the job
    3. completes the job with the run's counts and duration
    4. regenerates the version's metadata (best effort)

Any failure in steps 1-3 fails the job with its message and traceback.
The document source is always cleaned up and an uploaded temp file is
always removed, whatever the outcome.  There is no cancellation and no
per-version locking: indexing the same version twice at once is the
caller's mistake.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from src.services.ingestion.index_service import IndexService
from src.utils.errors import InvalidRequestError
from src.utils.logging import bind_job_context, clear_job_context

if TYPE_CHECKING:
    from src.interfaces.document_source import IDocumentSource
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.models.rag import IndexProgress
    from src.pipeline.job_manager import JobManager
    from src.services.ingestion.document_processor import DocumentProcessor
    from src.services.ingestion.embedding_service import EmbeddingService
    from src.services.version_metadata_service import VersionMetadataService

logger = structlog.get_logger(logger_name=__name__)

INDEX_JOB_TYPE = "index"


class IndexJobRunner:
    """Schedules :class:`IndexService` runs and records them as jobs.

    Parameters
    ----------
    job_manager:
        Registry receiving the job and its progress.
    vector_store:
        Store every run writes to.
    document_processor:
        Chunker shared by all runs.
    embedding_service:
        Needed when the store does not self-embed.
    version_metadata_service:
        When given, metadata is regenerated after each successful run.
    batch_size:
        Chunks per store write.
    """

    def __init__(
        self,
        job_manager: JobManager,
        vector_store: IVectorStoreProvider,
        document_processor: DocumentProcessor,
        embedding_service: EmbeddingService | None = None,
        version_metadata_service: VersionMetadataService | None = None,
        batch_size: int = 50,
    ) -> None:
        self._jobs = job_manager
        self._store = vector_store
        self._processor = document_processor
        self._embedding_service = embedding_service
        self._metadata_service = version_metadata_service
        self._batch_size = batch_size
        self._tasks: dict[str, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(
        self,
        source: IDocumentSource,
        version: str,
        metadata: dict[str, Any] | None = None,
        temp_file: str | Path | None = None,
    ) -> str:
        """Schedule indexing of *source* as *version* and return the job id.

        Must be called from inside a running event loop.  Returns once the
        task is scheduled, not once it finishes.

        Raises
        ------
        InvalidRequestError
            If *version* is empty.  No job is created in that case.
        """
        if not version or not version.strip():
            raise InvalidRequestError(message="A version label is required to index documents")

        job_id = self._jobs.create_job(
            INDEX_JOB_TYPE,
            {**(metadata or {}), "version": version, "source": source.get_provider_name()},
        )
        task = asyncio.get_running_loop().create_task(
            self._run(job_id, source, version, Path(temp_file) if temp_file else None),
            name=f"index-{job_id}",
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))
        logger.info("index_job_submitted", job_id=job_id, version=version)
        return job_id

    async def wait(self, job_id: str) -> None:
        """Wait for the run behind *job_id*; returns at once if it is not running."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Wait for every outstanding run to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        job_id: str,
        source: IDocumentSource,
        version: str,
        temp_file: Path | None,
    ) -> None:
        bind_job_context(job_id, version)
        started = time.monotonic()
        try:
            self._jobs.start_job(job_id)
            self._jobs.update_job(job_id, version=version)

            service = IndexService(
                document_source=source,
                document_processor=self._processor,
                vector_store=self._store,
                embedding_service=self._embedding_service,
            )

            def forward(report: IndexProgress) -> None:
                self._jobs.update_job(job_id, **report.model_dump(exclude_none=True))

            result = await service.index_documents(
                version, batch_size=self._batch_size, on_progress=forward
            )
            self._jobs.complete_job(
                job_id,
                {
                    **result.model_dump(by_alias=True),
                    "version": version,
                    "durationMs": int((time.monotonic() - started) * 1000),
                },
            )
        except Exception as exc:
            self._jobs.fail_job(job_id, exc)
        else:
            await self._regenerate_metadata(version)
        finally:
            await self._release(source, temp_file)
            clear_job_context()

    async def _regenerate_metadata(self, version: str) -> None:
        if self._metadata_service is None:
            return
        try:
            await self._metadata_service.generate_metadata(version, self._store)
        except Exception as exc:
            logger.error("version_metadata_generation_failed", version=version, error=str(exc))

    @staticmethod
    async def _release(source: IDocumentSource, temp_file: Path | None) -> None:
        try:
            await source.cleanup()
        except Exception as exc:
            logger.warning("source_cleanup_failed", source=source.get_provider_name(), error=str(exc))
        if temp_file is not None:
            try:
                temp_file.unlink(missing_ok=True)
                logger.debug("temp_file_removed", path=str(temp_file))
            except OSError as exc:
                logger.warning("temp_file_cleanup_failed", path=str(temp_file), error=str(exc))
