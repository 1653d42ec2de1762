"""Orchestrator for one indexing run: source -> chunks -> (vectors) -> store.

The :class:`IndexService` coordinates four collaborators without any of
them knowing about each other:

    1. IDocumentSource      -- yields raw documents, lazily
    2. DocumentProcessor    -- chunks them and derives path metadata
    3. EmbeddingService     -- attaches vectors (only when the store needs them)
    4. IVectorStoreProvider -- persists chunks in batches

Indexing a version is a whole-version replace: chunks already stored
under the same label are deleted before new ones are written.

Progress milestones reported through ``on_progress``::

      0  initializing
      5  clearing       (only when the version already exists)
     10  extracting     (enumerating the source)
     15  extracting     (document count known)
  20-95  processing     (linear in documents processed)
     98  finalizing
    100  completed
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from src.models.rag import IndexProgress, IndexResult
from src.utils.errors import InvalidRequestError

if TYPE_CHECKING:
    from src.interfaces.document_source import IDocumentSource
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.models.document import Chunk
    from src.services.ingestion.document_processor import DocumentProcessor
    from src.services.ingestion.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[IndexProgress], Awaitable[None] | None]

_PROCESSING_START = 20
_PROCESSING_SPAN = 75
_PROCESSING_END = 95


class IndexService:
    """Indexes every document of a source under one version label.

    Parameters
    ----------
    document_source:
        Where the documents come from.  Cleaned up after a successful run.
    document_processor:
        Turns documents into chunks.
    vector_store:
        Destination store.
    embedding_service:
        Required only when the store does not embed text itself.
    """

    def __init__(
        self,
        document_source: IDocumentSource,
        document_processor: DocumentProcessor,
        vector_store: IVectorStoreProvider,
        embedding_service: EmbeddingService | None = None,
    ) -> None:
        self._source = document_source
        self._processor = document_processor
        self._store = vector_store
        self._embedding_service = embedding_service

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def index_documents(
        self,
        version: str,
        batch_size: int = 50,
        on_progress: ProgressCallback | None = None,
    ) -> IndexResult:
        """Index the source's documents as *version*.

        Parameters
        ----------
        version:
            Version label stamped on every chunk and appended to its tags.
        batch_size:
            Chunks buffered before each write to the store.
        on_progress:
            Optional sync or async callback receiving :class:`IndexProgress`.

        Returns
        -------
        IndexResult
            Documents processed (counted by ``chunk_index == 0``) and chunks
            written.

        Raises
        ------
        InvalidRequestError
            If *version* is empty or *batch_size* is below 1.
        src.utils.errors.RAGError
            If embedding or storage fails.  Nothing is rolled back; the
            caller decides how to report the failure.
        """
        if not version or not version.strip():
            raise InvalidRequestError(message="A version label is required to index documents")
        if batch_size < 1:
            raise InvalidRequestError(message="batch_size must be at least 1")
        if not self._store.self_embeds and self._embedding_service is None:
            raise InvalidRequestError(
                message="An embedding service is required for a store that does not self-embed"
            )

        await self._report(on_progress, "initializing", 0, "Initializing vector store", version)
        await self._store.initialize()

        if version in await self._store.get_all_versions():
            await self._report(
                on_progress, "clearing", 5, f"Removing existing chunks for {version}", version
            )
            deleted = await self._store.delete_by_version(version)
            logger.info("version_overwrite", version=version, deleted_chunks=deleted)

        await self._report(on_progress, "extracting", 10, "Reading documents", version)
        total = await self._source.get_document_count()
        await self._report(
            on_progress,
            "extracting",
            15,
            f"Found {total} documents" if total is not None else "Document count unknown",
            version,
            total_documents=total,
        )

        documents_processed = 0
        chunks_indexed = 0
        buffer: list[Chunk] = []

        async for chunk in self._processor.process_documents(self._source.read_documents()):
            buffer.append(chunk.with_version(version))
            if chunk.metadata.chunk_index == 0:
                documents_processed += 1
                await self._report(
                    on_progress,
                    "processing",
                    self._processing_progress(documents_processed, total),
                    f"Processing document {documents_processed}"
                    + (f" of {total}" if total else ""),
                    version,
                    documents_processed=documents_processed,
                    chunks_indexed=chunks_indexed,
                    total_documents=total,
                )
            if len(buffer) >= batch_size:
                chunks_indexed += await self._flush(buffer)
                buffer = []

        if buffer:
            chunks_indexed += await self._flush(buffer)

        await self._report(
            on_progress,
            "finalizing",
            98,
            "Cleaning up",
            version,
            documents_processed=documents_processed,
            chunks_indexed=chunks_indexed,
            total_documents=total,
        )
        await self._source.cleanup()

        result = IndexResult(documents_processed=documents_processed, chunks_indexed=chunks_indexed)
        await self._report(
            on_progress,
            "completed",
            100,
            f"Indexed {documents_processed} documents ({chunks_indexed} chunks)",
            version,
            documents_processed=documents_processed,
            chunks_indexed=chunks_indexed,
            total_documents=total,
        )
        logger.info(
            "index_complete",
            version=version,
            documents_processed=documents_processed,
            chunks_indexed=chunks_indexed,
            source=self._source.get_provider_name(),
        )
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _flush(self, chunks: list[Chunk]) -> int:
        """Write one buffer to the store, embedding it first when needed."""
        to_store: list[Chunk]
        if self._store.self_embeds:
            to_store = chunks
        else:
            assert self._embedding_service is not None
            to_store = [embedded async for embedded in self._embedding_service.embed_batch(chunks)]

        written = await self._store.add_documents(to_store)
        logger.debug("index_batch_flushed", count=written)
        return written

    @staticmethod
    def _processing_progress(done: int, total: int | None) -> int:
        # An unknown or empty total keeps the bar at the phase start.
        if not total:
            return _PROCESSING_START
        return min(_PROCESSING_END, _PROCESSING_START + (done * _PROCESSING_SPAN) // total)

    @staticmethod
    async def _report(
        callback: ProgressCallback | None,
        stage: str,
        progress: int,
        message: str,
        version: str,
        **counters: int | None,
    ) -> None:
        if callback is None:
            return
        outcome = callback(
            IndexProgress(stage=stage, progress=progress, message=message, version=version, **counters)
        )
        if asyncio.iscoroutine(outcome):
            await outcome
