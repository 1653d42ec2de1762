"""Turns raw documents into ordered, metadata-rich chunks.

The processor combines two collaborators:

    TextChunker           -- splits the content (headers / size / none)
    PathMetadataExtractor -- derives tags, product, framework and type

Every chunk of a document shares the same path metadata and
``total_chunks``; ``chunk_index`` runs ``0..total_chunks-1``.  The version
label is *not* set here; the index service stamps it.

A document that cannot be processed is logged and skipped by
:meth:`DocumentProcessor.process_documents` so one bad file never aborts a
batch.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterable, AsyncIterator

import structlog

from src.models.document import Chunk, ChunkMetadata, Document
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.metadata_extractor import PathMetadataExtractor
from src.utils.errors import DocumentProcessingError

logger = structlog.get_logger(logger_name=__name__)


class DocumentProcessor:
    """Splits documents into :class:`~src.models.document.Chunk` objects.

    Parameters
    ----------
    chunker:
        Chunking strategy to apply.  Defaults to header-aware chunking with
        6000-character sections.
    metadata_extractor:
        Path metadata extractor.  Defaults to the built-in taxonomy.
    """

    def __init__(
        self,
        chunker: TextChunker | None = None,
        metadata_extractor: PathMetadataExtractor | None = None,
    ) -> None:
        self._chunker = chunker or TextChunker()
        self._extractor = metadata_extractor or PathMetadataExtractor()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_document(self, document: Document) -> list[Chunk]:
        """Split one document into chunks.

        Returns
        -------
        list[Chunk]
            Chunks in document order.  A blank document yields none.

        Raises
        ------
        DocumentProcessingError
            If the content is not processable text (e.g. binary data that
            happened to carry a ``.md`` extension).
        """
        if "\x00" in document.content:
            raise DocumentProcessingError(
                message=f"Document {document.path} contains binary data",
                provider_name="document_processor",
            )

        sections = self._chunker.split(document.content)
        path_metadata = self._extractor.extract(document.path)
        total = len(sections)

        chunks = [
            Chunk(
                id=str(uuid.uuid4()),
                text=section.text,
                metadata=ChunkMetadata(
                    document_path=document.path,
                    tags=path_metadata["tags"],
                    product=path_metadata["product"],
                    framework=path_metadata["framework"],
                    type=path_metadata["type"],
                    chunk_index=index,
                    total_chunks=total,
                    heading=section.heading,
                ),
            )
            for index, section in enumerate(sections)
        ]

        logger.debug(
            "document_processed",
            path=document.path,
            chunks=len(chunks),
            product=path_metadata["product"],
            type=path_metadata["type"],
        )
        return chunks

    async def process_documents(self, documents: AsyncIterable[Document]) -> AsyncIterator[Chunk]:
        """Lazily chunk a stream of documents, skipping ones that fail."""
        async for document in documents:
            try:
                chunks = self.process_document(document)
            except Exception as exc:
                logger.error("document_processing_failed", path=document.path, error=str(exc))
                continue
            for chunk in chunks:
                yield chunk
