"""Abstract base class for document sources.

Defines the contract for anything that yields raw Markdown documents into
the indexing pipeline: a directory on disk, an uploaded ZIP archive, or any
other container of files.  The adapter pattern keeps the index service
independent of where documents live.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from src.models.document import Document


# Concrete implementations: FileSystemSource, ZipSource (src/providers/source/)
class IDocumentSource(ABC):
    """Contract for document sources consumed by the index service.

    A source is single-pass: :meth:`read_documents` returns a lazy async
    iterator that is finite and not restartable.  Re-reading means building
    a new source.  Archive-backed sources hold their handle open until
    :meth:`cleanup` is called.
    """

    @abstractmethod
    def read_documents(self) -> AsyncIterator[Document]:
        """Yield every document whose extension is on the allow-list.

        Implementations must not fail the whole read because of one bad
        entry: an unreadable file is logged as a warning and skipped.

        Returns
        -------
        AsyncIterator[Document]
            Documents in a stable order (sorted by path).

        Raises
        ------
        src.utils.errors.DocumentSourceError
            If the source as a whole cannot be opened.
        """

    @abstractmethod
    async def get_document_count(self) -> int | None:
        """Return the number of documents :meth:`read_documents` will yield.

        Returns ``None`` when the count cannot be known up front.
        """

    @abstractmethod
    async def cleanup(self) -> None:
        """Release held resources (archive handles, temp files).

        Must be idempotent: calling it twice, or before any read, is a no-op.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"filesystem"`` or ``"zip"``."""
