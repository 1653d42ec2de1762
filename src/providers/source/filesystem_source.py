"""Directory-tree document source.

Walks a root directory recursively and yields every file whose extension
is on the allow-list as a :class:`~src.models.document.Document` with a
``/``-separated path relative to the root.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from pathlib import Path

import structlog

from src.interfaces.document_source import IDocumentSource
from src.models.document import Document
from src.utils.errors import DocumentSourceError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".markdown")


class FileSystemSource(IDocumentSource):
    """Document source backed by a directory on the local filesystem.

    Parameters
    ----------
    root_path:
        Directory to walk.
    extensions:
        File extensions to include, matched case-insensitively.
    encoding:
        Text encoding used to decode files.
    """

    def __init__(
        self,
        root_path: str | Path,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        encoding: str = "utf-8",
    ) -> None:
        self._root = Path(root_path)
        self._extensions = {ext.lower() for ext in extensions}
        self._encoding = encoding

    # ------------------------------------------------------------------
    # IDocumentSource implementation
    # ------------------------------------------------------------------

    async def read_documents(self) -> AsyncIterator[Document]:
        files = self._find_files()
        logger.info("filesystem_source_reading", root=str(self._root), count=len(files))

        for file_path in files:
            relative = file_path.relative_to(self._root).as_posix()
            try:
                content = await asyncio.to_thread(file_path.read_text, encoding=self._encoding)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("source_file_skipped", path=relative, error=str(exc))
                continue

            yield Document(
                path=relative,
                content=content,
                source_metadata={
                    "source": "filesystem",
                    "full_path": str(file_path),
                    "extension": file_path.suffix,
                },
            )

    async def get_document_count(self) -> int | None:
        return len(self._find_files())

    async def cleanup(self) -> None:
        # Nothing is held open between reads.
        return None

    def get_provider_name(self) -> str:
        return "filesystem"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _find_files(self) -> list[Path]:
        """Return matching files under the root, sorted for a stable order."""
        if not self._root.is_dir():
            raise DocumentSourceError(
                message=f"Source directory not found: {self._root}",
                provider_name=self.get_provider_name(),
            )
        return sorted(
            path
            for path in self._root.rglob("*")
            if path.is_file() and path.suffix.lower() in self._extensions
        )
