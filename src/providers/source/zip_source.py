"""ZIP archive document source.

Reads Markdown entries straight out of an uploaded archive without
extracting it to disk.  The archive is opened on first use and held open
until :meth:`ZipSource.cleanup`; entry paths keep the archive's internal
layout (usually a single top-level folder such as ``docs_6.3.3/``).
"""

from __future__ import annotations

import posixpath
import zipfile
from collections.abc import AsyncIterator, Iterable
from pathlib import Path

import structlog

from src.interfaces.document_source import IDocumentSource
from src.models.document import Document
from src.providers.source.filesystem_source import DEFAULT_EXTENSIONS
from src.utils.errors import DocumentSourceError

logger = structlog.get_logger(logger_name=__name__)


class ZipSource(IDocumentSource):
    """Document source backed by a ZIP archive.

    Parameters
    ----------
    archive_path:
        Path of the ``.zip`` file.
    extensions:
        File extensions to include, matched case-insensitively.
    encoding:
        Text encoding used to decode entries.
    """

    def __init__(
        self,
        archive_path: str | Path,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        encoding: str = "utf-8",
    ) -> None:
        self._archive_path = Path(archive_path)
        self._extensions = {ext.lower() for ext in extensions}
        self._encoding = encoding
        self._archive: zipfile.ZipFile | None = None

    # ------------------------------------------------------------------
    # IDocumentSource implementation
    # ------------------------------------------------------------------

    async def read_documents(self) -> AsyncIterator[Document]:
        archive = self._open()
        entries = self._matching_entries(archive)
        logger.info("zip_source_reading", archive=str(self._archive_path), count=len(entries))

        for entry in entries:
            try:
                content = archive.read(entry).decode(self._encoding)
            except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as exc:
                logger.warning("source_file_skipped", path=entry.filename, error=str(exc))
                continue

            yield Document(
                path=entry.filename,
                content=content,
                source_metadata={
                    "source": "zip",
                    "archive_path": str(self._archive_path),
                    "extension": posixpath.splitext(entry.filename)[1],
                    "size": entry.file_size,
                },
            )

    async def get_document_count(self) -> int | None:
        return len(self._matching_entries(self._open()))

    async def cleanup(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None
            logger.debug("zip_source_closed", archive=str(self._archive_path))

    def get_provider_name(self) -> str:
        return "zip"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _open(self) -> zipfile.ZipFile:
        if self._archive is None:
            try:
                self._archive = zipfile.ZipFile(self._archive_path)
            except (OSError, zipfile.BadZipFile) as exc:
                raise DocumentSourceError(
                    message=f"Cannot open archive {self._archive_path}: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
        return self._archive

    def _matching_entries(self, archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
        return sorted(
            (
                info
                for info in archive.infolist()
                if not info.is_dir()
                and posixpath.splitext(info.filename)[1].lower() in self._extensions
            ),
            key=lambda info: info.filename,
        )
