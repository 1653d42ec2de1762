"""Per-version metadata kept as JSON files beside the vector store.

Each indexed version gets ``<metadata_path>/<version>.json`` holding facts
harvested from its documents, currently the package install commands
for the configured npm scope.  Operators can edit the file through
:meth:`VersionMetadataService.update_metadata`; a manually updated file is
never overwritten by automatic regeneration.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from src.utils.errors import InvalidRequestError

if TYPE_CHECKING:
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.models.document import Chunk

logger = structlog.get_logger(logger_name=__name__)

_SCAN_LIMIT = 1000
_VERSION_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


def _utcnow_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class VersionMetadataService:
    """Reads, writes and regenerates version metadata files.

    Parameters
    ----------
    metadata_path:
        Directory holding one JSON file per version.  Created on first write.
    install_scope:
        npm scope (without ``@``) whose trial-alias install commands are
        harvested, e.g. ``"acme"`` matches
        ``npm install @acme/grid@npm:@acme/grid-trial@6.0.0``.  Empty
        disables the harvest.
    """

    def __init__(self, metadata_path: str | Path = "./data/metadata", install_scope: str = "") -> None:
        self._metadata_path = Path(metadata_path)
        self._install_scope = install_scope.lstrip("@")
        self._npm_pattern: re.Pattern[str] | None = None
        self._yarn_pattern: re.Pattern[str] | None = None
        if self._install_scope:
            scope = re.escape(self._install_scope)
            command = rf"@{scope}/([a-z]+)@npm:@{scope}/\1-trial@[\d.]+"
            self._npm_pattern = re.compile(rf"npm install {command}", re.IGNORECASE)
            self._yarn_pattern = re.compile(rf"yarn add {command}", re.IGNORECASE)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_metadata(self, version: str) -> dict[str, Any] | None:
        """Return the stored metadata for *version*, or ``None`` if absent."""
        path = self._file_for(version)
        if not path.exists():
            logger.debug("version_metadata_missing", version=version)
            return None
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return json.loads(text)

    async def save_metadata(self, version: str, metadata: dict[str, Any]) -> dict[str, Any]:
        """Write *metadata* for *version*, stamping ``version`` and ``updatedAt``."""
        path = self._file_for(version)
        stamped = {**metadata, "version": version, "updatedAt": _utcnow_iso()}
        await asyncio.to_thread(self._write, path, stamped)
        logger.info("version_metadata_saved", version=version, path=str(path))
        return stamped

    async def update_metadata(self, version: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Merge *updates* into the stored metadata and mark it manually edited."""
        existing = await self.get_metadata(version) or {}
        return await self.save_metadata(version, {**existing, **updates, "manuallyUpdated": True})

    def extract_install_commands(self, chunks: Sequence[Chunk]) -> dict[str, dict[str, str]] | None:
        """Harvest install commands per package from chunk text.

        Returns ``{package: {"npm": ..., "yarn": ...}}`` or ``None`` when
        nothing matched.  The first npm command seen for a package wins; a
        yarn command is recorded only for packages that already have one.
        """
        if self._npm_pattern is None or self._yarn_pattern is None:
            return None

        commands: dict[str, dict[str, str]] = {}
        for chunk in chunks:
            for match in self._npm_pattern.finditer(chunk.text):
                commands.setdefault(match.group(1).lower(), {"npm": match.group(0)})
            for match in self._yarn_pattern.finditer(chunk.text):
                package = match.group(1).lower()
                if package in commands:
                    commands[package]["yarn"] = match.group(0)

        logger.debug("install_commands_extracted", packages=sorted(commands))
        return commands or None

    async def generate_metadata(
        self, version: str, vector_store: IVectorStoreProvider
    ) -> dict[str, Any] | None:
        """Rebuild metadata for *version* from its indexed chunks.

        Returns ``None`` when the version has no chunks.  Metadata that was
        updated by hand is returned unchanged.
        """
        self._file_for(version)
        chunks = await vector_store.list_documents({"version": version}, limit=_SCAN_LIMIT)
        if not chunks:
            logger.warning("version_metadata_no_documents", version=version)
            return None

        existing = await self.get_metadata(version)
        if existing and existing.get("manuallyUpdated"):
            logger.info("version_metadata_manual_kept", version=version)
            return existing

        return await self.save_metadata(
            version,
            {
                "installCommands": self.extract_install_commands(chunks) or {},
                "extractedAt": _utcnow_iso(),
                "manuallyUpdated": False,
                "documentCount": len(chunks),
            },
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _file_for(self, version: str) -> Path:
        if not version or not _VERSION_PATTERN.match(version) or ".." in version:
            raise InvalidRequestError(
                message=f"Invalid version label: {version!r}",
                provider_name="version_metadata",
            )
        return self._metadata_path / f"{version}.json"

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
