"""Path-based metadata extraction for documentation files.

Derives tags, product, framework and document type from a document's path
alone.  Every method is deterministic and total: any string yields a value
and nothing here raises, so a strange path can never abort an indexing run.

Example (root segment excluded)::

    "docs_6.3.3/grid/api/Grid.md"
        tags      -> ["grid", "api"]
        product   -> "grid"
        framework -> "vanilla"
        type      -> "api"

Matching is done on whole directory segments, case-insensitively.  The
file name itself never matches, so ``"misc/grid.md"`` is not a grid doc.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from src.config.loader import DEFAULT_TAXONOMY

logger = structlog.get_logger(logger_name=__name__)


class PathMetadataExtractor:
    """Maps a document path onto tags and taxonomy fields.

    Parameters
    ----------
    taxonomy:
        Mapping with ``products``, ``frameworks`` and ``types`` keys plus
        their ``default_*`` fallbacks (see ``config/config.yaml``).  Missing
        keys fall back to the built-in taxonomy.
    include_root_segment:
        Whether the first path segment becomes a tag.  Archive uploads put
        everything under one top folder (``docs_6.3.3/``), which makes a
        useless tag, so the default leaves it out.
    """

    def __init__(
        self,
        taxonomy: Mapping[str, Any] | None = None,
        include_root_segment: bool = False,
    ) -> None:
        merged = {**DEFAULT_TAXONOMY, **(taxonomy or {})}
        self._products: list[str] = [p.lower() for p in merged["products"]]
        self._frameworks: list[str] = [f.lower() for f in merged["frameworks"]]
        self._types: dict[str, str] = {k.lower(): v for k, v in merged["types"].items()}
        self._default_product: str = merged["default_product"]
        self._default_framework: str = merged["default_framework"]
        self._default_type: str = merged["default_type"]
        self._include_root_segment = include_root_segment

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, path: str) -> dict[str, Any]:
        """Return ``{"tags", "product", "framework", "type"}`` for *path*."""
        metadata = {
            "tags": self.extract_tags(path),
            "product": self.extract_product(path),
            "framework": self.extract_framework(path),
            "type": self.extract_type(path),
        }
        logger.debug("path_metadata_extracted", path=path, **metadata)
        return metadata

    def extract_tags(self, path: str) -> list[str]:
        """Directory segments of *path*, de-duplicated in first-seen order."""
        segments = self._directories(path)
        if not self._include_root_segment:
            segments = segments[1:]
        return list(dict.fromkeys(segments))

    def extract_product(self, path: str) -> str:
        return self._first_known(path, self._products, self._default_product)

    def extract_framework(self, path: str) -> str:
        return self._first_known(path, self._frameworks, self._default_framework)

    def extract_type(self, path: str) -> str:
        segments = {s.lower() for s in self._directories(path)}
        for keyword, doc_type in self._types.items():
            if keyword in segments:
                return doc_type
        return self._default_type

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _directories(path: str) -> list[str]:
        """Return the directory segments of *path* (file name dropped)."""
        parts = [p for p in str(path).replace("\\", "/").split("/") if p and p != "."]
        return parts[:-1]

    def _first_known(self, path: str, known: list[str], default: str) -> str:
        # Priority follows the order of the known list, not the path.
        segments = {s.lower() for s in self._directories(path)}
        for token in known:
            if token in segments:
                return token
        return default
