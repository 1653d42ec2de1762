"""Abstract base class for vector-store service providers.

Defines the contract for storing, searching, and managing version-tagged
document chunks.  Implementations may wrap ChromaDB (local/free), Qdrant,
Weaviate, or any other vector database.

Filter semantics
----------------
A filter is a flat ``{field: value | [values]}`` mapping over the persisted
chunk fields (:data:`FILTER_FIELDS`):

* a scalar value is an equality predicate,
* a list value is an OR of equalities on that field,
* multiple fields combine with AND.

For ``tags`` "equality" means membership: ``{"tags": ["react", "vue"]}``
matches chunks tagged with either.  An empty list adds no constraint.
Nothing deeper than AND-of-ORs is supported.  :func:`matches_filters` is the reference evaluation of these
rules; adapters translate them to their backend's query language.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from src.models.document import Chunk, ChunkMetadata
from src.models.rag import CorpusStats, SearchResult

FilterScalar = str | int | float | bool
Filters = Mapping[str, FilterScalar | Sequence[FilterScalar]]

# Persisted field name -> ChunkMetadata attribute.
FILTER_FIELDS: dict[str, str] = {
    "version": "version",
    "path": "document_path",
    "product": "product",
    "framework": "framework",
    "type": "type",
    "tags": "tags",
    "heading": "heading",
    "chunkIndex": "chunk_index",
    "totalChunks": "total_chunks",
}


def filter_values(value: FilterScalar | Sequence[FilterScalar]) -> list[FilterScalar]:
    """Normalize a filter value to the list of accepted alternatives."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]  # type: ignore[list-item]


def matches_filters(metadata: ChunkMetadata, filters: Filters | None) -> bool:
    """Return ``True`` if *metadata* satisfies every clause of *filters*.

    Raises
    ------
    ValueError
        If a filter names a field outside :data:`FILTER_FIELDS`.
    """
    if not filters:
        return True
    for field, value in filters.items():
        if field not in FILTER_FIELDS:
            raise ValueError(f"Unsupported filter field: {field!r}")
        wanted = filter_values(value)
        if not wanted:
            continue
        actual: Any = getattr(metadata, FILTER_FIELDS[field])
        if field == "tags":
            if not any(tag in actual for tag in wanted):
                return False
        elif actual not in wanted:
            return False
    return True


# Concrete implementation: ChromaDBProvider (src/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the indexing pipeline.

    All query and mutation methods are async so network-backed stores do
    not block the event loop.  Chunk ids are caller-assigned, which makes
    re-adding the same chunk an idempotent upsert.
    """

    @property
    def self_embeds(self) -> bool:
        """``True`` when the store computes embeddings from text itself.

        Such stores accept chunks without vectors in :meth:`add_documents`
        and a ``query_text`` without ``query_vector`` in :meth:`search`.
        """
        return False

    @abstractmethod
    async def initialize(self) -> None:
        """Ensure the collection/schema exists.  Idempotent."""

    @abstractmethod
    async def add_documents(self, chunks: Sequence[Chunk]) -> int:
        """Upsert chunks (with vectors when they are :class:`EmbeddedChunk`).

        Parameters
        ----------
        chunks:
            Chunks to store.  Each chunk's ``id`` is the primary key.

        Returns
        -------
        int
            The number of chunks written.

        Raises
        ------
        src.utils.errors.RAGError
            If the store rejects the write, or vectors are missing for a
            store that does not self-embed.
        """

    @abstractmethod
    async def search(
        self,
        query_vector: list[float] | None,
        limit: int = 5,
        filters: Filters | None = None,
        query_text: str | None = None,
    ) -> list[SearchResult]:
        """Rank stored chunks against a query.

        Parameters
        ----------
        query_vector:
            Embedding of the query.  May be ``None`` only when the store
            self-embeds and *query_text* is given.
        limit:
            Maximum number of results to return.
        filters:
            Optional metadata filter (see module docstring).
        query_text:
            Raw query text.  When present it feeds the keyword half of the
            hybrid score.

        Returns
        -------
        list[SearchResult]
            At most *limit* results ranked by hybrid score (descending),
            scores normalized to ``[0, 1]``.
        """

    @abstractmethod
    async def get_document(self, chunk_id: str) -> Chunk | None:
        """Return the stored chunk with *chunk_id*, or ``None``."""

    @abstractmethod
    async def get_document_chunks(self, path: str, version: str) -> list[Chunk]:
        """Return every chunk of one document version, ordered by chunk index."""

    @abstractmethod
    async def list_documents(
        self, filters: Filters | None = None, limit: int | None = None
    ) -> list[Chunk]:
        """Return stored chunks matching *filters* without ranking them."""

    @abstractmethod
    async def delete_documents(self, filters: Filters) -> int:
        """Delete all chunks matching *filters*.  Returns the number deleted."""

    @abstractmethod
    async def delete_by_version(self, version: str) -> int:
        """Delete every chunk bearing *version*.  Returns the number deleted."""

    @abstractmethod
    async def get_all_versions(self) -> list[str]:
        """Return the distinct version labels, ascending (cached briefly)."""

    @abstractmethod
    async def get_latest_version(self) -> str | None:
        """Return the greatest version label, or ``None`` if nothing is indexed.

        "Greatest" uses plain ascending string order, so ``"10.0.0"`` sorts
        before ``"9.0.0"``.
        """

    @abstractmethod
    async def get_all_tags(self) -> list[str]:
        """Return the distinct tags across all chunks, sorted (cached briefly)."""

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return aggregate statistics about the corpus."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Drop and recreate the collection, removing every chunk."""

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
