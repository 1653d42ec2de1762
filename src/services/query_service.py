"""Version-aware semantic search over the indexed corpus.

:class:`QueryService` resolves which version to search, embeds the query
(or lets a self-embedding store do it), applies metadata filters and
renders results as a Markdown context block for prompt assembly.

Tag requests are handled by over-fetching ``limit * tag_overfetch_factor``
results and post-filtering them client-side.  Combined with a hybrid
query, a store's tag filter can drop good candidates before ranking; the
post-filter keeps the ranking intact and still never returns more than
``limit`` results.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from src.utils.errors import InvalidRequestError

if TYPE_CHECKING:
    from src.interfaces.vector_store_provider import Filters, IVectorStoreProvider
    from src.models.document import Chunk
    from src.models.rag import SearchResult
    from src.services.ingestion.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)

NO_RESULTS_MESSAGE = "No relevant documentation found."
_CONTEXT_SEPARATOR = "\n\n---\n\n"


class QueryService:
    """Search front-end over an :class:`IVectorStoreProvider`.

    Parameters
    ----------
    vector_store:
        The store holding indexed chunks.
    embedding_service:
        Embeds query text.  May be omitted only for a self-embedding store.
    default_limit:
        Result count when the caller does not pass ``limit``.
    tag_overfetch_factor:
        Multiplier applied to ``limit`` when tags are requested.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        embedding_service: EmbeddingService | None = None,
        default_limit: int = 5,
        tag_overfetch_factor: int = 3,
    ) -> None:
        if embedding_service is None and not vector_store.self_embeds:
            raise ValueError("embedding_service is required for a store that does not self-embed")
        self._store = vector_store
        self._embedding_service = embedding_service
        self._default_limit = default_limit
        self._overfetch = max(1, tag_overfetch_factor)

    async def initialize(self) -> None:
        await self._store.initialize()

    async def close(self) -> None:
        await self._store.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        limit: int | None = None,
        filters: Filters | None = None,
        version: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> list[SearchResult]:
        """Search the corpus.

        Parameters
        ----------
        query:
            Natural-language query.
        limit:
            Maximum number of results; defaults to ``default_limit``.
        filters:
            Extra metadata filters, ANDed with the version.
        version:
            Version to search.  Defaults to the latest indexed version.
        tags:
            Keep only results carrying at least one of these tags.

        Returns
        -------
        list[SearchResult]
            At most *limit* results, best first.  Empty when nothing has
            been indexed yet.

        Raises
        ------
        InvalidRequestError
            If *query* is empty.
        """
        if not query or not query.strip():
            raise InvalidRequestError(message="Search query must not be empty")

        limit = self._default_limit if limit is None else limit
        if limit <= 0:
            return []

        if not version:
            version = await self._store.get_latest_version()
            if version is None:
                logger.info("search_no_versions_indexed", query=query[:80])
                return []

        merged_filters = {**(filters or {}), "version": version}
        fetch_limit = limit * self._overfetch if tags else limit

        query_vector = None
        if self._embedding_service is not None and not self._store.self_embeds:
            query_vector = await self._embedding_service.embed_query(query)

        results = await self._store.search(
            query_vector,
            limit=fetch_limit,
            filters=merged_filters,
            query_text=query,
        )

        if tags:
            wanted = set(tags)
            results = [r for r in results if wanted.intersection(r.metadata.tags)]
        results = results[:limit]

        logger.info(
            "search_complete",
            version=version,
            limit=limit,
            fetched=fetch_limit,
            tags=list(tags) if tags else None,
            results_count=len(results),
        )
        return results

    async def get_document(self, chunk_id: str) -> Chunk | None:
        """Return the stored chunk with *chunk_id*, or ``None``."""
        return await self._store.get_document(chunk_id)

    @staticmethod
    def format_context(results: Sequence[SearchResult]) -> str:
        """Render results as Markdown blocks for an LLM prompt.

        Each block shows the heading (or path), the source path, ``1 - score``
        as a distance-style relevance figure and the full chunk text.
        """
        if not results:
            return NO_RESULTS_MESSAGE

        blocks = []
        for number, result in enumerate(results, start=1):
            meta = result.metadata
            title = meta.heading or meta.document_path
            blocks.append(
                f"### Context {number}: {title}\n"
                f"**Source:** {meta.document_path}\n"
                f"**Relevance Score:** {1 - result.score:.3f}\n\n"
                f"{result.text}"
            )
        return _CONTEXT_SEPARATOR.join(blocks)
