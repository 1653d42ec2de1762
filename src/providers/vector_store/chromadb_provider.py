"""ChromaDB vector store provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for the dense half of a hybrid search and BM25 (see
:mod:`~src.providers.vector_store.hybrid_ranker`) for the keyword half.
Fully local and Python-native, no external service required.

Persisted layout per chunk: the chunk text is the Chroma document, the
chunk id is the Chroma id, and metadata holds ``version, path, product,
framework, type, tags, heading, chunkIndex, totalChunks``.  Chroma metadata
values must be scalars, so ``tags`` is stored as a JSON list string and,
additionally, as one boolean key per tag (``tag:react = True``).  The
boolean keys let an "any of these tags" filter run inside Chroma as an
``$or`` of equalities.
"""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  ChromaDB reports
# through PostHog, and a version mismatch between its bundled PostHog
# client and the installed one raises "capture() takes 1 positional
# argument" errors.  The env var, posthog.disabled and
# Settings(anonymized_telemetry=False) each cover different chromadb
# versions.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog
from cachetools import TTLCache

from src.interfaces.vector_store_provider import (
    FILTER_FIELDS,
    Filters,
    IVectorStoreProvider,
    filter_values,
)
from src.models.document import Chunk, ChunkMetadata, EmbeddedChunk
from src.models.rag import CorpusStats, SearchResult
from src.providers.vector_store.hybrid_ranker import blend, keyword_scores
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_TAG_PREFIX = "tag:"
_UPSERT_BATCH = 100
_PAGE_SIZE = 5000
_INT_FIELDS = frozenset({"chunkIndex", "totalChunks"})
_AGGREGATE_KEY = "aggregate"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that keeps ChromaDB from loading a model.

    Installed when vectors come from our own embedding service.  Without
    it ChromaDB loads its default ONNX model (~80 MB RAM) that would never
    be called.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "This collection stores pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory for ChromaDB's on-disk data.
    collection_name:
        Collection holding every chunk of every version.
    embedding_function:
        A ChromaDB embedding function.  When given, the store embeds text
        itself (:attr:`self_embeds` is ``True``).  When omitted, every chunk
        must arrive as an :class:`EmbeddedChunk` and every search must pass
        a query vector.
    alpha:
        Weight of vector similarity in the hybrid score (0.75 leans toward
        semantic matches).
    candidate_multiplier:
        The dense query fetches ``limit * candidate_multiplier`` candidates
        for BM25 re-ranking.
    version_cache_ttl:
        Seconds that version/tag aggregations stay cached.
    client:
        Pre-built ChromaDB client, mainly for tests.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "documents",
        embedding_function: Any | None = None,
        alpha: float = 0.75,
        candidate_multiplier: int = 4,
        version_cache_ttl: int = 60,
        client: Any | None = None,
    ) -> None:
        if not 0.0 <= alpha <= 1.0:
            raise ValueError("alpha must be within [0, 1]")
        self._collection_name = collection_name
        self._embedding_function = embedding_function
        self._alpha = alpha
        self._candidate_multiplier = max(1, candidate_multiplier)
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection = None
        # Aggregations over every chunk's metadata are a full scan, so the
        # result is kept briefly and dropped on any write.
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=1, ttl=version_cache_ttl)

    @property
    def self_embeds(self) -> bool:
        return self._embedding_function is not None

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    def _get_collection(self):  # noqa: ANN202 -- chromadb Collection
        if self._collection is None:
            embedding_function = self._embedding_function or _NoopEmbeddingFunction()
            # Newer ChromaDB versions refuse an embedding function that
            # differs from the one persisted with the collection.  Opening
            # without one then uses whatever was persisted.
            try:
                self._collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=embedding_function,
                )
            except ValueError:
                self._collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
        return self._collection

    async def initialize(self) -> None:
        try:
            collection = self._get_collection()
            logger.info(
                "chromadb_initialized",
                collection=self._collection_name,
                chunks=collection.count(),
                self_embeds=self.self_embeds,
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB initialize failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def add_documents(self, chunks: Sequence[Chunk]) -> int:
        """Upsert chunks in batches of 100.

        Vectors are passed through when every chunk carries one; otherwise
        the store must self-embed.
        """
        if not chunks:
            return 0

        with_vectors = all(isinstance(c, EmbeddedChunk) for c in chunks)
        if not with_vectors and not self.self_embeds:
            raise RAGError(
                message="Chunks without embeddings given to a store that does not self-embed",
                provider_name=self.get_provider_name(),
            )

        self._invalidate_cache()
        try:
            collection = self._get_collection()
            for start in range(0, len(chunks), _UPSERT_BATCH):
                batch = chunks[start : start + _UPSERT_BATCH]
                kwargs: dict[str, Any] = {
                    "ids": [c.id for c in batch],
                    "documents": [c.text for c in batch],
                    "metadatas": [self._chunk_to_metadata(c) for c in batch],
                }
                if with_vectors:
                    kwargs["embeddings"] = [c.embedding for c in batch]  # type: ignore[attr-defined]
                collection.upsert(**kwargs)

            logger.debug(
                "chromadb_add_documents",
                count=len(chunks),
                batches=(len(chunks) + _UPSERT_BATCH - 1) // _UPSERT_BATCH,
            )
            return len(chunks)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB add_documents failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def search(
        self,
        query_vector: list[float] | None,
        limit: int = 5,
        filters: Filters | None = None,
        query_text: str | None = None,
    ) -> list[SearchResult]:
        """Hybrid search: dense candidates re-ranked with BM25.

        ChromaDB is asked for ``limit * candidate_multiplier`` nearest
        neighbours inside the filter; those candidates are then scored with
        BM25 against *query_text* and blended.  Without query text the
        ranking is pure vector similarity.
        """
        if limit <= 0:
            return []
        if query_vector is None and not (query_text and self.self_embeds):
            raise RAGError(
                message="A query vector is required unless the store self-embeds",
                provider_name=self.get_provider_name(),
            )

        where = self._translate_filters(filters)
        try:
            collection = self._get_collection()
            total = collection.count()
            if total == 0:
                return []

            kwargs: dict[str, Any] = {
                "n_results": min(limit * self._candidate_multiplier, total),
                "include": ["documents", "metadatas", "distances"],
            }
            if query_vector is not None:
                kwargs["query_embeddings"] = [query_vector]
            else:
                kwargs["query_texts"] = [query_text]
            if where:
                kwargs["where"] = where

            results = collection.query(**kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0]
        metadatas = results["metadatas"][0]
        distances = results["distances"][0]

        vector_scores = [max(0.0, min(1.0, 1.0 - d)) for d in distances]
        keyword = keyword_scores(query_text, documents) if query_text else None
        scores = blend(vector_scores, keyword, self._alpha)

        ranked = sorted(
            (
                SearchResult(
                    id=chunk_id,
                    text=text or "",
                    score=score,
                    metadata=self._metadata_from_store(meta),
                )
                for chunk_id, text, meta, score in zip(
                    ids, documents, metadatas, scores, strict=True
                )
            ),
            key=lambda r: r.score,
            reverse=True,
        )[:limit]

        logger.info(
            "chromadb_query",
            candidates=len(ids),
            results_count=len(ranked),
            hybrid=keyword is not None,
            top_score=ranked[0].score if ranked else 0.0,
        )
        return ranked

    async def get_document(self, chunk_id: str) -> Chunk | None:
        try:
            found = self._get_collection().get(ids=[chunk_id], include=["documents", "metadatas"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB get_document failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not found["ids"]:
            return None
        return self._to_chunk(found["ids"][0], found["documents"][0], found["metadatas"][0])

    async def get_document_chunks(self, path: str, version: str) -> list[Chunk]:
        chunks = await self.list_documents({"path": path, "version": version})
        return sorted(chunks, key=lambda c: c.metadata.chunk_index)

    async def list_documents(
        self, filters: Filters | None = None, limit: int | None = None
    ) -> list[Chunk]:
        """Page through matching chunks in 5K-row pages.

        Paging keeps each call under SQLite's bind-parameter ceiling on
        large collections.
        """
        where = self._translate_filters(filters)
        chunks: list[Chunk] = []
        try:
            collection = self._get_collection()
            offset = 0
            while limit is None or len(chunks) < limit:
                page_size = _PAGE_SIZE if limit is None else min(_PAGE_SIZE, limit - len(chunks))
                kwargs: dict[str, Any] = {
                    "include": ["documents", "metadatas"],
                    "limit": page_size,
                    "offset": offset,
                }
                if where:
                    kwargs["where"] = where
                page = collection.get(**kwargs)
                ids = page["ids"] or []
                for chunk_id, text, meta in zip(
                    ids, page["documents"], page["metadatas"], strict=True
                ):
                    chunks.append(self._to_chunk(chunk_id, text, meta))
                if len(ids) < page_size:
                    break
                offset += page_size
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB list_documents failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return chunks

    async def delete_documents(self, filters: Filters) -> int:
        where = self._translate_filters(filters)
        if not where:
            raise ValueError("delete_documents needs a non-empty filter; use clear_all()")

        self._invalidate_cache()
        try:
            collection = self._get_collection()
            existing = collection.get(where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                collection.delete(where=where)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete_documents failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_documents", filters=dict(filters), deleted_count=count)
        return count

    async def delete_by_version(self, version: str) -> int:
        return await self.delete_documents({"version": version})

    async def get_all_versions(self) -> list[str]:
        return list(self._aggregate()["versions"])

    async def get_latest_version(self) -> str | None:
        # Plain string order: "10.0.0" < "9.0.0".
        versions = await self.get_all_versions()
        return versions[-1] if versions else None

    async def get_all_tags(self) -> list[str]:
        return list(self._aggregate()["tags"])

    async def get_stats(self) -> CorpusStats:
        aggregate = self._aggregate()
        versions = aggregate["versions"]
        return CorpusStats(
            total_chunks=aggregate["total_chunks"],
            total_documents=aggregate["total_documents"],
            versions=versions,
            latest_version=versions[-1] if versions else None,
            tag_count=len(aggregate["tags"]),
            products=aggregate["products"],
            frameworks=aggregate["frameworks"],
        )

    async def clear_all(self) -> None:
        """Drop the collection and create it again, empty."""
        self._invalidate_cache()
        try:
            self._get_collection()
            self._client.delete_collection(name=self._collection_name)
            self._collection = None
            self._get_collection()
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB clear_all failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.warning("chromadb_collection_cleared", collection=self._collection_name)

    async def close(self) -> None:
        # PersistentClient writes through to disk; dropping the handles is enough.
        self._collection = None
        self._invalidate_cache()
        logger.debug("chromadb_closed", collection=self._collection_name)

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._get_collection().count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _invalidate_cache(self) -> None:
        if self._cache:
            logger.debug("chromadb_cache_invalidated")
        self._cache.clear()

    def _aggregate(self) -> dict[str, Any]:
        """Scan all metadata once for versions, tags, products and counts."""
        cached = self._cache.get(_AGGREGATE_KEY)
        if cached is not None:
            return cached

        versions: set[str] = set()
        tags: set[str] = set()
        products: set[str] = set()
        frameworks: set[str] = set()
        total_documents = 0
        try:
            collection = self._get_collection()
            total = collection.count()
            for offset in range(0, total, _PAGE_SIZE):
                page = collection.get(include=["metadatas"], limit=_PAGE_SIZE, offset=offset)
                for meta in page["metadatas"] or []:
                    if meta.get("version"):
                        versions.add(str(meta["version"]))
                    tags.update(self._decode_tags(meta.get("tags")))
                    products.add(str(meta.get("product", "core")))
                    frameworks.add(str(meta.get("framework", "vanilla")))
                    if int(meta.get("chunkIndex", 0)) == 0:
                        total_documents += 1
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB metadata scan failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        aggregate = {
            "total_chunks": total,
            "total_documents": total_documents,
            "versions": sorted(versions),
            "tags": sorted(tags),
            "products": sorted(products),
            "frameworks": sorted(frameworks),
        }
        self._cache[_AGGREGATE_KEY] = aggregate
        return aggregate

    @staticmethod
    def _chunk_to_metadata(chunk: Chunk) -> dict[str, str | int | float | bool]:
        """Convert a chunk's metadata to ChromaDB's flat scalar form."""
        meta = chunk.metadata
        stored: dict[str, str | int | float | bool] = {
            "version": meta.version,
            "path": meta.document_path,
            "product": meta.product,
            "framework": meta.framework,
            "type": meta.type,
            "tags": json.dumps(meta.tags),
            "heading": meta.heading,
            "chunkIndex": meta.chunk_index,
            "totalChunks": meta.total_chunks,
        }
        for tag in meta.tags:
            stored[f"{_TAG_PREFIX}{tag}"] = True
        return stored

    @classmethod
    def _metadata_from_store(cls, meta: dict[str, Any] | None) -> ChunkMetadata:
        """Reverse :meth:`_chunk_to_metadata`."""
        meta = meta or {}
        return ChunkMetadata(
            document_path=str(meta.get("path", "")),
            tags=cls._decode_tags(meta.get("tags")),
            product=str(meta.get("product", "core")),
            framework=str(meta.get("framework", "vanilla")),
            type=str(meta.get("type", "guide")),
            chunk_index=int(meta.get("chunkIndex", 0)),
            total_chunks=int(meta.get("totalChunks", 1)),
            heading=str(meta.get("heading", "")),
            version=str(meta.get("version", "")),
        )

    @classmethod
    def _to_chunk(cls, chunk_id: str, text: str | None, meta: dict[str, Any] | None) -> Chunk:
        return Chunk(id=chunk_id, text=text or "", metadata=cls._metadata_from_store(meta))

    @staticmethod
    def _decode_tags(value: Any) -> list[str]:
        if not value or not isinstance(value, str):
            return []
        return [str(tag) for tag in json.loads(value)]

    @staticmethod
    def _translate_filters(filters: Filters | None) -> dict[str, Any] | None:
        """Translate the flat filter map to a ChromaDB ``where`` clause.

        ``{"version": "6.3.3", "tags": ["react", "vue"]}`` becomes::

            {"$and": [
                {"version": {"$eq": "6.3.3"}},
                {"$or": [{"tag:react": {"$eq": True}}, {"tag:vue": {"$eq": True}}]},
            ]}

        ChromaDB rejects ``$and``/``$or`` with fewer than two operands, so
        single clauses are emitted bare.
        """
        if not filters:
            return None

        clauses: list[dict[str, Any]] = []
        for field, value in filters.items():
            if field not in FILTER_FIELDS:
                raise ValueError(f"Unsupported filter field: {field!r}")
            values = filter_values(value)
            if not values:
                continue

            if field == "tags":
                predicates = [{f"{_TAG_PREFIX}{v}": {"$eq": True}} for v in values]
            elif field in _INT_FIELDS:
                predicates = [{field: {"$eq": int(v)}} for v in values]
            else:
                predicates = [{field: {"$eq": str(v)}} for v in values]
            clauses.append(predicates[0] if len(predicates) == 1 else {"$or": predicates})

        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
