"""Retrieval and indexing result models.

Defines Pydantic v2 models for what the pipeline hands back to its
callers: ranked search results, the summary of an indexing run, the
progress reports emitted while it runs, and corpus statistics.

Models that cross the boundary to live-update transports (progress
reports, run summaries) serialize with camelCase aliases so
``model_dump(by_alias=True)`` yields the broadcast JSON shape directly.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.document import ChunkMetadata


# ---------------------------------------------------------------------------
# SearchResult -- a ranked hit from the vector store.
# ---------------------------------------------------------------------------
class SearchResult(BaseModel):
    """A stored chunk returned from a search with its hybrid score.

    ``score`` is already normalized by the store (1 = best).  Callers do not
    rescale it except for display.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Chunk identifier.")
    text: str = Field(description="Chunk text.")
    score: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Hybrid relevance score in [0, 1], higher is better.",
    )
    metadata: ChunkMetadata = Field(description="Stored chunk metadata.")


# ---------------------------------------------------------------------------
# IndexResult -- summary of one indexing run.
# ---------------------------------------------------------------------------
class IndexResult(BaseModel):
    """Counts returned by :meth:`IndexService.index_documents`."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    documents_processed: int = Field(default=0, ge=0, description="Source documents that yielded chunks.")
    chunks_indexed: int = Field(default=0, ge=0, description="Chunks written to the vector store.")


# ---------------------------------------------------------------------------
# IndexProgress -- one milestone report from an indexing run.
# ---------------------------------------------------------------------------
class IndexProgress(BaseModel):
    """A progress report passed to the ``on_progress`` callback.

    Optional counters are ``None`` until the run reaches the stage that
    knows them, and are left out of the serialized form.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    stage: str = Field(description="initializing, clearing, extracting, processing, finalizing or completed.")
    progress: int = Field(ge=0, le=100, description="Completion percentage.")
    message: str = Field(default="", description="Human-readable status line.")
    version: str = Field(description="Version being indexed.")
    documents_processed: int | None = Field(default=None, ge=0)
    chunks_indexed: int | None = Field(default=None, ge=0)
    total_documents: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# CorpusStats -- a snapshot of what is indexed.
# ---------------------------------------------------------------------------
class CorpusStats(BaseModel):
    """Aggregate statistics for the vector-store corpus."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0, description="Total number of stored chunks.")
    total_documents: int = Field(
        default=0,
        ge=0,
        description="Distinct source documents, counted as chunks with chunk_index 0.",
    )
    versions: list[str] = Field(default_factory=list, description="All indexed versions.")
    latest_version: str | None = Field(default=None, description="Result of get_latest_version().")
    tag_count: int = Field(default=0, ge=0, description="Number of distinct tags.")
    products: list[str] = Field(default_factory=list, description="Distinct product values.")
    frameworks: list[str] = Field(default_factory=list, description="Distinct framework values.")
