"""Document and chunk models for the indexing pipeline.

Defines Pydantic v2 models for the units that flow through ingestion:

    Document -> DocumentProcessor -> Chunk -> (EmbeddingService) -> EmbeddedChunk

All models use frozen config.  The one field written after chunking, the
``version`` label, is stamped by the index service through
:meth:`Chunk.with_version`, which returns a new instance via
``model_copy(update={...})`` instead of editing the chunk in place.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Document -- one raw file produced by a document source.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """A raw document read from a directory tree or archive.

    Ephemeral: produced by an :class:`~src.interfaces.document_source.IDocumentSource`
    and consumed once by the document processor.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Path relative to the source root, '/'-separated.")
    content: str = Field(description="Full UTF-8 text of the document.")
    source_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific details (absolute path, size, modification time).",
    )


# ---------------------------------------------------------------------------
# ChunkMetadata -- everything a chunk knows about where it came from.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Structural metadata derived from a document's path and position."""

    model_config = ConfigDict(frozen=True)

    document_path: str = Field(description="Path of the originating document.")
    tags: list[str] = Field(
        default_factory=list,
        description="Ordered, duplicate-free tags (path segments plus the version).",
    )
    product: str = Field(default="core", description="Product the document belongs to.")
    framework: str = Field(default="vanilla", description="Framework flavour of the document.")
    type: str = Field(default="guide", description="Document type: guide, api, example or concept.")
    chunk_index: int = Field(default=0, ge=0, description="Zero-based position within the document.")
    total_chunks: int = Field(default=1, ge=1, description="Number of chunks the document produced.")
    heading: str = Field(default="", description="Section heading the chunk belongs to.")
    version: str = Field(default="", description="Version label stamped at index time.")

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        # dict preserves insertion order, so this keeps the first occurrence.
        return list(dict.fromkeys(tag for tag in value if tag))

    @model_validator(mode="after")
    def _check_position(self) -> ChunkMetadata:
        if self.chunk_index >= self.total_chunks:
            raise ValueError(
                f"chunk_index {self.chunk_index} out of range for total_chunks {self.total_chunks}"
            )
        return self


# ---------------------------------------------------------------------------
# Chunk -- one retrievable unit of a document.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A slice of a document, ready for embedding and storage.

    The ``id`` is assigned by the processor (UUID4) and used as the vector
    store's primary key, so re-upserting the same chunk is idempotent.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this chunk.")
    text: str = Field(description="The chunk's textual content.")
    metadata: ChunkMetadata = Field(description="Structural metadata for filtering.")

    def with_version(self, version: str) -> Chunk:
        """Return a copy stamped with *version*, also appended to the tags."""
        tags = list(self.metadata.tags)
        if version not in tags:
            tags.append(version)
        metadata = self.metadata.model_copy(update={"version": version, "tags": tags})
        return self.model_copy(update={"metadata": metadata})


class EmbeddedChunk(Chunk):
    """A :class:`Chunk` carrying its embedding vector.

    Only produced when the vector store needs externally supplied vectors.
    """

    embedding: list[float] = Field(description="Dense embedding of ``text``.")
