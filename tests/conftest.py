"""Shared pytest fixtures for the documentation indexing test suite."""

from __future__ import annotations

import hashlib
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

import pytest

from src.interfaces.document_source import IDocumentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import (
    Filters,
    IVectorStoreProvider,
    matches_filters,
)
from src.models.document import Chunk, ChunkMetadata, Document, EmbeddedChunk
from src.models.rag import CorpusStats, SearchResult

_EMBEDDING_DIM = 32


# ---------------------------------------------------------------------------
# Deterministic embedding provider
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, maps each byte to ``[-1, 1]`` and
    normalises to unit length.  Same text always produces the same vector.
    """
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [(b / 255.0) * 2.0 - 1.0 for b in raw[:dim]]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_model_name(self) -> str:
        return "mock-hash"

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# In-memory vector store
# ---------------------------------------------------------------------------


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store backed by a simple dict.

    Search scores are the dot product of stored and query vectors mapped
    to ``[0, 1]``; filters follow :func:`matches_filters`.
    """

    def __init__(self, self_embeds: bool = False) -> None:
        self._self_embeds = self_embeds
        self._store: dict[str, Chunk] = {}
        self.initialized = 0
        self.add_calls: list[int] = []
        self.search_calls: list[dict] = []

    @property
    def self_embeds(self) -> bool:
        return self._self_embeds

    async def initialize(self) -> None:
        self.initialized += 1

    async def add_documents(self, chunks: Sequence[Chunk]) -> int:
        for chunk in chunks:
            if not self._self_embeds and not isinstance(chunk, EmbeddedChunk):
                raise AssertionError("vectors missing for a store that does not self-embed")
            self._store[chunk.id] = chunk
        self.add_calls.append(len(chunks))
        return len(chunks)

    async def search(
        self,
        query_vector: list[float] | None,
        limit: int = 5,
        filters: Filters | None = None,
        query_text: str | None = None,
    ) -> list[SearchResult]:
        self.search_calls.append(
            {"query_vector": query_vector, "limit": limit, "filters": filters, "query_text": query_text}
        )
        if query_vector is None:
            query_vector = _hash_to_vector(query_text or "")
        scored: list[SearchResult] = []
        for chunk in self._store.values():
            if not matches_filters(chunk.metadata, filters):
                continue
            vector = getattr(chunk, "embedding", None) or _hash_to_vector(chunk.text)
            dot = sum(a * b for a, b in zip(query_vector, vector, strict=False))
            scored.append(
                SearchResult(
                    id=chunk.id,
                    text=chunk.text,
                    score=max(0.0, min(1.0, (dot + 1.0) / 2.0)),
                    metadata=chunk.metadata,
                )
            )
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:limit]

    async def get_document(self, chunk_id: str) -> Chunk | None:
        return self._store.get(chunk_id)

    async def get_document_chunks(self, path: str, version: str) -> list[Chunk]:
        chunks = await self.list_documents({"path": path, "version": version})
        return sorted(chunks, key=lambda c: c.metadata.chunk_index)

    async def list_documents(
        self, filters: Filters | None = None, limit: int | None = None
    ) -> list[Chunk]:
        found = [c for c in self._store.values() if matches_filters(c.metadata, filters)]
        return found if limit is None else found[:limit]

    async def delete_documents(self, filters: Filters) -> int:
        doomed = [c.id for c in await self.list_documents(filters)]
        for chunk_id in doomed:
            del self._store[chunk_id]
        return len(doomed)

    async def delete_by_version(self, version: str) -> int:
        return await self.delete_documents({"version": version})

    async def get_all_versions(self) -> list[str]:
        return sorted({c.metadata.version for c in self._store.values() if c.metadata.version})

    async def get_latest_version(self) -> str | None:
        versions = await self.get_all_versions()
        return versions[-1] if versions else None

    async def get_all_tags(self) -> list[str]:
        return sorted({tag for c in self._store.values() for tag in c.metadata.tags})

    async def get_stats(self) -> CorpusStats:
        versions = await self.get_all_versions()
        return CorpusStats(
            total_chunks=len(self._store),
            total_documents=sum(1 for c in self._store.values() if c.metadata.chunk_index == 0),
            versions=versions,
            latest_version=versions[-1] if versions else None,
            tag_count=len(await self.get_all_tags()),
            products=sorted({c.metadata.product for c in self._store.values()}),
            frameworks=sorted({c.metadata.framework for c in self._store.values()}),
        )

    async def clear_all(self) -> None:
        self._store.clear()

    async def close(self) -> None:
        pass

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# In-memory document source
# ---------------------------------------------------------------------------


class MockDocumentSource(IDocumentSource):
    """Yields a fixed list of documents; records cleanup calls."""

    def __init__(self, documents: list[Document], count_known: bool = True) -> None:
        self._documents = documents
        self._count_known = count_known
        self.cleanup_calls = 0

    async def read_documents(self) -> AsyncIterator[Document]:
        for document in self._documents:
            yield document

    async def get_document_count(self) -> int | None:
        return len(self._documents) if self._count_known else None

    async def cleanup(self) -> None:
        self.cleanup_calls += 1

    def get_provider_name(self) -> str:
        return "mock-source"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_chunk(
    chunk_id: str = "c1",
    text: str = "chunk text",
    path: str = "grid/guides/intro.md",
    version: str = "1.0.0",
    tags: list[str] | None = None,
    chunk_index: int = 0,
    total_chunks: int = 1,
    heading: str = "",
    product: str = "grid",
    framework: str = "vanilla",
    doc_type: str = "guide",
) -> Chunk:
    return Chunk(
        id=chunk_id,
        text=text,
        metadata=ChunkMetadata(
            document_path=path,
            tags=tags if tags is not None else ["grid", "guides", version],
            product=product,
            framework=framework,
            type=doc_type,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            heading=heading,
            version=version,
        ),
    )


def embed(chunk: Chunk) -> EmbeddedChunk:
    return EmbeddedChunk(
        id=chunk.id,
        text=chunk.text,
        metadata=chunk.metadata,
        embedding=_hash_to_vector(chunk.text),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def sample_documents() -> list[Document]:
    """Three small Markdown documents spread over the path taxonomy."""
    return [
        Document(
            path="docs/grid/guides/react/intro.md",
            content="# Intro\n\nGrid with React.\n\n## Setup\n\nInstall the package.\n",
        ),
        Document(
            path="docs/scheduler/api/Scheduler.md",
            content="# Scheduler\n\nThe Scheduler class.\n",
        ),
        Document(
            path="docs/misc/notes.md",
            content="Plain notes without headings.",
        ),
    ]


@pytest.fixture
def docs_tree(tmp_path: Path) -> Path:
    """A small documentation directory on disk."""
    root = tmp_path / "docs"
    (root / "grid" / "guides").mkdir(parents=True)
    (root / "gantt" / "api").mkdir(parents=True)
    (root / "grid" / "guides" / "intro.md").write_text(
        "# Grid intro\n\nRows and columns.\n", encoding="utf-8"
    )
    (root / "gantt" / "api" / "Gantt.md").write_text(
        "# Gantt\n\nTask bars and dependencies.\n", encoding="utf-8"
    )
    (root / "grid" / "guides" / "image.png").write_bytes(b"\x89PNG\r\n")
    return root
