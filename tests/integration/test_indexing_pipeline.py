"""Integration tests for the indexing pipeline.

Indexes a real directory tree and ZIP archive into an on-disk ChromaDB
through the job runner, then queries it back.  Embeddings come from the
hash-based mock provider so no model is downloaded.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from src.models.job import JobStatus
from src.pipeline.index_job_runner import IndexJobRunner
from src.pipeline.job_manager import JobManager
from src.providers.source.filesystem_source import FileSystemSource
from src.providers.source.zip_source import ZipSource
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.ingestion.document_processor import DocumentProcessor
from src.services.ingestion.embedding_service import EmbeddingService
from src.services.query_service import QueryService
from src.services.version_metadata_service import VersionMetadataService
from tests.conftest import MockEmbeddingProvider

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

_INSTALL = "npm install @acme/gantt@npm:@acme/gantt-trial@2.0.0"


class _Pipeline:
    """All real components except the embedding model."""

    def __init__(self, tmp_path: Path) -> None:
        self.store = ChromaDBProvider(
            persist_directory=str(tmp_path / "chroma"),
            collection_name="integration_docs",
            version_cache_ttl=0,
        )
        self.embedding_service = EmbeddingService(MockEmbeddingProvider(), batch_size=2)
        self.jobs = JobManager()
        self.metadata = VersionMetadataService(tmp_path / "metadata", install_scope="acme")
        self.runner = IndexJobRunner(
            job_manager=self.jobs,
            vector_store=self.store,
            document_processor=DocumentProcessor(),
            embedding_service=self.embedding_service,
            version_metadata_service=self.metadata,
            batch_size=2,
        )
        self.query = QueryService(self.store, self.embedding_service)

    async def index(self, source, version: str) -> str:
        job_id = self.runner.submit(source, version)
        await self.runner.wait(job_id)
        return job_id


def _write_docs(root: Path) -> Path:
    (root / "grid" / "guides" / "react").mkdir(parents=True)
    (root / "gantt" / "api").mkdir(parents=True)
    (root / "grid" / "guides" / "react" / "intro.md").write_text(
        "# Grid with React\n\nRender rows.\n\n## Row height\n\nSet rowHeight on the grid.\n",
        encoding="utf-8",
    )
    (root / "gantt" / "api" / "Gantt.md").write_text(
        f"# Gantt\n\nTask bars and dependencies.\n\n{_INSTALL}\n", encoding="utf-8"
    )
    (root / "gantt" / "api" / "logo.png").write_bytes(b"\x89PNG\r\n")
    return root


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestIndexingPipeline:
    @pytest.mark.asyncio
    async def test_directory_index_and_search(self, tmp_path: Path) -> None:
        pipeline = _Pipeline(tmp_path)
        docs = _write_docs(tmp_path / "docs")

        job_id = await pipeline.index(FileSystemSource(docs), "1.0.0")

        job = pipeline.jobs.get_job(job_id)
        assert job.status is JobStatus.COMPLETED
        assert job.result["documentsProcessed"] == 2
        assert job.result["chunksIndexed"] == 3

        stats = await pipeline.store.get_stats()
        assert stats.total_chunks == 3
        assert stats.total_documents == 2
        assert stats.latest_version == "1.0.0"
        assert stats.products == ["gantt", "grid"]

        results = await pipeline.query.search("Task bars", filters={"product": "gantt"})
        assert [r.metadata.document_path for r in results] == ["gantt/api/Gantt.md"]
        assert results[0].metadata.version == "1.0.0"

        chunks = await pipeline.store.get_document_chunks("grid/guides/react/intro.md", "1.0.0")
        assert [c.metadata.heading for c in chunks] == ["Grid with React", "Row height"]
        assert [c.metadata.chunk_index for c in chunks] == [0, 1]

    @pytest.mark.asyncio
    async def test_reindexing_same_version_keeps_count(self, tmp_path: Path) -> None:
        pipeline = _Pipeline(tmp_path)
        docs = _write_docs(tmp_path / "docs")

        await pipeline.index(FileSystemSource(docs), "1.0.0")
        await pipeline.index(FileSystemSource(docs), "1.0.0")

        assert len(await pipeline.store.list_documents({"version": "1.0.0"})) == 3
        assert await pipeline.store.get_all_versions() == ["1.0.0"]

    @pytest.mark.asyncio
    async def test_versions_are_isolated(self, tmp_path: Path) -> None:
        pipeline = _Pipeline(tmp_path)
        docs = _write_docs(tmp_path / "docs")

        await pipeline.index(FileSystemSource(docs), "1.0.0")
        (docs / "grid" / "guides" / "react" / "intro.md").unlink()
        await pipeline.index(FileSystemSource(docs), "2.0.0")

        assert await pipeline.store.get_latest_version() == "2.0.0"
        latest = await pipeline.query.search("rows", limit=10)
        assert {r.metadata.version for r in latest} == {"2.0.0"}
        older = await pipeline.query.search("rows", limit=10, version="1.0.0")
        assert len(older) == 3

        assert await pipeline.store.delete_by_version("1.0.0") == 3
        assert await pipeline.store.get_all_versions() == ["2.0.0"]

    @pytest.mark.asyncio
    async def test_tag_search(self, tmp_path: Path) -> None:
        pipeline = _Pipeline(tmp_path)
        await pipeline.index(FileSystemSource(_write_docs(tmp_path / "docs")), "1.0.0")

        results = await pipeline.query.search("grid", limit=5, tags=["react"])

        assert results
        assert all("react" in r.metadata.tags for r in results)
        assert "1.0.0" in await pipeline.store.get_all_tags()

    @pytest.mark.asyncio
    async def test_zip_upload_and_metadata(self, tmp_path: Path) -> None:
        pipeline = _Pipeline(tmp_path)
        docs = _write_docs(tmp_path / "docs")
        archive = tmp_path / "upload.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for file in docs.rglob("*"):
                if file.is_file():
                    zf.write(file, Path("docs") / file.relative_to(docs))

        job_id = pipeline.runner.submit(ZipSource(archive), "2.0.0", temp_file=archive)
        await pipeline.runner.wait(job_id)

        assert pipeline.jobs.get_job(job_id).status is JobStatus.COMPLETED
        assert not archive.exists()
        metadata = await pipeline.metadata.get_metadata("2.0.0")
        assert metadata["installCommands"] == {"gantt": {"npm": _INSTALL}}
        assert metadata["documentCount"] == 3
