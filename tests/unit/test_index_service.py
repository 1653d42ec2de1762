"""Unit tests for IndexService."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.models.document import Document
from src.models.rag import IndexProgress
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.document_processor import DocumentProcessor
from src.services.ingestion.embedding_service import EmbeddingService
from src.services.ingestion.index_service import IndexService
from src.utils.errors import InvalidRequestError, RAGError
from tests.conftest import MockDocumentSource, MockEmbeddingProvider, MockVectorStore


def _service(
    documents: list[Document],
    store: MockVectorStore | None = None,
    count_known: bool = True,
    processor: DocumentProcessor | None = None,
) -> tuple[IndexService, MockDocumentSource, MockVectorStore]:
    source = MockDocumentSource(documents, count_known=count_known)
    store = store or MockVectorStore()
    service = IndexService(
        document_source=source,
        document_processor=processor or DocumentProcessor(),
        vector_store=store,
        embedding_service=EmbeddingService(MockEmbeddingProvider()),
    )
    return service, source, store


class TestIndexService:
    @pytest.mark.asyncio
    async def test_indexes_and_stamps_version(self, sample_documents: list[Document]) -> None:
        service, source, store = _service(sample_documents)

        result = await service.index_documents("6.3.3")

        assert result.documents_processed == 3
        # intro.md has two sections; the others one each.
        assert result.chunks_indexed == 4
        chunks = await store.list_documents()
        assert {c.metadata.version for c in chunks} == {"6.3.3"}
        assert all(c.metadata.tags[-1] == "6.3.3" for c in chunks)
        assert store.initialized == 1
        assert source.cleanup_calls == 1

    @pytest.mark.asyncio
    async def test_missing_version_rejected(self, sample_documents: list[Document]) -> None:
        service, _, store = _service(sample_documents)
        with pytest.raises(InvalidRequestError):
            await service.index_documents("  ")
        assert store.initialized == 0

    @pytest.mark.asyncio
    async def test_needs_embedding_service_for_external_vectors(
        self, sample_documents: list[Document]
    ) -> None:
        service = IndexService(
            document_source=MockDocumentSource(sample_documents),
            document_processor=DocumentProcessor(),
            vector_store=MockVectorStore(),
        )
        with pytest.raises(InvalidRequestError):
            await service.index_documents("1.0.0")

    @pytest.mark.asyncio
    async def test_self_embedding_store_gets_plain_chunks(
        self, sample_documents: list[Document]
    ) -> None:
        store = MockVectorStore(self_embeds=True)
        service = IndexService(
            document_source=MockDocumentSource(sample_documents),
            document_processor=DocumentProcessor(),
            vector_store=store,
        )
        result = await service.index_documents("1.0.0")
        assert result.chunks_indexed == 4

    @pytest.mark.asyncio
    async def test_reindexing_replaces_the_version(self, sample_documents: list[Document]) -> None:
        store = MockVectorStore()
        first, _, _ = _service(sample_documents, store=store)
        await first.index_documents("1.0.0")
        once = len(await store.list_documents({"version": "1.0.0"}))

        second, _, _ = _service(sample_documents, store=store)
        await second.index_documents("1.0.0")

        assert len(await store.list_documents({"version": "1.0.0"})) == once

    @pytest.mark.asyncio
    async def test_other_versions_untouched(self, sample_documents: list[Document]) -> None:
        store = MockVectorStore()
        await _service(sample_documents, store=store)[0].index_documents("1.0.0")
        await _service(sample_documents[:1], store=store)[0].index_documents("2.0.0")

        assert await store.get_all_versions() == ["1.0.0", "2.0.0"]
        assert len(await store.list_documents({"version": "1.0.0"})) == 4

    @pytest.mark.asyncio
    async def test_flushes_in_batches(self) -> None:
        docs = [Document(path=f"grid/d{i}.md", content=f"# D{i}\nbody {i}\n") for i in range(5)]
        service, _, store = _service(docs)

        await service.index_documents("1.0.0", batch_size=2)

        assert store.add_calls == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_large_document_flushes_mid_document(self) -> None:
        processor = DocumentProcessor(chunker=TextChunker("size", chunk_size=20, overlap=0))
        docs = [Document(path="grid/long.md", content="x" * 100)]
        service, _, store = _service(docs, processor=processor)

        result = await service.index_documents("1.0.0", batch_size=2)

        assert result.documents_processed == 1
        assert result.chunks_indexed == 5
        assert store.add_calls == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_progress_milestones(self, sample_documents: list[Document]) -> None:
        store = MockVectorStore()
        await _service(sample_documents, store=store)[0].index_documents("1.0.0")

        reports: list[IndexProgress] = []
        service, _, _ = _service(sample_documents, store=store)
        await service.index_documents("1.0.0", on_progress=reports.append)

        stages = [(r.stage, r.progress) for r in reports]
        assert stages[0] == ("initializing", 0)
        assert ("clearing", 5) in stages
        assert ("extracting", 10) in stages
        assert ("extracting", 15) in stages
        processing = [p for s, p in stages if s == "processing"]
        assert processing == [45, 70, 95]
        assert stages[-2] == ("finalizing", 98)
        assert stages[-1] == ("completed", 100)
        final = reports[-1]
        assert final.documents_processed == 3
        assert final.chunks_indexed == 4
        assert final.total_documents == 3

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, sample_documents: list[Document]) -> None:
        reports: list[IndexProgress] = []
        service, _, _ = _service(sample_documents)
        await service.index_documents("1.0.0", on_progress=reports.append)

        values = [r.progress for r in reports]
        assert values == sorted(values)
        assert not any(r.stage == "clearing" for r in reports)

    @pytest.mark.asyncio
    async def test_unknown_total_keeps_processing_at_20(
        self, sample_documents: list[Document]
    ) -> None:
        reports: list[IndexProgress] = []
        service, _, _ = _service(sample_documents, count_known=False)
        await service.index_documents("1.0.0", on_progress=reports.append)

        assert {r.progress for r in reports if r.stage == "processing"} == {20}

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, sample_documents: list[Document]) -> None:
        callback = AsyncMock()
        service, _, _ = _service(sample_documents)
        await service.index_documents("1.0.0", on_progress=callback)

        assert callback.await_count >= 6

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, sample_documents: list[Document]) -> None:
        store = MockVectorStore()
        store.add_documents = AsyncMock(side_effect=RAGError(message="down", provider_name="mock"))
        service, source, _ = _service(sample_documents, store=store)

        with pytest.raises(RAGError):
            await service.index_documents("1.0.0")
        # Cleanup is the caller's job after a failure.
        assert source.cleanup_calls == 0

    @pytest.mark.asyncio
    async def test_bad_document_is_skipped(self) -> None:
        docs = [
            Document(path="grid/a.md", content="# A\nok\n"),
            Document(path="grid/b.md", content="bin\x00ary"),
        ]
        service, _, _ = _service(docs)
        result = await service.index_documents("1.0.0")
        assert result.documents_processed == 1
