"""Unit tests for DocumentProcessor and the document/chunk models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.document import ChunkMetadata, Document
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.document_processor import DocumentProcessor
from src.utils.errors import DocumentProcessingError
from tests.conftest import MockDocumentSource, make_chunk


class TestChunkModels:
    def test_chunk_index_must_be_below_total(self) -> None:
        with pytest.raises(ValidationError):
            ChunkMetadata(document_path="a.md", chunk_index=2, total_chunks=2)

    def test_tags_deduplicated_in_order(self) -> None:
        meta = ChunkMetadata(document_path="a.md", tags=["b", "a", "b", "", "a"])
        assert meta.tags == ["b", "a"]

    def test_with_version_stamps_and_appends_tag(self) -> None:
        chunk = make_chunk(version="", tags=["grid"])
        stamped = chunk.with_version("6.3.3")

        assert stamped.metadata.version == "6.3.3"
        assert stamped.metadata.tags == ["grid", "6.3.3"]
        # The original is untouched.
        assert chunk.metadata.version == ""

    def test_with_version_does_not_duplicate_tag(self) -> None:
        chunk = make_chunk(tags=["grid", "6.3.3"])
        assert chunk.with_version("6.3.3").metadata.tags == ["grid", "6.3.3"]


class TestDocumentProcessor:
    def test_headers_document(self) -> None:
        processor = DocumentProcessor()
        doc = Document(
            path="docs/grid/guides/react/intro.md",
            content="# Intro\n\nHello.\n\n## Setup\n\nSteps.\n",
        )
        chunks = processor.process_document(doc)

        assert [c.metadata.heading for c in chunks] == ["Intro", "Setup"]
        assert [c.metadata.chunk_index for c in chunks] == [0, 1]
        assert {c.metadata.total_chunks for c in chunks} == {2}
        first = chunks[0].metadata
        assert first.product == "grid"
        assert first.framework == "react"
        assert first.type == "guide"
        assert first.tags == ["grid", "guides", "react"]
        assert first.version == ""

    def test_chunk_ids_are_unique(self) -> None:
        processor = DocumentProcessor(chunker=TextChunker("size", chunk_size=50, overlap=0))
        chunks = processor.process_document(Document(path="a/b.md", content="word " * 100))
        assert len({c.id for c in chunks}) == len(chunks)

    def test_size_chunks_reconstruct_content(self) -> None:
        content = "Sentence number one. " * 120
        processor = DocumentProcessor(chunker=TextChunker("size", chunk_size=300, overlap=0))
        chunks = processor.process_document(Document(path="x/y.md", content=content))

        assert [c.metadata.chunk_index for c in chunks] == list(range(len(chunks)))
        assert "".join(c.text for c in chunks) == content

    def test_blank_document_yields_nothing(self) -> None:
        processor = DocumentProcessor()
        assert processor.process_document(Document(path="a/b.md", content="  \n")) == []

    def test_binary_content_raises(self) -> None:
        processor = DocumentProcessor()
        with pytest.raises(DocumentProcessingError):
            processor.process_document(Document(path="a/b.md", content="abc\x00def"))

    @pytest.mark.asyncio
    async def test_process_documents_skips_bad_documents(self) -> None:
        processor = DocumentProcessor()
        source = MockDocumentSource(
            [
                Document(path="grid/a.md", content="# A\ntext\n"),
                Document(path="grid/bad.md", content="\x00\x01"),
                Document(path="grid/c.md", content="# C\ntext\n"),
            ]
        )

        chunks = [c async for c in processor.process_documents(source.read_documents())]

        assert [c.metadata.document_path for c in chunks] == ["grid/a.md", "grid/c.md"]
