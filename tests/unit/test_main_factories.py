"""Unit tests for factory functions in src/main.py.

Tests embedding provider selection, vector store construction, the
build_services assembly and document source selection, with no network
calls and no model downloads.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from src.config.loader import DEFAULT_TAXONOMY
from src.config.settings import Settings
from src.utils.errors import ConfigurationError, DocumentSourceError


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(**overrides) -> Settings:
    """Build a Settings instance with safe defaults and optional overrides."""
    defaults = {
        "embedding_provider": "openai",
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "embedding_model": "",
        "ollama_base_url": "http://localhost:11434",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_embedding_provider
# ======================================================================


class TestBuildEmbeddingProvider:
    """Tests for the explicit EMBEDDING_PROVIDER selection."""

    def test_openai(self) -> None:
        from src.main import _build_embedding_provider
        from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        result = _build_embedding_provider(_settings())
        assert isinstance(result, OpenAIEmbeddingProvider)

    def test_openai_without_key_is_a_config_error(self) -> None:
        from src.main import _build_embedding_provider

        with pytest.raises(ConfigurationError):
            _build_embedding_provider(_settings(openai_api_key=""))

    def test_store_mode_builds_nothing(self) -> None:
        from src.main import _build_embedding_provider

        assert _build_embedding_provider(_settings(embedding_provider="store")) is None

    def test_fastembed_with_model_override(self) -> None:
        from src.main import _build_embedding_provider
        from src.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        result = _build_embedding_provider(
            _settings(embedding_provider="fastembed", embedding_model="BAAI/bge-base-en-v1.5")
        )
        assert isinstance(result, FastEmbedEmbeddingProvider)
        assert result.get_model_name() == "BAAI/bge-base-en-v1.5"

    def test_sentence_transformer(self) -> None:
        from src.main import _build_embedding_provider
        from src.providers.embedding.sentence_transformer_embedding_provider import (
            SentenceTransformerEmbeddingProvider,
        )

        result = _build_embedding_provider(_settings(embedding_provider="sentence_transformer"))
        assert isinstance(result, SentenceTransformerEmbeddingProvider)

    def test_nomic(self) -> None:
        from src.main import _build_embedding_provider
        from src.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider

        result = _build_embedding_provider(_settings(embedding_provider="nomic"))
        assert isinstance(result, NomicEmbeddingProvider)

    def test_unknown_name(self) -> None:
        from src.main import _build_embedding_provider

        # model_copy skips validation, standing in for a mistyped value.
        settings = _settings().model_copy(update={"embedding_provider": "word2vec"})
        with pytest.raises(ConfigurationError):
            _build_embedding_provider(settings)


# ======================================================================
# build_services
# ======================================================================


class TestBuildServices:
    """The assembled graph shares one store and one job manager."""

    def test_returns_all_components(self, tmp_path: Path) -> None:
        from src.main import build_services
        from src.pipeline.index_job_runner import IndexJobRunner
        from src.pipeline.job_manager import JobManager
        from src.providers.vector_store.chromadb_provider import ChromaDBProvider
        from src.services.query_service import QueryService

        settings = _settings(
            chromadb_persist_dir=str(tmp_path / "chroma"),
            metadata_path=str(tmp_path / "metadata"),
        )
        config = {
            "chunking": {"strategy": "size", "size": 800, "overlap": 100},
            "taxonomy": DEFAULT_TAXONOMY,
        }

        services = build_services(settings=settings, config=config)

        assert set(services) == {
            "settings",
            "config",
            "embedding_provider",
            "embedding_service",
            "vector_store",
            "document_processor",
            "query_service",
            "job_manager",
            "version_metadata_service",
            "index_job_runner",
        }
        assert isinstance(services["vector_store"], ChromaDBProvider)
        assert services["vector_store"].self_embeds is False
        assert isinstance(services["query_service"], QueryService)
        assert isinstance(services["job_manager"], JobManager)
        assert isinstance(services["index_job_runner"], IndexJobRunner)
        assert services["embedding_service"].model_name == "text-embedding-3-small"
        assert services["config"] is config

    def test_config_error_surfaces(self, tmp_path: Path) -> None:
        from src.main import build_services

        settings = _settings(openai_api_key="", chromadb_persist_dir=str(tmp_path))
        with pytest.raises(ConfigurationError):
            build_services(settings=settings, config={})


# ======================================================================
# build_document_source
# ======================================================================


class TestBuildDocumentSource:
    def test_directory(self, docs_tree: Path) -> None:
        from src.main import build_document_source
        from src.providers.source.filesystem_source import FileSystemSource

        assert isinstance(build_document_source(docs_tree), FileSystemSource)

    def test_zip_archive(self, tmp_path: Path) -> None:
        from src.main import build_document_source
        from src.providers.source.zip_source import ZipSource

        archive = tmp_path / "docs.ZIP"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("docs/intro.md", "# Intro\n")

        assert isinstance(build_document_source(archive), ZipSource)

    def test_missing_path(self, tmp_path: Path) -> None:
        from src.main import build_document_source

        with pytest.raises(DocumentSourceError):
            build_document_source(tmp_path / "nope")

    def test_plain_file_rejected(self, tmp_path: Path) -> None:
        from src.main import build_document_source

        single = tmp_path / "readme.md"
        single.write_text("# Readme\n", encoding="utf-8")
        with pytest.raises(DocumentSourceError):
            build_document_source(single)
