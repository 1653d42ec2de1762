"""Composition root for the documentation indexing pipeline.

Wires together all providers and services via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and
configures structured logging.  There is no web server here: HTTP or
tool-protocol front-ends import :func:`build_services` and call the
returned services.

Also exposes :func:`build_document_source` for turning an uploaded
archive or a local directory into an :class:`IDocumentSource`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.document_source import IDocumentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.pipeline.index_job_runner import IndexJobRunner
from src.pipeline.job_manager import JobManager
from src.providers.source.filesystem_source import FileSystemSource
from src.providers.source.zip_source import ZipSource
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.document_processor import DocumentProcessor
from src.services.ingestion.embedding_service import EmbeddingService
from src.services.ingestion.metadata_extractor import PathMetadataExtractor
from src.services.query_service import QueryService
from src.services.version_metadata_service import VersionMetadataService
from src.utils.errors import ConfigurationError, DocumentSourceError
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Embedding provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Build the embedding provider named by ``EMBEDDING_PROVIDER``.

    Returns ``None`` for ``"store"``, where ChromaDB embeds text itself.
    Imports are deferred so unused heavy libraries (fastembed,
    sentence-transformers) are never loaded.

    Raises
    ------
    ConfigurationError
        For an unknown provider name, or ``"openai"`` without an API key.
    """
    name = app_settings.embedding_provider
    model = app_settings.embedding_model or None

    if name == "store":
        return None

    if name == "openai":
        if not app_settings.openai_api_key:
            raise ConfigurationError(
                message="EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY",
                provider_name="openai_embedding",
            )
        from src.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        return OpenAIEmbeddingProvider(settings=app_settings)

    if name == "fastembed":
        from src.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        return FastEmbedEmbeddingProvider(model_name=model)

    if name == "sentence_transformer":
        from src.providers.embedding.sentence_transformer_embedding_provider import (
            SentenceTransformerEmbeddingProvider,
        )

        return SentenceTransformerEmbeddingProvider(model_name=model)

    if name == "nomic":
        from src.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        return NomicEmbeddingProvider(settings=app_settings)

    raise ConfigurationError(
        message=f"Unknown embedding provider: {name!r}",
        provider_name="embedding",
    )


def _build_vector_store(app_settings: Settings) -> ChromaDBProvider:
    embedding_function = None
    if app_settings.embedding_provider == "store":
        # Chroma's bundled ONNX MiniLM model; loaded only in this mode.
        from chromadb.utils.embedding_functions import DefaultEmbeddingFunction

        embedding_function = DefaultEmbeddingFunction()

    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        embedding_function=embedding_function,
        alpha=app_settings.search_alpha,
        candidate_multiplier=app_settings.search_candidate_multiplier,
        version_cache_ttl=app_settings.version_cache_ttl,
    )


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_services(
    settings: Settings | None = None,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Parameters
    ----------
    settings:
        Environment settings; read from the environment when omitted.
    config:
        Resolved configuration dict (see :func:`load_config`); loaded from
        ``config/config.yaml`` when omitted.

    Returns
    -------
    dict
        Named components: ``settings``, ``config``, ``embedding_provider``,
        ``embedding_service``, ``vector_store``, ``document_processor``,
        ``query_service``, ``job_manager``, ``version_metadata_service``,
        ``index_job_runner``.
    """
    app_settings = settings or Settings()
    app_config = config if config is not None else load_config(settings=app_settings)

    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    logger: structlog.BoundLogger = get_logger(__name__)

    # -- Embedding --
    embedding_provider = _build_embedding_provider(app_settings)
    embedding_service = (
        EmbeddingService(embedding_provider, batch_size=app_settings.embedding_batch_size)
        if embedding_provider is not None
        else None
    )

    # -- Vector store --
    vector_store = _build_vector_store(app_settings)

    # -- Chunking and path metadata --
    chunking = app_config.get("chunking", {})
    chunker = TextChunker(
        strategy=chunking.get("strategy", app_settings.chunking_strategy),
        chunk_size=chunking.get("size", app_settings.chunk_size),
        overlap=chunking.get("overlap", app_settings.chunk_overlap),
    )
    metadata_extractor = PathMetadataExtractor(
        taxonomy=app_config.get("taxonomy"),
        include_root_segment=chunking.get(
            "include_root_segment", app_settings.include_root_segment
        ),
    )
    document_processor = DocumentProcessor(chunker=chunker, metadata_extractor=metadata_extractor)

    # -- Services --
    query_service = QueryService(
        vector_store=vector_store,
        embedding_service=embedding_service,
        default_limit=app_settings.search_default_limit,
        tag_overfetch_factor=app_settings.tag_overfetch_factor,
    )
    version_metadata_service = VersionMetadataService(
        metadata_path=app_settings.metadata_path,
        install_scope=app_settings.install_command_scope,
    )
    job_manager = JobManager(
        retention_hours=app_settings.job_retention_hours,
        cleanup_interval_seconds=app_settings.job_cleanup_interval_seconds,
    )
    index_job_runner = IndexJobRunner(
        job_manager=job_manager,
        vector_store=vector_store,
        document_processor=document_processor,
        embedding_service=embedding_service,
        version_metadata_service=version_metadata_service,
        batch_size=app_settings.index_batch_size,
    )

    logger.info(
        "services_built",
        embedding_provider=(
            embedding_provider.get_provider_name() if embedding_provider else "store"
        ),
        vector_store=vector_store.get_provider_name(),
        persist_dir=app_settings.chromadb_persist_dir,
        chunking_strategy=chunker.strategy,
    )

    return {
        "settings": app_settings,
        "config": app_config,
        "embedding_provider": embedding_provider,
        "embedding_service": embedding_service,
        "vector_store": vector_store,
        "document_processor": document_processor,
        "query_service": query_service,
        "job_manager": job_manager,
        "version_metadata_service": version_metadata_service,
        "index_job_runner": index_job_runner,
    }


def build_document_source(
    path: str | Path,
    extensions: list[str] | tuple[str, ...] | None = None,
) -> IDocumentSource:
    """Return a :class:`ZipSource` for ``.zip`` files, else a :class:`FileSystemSource`.

    Raises
    ------
    DocumentSourceError
        If *path* is neither a ZIP file nor a directory.
    """
    source_path = Path(path)
    kwargs: dict[str, Any] = {}
    if extensions:
        kwargs["extensions"] = tuple(extensions)

    if source_path.is_file() and source_path.suffix.lower() == ".zip":
        return ZipSource(source_path, **kwargs)
    if source_path.is_dir():
        return FileSystemSource(source_path, **kwargs)
    raise DocumentSourceError(
        message=f"Not a directory or .zip archive: {source_path}",
        provider_name="source",
    )
