"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads every field from two sources, in priority order:
#
#   1. Environment variables, e.g. CHUNK_SIZE=4000 (always wins)
#   2. The .env file in the working directory (local development)
#
# Field ``chromadb_persist_dir`` maps to env var ``CHROMADB_PERSIST_DIR``.
# List fields take JSON in env vars: SOURCE_EXTENSIONS='[".md", ".mdx"]'.
# Defaults below apply when neither source sets a value.
# ──────────────────────────────────────────────────────────────────────
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Document indexing settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding ===
    # "store" means the vector store embeds text itself and no external
    # provider is built.
    embedding_provider: Literal["fastembed", "openai", "sentence_transformer", "nomic", "store"] = (
        "fastembed"
    )
    embedding_model: str = ""  # Model override for fastembed / sentence-transformers
    embedding_batch_size: int = Field(default=50, ge=1)
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible APIs (TogetherAI etc.)
    openai_embedding_model: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Vector store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "documents"
    version_cache_ttl: int = Field(default=60, ge=0)

    # === Chunking ===
    chunking_strategy: Literal["headers", "size", "none"] = "headers"
    chunk_size: int = Field(default=6000, ge=1)
    chunk_overlap: int = Field(default=500, ge=0)
    # Whether the first path segment (usually the archive's top folder)
    # becomes a tag.
    include_root_segment: bool = False
    source_extensions: list[str] = [".md", ".markdown"]

    # === Indexing ===
    index_batch_size: int = Field(default=50, ge=1)
    metadata_path: str = "./data/metadata"
    install_command_scope: str = ""  # npm scope harvested into version metadata

    # === Search ===
    search_default_limit: int = Field(default=5, ge=1)
    search_alpha: float = Field(default=0.75, ge=0.0, le=1.0)
    search_candidate_multiplier: int = Field(default=4, ge=1)
    tag_overfetch_factor: int = Field(default=3, ge=1)

    # === Jobs ===
    job_retention_hours: int = Field(default=24, ge=0)
    job_cleanup_interval_seconds: int = Field(default=3600, ge=1)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
