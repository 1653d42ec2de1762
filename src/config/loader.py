"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  -- static defaults checked into the repo,
#                             including the path taxonomy
#   2. .env file           -- local developer overrides (not committed)
#   3. Environment vars    -- set at deploy time
#
# _deep_merge does recursive dict merging:
#   base = {"chunking": {"strategy": "headers"}}
#   overrides = {"chunking": {"size": 4000}}
#   result = {"chunking": {"strategy": "headers", "size": 4000}}
#
# The taxonomy section has no env equivalent; it only comes from YAML,
# falling back to DEFAULT_TAXONOMY for any key the file leaves out.
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from src.config.settings import Settings

DEFAULT_TAXONOMY: dict = {
    "products": ["grid", "scheduler", "schedulerpro", "gantt", "calendar", "taskboard"],
    "default_product": "core",
    "frameworks": ["react", "angular", "vue", "vanilla"],
    "default_framework": "vanilla",
    # Path segment -> document type.  Checked in this order.
    "types": {
        "guides": "guide",
        "guide": "guide",
        "api": "api",
        "examples": "example",
        "example": "example",
        "concepts": "concept",
        "concept": "concept",
    },
    "default_type": "guide",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built Settings; a fresh instance is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "chunking": {
            "strategy": settings.chunking_strategy,
            "size": settings.chunk_size,
            "overlap": settings.chunk_overlap,
            "include_root_segment": settings.include_root_segment,
        },
        "embedding": {
            "provider": settings.embedding_provider,
            "batch_size": settings.embedding_batch_size,
        },
        "vector_store": {
            "persist_dir": settings.chromadb_persist_dir,
            "collection": settings.chromadb_collection,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    config = {"taxonomy": copy.deepcopy(DEFAULT_TAXONOMY)}
    _deep_merge(config, yaml_config)
    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
