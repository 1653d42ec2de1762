"""Configuration module -- exports Settings, load_config and the default taxonomy."""

from src.config.loader import DEFAULT_TAXONOMY, load_config
from src.config.settings import Settings

__all__ = ["DEFAULT_TAXONOMY", "Settings", "load_config"]
