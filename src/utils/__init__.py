"""Utility modules for the document indexing pipeline.

- **errors** -- Exception hierarchy rooted at DocIndexError; each stage
  raises its own subclass so callers can tell per-item failures (skipped)
  from systemic ones (fatal to the run).
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Exception hierarchy ---------------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocIndexError,
    DocumentProcessingError,
    DocumentSourceError,
    InvalidRequestError,
    JobStateError,
    PipelineError,
    RAGError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DocIndexError",
    "DocumentProcessingError",
    "DocumentSourceError",
    "InvalidRequestError",
    "JobStateError",
    "PipelineError",
    "RAGError",
    "configure_logging",
    "get_logger",
]
