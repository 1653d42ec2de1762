"""Custom exception hierarchy for the document indexing pipeline.

All application exceptions inherit from :class:`DocIndexError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "chromadb", "openai_embedding", "zip_source") caused the
failure.

The hierarchy follows the pipeline's error taxonomy:

    DocIndexError  (base -- catch-all for any pipeline error)
    +-- ConfigurationError       (startup / unknown provider / bad settings)
    +-- InvalidRequestError      (validation: missing version, empty query)
    +-- DocumentSourceError      (a directory or archive cannot be opened)
    +-- DocumentProcessingError  (one document could not be chunked)
    +-- RAGError                 (embedding provider or vector-store failure)
    +-- PipelineError            (index orchestration failure)
        +-- JobStateError        (illegal job state transition)

Per-item failures (:class:`DocumentProcessingError`, unreadable source
entries) are absorbed by the stage that raised them.  Systemic failures
(:class:`RAGError`, :class:`PipelineError`) abort the current indexing run
and end up in the failed job's ``error`` field.
"""


class DocIndexError(Exception):
    """Base exception for all document indexing errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.  The
    ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[chromadb] upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller / configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(DocIndexError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidRequestError(DocIndexError):
    """Raised when a caller omits a required argument (version, query text)."""

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class DocumentSourceError(DocIndexError):
    """Raised when a document source cannot be opened at all.

    Individual unreadable entries never raise this; they are logged and
    skipped by the source itself.
    """

    def __init__(
        self,
        message: str = "Document source could not be opened",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentProcessingError(DocIndexError):
    """Raised when a single document cannot be split into chunks."""

    def __init__(
        self,
        message: str = "Document processing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / vector-store errors
# ---------------------------------------------------------------------------

class RAGError(DocIndexError):
    """Raised when an embedding or vector-store operation fails."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------

class PipelineError(DocIndexError):
    """Raised when indexing orchestration fails."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class JobStateError(PipelineError):
    """Raised on an illegal job transition, e.g. completing a failed job.

    Jobs move ``pending -> running -> completed | failed`` and never leave
    a terminal state; retrying means creating a new job.
    """

    def __init__(
        self,
        message: str = "Illegal job state transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
