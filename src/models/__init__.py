"""Domain models -- re-exports all public model classes.

Import models from here rather than from their individual modules::

    from src.models import Chunk, SearchResult, Job

- **document** -- what flows through ingestion (Document, Chunk, EmbeddedChunk).
- **rag** -- what the pipeline returns (SearchResult, IndexResult,
  IndexProgress, CorpusStats).
- **job** -- background job records (Job, JobStatus, JobError).
"""

from src.models.document import Chunk, ChunkMetadata, Document, EmbeddedChunk
from src.models.job import Job, JobError, JobStatus
from src.models.rag import CorpusStats, IndexProgress, IndexResult, SearchResult

__all__ = [
    # document
    "Chunk",
    "ChunkMetadata",
    "Document",
    "EmbeddedChunk",
    # job
    "Job",
    "JobError",
    "JobStatus",
    # rag
    "CorpusStats",
    "IndexProgress",
    "IndexResult",
    "SearchResult",
]
