"""Background job orchestration for indexing runs."""

from src.pipeline.index_job_runner import IndexJobRunner
from src.pipeline.job_manager import JobManager

__all__ = [
    "IndexJobRunner",
    "JobManager",
]
