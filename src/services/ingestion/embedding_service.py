"""Batch embedding of chunks for stores that need external vectors.

Wraps an :class:`~src.interfaces.embedding_provider.IEmbeddingProvider` and
re-attaches each returned vector to its chunk by position.  The service
makes exactly one provider call per sub-batch and never retries: a failed
sub-batch ends the stream with the provider's error, and retrying is the
provider adapter's business.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.document import Chunk, EmbeddedChunk
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingService:
    """Embeds query text and streams :class:`EmbeddedChunk` objects.

    Parameters
    ----------
    provider:
        The embedding backend.
    batch_size:
        Default number of chunks per provider call.
    """

    def __init__(self, provider: IEmbeddingProvider, batch_size: int = 50) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._provider = provider
        self._batch_size = batch_size

    @property
    def model_name(self) -> str:
        return self._provider.get_model_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        return await self._provider.embed_single(text)

    async def embed_query(self, query: str) -> list[float]:
        """Embed search query text."""
        return await self.embed(query)

    async def embed_batch(
        self,
        chunks: Sequence[Chunk],
        batch_size: int | None = None,
    ) -> AsyncIterator[EmbeddedChunk]:
        """Yield *chunks* with embeddings attached, one sub-batch at a time.

        Parameters
        ----------
        chunks:
            Chunks to embed.
        batch_size:
            Chunks per provider call; defaults to the service's batch size.

        Raises
        ------
        RAGError
            If the provider fails or returns a different number of vectors
            than it was given texts.
        """
        size = batch_size or self._batch_size
        for start in range(0, len(chunks), size):
            batch = chunks[start : start + size]
            vectors = await self._provider.embed([chunk.text for chunk in batch])
            if len(vectors) != len(batch):
                raise RAGError(
                    message=(
                        f"Embedding provider returned {len(vectors)} vectors "
                        f"for {len(batch)} texts"
                    ),
                    provider_name=self._provider.get_provider_name(),
                )

            logger.debug(
                "embedding_batch_complete",
                provider=self._provider.get_provider_name(),
                batch_size=len(batch),
                offset=start,
            )
            for chunk, vector in zip(batch, vectors, strict=True):
                yield EmbeddedChunk(
                    id=chunk.id,
                    text=chunk.text,
                    metadata=chunk.metadata,
                    embedding=vector,
                )
