"""Nomic embedding provider adapter (local/free via Ollama).

Talks to the OpenAI-compatible ``/v1`` endpoint that Ollama exposes and
implements :class:`IEmbeddingProvider` with ``nomic-embed-text``
(768 dimensions).  No API key required.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512
_MODEL = "nomic-embed-text"
_DIMENSION = 768

# nomic-embed-text was trained with task prefixes; documents and queries
# embed into comparable spaces only when each carries its own prefix.
_DOCUMENT_PREFIX = "search_document: "
_QUERY_PREFIX = "search_query: "


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama.

    Batches larger than 512 texts are split into several requests.
    """

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # Ollama ignores the key but the client requires one
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts (prefixed with ``search_document:``)."""
        return await self._embed([_DOCUMENT_PREFIX + t for t in texts])

    async def embed_single(self, text: str) -> list[float]:
        """Embed one query text (prefixed with ``search_query:``)."""
        result = await self._embed([_QUERY_PREFIX + text])
        return result[0]

    def get_dimension(self) -> int:
        return _DIMENSION

    def get_model_name(self) -> str:
        return _MODEL

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server is reachable."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
                batch = texts[start : start + _OLLAMA_BATCH_LIMIT]
                response = await self._client.embeddings.create(input=batch, model=_MODEL)
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info("nomic_embedding_batch", model=_MODEL, batch_size=len(batch))
            return all_embeddings
        except openai.APIError as exc:
            raise RAGError(
                message=f"Nomic/Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
