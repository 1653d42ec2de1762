"""Embedding provider implementations.

Embeddings turn chunk text into vectors for similarity search.  They are
only needed when the vector store does not embed text itself.

Four implementations of IEmbeddingProvider:
    1. FastEmbedEmbeddingProvider -- ONNX-based, no PyTorch.  The default.
    2. OpenAIEmbeddingProvider    -- text-embedding-3-small (1536 dims),
       or any OpenAI-compatible API via OPENAI_BASE_URL.
    3. SentenceTransformerEmbeddingProvider -- PyTorch-based, any Hub model.
    4. NomicEmbeddingProvider     -- nomic-embed-text via a local Ollama.

FastEmbed and SentenceTransformer import their heavy libraries lazily, on
first embed, so importing this package never requires them.
"""

from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "FastEmbedEmbeddingProvider",
    "NomicEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
]
