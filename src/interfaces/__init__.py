"""Public interface definitions for the pipeline's pluggable ports.

Every backend the indexing pipeline touches is reached only through the
abstract base classes defined here.  Concrete adapters implement these
interfaces and are injected at construction time by ``src/main.py``, so
tests can pass in-memory fakes and deployments can swap ChromaDB or the
embedding model without touching the services.

CONCRETE PROVIDER MAP:
    Interface                  ->  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IDocumentSource            ->  FileSystemSource, ZipSource
    IEmbeddingProvider         ->  FastEmbedEmbeddingProvider,
                                   OpenAIEmbeddingProvider,
                                   SentenceTransformerEmbeddingProvider,
                                   NomicEmbeddingProvider
    IVectorStoreProvider       ->  ChromaDBProvider
"""

from src.interfaces.document_source import IDocumentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import (
    FILTER_FIELDS,
    Filters,
    IVectorStoreProvider,
    matches_filters,
)

__all__ = [
    "FILTER_FIELDS",
    "Filters",
    "IDocumentSource",
    "IEmbeddingProvider",
    "IVectorStoreProvider",
    "matches_filters",
]
