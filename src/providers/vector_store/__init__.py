"""Vector store provider implementations.

ChromaDB is the sole vector store implementation.  It keeps chunks on
disk (persistent) and answers hybrid searches: cosine similarity over a
candidate pool, re-ranked with BM25 keyword relevance.  Data persists at
CHROMADB_PERSIST_DIR (default: ./data/chromadb).

To swap ChromaDB for another vector database (Qdrant, Weaviate),
create a new class implementing IVectorStoreProvider and register it in main.py.
"""

from src.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
