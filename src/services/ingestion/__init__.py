"""Document indexing pipeline.

Pipeline stages: **read -> chunk -> tag -> embed -> store**.

1. **Read** (src/providers/source/) -- an IDocumentSource yields raw
   Markdown documents from a directory or ZIP archive.

2. **Chunk** (chunker.py / TextChunker) -- splits content by headers, by
   size with overlap, or not at all.

3. **Tag** (metadata_extractor.py / PathMetadataExtractor) -- derives tags,
   product, framework and type from the document's path.

4. **Embed** (embedding_service.py / EmbeddingService) -- attaches vectors,
   only when the vector store does not embed text itself.

5. **Store** (via IVectorStoreProvider) -- upserts chunks in batches.

IndexService (index_service.py) drives all five for one version label.
"""

from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.document_processor import DocumentProcessor
from src.services.ingestion.embedding_service import EmbeddingService
from src.services.ingestion.index_service import IndexService
from src.services.ingestion.metadata_extractor import PathMetadataExtractor

__all__ = [
    "DocumentProcessor",
    "EmbeddingService",
    "IndexService",
    "PathMetadataExtractor",
    "TextChunker",
]
