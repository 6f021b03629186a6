"""
docsearch

Semantic retrieval and extractive summarization over chunk embeddings.

Philosophy:
- Rank, cut off, rerank, then budget: every answer is a prefix that fits
- Deterministic output: identical input always yields identical text
- External capabilities (conversion, splitting, embedding, storage, reranking)
  are injected, never discovered

Usage:
    from docsearch.common import load_config, Embedding
    from docsearch.common.storage import InMemoryEmbeddingStorage
    from docsearch.retriever import DocumentTools, DocumentSearchTools
    from docsearch.server.server import build_app
"""

__version__ = "0.1.0"
