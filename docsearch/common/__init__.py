"""
docsearch Common Module

Shared infrastructure: configuration, data model, capability interfaces and
their default implementations.

The in-memory storage lives in ``docsearch.common.storage`` and is not
re-exported here because it ranks with ``docsearch.retriever``.
"""

from .config import DocSearchConfig, load_config, save_config
from .exceptions import (
    ConversionError,
    DocSearchError,
    EmbeddingServiceError,
    RerankingServiceError,
    ServiceUnavailableError,
    StorageServiceError,
)
from .models import EmbeddedDocument, Embedding, RetrievalBlock

__all__ = [
    "DocSearchConfig",
    "load_config",
    "save_config",
    "DocSearchError",
    "ConversionError",
    "ServiceUnavailableError",
    "EmbeddingServiceError",
    "RerankingServiceError",
    "StorageServiceError",
    "Embedding",
    "EmbeddedDocument",
    "RetrievalBlock",
]
