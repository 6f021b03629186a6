"""
In-Memory Embedding Storage

Named collections of embedded documents held in process memory.
Nothing is persisted; documents are lost when the process exits.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..retriever.ranker import SimilarityRanker
from .exceptions import StorageServiceError
from .models import EmbeddedDocument
from .services import DocumentFilter, EmbeddingStorage

logger = logging.getLogger("docsearch.common.storage")


class InMemoryEmbeddingStorage(EmbeddingStorage):
    """
    Dict-backed storage: collection -> name -> document, insertion ordered.

    Returned documents are copies; stored documents are never mutated.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, EmbeddedDocument]] = {}
        self._ranker = SimilarityRanker()

    def _documents(self, collection: str, document_filter: Optional[DocumentFilter] = None) -> List[EmbeddedDocument]:
        documents = list(self._collections.get(collection, {}).values())
        if document_filter is not None:
            documents = [d for d in documents if document_filter(d)]
        return documents

    def _match(
        self,
        document: EmbeddedDocument,
        vector: np.ndarray,
        top_n: int,
        min_similarity: float,
    ) -> Tuple[float, Tuple[str, ...]]:
        embedding = document.get_embedding()
        try:
            selected = self._ranker.rank_scored(vector, embedding.vectors, embedding.chunks, min_similarity, top_n)
        except ValueError as e:
            raise StorageServiceError(f"Cannot query '{document.name}': {e}") from e
        if not selected:
            return float("-inf"), ()
        return selected[0].score, tuple(item.text for item in selected)

    async def query(
        self,
        collection: str,
        vector: np.ndarray,
        top_n: int,
        min_similarity: float,
        document_filter: Optional[DocumentFilter] = None,
    ) -> List[EmbeddedDocument]:
        scored = []
        for document in self._documents(collection, document_filter):
            best, matches = self._match(document, vector, top_n, min_similarity)
            if matches:
                scored.append((best, document, matches))

        # sorted() is stable: equal scores keep insertion order
        scored.sort(key=lambda item: item[0], reverse=True)

        results = [
            replace(document, metadata=dict(document.metadata), matches=matches)
            for _, document, matches in scored[:max(top_n, 0)]
        ]
        logger.debug("Query on '%s' matched %d documents", collection, len(results))
        return results

    async def query_document(
        self,
        collection: str,
        name: str,
        vector: np.ndarray,
        top_n: int,
        min_similarity: float,
    ) -> Optional[EmbeddedDocument]:
        document = self._collections.get(collection, {}).get(name)
        if document is None:
            return None

        _, matches = self._match(document, vector, top_n, min_similarity)
        return replace(document, metadata=dict(document.metadata), matches=matches)

    async def retrieve(self, collection: str, name: str, load_full: bool = False) -> Optional[EmbeddedDocument]:
        document = self._collections.get(collection, {}).get(name)
        if document is None:
            return None

        return replace(
            document,
            metadata=dict(document.metadata),
            embedding=document.embedding if load_full else None,
            matches=(),
        )

    async def retrieve_all(
        self,
        collection: str,
        document_filter: Optional[DocumentFilter] = None,
    ) -> List[EmbeddedDocument]:
        return [
            replace(d, metadata=dict(d.metadata), embedding=None, matches=())
            for d in self._documents(collection, document_filter)
        ]

    async def store(self, collection: str, document: EmbeddedDocument) -> None:
        """Store (or replace) a document; it must carry its embedding."""
        document.get_embedding()

        documents = self._collections.setdefault(collection, {})
        # Replacing moves the document to the end of the insertion order
        documents.pop(document.name, None)
        documents[document.name] = replace(document, metadata=dict(document.metadata), matches=())

        logger.info("Stored '%s' in '%s' (%d chunks)", document.name, collection, len(document.get_embedding()))

    async def remove(self, collection: str, name: str) -> bool:
        documents = self._collections.get(collection)
        if documents is None or name not in documents:
            return False

        del documents[name]
        if not documents:
            del self._collections[collection]
        return True
