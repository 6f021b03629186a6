"""
Document Search Tools

Query, list and summarize documents stored in a named collection of the
embedding storage.
"""

import logging
from typing import List, Optional, Sequence

from ..common.models import RetrievalBlock, format_metadata
from ..common.services import DocumentFilter, EmbeddingGenerator, EmbeddingStorage
from .budgeter import ContextBudgeter
from .document_tools import embed_question
from .reranker import RerankingAdapter
from .summarizer import ClusterSummarizer

logger = logging.getLogger("docsearch.retriever.search_tools")


def not_found_message(name: str) -> str:
    return f'Unable to read "{name}"'


class DocumentSearchTools:
    """
    Searches documents in one collection.

    Features:
    - Cross-document query with per-document reranking
    - Single-document query by name
    - Cluster-based summary of a stored document
    - Listing and metadata lookup
    All text results are truncated to max_context_tokens.
    """

    def __init__(
        self,
        storage: EmbeddingStorage,
        embedder: EmbeddingGenerator,
        budgeter: ContextBudgeter,
        reranker: Optional[RerankingAdapter] = None,
        collection_name: str = "",
        document_filter: Optional[DocumentFilter] = None,
        top_n: int = 10,
        min_similarity: float = 0.25,
        max_clusters: int = 5,
        max_context_tokens: int = 4096,
    ):
        """
        Initialize search tools.

        Args:
            storage: Embedding storage holding the collection
            embedder: Embeds questions
            budgeter: Token budgeting for results
            reranker: Optional reranking adapter (identity when None)
            collection_name: Collection to search
            document_filter: Optional predicate restricting visible documents
            top_n: Maximum documents per query (and chunks per document)
            min_similarity: Minimum best-chunk similarity
            max_clusters: Clusters used for summarization
            max_context_tokens: Token budget for results

        Raises:
            ValueError: collection_name is None
        """
        if collection_name is None:
            raise ValueError("collection_name must not be None")

        self._storage = storage
        self._embedder = embedder
        self._budgeter = budgeter
        self._reranker = reranker or RerankingAdapter()
        self._summarizer = ClusterSummarizer()
        self._filter = document_filter

        self.collection_name = collection_name
        self.top_n = top_n
        self.min_similarity = min_similarity
        self.max_clusters = max_clusters
        self.max_context_tokens = max_context_tokens

    @property
    def reranking_enabled(self) -> bool:
        return self._reranker.enabled

    @reranking_enabled.setter
    def reranking_enabled(self, value: bool) -> None:
        self._reranker.enabled = value

    async def query_all_documents(self, question: str) -> str:
        """
        Query every document in the collection.

        Returns:
            One block per matching document in storage order, truncated once
            over the whole concatenation; "" for an empty question
        """
        query = await embed_question(self._embedder, question)
        if query is None:
            return ""

        documents = await self._storage.query(
            self.collection_name,
            query,
            self.top_n,
            self.min_similarity,
            self._filter,
        )
        logger.debug("Query matched %d documents in '%s'", len(documents), self.collection_name)

        parts = []
        for document in documents:
            chunks = await self._reranker.rerank(question, document.matches)
            parts.append(RetrievalBlock(name=document.name, metadata=document.metadata, chunks=chunks).render())

        return self._budgeter.truncate("".join(parts), self.max_context_tokens)

    async def query_single_document(self, document_name: str, question: str) -> str:
        """Query one named document in the collection."""
        query = await embed_question(self._embedder, question)
        if query is None:
            return ""

        document = await self._storage.query_document(
            self.collection_name,
            document_name,
            query,
            self.top_n,
            self.min_similarity,
        )
        if document is None:
            return not_found_message(document_name)

        chunks = await self._reranker.rerank(question, document.matches)
        block = RetrievalBlock(name=document.name, metadata=document.metadata, chunks=chunks)

        return self._budgeter.truncate(block.render(), self.max_context_tokens)

    async def list_all_documents(self) -> str:
        """Names of all visible documents, one per line."""
        documents = await self._storage.retrieve_all(self.collection_name, self._filter)
        return "\n".join(d.name for d in documents)

    async def read_documents_metadata(self, document_names: Sequence[str]) -> str:
        """
        Metadata for each named document.

        Missing documents produce a not-found entry; the batch continues.
        """
        lines: List[str] = []

        for name in document_names:
            document = await self._storage.retrieve(self.collection_name, name, False)

            if document is None:
                lines.append(not_found_message(name) + "\n")
            else:
                lines.append(f"Source:'{document.name}'\n")
                metadata = format_metadata(document.metadata)
                if metadata:
                    lines.append(metadata + "\n")
            lines.append("===\n")

        return self._budgeter.truncate("".join(lines), self.max_context_tokens)

    async def summarize_document(self, document_name: str) -> str:
        """Summarize a stored document with its cluster representatives."""
        document = await self._storage.retrieve(self.collection_name, document_name, True)
        if document is None or document.embedding is None:
            return not_found_message(document_name)

        chunks = self._summarizer.summarize(document.embedding, self.max_clusters)
        block = RetrievalBlock(name=document.name, metadata=document.metadata, chunks=chunks)

        return self._budgeter.truncate(block.render(), self.max_context_tokens)
