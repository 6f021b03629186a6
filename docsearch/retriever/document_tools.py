"""
Document Tools

Query and summarize one ad-hoc document (a file path or a stream).

The document's embedding is built on first use and cached on the instance.
Concurrent first callers share one in-flight build; changing the source
discards the cache.
"""

import asyncio
import logging
from typing import Optional

import numpy as np

from ..common.exceptions import ConversionError
from ..common.models import EmbeddedDocument, RetrievalBlock
from ..common.services import EmbeddingGenerator
from .budgeter import ContextBudgeter
from .pipeline import DocumentPipeline, Source, stream_position
from .ranker import SimilarityRanker
from .reranker import RerankingAdapter
from .summarizer import ClusterSummarizer

logger = logging.getLogger("docsearch.retriever.document_tools")

READ_FAILURE_MESSAGE = "Failed reading the document"


async def embed_question(embedder: EmbeddingGenerator, question: Optional[str]) -> Optional[np.ndarray]:
    """Embed a question; None for an empty question."""
    if not question:
        return None
    embedding = await embedder.embed([question])
    return embedding.vectors[0]


class DocumentTools:
    """
    Semantic query and extractive summary over a single document.

    Pipeline:
    1. Convert, split and embed the source (once, cached)
    2. Embed the question
    3. Rank chunks, cut off by min_similarity and top_n
    4. Rerank (optional)
    """

    def __init__(
        self,
        pipeline: DocumentPipeline,
        embedder: EmbeddingGenerator,
        budgeter: ContextBudgeter,
        reranker: Optional[RerankingAdapter] = None,
        file_path: Optional[str] = None,
        stream: Optional[Source] = None,
        file_type: Optional[str] = None,
        top_n: int = 10,
        min_similarity: float = 0.25,
        max_clusters: int = 5,
        max_context_tokens: int = 4096,
    ):
        """
        Initialize document tools.

        Args:
            pipeline: Conversion/split/embed pipeline for the source
            embedder: Embeds questions
            budgeter: Token budgeting for summaries
            reranker: Optional reranking adapter (identity when None)
            file_path: Path of the document
            stream: Document bytes or a binary stream (takes precedence)
            file_type: Format hint; defaults to the file extension
            top_n: Maximum chunks returned by a query
            min_similarity: Minimum cosine similarity for a chunk
            max_clusters: Clusters used for summarization
            max_context_tokens: Token budget for summaries
        """
        self._pipeline = pipeline
        self._embedder = embedder
        self._budgeter = budgeter
        self._reranker = reranker or RerankingAdapter()
        self._ranker = SimilarityRanker()
        self._summarizer = ClusterSummarizer()

        self._file_path = file_path
        self._stream = stream
        self._stream_position: Optional[int] = None
        self._file_type = file_type
        self._build_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

        self.top_n = top_n
        self.min_similarity = min_similarity
        self.max_clusters = max_clusters
        self.max_context_tokens = max_context_tokens

    # ---------- Source ---------- #

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    @file_path.setter
    def file_path(self, value: Optional[str]) -> None:
        if self._file_path != value:
            self._file_path = value
            self._stream = None
            self._stream_position = None
            self._reset()

    @property
    def stream(self) -> Optional[Source]:
        return self._stream

    @stream.setter
    def stream(self, value: Optional[Source]) -> None:
        if self._stream is not value:
            self._stream = value
            self._stream_position = None
            self._file_path = None
            self._reset()

    @property
    def file_type(self) -> Optional[str]:
        return self._file_type

    @file_type.setter
    def file_type(self, value: Optional[str]) -> None:
        if self._file_type != value:
            self._file_type = value
            self._reset()

    @property
    def reranking_enabled(self) -> bool:
        return self._reranker.enabled

    @reranking_enabled.setter
    def reranking_enabled(self, value: bool) -> None:
        self._reranker.enabled = value

    @property
    def document(self) -> Optional[EmbeddedDocument]:
        """The cached document, if it has been built successfully"""
        task = self._build_task
        if task is None or not task.done() or task.cancelled() or task.exception() is not None:
            return None
        return task.result()

    def _reset(self) -> None:
        # An in-flight build for the old source finishes for its own
        # awaiters but is no longer reachable from this instance.
        self._build_task = None

    # ---------- Embedding cache ---------- #

    async def ensure_document(self) -> EmbeddedDocument:
        """
        Return the cached document, building it on first use.

        Raises:
            ConversionError, OSError: the source could not be read or converted
            EmbeddingServiceError: embedding backend failure
        """
        async with self._lock:
            task = self._build_task
            if task is None:
                # Remember where a seekable stream started so a retry rereads it
                if self._stream_position is None:
                    self._stream_position = stream_position(self._stream)
                task = asyncio.ensure_future(
                    self._pipeline.build_from_source(
                        file_path=self._file_path,
                        stream=self._stream,
                        file_type=self._file_type,
                        position=self._stream_position,
                    )
                )
                self._build_task = task

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Failed builds are not cached; the next call retries
            if self._build_task is task:
                self._build_task = None
            raise

    async def _load_document(self) -> Optional[EmbeddedDocument]:
        try:
            return await self.ensure_document()
        except (ConversionError, OSError) as e:
            logger.warning("Failed reading document %s: %s", self._file_path or "<stream>", e)
            return None

    # ---------- Tools ---------- #

    async def query_document(self, question: str) -> str:
        """
        Query the document with a natural language question.

        Returns:
            Matching chunks joined by newlines, "" for an empty question, or
            the read-failure message
        """
        if not question:
            return ""

        document = await self._load_document()
        if document is None:
            return READ_FAILURE_MESSAGE

        query = await embed_question(self._embedder, question)
        embedding = document.get_embedding()

        chunks = self._ranker.rank(
            query,
            embedding.vectors,
            embedding.chunks,
            min_similarity=self.min_similarity,
            top_n=self.top_n,
        )
        chunks = await self._reranker.rerank(question, chunks)

        return "\n".join(chunks)

    async def summarize_document(self) -> str:
        """
        Summarize the document: lead chunk plus cluster representatives,
        formatted as a block and truncated to max_context_tokens.
        """
        document = await self._load_document()
        if document is None:
            return READ_FAILURE_MESSAGE

        chunks = self._summarizer.summarize(document.get_embedding(), self.max_clusters)
        block = RetrievalBlock(name=document.name, metadata=document.metadata, chunks=chunks)

        return self._budgeter.truncate(block.render(), self.max_context_tokens)
