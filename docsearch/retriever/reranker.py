"""
Reranker Adapter

Optional second ordering pass over ranked chunks. Disabled means identity.
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence

from ..common.exceptions import RerankingServiceError
from ..common.services import RerankingService

logger = logging.getLogger("docsearch.retriever.reranker")


class RerankingAdapter:
    """
    Wraps a RerankingService behind an enabled flag.

    The service may only reorder: its result must be a permutation of the
    input chunks.
    """

    def __init__(self, service: Optional[RerankingService] = None, enabled: bool = False):
        self._service = service
        self.enabled = enabled

    @property
    def is_active(self) -> bool:
        """Reranking happens only when enabled and a service is configured"""
        return self.enabled and self._service is not None

    async def rerank(self, question: str, chunks: Sequence[str]) -> List[str]:
        """
        Rerank chunks by relevance to the question.

        Returns:
            The same chunks, possibly reordered

        Raises:
            RerankingServiceError: the service failed or added/removed chunks
        """
        chunks = list(chunks)
        if not chunks:
            return chunks

        if not self.enabled:
            return chunks

        if self._service is None:
            logger.warning("Reranking enabled but no reranking service configured")
            return chunks

        reranked = list(await self._service.rerank(question, chunks))

        if Counter(reranked) != Counter(chunks):
            raise RerankingServiceError(
                f"Reranker returned {len(reranked)} chunks that are not a reordering of the {len(chunks)} inputs"
            )

        return reranked
