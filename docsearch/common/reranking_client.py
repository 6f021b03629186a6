"""
Reranking Client

Async HTTP client for a cross-encoder reranking endpoint.

Request:  POST {"model", "query", "documents", "top_n"}
Response: {"results": [{"index": int, "relevance_score": float}, ...]}
"""

import logging
from typing import List, Optional, Sequence

import httpx

from .exceptions import RerankingServiceError
from .services import RerankingService

logger = logging.getLogger("docsearch.common.reranking_client")


class HttpRerankingService(RerankingService):
    """Reorders texts by the relevance scores of a remote reranker."""

    def __init__(
        self,
        endpoint: str,
        model: str = "",
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            endpoint: Full URL of the rerank endpoint
            model: Model name sent with each request
            api_key: Bearer token (optional)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        if not endpoint:
            raise ValueError("Reranker endpoint is required")

        self._endpoint = endpoint
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def rerank(self, question: str, texts: Sequence[str]) -> List[str]:
        texts = list(texts)
        if not texts:
            return []

        payload = {
            "model": self._model,
            "query": question,
            "documents": texts,
            "top_n": len(texts),
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint, json=payload, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise RerankingServiceError(f"Reranking request failed: {e}") from e
        except ValueError as e:
            raise RerankingServiceError(f"Reranking response is not valid JSON: {e}") from e

        return self._apply_order(texts, data)

    @staticmethod
    def _apply_order(texts: List[str], data: dict) -> List[str]:
        try:
            results = sorted(
                data["results"],
                key=lambda r: float(r["relevance_score"]),
                reverse=True,
            )
            order = [int(r["index"]) for r in results]
        except (KeyError, TypeError, ValueError) as e:
            raise RerankingServiceError(f"Malformed reranking response: {e}") from e

        seen = set()
        ranked: List[str] = []
        for index in order:
            if not 0 <= index < len(texts):
                raise RerankingServiceError(f"Reranker returned out-of-range index {index}")
            if index in seen:
                continue
            seen.add(index)
            ranked.append(texts[index])

        # Indices the service left out keep their original relative order
        missing = [texts[i] for i in range(len(texts)) if i not in seen]
        if missing:
            logger.debug("Reranker omitted %d of %d documents", len(missing), len(texts))

        return ranked + missing
