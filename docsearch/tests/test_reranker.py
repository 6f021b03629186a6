"""
Tests for RerankingAdapter
"""

import pytest
from unittest.mock import AsyncMock

from docsearch.common.exceptions import RerankingServiceError, ServiceUnavailableError


class TestRerankingAdapter:
    @pytest.fixture
    def service(self):
        service = AsyncMock()
        service.rerank = AsyncMock(side_effect=lambda question, texts: list(reversed(texts)))
        return service

    @pytest.mark.asyncio
    async def test_disabled_is_identity(self, service):
        from docsearch.retriever.reranker import RerankingAdapter

        adapter = RerankingAdapter(service, enabled=False)

        assert await adapter.rerank("q", ["a", "b"]) == ["a", "b"]
        service.rerank.assert_not_called()

    @pytest.mark.asyncio
    async def test_enabled_without_service_is_identity(self):
        from docsearch.retriever.reranker import RerankingAdapter

        adapter = RerankingAdapter(None, enabled=True)

        assert not adapter.is_active
        assert await adapter.rerank("q", ["a", "b"]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_enabled_reorders(self, service):
        from docsearch.retriever.reranker import RerankingAdapter

        adapter = RerankingAdapter(service, enabled=True)

        assert adapter.is_active
        assert await adapter.rerank("q", ["a", "b", "c"]) == ["c", "b", "a"]
        service.rerank.assert_awaited_once_with("q", ["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_empty_chunks_skip_service(self, service):
        from docsearch.retriever.reranker import RerankingAdapter

        adapter = RerankingAdapter(service, enabled=True)

        assert await adapter.rerank("q", []) == []
        service.rerank.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_permutation_raises(self, service):
        from docsearch.retriever.reranker import RerankingAdapter

        service.rerank = AsyncMock(return_value=["a", "x"])
        adapter = RerankingAdapter(service, enabled=True)

        with pytest.raises(RerankingServiceError) as exc_info:
            await adapter.rerank("q", ["a", "b"])

        assert isinstance(exc_info.value, ServiceUnavailableError)
        assert exc_info.value.service == "reranking"

    @pytest.mark.asyncio
    async def test_dropped_duplicate_raises(self, service):
        from docsearch.retriever.reranker import RerankingAdapter

        service.rerank = AsyncMock(return_value=["a"])
        adapter = RerankingAdapter(service, enabled=True)

        with pytest.raises(RerankingServiceError):
            await adapter.rerank("q", ["a", "a"])
