"""
Tests for DocumentSearchTools

Collection queries, summaries, listing and metadata over the in-memory
storage.
"""

import pytest
from unittest.mock import AsyncMock


@pytest.fixture
def storage():
    from docsearch.common.storage import InMemoryEmbeddingStorage
    return InMemoryEmbeddingStorage()


async def populate(pipeline, storage, collection="docs"):
    fruit = await pipeline.build("fruit.txt", b"apple banana\ncherry", "txt")
    cars = await pipeline.build("cars.txt", b"engine wheel\nroad", "txt")
    await storage.store(collection, fruit)
    await storage.store(collection, cars)


@pytest.fixture
def make_tools(storage, embedder, budgeter):
    from docsearch.retriever.search_tools import DocumentSearchTools

    def _make(**kwargs):
        kwargs.setdefault("collection_name", "docs")
        return DocumentSearchTools(storage=storage, embedder=embedder, budgeter=budgeter, **kwargs)
    return _make


class TestConstruction:
    def test_none_collection_rejected(self, make_tools):
        with pytest.raises(ValueError):
            make_tools(collection_name=None)


class TestQueryAllDocuments:
    @pytest.mark.asyncio
    async def test_empty_question(self, make_tools, pipeline, storage, embedder):
        await populate(pipeline, storage)
        calls_before = len(embedder.calls)
        tools = make_tools()

        assert await tools.query_all_documents("") == ""
        assert len(embedder.calls) == calls_before

    @pytest.mark.asyncio
    async def test_matching_document_block(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools()

        result = await tools.query_all_documents("apple")

        assert result == "\nName:'fruit.txt'\nFormat: txt\n===\napple banana\n===\n"

    @pytest.mark.asyncio
    async def test_blocks_concatenated_in_storage_order(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools()

        result = await tools.query_all_documents("cherry road road")

        assert result.index("Name:'cars.txt'") < result.index("Name:'fruit.txt'")
        assert "road" in result and "cherry" in result

    @pytest.mark.asyncio
    async def test_truncated_once(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools(max_context_tokens=2)

        assert await tools.query_all_documents("apple") == "\nName:'fruit.txt'\nFormat:"

    @pytest.mark.asyncio
    async def test_filter_restricts_documents(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools(document_filter=lambda d: d.name != "fruit.txt")

        assert await tools.query_all_documents("apple") == ""

    @pytest.mark.asyncio
    async def test_reranks_per_document(self, make_tools, pipeline, storage):
        from docsearch.retriever.reranker import RerankingAdapter

        await storage.store("docs", await pipeline.build("mixed.txt", b"engine\nengine wheel", "txt"))
        service = AsyncMock()
        service.rerank = AsyncMock(side_effect=lambda question, texts: list(reversed(texts)))
        tools = make_tools(reranker=RerankingAdapter(service, enabled=True), min_similarity=0.1)

        result = await tools.query_all_documents("engine")

        assert "===\nengine wheel\nengine\n===" in result
        service.rerank.assert_awaited_once_with("engine", ["engine", "engine wheel"])


class TestQuerySingleDocument:
    @pytest.mark.asyncio
    async def test_found(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools()

        result = await tools.query_single_document("cars.txt", "wheel")

        assert result == "\nName:'cars.txt'\nFormat: txt\n===\nengine wheel\n===\n"

    @pytest.mark.asyncio
    async def test_not_found(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools()

        assert await tools.query_single_document("boats.txt", "sail") == 'Unable to read "boats.txt"'

    @pytest.mark.asyncio
    async def test_empty_question(self, make_tools):
        tools = make_tools()

        assert await tools.query_single_document("cars.txt", "") == ""


class TestListAndMetadata:
    @pytest.mark.asyncio
    async def test_list_all_documents(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)

        assert await make_tools().list_all_documents() == "fruit.txt\ncars.txt"

    @pytest.mark.asyncio
    async def test_list_empty_collection(self, make_tools):
        assert await make_tools(collection_name="empty").list_all_documents() == ""

    @pytest.mark.asyncio
    async def test_list_with_filter(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)
        tools = make_tools(document_filter=lambda d: d.name.startswith("car"))

        assert await tools.list_all_documents() == "cars.txt"

    @pytest.mark.asyncio
    async def test_read_documents_metadata(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)

        result = await make_tools().read_documents_metadata(["fruit.txt", "missing.txt", "cars.txt"])

        assert result == (
            "Source:'fruit.txt'\nFormat: txt\n===\n"
            'Unable to read "missing.txt"\n===\n'
            "Source:'cars.txt'\nFormat: txt\n===\n"
        )


class TestSummarizeDocument:
    @pytest.mark.asyncio
    async def test_summary_block(self, make_tools, pipeline, storage):
        await populate(pipeline, storage)

        result = await make_tools().summarize_document("cars.txt")

        assert result == "\nName:'cars.txt'\nFormat: txt\n===\nengine wheel\nroad\n===\n"

    @pytest.mark.asyncio
    async def test_not_found(self, make_tools):
        assert await make_tools().summarize_document("nope.txt") == 'Unable to read "nope.txt"'
