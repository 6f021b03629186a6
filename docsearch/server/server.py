"""
docsearch MCP Server

Exposes document query and summarization tools to an LLM agent.

Transport: stdio only (stdout carries the protocol; logs go to stderr).

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str             # Present if ok is False
}
"""

import argparse
import logging
import os
import signal
import sys
from collections import OrderedDict
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from ..common.config import DocSearchConfig, load_config
from ..common.conversion import DocumentConversionService
from ..common.embedding_service import EmbeddingService
from ..common.exceptions import ConversionError, ServiceUnavailableError
from ..common.reranking_client import HttpRerankingService
from ..common.services import EmbeddingStorage
from ..common.splitter import RecursiveTextSplitter
from ..common.storage import InMemoryEmbeddingStorage
from ..common.tokenizer import HuggingFaceTokenizer
from ..retriever.budgeter import ContextBudgeter
from ..retriever.document_tools import DocumentTools
from ..retriever.pipeline import DocumentPipeline
from ..retriever.reranker import RerankingAdapter
from ..retriever.search_tools import DocumentSearchTools

logger = logging.getLogger("docsearch.server")

# Ad-hoc files whose embeddings stay cached between tool calls
MAX_CACHED_FILES = 8


class DocSearchServerApp:
    """
    Main application class for the docsearch MCP server.

    Ad-hoc file tools (query_file, summarize_file) keep one DocumentTools
    per (path, file type) so repeated questions reuse the embedding.
    Collection tools go through a shared DocumentSearchTools.
    """

    def __init__(
        self,
        search_tools: DocumentSearchTools,
        pipeline: DocumentPipeline,
        storage: EmbeddingStorage,
        document_tools_factory: Callable[[], DocumentTools],
        mcp_server_name: str = "docsearch",
    ) -> None:
        """
        Args:
            search_tools: Tools over the configured collection
            pipeline: Conversion/split/embed pipeline used for ingestion
            storage: Storage holding the collection
            document_tools_factory: Creates a DocumentTools with no source set
            mcp_server_name: Advertised MCP server name
        """
        self.search = search_tools
        self.pipeline = pipeline
        self.storage = storage
        self._new_document_tools = document_tools_factory
        self._file_tools: "OrderedDict[Tuple[str, Optional[str]], DocumentTools]" = OrderedDict()

        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Ad-hoc Files ---------- #
        @self.mcp.tool(
            name="query_file",
            description=(
                "Answer a question from one local document (pdf, txt, md, csv, json, html). "
                "Returns the document passages most similar to the question, best first."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_query_file(
            file_path: Annotated[str, Field(description="path of the document to query")],
            question: Annotated[str, Field(description="natural language question")],
            file_type: Annotated[Optional[str], Field(description="document format; defaults to the file extension")] = None,
        ) -> Dict[str, Any]:
            tools = self._document_tools(file_path, file_type)
            return await self._call(tools.query_document(question))

        @self.mcp.tool(
            name="summarize_file",
            description=(
                "Summarize one local document. Returns its opening passage plus one "
                "representative passage per topic cluster."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_summarize_file(
            file_path: Annotated[str, Field(description="path of the document to summarize")],
            file_type: Annotated[Optional[str], Field(description="document format; defaults to the file extension")] = None,
        ) -> Dict[str, Any]:
            tools = self._document_tools(file_path, file_type)
            return await self._call(tools.summarize_document())

        # ---------- MCP Tools: Collection ---------- #
        @self.mcp.tool(
            name="query_all_documents",
            description="Search every document in the collection for passages relevant to the question.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_query_all_documents(
            question: Annotated[str, Field(description="natural language question")],
        ) -> Dict[str, Any]:
            return await self._call(self.search.query_all_documents(question))

        @self.mcp.tool(
            name="query_single_document",
            description="Search one named document of the collection for passages relevant to the question.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_query_single_document(
            document_name: Annotated[str, Field(description="name of the document in the collection")],
            question: Annotated[str, Field(description="natural language question")],
        ) -> Dict[str, Any]:
            return await self._call(self.search.query_single_document(document_name, question))

        @self.mcp.tool(
            name="summarize_document",
            description="Summarize one named document of the collection.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_summarize_document(
            document_name: Annotated[str, Field(description="name of the document in the collection")],
        ) -> Dict[str, Any]:
            return await self._call(self.search.summarize_document(document_name))

        @self.mcp.tool(
            name="list_all_documents",
            description="List the names of all documents in the collection, one per line.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_list_all_documents() -> Dict[str, Any]:
            return await self._call(self.search.list_all_documents())

        @self.mcp.tool(
            name="read_documents_metadata",
            description="Read the metadata (title, author, pages, ...) of the named documents.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_read_documents_metadata(
            document_names: Annotated[List[str], Field(description="names of the documents to describe")],
        ) -> Dict[str, Any]:
            return await self._call(self.search.read_documents_metadata(document_names))

        # ---------- MCP Tools: Ingestion ---------- #
        @self.mcp.tool(
            name="ingest_document",
            description=(
                "Convert, split and embed a local document and add it to the collection. "
                "A document with the same name is replaced."
            ),
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_ingest_document(
            file_path: Annotated[str, Field(description="path of the document to ingest")],
            document_name: Annotated[Optional[str], Field(description="name in the collection; defaults to the file name")] = None,
            file_type: Annotated[Optional[str], Field(description="document format; defaults to the file extension")] = None,
        ) -> Dict[str, Any]:
            try:
                document = await self.pipeline.build_from_source(
                    file_path=file_path,
                    file_type=file_type,
                    name=document_name,
                )
            except (ConversionError, OSError) as e:
                logger.warning("Ingest of %s failed: %s", file_path, e)
                return {"ok": False, "error": f"Failed reading the document: {e}"}
            except ServiceUnavailableError as e:
                raise self._tool_error(e) from e

            return await self._call(self._store(document))

        @self.mcp.tool(
            name="remove_document",
            description="Remove a named document from the collection.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True)
        )
        async def tool_remove_document(
            document_name: Annotated[str, Field(description="name of the document to remove")],
        ) -> Dict[str, Any]:
            removed = await self._call(self.storage.remove(self.search.collection_name, document_name))
            if not removed["results"]:
                return {"ok": False, "error": f'Unable to read "{document_name}"'}
            return removed

    # ---------- Helpers ---------- #

    def _document_tools(self, file_path: str, file_type: Optional[str]) -> DocumentTools:
        if not file_path:
            raise ToolError("`file_path` is required")

        key = (file_path, file_type or None)
        tools = self._file_tools.get(key)
        if tools is None:
            tools = self._new_document_tools()
            tools.file_path = file_path
            tools.file_type = file_type
            self._file_tools[key] = tools
            while len(self._file_tools) > MAX_CACHED_FILES:
                self._file_tools.popitem(last=False)
        else:
            self._file_tools.move_to_end(key)
        return tools

    async def _store(self, document) -> Dict[str, Any]:
        await self.storage.store(self.search.collection_name, document)
        return {"name": document.name, "chunks": len(document.get_embedding())}

    @staticmethod
    def _tool_error(e: ServiceUnavailableError) -> ToolError:
        logger.error("%s service failure: %s", e.service, e.message, exc_info=True)
        return ToolError(f"The {e.service} service is unavailable: {e.message}")

    async def _call(self, operation: Awaitable[Any]) -> Dict[str, Any]:
        try:
            return {"ok": True, "results": await operation}
        except ServiceUnavailableError as e:
            raise self._tool_error(e) from e

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def build_app(config: DocSearchConfig, mcp_server_name: str = "docsearch") -> DocSearchServerApp:
    """
    Compose the concrete services described by the configuration.

    Models are loaded lazily, so building the app does no I/O.
    """
    retrieval = config.retrieval

    tokenizer = HuggingFaceTokenizer(model=config.tokenizer.model)
    splitter = RecursiveTextSplitter(
        chunk_size=config.splitter.chunk_size,
        chunk_overlap=config.splitter.chunk_overlap,
    )
    converter = DocumentConversionService()
    embedder = EmbeddingService(model=config.embedding.model, cache_dir=config.embedding.cache_dir)

    reranking_service = None
    if config.reranker.endpoint:
        reranking_service = HttpRerankingService(
            endpoint=config.reranker.endpoint,
            model=config.reranker.model,
            api_key=config.reranker.api_key,
            timeout=config.reranker.timeout,
        )
    elif config.reranker.enabled:
        logger.warning("Reranking enabled but no reranker endpoint configured; results keep similarity order")

    budgeter = ContextBudgeter(tokenizer, max_tokens=retrieval.max_context_tokens)
    pipeline = DocumentPipeline(converter, splitter, embedder)
    storage = InMemoryEmbeddingStorage()

    search_tools = DocumentSearchTools(
        storage=storage,
        embedder=embedder,
        budgeter=budgeter,
        reranker=RerankingAdapter(reranking_service, enabled=config.reranker.enabled),
        collection_name=config.collection,
        top_n=retrieval.top_n,
        min_similarity=retrieval.min_similarity,
        max_clusters=retrieval.max_clusters,
        max_context_tokens=retrieval.max_context_tokens,
    )

    def document_tools_factory() -> DocumentTools:
        return DocumentTools(
            pipeline=pipeline,
            embedder=embedder,
            budgeter=budgeter,
            reranker=RerankingAdapter(reranking_service, enabled=config.reranker.enabled),
            top_n=retrieval.top_n,
            min_similarity=retrieval.min_similarity,
            max_clusters=retrieval.max_clusters,
            max_context_tokens=retrieval.max_context_tokens,
        )

    logger.info(
        "docsearch configured: embedding=%s tokenizer=%s collection=%s reranking=%s",
        config.embedding.model, config.tokenizer.model, config.collection, config.reranker.enabled,
    )

    return DocSearchServerApp(
        search_tools=search_tools,
        pipeline=pipeline,
        storage=storage,
        document_tools_factory=document_tools_factory,
        mcp_server_name=mcp_server_name,
    )


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the docsearch MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("MCP_SERVER_NAME", "docsearch"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--collection",
        default=None,
        help="Collection to search (overrides config).",
    )
    parser.add_argument(
        "--embedding-model",
        default=None,
        help="fastembed model name (overrides config).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("DOCSEARCH_LOG_LEVEL", "INFO"),
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Log level (logs go to stderr).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    if args.collection:
        config.collection = args.collection
    if args.embedding_model:
        config.embedding.model = args.embedding_model

    app = build_app(config, mcp_server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
