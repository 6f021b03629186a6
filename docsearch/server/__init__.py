"""
docsearch MCP Server

Run with ``python -m docsearch.server.server`` or the ``docsearch-server``
console script.
"""
