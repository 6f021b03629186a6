"""
Text splitting using RecursiveCharacterTextSplitter.

Splits converted document text into overlapping chunks for embedding.

Dependencies: langchain_text_splitters
"""

import asyncio
from typing import List

from langchain_text_splitters import RecursiveCharacterTextSplitter

from .services import TextSplitter


class RecursiveTextSplitter(TextSplitter):
    """Split text on paragraph, line and word boundaries."""

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        """
        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Overlap between consecutive chunks
        """
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
        )

    async def split(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []
        return await asyncio.to_thread(self._splitter.split_text, text)
