"""
Document Pipeline

Conversion -> splitting -> embedding for one source document.
"""

import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..common.exceptions import ConversionError
from ..common.models import EmbeddedDocument
from ..common.services import DocumentConverter, EmbeddingGenerator, TextSplitter

logger = logging.getLogger("docsearch.retriever.pipeline")

Source = Union[bytes, bytearray, BinaryIO]


def file_type_from_path(file_path: Optional[str]) -> Optional[str]:
    """Extension of a path without the dot, lowercased ('' when none)."""
    if not file_path:
        return None
    return Path(file_path).suffix.lstrip(".").lower()


def stream_position(stream: Optional[Source]) -> Optional[int]:
    """Current offset of a seekable file object; None for bytes or unseekable streams."""
    if stream is None or isinstance(stream, (bytes, bytearray)):
        return None
    seekable = getattr(stream, "seekable", None)
    if seekable is None or not seekable():
        return None
    return stream.tell()


async def read_source(
    file_path: Optional[str] = None,
    stream: Optional[Source] = None,
    position: Optional[int] = None,
) -> bytes:
    """
    Read document bytes from a stream or a file path.

    A caller-owned stream is read but never closed. When position is given
    the stream is first rewound to it, so a retried read sees the same bytes.

    Raises:
        ConversionError: no source was given
        OSError: the file could not be read
    """
    if stream is not None:
        if isinstance(stream, (bytes, bytearray)):
            return bytes(stream)
        if position is not None:
            await asyncio.to_thread(stream.seek, position)
        return await asyncio.to_thread(stream.read)

    if not file_path:
        raise ConversionError("No document source: set file_path or stream")

    return await asyncio.to_thread(Path(file_path).read_bytes)


class DocumentPipeline:
    """Builds EmbeddedDocuments from raw sources."""

    def __init__(
        self,
        converter: DocumentConverter,
        splitter: TextSplitter,
        embedder: EmbeddingGenerator,
    ):
        self._converter = converter
        self._splitter = splitter
        self._embedder = embedder

    async def build(self, name: str, data: bytes, file_type: Optional[str]) -> EmbeddedDocument:
        """
        Convert, split and embed document bytes.

        Raises:
            ConversionError: unsupported/corrupt input or no text to embed
            EmbeddingServiceError: embedding backend failure
        """
        text, metadata = await self._converter.convert(data, file_type)

        chunks = [c for c in await self._splitter.split(text) if c and c.strip()]
        if not chunks:
            raise ConversionError(f"Document '{name}' contains no text")

        embedding = await self._embedder.embed(chunks)
        logger.info("Embedded '%s': %d chunks, dim=%d", name, len(embedding), embedding.dimension)

        return EmbeddedDocument(name=name, metadata=dict(metadata), embedding=embedding)

    async def build_from_source(
        self,
        file_path: Optional[str] = None,
        stream: Optional[Source] = None,
        file_type: Optional[str] = None,
        name: Optional[str] = None,
        position: Optional[int] = None,
    ) -> EmbeddedDocument:
        """
        Read a path or stream, then build. file_type defaults to the path extension.

        position rewinds a seekable stream before reading (see read_source).
        """
        if not file_type:
            file_type = file_type_from_path(file_path)
        if name is None:
            name = Path(file_path).name if file_path else ""

        data = await read_source(file_path, stream, position)
        return await self.build(name, data, file_type)
