"""
Document Conversion Service

Converts raw document bytes to plain text plus metadata.

Supported formats:
- pdf: page text via pdfplumber, metadata from the PDF info dictionary
- txt, md, csv, json, log, html, htm: UTF-8 decoded as-is
"""

import asyncio
import logging
import re
from io import BytesIO
from typing import Dict, Optional, Tuple

import pdfplumber

from .exceptions import ConversionError
from .services import DocumentConverter

logger = logging.getLogger("docsearch.common.conversion")

TEXT_TYPES = frozenset({"txt", "text", "md", "markdown", "csv", "json", "log", "html", "htm"})

# PDF info keys worth surfacing in retrieval blocks
PDF_METADATA_KEYS = ("Title", "Author", "Subject", "Keywords", "CreationDate")


def _normalize_whitespace(text: str) -> str:
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class DocumentConversionService(DocumentConverter):
    """Bytes -> (text, metadata) for PDF and plain-text formats."""

    async def convert(self, data: bytes, file_type: Optional[str]) -> Tuple[str, Dict[str, str]]:
        file_type = (file_type or "txt").lower().lstrip(".")

        if file_type == "pdf":
            return await asyncio.to_thread(self._convert_pdf, data)

        if file_type in TEXT_TYPES:
            return self._convert_text(data), {}

        raise ConversionError(f"Unsupported document type: '{file_type}'")

    @staticmethod
    def _convert_text(data: bytes) -> str:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ConversionError(f"Document is not valid UTF-8: {e}") from e
        return text.replace("\r\n", "\n")

    @staticmethod
    def _convert_pdf(data: bytes) -> Tuple[str, Dict[str, str]]:
        try:
            with pdfplumber.open(BytesIO(data)) as pdf:
                pages = [_normalize_whitespace(page.extract_text() or "") for page in pdf.pages]
                info = pdf.metadata or {}
                page_count = len(pdf.pages)
        except Exception as e:
            raise ConversionError(f"Failed to read PDF: {e}") from e

        metadata: Dict[str, str] = {}
        for key in PDF_METADATA_KEYS:
            value = info.get(key)
            if value:
                metadata[key] = str(value)
        metadata["Pages"] = str(page_count)

        logger.debug("Converted PDF: %d pages", page_count)
        return "\n\n".join(p for p in pages if p), metadata
