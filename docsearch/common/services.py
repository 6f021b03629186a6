"""
Capability Interfaces

Abstract base classes for the external collaborators the retriever uses.
Concrete implementations are injected through constructors; tests inject
fakes.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import Embedding, EmbeddedDocument

DocumentFilter = Callable[[EmbeddedDocument], bool]


class Tokenizer(ABC):
    """Counts and truncates text in tokenizer-defined units."""

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        pass

    @abstractmethod
    def truncate_to_budget(self, text: str, max_tokens: int) -> str:
        """Return the longest prefix of ``text`` with at most ``max_tokens`` tokens."""
        pass


class TextSplitter(ABC):
    """Splits converted text into ordered chunks."""

    @abstractmethod
    async def split(self, text: str) -> List[str]:
        pass


class DocumentConverter(ABC):
    """Converts raw document bytes to text and metadata."""

    @abstractmethod
    async def convert(self, data: bytes, file_type: Optional[str]) -> Tuple[str, Dict[str, str]]:
        """
        Convert document bytes.

        Raises:
            ConversionError: unsupported or corrupt input
        """
        pass


class EmbeddingGenerator(ABC):
    """Produces an Embedding aligned 1:1 with the input texts."""

    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> Embedding:
        """
        Raises:
            EmbeddingServiceError: backend failure
        """
        pass


class RerankingService(ABC):
    """Reorders texts by relevance to a question."""

    @abstractmethod
    async def rerank(self, question: str, texts: Sequence[str]) -> List[str]:
        """
        Raises:
            RerankingServiceError: backend failure
        """
        pass


class EmbeddingStorage(ABC):
    """Named collections of embedded documents."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        vector: np.ndarray,
        top_n: int,
        min_similarity: float,
        document_filter: Optional[DocumentFilter] = None,
    ) -> List[EmbeddedDocument]:
        """Documents whose best chunk scores >= min_similarity, with matches attached."""
        pass

    @abstractmethod
    async def query_document(
        self,
        collection: str,
        name: str,
        vector: np.ndarray,
        top_n: int,
        min_similarity: float,
    ) -> Optional[EmbeddedDocument]:
        """One document with its matching chunks attached, or None if absent."""
        pass

    @abstractmethod
    async def retrieve(self, collection: str, name: str, load_full: bool = False) -> Optional[EmbeddedDocument]:
        pass

    @abstractmethod
    async def retrieve_all(
        self,
        collection: str,
        document_filter: Optional[DocumentFilter] = None,
    ) -> List[EmbeddedDocument]:
        pass

    @abstractmethod
    async def store(self, collection: str, document: EmbeddedDocument) -> None:
        pass

    @abstractmethod
    async def remove(self, collection: str, name: str) -> bool:
        pass
