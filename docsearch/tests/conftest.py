"""
Shared fixtures: deterministic in-process fakes for the external capabilities.

- WordTokenizer: one token per whitespace-separated word
- KeywordEmbedder: bag-of-words counts over a small vocabulary
- LineSplitter: one chunk per non-blank line
- TextConverter: UTF-8 text, metadata {"Format": <file type>}
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from docsearch.common.exceptions import ConversionError
from docsearch.common.models import Embedding
from docsearch.common.services import DocumentConverter, EmbeddingGenerator, TextSplitter, Tokenizer

VOCABULARY = ("apple", "banana", "cherry", "engine", "wheel", "road")


class WordTokenizer(Tokenizer):
    def count_tokens(self, text: str) -> int:
        return len(text.split())

    def truncate_to_budget(self, text: str, max_tokens: int) -> str:
        if max_tokens <= 0:
            return ""
        words = list(re.finditer(r"\S+", text))
        if len(words) <= max_tokens:
            return text
        return text[:words[max_tokens - 1].end()]


class KeywordEmbedder(EmbeddingGenerator):
    def __init__(self, vocabulary: Sequence[str] = VOCABULARY):
        self.vocabulary = list(vocabulary)
        self.calls: List[List[str]] = []

    async def embed(self, texts: Sequence[str]) -> Embedding:
        texts = list(texts)
        self.calls.append(texts)
        vectors = []
        for text in texts:
            words = re.findall(r"[a-z]+", text.lower())
            vectors.append([float(words.count(term)) for term in self.vocabulary])
        return Embedding.from_lists(vectors, texts)


class LineSplitter(TextSplitter):
    async def split(self, text: str) -> List[str]:
        return [line.strip() for line in text.split("\n") if line.strip()]


class TextConverter(DocumentConverter):
    def __init__(self):
        self.calls = 0

    async def convert(self, data: bytes, file_type: Optional[str]) -> Tuple[str, Dict[str, str]]:
        self.calls += 1
        if file_type == "bin":
            raise ConversionError("Unsupported document type: 'bin'")
        return data.decode("utf-8"), {"Format": file_type or "txt"}


@pytest.fixture
def tokenizer():
    return WordTokenizer()


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def splitter():
    return LineSplitter()


@pytest.fixture
def converter():
    return TextConverter()


@pytest.fixture
def budgeter(tokenizer):
    from docsearch.retriever.budgeter import ContextBudgeter
    return ContextBudgeter(tokenizer, max_tokens=4096)


@pytest.fixture
def pipeline(converter, splitter, embedder):
    from docsearch.retriever.pipeline import DocumentPipeline
    return DocumentPipeline(converter, splitter, embedder)
