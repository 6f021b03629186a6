"""
Tokenizer Service

Token counting and prefix truncation using a HuggingFace ``tokenizers``
model. The model is loaded on first use.
"""

import logging
import threading
from typing import Optional

from tokenizers import Tokenizer as HFTokenizer

from .exceptions import ServiceUnavailableError
from .services import Tokenizer

logger = logging.getLogger("docsearch.common.tokenizer")


class HuggingFaceTokenizer(Tokenizer):
    """
    Tokenizer backed by a pretrained HuggingFace tokenizer.

    Truncation keeps the text up to the end offset of the last allowed
    token, so the result is always a prefix of the input.
    """

    def __init__(self, model: str = "bert-base-uncased", tokenizer: Optional[HFTokenizer] = None):
        self._model = model
        self._tokenizer = tokenizer
        self._lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model

    def _get_tokenizer(self) -> HFTokenizer:
        if self._tokenizer is None:
            with self._lock:
                if self._tokenizer is None:
                    try:
                        self._tokenizer = HFTokenizer.from_pretrained(self._model)
                    except Exception as e:
                        raise ServiceUnavailableError(
                            f"Failed to load tokenizer '{self._model}': {e}", service="tokenizer"
                        ) from e
                    logger.info("Loaded tokenizer %s", self._model)
        return self._tokenizer

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        encoding = self._get_tokenizer().encode(text, add_special_tokens=False)
        return len(encoding.ids)

    def truncate_to_budget(self, text: str, max_tokens: int) -> str:
        if not text or max_tokens <= 0:
            return ""

        encoding = self._get_tokenizer().encode(text, add_special_tokens=False)
        if len(encoding.ids) <= max_tokens:
            return text

        end = encoding.offsets[max_tokens - 1][1]
        return text[:end]
