"""
Embedding Service

On-device embedding generation using fastembed.
The model is downloaded and loaded on first use; inference runs in a worker
thread so the event loop stays responsive.
"""

import asyncio
import logging
import threading
from typing import Optional, Sequence

import numpy as np
from fastembed import TextEmbedding

from .exceptions import EmbeddingServiceError
from .models import Embedding
from .services import EmbeddingGenerator

logger = logging.getLogger("docsearch.common.embedding_service")


class EmbeddingService(EmbeddingGenerator):
    """
    fastembed-backed embedding generator.

    Keeps data local: no external API calls.
    """

    def __init__(
        self,
        model: str = "BAAI/bge-small-en-v1.5",
        cache_dir: Optional[str] = None,
        backend: Optional[TextEmbedding] = None,
    ):
        """
        Args:
            model: fastembed model name
            cache_dir: Directory for downloaded model files
            backend: Preloaded TextEmbedding (skips lazy loading)
        """
        self._model = model
        self._cache_dir = cache_dir
        self._backend = backend
        self._lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model

    def _get_backend(self) -> TextEmbedding:
        if self._backend is None:
            with self._lock:
                if self._backend is None:
                    logger.info("Loading embedding model %s", self._model)
                    self._backend = TextEmbedding(model_name=self._model, cache_dir=self._cache_dir)
        return self._backend

    def _embed_sync(self, texts: Sequence[str]) -> np.ndarray:
        backend = self._get_backend()
        return np.asarray(list(backend.embed(list(texts))), dtype=np.float32)

    async def embed(self, texts: Sequence[str]) -> Embedding:
        """
        Generate embeddings for a list of texts.

        Raises:
            EmbeddingServiceError: model loading or inference failed, or
                the model returned the wrong number of vectors
        """
        texts = list(texts)
        if not texts:
            raise EmbeddingServiceError("Cannot embed an empty list of texts")

        try:
            vectors = await asyncio.to_thread(self._embed_sync, texts)
        except Exception as e:
            raise EmbeddingServiceError(f"Embedding with '{self._model}' failed: {e}") from e

        if vectors.ndim != 2 or vectors.shape[0] != len(texts):
            raise EmbeddingServiceError(
                f"Embedding model returned {vectors.shape[0] if vectors.ndim else 0} vectors for {len(texts)} texts"
            )

        return Embedding(vectors=vectors, chunks=tuple(texts))
