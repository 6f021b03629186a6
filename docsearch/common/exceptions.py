"""
Exceptions

Source failures (unreadable file, unsupported format) are recoverable and
turned into fixed messages by the tools. Service failures propagate.
"""


class DocSearchError(Exception):
    """Base class for docsearch errors."""
    pass


class ConversionError(DocSearchError):
    """Document bytes could not be converted to text."""
    pass


class ServiceUnavailableError(DocSearchError):
    """An external capability (embedding, storage, reranking) failed."""

    def __init__(self, message: str, service: str = "service"):
        self.message = message
        self.service = service
        super().__init__(message)


class EmbeddingServiceError(ServiceUnavailableError):
    """Embedding generation failed."""

    def __init__(self, message: str):
        super().__init__(message, service="embedding")


class RerankingServiceError(ServiceUnavailableError):
    """Reranking failed or returned an invalid ordering."""

    def __init__(self, message: str):
        super().__init__(message, service="reranking")


class StorageServiceError(ServiceUnavailableError):
    """Embedding storage failed."""

    def __init__(self, message: str):
        super().__init__(message, service="storage")
