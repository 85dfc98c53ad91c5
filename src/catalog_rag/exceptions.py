"""Application exception hierarchy.

All custom exceptions inherit from CatalogRAGError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "RAG-1000"
    CONFIGURATION_ERROR = "RAG-1001"
    VALIDATION_ERROR = "RAG-1002"
    UNAUTHORIZED = "RAG-1003"
    PRECONDITION_FAILED = "RAG-1004"

    # Feed errors (2xxx)
    FEED_DOWNLOAD_ERROR = "RAG-2000"
    FEED_PARSE_ERROR = "RAG-2001"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "RAG-3000"
    EMBEDDING_DIMENSION_MISMATCH = "RAG-3001"
    EMBEDDING_BATCH_FAILED = "RAG-3002"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "RAG-4000"

    # LLM errors (5xxx)
    LLM_SERVICE_ERROR = "RAG-5000"
    LLM_TIMEOUT = "RAG-5001"
    LLM_RATE_LIMIT = "RAG-5002"
    LLM_SERVER_ERROR = "RAG-5003"
    LLM_EMPTY_REPLY = "RAG-5004"
    LLM_UPSTREAM_FAILURE = "RAG-5005"

    # Retrieval errors (6xxx)
    RETRIEVAL_ERROR = "RAG-6000"


class CatalogRAGError(Exception):
    """Base exception for all catalog RAG errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(CatalogRAGError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(CatalogRAGError):
    """Missing or invalid caller input (bad request)."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class UnauthorizedError(CatalogRAGError):
    """Ingestion secret missing or wrong."""

    def __init__(
        self,
        message: str = "Invalid ingest secret",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.UNAUTHORIZED, details)


class PreconditionFailedError(CatalogRAGError):
    """Operation attempted before its preconditions hold (e.g. empty store)."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.PRECONDITION_FAILED, details)


class FeedError(CatalogRAGError):
    """Feed download or parse error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.FEED_DOWNLOAD_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(CatalogRAGError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class VectorStoreError(CatalogRAGError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(CatalogRAGError):
    """A single chat completion attempt failed."""

    RETRYABLE_CODES = frozenset({ErrorCode.LLM_RATE_LIMIT, ErrorCode.LLM_SERVER_ERROR})

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)

    @property
    def status_code(self) -> int | None:
        """Upstream HTTP status, if the provider answered."""
        return self.details.get("status_code")

    @property
    def retryable(self) -> bool:
        """True for rate limits and 5xx responses."""
        return self.code in self.RETRYABLE_CODES


class EmptyReplyError(LLMError):
    """Completion response carried no usable message content."""

    def __init__(
        self,
        message: str = "LLM returned an empty reply",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.LLM_EMPTY_REPLY, details)


class UpstreamError(LLMError):
    """Every candidate model and attempt was exhausted."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.LLM_UPSTREAM_FAILURE, details)


class RetrievalError(CatalogRAGError):
    """Retrieval operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RETRIEVAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
