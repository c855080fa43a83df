"""Application exception hierarchy.

All custom exceptions inherit from ComplianceRAGError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "CRA-1000"
    CONFIGURATION_ERROR = "CRA-1001"
    VALIDATION_ERROR = "CRA-1002"

    # Document errors (2xxx)
    DOCUMENT_NOT_FOUND = "CRA-2000"
    DOCUMENT_PARSE_ERROR = "CRA-2001"
    EMPTY_CONTENT = "CRA-2002"

    # Embedding provider errors (3xxx)
    PROVIDER_ERROR = "CRA-3000"
    EMBEDDING_DIMENSION_MISMATCH = "CRA-3001"

    # Vector store errors (4xxx)
    STORE_ERROR = "CRA-4000"
    COLLECTION_NOT_FOUND = "CRA-4001"
    INVALID_PAYLOAD = "CRA-4002"


class ComplianceRAGError(Exception):
    """Base exception for all compliance retrieval errors.

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


class ConfigurationError(ComplianceRAGError):
    """Invalid parameters, missing credentials, or provider/collection mismatch."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ValidationError(ComplianceRAGError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class DocumentError(ComplianceRAGError):
    """Document loading or fetching error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DOCUMENT_PARSE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmptyContentError(DocumentError):
    """Nothing left to ingest after trimming."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.EMPTY_CONTENT, details)


class DocumentNotFoundError(DocumentError):
    """No stored chunks exist for a document id."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.DOCUMENT_NOT_FOUND, details)


class ProviderError(ComplianceRAGError):
    """Embedding provider call failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PROVIDER_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class StoreError(ComplianceRAGError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class StoreUnavailable(StoreError):
    """The target collection does not exist on the backend."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.COLLECTION_NOT_FOUND, details)
