"""
Custom Exception Classes for the ResumeRAG API

Every failure the core can produce is a subclass of ResumeRAGError so callers
can branch on the class (or ``error_code``) instead of the message text.
"""
from typing import Dict, Any, Optional
from fastapi import HTTPException


class ResumeRAGError(Exception):
    """Base exception for ResumeRAG"""

    status_code: int = 500
    retryable: bool = False
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "code": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


# -------- Input errors --------

class ValidationError(ResumeRAGError):
    """Raised when request data is missing or invalid"""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, details=details, **kwargs)


class UnsupportedFormatError(ResumeRAGError):
    """Raised when a document's declared format has no decoder"""

    status_code = 400
    default_code = "UNSUPPORTED_FORMAT"

    def __init__(self, declared_format: str, **kwargs):
        super().__init__(
            f"Unsupported file type: {declared_format or '<none>'}",
            details={"declared_format": declared_format},
            **kwargs
        )


class CorruptDocumentError(ResumeRAGError):
    """Raised when the decoder cannot parse the document bytes"""

    status_code = 400
    default_code = "CORRUPT_DOCUMENT"

    def __init__(self, declared_format: str, diagnostic: str, **kwargs):
        super().__init__(
            f"Failed to parse {declared_format.upper()}: {diagnostic}",
            details={"declared_format": declared_format, "diagnostic": diagnostic},
            **kwargs
        )


class CorruptArchiveError(ResumeRAGError):
    """Raised when an archive container cannot be opened"""

    status_code = 400
    default_code = "CORRUPT_ARCHIVE"

    def __init__(self, diagnostic: str, **kwargs):
        super().__init__(
            f"Failed to extract ZIP: {diagnostic}",
            details={"diagnostic": diagnostic},
            **kwargs
        )


class InvalidIdempotencyKeyError(ResumeRAGError):
    """Raised when an idempotency key is not a UUID"""

    status_code = 400
    default_code = "INVALID_IDEMPOTENCY_KEY"

    def __init__(self, key: str, **kwargs):
        super().__init__(
            "Idempotency key must be a valid UUID",
            details={"idempotency_key": key},
            **kwargs
        )


class IdempotencyConflictError(ResumeRAGError):
    """Raised when an idempotency key is reused with a different payload"""

    status_code = 409
    default_code = "IDEMPOTENCY_CONFLICT"

    def __init__(self, key: str, endpoint: str, **kwargs):
        super().__init__(
            "Idempotency key reused with different payload",
            details={"idempotency_key": key, "endpoint": endpoint},
            **kwargs
        )


class NotFoundError(ResumeRAGError):
    """Raised when a job or resume record does not exist"""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str, **kwargs):
        super().__init__(
            f"{resource.capitalize()} not found",
            details={"resource": resource, "id": resource_id},
            **kwargs
        )


class DimensionMismatchError(ResumeRAGError):
    """Raised when two embedding vectors have different lengths"""

    status_code = 400
    default_code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, **kwargs):
        super().__init__(
            f"Vectors must have the same length ({expected} != {actual})",
            details={"expected": expected, "actual": actual},
            **kwargs
        )


class UnauthenticatedError(ResumeRAGError):
    """Raised when no actor identity is available"""

    status_code = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


# -------- Capacity errors --------

class RateLimitExceededError(ResumeRAGError):
    """Raised when an actor has used up the quota of the current window"""

    status_code = 429
    retryable = True
    default_code = "RATE_LIMIT"

    def __init__(self, limit: int, reset_at: int, retry_after: int, **kwargs):
        self.limit = limit
        self.reset_at = reset_at
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded. Try again in {retry_after} seconds.",
            details={"limit": limit, "reset_at": reset_at, "retry_after": retry_after},
            **kwargs
        )


# -------- Dependent-service errors --------

class EmbeddingUnavailableError(ResumeRAGError):
    """Raised when no embedding provider credential is configured"""

    status_code = 503
    default_code = "EMBEDDING_UNAVAILABLE"

    def __init__(self, message: str = "Embedding API key not configured", **kwargs):
        super().__init__(message, **kwargs)


class EmbeddingProviderError(ResumeRAGError):
    """Raised when the embedding provider call fails"""

    status_code = 502
    retryable = True
    default_code = "EMBEDDING_PROVIDER_ERROR"

    def __init__(self, message: str, provider_status: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        if provider_status:
            details['provider_status'] = provider_status
        super().__init__(f"Failed to generate embedding: {message}", details=details, **kwargs)


class DatabaseError(ResumeRAGError):
    """Raised when record store operations fail"""

    status_code = 500
    retryable = True
    default_code = "DATABASE_ERROR"

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: ResumeRAGError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.reset_at),
        }
    return HTTPException(status_code=exc.status_code, detail=detail, headers=headers)


def describe_failure(exc: Exception) -> Dict[str, Any]:
    """Structured, per-item failure description used in batch outcomes"""
    if isinstance(exc, ResumeRAGError):
        return {"code": exc.error_code, "message": exc.message, "retryable": exc.retryable}
    return {"code": "PROCESSING_ERROR", "message": str(exc), "retryable": False}


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager that logs an operation and wraps foreign exceptions"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, ResumeRAGError):
            return False

        raise DatabaseError(
            f"Database error in {self.operation}: {str(exc_val)}",
            operation=self.operation,
            details=dict(self.context),
            cause=exc_val
        ) from exc_val
