"""
Shared error handling for the Posts Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def with_context(self, operation: str, stage: str) -> "AccessLayerException":
        """Prepend operation/stage context, keeping the innermost values."""
        self.details.setdefault("operation", operation)
        self.details.setdefault("stage", stage)
        return self

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        # Get trace ID from current span
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(AccessLayerException):
    """No matching durable record."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class StoreError(AccessLayerException):
    """Durable store I/O or driver failure."""

    status_code = 503

    def __init__(self, message: str = "Durable store error", details: Optional[Dict[str, Any]] = None,
                 code: str = "STORE_ERROR"):
        super().__init__(code, message, details)


class ConflictError(StoreError):
    """Uniqueness violation in the durable store."""

    status_code = 409

    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="CONFLICT")


class CacheError(AccessLayerException):
    """Cache I/O or decoding failure.

    ``result`` holds the value the primary operation produced when the
    failure happened after it had already succeeded (cache population or
    invalidation), so callers can degrade gracefully.
    """

    status_code = 503

    def __init__(self, message: str = "Cache error", details: Optional[Dict[str, Any]] = None,
                 result: Any = None):
        super().__init__("CACHE_ERROR", message, details)
        self.result = result

    @property
    def primary_succeeded(self) -> bool:
        return self.details.get("stage") in ("cache_populate", "cache_invalidate")


class RequestTimeoutError(AccessLayerException):
    """Request deadline expired before the operation finished."""

    status_code = 504

    def __init__(self, message: str = "Request timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__("REQUEST_TIMEOUT", message, details)
