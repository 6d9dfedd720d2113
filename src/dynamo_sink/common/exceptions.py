"""
Common exception types and error classification for dynamo_sink.

Provides:
- ErrorCategory enum for retry decisions
- Typed exception hierarchy for sink errors
- Classification of botocore failures into throttling vs. write failures
"""

from enum import Enum
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should be redelivered after backoff
                   (throttling, rejected writes, unprocessed items)
        PERMANENT: Non-retriable failures that won't succeed on redelivery
                   (unconvertible payloads, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class SinkError(Exception):
    """
    Base exception for all sink errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error should lead to redelivery."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class PermanentError(SinkError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class ConversionError(PermanentError):
    """Record payload could not be converted to attribute values."""

    pass


class ConfigurationError(PermanentError):
    """Invalid configuration, or no container attribute for a non-map payload."""

    pass


# =============================================================================
# Backend Errors (Transient)
# =============================================================================


class TransientError(SinkError):
    """Base class for errors that warrant redelivery."""

    category = ErrorCategory.TRANSIENT


class ThrottlingError(TransientError):
    """Backend signalled capacity or request limits exceeded - should back off."""

    pass


class WriteFailureError(TransientError):
    """Backend rejected a write. Retried within the retry budget."""

    pass


class UnprocessedItemsError(WriteFailureError):
    """Batch write response reported unprocessed items."""

    def __init__(
        self,
        unprocessed: Dict[str, Any],
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        count = sum(len(requests) for requests in unprocessed.values())
        super().__init__(
            f"Batch write left {count} unprocessed items in "
            f"{len(unprocessed)} tables",
            cause,
            context,
        )
        self.unprocessed = unprocessed

    @property
    def unprocessed_count(self) -> int:
        return sum(len(requests) for requests in self.unprocessed.values())


# =============================================================================
# Error Classification Utilities
# =============================================================================

# DynamoDB error codes that signal capacity or rate limits rather than a
# rejected write.
THROTTLING_ERROR_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "LimitExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
)


def client_error_code(exc: ClientError) -> str:
    """Extract the service error code from a botocore ClientError."""
    return exc.response.get("Error", {}).get("Code", "")


def classify_backend_error(exc: Exception) -> ErrorCategory:
    """
    Classify a backend exception into error category.

    Args:
        exc: Exception raised by the DynamoDB client

    Returns:
        Appropriate ErrorCategory
    """
    if isinstance(exc, SinkError):
        return exc.category

    if isinstance(exc, (ClientError, BotoCoreError)):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def wrap_backend_error(
    exc: Exception,
    context: Optional[dict] = None,
) -> SinkError:
    """
    Wrap a botocore exception in the appropriate SinkError subclass.

    Throttling-class error codes map to ThrottlingError, any other service
    or transport failure maps to WriteFailureError.

    Args:
        exc: Exception to wrap
        context: Additional context to include

    Returns:
        Appropriate SinkError subclass instance
    """
    if isinstance(exc, SinkError):
        if context:
            exc.context.update(context)
        return exc

    if isinstance(exc, ClientError):
        code = client_error_code(exc)
        ctx = dict(context or {}, error_code=code)
        if code in THROTTLING_ERROR_CODES:
            return ThrottlingError(str(exc), cause=exc, context=ctx)
        return WriteFailureError(str(exc), cause=exc, context=ctx)

    if isinstance(exc, BotoCoreError):
        return WriteFailureError(str(exc), cause=exc, context=context)

    return SinkError(str(exc), cause=exc, context=context)
