"""
NovelWeaver - Error Types
Failure taxonomy for novel resolution, chapter retrieval, and export
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """
    Categories of failures surfaced to the user.

    Hosts use these to label a message without matching on class names.
    """
    VALIDATION = "validation"        # Bad user input, rejected before any oracle call
    NOT_FOUND = "not_found"          # Oracle reports the novel does not exist
    INTERPRETATION = "parse"         # Oracle answer could not be parsed
    UNAVAILABLE = "unavailable"      # Chapter text explicitly unavailable
    QUOTA = "rate_limit"             # Retry budget exhausted on rate limiting
    TRANSPORT = "transport"          # Any other oracle failure
    EXPORT_EMPTY = "export_empty"    # Nothing to export in the requested range
    BUSY = "busy"                    # A batch job is already running
    UNKNOWN = "unknown"


class NovelWeaverError(Exception):
    """Base class for all errors raised by NovelWeaver components."""

    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(NovelWeaverError):
    """User input rejected (e.g. a novel name shorter than two characters)."""
    category = ErrorCategory.VALIDATION


class NotFoundError(NovelWeaverError):
    """The oracle reports that the requested novel does not exist."""
    category = ErrorCategory.NOT_FOUND


class InterpretationError(NovelWeaverError):
    """The oracle response held no well-formed JSON object."""
    category = ErrorCategory.INTERPRETATION


class ContentUnavailableError(NovelWeaverError):
    """The oracle could not supply chapter text, or returned the sentinel."""
    category = ErrorCategory.UNAVAILABLE


class QuotaExceededError(NovelWeaverError):
    """Every retry attempt hit rate limiting."""
    category = ErrorCategory.QUOTA


class TransportError(NovelWeaverError):
    """
    Any other failure from the oracle call.

    Attributes:
        status_code: HTTP status reported by the API, if any
        error_type: Classified error label from the transport layer
    """
    category = ErrorCategory.TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class ExportEmptyError(NovelWeaverError):
    """No chapter in the requested range has content."""
    category = ErrorCategory.EXPORT_EMPTY


class BatchInProgressError(NovelWeaverError):
    """A batch download was requested while another one is running."""
    category = ErrorCategory.BUSY


def categorize(error: BaseException) -> ErrorCategory:
    """Get the category for any exception (UNKNOWN for foreign types)."""
    if isinstance(error, NovelWeaverError):
        return error.category
    return ErrorCategory.UNKNOWN
