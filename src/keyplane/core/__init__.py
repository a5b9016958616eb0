"""Core module exports."""

from keyplane.core.errors import (
    ConfigError,
    DimensionMismatchError,
    ErrorCode,
    InputTooLongError,
    InternalError,
    KeyplaneError,
    ModelUnavailableError,
    OutOfRangeError,
    TokenizerUnavailableError,
)
from keyplane.core.logging import (
    configure_logging,
    current_document,
    document_context,
    get_logger,
)
from keyplane.core.progress import pluralize, progress, status, task

__all__ = [
    # Errors
    "ConfigError",
    "DimensionMismatchError",
    "ErrorCode",
    "InputTooLongError",
    "InternalError",
    "KeyplaneError",
    "ModelUnavailableError",
    "OutOfRangeError",
    "TokenizerUnavailableError",
    # Logging
    "configure_logging",
    "current_document",
    "document_context",
    "get_logger",
    # Progress
    "pluralize",
    "progress",
    "status",
    "task",
]
