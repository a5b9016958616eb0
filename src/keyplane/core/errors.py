"""keyplane error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Embedding / index
- 4xxx: Collaborator loading (model, tokenizer)
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Embedding / index (3xxx)
    INPUT_TOO_LONG = 3001
    OUT_OF_RANGE = 3002
    DIMENSION_MISMATCH = 3003

    # Collaborators (4xxx)
    MODEL_UNAVAILABLE = 4001
    TOKENIZER_UNAVAILABLE = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class KeyplaneError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'INPUT_TOO_LONG')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(KeyplaneError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class InputTooLongError(KeyplaneError):
    """A token chunk does not fit in the encoder window.

    Recoverable: re-chunk the ids and retry.
    """

    @classmethod
    def for_chunk(cls, actual_length: int, max_length: int) -> "InputTooLongError":
        return cls(
            code=ErrorCode.INPUT_TOO_LONG,
            message=f"Token chunk of length {actual_length} exceeds window of {max_length}",
            retryable=True,
            details={"actual_length": actual_length, "max_length": max_length},
        )

    @property
    def actual_length(self) -> int:
        return int(self.details["actual_length"])

    @property
    def max_length(self) -> int:
        return int(self.details["max_length"])


class OutOfRangeError(KeyplaneError):
    """An ordinal outside ``[0, count)`` was referenced."""

    @classmethod
    def for_ordinal(cls, ordinal: int, count: int) -> "OutOfRangeError":
        return cls(
            code=ErrorCode.OUT_OF_RANGE,
            message=f"Ordinal {ordinal} out of range for index of size {count}",
            details={"ordinal": ordinal, "count": count},
        )

    @property
    def ordinal(self) -> int:
        return int(self.details["ordinal"])

    @property
    def count(self) -> int:
        return int(self.details["count"])


class DimensionMismatchError(KeyplaneError):
    """Vectors do not match the index dimensionality."""

    @classmethod
    def for_vectors(cls, expected: int, actual: int) -> "DimensionMismatchError":
        return cls(
            code=ErrorCode.DIMENSION_MISMATCH,
            message=f"Expected vectors of dimension {expected}, got {actual}",
            details={"expected": expected, "actual": actual},
        )


class ModelUnavailableError(KeyplaneError):
    """The encoder model could not be loaded."""

    @classmethod
    def load_failed(cls, path: str | None, reason: str) -> "ModelUnavailableError":
        return cls(
            code=ErrorCode.MODEL_UNAVAILABLE,
            message=f"Encoder model unavailable ({path}): {reason}",
            details={"path": path, "reason": reason},
        )


class TokenizerUnavailableError(KeyplaneError):
    """The tokenizer vocabulary could not be loaded."""

    @classmethod
    def load_failed(cls, path: str | None, reason: str) -> "TokenizerUnavailableError":
        return cls(
            code=ErrorCode.TOKENIZER_UNAVAILABLE,
            message=f"Tokenizer unavailable ({path}): {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(KeyplaneError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
