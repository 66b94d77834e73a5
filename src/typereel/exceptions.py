from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    CONFIG = "config"
    RESOURCE = "resource"
    ENCODING = "encoding"
    DEPENDENCY = "dependency"
    RUNTIME = "runtime"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.RESOURCE: 4,
    ErrorCategory.ENCODING: 5,
}


@dataclass
class TypeReelError(Exception):
    """Base exception for typereel with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Validation error",
            ErrorCategory.RESOURCE: "Resource error",
            ErrorCategory.ENCODING: "Encoding error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.RUNTIME: "Runtime error",
        }.get(self.category, "Error")


class ValidationError(TypeReelError):
    """Raised when render settings are invalid. Surfaced before rendering."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            exit_code=exit_code,
        )


class ResourceError(TypeReelError):
    """Raised when a background image or the workspace cannot be prepared."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.RESOURCE,
            exit_code=exit_code,
        )


class EncodingError(TypeReelError):
    """Raised when the video encoder fails."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.ENCODING,
            exit_code=exit_code,
        )


class DependencyMissingError(TypeReelError):
    """Raised when a required external dependency is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )
