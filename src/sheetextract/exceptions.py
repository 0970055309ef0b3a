"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class AsyncExecutionError(PackageError):
    """Raised when an async operation fails in compatibility runner."""

    result: BaseException
    message: str = "Async operation failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.result}"


@dataclass(eq=False)
class BackendError(PackageError):
    """Raised when a model or rendering backend call fails."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(eq=False)
class ModelUnavailableError(BackendError):
    """Raised when the model backend cannot be used at all (e.g. missing credentials)."""


@dataclass(eq=False)
class InvalidInputError(PackageError):
    """Raised when a request payload is missing or malformed."""

    message: str
    details: str | None = None
    status_code: int = 400

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.details}" if self.details else self.message


@dataclass(eq=False)
class UnsupportedMediaTypeError(InvalidInputError):
    """Raised when the request content type or uploaded file type is not supported."""

    status_code: int = 415


@dataclass(eq=False)
class NoPagesSelectedError(PackageError):
    """Raised when page selection resolves to an empty set."""

    total_pages: int

    def __str__(self) -> str:
        """Return error message payload."""
        return f"No pages selected out of {self.total_pages}"


@dataclass(eq=False)
class PageConversionError(PackageError):
    """Raised when a single page fails and aborts the whole conversion batch."""

    page_number: int
    exc: BaseException

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Page {self.page_number} failed: {str(self.exc) or type(self.exc).__name__}"


@dataclass(eq=False)
class ExtractionError(PackageError):
    """Raised when field extraction orchestration fails."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when optional runtime dependencies are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"
