"""sheetextract: Markdown tables and named fields from datasheet images and PDFs."""

from sheetextract.async_runner import run_async
from sheetextract.exceptions import (
    AsyncExecutionError,
    BackendError,
    DependencyError,
    ExtractionError,
    InvalidInputError,
    ModelUnavailableError,
    NoPagesSelectedError,
    PackageError,
    PageConversionError,
    SettingsError,
    UnsupportedMediaTypeError,
)
from sheetextract.logging import configure_logging, get_logger
from sheetextract.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("sheetextract")

__all__ = [
    "AsyncExecutionError",
    "BackendError",
    "DependencyError",
    "ExtractionError",
    "InvalidInputError",
    "ModelUnavailableError",
    "NoPagesSelectedError",
    "PackageError",
    "PageConversionError",
    "Settings",
    "SettingsError",
    "UnsupportedMediaTypeError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]
