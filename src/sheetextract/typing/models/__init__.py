"""Core domain model exports."""

from sheetextract.typing.models.extraction import (
    ConversionResult,
    ConvertOptions,
    ExtractionResult,
    TokenUsage,
)
from sheetextract.typing.models.page_selection import PageSelection, RenderedPage
from sheetextract.typing.models.schema import FieldSchema, MatchRule

__all__ = [
    "ConversionResult",
    "ConvertOptions",
    "ExtractionResult",
    "FieldSchema",
    "MatchRule",
    "PageSelection",
    "RenderedPage",
    "TokenUsage",
]
