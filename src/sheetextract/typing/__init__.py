"""Typing-centric domain modules."""

from sheetextract.typing.enums import ExtractionSource, InputKind
from sheetextract.typing.models import (
    ConversionResult,
    ConvertOptions,
    ExtractionResult,
    FieldSchema,
    MatchRule,
    PageSelection,
    RenderedPage,
    TokenUsage,
)
from sheetextract.typing.protocol import ModelBackend

__all__ = [
    "ConversionResult",
    "ConvertOptions",
    "ExtractionResult",
    "ExtractionSource",
    "FieldSchema",
    "InputKind",
    "MatchRule",
    "ModelBackend",
    "PageSelection",
    "RenderedPage",
    "TokenUsage",
]
