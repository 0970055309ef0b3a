"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class InputKind(_EnumMixin):
    """Kind of document submitted for conversion."""

    IMAGE = "image"
    PDF = "pdf"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> InputKind | None:
        """Map a MIME type to an input kind.

        Args:
            mime_type: MIME type, parameters allowed (`image/png; q=1`).

        Returns:
            InputKind | None: Input kind, or None when the type is not supported.
        """
        base = mime_type.split(";", 1)[0].strip().lower()
        if base == "application/pdf":
            return cls.PDF
        if base.startswith("image/"):
            return cls.IMAGE
        return None


class ExtractionSource(_EnumMixin):
    """Which path produced the raw field values."""

    MODEL = "model"
    HEURISTIC = "heuristic"
    NONE = "none"
