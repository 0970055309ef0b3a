"""Conversion/extraction request, result and usage models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sheetextract.typing.enums import ExtractionSource


class TokenUsage(BaseModel):
    """Token accounting for one or more model calls."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)

    def __add__(self, other: TokenUsage) -> TokenUsage:
        """Combine two usage records by summing every counter.

        Args:
            other (TokenUsage): Another usage record.

        Raises:
            NotImplementedError: If the other object is not a TokenUsage instance.

        Returns:
            TokenUsage: A new instance with combined values.
        """
        if not isinstance(other, TokenUsage):
            raise NotImplementedError("Cannot add TokenUsage with non-TokenUsage instance")

        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @classmethod
    def from_api(cls, usage: object) -> TokenUsage:
        """Build usage from an SDK usage object or dict, treating missing counters as zero.

        Args:
            usage (object): `CompletionUsage`, mapping, or None.

        Returns:
            TokenUsage: Usage record.
        """
        if usage is None:
            return cls()

        def _read(name: str) -> int:
            raw = usage.get(name) if isinstance(usage, dict) else getattr(usage, name, None)
            return int(raw or 0)

        return cls(
            prompt_tokens=_read("prompt_tokens"),
            completion_tokens=_read("completion_tokens"),
            total_tokens=_read("total_tokens"),
        )


class ConvertOptions(BaseModel):
    """Per-request conversion options, already clamped to their allowed ranges."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_pages: int | None = Field(default=None, ge=1, le=50)
    scale: float = Field(default=2.0, ge=1.0, le=4.0)
    start: int = Field(default=1, ge=1)
    end: int | None = Field(default=None, ge=1)
    concurrency: int = Field(default=3, ge=1, le=5)
    pages: str = ""
    exclude: str = ""


class ConversionResult(BaseModel):
    """Markdown produced for one document."""

    model_config = ConfigDict(extra="forbid")

    markdown: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    pages: list[int] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Normalized field map for one Markdown document."""

    model_config = ConfigDict(extra="forbid")

    fields: dict[str, str]
    order: list[str]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    source: ExtractionSource = ExtractionSource.NONE

    @model_validator(mode="after")
    def _check_keys_match_order(self) -> ExtractionResult:
        if set(self.fields) != set(self.order) or len(self.fields) != len(self.order):
            raise ValueError("Extraction result keys must equal the requested field order")  # noqa: TRY003
        return self
