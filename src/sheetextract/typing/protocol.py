"""Backend interfaces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from sheetextract.typing.models import TokenUsage


class ModelBackend(Protocol):
    """Chat model able to read images and plain text prompts."""

    async def adescribe_image(self, prompt: str, image_url: str) -> tuple[str, TokenUsage]:
        """Send one instruction together with one image.

        Args:
            prompt: Instruction text.
            image_url: `data:` URI (or remote URL) of the image.

        Returns:
            tuple[str, TokenUsage]: Model text (possibly empty) and token usage.
        """

    async def acomplete(self, prompt: str) -> tuple[str, TokenUsage]:
        """Send one text-only prompt.

        Args:
            prompt: Full prompt text.

        Returns:
            tuple[str, TokenUsage]: Model text (possibly empty) and token usage.
        """

    async def aclose(self) -> None:
        """Release network resources held by the backend."""
