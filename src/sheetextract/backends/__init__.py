"""Model backends."""

from sheetextract.backends.openai_chat import OpenAIChatBackend
from sheetextract.typing.protocol import ModelBackend

__all__ = [
    "ModelBackend",
    "OpenAIChatBackend",
]
