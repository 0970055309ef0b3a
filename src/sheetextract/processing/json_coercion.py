"""Two-stage JSON coercion for model responses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Parsed:
    """A JSON object recovered from the response."""

    value: dict[str, Any]


@dataclass(frozen=True)
class Unparsable:
    """No JSON object could be recovered."""

    reason: str


CoercionResult = Parsed | Unparsable


def _load_object(text: str) -> CoercionResult:
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError as exc:
        return Unparsable(reason=f"invalid JSON: {exc.msg}")
    if not isinstance(loaded, dict):
        return Unparsable(reason=f"expected a JSON object, got {type(loaded).__name__}")
    return Parsed(value=loaded)


def coerce_json_object(text: str | None) -> CoercionResult:
    """Recover a JSON object from a model response.

    The whole text is parsed first. When that fails, the slice between the first
    `{` and the last `}` is parsed, which strips code fences and chatter around
    the object.

    Args:
        text (str | None): Raw response text.

    Returns:
        CoercionResult: `Parsed` with the object, or `Unparsable` with the reason.
    """
    if not text or not text.strip():
        return Unparsable(reason="empty response")

    direct = _load_object(text)
    if isinstance(direct, Parsed):
        return direct

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return direct
    return _load_object(text[start : end + 1])
