"""Structured field extraction from Markdown tables."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from sheetextract import logger
from sheetextract.exceptions import BackendError
from sheetextract.field_schema import build_field_schema, split_aliases
from sheetextract.processing import (
    Parsed,
    apply_aliases,
    coerce_json_object,
    heuristic_extract,
    normalize_fields,
)
from sheetextract.prompts import build_field_extraction_prompt, with_markdown
from sheetextract.typing.enums import ExtractionSource
from sheetextract.typing.models import ExtractionResult, TokenUsage

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sheetextract.settings import Settings
    from sheetextract.typing.models import FieldSchema
    from sheetextract.typing.protocol import ModelBackend


async def _request_model_fields(
    markdown: str,
    schema: FieldSchema,
    *,
    renames: Mapping[str, str],
    deleted: Iterable[str],
    backend: ModelBackend,
    settings: Settings,
) -> tuple[dict[str, Any] | None, TokenUsage]:
    """Ask the model for the field mapping.

    Returns:
        tuple[dict[str, Any] | None, TokenUsage]: The parsed object (None when the
        model is unavailable, failed or answered without a usable object) and usage.
    """
    prompt = with_markdown(build_field_extraction_prompt(schema, renames=renames, deleted=deleted), markdown)
    try:
        async with asyncio.timeout(settings.model_call_timeout):
            text, usage = await backend.acomplete(prompt)
    except BackendError as exc:
        logger.warning("Model extraction unavailable, using heuristics", extra={"error": str(exc)})
        return None, TokenUsage()
    except TimeoutError:
        logger.warning(
            "Model extraction timed out, using heuristics",
            extra={"timeout_s": settings.model_call_timeout},
        )
        return None, TokenUsage()

    coerced = coerce_json_object(text)
    if not isinstance(coerced, Parsed):
        logger.warning("Model response is not a JSON object, using heuristics", extra={"reason": coerced.reason})
        return None, usage
    if not coerced.value:
        logger.warning("Model returned an empty object, using heuristics")
        return None, usage
    return coerced.value, usage


async def extract_fields(
    markdown: str,
    *,
    fields: Iterable[str] | None = None,
    aliases: Mapping[str, str | None] | None = None,
    backend: ModelBackend | None,
    settings: Settings,
) -> ExtractionResult:
    """Map Markdown tables onto a fixed set of named fields.

    The model is asked first. When it is unavailable, fails, times out or
    answers without a JSON object, label heuristics over the Markdown are used
    instead, so model problems never reach the caller.

    Args:
        markdown (str): Markdown produced by the convert pipeline.
        fields (Iterable[str] | None): Requested field names. None selects the default schema.
        aliases (Mapping[str, str | None] | None): Old field name to new field name.
            A blank or null target marks the field as deleted.
        backend (ModelBackend | None): Model backend. None skips straight to heuristics.
        settings (Settings): Runtime settings.

    Returns:
        ExtractionResult: Exactly the requested keys, in request order, with string values.
    """
    schema = build_field_schema(fields)
    renames, deleted = split_aliases(aliases)
    truncated = (markdown or "")[: settings.markdown_char_limit]

    raw: dict[str, Any] | None = None
    usage = TokenUsage()
    if backend is not None:
        raw, usage = await _request_model_fields(
            truncated,
            schema,
            renames=renames,
            deleted=deleted,
            backend=backend,
            settings=settings,
        )

    if raw is not None:
        source = ExtractionSource.MODEL
    else:
        raw = heuristic_extract(truncated, schema)
        source = ExtractionSource.HEURISTIC

    normalized = normalize_fields(apply_aliases(raw, renames=renames, deleted=deleted), schema.fields)
    if source == ExtractionSource.HEURISTIC and not any(value.strip() for value in normalized.values()):
        source = ExtractionSource.NONE

    logger.info(
        "Fields extracted",
        extra={
            "source": source.value,
            "fields": len(normalized),
            "filled": sum(1 for value in normalized.values() if value.strip()),
            "total_tokens": usage.total_tokens,
        },
    )
    return ExtractionResult(fields=normalized, order=list(schema.fields), usage=usage, source=source)
