"""Document to Markdown conversion pipeline."""

from __future__ import annotations

import asyncio
import base64
import binascii
import math
import re
from typing import TYPE_CHECKING

from pydantic import ValidationError

from sheetextract import logger
from sheetextract.async_runner import MAX_CONCURRENCY, MIN_CONCURRENCY, run_bounded
from sheetextract.exceptions import (
    BackendError,
    InvalidInputError,
    PageConversionError,
    UnsupportedMediaTypeError,
)
from sheetextract.pages import clamp_max_pages, resolve_page_selection
from sheetextract.pdf_render import open_pdf, render_page
from sheetextract.prompts import NO_CONTENT_EXTRACTED, TABLE_EXTRACTION_PROMPT, aggregate_page_markdown
from sheetextract.typing.enums import InputKind
from sheetextract.typing.models import ConversionResult, ConvertOptions
from sheetextract.usage import UsageAccumulator

if TYPE_CHECKING:
    from sheetextract.settings import Settings
    from sheetextract.typing.protocol import ModelBackend

MIN_SCALE = 1.0
MAX_SCALE = 4.0

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)


def build_convert_options(
    settings: Settings,
    *,
    max_pages: int | None = None,
    scale: float | None = None,
    start: int | None = None,
    end: int | None = None,
    concurrency: int | None = None,
    pages: str | None = None,
    exclude: str | None = None,
) -> ConvertOptions:
    """Build conversion options from raw request values.

    Numeric values are clamped to their allowed ranges; missing values fall back
    to settings.

    Args:
        settings (Settings): Runtime settings.
        max_pages (int | None): Page cap, clamped to `[1, 50]`.
        scale (float | None): Render zoom, clamped to `[1, 4]`.
        start (int | None): First page (1-based).
        end (int | None): Last page (1-based, inclusive).
        concurrency (int | None): In-flight page calls, clamped to `[1, 5]`.
        pages (str | None): Include page spec.
        exclude (str | None): Exclude page spec.

    Raises:
        InvalidInputError: If `scale` is not a finite number or the options do not validate.

    Returns:
        ConvertOptions: Validated options.
    """
    if scale is not None and not math.isfinite(scale):
        raise InvalidInputError(message="Invalid request", details=f"scale: must be a finite number, got {scale}")
    resolved_scale = settings.default_scale if scale is None else scale
    resolved_concurrency = settings.default_concurrency if concurrency is None else concurrency
    try:
        return ConvertOptions(
            max_pages=clamp_max_pages(max_pages if max_pages is not None else settings.default_max_pages),
            scale=min(max(resolved_scale, MIN_SCALE), MAX_SCALE),
            start=max(1, start or 1),
            end=max(1, end) if end is not None else None,
            concurrency=min(max(resolved_concurrency, MIN_CONCURRENCY), MAX_CONCURRENCY),
            pages=(pages or "").strip(),
            exclude=(exclude or "").strip(),
        )
    except ValidationError as exc:
        raise InvalidInputError(message="Invalid request", details=str(exc)) from exc


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Decode a base64 `data:` URI.

    Args:
        data_url (str): URI such as `data:image/png;base64,....`.

    Raises:
        InvalidInputError: If the URI is malformed, not base64 encoded or carries no data.

    Returns:
        tuple[str, bytes]: MIME type and decoded, non-empty payload.
    """
    match = _DATA_URL.match(data_url.strip())
    if match is None or ";base64" not in match.group("params").lower():
        raise InvalidInputError(message="Malformed data URL", details="expected data:<mime>;base64,<payload>")
    # Line breaks are tolerated inside the payload; any other non-alphabet character is rejected.
    encoded = "".join(match.group("payload").split())
    try:
        payload = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInputError(message="Malformed data URL", details=str(exc)) from exc
    if not payload:
        raise InvalidInputError(message="Malformed data URL", details="payload is empty")
    return match.group("mime").lower() or "application/octet-stream", payload


def _to_data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


async def convert_image(image_url: str, *, backend: ModelBackend, settings: Settings) -> ConversionResult:
    """Convert one image to Markdown with a single vision call.

    Args:
        image_url (str): `data:` URI of the image.
        backend (ModelBackend): Model backend.
        settings (Settings): Runtime settings.

    Raises:
        BackendError: If the call exceeds the configured timeout.

    Returns:
        ConversionResult: Model Markdown (trimmed) and usage.
    """
    try:
        async with asyncio.timeout(settings.model_call_timeout):
            text, usage = await backend.adescribe_image(TABLE_EXTRACTION_PROMPT, image_url)
    except TimeoutError as exc:
        raise BackendError(message=f"Image conversion exceeded {settings.model_call_timeout:g}s") from exc
    markdown = text.strip() or NO_CONTENT_EXTRACTED
    logger.info("Image converted", extra={"chars": len(markdown), "total_tokens": usage.total_tokens})
    return ConversionResult(markdown=markdown, usage=usage, pages=[1])


async def convert_pdf(
    data: bytes,
    *,
    options: ConvertOptions,
    backend: ModelBackend,
    settings: Settings,
) -> ConversionResult:
    """Convert the selected pages of a PDF to Markdown.

    Pages are rendered and sent to the model with at most `options.concurrency`
    calls in flight. Any page failure aborts the whole conversion.

    Args:
        data (bytes): PDF bytes.
        options (ConvertOptions): Page selection and rendering options.
        backend (ModelBackend): Model backend.
        settings (Settings): Runtime settings.

    Raises:
        PageConversionError: If rendering or the model call fails or times out for a page.

    Returns:
        ConversionResult: Aggregated Markdown, usage and processed pages.
    """
    usage = UsageAccumulator()

    with open_pdf(data) as doc:
        selection = resolve_page_selection(
            len(doc),
            pages_spec=options.pages,
            exclude_spec=options.exclude,
            start=options.start,
            end=options.end,
            max_pages=options.max_pages,
        )

        async def _convert_page(page_number: int) -> tuple[int, str]:
            try:
                async with asyncio.timeout(settings.model_call_timeout):
                    rendered = render_page(doc, page_number, scale=options.scale)
                    text, page_usage = await backend.adescribe_image(TABLE_EXTRACTION_PROMPT, rendered.data_url)
            except TimeoutError as exc:
                expired = BackendError(message=f"Model call exceeded {settings.model_call_timeout:g}s")
                raise PageConversionError(page_number=page_number, exc=expired) from exc
            except Exception as exc:
                raise PageConversionError(page_number=page_number, exc=exc) from exc
            usage.add(page_usage)
            logger.info("Page converted", extra={"page": page_number, "chars": len(text)})
            return page_number, text

        outputs = await run_bounded(list(selection.ordered_pages), _convert_page, concurrency=options.concurrency)

    markdown = aggregate_page_markdown(outputs)
    total = usage.total
    logger.info(
        "Document converted",
        extra={"pages": len(outputs), "chars": len(markdown), "total_tokens": total.total_tokens},
    )
    return ConversionResult(markdown=markdown, usage=total, pages=list(selection.ordered_pages))


async def convert_document(
    data: bytes,
    *,
    mime_type: str,
    options: ConvertOptions,
    backend: ModelBackend,
    settings: Settings,
) -> ConversionResult:
    """Convert an uploaded image or PDF.

    Args:
        data (bytes): File bytes.
        mime_type (str): Declared MIME type.
        options (ConvertOptions): Conversion options (PDF only).
        backend (ModelBackend): Model backend.
        settings (Settings): Runtime settings.

    Raises:
        InvalidInputError: If the file is empty.
        UnsupportedMediaTypeError: If the file is neither an image nor a PDF.

    Returns:
        ConversionResult: Conversion output.
    """
    if not data:
        raise InvalidInputError(message="Uploaded file is empty")
    kind = InputKind.from_mime_type(mime_type)
    if kind is None:
        raise UnsupportedMediaTypeError(message="Unsupported file type", details=mime_type or "unknown")
    if kind == InputKind.PDF:
        return await convert_pdf(data, options=options, backend=backend, settings=settings)
    image_url = _to_data_url(mime_type.split(";", 1)[0].strip(), data)
    return await convert_image(image_url, backend=backend, settings=settings)


async def convert_data_url(
    data_url: str,
    *,
    options: ConvertOptions,
    backend: ModelBackend,
    settings: Settings,
) -> ConversionResult:
    """Convert a `data:` URI (image or PDF).

    Image URIs are forwarded to the model as-is.

    Args:
        data_url (str): Base64 `data:` URI.
        options (ConvertOptions): Conversion options (PDF only).
        backend (ModelBackend): Model backend.
        settings (Settings): Runtime settings.

    Raises:
        UnsupportedMediaTypeError: If the URI holds neither an image nor a PDF.

    Returns:
        ConversionResult: Conversion output.
    """
    mime_type, payload = decode_data_url(data_url)
    kind = InputKind.from_mime_type(mime_type)
    if kind is None:
        raise UnsupportedMediaTypeError(message="Unsupported data URL type", details=mime_type)
    if kind == InputKind.PDF:
        return await convert_pdf(payload, options=options, backend=backend, settings=settings)
    return await convert_image(data_url.strip(), backend=backend, settings=settings)
