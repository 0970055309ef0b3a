"""HTTP API: document to Markdown conversion and field extraction."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from sheetextract import __version__, logger
from sheetextract.backends import OpenAIChatBackend
from sheetextract.converter import build_convert_options, convert_data_url, convert_document
from sheetextract.exceptions import InvalidInputError, NoPagesSelectedError, UnsupportedMediaTypeError
from sheetextract.field_extractor import extract_fields
from sheetextract.logging import bind_request_context, clear_request_context
from sheetextract.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

    from sheetextract.settings import Settings
    from sheetextract.typing.models import ConvertOptions
    from sheetextract.typing.protocol import ModelBackend

CONVERT_FAILED = "Failed to convert document to Markdown."
EXTRACT_FAILED = "Failed to extract fields"
NO_DATA_URL = 'No image provided. Send JSON with "dataUrl".'


class ExtractPayload(BaseModel):
    """Body of `POST /api/extract`."""

    model_config = ConfigDict(extra="ignore")

    markdown: str | None = None
    fields: list[str] | None = None
    aliases: dict[str, str | None] | None = None


class UsagePayload(BaseModel):
    """Token usage as returned to clients."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ConvertResponse(BaseModel):
    """Body returned by `POST /api/convert`."""

    markdown: str
    usage: UsagePayload = Field(default_factory=UsagePayload)


class ExtractResponse(BaseModel):
    """Body returned by `POST /api/extract`."""

    fields: dict[str, str]
    order: list[str]
    usage: UsagePayload = Field(default_factory=UsagePayload)


def _error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


async def _read_convert_body(request: Request) -> tuple[str, Any]:
    """Read the convert body according to its content type.

    Args:
        request (Request): Incoming request.

    Raises:
        InvalidInputError: If the body is missing or malformed.
        UnsupportedMediaTypeError: If the content type is neither JSON nor multipart.

    Returns:
        tuple[str, Any]: `("data_url", str)` or `("upload", (bytes, mime_type))`.
    """
    content_type = request.headers.get("content-type", "")
    base_type = content_type.split(";", 1)[0].strip().lower()

    if base_type == "application/json":
        try:
            body = await request.json()
        except ValueError as exc:
            raise InvalidInputError(message=NO_DATA_URL, details="body is not valid JSON") from exc
        data_url = body.get("dataUrl") if isinstance(body, dict) else None
        if not isinstance(data_url, str) or not data_url.startswith("data:"):
            raise InvalidInputError(message=NO_DATA_URL)
        return "data_url", data_url

    if base_type == "multipart/form-data":
        try:
            form = await request.form()
        except HTTPException as exc:
            raise InvalidInputError(message="Malformed multipart body", details=str(exc.detail)) from exc
        except MultiPartException as exc:
            raise InvalidInputError(message="Malformed multipart body", details=exc.message) from exc
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise InvalidInputError(message="No file provided. Send multipart/form-data with a 'file' field.")
        data = await upload.read()
        return "upload", (data, upload.content_type or "application/octet-stream")

    raise UnsupportedMediaTypeError(
        message="Unsupported content type",
        details=content_type or "missing Content-Type header",
    )


def _require_backend(request: Request) -> ModelBackend:
    backend = request.app.state.backend
    if backend is None:
        raise RuntimeError("Model backend is not initialized")  # noqa: TRY003
    return backend


def create_app(settings: Settings | None = None, backend: ModelBackend | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings (Settings | None): Runtime settings. Defaults to `get_settings()`.
        backend (ModelBackend | None): Model backend. When None, an `OpenAIChatBackend`
            is created at startup and closed at shutdown.

    Returns:
        FastAPI: Configured application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned: OpenAIChatBackend | None = None
        if app.state.backend is None:
            owned = OpenAIChatBackend(settings)
            app.state.backend = owned
            if not owned.available:
                logger.warning("OPENAI_API_KEY is not set, conversion will fail and extraction will use heuristics")
        logger.info("API started", extra={"version": __version__, "model": settings.openai_model})
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()
                app.state.backend = None
            logger.info("API stopped")

    app = FastAPI(title="sheetextract", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get("x-request-id") or uuid4().hex
        bind_request_context(request_id=request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, "Invalid request", _format_validation_errors(exc))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post("/api/convert", response_model=ConvertResponse)
    async def convert(
        request: Request,
        max_pages: int | None = Query(default=None, alias="maxPages"),
        scale: float | None = Query(default=None, allow_inf_nan=False),
        start: int | None = Query(default=None),
        end: int | None = Query(default=None),
        concurrency: int | None = Query(default=None),
        pages: str | None = Query(default=None),
        exclude: str | None = Query(default=None),
    ) -> ConvertResponse | JSONResponse:
        try:
            options: ConvertOptions = build_convert_options(
                settings,
                max_pages=max_pages,
                scale=scale,
                start=start,
                end=end,
                concurrency=concurrency,
                pages=pages,
                exclude=exclude,
            )
            kind, payload = await _read_convert_body(request)
            model_backend = _require_backend(request)
            if kind == "data_url":
                result = await convert_data_url(payload, options=options, backend=model_backend, settings=settings)
            else:
                data, mime_type = payload
                result = await convert_document(
                    data,
                    mime_type=mime_type,
                    options=options,
                    backend=model_backend,
                    settings=settings,
                )
        except InvalidInputError as exc:
            logger.warning("Convert request rejected", extra={"status": exc.status_code, "error": str(exc)})
            return _error_response(exc.status_code, exc.message, exc.details)
        except NoPagesSelectedError as exc:
            logger.warning("Convert request selected no pages", extra={"error": str(exc)})
            return _error_response(400, "No pages selected", str(exc))
        except Exception as exc:
            logger.exception("Conversion failed")
            return _error_response(500, CONVERT_FAILED, str(exc) or type(exc).__name__)

        return ConvertResponse(markdown=result.markdown, usage=UsagePayload(**result.usage.model_dump()))

    @app.post("/api/extract", response_model=ExtractResponse)
    async def extract(request: Request, payload: ExtractPayload) -> ExtractResponse | JSONResponse:
        if not payload.markdown or not payload.markdown.strip():
            return _error_response(400, "markdown is required in body")
        try:
            result = await extract_fields(
                payload.markdown,
                fields=payload.fields,
                aliases=payload.aliases,
                backend=request.app.state.backend,
                settings=settings,
            )
        except Exception as exc:
            logger.exception("Field extraction failed")
            return _error_response(500, EXTRACT_FAILED, str(exc) or type(exc).__name__)

        return ExtractResponse(
            fields=result.fields,
            order=result.order,
            usage=UsagePayload(**result.usage.model_dump()),
        )

    return app

