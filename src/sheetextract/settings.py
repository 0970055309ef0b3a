"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
import ssl
from functools import lru_cache
from pathlib import Path
from typing import Any

import certifi
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetextract.exceptions import SettingsError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "sheetextract"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )
    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )
    all_proxy: str | None = Field(default=None, validation_alias="ALL_PROXY", description="All proxy URL.")

    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to SSL certificate.",
    )
    timeout: float = Field(
        default=60.0,
        validation_alias="TIMEOUT",
        description="HTTP request timeout in seconds.",
    )
    max_connections: int = Field(
        default=20,
        validation_alias="MAX_CONNECTIONS",
        description="Maximum number of concurrent connections.",
    )

    openai_base_url: str | None = Field(
        default=None,
        validation_alias="OPENAI_BASE_URL",
        description="Base URL for an OpenAI-compatible API. Defaults to the SDK endpoint.",
    )
    openai_api_key: str | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="API key for OpenAI.",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias="OPENAI_MODEL",
        description="Vision-capable chat model to use.",
    )
    openai_temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        validation_alias="OPENAI_TEMPERATURE",
        description="Sampling temperature for every model call.",
    )
    model_call_timeout: float = Field(
        default=120.0,
        gt=0.0,
        validation_alias="MODEL_CALL_TIMEOUT",
        description="Upper bound in seconds for a single model call.",
    )

    default_max_pages: int | None = Field(
        default=None,
        ge=1,
        le=50,
        validation_alias="DEFAULT_MAX_PAGES",
        description="Page cap applied when a request does not send `maxPages`.",
    )
    default_scale: float = Field(
        default=2.0,
        ge=1.0,
        le=4.0,
        validation_alias="DEFAULT_SCALE",
        description="Rasterization zoom factor applied when a request does not send `scale`.",
    )
    default_concurrency: int = Field(
        default=3,
        ge=1,
        le=5,
        validation_alias="DEFAULT_CONCURRENCY",
        description="Concurrent page calls when a request does not send `concurrency`.",
    )
    markdown_char_limit: int = Field(
        default=20000,
        ge=1,
        validation_alias="MARKDOWN_CHAR_LIMIT",
        description="Markdown longer than this is truncated before field extraction.",
    )

    server_host: str = Field(default="127.0.0.1", validation_alias="SERVER_HOST")
    server_port: int = Field(default=8000, validation_alias="SERVER_PORT")


def _get_certifi_cafile() -> str:
    """Return the certifi CA bundle path."""
    return certifi.where()


def _cert_store_has_ca(ssl_context: ssl.SSLContext) -> bool:
    """Return whether the SSL context trusts at least one CA certificate."""
    return bool(ssl_context.cert_store_stats().get("x509_ca"))


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    The host trust store is used unless `CERT_PATH` is set. When the host store is
    empty (slim containers), the certifi bundle is used instead.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path)
    if settings.cert_path is None and not _cert_store_has_ca(ssl_context):
        ssl_context = ssl.create_default_context(cafile=_get_certifi_cafile())
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def build_httpx_client_kwargs(settings: Settings) -> dict[str, Any]:
    """Build kwargs used for `httpx.AsyncClient`.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        dict[str, Any]: Arguments for the client constructor.
    """
    proxy_url = settings.https_proxy or settings.http_proxy or settings.all_proxy

    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
    }
    if proxy_url:
        kwargs["proxy"] = proxy_url
    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
