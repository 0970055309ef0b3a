"""Structlog setup shared by the CLI and the HTTP service."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

from sheetextract.settings import Settings, get_settings

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor

# Loggers owned by libraries we drive; uvicorn is routed through our handlers by `serve`.
_LIBRARY_LOGGERS = ("httpx", "httpcore", "openai")
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


def _event_to_message(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def _build_processors(*, json_output: bool) -> list[Processor]:
    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        _event_to_message,
        structlog.processors.format_exc_info,
        renderer,
    ]


def _build_handlers(log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    return handlers


def _tune_library_loggers(level: int) -> None:
    # Request-level chatter from the HTTP stack only shows up when debugging.
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True
        server_logger.setLevel(level)


def configure_logging(*, settings: Settings | None = None, force: bool = False) -> None:
    """Configure structlog and stdlib logging for the process.

    Args:
        settings: Source of `LOG_LEVEL`, `LOG_JSON` and `LOG_FILE`. Defaults to `get_settings()`.
        force: Reconfigure even when logging was already configured.
    """
    global _configured  # noqa: PLW0603

    if _configured and not force:
        return

    config = settings or get_settings()
    level = logging.getLevelNamesMapping().get(config.log_level.upper(), logging.INFO)

    logging.basicConfig(level=level, format="%(message)s", handlers=_build_handlers(config.log_file), force=force)
    _tune_library_loggers(level)

    structlog.configure(
        processors=_build_processors(json_output=config.log_json),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def bind_request_context(**values: Any) -> None:
    """Attach values (request id, path) to every event logged by the current task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "sheetextract") -> structlog.BoundLogger:
    """Return a package logger, configuring logging on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
