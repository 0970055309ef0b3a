"""CLI entry point for sheetextract."""

from __future__ import annotations

import argparse
import json
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING

from sheetextract import __version__, logger
from sheetextract.async_runner import run_async
from sheetextract.backends import OpenAIChatBackend
from sheetextract.converter import build_convert_options, convert_document
from sheetextract.dependencies import (
    ensure_cli_dependencies_for_convert,
    ensure_cli_dependencies_for_serve,
    ensure_model_dependencies,
)
from sheetextract.exceptions import ExtractionError, InvalidInputError, PackageError
from sheetextract.field_extractor import extract_fields
from sheetextract.logging import configure_logging
from sheetextract.settings import get_settings

if TYPE_CHECKING:
    from sheetextract.settings import Settings
    from sheetextract.typing.models import ConversionResult, ConvertOptions, ExtractionResult


def _alias_from_cli(value: str) -> tuple[str, str]:
    """Parse one `--alias OLD=NEW` value.

    Args:
        value (str): CLI value. An empty `NEW` marks the field as deleted.

    Raises:
        argparse.ArgumentTypeError: If the value has no `=`.

    Returns:
        tuple[str, str]: Old and new field names.
    """
    old, sep, new = value.partition("=")
    if not sep or not old.strip():
        raise argparse.ArgumentTypeError("--alias must look like OLD=NEW")  # noqa: TRY003
    return old.strip(), new.strip()


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="sheetextract")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    convert_parser = subparsers.add_parser("convert", help="Convert an image or PDF to Markdown tables")
    convert_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    convert_parser.add_argument("--output", type=Path, default=None, dest="output_path")
    convert_parser.add_argument("--pages", default=None)
    convert_parser.add_argument("--exclude", default=None)
    convert_parser.add_argument("--start", type=int, default=None)
    convert_parser.add_argument("--end", type=int, default=None)
    convert_parser.add_argument("--max-pages", type=int, default=None, dest="max_pages")
    convert_parser.add_argument("--scale", type=float, default=None)
    convert_parser.add_argument("--concurrency", type=int, default=None)

    extract_parser = subparsers.add_parser("extract", help="Extract named fields from Markdown tables")
    extract_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    extract_parser.add_argument("--output", type=Path, default=None, dest="output_path")
    extract_parser.add_argument("--field", action="append", default=None, dest="fields")
    extract_parser.add_argument("--alias", action="append", type=_alias_from_cli, default=None, dest="aliases")

    return parser


def guess_mime_type(path: Path) -> str:
    """Guess the MIME type of an input file from its suffix.

    Args:
        path (Path): Input file path.

    Returns:
        str: MIME type, `application/octet-stream` when unknown.
    """
    if path.suffix.lower() == ".pdf":
        return "application/pdf"
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def _read_input(path: Path) -> bytes:
    if not path.is_file():
        raise InvalidInputError(message="Input file not found", details=str(path))
    return path.read_bytes()


def _write_output(text: str, output_path: Path | None) -> None:
    if output_path is None:
        print(text)  # noqa: T201
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    logger.info("Output written", extra={"output_path": str(output_path)})


async def _convert(data: bytes, mime_type: str, options: ConvertOptions, settings: Settings) -> ConversionResult:
    backend = OpenAIChatBackend(settings)
    try:
        return await convert_document(data, mime_type=mime_type, options=options, backend=backend, settings=settings)
    finally:
        await backend.aclose()


async def _extract(
    markdown: str,
    fields: list[str] | None,
    aliases: dict[str, str] | None,
    settings: Settings,
) -> ExtractionResult:
    backend = OpenAIChatBackend(settings)
    try:
        return await extract_fields(markdown, fields=fields, aliases=aliases, backend=backend, settings=settings)
    finally:
        await backend.aclose()


def _run_convert(args: argparse.Namespace, settings: Settings) -> None:
    ensure_cli_dependencies_for_convert()
    data = _read_input(args.input_path)
    options = build_convert_options(
        settings,
        max_pages=args.max_pages,
        scale=args.scale,
        start=args.start,
        end=args.end,
        concurrency=args.concurrency,
        pages=args.pages,
        exclude=args.exclude,
    )
    result = run_async(_convert(data, guess_mime_type(args.input_path), options, settings))
    logger.info(
        "Conversion completed",
        extra={"pages": result.pages, "total_tokens": result.usage.total_tokens},
    )
    _write_output(result.markdown, args.output_path)


def _run_extract(args: argparse.Namespace, settings: Settings) -> None:
    ensure_model_dependencies()
    markdown = _read_input(args.input_path).decode("utf-8")
    if not markdown.strip():
        raise ExtractionError(message=f"Markdown input is empty: {args.input_path}")
    aliases = dict(args.aliases) if args.aliases else None
    result = run_async(_extract(markdown, args.fields, aliases, settings))
    payload = {
        "fields": result.fields,
        "order": result.order,
        "usage": result.usage.model_dump(),
    }
    _write_output(json.dumps(payload, ensure_ascii=False, indent=2), args.output_path)


def _run_serve(args: argparse.Namespace, settings: Settings) -> None:
    ensure_cli_dependencies_for_serve()
    import uvicorn  # noqa: PLC0415

    from sheetextract.api import create_app  # noqa: PLC0415

    host = args.host or settings.server_host
    port = args.port or settings.server_port
    logger.info("Starting API server", extra={"host": host, "port": port})
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments, defaults to `sys.argv[1:]`.

    Returns:
        int: Exit code (0 for success, 1 for error, 130 when interrupted).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "convert": _run_convert,
        "extract": _run_extract,
        "serve": _run_serve,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        command(args, settings)
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user", extra={"command": args.command})
        return 130
    except Exception:
        logger.exception("Unexpected error", extra={"command": args.command})
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
