"""Runtime dependency checks for CLI commands."""

from __future__ import annotations

import importlib.util

from sheetextract.exceptions import DependencyError


def _is_module_available(module_name: str) -> bool:
    """Check whether a module can be imported.

    Args:
        module_name (str): Python module name.

    Returns:
        bool: True if import spec exists.
    """
    return importlib.util.find_spec(module_name) is not None


def _collect_missing_dependencies(modules_by_package: dict[str, str]) -> list[str]:
    """Collect missing distributions for a module mapping.

    Args:
        modules_by_package (dict[str, str]): Distribution name -> import module.

    Returns:
        list[str]: Missing distribution names.
    """
    return [package for package, module in modules_by_package.items() if not _is_module_available(module)]


def _ensure(modules_by_package: dict[str, str], command: str) -> None:
    missing = _collect_missing_dependencies(modules_by_package)
    if missing:
        raise DependencyError(missing_package=missing, message=command)


def ensure_model_dependencies() -> None:
    """Validate the dependencies every model-backed command needs.

    Raises:
        DependencyError: If required runtime dependencies are missing.
    """
    _ensure({"httpx": "httpx", "openai": "openai", "certifi": "certifi"}, "model backend")


def ensure_cli_dependencies_for_convert() -> None:
    """Validate required runtime dependencies for `sheetextract convert`.

    Raises:
        DependencyError: If one or more required modules are missing.
    """
    _ensure({"pymupdf": "fitz", "httpx": "httpx", "openai": "openai"}, "convert")


def ensure_cli_dependencies_for_serve() -> None:
    """Validate required runtime dependencies for `sheetextract serve`.

    Raises:
        DependencyError: If one or more required modules are missing.
    """
    _ensure(
        {
            "fastapi": "fastapi",
            "uvicorn": "uvicorn",
            "python-multipart": "multipart",
            "pymupdf": "fitz",
        },
        "serve",
    )
