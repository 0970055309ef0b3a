from __future__ import annotations

import pytest

from sheetextract.dependencies import (
    ensure_cli_dependencies_for_convert,
    ensure_cli_dependencies_for_serve,
    ensure_model_dependencies,
)
from sheetextract.exceptions import DependencyError


@pytest.mark.parametrize(
    "check",
    [ensure_model_dependencies, ensure_cli_dependencies_for_convert, ensure_cli_dependencies_for_serve],
)
def test_dependency_checks_succeed(monkeypatch, check) -> None:
    monkeypatch.setattr("sheetextract.dependencies._is_module_available", lambda module_name: True)
    check()


def test_convert_dependencies_report_missing_distribution(monkeypatch) -> None:
    monkeypatch.setattr("sheetextract.dependencies._is_module_available", lambda module_name: module_name != "fitz")
    with pytest.raises(DependencyError, match="'convert': pymupdf") as exc_info:
        ensure_cli_dependencies_for_convert()
    assert exc_info.value.missing_package == ["pymupdf"]


def test_serve_dependencies_report_missing(monkeypatch) -> None:
    monkeypatch.setattr("sheetextract.dependencies._is_module_available", lambda module_name: False)
    with pytest.raises(DependencyError, match="Missing runtime dependencies for 'serve'") as exc_info:
        ensure_cli_dependencies_for_serve()
    assert "python-multipart" in exc_info.value.missing_package


def test_model_dependencies_raise(monkeypatch) -> None:
    monkeypatch.setattr("sheetextract.dependencies._is_module_available", lambda module_name: False)
    with pytest.raises(DependencyError, match="model backend"):
        ensure_model_dependencies()
