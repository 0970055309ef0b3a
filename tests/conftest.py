"""Shared test doubles, fixtures and pytest marker auto-assignment by folder."""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path

import pytest

from sheetextract import logger
from sheetextract.settings import Settings
from sheetextract.typing.models import TokenUsage


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


class FakePixmap:
    def __init__(self, page_number: int) -> None:
        self.page_number = page_number
        self.width = 10
        self.height = 20

    def tobytes(self, output: str = "png") -> bytes:
        return f"{output}:page-{self.page_number}".encode()


class FakePage:
    def __init__(self, page_number: int, *, fail: bool = False) -> None:
        self.page_number = page_number
        self.fail = fail
        self.matrix: object = None

    def get_pixmap(self, *, matrix: object, alpha: bool) -> FakePixmap:
        assert alpha is False
        if self.fail:
            raise RuntimeError(f"cannot render page {self.page_number}")
        self.matrix = matrix
        return FakePixmap(self.page_number)


class FakeDoc:
    def __init__(self, page_count: int, failing_pages: tuple[int, ...] = ()) -> None:
        self.page_count = page_count
        self.failing_pages = failing_pages
        self.loaded: list[int] = []
        self.closed = False

    def __enter__(self) -> FakeDoc:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    def __len__(self) -> int:
        return self.page_count

    def load_page(self, index: int) -> FakePage:
        assert 0 <= index < self.page_count
        self.loaded.append(index + 1)
        return FakePage(index + 1, fail=index + 1 in self.failing_pages)


class FakeFitz:
    """Stand-in for the `fitz` module."""

    def __init__(self, page_count: int = 1, failing_pages: tuple[int, ...] = ()) -> None:
        self.page_count = page_count
        self.failing_pages = failing_pages
        self.opened: list[bytes] = []
        self.last_doc: FakeDoc | None = None

    def open(self, *, stream: bytes, filetype: str) -> FakeDoc:
        assert filetype == "pdf"
        self.opened.append(stream)
        self.last_doc = FakeDoc(self.page_count, self.failing_pages)
        return self.last_doc

    def Matrix(self, sx: float, sy: float) -> tuple[float, float]:  # noqa: N802
        return (sx, sy)


def page_number_from_data_url(image_url: str) -> int | None:
    """Recover the page number a `FakePixmap` encoded into a data URL."""
    payload = base64.b64decode(image_url.split(",", 1)[1]).decode(errors="ignore")
    _, _, marker = payload.partition("page-")
    return int(marker) if marker.isdigit() else None


class FakeBackend:
    """In-memory `ModelBackend`."""

    def __init__(
        self,
        *,
        image_text: str = "| a | b |\n|---|---|\n| 1 | 2 |",
        page_texts: dict[int, str | BaseException] | None = None,
        completion_text: str = "",
        error: BaseException | None = None,
        usage: TokenUsage | None = None,
        delay: float = 0.0,
    ) -> None:
        self.image_text = image_text
        self.page_texts = page_texts or {}
        self.completion_text = completion_text
        self.error = error
        self.usage = usage or TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        self.delay = delay
        self.image_calls: list[str] = []
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def adescribe_image(self, prompt: str, image_url: str) -> tuple[str, TokenUsage]:
        self.prompts.append(prompt)
        self.image_calls.append(image_url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            outcome = self.page_texts.get(page_number_from_data_url(image_url) or 0, self.image_text)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome, self.usage
        finally:
            self.in_flight -= 1

    async def acomplete(self, prompt: str) -> tuple[str, TokenUsage]:
        self.prompts.append(prompt)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.completion_text, self.usage

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key=None,
        openai_base_url=None,
        model_call_timeout=5.0,
        default_max_pages=None,
        default_scale=2.0,
        default_concurrency=3,
        markdown_char_limit=20000,
    )


@pytest.fixture
def fake_backend() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def fake_fitz(monkeypatch):
    def _install(page_count: int = 1, failing_pages: tuple[int, ...] = ()) -> FakeFitz:
        module = FakeFitz(page_count=page_count, failing_pages=failing_pages)
        monkeypatch.setattr("sheetextract.pdf_render.fitz", module)
        return module

    return _install
