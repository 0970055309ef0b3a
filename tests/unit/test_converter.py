from __future__ import annotations

import asyncio
import base64

import pytest

from sheetextract.converter import (
    build_convert_options,
    convert_data_url,
    convert_document,
    convert_image,
    convert_pdf,
    decode_data_url,
)
from sheetextract.exceptions import (
    BackendError,
    InvalidInputError,
    NoPagesSelectedError,
    PageConversionError,
    UnsupportedMediaTypeError,
)
from sheetextract.prompts import (
    NO_CONTENT_EXTRACTED,
    NO_TABLES_IN_DOCUMENT,
    NO_TABLES_IN_IMAGE,
    TABLE_EXTRACTION_PROMPT,
)
from sheetextract.typing.models import ConvertOptions, TokenUsage

PNG_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()
PDF_URL = "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.7 fake").decode()


def test_build_convert_options_clamps_and_defaults(settings) -> None:
    options = build_convert_options(settings, max_pages=500, scale=9, concurrency=0, start=-3, pages=" 1-2 ")

    assert options == ConvertOptions(max_pages=50, scale=4.0, start=1, end=None, concurrency=1, pages="1-2")

    defaults = build_convert_options(settings)
    assert defaults.scale == settings.default_scale
    assert defaults.concurrency == settings.default_concurrency
    assert defaults.max_pages is None


@pytest.mark.parametrize("scale", [float("nan"), float("inf"), float("-inf")])
def test_build_convert_options_rejects_non_finite_scale(settings, scale: float) -> None:
    with pytest.raises(InvalidInputError, match="scale: must be a finite number") as exc_info:
        build_convert_options(settings, scale=scale)

    assert exc_info.value.status_code == 400


def test_build_convert_options_uses_settings_page_cap(settings) -> None:
    settings.default_max_pages = 4
    assert build_convert_options(settings).max_pages == 4
    assert build_convert_options(settings, max_pages=2).max_pages == 2


def test_decode_data_url() -> None:
    mime, payload = decode_data_url(PDF_URL)

    assert mime == "application/pdf"
    assert payload == b"%PDF-1.7 fake"


def test_decode_data_url_tolerates_line_breaks() -> None:
    header, encoded = PDF_URL.split(",", 1)
    wrapped = header + "," + encoded[:8] + "\n" + encoded[8:]

    assert decode_data_url(wrapped) == ("application/pdf", b"%PDF-1.7 fake")


@pytest.mark.parametrize(
    "url",
    [
        "data:image/png,plain",
        "not a url",
        "data:image/png;base64",
        "data:image/png;base64,",
        "data:image/png;base64,@@@@",
        "data:image/png;base64,  \n ",
    ],
)
def test_decode_data_url_rejects_malformed(url: str) -> None:
    with pytest.raises(InvalidInputError, match="Malformed data URL"):
        decode_data_url(url)


def test_convert_image_single_call(settings, fake_backend) -> None:
    backend = fake_backend(image_text="  | a |\n|---|\n| 1 |  ")

    result = asyncio.run(convert_image(PNG_URL, backend=backend, settings=settings))

    assert result.markdown == "| a |\n|---|\n| 1 |"
    assert result.pages == [1]
    assert result.usage == backend.usage
    assert backend.image_calls == [PNG_URL]
    assert backend.prompts == [TABLE_EXTRACTION_PROMPT]


def test_convert_image_empty_response(settings, fake_backend) -> None:
    result = asyncio.run(convert_image(PNG_URL, backend=fake_backend(image_text=""), settings=settings))
    assert result.markdown == NO_CONTENT_EXTRACTED


def test_convert_image_timeout(settings, fake_backend) -> None:
    settings.model_call_timeout = 0.01
    with pytest.raises(BackendError, match="exceeded"):
        asyncio.run(convert_image(PNG_URL, backend=fake_backend(delay=0.5), settings=settings))


def test_convert_pdf_aggregates_pages_and_usage(settings, fake_backend, fake_fitz) -> None:
    module = fake_fitz(page_count=4)
    backend = fake_backend(
        page_texts={1: "| p1 |", 2: NO_TABLES_IN_IMAGE, 3: "| p3 |", 4: "| p4 |"},
        usage=TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120),
    )
    options = ConvertOptions(concurrency=2, exclude="4")

    result = asyncio.run(convert_pdf(b"%PDF", options=options, backend=backend, settings=settings))

    assert result.markdown == "### Page 1\n\n| p1 |\n\n### Page 3\n\n| p3 |"
    assert result.pages == [1, 2, 3]
    assert result.usage == TokenUsage(prompt_tokens=300, completion_tokens=60, total_tokens=360)
    assert backend.max_in_flight <= 2
    assert sorted(module.last_doc.loaded) == [1, 2, 3]
    assert module.last_doc.closed


def test_convert_pdf_all_pages_without_tables(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=2)
    backend = fake_backend(image_text=NO_TABLES_IN_IMAGE)

    result = asyncio.run(convert_pdf(b"%PDF", options=ConvertOptions(), backend=backend, settings=settings))

    assert result.markdown == NO_TABLES_IN_DOCUMENT


def test_convert_pdf_respects_concurrency_limit(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=10)
    backend = fake_backend(delay=0.01)

    asyncio.run(convert_pdf(b"%PDF", options=ConvertOptions(concurrency=3), backend=backend, settings=settings))

    assert len(backend.image_calls) == 10
    assert backend.max_in_flight == 3


def test_convert_pdf_page_failure_aborts(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=3)
    backend = fake_backend(page_texts={2: BackendError(message="upstream 500")})

    with pytest.raises(PageConversionError, match="Page 2 failed: upstream 500") as exc_info:
        asyncio.run(convert_pdf(b"%PDF", options=ConvertOptions(), backend=backend, settings=settings))

    assert exc_info.value.page_number == 2


def test_convert_pdf_render_failure_carries_page(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=2, failing_pages=(1,))

    with pytest.raises(PageConversionError) as exc_info:
        asyncio.run(convert_pdf(b"%PDF", options=ConvertOptions(), backend=fake_backend(), settings=settings))

    assert exc_info.value.page_number == 1
    assert isinstance(exc_info.value.exc, BackendError)


def test_convert_pdf_no_pages_selected(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=2)
    backend = fake_backend()

    with pytest.raises(NoPagesSelectedError):
        asyncio.run(
            convert_pdf(b"%PDF", options=ConvertOptions(exclude="1-2"), backend=backend, settings=settings),
        )

    assert backend.image_calls == []


def test_convert_pdf_timeout_carries_page(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=3)
    settings.model_call_timeout = 0.01
    options = ConvertOptions(pages="2")

    with pytest.raises(PageConversionError, match="Page 2 failed: Model call exceeded 0.01s") as exc_info:
        asyncio.run(convert_pdf(b"%PDF", options=options, backend=fake_backend(delay=0.5), settings=settings))

    assert exc_info.value.page_number == 2
    assert isinstance(exc_info.value.exc, BackendError)


def test_convert_document_routes_by_mime_type(settings, fake_backend, fake_fitz) -> None:
    fake_fitz(page_count=1)
    backend = fake_backend(image_text="| x |")

    options = ConvertOptions()

    pdf = asyncio.run(
        convert_document(b"%PDF", mime_type="application/pdf", options=options, backend=backend, settings=settings),
    )
    image = asyncio.run(
        convert_document(b"img", mime_type="image/jpeg", options=options, backend=backend, settings=settings),
    )

    assert pdf.markdown == "### Page 1\n\n| x |"
    assert image.markdown == "| x |"
    assert backend.image_calls[-1] == "data:image/jpeg;base64," + base64.b64encode(b"img").decode()


def test_convert_document_rejects_empty_and_unsupported(settings, fake_backend) -> None:
    backend = fake_backend()
    options = ConvertOptions()

    with pytest.raises(InvalidInputError, match="empty"):
        asyncio.run(convert_document(b"", mime_type="image/png", options=options, backend=backend, settings=settings))
    with pytest.raises(UnsupportedMediaTypeError) as exc_info:
        asyncio.run(convert_document(b"x", mime_type="text/plain", options=options, backend=backend, settings=settings))
    assert exc_info.value.status_code == 415


def test_convert_data_url_pdf_goes_through_page_pipeline(settings, fake_backend, fake_fitz) -> None:
    module = fake_fitz(page_count=2)
    backend = fake_backend(image_text="| t |")

    result = asyncio.run(convert_data_url(PDF_URL, options=ConvertOptions(), backend=backend, settings=settings))

    assert module.opened == [b"%PDF-1.7 fake"]
    assert result.pages == [1, 2]
    assert result.markdown.startswith("### Page 1")


def test_convert_data_url_image_is_forwarded_as_is(settings, fake_backend) -> None:
    backend = fake_backend(image_text="| t |")

    result = asyncio.run(convert_data_url(PNG_URL, options=ConvertOptions(), backend=backend, settings=settings))

    assert result.markdown == "| t |"
    assert backend.image_calls == [PNG_URL]


def test_convert_data_url_unsupported(settings, fake_backend) -> None:
    url = "data:text/plain;base64," + base64.b64encode(b"hi").decode()
    with pytest.raises(UnsupportedMediaTypeError):
        asyncio.run(convert_data_url(url, options=ConvertOptions(), backend=fake_backend(), settings=settings))
