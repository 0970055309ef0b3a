"""PDF rasterization helpers."""

from __future__ import annotations

from typing import Any

try:
    import fitz
except Exception:  # pragma: no cover - optional dependency at runtime
    fitz: Any
    fitz = None

from sheetextract import logger
from sheetextract.exceptions import BackendError
from sheetextract.typing.models import RenderedPage

_MIME_BY_FORMAT = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
}


def open_pdf(data: bytes) -> Any:
    """Open a PDF document held in memory.

    Args:
        data: Raw PDF bytes.

    Raises:
        BackendError: If PyMuPDF is unavailable or the bytes are not a readable PDF.

    Returns:
        fitz.Document: Open document. Callers close it (it is a context manager).
    """
    if fitz is None:
        raise BackendError(message="PyMuPDF is required for PDF rendering")
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise BackendError(message=f"Failed to open PDF: {exc}") from exc


def render_page(doc: Any, page_number: int, *, scale: float, image_format: str = "png") -> RenderedPage:
    """Render one page of an open document to an image.

    Args:
        doc: Open `fitz.Document`.
        page_number: Page number (1-based).
        scale: Zoom factor applied on both axes (1.0 = 72 DPI).
        image_format: Target format (`png`, `jpeg`, `jpg`).

    Raises:
        BackendError: If the format is unsupported or rendering fails.

    Returns:
        RenderedPage: Rendered page image.
    """
    normalized_format = image_format.lower()
    if normalized_format not in _MIME_BY_FORMAT:
        raise BackendError(message=f"Unsupported image format: {image_format}")

    try:
        page = doc.load_page(page_number - 1)
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        image_bytes = pix.tobytes(output=normalized_format)
    except Exception as exc:  # pragma: no cover - depends on file and fitz internals
        raise BackendError(message=f"Failed to render page {page_number}") from exc

    logger.debug(
        "Page rendered",
        extra={"page": page_number, "width": pix.width, "height": pix.height, "bytes": len(image_bytes)},
    )
    return RenderedPage(
        page_number=page_number,
        mime_type=_MIME_BY_FORMAT[normalized_format],
        data=image_bytes,
        width=pix.width,
        height=pix.height,
    )
