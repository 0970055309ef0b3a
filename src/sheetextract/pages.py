"""Page range parsing and page selection for multi-page documents."""

from __future__ import annotations

import re

from sheetextract import logger
from sheetextract.exceptions import NoPagesSelectedError
from sheetextract.typing.models import PageSelection

MAX_PAGES_CAP = 50

_SINGLE_PAGE = re.compile(r"^\d+$")
_PAGE_RANGE = re.compile(r"^(\d+)\s*-\s*(\d+)$")


def parse_page_spec(spec: str | None, total_pages: int) -> list[int]:
    """Parse a page spec such as ``"1,3,5-7"``.

    Tokens are comma separated and may be single pages or inclusive ranges.
    Reversed ranges are swapped, pages outside ``[1, total_pages]`` are dropped and
    malformed tokens are ignored.

    Args:
        spec (str | None): Raw page spec.
        total_pages (int): Number of pages in the document.

    Returns:
        list[int]: Unique page numbers in ascending order.
    """
    if not spec:
        return []

    selected: set[int] = set()
    for token in (part.strip() for part in spec.split(",")):
        if not token:
            continue
        if _SINGLE_PAGE.match(token):
            page = int(token)
            if 1 <= page <= total_pages:
                selected.add(page)
            continue
        match = _PAGE_RANGE.match(token)
        if match is None:
            continue
        low, high = sorted((int(match.group(1)), int(match.group(2))))
        selected.update(range(max(1, low), min(total_pages, high) + 1))
    return sorted(selected)


def clamp_max_pages(max_pages: int | None) -> int | None:
    """Clamp a requested page cap to ``[1, 50]``, keeping None as "no cap"."""
    if max_pages is None:
        return None
    return min(max(1, max_pages), MAX_PAGES_CAP)


def resolve_page_selection(
    total_pages: int,
    *,
    pages_spec: str | None = None,
    exclude_spec: str | None = None,
    start: int = 1,
    end: int | None = None,
    max_pages: int | None = None,
) -> PageSelection:
    """Resolve the pages of a document to render.

    Args:
        total_pages (int): Number of pages in the document.
        pages_spec (str | None): Include spec. When it selects anything, only those pages are kept.
        exclude_spec (str | None): Exclude spec, always applied last.
        start (int): First page of the window (1-based).
        end (int | None): Last page of the window, inclusive.
        max_pages (int | None): Window length cap, clamped to ``[1, 50]``.

    Raises:
        NoPagesSelectedError: If nothing remains to render.

    Returns:
        PageSelection: Immutable selection with `ordered_pages`.
    """
    if total_pages < 1:
        raise NoPagesSelectedError(total_pages=total_pages)

    cap = clamp_max_pages(max_pages)
    bounds = [total_pages]
    if cap is not None:
        bounds.append(start + cap - 1)
    if end is not None:
        bounds.append(end)
    last_page = min(bounds)
    if last_page < 1:
        raise NoPagesSelectedError(total_pages=total_pages)
    first_page = min(max(1, start), last_page)

    selection = PageSelection(
        first_page=first_page,
        last_page=last_page,
        include=tuple(parse_page_spec(pages_spec, total_pages)),
        exclude=tuple(parse_page_spec(exclude_spec, total_pages)),
    )
    if not selection.ordered_pages:
        raise NoPagesSelectedError(total_pages=total_pages)

    logger.info(
        "Pages selected",
        extra={
            "total_pages": total_pages,
            "first_page": first_page,
            "last_page": last_page,
            "pages": list(selection.ordered_pages),
        },
    )
    return selection
