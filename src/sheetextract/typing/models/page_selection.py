"""Page rendering and selection models."""

from __future__ import annotations

import base64

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RenderedPage(BaseModel):
    """Rasterized page sent to the vision model."""

    model_config = ConfigDict(extra="forbid")

    page_number: int = Field(ge=1)
    mime_type: str
    data: bytes
    width: int = Field(ge=0)
    height: int = Field(ge=0)

    @property
    def data_url(self) -> str:
        """Return the page image as a `data:` URI."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class PageSelection(BaseModel):
    """Resolved page selection for one request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    first_page: int
    last_page: int
    include: tuple[int, ...] = ()
    exclude: tuple[int, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ordered_pages(self) -> tuple[int, ...]:
        """Pages to render, strictly increasing."""
        excluded = set(self.exclude)
        if self.include:
            candidates = {page for page in self.include if self.first_page <= page <= self.last_page}
        else:
            candidates = set(range(self.first_page, self.last_page + 1))
        return tuple(sorted(candidates - excluded))
