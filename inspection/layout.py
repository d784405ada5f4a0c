from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# A4 in points, measured from the top edge of the page.
PAGE_HEIGHT = 841.89
LEFT_MARGIN = 40.0
CONTENT_WIDTH = 520.0
TOP_MARGIN = 60.0
PAGE_BOTTOM = 760.0


@dataclass(frozen=True)
class Placement:
    page: int
    y: float
    page_break: bool = False


class PageCursor:
    """Vertical layout position, independent of the drawing backend.

    ``place`` checks before it places: a block that would cross ``bottom``
    is moved to the top of a fresh page, so no block is ever split.
    """

    def __init__(self, top: float = TOP_MARGIN, bottom: float = PAGE_BOTTOM, y: Optional[float] = None, page: int = 1):
        if bottom <= top:
            raise ValueError("bottom must be below top")
        self.top = top
        self.bottom = bottom
        self.y = top if y is None else y
        self.page = page

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    @property
    def at_top(self) -> bool:
        return self.y <= self.top

    def advance(self, dy: float) -> None:
        self.y += dy

    def break_page(self) -> None:
        self.page += 1
        self.y = self.top

    def place(self, height: float, margin: float = 0.0) -> Placement:
        page_break = False
        # Oversize blocks on an empty page are placed anyway.
        if self.y + height > self.bottom and not self.at_top:
            self.break_page()
            page_break = True
        placement = Placement(page=self.page, y=self.y, page_break=page_break)
        self.y += height + margin
        return placement
