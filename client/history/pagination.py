"""Page window for the history table's pagination control."""
from __future__ import annotations

import math
from enum import Enum
from typing import Union

MAX_FULL_PAGES = 7
EDGE_PAGES = 5


class PageGap(str, Enum):
    """Ellipsis marker. Left and right differ only so renderers get stable keys."""

    LEFT = "ellipsis-left"
    RIGHT = "ellipsis-right"


PageToken = Union[int, PageGap]


def page_count(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(total_items / page_size))


def pagination_window(total_pages: int, current_page: int) -> list[PageToken]:
    if total_pages < 0:
        raise ValueError("total_pages must not be negative")
    if current_page < 1:
        raise ValueError("current_page must be at least 1")

    total_pages = max(total_pages, 1)
    if total_pages <= MAX_FULL_PAGES:
        return list(range(1, total_pages + 1))
    if current_page <= 4:
        return [*range(1, EDGE_PAGES + 1), PageGap.RIGHT, total_pages]
    if current_page >= total_pages - 3:
        return [1, PageGap.LEFT, *range(total_pages - EDGE_PAGES + 1, total_pages + 1)]
    return [
        1,
        PageGap.LEFT,
        current_page - 1,
        current_page,
        current_page + 1,
        PageGap.RIGHT,
        total_pages,
    ]
