"""Detection history browsing package."""

from .controller import HistoryController
from .filters import (
    SENTINEL_MAX,
    SENTINEL_MIN,
    ClassFilter,
    CountRange,
    DateRange,
    FilterState,
    build_query_params,
    default_filter_state,
)
from .pagination import PageGap, PageToken, page_count, pagination_window

__all__ = [
    "SENTINEL_MAX",
    "SENTINEL_MIN",
    "ClassFilter",
    "CountRange",
    "DateRange",
    "FilterState",
    "HistoryController",
    "PageGap",
    "PageToken",
    "build_query_params",
    "default_filter_state",
    "page_count",
    "pagination_window",
]
