"""Filterable, paginated detection history."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from api.exceptions import ApiError
from common.classes import ClassLabel
from common.settings import ClientConfig, client_config
from common.types import DetectionRecord
from history.filters import FilterState, build_query_params, default_filter_state
from history.pagination import PageToken, page_count, pagination_window
from storage.images import image_url, save_image

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to load detection history"


class HistoryController:
    """
    Owns the draft and applied filters and the dataset fetched for the applied one.

    Fetches are never cancelled. By default the response that arrives last is
    the one displayed, even when it answers an older request. With
    discard_stale=True only the most recently issued fetch may update state.
    """

    def __init__(
        self,
        client,
        config: ClientConfig | None = None,
        page_size: int | None = None,
        discard_stale: bool = False,
    ):
        self._client = client
        self._config = config or client_config
        self._page_size = page_size or self._config.page_size
        self._discard_stale = discard_stale
        self._issued = 0
        self._in_flight = 0
        self.draft: FilterState = default_filter_state()
        self.applied: FilterState = self.draft.model_copy(deep=True)
        self.records: list[DetectionRecord] = []
        self.current_page = 1
        self.error: str | None = None

    # ---------- Draft editing ----------

    def edit_draft(self, patch: Mapping[str, Any]):
        self.draft = self.draft.merged(patch)

    def toggle_class_filter(self, label: ClassLabel):
        enabled = self.draft.class_filters[label].enabled
        self.edit_draft({"class_filters": {label: {"enabled": not enabled}}})

    def set_class_range(self, label: ClassLabel, min_count: int | None, max_count: int | None):
        self.edit_draft({"class_filters": {label: {"min": min_count, "max": max_count}}})

    # ---------- Fetching ----------

    async def apply_draft(self) -> bool:
        self.applied = self.draft.model_copy(deep=True)
        return await self._fetch(self.applied)

    async def reset_filters(self) -> bool:
        self.draft = default_filter_state()
        self.applied = default_filter_state()
        return await self._fetch(self.applied)

    async def refresh(self) -> bool:
        return await self._fetch(self.applied)

    def _is_stale(self, sequence: int) -> bool:
        return self._discard_stale and sequence != self._issued

    async def _fetch(self, filters: FilterState) -> bool:
        """Fetch records for filters. Returns True if the dataset was replaced."""
        self._issued += 1
        sequence = self._issued
        params = build_query_params(filters)
        self._in_flight += 1
        self.error = None
        try:
            records = await self._client.fetch_detections(params)
        except ApiError:
            if self._is_stale(sequence):
                logger.warning("Ignoring failure of superseded history fetch #%d", sequence)
                return False
            logger.exception("History fetch #%d failed", sequence)
            self.error = FETCH_ERROR_MESSAGE
            return False
        finally:
            self._in_flight -= 1

        if self._is_stale(sequence):
            logger.warning(
                "Discarding history fetch #%d; fetch #%d is newer", sequence, self._issued
            )
            return False

        self.records = list(records)
        self.current_page = 1
        self.error = None
        logger.info("Loaded %d detection record(s) (fetch #%d)", len(self.records), sequence)
        return True

    # ---------- Pagination ----------

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def total_pages(self) -> int:
        return page_count(len(self.records), self._page_size)

    def set_page(self, page: int) -> int:
        self.current_page = min(max(page, 1), self.total_pages)
        return self.current_page

    def next_page(self) -> int:
        return self.set_page(self.current_page + 1)

    def previous_page(self) -> int:
        return self.set_page(self.current_page - 1)

    @property
    def page_records(self) -> list[DetectionRecord]:
        start = (self.current_page - 1) * self._page_size
        return self.records[start:start + self._page_size]

    @property
    def visible_records(self) -> list[DetectionRecord]:
        """Rows to render: nothing while an error is shown, the current page otherwise."""
        if self.error:
            return []
        return self.page_records

    @property
    def page_tokens(self) -> list[PageToken]:
        return pagination_window(self.total_pages, self.current_page)

    # ---------- Images ----------

    def image_urls(self, record: DetectionRecord) -> tuple[str, str]:
        return (
            image_url(record.input_image_key, self._config),
            image_url(record.output_image_key, self._config),
        )

    async def export_image(self, url: str, directory: str | Path) -> Path:
        return await save_image(self._client, url, directory)
