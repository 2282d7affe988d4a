"""
History filter state and its translation into query parameters.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, Field, NonNegativeInt, field_validator, model_validator

from common.classes import ALL_CLASSES, ClassLabel

# Stand-ins for "no bound" on an enabled class. The service has no unbounded
# range, so a blank maximum is capped rather than omitted.
SENTINEL_MIN = 0
SENTINEL_MAX = 1000


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _blank_to_none(value: Any) -> Any:
    return None if _is_blank(value) else value


class DateRange(BaseModel):
    start: str | None = None
    end: str | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_blank(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat(timespec="minutes")
        return _blank_to_none(value)


class CountRange(BaseModel):
    min: NonNegativeInt | None = None
    max: NonNegativeInt | None = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def normalize_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ClassFilter(CountRange):
    enabled: bool = True


def _default_class_filters() -> dict[ClassLabel, ClassFilter]:
    return {label: ClassFilter() for label in ALL_CLASSES}


class FilterState(BaseModel):
    detection_id: str | None = None
    date_range: DateRange = Field(default_factory=DateRange)
    object_count: CountRange = Field(default_factory=CountRange)
    class_filters: dict[ClassLabel, ClassFilter] = Field(default_factory=_default_class_filters)

    @field_validator("detection_id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return _blank_to_none(value)

    @model_validator(mode="after")
    def fill_missing_classes(self) -> "FilterState":
        for label in ALL_CLASSES:
            self.class_filters.setdefault(label, ClassFilter())
        return self

    def merged(self, patch: Mapping[str, Any]) -> "FilterState":
        """Return a new state with patch deep-merged over this one."""
        data = self.model_dump()
        patch = dict(patch)
        if isinstance(patch.get("class_filters"), Mapping):
            patch["class_filters"] = {
                ClassLabel(label): value for label, value in patch["class_filters"].items()
            }
        return FilterState.model_validate(_deep_merge(data, patch))


def _deep_merge(base: dict, patch: Mapping) -> dict:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_filter_state() -> FilterState:
    """All classes enabled, no bounds, no date, id or count constraints."""
    return FilterState()


def build_query_params(filters: FilterState) -> dict[str, str]:
    params: dict[str, str] = {}
    passthrough = (
        ("detection_id", filters.detection_id),
        ("start_date", filters.date_range.start),
        ("end_date", filters.date_range.end),
        ("min_objects", filters.object_count.min),
        ("max_objects", filters.object_count.max),
    )
    for name, value in passthrough:
        if not _is_blank(value):
            params[name] = str(value)

    for label in ALL_CLASSES:
        class_filter = filters.class_filters.get(label) or ClassFilter()
        if class_filter.enabled:
            low = SENTINEL_MIN if _is_blank(class_filter.min) else class_filter.min
            high = SENTINEL_MAX if _is_blank(class_filter.max) else class_filter.max
        else:
            # A disabled class excludes every record that contains it.
            low = high = 0
        params[f"min_{label.api_key}"] = str(low)
        params[f"max_{label.api_key}"] = str(high)
    return params
