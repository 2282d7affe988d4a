"""
Persistence of the operator's detection settings in the local profile.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from common.classes import ALL_CLASSES, ClassLabel, ordered

logger = logging.getLogger(__name__)

SETTINGS_KEY = "detectionSettings"


class KeyValueStore(ABC):
    """Minimal string-keyed store holding JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """
    A single JSON document on disk acting as the local profile.
    Read and decode errors propagate; callers decide how to degrade.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Profile {self._path} is not a JSON object")
        return data

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        try:
            data = self._read()
        except (OSError, ValueError):
            # An unreadable profile is replaced rather than merged into.
            data = {}
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


@dataclass(frozen=True)
class DetectionSettings:
    selected_classes: frozenset[ClassLabel] = field(default_factory=lambda: frozenset(ALL_CLASSES))

    @property
    def all_selected(self) -> bool:
        return self.selected_classes == frozenset(ALL_CLASSES)

    def toggle(self, label: ClassLabel) -> "DetectionSettings":
        return DetectionSettings(self.selected_classes ^ {label})

    def toggle_all(self) -> "DetectionSettings":
        if self.all_selected:
            return DetectionSettings(frozenset())
        return DetectionSettings(frozenset(ALL_CLASSES))

    def to_dict(self) -> dict:
        return {"selectedClasses": [label.value for label in ordered(self.selected_classes)]}


class SettingsStore:
    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY):
        self._store = store
        self._key = key

    def load(self) -> DetectionSettings:
        """Restore saved settings; anything unusable falls back to all classes selected."""
        try:
            raw = self._store.get(self._key)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read detection settings, using defaults: %s", exc)
            return DetectionSettings()

        if raw is None:
            return DetectionSettings()
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                logger.warning("Stored detection settings are not valid JSON, using defaults")
                return DetectionSettings()

        selected = raw.get("selectedClasses") if isinstance(raw, dict) else None
        if not isinstance(selected, list):
            logger.warning("Stored detection settings have no class list, using defaults")
            return DetectionSettings()

        labels = {
            label
            for label in (ClassLabel.parse(item) for item in selected if isinstance(item, str))
            if label is not None
        }
        return DetectionSettings(frozenset(labels))

    def save(self, settings: DetectionSettings) -> None:
        try:
            self._store.set(self._key, settings.to_dict())
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save detection settings")
