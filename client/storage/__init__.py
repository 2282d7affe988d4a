"""Local profile persistence and stored image helpers."""

from .images import ImageExportError, filename_from_url, image_url, save_image
from .settings_store import (
    DetectionSettings,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    SettingsStore,
)

__all__ = [
    "DetectionSettings",
    "ImageExportError",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "SettingsStore",
    "filename_from_url",
    "image_url",
    "save_image",
]
