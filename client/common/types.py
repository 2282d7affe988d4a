"""
Pydantic models for the detection service's request/response payloads.
"""
from __future__ import annotations

import mimetypes
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field


def count_classes(classes: list[str]) -> dict[str, int]:
    """Count detected objects per class, keyed in first-seen order."""
    return dict(Counter(classes))


def unique_classes(classes: list[str]) -> list[str]:
    return list(dict.fromkeys(classes))


ACCEPTED_CONTENT_TYPES = ("image/jpeg", "image/png")


@dataclass(frozen=True)
class ImageFile:
    """Image bytes selected by the operator for detection."""

    name: str
    content: bytes
    content_type: str = "image/jpeg"

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        if content_type not in ACCEPTED_CONTENT_TYPES:
            raise ValueError(f"Unsupported image type for '{path.name}': expected JPEG or PNG")
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)


class UploadResponse(BaseModel):
    image_key: str = Field(..., min_length=1)


class DetectRequest(BaseModel):
    image_key: str
    classes: list[str]


class DetectResponse(BaseModel):
    detection_id: int | str
    object_count: int = 0
    object_classes: list[str] = Field(default_factory=list)
    processed_image_key: str = Field(..., min_length=1)


class DetectionRecord(BaseModel):
    """
    One row of detection history.
    Created by the backend; the client only reads it.
    """
    id: int | str
    detection_time: str | None = None
    input_image_key: str
    output_image_key: str
    object_count: int = 0
    object_classes: list[str] = Field(default_factory=list)   # one entry per object
    settings_classes: list[str] = Field(default_factory=list)  # classes enabled for the run

    def class_counts(self) -> dict[str, int]:
        return count_classes(self.object_classes)


class DetectionsResponse(BaseModel):
    detections: list[DetectionRecord] | None = None


class DetectionResult(BaseModel):
    """A finished detection together with the URLs of both images."""
    detection_id: int | str
    object_count: int
    object_classes: list[str]
    image_key: str
    processed_image_key: str
    original_image_url: str
    processed_image_url: str

    def class_counts(self) -> dict[str, int]:
        return count_classes(self.object_classes)

    def detected_classes(self) -> list[str]:
        return unique_classes(self.object_classes)
