"""Vessel classes recognised by the detector."""
from __future__ import annotations

from enum import Enum

FALLBACK_COLOR = "#999999"


class ClassLabel(str, Enum):
    """A vessel category. The value is the name the backend uses on the wire."""

    CONTAINER_SHIP = "контейнеровоз"
    LINER = "лайнер"
    WARSHIP = "военный корабль"
    FISHING_BOAT = "рыбацкая лодка"
    BULK_CARRIER = "балкер"
    SAILBOAT = "парусное судно"
    YACHT = "яхта"

    @property
    def api_key(self) -> str:
        """Suffix used in history query parameter names."""
        return _API_KEYS[self]

    @property
    def color(self) -> str:
        return _COLORS[self]

    @classmethod
    def parse(cls, value: str) -> "ClassLabel | None":
        """Return the label for a wire name, or None if it is not known."""
        try:
            return cls(value)
        except ValueError:
            return None


_API_KEYS = {
    ClassLabel.CONTAINER_SHIP: "container_ship",
    ClassLabel.LINER: "liner",
    ClassLabel.WARSHIP: "warship",
    ClassLabel.FISHING_BOAT: "fishing_boat",
    ClassLabel.BULK_CARRIER: "bulk_carrier",
    ClassLabel.SAILBOAT: "sailboat",
    # The backend's query key for yachts predates the label rename.
    ClassLabel.YACHT: "canoe",
}

_COLORS = {
    ClassLabel.CONTAINER_SHIP: "#0000ff",
    ClassLabel.LINER: "#ff00ff",
    ClassLabel.WARSHIP: "#ffa500",
    ClassLabel.FISHING_BOAT: "#ffff00",
    ClassLabel.BULK_CARRIER: "#ff0000",
    ClassLabel.SAILBOAT: "#00ffff",
    ClassLabel.YACHT: "#00cc44",
}

ALL_CLASSES: tuple[ClassLabel, ...] = tuple(ClassLabel)


def class_color(name: str) -> str:
    """Display colour for a class name as returned by the backend."""
    label = ClassLabel.parse(name)
    return label.color if label else FALLBACK_COLOR


def ordered(labels) -> list[ClassLabel]:
    """Sort labels into catalogue order."""
    selected = set(labels)
    return [label for label in ALL_CLASSES if label in selected]
