"""Single-image detection session package."""

from .exceptions import (
    InvalidTransitionError,
    NoFileSelectedError,
    SessionBusyError,
    SessionError,
)
from .session import DetectionSession
from .types import SessionStatus

__all__ = [
    "DetectionSession",
    "InvalidTransitionError",
    "NoFileSelectedError",
    "SessionBusyError",
    "SessionError",
    "SessionStatus",
]
