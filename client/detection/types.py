"""Session states and the allowed transitions between them."""
from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    UPLOADING = "uploading"
    DETECTING = "detecting"
    READY = "ready"
    FAILED = "failed"


IN_FLIGHT = frozenset({SessionStatus.UPLOADING, SessionStatus.DETECTING})

# IDLE is reachable from every state through reset().
TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.FILE_SELECTED}),
    SessionStatus.FILE_SELECTED: frozenset({SessionStatus.FILE_SELECTED, SessionStatus.UPLOADING}),
    SessionStatus.UPLOADING: frozenset({SessionStatus.DETECTING, SessionStatus.FAILED}),
    SessionStatus.DETECTING: frozenset({SessionStatus.READY, SessionStatus.FAILED}),
    SessionStatus.READY: frozenset({SessionStatus.FILE_SELECTED}),
    SessionStatus.FAILED: frozenset({SessionStatus.FILE_SELECTED, SessionStatus.UPLOADING}),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target is SessionStatus.IDLE or target in TRANSITIONS[current]
