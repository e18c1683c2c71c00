from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Worker roles used for authorization checks."""

    ADMIN = "admin"
    FIELD_WORKER = "field-worker"


class ShiftStatus(str, Enum):
    """Lifecycle state of a shift session as seen by callers."""

    OPEN = "OPEN"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"
