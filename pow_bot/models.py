"""Dataclasses and enums representing the attendance domain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class Mark(str, Enum):
    """Per-day attendance state for one participant."""

    PENDING = "pending"
    DONE = "done"
    DONE_OPTIONAL = "done_optional"
    NOT_REQUIRED = "not_required"


class WeekendPolicy(str, Enum):
    NOT_REQUIRED_PRESEED = "not_required_preseed"
    PENDING_WITH_OPTIONAL_MARK = "pending_with_optional_mark"


class UpdateStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ERROR = "error"


AttendanceRecord = Dict[str, List[Mark]]


@dataclass(slots=True, frozen=True)
class UpdateResult:
    """Tagged outcome of editing a message in place."""

    status: UpdateStatus
    detail: Optional[str] = None

    @classmethod
    def ok(cls) -> "UpdateResult":
        return cls(UpdateStatus.OK)

    @classmethod
    def not_found(cls, detail: Optional[str] = None) -> "UpdateResult":
        return cls(UpdateStatus.NOT_FOUND, detail)

    @classmethod
    def error(cls, detail: str) -> "UpdateResult":
        return cls(UpdateStatus.ERROR, detail)


@dataclass(slots=True, frozen=True)
class CheckInEvent:
    sender_id: str
    text: str
    event_ts: str
    channel_id: str


__all__ = [
    "AttendanceRecord",
    "CheckInEvent",
    "Mark",
    "UpdateResult",
    "UpdateStatus",
    "WeekendPolicy",
]
