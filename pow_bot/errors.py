"""Exception types raised by the proof-of-work bot."""

from __future__ import annotations

from typing import Optional


class PowBotError(RuntimeError):
    """Base class for errors surfaced by bot operations."""


class StoreError(PowBotError):
    """Raised when the attendance store cannot be read or written."""


class RosterError(PowBotError):
    """Raised when channel membership or a member profile cannot be resolved."""


class InitializationFailed(PowBotError):
    """Raised when a week's record could not be created."""

    def __init__(self, week_id: int, reason: str) -> None:
        super().__init__(f"Could not initialize week {week_id}: {reason}")
        self.week_id = week_id
        self.reason = reason


class MessageHandleStale(PowBotError):
    """Raised when the summary message could not be updated even after re-posting."""

    def __init__(self, week_id: int, handle: Optional[str]) -> None:
        super().__init__(f"Summary message {handle} for week {week_id} could not be updated")
        self.week_id = week_id
        self.handle = handle


__all__ = [
    "InitializationFailed",
    "MessageHandleStale",
    "PowBotError",
    "RosterError",
    "StoreError",
]
