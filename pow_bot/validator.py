"""Decide whether a mention event qualifies as a check-in."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum
from typing import Optional

from .clock import DEFAULT_TZ, Moment, day_index, local_date, to_local
from .models import AttendanceRecord, CheckInEvent, Mark

LINK_PATTERN = re.compile(r"https?://\S+")


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    NO_ACTIVE_CHALLENGE = "no_active_challenge"
    SUBMISSION_WINDOW_CLOSED = "submission_window_closed"
    MISSING_LINK = "missing_link"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    OUTSIDE_CHALLENGE_DAYS = "outside_challenge_days"
    ALREADY_CHECKED_IN = "already_checked_in"


MESSAGES = {
    Verdict.ACCEPTED: "인증 완료! 오늘도 수고하셨습니다.",
    Verdict.NO_ACTIVE_CHALLENGE: "이번 주 챌린지 메시지가 아직 없습니다. `/start-challenge`로 먼저 시작해주세요.",
    Verdict.SUBMISSION_WINDOW_CLOSED: "오늘의 인증 시간이 마감되었습니다.",
    Verdict.MISSING_LINK: "인증 링크가 없습니다. http(s)://로 시작하는 링크를 함께 보내주세요.",
    Verdict.UNKNOWN_PARTICIPANT: "이번 주 챌린지에 등록되지 않은 참가자입니다.",
    Verdict.OUTSIDE_CHALLENGE_DAYS: "오늘은 인증 대상 요일이 아닙니다.",
    Verdict.ALREADY_CHECKED_IN: "오늘은 이미 인증하셨습니다.",
}


@dataclass(slots=True, frozen=True)
class ValidationOutcome:
    verdict: Verdict
    message: str

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPTED

    @classmethod
    def of(cls, verdict: Verdict) -> "ValidationOutcome":
        return cls(verdict, MESSAGES[verdict])


ACCEPTED = ValidationOutcome.of(Verdict.ACCEPTED)


def extract_link(text: str) -> Optional[str]:
    match = LINK_PATTERN.search(text or "")
    return match.group(0) if match else None


def check_submission_window(
    event_ts: Moment, now: Moment, grace_hours: int = 1, tz: tzinfo = DEFAULT_TZ
) -> ValidationOutcome:
    """Reject events from an earlier day and anything during the grace closure."""

    if local_date(event_ts, tz) < local_date(now, tz):
        return ValidationOutcome.of(Verdict.SUBMISSION_WINDOW_CLOSED)
    if to_local(now, tz).hour < grace_hours:
        return ValidationOutcome.of(Verdict.SUBMISSION_WINDOW_CLOSED)
    return ACCEPTED


def check_link(text: str) -> ValidationOutcome:
    if extract_link(text) is None:
        return ValidationOutcome.of(Verdict.MISSING_LINK)
    return ACCEPTED


def check_participant(name: Optional[str], record: AttendanceRecord) -> ValidationOutcome:
    if not name or name not in record:
        return ValidationOutcome.of(Verdict.UNKNOWN_PARTICIPANT)
    return ACCEPTED


def check_day_slot(
    name: str, record: AttendanceRecord, now: Moment, tz: tzinfo = DEFAULT_TZ
) -> ValidationOutcome:
    marks = record[name]
    index = day_index(now, tz)
    if index >= len(marks) or marks[index] is Mark.NOT_REQUIRED:
        return ValidationOutcome.of(Verdict.OUTSIDE_CHALLENGE_DAYS)
    return ACCEPTED


def validate_mention(
    event: CheckInEvent,
    now: Moment,
    record: AttendanceRecord,
    display_name: Optional[str],
    grace_hours: int = 1,
    tz: tzinfo = DEFAULT_TZ,
) -> ValidationOutcome:
    """Run every check in order and return the first rejection."""

    for outcome in (
        check_submission_window(event.event_ts, now, grace_hours, tz),
        check_link(event.text),
        check_participant(display_name, record),
    ):
        if not outcome.accepted:
            return outcome
    return check_day_slot(display_name, record, now, tz)


__all__ = [
    "ACCEPTED",
    "LINK_PATTERN",
    "MESSAGES",
    "ValidationOutcome",
    "Verdict",
    "check_day_slot",
    "check_link",
    "check_participant",
    "check_submission_window",
    "extract_link",
    "validate_mention",
]
