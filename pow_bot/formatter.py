"""Render a week's attendance record as scoreboard text."""

from __future__ import annotations

from datetime import tzinfo
from typing import Dict, List

from .clock import DEFAULT_TZ, Moment, month_and_ordinal_week, weekday_name
from .models import AttendanceRecord, Mark

MARK_SYMBOLS: Dict[Mark, str] = {
    Mark.PENDING: "❌",
    Mark.DONE: "✅",
    Mark.DONE_OPTIONAL: "⭐",
    Mark.NOT_REQUIRED: "➖",
}


def render_marks(marks: List[Mark]) -> str:
    return "".join(MARK_SYMBOLS[mark] for mark in marks)


def format_header(now: Moment, tz: tzinfo = DEFAULT_TZ) -> str:
    month, week_of_month = month_and_ordinal_week(now, tz)
    return f"{month}월 {week_of_month}주차 [{weekday_name(now, tz)}] 인증 기록"


def format_record(record: AttendanceRecord, now: Moment, tz: tzinfo = DEFAULT_TZ) -> str:
    """Return the scoreboard text for ``record`` as of ``now``.

    Participants keep the record's insertion order and every line, the
    header included, ends with a newline.
    """

    lines = [format_header(now, tz)]
    lines.extend(f"{name} : {render_marks(marks)}" for name, marks in record.items())
    return "".join(f"{line}\n" for line in lines)


__all__ = ["MARK_SYMBOLS", "format_header", "format_record", "render_marks"]
