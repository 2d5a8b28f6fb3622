"""Week identity helpers evaluated in a fixed reference time zone."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Tuple, Union
from zoneinfo import ZoneInfo

DEFAULT_TZ = ZoneInfo("Asia/Seoul")

WEEKDAY_NAMES = ("월요일", "화요일", "수요일", "목요일", "금요일", "토요일", "일요일")

Moment = Union[datetime, float, str]


def to_local(moment: Moment, tz: tzinfo = DEFAULT_TZ) -> datetime:
    """Return ``moment`` as an aware datetime in ``tz``.

    Slack ``ts`` strings and epoch floats are treated as UTC instants; naive
    datetimes are assumed to already be local wall-clock time.
    """

    if isinstance(moment, (str, float, int)):
        return datetime.fromtimestamp(float(moment), tz=timezone.utc).astimezone(tz)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def local_now(tz: tzinfo = DEFAULT_TZ) -> datetime:
    return datetime.now(tz)


def current_week_id(now: Moment, tz: tzinfo = DEFAULT_TZ) -> int:
    """Return ``iso_year * 100 + iso_week`` for the local week containing ``now``."""

    iso = to_local(now, tz).isocalendar()
    return iso[0] * 100 + iso[1]


def day_index(now: Moment, tz: tzinfo = DEFAULT_TZ) -> int:
    return to_local(now, tz).weekday()


def is_weekend(now: Moment, tz: tzinfo = DEFAULT_TZ) -> bool:
    return day_index(now, tz) >= 5


def local_date(now: Moment, tz: tzinfo = DEFAULT_TZ) -> date:
    return to_local(now, tz).date()


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def month_and_ordinal_week(now: Moment, tz: tzinfo = DEFAULT_TZ) -> Tuple[int, int]:
    """Return ``(month, week_of_month)``; the week containing the 1st is week 1."""

    today = local_date(now, tz)
    first = today.replace(day=1)
    weeks = (_week_start(today) - _week_start(first)).days // 7
    return today.month, weeks + 1


def weekday_name(now: Moment, tz: tzinfo = DEFAULT_TZ) -> str:
    return WEEKDAY_NAMES[day_index(now, tz)]


__all__ = [
    "DEFAULT_TZ",
    "WEEKDAY_NAMES",
    "current_week_id",
    "day_index",
    "is_weekend",
    "local_date",
    "local_now",
    "month_and_ordinal_week",
    "to_local",
    "weekday_name",
]
