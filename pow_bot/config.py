"""Configuration helpers for the proof-of-work bot."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .models import WeekendPolicy

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    slack_bot_token: str
    channel_id: str
    database_path: Path
    api_key: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    timezone: str = "Asia/Seoul"
    week_length: int = 5
    weekend_policy: WeekendPolicy = WeekendPolicy.PENDING_WITH_OPTIONAL_MARK
    auto_create_on_missing_challenge: bool = False
    grace_hours: int = 1
    daily_post_time: time = time(9, 0)
    rollover_weekday: int = 6
    rollover_time: time = time(23, 0)
    ack_reaction: str = "white_check_mark"
    scheduler_enabled: bool = True

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


def _parse_time(name: str, value: Optional[str], default: time) -> time:
    if not value:
        return default
    try:
        hour, minute = map(int, value.split(":"))
        return time(hour, minute)
    except ValueError as exc:
        raise RuntimeError(f"{name} must use HH:MM format, got {value!r}") from exc


def _parse_int(name: str, value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {value!r}") from exc


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "pow_bot.db")).expanduser()

    slack_token = os.getenv("SLACK_BOT_TOKEN")
    channel_id = os.getenv("CHANNEL_ID")

    if not slack_token:
        raise RuntimeError("SLACK_BOT_TOKEN must be configured")
    if not channel_id:
        raise RuntimeError("CHANNEL_ID must be configured")

    timezone_name = os.getenv("TIMEZONE", "Asia/Seoul")
    try:
        ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise RuntimeError(f"Unknown TIMEZONE {timezone_name!r}") from exc

    week_length = _parse_int("WEEK_LENGTH", os.getenv("WEEK_LENGTH"), 5)
    if week_length not in (5, 7):
        raise RuntimeError("WEEK_LENGTH must be 5 or 7")

    policy_value = os.getenv("WEEKEND_POLICY", WeekendPolicy.PENDING_WITH_OPTIONAL_MARK.value)
    try:
        weekend_policy = WeekendPolicy(policy_value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in WeekendPolicy)
        raise RuntimeError(f"WEEKEND_POLICY must be one of: {choices}") from exc

    grace_hours = _parse_int("GRACE_HOURS", os.getenv("GRACE_HOURS"), 1)
    if not 0 <= grace_hours < 24:
        raise RuntimeError("GRACE_HOURS must be between 0 and 23")

    rollover_weekday = _parse_int("ROLLOVER_WEEKDAY", os.getenv("ROLLOVER_WEEKDAY"), 6)
    if not 0 <= rollover_weekday <= 6:
        raise RuntimeError("ROLLOVER_WEEKDAY must be between 0 (Monday) and 6 (Sunday)")

    return Settings(
        slack_bot_token=slack_token,
        channel_id=channel_id,
        database_path=db_path,
        api_key=os.getenv("API_KEY") or None,
        slack_signing_secret=os.getenv("SLACK_SIGNING_SECRET") or None,
        timezone=timezone_name,
        week_length=week_length,
        weekend_policy=weekend_policy,
        auto_create_on_missing_challenge=_parse_bool(
            os.getenv("AUTO_CREATE_ON_MISSING_CHALLENGE"), False
        ),
        grace_hours=grace_hours,
        daily_post_time=_parse_time(
            "DAILY_POST_TIME", os.getenv("DAILY_POST_TIME"), time(9, 0)
        ),
        rollover_weekday=rollover_weekday,
        rollover_time=_parse_time("ROLLOVER_TIME", os.getenv("ROLLOVER_TIME"), time(23, 0)),
        ack_reaction=os.getenv("ACK_REACTION", "white_check_mark"),
        scheduler_enabled=_parse_bool(os.getenv("SCHEDULER_ENABLED"), True),
    )


__all__ = ["Settings", "load_settings"]
