"""Cron triggers for the weekly rollover and the daily kickoff."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Settings
from .handlers import BotHandlers

logger = logging.getLogger(__name__)

CRON_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def build_scheduler(settings: Settings, handlers: BotHandlers) -> AsyncIOScheduler:
    """Register both triggers in the configured time zone without starting them."""

    scheduler = AsyncIOScheduler(timezone=settings.tz)
    scheduler.add_job(
        handlers.on_weekly_rollover_trigger,
        CronTrigger(
            day_of_week=CRON_WEEKDAYS[settings.rollover_weekday],
            hour=settings.rollover_time.hour,
            minute=settings.rollover_time.minute,
            timezone=settings.tz,
        ),
        id="weekly_rollover",
        replace_existing=True,
        coalesce=True,
    )
    # Working-day and rollover-day filtering happens in the handler.
    scheduler.add_job(
        handlers.on_daily_trigger,
        CronTrigger(
            hour=settings.daily_post_time.hour,
            minute=settings.daily_post_time.minute,
            timezone=settings.tz,
        ),
        id="daily_kickoff",
        replace_existing=True,
        coalesce=True,
    )
    logger.info(
        "Scheduled rollover on %s %s and daily kickoff at %s (%s)",
        CRON_WEEKDAYS[settings.rollover_weekday],
        settings.rollover_time.strftime("%H:%M"),
        settings.daily_post_time.strftime("%H:%M"),
        settings.timezone,
    )
    return scheduler


__all__ = ["CRON_WEEKDAYS", "build_scheduler"]
