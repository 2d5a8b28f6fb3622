"""Entry points invoked by Slack events, slash commands and scheduled triggers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Optional, TypeVar

from .clock import day_index, local_now, to_local
from .config import Settings
from .errors import InitializationFailed, StoreError
from .models import CheckInEvent
from .service import ChallengeController, CheckInResult
from .slack_client import SlackClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

INIT_FAILED_NOTICE = "챌린지 초기화에 실패했습니다. 잠시 후 다시 시도해주세요."
STORE_FAILED_NOTICE = "인증 기록을 저장소에서 처리하지 못했습니다. 잠시 후 다시 시도해주세요."
GENERIC_FAILURE_NOTICE = "처리 중 오류가 발생했습니다."
STARTED_NOTICE = "이번 주 인증 챌린지 메시지를 게시했습니다."
DELETED_NOTICE = "이번 주 인증 기록을 삭제했습니다."
NOTHING_TO_DELETE_NOTICE = "삭제할 이번 주 인증 기록이 없습니다."


def is_daily_post_day(now: datetime, settings: Settings) -> bool:
    """Daily kickoff runs on working days other than the rollover weekday."""

    index = day_index(now, settings.tz)
    return index < 5 and index != settings.rollover_weekday


class BotHandlers:
    """Runs one controller operation per inbound event and reports the outcome."""

    def __init__(
        self, settings: Settings, controller: ChallengeController, client: SlackClient
    ) -> None:
        self.settings = settings
        self.controller = controller
        self.client = client

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_local(now, self.settings.tz) if now else local_now(self.settings.tz)

    async def _notify(self, channel: str, text: str, thread_ts: Optional[str] = None) -> None:
        try:
            await self.client.post_message(channel, text, thread_ts=thread_ts)
        except Exception:
            logger.exception("Could not post notice to %s", channel)

    async def _guard(
        self,
        operation: str,
        now: datetime,
        channel: str,
        call: Awaitable[T],
        thread_ts: Optional[str] = None,
    ) -> Optional[T]:
        week_id = self.controller.week_id(now)
        try:
            return await call
        except InitializationFailed as exc:
            logger.error("%s failed for week %s: %s", operation, week_id, exc)
            await self._notify(channel, INIT_FAILED_NOTICE, thread_ts)
        except StoreError as exc:
            logger.error("%s failed for week %s: %s", operation, week_id, exc)
            await self._notify(channel, STORE_FAILED_NOTICE, thread_ts)
        except Exception:
            logger.exception("%s failed unexpectedly for week %s", operation, week_id)
            await self._notify(channel, GENERIC_FAILURE_NOTICE, thread_ts)
        return None

    async def on_mention(
        self, event: CheckInEvent, now: Optional[datetime] = None
    ) -> Optional[CheckInResult]:
        if event.channel_id != self.settings.channel_id:
            logger.debug("Ignoring mention from channel %s", event.channel_id)
            return None
        now = self._now(now)
        result = await self._guard(
            "record_check_in",
            now,
            event.channel_id,
            self.controller.record_check_in(event.channel_id, event, now),
            thread_ts=event.event_ts,
        )
        if result is not None and not result.accepted:
            await self._notify(event.channel_id, result.message, thread_ts=event.event_ts)
        return result

    async def on_start_command(self, channel: str, now: Optional[datetime] = None) -> Optional[str]:
        now = self._now(now)
        handle = await self._guard(
            "post_or_refresh_challenge",
            now,
            channel,
            self.controller.post_or_refresh_challenge(channel, now),
        )
        if handle is not None:
            await self._notify(channel, STARTED_NOTICE, thread_ts=handle)
        return handle

    async def on_delete_command(self, channel: str, now: Optional[datetime] = None) -> Optional[int]:
        now = self._now(now)
        deleted = await self._guard(
            "delete_week", now, channel, self.controller.delete_week(now)
        )
        if deleted is not None:
            await self._notify(channel, DELETED_NOTICE if deleted else NOTHING_TO_DELETE_NOTICE)
        return deleted

    async def on_weekly_rollover_trigger(self, now: Optional[datetime] = None) -> Any:
        """Prepare the week that starts on the next calendar day."""

        target = self._now(now) + timedelta(days=1)
        channel = self.settings.channel_id
        return await self._guard(
            "initialize_week",
            target,
            channel,
            self.controller.initialize_week(channel, None, target),
        )

    async def on_daily_trigger(self, now: Optional[datetime] = None) -> Optional[str]:
        now = self._now(now)
        if not is_daily_post_day(now, self.settings):
            logger.info("Skipping daily kickoff on %s", now.date().isoformat())
            return None
        channel = self.settings.channel_id
        return await self._guard(
            "post_or_refresh_challenge",
            now,
            channel,
            self.controller.post_or_refresh_challenge(channel, now),
        )


__all__ = ["BotHandlers", "is_daily_post_day"]
