"""Core orchestration logic for the weekly proof-of-work challenge."""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import httpx

from .clock import Moment, current_week_id, day_index, is_weekend
from .config import Settings
from .errors import InitializationFailed, MessageHandleStale, RosterError, StoreError
from .formatter import format_record
from .models import AttendanceRecord, CheckInEvent, Mark, UpdateStatus, WeekendPolicy
from .roster import RosterResolver
from .slack_client import SlackApiError, SlackClient
from .store import AttendanceStore
from .validator import (
    ValidationOutcome,
    Verdict,
    check_day_slot,
    check_link,
    check_participant,
    check_submission_window,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckInResult:
    week_id: int
    verdict: Verdict
    message: str
    name: Optional[str] = None
    reacted: bool = False

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPTED


@dataclass(slots=True)
class Scoreboard:
    week_id: int
    record: AttendanceRecord
    text: str


class WeekCache:
    """Write-through copy of recently used week records; the store stays authoritative."""

    def __init__(self) -> None:
        self._records: Dict[int, AttendanceRecord] = {}

    def get(self, week_id: int) -> Optional[AttendanceRecord]:
        record = self._records.get(week_id)
        return copy.deepcopy(record) if record is not None else None

    def put(self, week_id: int, record: AttendanceRecord) -> None:
        self._records[week_id] = copy.deepcopy(record)

    def evict(self, week_id: int) -> None:
        self._records.pop(week_id, None)

    def __contains__(self, week_id: int) -> bool:
        return week_id in self._records


def build_record(
    names: Iterable[str], week_length: int, weekend_policy: WeekendPolicy
) -> AttendanceRecord:
    template = [
        Mark.NOT_REQUIRED
        if weekend_policy is WeekendPolicy.NOT_REQUIRED_PRESEED and index >= 5
        else Mark.PENDING
        for index in range(week_length)
    ]
    return {name: list(template) for name in names}


class ChallengeController:
    """Owns the week lifecycle and keeps the summary message in sync with the store."""

    def __init__(
        self,
        settings: Settings,
        store: AttendanceStore,
        client: SlackClient,
        roster: RosterResolver,
    ) -> None:
        self.settings = settings
        self.store = store
        self.client = client
        self.roster = roster
        self.cache = WeekCache()
        self._locks: Dict[int, asyncio.Lock] = {}
        self._bot_user_id: Optional[str] = None

    @property
    def tz(self):
        return self.settings.tz

    def week_id(self, now: Moment) -> int:
        return current_week_id(now, self.tz)

    def _lock_for(self, week_id: int) -> asyncio.Lock:
        return self._locks.setdefault(week_id, asyncio.Lock())

    async def bot_identity(self) -> str:
        if self._bot_user_id is None:
            self._bot_user_id = await self.client.auth_test()
        return self._bot_user_id

    async def _fresh_record(self, week_id: int) -> Optional[AttendanceRecord]:
        record = await self.store.load_record(week_id)
        if record is None:
            self.cache.evict(week_id)
        else:
            self.cache.put(week_id, record)
        return record

    # region Week lifecycle
    async def initialize_week(
        self, channel: str, bot_user_id: Optional[str], now: Moment
    ) -> AttendanceRecord:
        """Create (or overwrite) the week's record from the current channel roster."""

        week_id = self.week_id(now)
        try:
            excluding = bot_user_id or await self.bot_identity()
            names = await self.roster.list_participants(channel, excluding=excluding)
        except (RosterError, SlackApiError, httpx.HTTPError) as exc:
            logger.error("Roster lookup failed for week %s: %s", week_id, exc)
            raise InitializationFailed(week_id, str(exc)) from exc

        if not names:
            logger.warning("Channel %s has no participants for week %s", channel, week_id)
        record = build_record(names, self.settings.week_length, self.settings.weekend_policy)

        async with self._lock_for(week_id):
            try:
                await self.store.save_record(week_id, record)
            except StoreError as exc:
                raise InitializationFailed(week_id, str(exc)) from exc
            self.cache.put(week_id, record)

        logger.info("Initialized week %s with %d participants", week_id, len(record))
        return record

    async def post_or_refresh_challenge(self, channel: str, now: Moment) -> str:
        """Post a fresh summary message for the week and remember its handle."""

        week_id = self.week_id(now)
        record = await self.store.load_record(week_id)
        if record is None:
            logger.info("No record for week %s; initializing before posting", week_id)
            await self.initialize_week(channel, None, now)
            record = self.cache.get(week_id)
            if record is None:
                raise InitializationFailed(week_id, "record missing after initialization")
        self.cache.put(week_id, record)

        text = format_record(record, now, self.tz)
        handle = await self.client.post_message(channel, text)
        await self.store.save_message_handle(week_id, handle)
        logger.info("Posted summary for week %s as %s", week_id, handle)
        return handle

    async def delete_week(self, now: Moment) -> int:
        week_id = self.week_id(now)
        async with self._lock_for(week_id):
            deleted = await self.store.delete_record(week_id)
            self.cache.evict(week_id)
        logger.info("Deleted week %s (%d record)", week_id, deleted)
        return deleted

    async def scoreboard(self, now: Moment) -> Optional[Scoreboard]:
        week_id = self.week_id(now)
        record = await self._fresh_record(week_id)
        if record is None:
            return None
        return Scoreboard(week_id, record, format_record(record, now, self.tz))

    # endregion

    # region Check-ins
    async def record_check_in(
        self, channel: str, event: CheckInEvent, now: Moment
    ) -> CheckInResult:
        week_id = self.week_id(now)

        def reject(outcome: ValidationOutcome, name: Optional[str] = None) -> CheckInResult:
            logger.info(
                "Rejected check-in from %s for week %s: %s",
                event.sender_id,
                week_id,
                outcome.verdict.value,
            )
            return CheckInResult(week_id, outcome.verdict, outcome.message, name)

        handle = await self.store.load_message_handle(week_id)
        if handle is None:
            if not self.settings.auto_create_on_missing_challenge:
                return reject(ValidationOutcome.of(Verdict.NO_ACTIVE_CHALLENGE))
            handle = await self.post_or_refresh_challenge(channel, now)

        for outcome in (
            check_submission_window(event.event_ts, now, self.settings.grace_hours, self.tz),
            check_link(event.text),
        ):
            if not outcome.accepted:
                return reject(outcome)

        record = await self._fresh_record(week_id)
        if record is None:
            return reject(ValidationOutcome.of(Verdict.NO_ACTIVE_CHALLENGE))

        name = await self.client.resolve_display_name(event.sender_id)
        outcome = check_participant(name, record)
        if not outcome.accepted:
            return reject(outcome, name)

        async with self._lock_for(week_id):
            record = await self.store.load_record(week_id)
            if record is None:
                return reject(ValidationOutcome.of(Verdict.NO_ACTIVE_CHALLENGE), name)
            handle = await self.store.load_message_handle(week_id) or handle
            for outcome in (
                check_participant(name, record),
                check_day_slot(name, record, now, self.tz),
            ):
                if not outcome.accepted:
                    return reject(outcome, name)

            index = day_index(now, self.tz)
            if record[name][index] is not Mark.PENDING:
                return reject(ValidationOutcome.of(Verdict.ALREADY_CHECKED_IN), name)
            record[name][index] = Mark.DONE_OPTIONAL if is_weekend(now, self.tz) else Mark.DONE

            text = format_record(record, now, self.tz)
            await self._refresh_summary(channel, week_id, handle, text)
            await self.store.save_record(week_id, record)
            self.cache.put(week_id, record)

        logger.info("Recorded check-in for %s on day %d of week %s", name, index, week_id)
        reacted = await self._acknowledge(channel, event)
        accepted = ValidationOutcome.of(Verdict.ACCEPTED)
        return CheckInResult(week_id, accepted.verdict, accepted.message, name, reacted)

    async def _refresh_summary(self, channel: str, week_id: int, handle: str, text: str) -> str:
        """Edit the summary in place, re-posting once if the handle went stale."""

        result = await self.client.update_message(channel, handle, text)
        if result.status is UpdateStatus.OK:
            return handle
        if result.status is not UpdateStatus.NOT_FOUND:
            raise SlackApiError("chat.update", result.detail or "unknown_error")

        logger.warning("Summary message %s for week %s is gone; re-posting", handle, week_id)
        new_handle = await self.client.post_message(channel, text)
        await self.store.save_message_handle(week_id, new_handle)
        retry = await self.client.update_message(channel, new_handle, text)
        if retry.status is not UpdateStatus.OK:
            raise MessageHandleStale(week_id, new_handle)
        return new_handle

    async def _acknowledge(self, channel: str, event: CheckInEvent) -> bool:
        try:
            await self.client.add_reaction(channel, event.event_ts, self.settings.ack_reaction)
        except (SlackApiError, httpx.HTTPError) as exc:
            logger.warning("Could not react to check-in %s: %s", event.event_ts, exc)
            return False
        return True

    # endregion


__all__ = [
    "ChallengeController",
    "CheckInResult",
    "Scoreboard",
    "WeekCache",
    "build_record",
]
