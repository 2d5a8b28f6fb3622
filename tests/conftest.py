from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import pytest

from pow_bot.config import Settings
from pow_bot.db import Database
from pow_bot.handlers import BotHandlers
from pow_bot.models import AttendanceRecord, UpdateResult
from pow_bot.roster import RosterResolver
from pow_bot.service import ChallengeController
from pow_bot.slack_client import SlackApiError, display_name_of
from pow_bot.store import AttendanceStore

SEOUL = ZoneInfo("Asia/Seoul")
CHANNEL = "C123"
BOT_ID = "UBOT"
SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"


def seoul(*args: int) -> datetime:
    return datetime(*args, tzinfo=SEOUL)


def ts_of(moment: datetime) -> str:
    return f"{moment.timestamp():.6f}"


class FakeSlack:
    """In-memory stand-in for SlackClient that records every outbound call."""

    def __init__(self, users: Dict[str, str]) -> None:
        self.users: Dict[str, Dict[str, Any]] = {
            user_id: {"id": user_id, "name": name.lower(), "profile": {"display_name": name}}
            for user_id, name in users.items()
        }
        self.users[BOT_ID] = {"id": BOT_ID, "name": "powbot", "is_bot": True, "profile": {}}
        self.members: List[str] = [BOT_ID, *users]
        self.posts: List[Tuple[str, str, Optional[str]]] = []
        self.updates: List[Tuple[str, str, str]] = []
        self.reactions: List[Tuple[str, str, str]] = []
        self.live: set[str] = set()
        self.queued_updates: List[UpdateResult] = []
        self.members_error: Optional[str] = None
        self.reaction_error: Optional[str] = None
        self._counter = 0

    async def auth_test(self) -> str:
        return BOT_ID

    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None) -> str:
        self._counter += 1
        ts = f"1760000000.{self._counter:06d}"
        self.posts.append((channel, text, thread_ts))
        self.live.add(ts)
        return ts

    async def update_message(self, channel: str, ts: str, text: str) -> UpdateResult:
        self.updates.append((channel, ts, text))
        if self.queued_updates:
            return self.queued_updates.pop(0)
        if ts not in self.live:
            return UpdateResult.not_found("message_not_found")
        return UpdateResult.ok()

    async def add_reaction(self, channel: str, ts: str, name: str) -> None:
        if self.reaction_error:
            raise SlackApiError("reactions.add", self.reaction_error)
        self.reactions.append((channel, ts, name))

    async def list_channel_members(self, channel: str) -> List[str]:
        if self.members_error:
            raise SlackApiError("conversations.members", self.members_error)
        return list(self.members)

    async def fetch_user(self, user_id: str) -> Dict[str, Any]:
        return self.users[user_id]

    async def resolve_display_name(self, user_id: str) -> str:
        return display_name_of(self.users[user_id])

    def summary_posts(self) -> List[Tuple[str, str, Optional[str]]]:
        return [post for post in self.posts if post[2] is None and "인증 기록" in post[1]]


class CountingStore(AttendanceStore):
    def __init__(self, database: Database) -> None:
        super().__init__(database)
        self.record_saves = 0
        self.handle_saves = 0

    async def save_record(self, week_id: int, record: AttendanceRecord) -> None:
        self.record_saves += 1
        await super().save_record(week_id, record)

    async def save_message_handle(self, week_id: int, handle: str) -> None:
        self.handle_saves += 1
        await super().save_message_handle(week_id, handle)


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "slack_bot_token": "xoxb-test",
        "channel_id": CHANNEL,
        "database_path": tmp_path / "pow.db",
        "api_key": "secret",
        "slack_signing_secret": SIGNING_SECRET,
        "scheduler_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def make_controller(
    settings: Settings, slack: FakeSlack
) -> Tuple[ChallengeController, CountingStore]:
    store = CountingStore(Database(settings.database_path))
    controller = ChallengeController(settings, store, slack, RosterResolver(slack))  # type: ignore[arg-type]
    return controller, store


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def slack() -> FakeSlack:
    return FakeSlack({"UALICE": "Alice", "UBOB": "Bob"})


@pytest.fixture
def controller_and_store(
    settings: Settings, slack: FakeSlack
) -> Tuple[ChallengeController, CountingStore]:
    return make_controller(settings, slack)


@pytest.fixture
def handlers(
    settings: Settings,
    slack: FakeSlack,
    controller_and_store: Tuple[ChallengeController, CountingStore],
) -> BotHandlers:
    controller, _ = controller_and_store
    return BotHandlers(settings, controller, slack)  # type: ignore[arg-type]
