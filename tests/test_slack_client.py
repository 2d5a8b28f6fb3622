from __future__ import annotations

import asyncio
from typing import Callable, Dict, List
from urllib.parse import parse_qs

import httpx
import pytest

from pow_bot.errors import RosterError
from pow_bot.models import UpdateStatus
from pow_bot.roster import RosterResolver
from pow_bot.slack_client import SlackApiError, SlackClient, display_name_of


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> SlackClient:
    return SlackClient("xoxb-test", transport=httpx.MockTransport(handler))


def _form(request: httpx.Request) -> Dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def test_post_message_sends_thread_and_returns_ts() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "ts": "1760000000.000200"})

    ts = asyncio.run(_client(handler).post_message("C1", "hello", thread_ts="1.2"))
    assert ts == "1760000000.000200"
    assert seen[0].url.path == "/api/chat.postMessage"
    assert seen[0].headers["Authorization"] == "Bearer xoxb-test"
    assert _form(seen[0]) == {"channel": "C1", "text": "hello", "thread_ts": "1.2"}


@pytest.mark.parametrize(
    ("body", "status"),
    [
        ({"ok": True}, UpdateStatus.OK),
        ({"ok": False, "error": "message_not_found"}, UpdateStatus.NOT_FOUND),
        ({"ok": False, "error": "cant_update_message"}, UpdateStatus.ERROR),
    ],
)
def test_update_message_returns_tagged_result(body: dict, status: UpdateStatus) -> None:
    result = asyncio.run(
        _client(lambda request: httpx.Response(200, json=body)).update_message("C1", "1.2", "text")
    )
    assert result.status is status
    if status is UpdateStatus.ERROR:
        assert result.detail == "cant_update_message"


def test_update_message_maps_transport_failures_to_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    result = asyncio.run(_client(handler).update_message("C1", "1.2", "text"))
    assert result.status is UpdateStatus.ERROR


def test_already_reacted_is_not_an_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={"ok": False, "error": "already_reacted"}))
    asyncio.run(client.add_reaction("C1", "1.2", "white_check_mark"))

    failing = _client(lambda request: httpx.Response(200, json={"ok": False, "error": "invalid_name"}))
    with pytest.raises(SlackApiError) as excinfo:
        asyncio.run(failing.add_reaction("C1", "1.2", "nope"))
    assert excinfo.value.error == "invalid_name"


def test_list_channel_members_follows_cursor() -> None:
    pages = {
        None: {"ok": True, "members": ["U1", "U2"], "response_metadata": {"next_cursor": "abc"}},
        "abc": {"ok": True, "members": ["U3"], "response_metadata": {"next_cursor": ""}},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("cursor")])

    assert asyncio.run(_client(handler).list_channel_members("C1")) == ["U1", "U2", "U3"]


def test_display_name_fallbacks() -> None:
    assert display_name_of({"id": "U1", "profile": {"display_name": "앨리스", "real_name": "Alice"}}) == "앨리스"
    assert display_name_of({"id": "U1", "profile": {"display_name": "", "real_name": "Alice"}}) == "Alice"
    assert display_name_of({"id": "U1", "name": "alice"}) == "alice"
    assert display_name_of({"id": "U1"}) == "U1"


def test_roster_excludes_bot_and_inactive_members() -> None:
    users = {
        "UBOT": {"id": "UBOT", "is_bot": True, "profile": {"display_name": "powbot"}},
        "U1": {"id": "U1", "profile": {"display_name": "Alice"}},
        "U2": {"id": "U2", "deleted": True, "profile": {"display_name": "Gone"}},
        "U3": {"id": "U3", "profile": {"display_name": "Bob"}},
        "U4": {"id": "U4", "profile": {"display_name": "Alice"}},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("conversations.members"):
            return httpx.Response(200, json={"ok": True, "members": ["UBOT", "U1", "U2", "U3", "U4"]})
        return httpx.Response(200, json={"ok": True, "user": users[request.url.params["user"]]})

    roster = RosterResolver(_client(handler))
    assert asyncio.run(roster.list_participants("C1", excluding="UBOT")) == ["Alice", "Bob"]


def test_roster_failures_raise_roster_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("conversations.members"):
            return httpx.Response(200, json={"ok": True, "members": ["U1"]})
        return httpx.Response(200, json={"ok": False, "error": "user_not_found"})

    with pytest.raises(RosterError):
        asyncio.run(RosterResolver(_client(handler)).list_participants("C1", excluding=None))
