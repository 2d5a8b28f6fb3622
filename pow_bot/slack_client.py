"""HTTP client for interacting with Slack Web API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .models import UpdateResult

SLACK_API_BASE = "https://slack.com/api"

# chat.update error codes meaning the stored ts no longer names a live message.
MESSAGE_GONE_ERRORS = frozenset({"message_not_found"})

logger = logging.getLogger(__name__)


class SlackApiError(RuntimeError):
    """Raised when Slack returns an error response."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack API error for {method}: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """Async wrapper around the Slack Web API endpoints the bot uses."""

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_BASE,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        *,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if data is not None:
            response = await self._client.post(method, data=data)
        else:
            response = await self._client.get(method, params=params)
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok"):
            raise SlackApiError(method, payload.get("error", "unknown_error"))
        return payload

    async def auth_test(self) -> str:
        """Return the bot's own user id."""

        data = await self._call("auth.test", data={})
        return data["user_id"]

    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None) -> str:
        body: Dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            body["thread_ts"] = thread_ts
        data = await self._call("chat.postMessage", data=body)
        return data["ts"]

    async def update_message(self, channel: str, ts: str, text: str) -> UpdateResult:
        try:
            await self._call("chat.update", data={"channel": channel, "ts": ts, "text": text})
        except SlackApiError as exc:
            if exc.error in MESSAGE_GONE_ERRORS:
                return UpdateResult.not_found(exc.error)
            return UpdateResult.error(exc.error)
        except httpx.HTTPError as exc:
            return UpdateResult.error(str(exc) or exc.__class__.__name__)
        return UpdateResult.ok()

    async def add_reaction(self, channel: str, ts: str, name: str) -> None:
        try:
            await self._call(
                "reactions.add", data={"channel": channel, "timestamp": ts, "name": name}
            )
        except SlackApiError as exc:
            if exc.error != "already_reacted":
                raise
            logger.debug("Reaction %s already present on %s", name, ts)

    async def list_channel_members(self, channel: str, limit: int = 200) -> List[str]:
        """Return member ids of ``channel`` following pagination."""

        members: List[str] = []
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"channel": channel, "limit": limit}
            if cursor:
                params["cursor"] = cursor
            data = await self._call("conversations.members", params=params)
            members.extend(data.get("members", []))
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
            await asyncio.sleep(0.2)
        return members

    async def fetch_user(self, user_id: str) -> Dict[str, Any]:
        data = await self._call("users.info", params={"user": user_id})
        return data["user"]

    async def resolve_display_name(self, user_id: str) -> str:
        return display_name_of(await self.fetch_user(user_id))


def display_name_of(user: Dict[str, Any]) -> str:
    profile = user.get("profile", {})
    return (
        profile.get("display_name")
        or profile.get("real_name")
        or user.get("real_name")
        or user.get("name")
        or user["id"]
    )


__all__ = ["SlackApiError", "SlackClient", "display_name_of"]
