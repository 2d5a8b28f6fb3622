"""Resolve the channel's human participants."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from .errors import RosterError
from .slack_client import SlackApiError, SlackClient, display_name_of

logger = logging.getLogger(__name__)


class RosterResolver:
    def __init__(self, client: SlackClient) -> None:
        self.client = client

    async def list_participants(self, channel: str, excluding: Optional[str]) -> List[str]:
        """Return display names of human channel members, in member order."""

        try:
            member_ids = await self.client.list_channel_members(channel)
        except (SlackApiError, httpx.HTTPError) as exc:
            raise RosterError(f"could not list members of {channel}: {exc}") from exc

        names: List[str] = []
        for member_id in member_ids:
            if member_id == excluding or member_id == "USLACKBOT":
                continue
            try:
                user = await self.client.fetch_user(member_id)
            except (SlackApiError, httpx.HTTPError) as exc:
                raise RosterError(f"could not look up member {member_id}: {exc}") from exc
            if user.get("deleted") or user.get("is_bot"):
                continue
            name = display_name_of(user)
            if name in names:
                logger.warning("Duplicate display name %r in %s; keeping first", name, channel)
                continue
            names.append(name)
        return names


__all__ = ["RosterResolver"]
