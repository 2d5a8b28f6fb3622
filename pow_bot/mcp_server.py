"""MCP server exposing the current week's scoreboard."""

from __future__ import annotations

from typing import Optional

from mcp.server.fastmcp import FastMCP

from .api import build_handlers
from .clock import local_now
from .config import load_settings
from .service import ChallengeController

mcp = FastMCP("pow-bot")

_controller: Optional[ChallengeController] = None


def _get_controller() -> ChallengeController:
    global _controller
    if _controller is None:
        handlers, _ = build_handlers(load_settings())
        _controller = handlers.controller
    return _controller


@mcp.tool()
async def get_scoreboard() -> dict:
    """Return the current week's attendance record and its rendered scoreboard."""

    controller = _get_controller()
    scoreboard = await controller.scoreboard(local_now(controller.tz))
    if scoreboard is None:
        return {"week_id": controller.week_id(local_now(controller.tz)), "text": None, "record": {}}
    return {
        "week_id": scoreboard.week_id,
        "text": scoreboard.text,
        "record": {
            name: [mark.value for mark in marks] for name, marks in scoreboard.record.items()
        },
    }


if __name__ == "__main__":  # pragma: no cover
    mcp.run()


__all__ = ["mcp", "get_scoreboard"]
