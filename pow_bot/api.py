"""FastAPI application receiving Slack callbacks and serving the scoreboard."""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qs

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from .clock import local_now
from .config import Settings, load_settings
from .db import Database
from .handlers import BotHandlers
from .models import CheckInEvent
from .roster import RosterResolver
from .scheduler import build_scheduler
from .service import ChallengeController
from .slack_client import SlackClient
from .store import AttendanceStore

logger = logging.getLogger(__name__)

ACK_TEXT = "요청을 접수했습니다. 결과는 채널에 알려드릴게요."
UNKNOWN_COMMAND_TEXT = "알 수 없는 명령입니다. `/start-challenge` 또는 `/delete-challenge`를 사용해주세요."
WRONG_CHANNEL_TEXT = "이 채널에서는 사용할 수 없는 명령입니다."

SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE_SECONDS = 60 * 5


def build_handlers(settings: Settings) -> tuple[BotHandlers, SlackClient]:
    database = Database(settings.database_path)
    slack_client = SlackClient(settings.slack_bot_token)
    controller = ChallengeController(
        settings, AttendanceStore(database), slack_client, RosterResolver(slack_client)
    )
    return BotHandlers(settings, controller, slack_client), slack_client


def slack_signature(secret: str, timestamp: str, body: bytes) -> str:
    """Compute the `X-Slack-Signature` value Slack sends for a request body."""

    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def parse_mention(payload: Dict[str, Any]) -> Optional[CheckInEvent]:
    """Return the check-in event carried by an ``app_mention`` callback, if any."""

    if payload.get("type") != "event_callback":
        return None
    event = payload.get("event") or {}
    if event.get("type") != "app_mention" or event.get("bot_id") or not event.get("user"):
        return None
    return CheckInEvent(
        sender_id=event["user"],
        text=event.get("text", ""),
        event_ts=event["ts"],
        channel_id=event["channel"],
    )


def create_app(
    settings: Optional[Settings] = None, handlers: Optional[BotHandlers] = None
) -> FastAPI:
    settings = settings or load_settings()
    owned_client: Optional[SlackClient] = None
    if handlers is None:
        handlers, owned_client = build_handlers(settings)
    scheduler = build_scheduler(settings, handlers) if settings.scheduler_enabled else None

    async def verify_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
        if not settings.api_key:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="API key is not configured",
            )
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    async def verify_slack_signature(
        request: Request,
        x_slack_signature: Optional[str] = Header(None, alias="X-Slack-Signature"),
        x_slack_request_timestamp: Optional[str] = Header(None, alias="X-Slack-Request-Timestamp"),
    ) -> None:
        if not settings.slack_signing_secret:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Slack signing secret is not configured",
            )
        if not x_slack_signature or not x_slack_request_timestamp:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing signature")
        try:
            sent_at = int(x_slack_request_timestamp)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid timestamp"
            ) from None
        if abs(time.time() - sent_at) > MAX_REQUEST_AGE_SECONDS:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="stale request")
        expected = slack_signature(
            settings.slack_signing_secret, x_slack_request_timestamp, await request.body()
        )
        if not hmac.compare_digest(expected, x_slack_signature):
            logger.warning("Rejected Slack request with a bad signature")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid signature")

    app = FastAPI(title="Proof-of-Work Bot", version="1.0.0")

    @app.on_event("startup")
    async def startup_event() -> None:  # pragma: no cover - io bound
        if scheduler is not None:
            scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
        if owned_client is not None:
            await owned_client.close()

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/slack/events", dependencies=[Depends(verify_slack_signature)])
    async def slack_events(
        request: Request,
        background_tasks: BackgroundTasks,
        x_slack_retry_num: Optional[str] = Header(None, alias="X-Slack-Retry-Num"),
    ) -> dict[str, Any]:
        payload = await request.json()
        if payload.get("type") == "url_verification":
            return {"challenge": payload.get("challenge")}
        if x_slack_retry_num:
            logger.debug("Ignoring Slack retry #%s", x_slack_retry_num)
            return {"ok": True}
        event = parse_mention(payload)
        if event is not None:
            background_tasks.add_task(handlers.on_mention, event)
        return {"ok": True}

    @app.post(
        "/slack/commands",
        response_class=PlainTextResponse,
        dependencies=[Depends(verify_slack_signature)],
    )
    async def slack_commands(request: Request, background_tasks: BackgroundTasks) -> str:
        raw = (await request.body()).decode("utf-8")
        form = {key: values[0] for key, values in parse_qs(raw).items()}
        command = form.get("command", "").lstrip("/")
        channel = form.get("channel_id")
        if channel != settings.channel_id:
            return WRONG_CHANNEL_TEXT
        if command == "start-challenge":
            background_tasks.add_task(handlers.on_start_command, channel)
        elif command == "delete-challenge":
            background_tasks.add_task(handlers.on_delete_command, channel)
        else:
            return UNKNOWN_COMMAND_TEXT
        logger.info("Accepted /%s from %s", command, form.get("user_id", "unknown"))
        return ACK_TEXT

    @app.get("/api/scoreboard", dependencies=[Depends(verify_api_key)])
    async def get_scoreboard() -> dict[str, object]:
        scoreboard = await handlers.controller.scoreboard(local_now(settings.tz))
        if scoreboard is None:
            raise HTTPException(status_code=404, detail="no record for the current week")
        return {
            "week_id": scoreboard.week_id,
            "record": {
                name: [mark.value for mark in marks] for name, marks in scoreboard.record.items()
            },
            "text": scoreboard.text,
        }

    return app


__all__ = ["build_handlers", "create_app", "parse_mention", "slack_signature"]
