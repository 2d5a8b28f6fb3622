"""Awaitable attendance store over the SQLite database."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from typing import Any, Callable, Optional, TypeVar

from .db import Database
from .errors import StoreError
from .models import AttendanceRecord, Mark

logger = logging.getLogger(__name__)

T = TypeVar("T")


def encode_record(record: AttendanceRecord) -> str:
    return json.dumps(
        {name: [mark.value for mark in marks] for name, marks in record.items()},
        ensure_ascii=False,
    )


def decode_record(payload: str) -> AttendanceRecord:
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("record payload must be a JSON object")
    return {name: [Mark(value) for value in marks] for name, marks in data.items()}


class AttendanceStore:
    """Get/put access to week records and summary message handles."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            logger.error("Store operation %s failed: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}") from exc

    async def load_record(self, week_id: int) -> Optional[AttendanceRecord]:
        payload = await self._run("load_record", self.database.get_record_payload, week_id)
        if payload is None:
            return None
        try:
            return decode_record(payload)
        except (ValueError, TypeError) as exc:
            raise StoreError(f"record for week {week_id} is unreadable: {exc}") from exc

    async def save_record(self, week_id: int, record: AttendanceRecord) -> None:
        await self._run("save_record", self.database.upsert_record, week_id, encode_record(record))

    async def load_message_handle(self, week_id: int) -> Optional[str]:
        return await self._run("load_message_handle", self.database.get_message_ts, week_id)

    async def save_message_handle(self, week_id: int, handle: str) -> None:
        await self._run("save_message_handle", self.database.upsert_message_ts, week_id, handle)

    async def delete_record(self, week_id: int) -> int:
        return await self._run("delete_record", self.database.delete_week, week_id)


__all__ = ["AttendanceStore", "decode_record", "encode_record"]
