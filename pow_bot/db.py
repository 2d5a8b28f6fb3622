"""SQLite persistence layer for weekly attendance state."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    week_id INTEGER PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS message_handles (
                    week_id INTEGER PRIMARY KEY,
                    ts TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    # region Records
    def get_record_payload(self, week_id: int) -> Optional[str]:
        with self.connect() as conn:
            cursor = conn.execute("SELECT payload FROM records WHERE week_id = ?", (week_id,))
            row = cursor.fetchone()
            return row["payload"] if row else None

    def upsert_record(self, week_id: int, payload: str) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO records (week_id, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(week_id) DO UPDATE SET
                    payload=excluded.payload,
                    updated_at=excluded.updated_at
                """,
                (week_id, payload, _timestamp()),
            )
            conn.commit()

    def delete_week(self, week_id: int) -> int:
        """Delete the record and message handle for ``week_id`` together."""

        with self.connect() as conn:
            try:
                cursor = conn.execute("DELETE FROM records WHERE week_id = ?", (week_id,))
                deleted = cursor.rowcount
                conn.execute("DELETE FROM message_handles WHERE week_id = ?", (week_id,))
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
            return deleted

    # endregion

    # region Message handles
    def get_message_ts(self, week_id: int) -> Optional[str]:
        with self.connect() as conn:
            cursor = conn.execute("SELECT ts FROM message_handles WHERE week_id = ?", (week_id,))
            row = cursor.fetchone()
            return row["ts"] if row else None

    def upsert_message_ts(self, week_id: int, ts: str) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO message_handles (week_id, ts, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(week_id) DO UPDATE SET
                    ts=excluded.ts,
                    updated_at=excluded.updated_at
                """,
                (week_id, ts, _timestamp()),
            )
            conn.commit()

    # endregion


__all__ = ["Database"]
