from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pow_bot.db import Database
from pow_bot.errors import StoreError
from pow_bot.models import Mark
from pow_bot.store import AttendanceStore


def _store(tmp_path: Path) -> AttendanceStore:
    return AttendanceStore(Database(tmp_path / "nested" / "pow.db"))


def test_record_round_trip_keeps_participant_order(tmp_path: Path) -> None:
    store = _store(tmp_path)
    record = {"Zed": [Mark.PENDING] * 5, "Alice": [Mark.DONE] + [Mark.PENDING] * 4}

    async def scenario():
        await store.save_record(202642, record)
        return await store.load_record(202642)

    loaded = asyncio.run(scenario())
    assert loaded == record
    assert list(loaded) == ["Zed", "Alice"]


def test_missing_week_loads_as_none(tmp_path: Path) -> None:
    store = _store(tmp_path)
    assert asyncio.run(store.load_record(202601)) is None
    assert asyncio.run(store.load_message_handle(202601)) is None


def test_save_is_last_writer_wins(tmp_path: Path) -> None:
    store = _store(tmp_path)

    async def scenario():
        await store.save_message_handle(202642, "1.000001")
        await store.save_message_handle(202642, "1.000002")
        await store.save_record(202642, {"Alice": [Mark.PENDING] * 5})
        await store.save_record(202642, {"Bob": [Mark.PENDING] * 5})
        return await store.load_message_handle(202642), await store.load_record(202642)

    handle, record = asyncio.run(scenario())
    assert handle == "1.000002"
    assert list(record) == ["Bob"]


def test_delete_removes_record_and_handle(tmp_path: Path) -> None:
    store = _store(tmp_path)

    async def scenario():
        await store.save_record(202642, {"Alice": [Mark.PENDING] * 5})
        await store.save_message_handle(202642, "1.000001")
        await store.save_record(202643, {"Alice": [Mark.PENDING] * 5})
        first = await store.delete_record(202642)
        second = await store.delete_record(202642)
        return first, second

    assert asyncio.run(scenario()) == (1, 0)
    assert asyncio.run(store.load_message_handle(202642)) is None
    assert asyncio.run(store.load_record(202643)) is not None


def test_corrupt_payload_surfaces_as_store_error(tmp_path: Path) -> None:
    database = Database(tmp_path / "pow.db")
    database.upsert_record(202642, '{"Alice": ["maybe"]}')
    with pytest.raises(StoreError):
        asyncio.run(AttendanceStore(database).load_record(202642))


def test_sqlite_failures_surface_as_store_error(tmp_path: Path) -> None:
    database = Database(tmp_path / "pow.db")
    with database.connect() as conn:
        conn.execute("DROP TABLE records")
        conn.commit()
    with pytest.raises(StoreError):
        asyncio.run(AttendanceStore(database).load_record(202642))


def test_wrongly_shaped_payload_surfaces_as_store_error(tmp_path: Path) -> None:
    database = Database(tmp_path / "pow.db")
    database.upsert_record(202642, '{"Alice": 3}')
    with pytest.raises(StoreError):
        asyncio.run(AttendanceStore(database).load_record(202642))
