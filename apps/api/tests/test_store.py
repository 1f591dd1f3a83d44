from __future__ import annotations

import sqlite3

import pytest

from babylog.db import SQLiteStore
from babylog.errors import StorageFailure
from babylog.schemas import (
    CareRecord,
    DailyKind,
    FeedingRecord,
    RecordKind,
    SleepDirection,
    SleepRecord,
    SupplementRecord,
)

from .helpers import DAY, FAMILY, OTHER_FAMILY


@pytest.fixture()
def store(tmp_path):
    return SQLiteStore(tmp_path / "babylog.db")


def _feeding(**fields) -> FeedingRecord:
    return FeedingRecord(date=DAY, time="08:00", **fields)


def test_add_assigns_id_and_created_at(store):
    saved = store.add_record(FAMILY, RecordKind.FEEDING, _feeding(bottle_formula=90))
    assert saved.id is not None
    assert saved.created_at and saved.created_at > 0
    assert saved.bottle_formula == 90
    assert store.list_records(FAMILY, RecordKind.FEEDING, DAY) == [saved]


def test_list_is_ordered_by_created_at(store):
    later = store.add_record(FAMILY, RecordKind.FEEDING, _feeding(created_at=2_000))
    earlier = store.add_record(FAMILY, RecordKind.FEEDING, _feeding(created_at=1_000))
    rows = store.list_records(FAMILY, RecordKind.FEEDING, DAY)
    assert [row.id for row in rows] == [earlier.id, later.id]


def test_families_do_not_see_each_other(store):
    saved = store.add_record(FAMILY, RecordKind.FEEDING, _feeding())
    assert store.list_records(OTHER_FAMILY, RecordKind.FEEDING, DAY) == []

    # Deleting with the wrong family leaves the row in place.
    store.delete_record(OTHER_FAMILY, RecordKind.FEEDING, saved.id)
    assert len(store.list_records(FAMILY, RecordKind.FEEDING, DAY)) == 1


def test_delete_is_idempotent(store):
    saved = store.add_record(FAMILY, RecordKind.FEEDING, _feeding())
    store.delete_record(FAMILY, RecordKind.FEEDING, saved.id)
    store.delete_record(FAMILY, RecordKind.FEEDING, saved.id)
    assert store.list_records(FAMILY, RecordKind.FEEDING, DAY) == []


def test_list_filters_by_date(store):
    store.add_record(FAMILY, RecordKind.FEEDING, _feeding())
    assert store.list_records(FAMILY, RecordKind.FEEDING, "2024-01-02") == []


def test_sleep_direction_defaults_to_center(store):
    saved = store.add_record(FAMILY, RecordKind.SLEEP, SleepRecord(date=DAY, start_time="21:00"))
    assert saved.direction is SleepDirection.CENTER
    assert saved.end_time == ""


def test_checklist_items_round_trip_in_order(store):
    items = {"水": True, "AD": False, "D3": True}
    store.save_daily(FAMILY, DailyKind.SUPPLEMENT, SupplementRecord(date=DAY, items=items))
    row = store.get_daily(FAMILY, DailyKind.SUPPLEMENT, DAY)
    assert list(row.items.items()) == list(items.items())


def test_get_daily_missing_is_none(store):
    assert store.get_daily(FAMILY, DailyKind.CARE, DAY) is None
    assert store.get_daily(FAMILY, DailyKind.DAILY_NOTE, DAY) is None


def test_save_daily_keeps_one_row_per_date(store, tmp_path):
    first_id = store.save_daily(FAMILY, DailyKind.CARE, CareRecord(date=DAY, items={"洗脸": True}))
    second_id = store.save_daily(FAMILY, DailyKind.CARE, CareRecord(date=DAY, items={"洗澡": False}))
    assert first_id == second_id
    assert store.get_daily(FAMILY, DailyKind.CARE, DAY).items == {"洗澡": False}

    with sqlite3.connect(tmp_path / "babylog.db") as conn:
        count = conn.execute("SELECT COUNT(*) FROM care WHERE family_code = ?", (FAMILY,)).fetchone()[0]
    assert count == 1


def test_settings_upsert(store):
    store.set_setting(FAMILY, "birthDate", "2024-01-01")
    store.set_setting(FAMILY, "birthDate", "2024-01-02")
    store.set_setting(OTHER_FAMILY, "birthDate", "2023-12-31")
    assert store.get_settings(FAMILY) == {"birthDate": "2024-01-02"}


def test_ensure_family_is_idempotent(store):
    store.ensure_family(FAMILY)
    store.ensure_family(FAMILY)
    store.ping()


def test_unopenable_database_raises_storage_failure(tmp_path):
    with pytest.raises(StorageFailure):
        SQLiteStore(tmp_path)


def test_integer_overflow_raises_storage_failure(store):
    with pytest.raises(StorageFailure):
        store.delete_record(FAMILY, RecordKind.FEEDING, 10**20)
    with pytest.raises(StorageFailure):
        store.add_record(FAMILY, RecordKind.FEEDING, _feeding(breast_left=10**20))


def test_statement_error_after_automatic_rollback_keeps_cause(store, monkeypatch):
    store.save_daily(FAMILY, DailyKind.CARE, CareRecord(date=DAY, items={"洗脸": True}))

    def broken_upsert(conn, family_code, kind, record):
        conn.execute("DELETE FROM care WHERE family_code = ?", (family_code,))
        # SQLite ends the transaction itself on errors such as SQLITE_FULL.
        conn.execute("ROLLBACK")
        raise sqlite3.OperationalError("database or disk is full")

    monkeypatch.setattr(store, "_upsert_daily", broken_upsert)
    with pytest.raises(StorageFailure) as excinfo:
        store.save_daily(FAMILY, DailyKind.CARE, CareRecord(date=DAY, items={"洗澡": True}))
    assert "disk is full" in str(excinfo.value)
    monkeypatch.undo()

    assert store.get_daily(FAMILY, DailyKind.CARE, DAY).items == {"洗脸": True}
