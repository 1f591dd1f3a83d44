from __future__ import annotations

import json
from datetime import date

import pytest
from fastapi.testclient import TestClient

from babylog.backup import backup_filename, parse_snapshot
from babylog.deps import get_service
from babylog.errors import StorageFailure, ValidationFailure
from babylog.main import app

from .helpers import DAY, FAMILY, OTHER_FAMILY, family_headers, feeding_payload, make_service

client = TestClient(app)


@pytest.fixture()
def service(tmp_path):
    return make_service(tmp_path)


def seed_family(service, family_code: str = FAMILY) -> None:
    service.add_record(family_code, "feeding", feeding_payload())
    service.add_record(family_code, "feeding", feeding_payload(time="11:00"))
    service.add_record(family_code, "diaper", {"date": DAY, "time": "09:00", "type": "poop", "color": "yellow"})
    service.add_record(family_code, "sleep", {"date": DAY, "startTime": "13:00", "endTime": "14:30"})
    service.add_record(family_code, "education", {"date": DAY, "category": "visual", "duration": 5})
    service.save_daily(family_code, "supplement", DAY, {"AD": True, "D3": False})
    service.save_daily(family_code, "care", DAY, {"洗澡": True})
    service.save_daily(family_code, "dailyNote", DAY, {"temperature": 36.6})
    service.set_setting(family_code, "birthDate", "2023-12-01")


def test_export_has_every_section(service):
    seed_family(service)
    snapshot = service.export_all(FAMILY).to_wire()
    assert set(snapshot) == {
        "feeding", "diaper", "sleep", "education", "supplement", "care", "dailyNote", "settings", "exportDate",
    }
    assert len(snapshot["feeding"]) == 2
    assert snapshot["supplement"][0]["items"] == {"AD": True, "D3": False}
    assert snapshot["settings"] == [{"key": "birthDate", "value": "2023-12-01"}]
    assert FAMILY not in json.dumps(snapshot)


def test_export_import_round_trip_preserves_counts(service):
    seed_family(service)
    snapshot = service.export_all(FAMILY)

    imported = service.import_all(OTHER_FAMILY, snapshot.to_wire())
    assert imported == snapshot.row_count() == 9

    copied = service.export_all(OTHER_FAMILY)
    for kind in ("feeding", "diaper", "sleep", "education", "supplement", "care", "daily_note"):
        assert len(getattr(copied, kind)) == len(getattr(snapshot, kind))
    assert service.day_stats(OTHER_FAMILY, DAY) == service.day_stats(FAMILY, DAY)


def test_import_replaces_existing_rows(service):
    seed_family(service)
    snapshot = service.export_all(FAMILY).to_wire()
    service.import_all(FAMILY, snapshot)
    service.import_all(FAMILY, snapshot)
    assert len(service.list_records(FAMILY, "feeding", DAY)) == 2


def test_import_accepts_older_exports(service):
    document = {
        "feeding": [{"date": DAY, "time": "08:00", "breastLeft": None, "bottleFormula": 60, "createdAt": 1}],
        "sleep": [{"date": DAY, "startTime": "20:00", "endTime": None, "direction": "右"}],
        "education": [{"date": DAY, "category": "听觉训练", "duration": 10, "content": None}],
        "supplement": [
            {"date": DAY, "items": json.dumps({"AD": False})},
            {"date": DAY, "items": json.dumps({"AD": True})},
        ],
    }
    assert service.import_all(FAMILY, json.dumps(document)) == 5
    assert service.get_daily(FAMILY, "supplement", DAY).items == {"AD": True}
    sleep = service.list_records(FAMILY, "sleep", DAY)[0]
    assert sleep.direction.value == "right"
    assert service.list_records(FAMILY, "feeding", DAY)[0].created_at == 1


def test_invalid_snapshot_writes_nothing(service):
    seed_family(service)
    with pytest.raises(ValidationFailure):
        service.import_all(FAMILY, {"feeding": [{"time": "08:00"}]})
    with pytest.raises(ValidationFailure):
        service.import_all(FAMILY, "not json")
    assert len(service.list_records(FAMILY, "feeding", DAY)) == 2


def test_failed_import_rolls_back(service, monkeypatch):
    seed_family(service)
    snapshot = service.export_all(FAMILY)
    store = service.store

    def broken_setting(conn, family_code, key, value):
        raise StorageFailure("disk full")

    monkeypatch.setattr(store, "_upsert_setting", broken_setting)
    with pytest.raises(StorageFailure):
        service.import_all(FAMILY, snapshot)
    monkeypatch.undo()

    assert service.export_all(FAMILY).row_count() == snapshot.row_count()


def test_parse_snapshot_treats_missing_sections_as_empty():
    snapshot = parse_snapshot({"feeding": None})
    assert snapshot.row_count() == 0
    with pytest.raises(ValidationFailure):
        parse_snapshot([1, 2, 3])


def test_backup_filename():
    assert backup_filename(date(2024, 1, 1)) == "baby_data_2024-01-01.json"


def test_http_export_and_import(service):
    app.dependency_overrides[get_service] = lambda: service
    try:
        seed_family(service)
        resp = client.get("/api/export", headers=family_headers())
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        document = resp.json()

        resp = client.post("/api/import", json=document, headers=family_headers(OTHER_FAMILY))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "imported": 9}

        resp = client.post("/api/import", json=document)
        assert resp.status_code == 401
    finally:
        app.dependency_overrides.clear()
