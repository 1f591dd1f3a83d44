from __future__ import annotations

from pathlib import Path

from babylog.config import AppConfig
from babylog.db import SQLiteStore
from babylog.service import BabyLogService

FAMILY = "AAAA"
OTHER_FAMILY = "BBBB"
DAY = "2024-01-01"


def make_service(tmp_path: Path, **overrides) -> BabyLogService:
    config = AppConfig(database_path=str(tmp_path / "babylog.db"), **overrides)
    return BabyLogService(SQLiteStore(config.resolved_database_path), config)


def family_headers(code: str = FAMILY) -> dict:
    return {"X-Family-Code": code}


def feeding_payload(**fields) -> dict:
    payload = {"date": DAY, "time": "08:00", "breastLeft": 10, "breastRight": 5, "bottleBreastMilk": 60, "bottleFormula": 0}
    payload.update(fields)
    return payload
