"""Operation surface: validation and dispatch in front of a RecordStore.

Every write path goes through `BabyLogService` so validation happens once,
before the store is touched. The service never builds SQL or HTTP requests;
it hands typed records to whichever backend it was given.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from .backup import describe_validation_error, parse_snapshot
from .config import CONFIG, AppConfig
from .errors import MissingFamilyCode, ValidationFailure
from .schemas import (
    DAILY_MODELS,
    RECORD_MODELS,
    CareRecord,
    ChecklistRecord,
    DailyKind,
    DayStats,
    RecordBase,
    RecordKind,
    Snapshot,
    SupplementRecord,
    resolve_daily_kind,
    resolve_record_kind,
)
from .stats import day_of_life, summarize_day
from .store import RecordStore

logger = logging.getLogger(__name__)

BIRTH_DATE_SETTING = "birthDate"
# Row ids are SQLite INTEGERs.
MAX_ROW_ID = 2**63 - 1


class BabyLogService:
    """Family-scoped operations over one store.

    Example usage:
        svc = BabyLogService(SQLiteStore("./data/babylog.db"))
        svc.login("ABCD")
        svc.add_record("ABCD", "feeding", {"date": "2024-01-01", "time": "08:00"})
    """

    def __init__(self, store: RecordStore, config: AppConfig = CONFIG) -> None:
        self.store = store
        self.config = config

    # -- boundary checks -----------------------------------------------------

    def _require_family(self, family_code: Optional[str]) -> str:
        if not family_code or not family_code.strip():
            raise MissingFamilyCode()
        return family_code

    def _require_date(self, date: Optional[str]) -> str:
        if not date or not str(date).strip():
            raise ValidationFailure("date is required.")
        return str(date)

    def _parse(self, model: type, fields: Union[Mapping[str, Any], RecordBase]) -> RecordBase:
        if isinstance(fields, RecordBase):
            fields = fields.model_dump(by_alias=True)
        if not isinstance(fields, Mapping):
            raise ValidationFailure("Record payload must be an object.")
        try:
            return model.model_validate(dict(fields))
        except ValidationError as exc:
            raise ValidationFailure(describe_validation_error(exc)) from exc

    def _check_checklist(self, record: RecordBase) -> None:
        if not self.config.strict_checklists or not isinstance(record, ChecklistRecord):
            return
        unknown = record.unknown_items()
        if unknown:
            raise ValidationFailure(f"Unknown checklist items: {', '.join(unknown)}")

    # -- family --------------------------------------------------------------

    def login(self, family_code: Optional[str]) -> Dict[str, Any]:
        minimum = self.config.min_family_code_length
        if not isinstance(family_code, str) or len(family_code.strip()) < minimum:
            raise ValidationFailure(f"Family code must be at least {minimum} characters.")
        self.store.ensure_family(family_code)
        return {"success": True, "familyCode": family_code}

    # -- multi-entry records -------------------------------------------------

    def list_records(self, family_code: Optional[str], table: str, date: Optional[str]) -> List[RecordBase]:
        family_code = self._require_family(family_code)
        kind = resolve_record_kind(table)
        date = self._require_date(date)
        return self.store.list_records(family_code, kind, date)

    def add_record(
        self,
        family_code: Optional[str],
        table: str,
        fields: Union[Mapping[str, Any], RecordBase],
    ) -> RecordBase:
        family_code = self._require_family(family_code)
        kind = resolve_record_kind(table)
        record = self._parse(RECORD_MODELS[kind], fields)
        # Ids are always assigned by the store.
        record = record.model_copy(update={"id": None})
        return self.store.add_record(family_code, kind, record)

    def delete_record(self, family_code: Optional[str], table: str, record_id: Any) -> None:
        family_code = self._require_family(family_code)
        kind = resolve_record_kind(table)
        try:
            record_id = int(record_id)
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(f"Invalid record id: {record_id}") from exc
        if not 0 < record_id <= MAX_ROW_ID:
            return
        self.store.delete_record(family_code, kind, record_id)

    # -- one row per day -----------------------------------------------------

    def get_daily(self, family_code: Optional[str], kind: str, date: Optional[str]) -> Optional[RecordBase]:
        family_code = self._require_family(family_code)
        daily_kind = resolve_daily_kind(kind)
        date = self._require_date(date)
        return self.store.get_daily(family_code, daily_kind, date)

    def save_daily(
        self,
        family_code: Optional[str],
        kind: str,
        date: Optional[str],
        payload: Union[Mapping[str, Any], RecordBase, None],
    ) -> int:
        """Replace the single row for (family, date), creating it if needed.

        For checklist kinds the payload is either `{"items": {...}}` or the
        bare `{name: bool}` mapping. createdAt is always refreshed.
        """
        family_code = self._require_family(family_code)
        daily_kind = resolve_daily_kind(kind)
        model = DAILY_MODELS[daily_kind]
        if isinstance(payload, RecordBase):
            payload = payload.model_dump(by_alias=True)
        fields: Dict[str, Any] = dict(payload or {})
        if date is None:
            date = fields.get("date")
        date = self._require_date(date)

        if issubclass(model, ChecklistRecord) and "items" not in fields:
            fields = {"items": {key: value for key, value in fields.items() if key not in {"date", "id", "createdAt"}}}
        fields.update({"date": date, "createdAt": None, "id": None})

        record = self._parse(model, fields)
        self._check_checklist(record)
        record_id = self.store.save_daily(family_code, daily_kind, record)
        logger.info("daily record saved", extra={"kind": daily_kind.value, "date": date, "id": record_id})
        return record_id

    # -- settings ------------------------------------------------------------

    def get_settings(self, family_code: Optional[str]) -> Dict[str, str]:
        family_code = self._require_family(family_code)
        return self.store.get_settings(family_code)

    def set_setting(self, family_code: Optional[str], key: Optional[str], value: Any) -> None:
        family_code = self._require_family(family_code)
        if not key:
            raise ValidationFailure("key is required.")
        if value is None:
            raise ValidationFailure("value is required.")
        self.store.set_setting(family_code, key, str(value))

    # -- derived -------------------------------------------------------------

    def day_stats(self, family_code: Optional[str], date: Optional[str]) -> DayStats:
        family_code = self._require_family(family_code)
        date = self._require_date(date)
        supplement = self.store.get_daily(family_code, DailyKind.SUPPLEMENT, date)
        care = self.store.get_daily(family_code, DailyKind.CARE, date)
        return summarize_day(
            self.store.list_records(family_code, RecordKind.FEEDING, date),
            self.store.list_records(family_code, RecordKind.DIAPER, date),
            self.store.list_records(family_code, RecordKind.SLEEP, date),
            supplement if isinstance(supplement, SupplementRecord) else None,
            care if isinstance(care, CareRecord) else None,
        )

    def day_of_life(self, family_code: Optional[str], date: Optional[str]) -> Optional[int]:
        family_code = self._require_family(family_code)
        date = self._require_date(date)
        birth_date = self.store.get_settings(family_code).get(BIRTH_DATE_SETTING)
        if not birth_date:
            return None
        try:
            return day_of_life(birth_date, date)
        except ValueError as exc:
            raise ValidationFailure(f"Dates must be YYYY-MM-DD: {exc}") from exc

    @staticmethod
    def checklists() -> Dict[str, List[str]]:
        return {
            DailyKind.SUPPLEMENT.value: SupplementRecord.default_items(),
            DailyKind.CARE.value: CareRecord.default_items(),
        }

    # -- backup --------------------------------------------------------------

    def export_all(self, family_code: Optional[str]) -> Snapshot:
        family_code = self._require_family(family_code)
        return self.store.export_snapshot(family_code)

    def import_all(self, family_code: Optional[str], document: Union[str, Mapping[str, Any], Snapshot]) -> int:
        """Destructive restore of a snapshot under this family's scope.

        The document is fully parsed before anything is written; the store
        applies it in one transaction.
        """
        family_code = self._require_family(family_code)
        snapshot = parse_snapshot(document)

        for kind in (DailyKind.SUPPLEMENT, DailyKind.CARE):
            for record in snapshot.records(kind):
                self._check_checklist(record)

        imported = self.store.replace_all(family_code, snapshot)
        logger.info("snapshot imported", extra={"imported": imported, "rows_in_snapshot": snapshot.row_count()})
        return imported
