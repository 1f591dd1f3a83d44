from typing import Any, Dict, List, Optional, Union

import logging

from fastapi import APIRouter, Body, Depends, Query

from ..deps import get_service, require_family_code
from ..schemas import DailyKind, resolve_kind
from ..service import BabyLogService

router = APIRouter(prefix="/api", tags=["data"])
logger = logging.getLogger(__name__)


@router.get("/data/{table}")
async def read_table(
    table: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Union[List[Dict[str, Any]], Dict[str, Any], None]:
    """List a day's entries, or the single row for one-per-day tables (null when absent)."""

    kind = resolve_kind(table)
    if isinstance(kind, DailyKind):
        record = service.get_daily(family_code, kind.value, date)
        return record.to_wire() if record else None
    records = service.list_records(family_code, kind.value, date)
    return [record.to_wire() for record in records]


@router.post("/data/{table}")
async def write_table(
    table: str,
    payload: Dict[str, Any] = Body(...),
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, Any]:
    """Append an entry, or replace the day's row for one-per-day tables."""

    kind = resolve_kind(table)
    if isinstance(kind, DailyKind):
        record_id = service.save_daily(family_code, kind.value, payload.get("date"), payload)
        return {"id": record_id}
    record = service.add_record(family_code, kind.value, payload)
    logger.info("record added", extra={"table": kind.value, "id": record.id})
    return record.to_wire()


@router.delete("/data/{table}/{record_id}")
async def delete_entry(
    table: str,
    record_id: str,
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, bool]:
    service.delete_record(family_code, table, record_id)
    return {"success": True}
