from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ..backup import backup_filename
from ..deps import get_service, require_family_code
from ..service import BabyLogService

router = APIRouter(prefix="/api", tags=["backup"])


@router.get("/export")
def export_backup(
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> JSONResponse:
    """Every row the family owns, as one JSON document."""
    snapshot = service.export_all(family_code)
    return JSONResponse(
        content=snapshot.to_wire(),
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@router.post("/import")
def import_backup(
    document: Dict[str, Any] = Body(...),
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, Any]:
    """Replace the family's data with the uploaded snapshot."""
    imported = service.import_all(family_code, document)
    return {"success": True, "imported": imported}
