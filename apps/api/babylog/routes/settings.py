from typing import Dict

from fastapi import APIRouter, Depends

from ..deps import get_service, require_family_code
from ..schemas import SettingEntry
from ..service import BabyLogService

router = APIRouter(prefix="/api", tags=["settings"])


@router.get("/settings")
async def read_settings(
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, str]:
    return service.get_settings(family_code)


@router.post("/settings")
async def write_setting(
    payload: SettingEntry,
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, bool]:
    service.set_setting(family_code, payload.key, payload.value)
    return {"success": True}
