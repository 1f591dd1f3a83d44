from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_service, require_family_code
from ..service import BabyLogService

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
async def read_day_stats(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> dict:
    """Totals shown on the home screen for one day."""

    stats = service.day_stats(family_code, date)
    return stats.model_dump(by_alias=True)


@router.get("/day-of-life")
async def read_day_of_life(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    family_code: str = Depends(require_family_code),
    service: BabyLogService = Depends(get_service),
) -> Dict[str, Optional[int]]:
    return {"dayOfLife": service.day_of_life(family_code, date)}


@router.get("/checklists")
async def read_checklists(service: BabyLogService = Depends(get_service)) -> Dict[str, List[str]]:
    return service.checklists()
