from fastapi import APIRouter, Depends

from ..deps import get_service
from ..schemas import LoginRequest, LoginResponse
from ..service import BabyLogService

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: BabyLogService = Depends(get_service)) -> LoginResponse:
    """Register the family code if it is new. Codes are shared secrets, not accounts."""
    result = service.login(payload.family_code)
    return LoginResponse(success=result["success"], family_code=result["familyCode"])
