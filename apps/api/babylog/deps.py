"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Header, Request

from .config import CONFIG
from .errors import MissingFamilyCode
from .service import BabyLogService
from .store import build_store, mask_family_code

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_service() -> BabyLogService:
    return BabyLogService(build_store(CONFIG), CONFIG)


async def require_family_code(
    request: Request,
    x_family_code: Optional[str] = Header(None, alias="X-Family-Code"),
) -> str:
    """Scope every data request to the family named in the X-Family-Code header."""
    if not x_family_code or not x_family_code.strip():
        raise MissingFamilyCode()
    logger.info(
        "family-scoped request",
        extra={"method": request.method, "path": request.url.path, "family": mask_family_code(x_family_code)},
    )
    return x_family_code
