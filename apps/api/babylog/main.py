from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CONFIG
from .deps import get_service
from .errors import BabyLogError, StorageFailure, ValidationFailure
from .routes import auth as auth_routes
from .routes import backup as backup_routes
from .routes import data as data_routes
from .routes import settings as settings_routes
from .routes import stats as stats_routes
from .service import BabyLogService

logging.basicConfig(
    level=getattr(logging, CONFIG.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="BabyLog API",
    version="0.1.0",
    description="Family-scoped baby care log: feedings, diapers, sleep, training and daily checklists",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CONFIG.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(auth_routes.router)
app.include_router(data_routes.router)
app.include_router(settings_routes.router)
app.include_router(stats_routes.router)
app.include_router(backup_routes.router)


@app.exception_handler(BabyLogError)
async def babylog_error_handler(request: Request, exc: BabyLogError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(
            "storage failure",
            extra={"method": request.method, "path": request.url.path, "reason": exc.message},
        )
        detail = "Storage is unavailable, please try again."
    else:
        logger.info(
            "request rejected",
            extra={"method": request.method, "path": request.url.path, "error": exc.code},
        )
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail, "error": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=ValidationFailure.status_code,
        content={"detail": "; ".join(messages) or "Invalid request", "error": ValidationFailure.code},
    )


@app.get("/health")
async def health(service: BabyLogService = Depends(get_service)) -> dict:
    service.store.ping()
    return {"status": "ok"}
