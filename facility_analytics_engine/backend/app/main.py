# backend/app/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import EngineError, NotFoundError, ValidationError
from .logging_config import configure_logging
from .middleware.request_context import RequestContextMiddleware

from .routers.health import router as health_router
from .routers.metrics import router as metrics_router
from .routers.analytics import router as analytics_router
from .routers.prioritization import router as prioritization_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def _status_for(exc: EngineError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 422
    return 400


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status = _status_for(exc)
    log.info("engine error %s: %s", exc.code, exc.message, extra={"path": request.url.path, "status_code": status})
    return JSONResponse(status_code=status, content=exc.to_dict())


def create_app() -> FastAPI:
    app = FastAPI(
        title="Facility Analytics Engine",
        version=getattr(settings, "engine_version", "dev"),
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EngineError, engine_error_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(metrics_router, prefix=API_PREFIX)
    app.include_router(analytics_router, prefix=API_PREFIX)
    app.include_router(prioritization_router, prefix=API_PREFIX)

    return app


configure_logging()
app = create_app()
