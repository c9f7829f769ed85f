from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from .config import settings
from .database import init_db
from .errors import describe_db_error, error_body

from .api.members import router as members_router
from .api.ministries import router as ministries_router
from .api.zones import router as zones_router
from .api.sale_groups import router as sale_groups_router
from .api.church_settings import router as settings_router
from .api.reports import router as reports_router

# Dashboard widgets
from .api.dashboard import router as dashboard_router
from .api.registration import router as registration_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Church Admin Dashboard API",
        version=settings.app_version,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Startup ---
    @app.on_event("startup")
    def _startup() -> None:
        # Creates missing tables for all registered models
        init_db()

    # --- Error envelope: {"success": false, "error": "..."} ---
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc: HTTPException):  # noqa: ANN001
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc: RequestValidationError):  # noqa: ANN001
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_body("Validation failed", details=details))

    @app.exception_handler(SQLAlchemyError)
    async def db_exception_handler(request, exc: SQLAlchemyError):  # noqa: ANN001
        logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
        status, message = describe_db_error(exc)
        return JSONResponse(status_code=status, content=error_body(message))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request, exc: Exception):  # noqa: ANN001
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))

    # --- Health / meta ---
    @app.get("/health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "env": settings.env,
            "storage": "configured" if settings.storage_configured else "local",
        }

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"name": settings.app_name, "version": settings.app_version}

    # --- API routers ---
    app.include_router(members_router)
    app.include_router(ministries_router)
    app.include_router(zones_router)
    app.include_router(sale_groups_router)
    app.include_router(settings_router)
    app.include_router(reports_router)

    app.include_router(dashboard_router)
    app.include_router(registration_router)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    import uvicorn

    # init_db runs in the startup hook
    uvicorn.run(
        "church_admin.main:app",
        host=settings.host,
        port=int(settings.port),
        reload=bool(settings.reload),
    )
