# backend/rentfolio/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .domain.errors import DomainError, ValidationError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .services.store import RentalStore, build_store

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.property_types import router as property_types_router
from .routers.properties import router as properties_router
from .routers.records import router as records_router
from .routers.payments import router as payments_router
from .routers.config import router as config_router
from .routers.users import router as users_router
from .routers.reports import router as reports_router
from .routers.sync import router as sync_router
from .routers.audit import router as audit_router

API_PREFIX = "/api"

log = logging.getLogger("rentfolio.main")


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if getattr(app.state, "store", None) is None:
        init_db()
        store = build_store(settings)
        store.boot(seed_demo=settings.seed_demo_data, admin_password=settings.bootstrap_admin_password)
        app.state.store = store
    log.info("rentfolio started", extra={"sync_status": app.state.store.sync.status.value})
    try:
        yield
    finally:
        # pending debounced write goes out before exit
        app.state.store.sync.shutdown()


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body: dict = {"detail": str(exc)}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(store: Optional[RentalStore] = None) -> FastAPI:
    app = FastAPI(
        title="Rentfolio",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.store = store

    # Request-ID outermost so the logging middleware sees request.state.request_id
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, _domain_error_handler)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)

    # Portfolio
    app.include_router(property_types_router, prefix=API_PREFIX)
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(records_router, prefix=API_PREFIX)

    # Ledger
    app.include_router(payments_router, prefix=API_PREFIX)
    app.include_router(config_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)

    # Admin
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(sync_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)

    return app


app = create_app()
