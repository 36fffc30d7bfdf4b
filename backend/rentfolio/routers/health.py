# backend/rentfolio/routers/health.py
from __future__ import annotations

from fastapi import APIRouter, Request

from ..config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    store = getattr(request.app.state, "store", None)
    return {
        "ok": True,
        "version": settings.app_version,
        "env": settings.app_env,
        "sync": store.sync.status.value if store is not None else None,
    }
