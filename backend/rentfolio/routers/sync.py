# backend/rentfolio/routers/sync.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_admin
from ..db import get_db
from ..domain.audit import emit_audit
from ..schemas import SyncStatusOut
from ..services.store import RentalStore

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusOut)
def sync_status(store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    return SyncStatusOut(**store.sync.snapshot())


@router.post("/push", response_model=dict)
def sync_push(
    force: bool = Query(default=False),
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    """Push now. Unchanged content is skipped unless force=true."""
    store.sync.cancel_timer()
    wrote = store.sync.push(store.snapshot(), force=force)
    emit_audit(db, actor_user_id=p.user_id, action="sync.push", entity_type="sync", entity_id="remote", after={"wrote": wrote})
    return {"wrote": wrote, **SyncStatusOut(**store.sync.snapshot()).model_dump()}


@router.post("/reload", response_model=dict)
def sync_reload(
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    result = store.reload()
    emit_audit(db, actor_user_id=p.user_id, action="sync.reload", entity_type="sync", entity_id="remote", after={"source": result.source})
    return {"source": result.source, "removed": result.removed, **SyncStatusOut(**store.sync.snapshot()).model_dump()}
