# backend/rentfolio/routers/records.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_editor
from ..db import get_db
from ..domain.audit import emit_audit
from ..domain.clock import as_utc
from ..domain.unit_history import history_for, values_as_of
from ..services.ownership import must_get_record
from ..services.store import RentalStore
from ..schemas import RecordIn
from .properties import unit_out

router = APIRouter(prefix="/records", tags=["records"])


@router.get("/{record_id}", response_model=dict)
def get_record(record_id: str, store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    must_get_record(store, role=p.role, record_id=record_id)
    return unit_out(store, record_id)


@router.put("/{record_id}", response_model=dict)
def update_record(
    record_id: str,
    payload: RecordIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    must_get_record(store, role=p.role, record_id=record_id)
    before = store.state.values_for(record_id)
    store.update_record(record_id, payload.values, payload.effective_from)
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="record.update",
        entity_type="record",
        entity_id=record_id,
        before=before,
        after=store.state.values_for(record_id),
    )
    return unit_out(store, record_id)


@router.delete("/{record_id}")
def delete_record(
    record_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    must_get_record(store, role=p.role, record_id=record_id)
    before = store.state.values_for(record_id)
    dead = store.delete_record(record_id)
    emit_audit(db, actor_user_id=p.user_id, action="record.delete", entity_type="record", entity_id=record_id, before=before)
    return {"ok": True, "deleted": len(dead)}


@router.get("/{record_id}/history", response_model=list[dict])
def record_history(record_id: str, store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    must_get_record(store, role=p.role, record_id=record_id)
    return [h.dump() for h in history_for(store.state.unit_history, record_id)]


@router.get("/{record_id}/as-of", response_model=dict)
def record_as_of(
    record_id: str,
    at: datetime = Query(..., description="ISO instant"),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    must_get_record(store, role=p.role, record_id=record_id)
    values = values_as_of(store.state.unit_history, record_id, as_utc(at))
    return {"recordId": record_id, "at": at.isoformat(), "values": values}
