# backend/rentfolio/routers/property_types.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_admin
from ..db import get_db
from ..domain.audit import emit_audit
from ..schemas import PropertyTypeIn
from ..services.store import RentalStore

router = APIRouter(prefix="/property-types", tags=["property-types"])


@router.get("", response_model=list[dict])
def list_property_types(store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    return [t.dump() for t in store.state.property_types]


@router.get("/{type_id}", response_model=dict)
def get_property_type(type_id: str, store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    return store.must_get_property_type(type_id).dump()


@router.post("", response_model=dict)
def create_property_type(
    payload: PropertyTypeIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    pt = store.add_property_type(payload.name, payload.columns, payload.default_due_date_day)
    emit_audit(db, actor_user_id=p.user_id, action="property_type.create", entity_type="property_type", entity_id=pt.id, after=pt.dump())
    return pt.dump()


@router.put("/{type_id}", response_model=dict)
def update_property_type(
    type_id: str,
    payload: PropertyTypeIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    before = store.must_get_property_type(type_id).dump()
    pt = store.update_property_type(type_id, payload.name, payload.columns, payload.default_due_date_day)
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="property_type.update",
        entity_type="property_type",
        entity_id=type_id,
        before=before,
        after=pt.dump(),
    )
    return pt.dump()


@router.delete("/{type_id}")
def delete_property_type(
    type_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    before = store.must_get_property_type(type_id).dump()
    store.delete_property_type(type_id)
    emit_audit(db, actor_user_id=p.user_id, action="property_type.delete", entity_type="property_type", entity_id=type_id, before=before)
    return {"ok": True}
