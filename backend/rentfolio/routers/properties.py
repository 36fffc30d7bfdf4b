# backend/rentfolio/routers/properties.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_admin, require_editor
from ..db import get_db
from ..domain.audit import emit_audit
from ..domain.reporting import visible_properties
from ..domain.unit_history import open_interval
from ..schemas import Property, PropertyIn, PropertyPatch, RecordIn, UserRole
from ..services.ownership import must_get_property
from ..services.store import RentalStore

router = APIRouter(prefix="/properties", tags=["properties"])


def property_out(store: RentalStore, prop: Property, role: UserRole) -> dict[str, Any]:
    out = prop.dump()
    out["unitCount"] = len(store.state.records_for(prop.id))
    # capital figures are admin-only
    if role != UserRole.ADMIN:
        out.pop("totalInvestment", None)
    return out


def unit_out(store: RentalStore, record_id: str) -> dict[str, Any]:
    s = store.state
    rec = s.find_record(record_id)
    current = open_interval(s.unit_history, record_id)
    out = rec.dump()
    out["values"] = s.values_for(record_id)
    out["currentSince"] = current.effective_from if current else None
    out["payments"] = [pay.dump() for pay in s.payments if pay.record_id == record_id]
    return out


@router.get("", response_model=list[dict])
def list_properties(store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    return [property_out(store, prop, p.role) for prop in visible_properties(store.state, p.role)]


@router.get("/{property_id}", response_model=dict)
def get_property(property_id: str, store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    prop = must_get_property(store, role=p.role, property_id=property_id)
    pt = store.state.find_property_type(prop.property_type_id)
    out = property_out(store, prop, p.role)
    out["propertyType"] = pt.dump() if pt else None
    out["units"] = [unit_out(store, r.id) for r in store.state.records_for(prop.id)]
    return out


@router.post("", response_model=dict)
def create_property(
    payload: PropertyIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    prop = store.add_property(payload.name, payload.property_type_id, payload.address)
    emit_audit(db, actor_user_id=p.user_id, action="property.create", entity_type="property", entity_id=prop.id, after=prop.dump())
    return property_out(store, prop, p.role)


@router.patch("/{property_id}", response_model=dict)
def update_property(
    property_id: str,
    payload: PropertyPatch,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    before = store.must_get_property(property_id).dump()
    prop = store.update_property(
        property_id,
        name=payload.name,
        address=payload.address,
        total_investment=payload.total_investment,
    )
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="property.update",
        entity_type="property",
        entity_id=property_id,
        before=before,
        after=prop.dump(),
    )
    return property_out(store, prop, p.role)


@router.post("/{property_id}/visibility", response_model=dict)
def toggle_visibility(
    property_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    prop = store.toggle_property_visibility(property_id)
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="property.visibility",
        entity_type="property",
        entity_id=property_id,
        after={"isVisibleToManager": prop.is_visible_to_manager},
    )
    return property_out(store, prop, p.role)


@router.delete("/{property_id}")
def delete_property(
    property_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    before = store.must_get_property(property_id).dump()
    dead = store.delete_property(property_id)
    emit_audit(db, actor_user_id=p.user_id, action="property.delete", entity_type="property", entity_id=property_id, before=before)
    return {"ok": True, "deleted": len(dead)}


# ---------------- units under a property ----------------

@router.get("/{property_id}/records", response_model=list[dict])
def list_records(property_id: str, store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    must_get_property(store, role=p.role, property_id=property_id)
    return [unit_out(store, r.id) for r in store.state.records_for(property_id)]


@router.post("/{property_id}/records", response_model=dict)
def create_record(
    property_id: str,
    payload: RecordIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    must_get_property(store, role=p.role, property_id=property_id)
    rec = store.add_record(property_id, payload.values, payload.effective_from)
    emit_audit(db, actor_user_id=p.user_id, action="record.create", entity_type="record", entity_id=rec.id, after=payload.values)
    return unit_out(store, rec.id)
