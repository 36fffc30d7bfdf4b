# backend/rentfolio/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException

from ..schemas import Property, PropertyRecord, UserRole
from .store import RentalStore


def can_see_property(role: UserRole, prop: Property) -> bool:
    return role != UserRole.MANAGER or prop.is_visible_to_manager


def must_get_property(store: RentalStore, *, role: UserRole, property_id: str) -> Property:
    row = store.state.find_property(property_id)
    # hidden properties look missing to managers
    if not row or not can_see_property(role, row):
        raise HTTPException(status_code=404, detail="property not found")
    return row


def must_get_record(store: RentalStore, *, role: UserRole, record_id: str) -> PropertyRecord:
    row = store.state.find_record(record_id)
    if not row:
        raise HTTPException(status_code=404, detail="unit not found")
    must_get_property(store, role=role, property_id=row.property_id)
    return row
