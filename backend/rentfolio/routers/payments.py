# backend/rentfolio/routers/payments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_editor
from ..db import get_db
from ..domain.audit import emit_audit
from ..domain.reporting import visible_properties
from ..schemas import PaymentToggleIn, PaymentType
from ..services.ownership import must_get_record
from ..services.store import RentalStore

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=list[dict])
def list_payments(
    record_id: Optional[str] = Query(default=None),
    month: Optional[str] = Query(default=None),
    type: Optional[PaymentType] = Query(default=None),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    s = store.state
    visible = {prop.id for prop in visible_properties(s, p.role)}
    record_ids = {r.id for r in s.records if r.property_id in visible}
    rows = [pay for pay in s.payments if pay.record_id in record_ids]
    if record_id:
        rows = [pay for pay in rows if pay.record_id == record_id]
    if month:
        rows = [pay for pay in rows if pay.month == month]
    if type:
        rows = [pay for pay in rows if pay.type == type]
    return [pay.dump() for pay in rows]


@router.post("/toggle", response_model=dict)
def toggle_payment(
    payload: PaymentToggleIn,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    """Records a PAID payment for (unit, month, type), or removes the one that exists."""
    must_get_record(store, role=p.role, record_id=payload.record_id)
    pay = store.toggle_payment(
        payload.record_id,
        payload.month,
        payload.amount,
        due_date=payload.due_date,
        payment_type=payload.type,
        paid_to=payload.paid_to,
        payment_mode=payload.payment_mode,
    )
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="payment.record" if pay else "payment.remove",
        entity_type="record",
        entity_id=payload.record_id,
        after=pay.dump() if pay else None,
    )
    return {"paid": pay is not None, "payment": pay.dump() if pay else None}


@router.post("/refund/{record_id}", response_model=dict)
def refund_deposit(
    record_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    must_get_record(store, role=p.role, record_id=record_id)
    pay = store.refund_deposit(record_id)
    emit_audit(db, actor_user_id=p.user_id, action="deposit.refund", entity_type="payment", entity_id=pay.id, after=pay.dump())
    return pay.dump()
