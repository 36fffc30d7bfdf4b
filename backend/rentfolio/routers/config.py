# backend/rentfolio/routers/config.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store, require_editor
from ..db import get_db
from ..domain.audit import emit_audit
from ..schemas import ConfigOptionIn, ConfigPatch
from ..services.store import RentalStore

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=dict)
def get_config(store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    return store.state.config.dump()


@router.patch("", response_model=dict)
def patch_config(
    payload: ConfigPatch,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    before = store.state.config.dump()
    cfg = store.update_config(
        paid_to_options=payload.paid_to_options,
        payment_mode_options=payload.payment_mode_options,
    )
    emit_audit(db, actor_user_id=p.user_id, action="config.update", entity_type="config", entity_id="app", before=before, after=cfg.dump())
    return cfg.dump()


@router.post("/options/{kind}", response_model=dict)
def add_option(
    kind: str,
    payload: ConfigOptionIn,
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(require_editor),
):
    """kind: paid_to | payment_mode"""
    return store.add_config_option(kind, payload.option).dump()


@router.delete("/options/{kind}", response_model=dict)
def remove_option(
    kind: str,
    option: str = Query(...),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(require_editor),
):
    return store.remove_config_option(kind, option).dump()
