# backend/rentfolio/routers/audit.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..domain.audit import recent_events
from ..schemas import AuditEventOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditEventOut])
def list_audit(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    actor_user_id: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    """Newest first. Update rows hold only the fields that changed."""
    return recent_events(db, entity_type=entity_type, entity_id=entity_id, actor_user_id=actor_user_id, limit=limit)
