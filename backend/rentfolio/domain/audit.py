# backend/rentfolio/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..models import AuditEvent


def _changed(before: Optional[dict[str, Any]], after: Optional[dict[str, Any]]) -> tuple[Optional[dict], Optional[dict]]:
    """On updates keep only the keys whose value changed; creates and deletes are stored whole."""
    if before is None or after is None:
        return before, after
    keys = sorted(set(before) | set(after))
    diff = [k for k in keys if before.get(k) != after.get(k)]
    return {k: before.get(k) for k in diff}, {k: after.get(k) for k in diff}


def _json_or_none(v: Optional[dict[str, Any]]) -> Optional[str]:
    return None if v is None else json.dumps(v, sort_keys=True, default=str, ensure_ascii=False)


def audit_write(
    db: Session,
    *,
    actor_user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    commit: bool = False,
) -> AuditEvent:
    """
    Add one audit row for a store mutation.

    Entity ids are the store's string ids (property, unit, user, ...), not
    database keys. The caller decides when to commit.
    """
    before, after = _changed(before, after)
    row = AuditEvent(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_json_or_none(before),
        after_json=_json_or_none(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def emit_audit(
    db: Session,
    *,
    actor_user_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> None:
    """Routers call this after the store mutation succeeded; commits right away."""
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before=before,
        after=after,
        commit=True,
    )


def recent_events(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    actor_user_id: Optional[str] = None,
    limit: int = 200,
) -> list[AuditEvent]:
    q = select(AuditEvent).order_by(desc(AuditEvent.id))
    if entity_type:
        q = q.where(AuditEvent.entity_type == entity_type)
    if entity_id:
        q = q.where(AuditEvent.entity_id == entity_id)
    if actor_user_id:
        q = q.where(AuditEvent.actor_user_id == actor_user_id)
    return list(db.scalars(q.limit(limit)).all())
