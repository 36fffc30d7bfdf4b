# backend/rentfolio/routers/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_store, require_admin
from ..db import get_db
from ..domain.audit import emit_audit
from ..schemas import User, UserCreate, UserOut
from ..services.store import RentalStore

router = APIRouter(prefix="/users", tags=["users"])


def _out(u: User) -> UserOut:
    return UserOut(id=u.id, username=u.username, name=u.name, role=u.role, created_at=u.created_at)


@router.get("", response_model=list[UserOut])
def list_users(store: RentalStore = Depends(get_store), p: Principal = Depends(require_admin)):
    return [_out(u) for u in store.state.users]


@router.post("", response_model=UserOut)
def create_user(
    payload: UserCreate,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    user = store.add_user(payload.name, payload.username, payload.password, payload.role)
    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="user.create",
        entity_type="user",
        entity_id=user.id,
        after={"username": user.username, "role": user.role.value},
    )
    return _out(user)


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    store.delete_user(user_id, acting_user_id=p.user_id)
    emit_audit(db, actor_user_id=p.user_id, action="user.delete", entity_type="user", entity_id=user_id)
    return {"ok": True}
