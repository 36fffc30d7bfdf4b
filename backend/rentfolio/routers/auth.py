# backend/rentfolio/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_store
from ..config import settings
from ..db import get_db
from ..domain.audit import emit_audit
from ..schemas import LoginIn, LoginOut, PrincipalOut
from ..services.auth_service import create_access_token
from ..services.store import RentalStore

log = logging.getLogger("rentfolio.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    response: Response,
    store: RentalStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """
    payload: { username, password }
    - sets the JWT cookie and also returns the token for Bearer clients
    """
    user = store.authenticate(payload.username, payload.password)
    if user is None:
        log.info("login rejected")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user_id=user.id, username=user.username, role=user.role.value)
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )
    emit_audit(db, actor_user_id=user.id, action="login", entity_type="user", entity_id=user.id)
    log.info("login ok", extra={"user_id": user.id, "role": user.role.value})
    return LoginOut(user_id=user.id, username=user.username, name=user.name, role=user.role, access_token=token)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return PrincipalOut(user_id=p.user_id, username=p.username, name=p.name, role=p.role)
