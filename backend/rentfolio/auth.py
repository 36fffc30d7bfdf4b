# backend/rentfolio/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request

from .config import settings
from .schemas import UserRole
from .services.auth_service import decode_access_token
from .services.store import RentalStore


@dataclass(frozen=True)
class Principal:
    user_id: str
    username: str
    name: str
    role: UserRole


ROLE_ORDER = {UserRole.VIEWER: 1, UserRole.MANAGER: 2, UserRole.ADMIN: 3}


def _require_role(principal: Principal, min_role: UserRole) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER[min_role]:
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role.value}")


def get_store(request: Request) -> RentalStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="store not ready")
    return store


def get_principal(
    request: Request,
    store: RentalStore = Depends(get_store),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    JWT from the HttpOnly cookie, or Authorization: Bearer <token>.
    The user must still exist in the store; role comes from the store, not the token.
    """
    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    if not token and authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = store.state.find_user(str(claims.get("sub") or ""))
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    # picked up by the request log line
    request.state.user_id = user.id
    request.state.role = user.role.value
    return Principal(user_id=user.id, username=user.username, name=user.name, role=user.role)


def require_editor(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, UserRole.MANAGER)
    return p


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, UserRole.ADMIN)
    return p
