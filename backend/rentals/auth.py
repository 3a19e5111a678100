# backend/rentals/auth.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, UserRole
from .services.auth_service import ROLES, AuthError, decode_access_token


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    roles: frozenset[str]
    # only used for supply_partner: properties the partner is assigned to
    assigned_property_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return "supply_admin" in self.roles

    @property
    def sees_all_properties(self) -> bool:
        return bool(self.roles & {"supply_admin", "supply_analyst"})

    def can_access_property(self, property_unique_id: str) -> bool:
        return self.sees_all_properties or property_unique_id in self.assigned_property_ids


def _principal_for_user(db: Session, user: AppUser) -> Principal:
    rows = db.scalars(select(UserRole).where(UserRole.user_id == int(user.id))).all()
    roles = frozenset(str(r.role) for r in rows)
    assigned = frozenset(str(r.property_id) for r in rows if r.role == "supply_partner" and r.property_id)
    if not roles:
        raise HTTPException(status_code=403, detail="User has no role")
    return Principal(user_id=int(user.id), email=str(user.email), roles=roles, assigned_property_ids=assigned)


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) JWT cookie OR Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    if not token and authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        try:
            claims = decode_access_token(token)
        except AuthError as e:
            raise HTTPException(status_code=401, detail=str(e))
        sub = str(claims.get("sub") or "")
        if not sub.isdigit():
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, int(sub))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return _principal_for_user(db, user)

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
        role_hint = (request.headers.get(settings.dev_header_user_role) or settings.dev_default_role).strip().lower()
        if not email:
            raise HTTPException(status_code=401, detail="Missing X-User-Email for dev auth")

        user = db.scalar(select(AppUser).where(AppUser.email == email))
        if user is None and settings.dev_auto_provision:
            user = AppUser(email=email, display_name=email.split("@")[0])
            db.add(user)
            db.flush()
            db.add(UserRole(user_id=int(user.id), role=role_hint if role_hint in ROLES else settings.dev_default_role))
            db.commit()
            db.refresh(user)

        if user is None:
            raise HTTPException(status_code=401, detail="Dev auth could not provision user")
        return _principal_for_user(db, user)

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_editor(p: Principal = Depends(get_principal)) -> Principal:
    """Admins and analysts; partners only edit through property-scoped routes."""
    if not p.sees_all_properties:
        raise HTTPException(status_code=403, detail="Requires supply_admin or supply_analyst")
    return p


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    if not p.is_admin:
        raise HTTPException(status_code=403, detail="Requires supply_admin")
    return p
