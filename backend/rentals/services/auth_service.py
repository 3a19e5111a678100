# backend/rentals/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
from datetime import datetime, timedelta
from typing import Any

import jwt  # PyJWT

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import AppUser, UserRole

ROLES = ("supply_admin", "supply_analyst", "supply_partner")


class AuthError(Exception):
    pass


def _now() -> datetime:
    return datetime.utcnow()


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


def create_access_token(*, user_id: int, email: str, minutes: int | None = None) -> str:
    now = _now()
    ttl = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as e:
        raise AuthError("token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthError("invalid token") from e


def get_or_create_user(db: Session, email: str, display_name: str | None = None) -> AppUser:
    email = email.strip().lower()
    u = db.scalar(select(AppUser).where(AppUser.email == email))
    if u:
        return u
    u = AppUser(email=email, display_name=display_name or email.split("@")[0])
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def ensure_role(db: Session, *, user_id: int, role: str, property_id: str | None = None) -> UserRole:
    if role not in ROLES:
        raise AuthError(f"unknown role: {role}")
    q = select(UserRole).where(UserRole.user_id == int(user_id), UserRole.role == role)
    q = q.where(UserRole.property_id.is_(None)) if property_id is None else q.where(UserRole.property_id == property_id)
    row = db.scalar(q)
    if row:
        return row
    row = UserRole(user_id=int(user_id), role=role, property_id=property_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def set_password(db: Session, *, user: AppUser, password: str) -> None:
    if len(password or "") < 8:
        raise AuthError("password must be at least 8 characters")
    user.password_hash = hash_password(password)
    db.add(user)
    db.commit()


def login_user(db: Session, *, email: str, password: str) -> dict[str, Any]:
    email = email.strip().lower()
    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None or not user.password_hash or not verify_password(password, user.password_hash):
        raise AuthError("invalid credentials")

    user.last_login_at = _now()
    db.add(user)
    db.commit()

    return {
        "access_token": create_access_token(user_id=int(user.id), email=str(user.email)),
        "token_type": "bearer",
        "user_id": int(user.id),
    }
