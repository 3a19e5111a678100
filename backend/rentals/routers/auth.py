# backend/rentals/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..config import settings
from ..db import get_db
from ..schemas import LoginIn, MeOut, TokenOut
from ..services.auth_service import AuthError, login_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(
    payload: LoginIn,
    response: Response,
    db: Session = Depends(get_db),
):
    """Returns the token and also sets it as an http-only cookie."""
    if not payload.email.strip() or not payload.password:
        raise HTTPException(status_code=400, detail="email and password are required")
    try:
        out = login_user(db, email=payload.email, password=payload.password)
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    response.set_cookie(
        settings.jwt_cookie_name,
        out["access_token"],
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="lax",
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )
    return out


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=MeOut)
def me(p: Principal = Depends(get_principal)):
    return MeOut(
        user_id=p.user_id,
        email=p.email,
        roles=sorted(p.roles),
        assigned_property_ids=sorted(p.assigned_property_ids),
    )
