# backend/tests/test_auth_api.py
from __future__ import annotations

from conftest import ADMIN, make_property

from rentals.config import settings
from rentals.services.auth_service import ensure_role, get_or_create_user, set_password


def _make_user(db, email: str = "Partner.Login@Rentals.test", password: str = "s3cret-pass"):
    user = get_or_create_user(db, email)
    set_password(db, user=user, password=password)
    ensure_role(db, user_id=int(user.id), role="supply_partner", property_id="SP-TEST-1")
    return user


def test_login_sets_cookie_and_me_reads_it(client, db_session):
    make_property(db_session)
    user = _make_user(db_session)

    r = client.post("/api/auth/login", json={"email": "partner.login@rentals.test ", "password": "s3cret-pass"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user_id"] == user.id
    assert r.cookies.get(settings.jwt_cookie_name) == body["access_token"]

    client.cookies.set(settings.jwt_cookie_name, body["access_token"])
    me = client.get("/api/auth/me").json()
    assert me["email"] == "partner.login@rentals.test"
    assert me["roles"] == ["supply_partner"]
    assert me["assigned_property_ids"] == ["SP-TEST-1"]


def test_bearer_token_authenticates(client, db_session):
    make_property(db_session)
    make_property(db_session, "SP-OTHER")
    _make_user(db_session)
    token = client.post(
        "/api/auth/login", json={"email": "partner.login@rentals.test", "password": "s3cret-pass"}
    ).json()["access_token"]
    client.cookies.clear()

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200, r.text
    assert r.json()["email"] == "partner.login@rentals.test"

    # the token decides, not the dev headers
    r = client.get("/api/properties/SP-OTHER", headers={"Authorization": f"Bearer {token}", **ADMIN})
    assert r.status_code == 404


def test_login_rejects_bad_credentials(client, db_session):
    make_property(db_session)
    _make_user(db_session)

    r = client.post("/api/auth/login", json={"email": "partner.login@rentals.test", "password": "wrong-pass"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "nobody@rentals.test", "password": "s3cret-pass"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "  ", "password": "s3cret-pass"})
    assert r.status_code == 400


def test_invalid_token_is_401_even_with_dev_headers(client):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt", **ADMIN})
    assert r.status_code == 401


def test_dev_headers_still_work_without_token(client):
    r = client.get("/api/auth/me", headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["roles"] == ["supply_admin"]
