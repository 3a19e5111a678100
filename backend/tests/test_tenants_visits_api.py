# backend/tests/test_tenants_visits_api.py
from __future__ import annotations

from conftest import ADMIN, PARTNER, assign_partner, make_property, reload


def test_tenant_upsert_mirrors_onto_property(client, db_session):
    prop = make_property(db_session)
    assert client.get("/api/properties/SP-TEST-1/tenant", headers=ADMIN).status_code == 404

    r = client.put(
        "/api/properties/SP-TEST-1/tenant",
        json={"full_name": "Marta Gil", "email": "marta@example.com", "nif": "12345678Z"},
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    assert r.json()["property_id"] == "SP-TEST-1"

    r = client.put("/api/properties/SP-TEST-1/tenant", json={"phone": "+34 600 000 000"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    body = client.get("/api/properties/SP-TEST-1/tenant", headers=ADMIN).json()
    assert body["full_name"] == "Marta Gil"
    assert body["phone"] == "+34 600 000 000"

    row = reload(db_session, prop)
    assert row.tenant_full_name == "Marta Gil"
    assert row.tenant_email == "marta@example.com"
    assert row.tenant_phone == "+34 600 000 000"
    assert row.tenant_nif == "12345678Z"


def test_tenant_is_hidden_from_unassigned_partner(client, db_session):
    make_property(db_session)
    r = client.put("/api/properties/SP-TEST-1/tenant", json={"full_name": "x"}, headers=PARTNER)
    assert r.status_code == 404


def test_rental_upsert_and_read(client, db_session):
    make_property(db_session)
    assert client.get("/api/properties/SP-TEST-1/rental", headers=ADMIN).status_code == 404

    r = client.put(
        "/api/properties/SP-TEST-1/rental",
        json={"rent_price": 950, "start_date": "2026-11-01", "duration": "1 año"},
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    rental_id = r.json()["id"]

    r = client.put("/api/properties/SP-TEST-1/rental", json={"security_deposit": 1900}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["id"] == rental_id

    body = client.get("/api/properties/SP-TEST-1/rental", headers=ADMIN).json()
    assert body["rent_price"] == 950
    assert body["start_date"] == "2026-11-01"
    assert body["duration"] == "1 año"
    assert body["security_deposit"] == 1900


def _visit(client, when: str, visit_type: str = "scheduled-visit", **extra):
    return client.post(
        "/api/properties/SP-TEST-1/visits",
        json={"visit_date": when, "visit_type": visit_type, **extra},
        headers=ADMIN,
    )


def test_visits_crud(client, db_session):
    make_property(db_session)

    r = _visit(client, "2026-11-03T10:00:00", notes="Llaves en portería")
    assert r.status_code == 200, r.text
    visit = r.json()
    assert visit["created_by"] == "admin@rentals.test"

    assert _visit(client, "2026-11-03T10:00:00", visit_type="open-house").status_code == 422

    r = client.put(f"/api/visits/{visit['id']}", json={"notes": "Reprogramada"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["notes"] == "Reprogramada"
    assert r.json()["visit_type"] == "scheduled-visit"

    r = client.put(f"/api/visits/{visit['id']}", json={"visit_date": None}, headers=ADMIN)
    assert r.status_code == 400

    r = client.delete(f"/api/visits/{visit['id']}", headers=ADMIN)
    assert r.json() == {"ok": True}
    assert client.get("/api/properties/SP-TEST-1/visits", headers=ADMIN).json() == []
    assert client.delete(f"/api/visits/{visit['id']}", headers=ADMIN).status_code == 404


def test_visit_filters_include_whole_end_day(client, db_session):
    make_property(db_session)
    _visit(client, "2026-11-10T18:30:00", visit_type="contract-end")
    _visit(client, "2026-11-01T09:00:00")
    _visit(client, "2026-11-11T08:00:00")

    r = client.get(
        "/api/properties/SP-TEST-1/visits",
        params={"start_date": "2026-11-01", "end_date": "2026-11-10"},
        headers=ADMIN,
    )
    assert [v["visit_date"][:10] for v in r.json()] == ["2026-11-01", "2026-11-10"]

    r = client.get("/api/properties/SP-TEST-1/visits", params={"visit_type": "contract-end"}, headers=ADMIN)
    assert [v["visit_type"] for v in r.json()] == ["contract-end"]


def test_partner_manages_visits_of_assigned_property(client, db_session):
    make_property(db_session)
    make_property(db_session, "SP-OTHER")
    assign_partner(db_session, PARTNER["X-User-Email"], "SP-TEST-1")

    r = client.post(
        "/api/properties/SP-TEST-1/visits",
        json={"visit_date": "2026-11-03T10:00:00", "visit_type": "ipc-update"},
        headers=PARTNER,
    )
    assert r.status_code == 200, r.text

    r = client.get("/api/properties/SP-OTHER/visits", headers=PARTNER)
    assert r.status_code == 404
