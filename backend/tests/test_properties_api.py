# backend/tests/test_properties_api.py
from __future__ import annotations

from conftest import ADMIN, ANALYST, PARTNER, assign_partner, make_property, reload

from rentals.domain import phases as ph
from rentals.models import Lead, LeadProperty


def test_create_and_get_property(client):
    r = client.post(
        "/api/properties",
        json={"property_unique_id": "SP-NEW-1", "address": "Calle Luna 4", "city": "Madrid"},
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["current_stage"] == ph.PROPHERO.title
    assert body["days_in_stage"] == 0

    r = client.post("/api/properties", json={"property_unique_id": "SP-NEW-1", "address": "x"}, headers=ADMIN)
    assert r.status_code == 409

    assert client.get("/api/properties/SP-NEW-1", headers=ANALYST).json()["city"] == "Madrid"
    assert client.get("/api/properties/SP-MISSING", headers=ADMIN).status_code == 404


def test_partner_cannot_create_properties(client):
    r = client.post("/api/properties", json={"property_unique_id": "SP-P", "address": "x"}, headers=PARTNER)
    assert r.status_code == 403


def test_update_merges_fields_and_emits_event(client, db_session):
    prop = make_property(db_session, city="Madrid", admin_name="Lucía")

    r = client.put("/api/properties/SP-TEST-1", json={"city": "Valencia"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["property"]["city"] == "Valencia"
    assert r.json()["property"]["admin_name"] == "Lucía"
    assert reload(db_session, prop).city == "Valencia"

    events = client.get(
        "/api/workflow/events",
        params={"property_id": "SP-TEST-1", "since_id": 0},
        headers=ADMIN,
    ).json()
    updated = [e for e in events if e["event_type"] == "property.updated"]
    assert len(updated) == 1
    assert updated[0]["payload"]["fields"] == ["city"]

    cursor = events[-1]["id"]
    assert client.get(
        "/api/workflow/events", params={"property_id": "SP-TEST-1", "since_id": cursor}, headers=ADMIN
    ).json() == []


def test_update_rejects_unknown_fields(client, db_session):
    make_property(db_session)
    r = client.put("/api/properties/SP-TEST-1", json={"not_a_column": 1}, headers=ADMIN)
    assert r.status_code == 422


def test_update_rejects_clearing_required_columns(client, db_session):
    prop = make_property(db_session, needs_update=True)

    for body in ({"address": None}, {"needs_update": None}, {"address": "   "}):
        r = client.put("/api/properties/SP-TEST-1", json=body, headers=ADMIN)
        assert r.status_code == 400, body

    row = reload(db_session, prop)
    assert row.address == "Calle Mayor 1"
    assert row.needs_update is True

    r = client.put("/api/properties/SP-TEST-1", json={"city": None}, headers=ADMIN)
    assert r.status_code == 200, r.text


def test_correcting_a_flagged_field_reopens_prophero_review(client, db_session):
    make_property(db_session, doc_energy_cert="https://x/cee.pdf")

    r = client.put(
        "/api/properties/SP-TEST-1/prophero/reviews/technical-documents",
        json={"is_correct": False, "comments": "CEE ilegible"},
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    assert r.json()["reviews"]["technical-documents"]["isCorrect"] is False

    r = client.put("/api/properties/SP-TEST-1", json={"doc_energy_cert": "https://x/cee-v2.pdf"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["reset_sections"] == ["technical-documents"]

    reviews = client.get("/api/properties/SP-TEST-1/prophero/reviews", headers=ADMIN).json()["reviews"]
    assert reviews["technical-documents"]["isCorrect"] is None
    assert reviews["technical-documents"]["hasIssue"] is True


def test_kanban_groups_and_sorts_columns(client, db_session):
    make_property(db_session, "SP-A", stage=ph.READY, days_to_publish_rent=3)
    make_property(db_session, "SP-B", stage=ph.READY)
    make_property(db_session, "SP-C", stage=ph.READY, days_to_publish_rent=10)
    make_property(db_session, "SP-D", stage=ph.RENTED)

    r = client.get("/api/properties", params={"kanban_type": "captacion"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total"] == 3
    assert [c["phase"] for c in body["columns"]] == ["prophero", "ready", "published", "accepted", "pending"]

    ready = next(c for c in body["columns"] if c["phase"] == "ready")
    assert [i["property_unique_id"] for i in ready["items"]] == ["SP-C", "SP-A", "SP-B"]

    portfolio = client.get("/api/properties", params={"kanban_type": "portfolio"}, headers=ADMIN).json()
    assert portfolio["total"] == 1

    assert client.get("/api/properties", params={"kanban_type": "nope"}, headers=ADMIN).status_code == 400


def test_partner_only_sees_assigned_properties(client, db_session):
    make_property(db_session, "SP-A")
    make_property(db_session, "SP-B")
    assign_partner(db_session, PARTNER["X-User-Email"], "SP-A")

    body = client.get("/api/properties", headers=PARTNER).json()
    assert body["total"] == 1
    assert client.get("/api/properties/SP-A", headers=PARTNER).status_code == 200
    assert client.get("/api/properties/SP-B", headers=PARTNER).status_code == 404
    assert client.get("/api/workflow/events", headers=PARTNER).status_code == 400


def test_published_filters_and_options(client, db_session):
    make_property(
        db_session, "SP-1", stage=ph.PUBLISHED, city="Madrid", area_cluster="Centro",
        announcement_price=1400.0, bedrooms=3, rental_type="Larga estancia",
    )
    make_property(
        db_session, "SP-2", stage=ph.PUBLISHED, city="Madrid", area_cluster="Chamberí",
        announcement_price=900.0, bedrooms=1, rental_type="Larga estancia",
    )
    make_property(
        db_session, "SP-3", stage=ph.PUBLISHED, city="Valencia", area_cluster="Ruzafa",
        announcement_price=800.0, bedrooms=2, rental_type="Corta estancia",
    )
    make_property(db_session, "SP-4", stage=ph.READY, city="Madrid", announcement_price=500.0)

    body = client.get("/api/properties/published", headers=ADMIN).json()
    assert [p["property_unique_id"] for p in body["properties"]] == ["SP-3", "SP-2", "SP-1"]
    assert body["filter_options"]["cities"] == ["Madrid", "Valencia"]
    assert body["filter_options"]["rental_types"] == ["Corta estancia", "Larga estancia"]

    body = client.get("/api/properties/published", params={"city": "Madrid"}, headers=ADMIN).json()
    assert [p["property_unique_id"] for p in body["properties"]] == ["SP-2", "SP-1"]
    assert body["filter_options"]["area_clusters"] == ["Centro", "Chamberí"]

    body = client.get(
        "/api/properties/published",
        params={"max_price": 1000, "min_bedrooms": 1, "exclude_ids": ["SP-3"]},
        headers=ADMIN,
    ).json()
    assert [p["property_unique_id"] for p in body["properties"]] == ["SP-2"]


def test_backward_move_needs_admin(client, db_session):
    prop = make_property(db_session, stage=ph.PUBLISHED)

    r = client.post("/api/properties/SP-TEST-1/phase/move", json={"target": "ready"}, headers=ANALYST)
    assert r.status_code == 400
    assert reload(db_session, prop).current_stage == ph.PUBLISHED.title

    r = client.post("/api/properties/SP-TEST-1/phase/move", json={"target": "ready"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["to"] == ph.READY.title
    assert r.json()["phase"] == "ready"


def test_progress_reports_sections(client, db_session):
    make_property(db_session, stage=ph.READY, announcement_price=950.0)
    body = client.get("/api/properties/SP-TEST-1/progress", headers=ADMIN).json()

    assert body["phase"] == "ready"
    pricing = next(s for s in body["sections"] if s["id"] == "pricing-strategy")
    assert pricing["completed"] == 1
    assert pricing["total"] == 2
    assert body["phase_complete"] is False

    assert client.get("/api/properties/SP-TEST-1/progress", params={"phase": "x"}, headers=ADMIN).status_code == 400


def test_lead_acceptance_moves_linked_property(client, db_session):
    prop = make_property(db_session, stage=ph.PUBLISHED)

    r = client.post("/api/leads", json={"leads_unique_id": "LD-1", "name": "Marta"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    r = client.post("/api/leads/LD-1/properties", json={"property_id": "SP-TEST-1"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert client.post("/api/leads/LD-1/properties", json={"property_id": "SP-TEST-1"}, headers=ADMIN).status_code == 409
    assert reload(db_session, prop).current_stage == ph.PUBLISHED.title

    r = client.post("/api/leads/LD-1/phase", json={"phase": ph.LEAD_ACCEPTED}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["days_in_phase"] == 0
    assert reload(db_session, prop).current_stage == ph.ACCEPTED.title

    assert client.post("/api/leads/LD-1/phase", json={"phase": "nope"}, headers=ADMIN).status_code == 400


def test_patch_lead_property_visit_date(client, db_session):
    make_property(db_session)
    db_session.add(Lead(leads_unique_id="LD-1", name="Marta"))
    db_session.flush()
    link = LeadProperty(leads_unique_id="LD-1", properties_unique_id="SP-TEST-1")
    db_session.add(link)
    db_session.commit()
    link_id = link.id

    r = client.patch(
        f"/api/leads-properties/{link_id}",
        json={"scheduled_visit_date": "2026-03-02T10:30:00"},
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    assert r.json()["scheduled_visit_date"].startswith("2026-03-02T10:30")

    r = client.patch(f"/api/leads-properties/{link_id}", json={"scheduled_visit_date": ""}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["scheduled_visit_date"] is None

    assert client.patch(f"/api/leads-properties/{link_id}", json={}, headers=ADMIN).status_code == 400
    assert client.patch("/api/leads-properties/9999", json={}, headers=ADMIN).status_code == 404
