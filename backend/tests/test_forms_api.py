# backend/tests/test_forms_api.py
from __future__ import annotations

from conftest import ADMIN, PARTNER, make_property, reload

ROOMS = "/api/properties/SP-TEST-1/inspection/rooms"
REVIEWS = "/api/properties/SP-TEST-1/prophero/reviews"


def _room(body: dict, key: str) -> dict:
    return next(r for r in body["rooms"] if r["key"] == key)


def test_patch_single_room(client, db_session):
    prop = make_property(db_session, bedrooms=1, bathrooms=1)

    r = client.patch(f"{ROOMS}/kitchen", json={"status": "good", "marketing_photos": ["https://img/k1.jpg"]}, headers=ADMIN)
    assert r.status_code == 200, r.text
    body = r.json()
    assert _room(body, "kitchen")["state"] == "good"
    assert body["completed"] == 1
    assert body["is_complete"] is False

    r = client.patch(f"{ROOMS}/kitchen", json={"comment": "Azulejo suelto"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    report = reload(db_session, prop).technical_inspection_report
    assert report["kitchen"]["marketing_photos"] == ["https://img/k1.jpg"]
    assert report["kitchen"]["comment"] == "Azulejo suelto"


def test_patch_indexed_room(client, db_session):
    make_property(db_session, bedrooms=2, bathrooms=1)

    r = client.patch(
        f"{ROOMS}/bedrooms",
        params={"room_index": 1},
        json={
            "status": "incident",
            "comment": "Humedad",
            "incident_photos": ["https://img/b1.jpg"],
            "affects_commercialization": True,
        },
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    assert _room(r.json(), "bedrooms[1]")["state"] == "blocking"
    assert _room(r.json(), "bedrooms[0]")["state"] == "incomplete"


def test_patch_room_rejections(client, db_session):
    make_property(db_session, bedrooms=2, bathrooms=1)
    ok = {"status": "good"}

    assert client.patch(f"{ROOMS}/bedrooms", params={"room_index": 2}, json=ok, headers=ADMIN).status_code == 400
    assert client.patch(f"{ROOMS}/bathrooms", params={"room_index": 1}, json=ok, headers=ADMIN).status_code == 400
    assert client.patch(f"{ROOMS}/bedrooms", json=ok, headers=ADMIN).status_code == 400
    assert client.patch(f"{ROOMS}/attic", json=ok, headers=ADMIN).status_code == 400
    assert client.patch(f"{ROOMS}/kitchen", json={}, headers=ADMIN).status_code == 400
    assert client.patch(f"{ROOMS}/kitchen", json={"status": "bad"}, headers=ADMIN).status_code == 422
    assert client.patch(f"{ROOMS}/kitchen", json={"color": "blue"}, headers=ADMIN).status_code == 422
    assert client.patch(f"{ROOMS}/kitchen", json=ok, headers=PARTNER).status_code == 404


def test_task_delete_needs_phase_and_type(client, db_session):
    make_property(db_session)
    url = "/api/properties/SP-TEST-1/tasks"

    r = client.post(url, json={"phase": "accepted", "task_type": "contractSigned", "is_completed": True}, headers=ADMIN)
    assert r.status_code == 200, r.text

    assert client.delete(url, params={"phase": "accepted"}, headers=ADMIN).status_code == 400
    assert client.delete(url, params={"task_type": "contractSigned"}, headers=ADMIN).status_code == 400

    r = client.delete(url, params={"phase": "accepted", "task_type": "contractSigned"}, headers=ADMIN)
    assert r.json() == {"ok": True}
    assert client.get(url, headers=ADMIN).json() == []

    r = client.delete(url, params={"phase": "accepted", "task_type": "contractSigned"}, headers=ADMIN)
    assert r.status_code == 404


def test_review_verdicts(client, db_session):
    make_property(db_session, admin_name="Lucía")

    r = client.put(f"{REVIEWS}/property-management-info", json={"is_correct": False, "comments": "Falta llave"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    review = r.json()["reviews"]["property-management-info"]
    assert review["isCorrect"] is False
    assert review["hasIssue"] is True
    assert review["snapshot"]["admin_name"] == "Lucía"

    # comments alone flag the section as incorrect
    r = client.put(f"{REVIEWS}/home-insurance", json={"comments": "Póliza caducada"}, headers=ADMIN)
    assert r.json()["reviews"]["home-insurance"]["isCorrect"] is False

    r = client.post(f"{REVIEWS}/property-management-info/complete", headers=ADMIN)
    assert r.status_code == 200, r.text
    review = r.json()["reviews"]["property-management-info"]
    assert review["isCorrect"] is True
    assert review["hasIssue"] is True

    assert client.put(f"{REVIEWS}/property-management-info", json={}, headers=ADMIN).status_code == 400
    assert client.put(f"{REVIEWS}/no-such-section", json={"is_correct": True}, headers=ADMIN).status_code == 400
    assert client.post(f"{REVIEWS}/no-such-section/complete", headers=ADMIN).status_code == 400

    stored = client.get(REVIEWS, headers=ADMIN).json()["reviews"]
    assert set(stored) == {"property-management-info", "home-insurance"}


def test_submit_comments(client, db_session):
    make_property(db_session)

    r = client.post(f"{REVIEWS}/submit-comments", headers=ADMIN)
    assert r.status_code == 400

    client.put(f"{REVIEWS}/legal-documents", json={"is_correct": False, "comments": "Nota simple antigua"}, headers=ADMIN)
    client.put(f"{REVIEWS}/technical-documents", json={"is_correct": True}, headers=ADMIN)

    r = client.post(f"{REVIEWS}/submit-comments", headers=ADMIN)
    assert r.status_code == 200, r.text
    body = r.json()
    assert [e["sectionId"] for e in body["submitted"]] == ["legal-documents"]
    assert body["submitted"][0]["comments"] == "Nota simple antigua"
    assert body["reviews"]["legal-documents"]["submittedComments"] == "Nota simple antigua"
    meta = body["reviews"]["_meta"]
    assert meta["commentsSubmitted"] is True
    assert len(meta["commentSubmissionHistory"]) == 1

    r = client.get("/api/workflow/events", params={"property_id": "SP-TEST-1"}, headers=ADMIN)
    assert "property.prophero_comments_submitted" in [e["event_type"] for e in r.json()]
