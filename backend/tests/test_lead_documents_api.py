# backend/tests/test_lead_documents_api.py
from __future__ import annotations

from conftest import ADMIN, make_lead, reload_lead

SIGN_PREFIX = "http://storage.test/storage/v1/object/sign/"
BUCKET = "leads-restricted-docs"


def _upload(client, lead_id: str = "LD-TEST-1", *, filename: str = "dni.pdf", **form):
    return client.post(
        f"/api/leads/{lead_id}/documents/upload",
        files={"file": (filename, b"%PDF-1.4 lead", "application/pdf")},
        data=form,
        headers=ADMIN,
    )


def _delete(client, lead_id: str = "LD-TEST-1", **body):
    return client.request("DELETE", f"/api/leads/{lead_id}/documents/delete", json=body, headers=ADMIN)


def _signed(path: str) -> str:
    return f"{SIGN_PREFIX}{BUCKET}/{path}?token=tok"


def test_identity_upload_goes_to_leads_bucket(client, db_session, storage):
    lead = make_lead(db_session)

    r = _upload(client, filename="DNI.JPG")
    assert r.status_code == 200, r.text
    body = r.json()

    assert body["bucket"] == BUCKET
    assert body["storage_path"].startswith("LD-TEST-1/identity/identity_doc_url_")
    assert body["storage_path"].endswith(".jpg")
    assert body["url"] == _signed(body["storage_path"])
    assert list(storage.uploads) == [f"{BUCKET}/{body['storage_path']}"]
    assert reload_lead(db_session, lead).identity_doc_url == body["url"]

    r = client.get("/api/leads/LD-TEST-1", headers=ADMIN)
    assert r.json()["identity_doc_url"] == body["url"]


def test_replacing_identity_removes_previous_file(client, db_session, storage):
    lead = make_lead(db_session, identity_doc_url=_signed("LD-TEST-1/identity/identity_doc_url_1.pdf"))

    r = _upload(client, oldValue=lead.identity_doc_url)
    assert r.status_code == 200, r.text

    assert storage.deleted == [f"{BUCKET}/LD-TEST-1/identity/identity_doc_url_1.pdf"]
    assert reload_lead(db_session, lead).identity_doc_url == r.json()["url"]


def test_obligatory_document_is_keyed_by_field(client, db_session):
    lead = make_lead(db_session)

    r = _upload(client, folder="laboral_financial", fieldKey="ultima_nomina")
    assert r.status_code == 200, r.text
    assert r.json()["storage_path"].startswith("LD-TEST-1/laboral_financial/ultima_nomina_")

    docs = reload_lead(db_session, lead).laboral_financial_docs
    assert docs["obligatory"] == {"ultima_nomina": r.json()["url"]}
    assert docs["complementary"] == {}


def test_unknown_field_key_is_rejected_before_storing(client, db_session, storage):
    make_lead(db_session)

    r = _upload(client, folder="laboral_financial", fieldKey="pasaporte")
    assert r.status_code == 400
    assert "fieldKey" in r.json()["detail"]

    r = _upload(client, folder="misc")
    assert r.status_code == 400
    assert storage.calls == []


def test_complementary_documents_group_by_type(client, db_session):
    lead = make_lead(db_session)

    first = _upload(client, docType="Ayudas", docTitle="Beca comedor").json()["url"]
    second = _upload(client, docType="Ayudas").json()["url"]

    group = reload_lead(db_session, lead).laboral_financial_docs["complementary"]["Ayudas"]
    assert [(d["title"], d["url"]) for d in group] == [("Beca comedor", first), ("Ayudas", second)]
    assert all(d["type"] == "Ayudas" and d["createdAt"] for d in group)

    r = _upload(client, docType="Lotería")
    assert r.status_code == 400


def test_upload_to_unknown_lead_is_404(client, db_session, storage):
    r = _upload(client, "LD-NOPE")
    assert r.status_code == 404
    assert storage.calls == []


def test_upload_requires_a_file(client, db_session):
    make_lead(db_session)
    r = client.post("/api/leads/LD-TEST-1/documents/upload", data={"folder": "identity"}, headers=ADMIN)
    assert r.status_code == 400


def test_sign_failure_leaves_lead_untouched(client, db_session, storage):
    lead = make_lead(db_session)
    storage.fail_sign = True

    r = _upload(client)
    assert r.status_code == 502

    assert len(storage.deleted) == 1
    assert storage.deleted[0].startswith(f"{BUCKET}/LD-TEST-1/identity/")
    assert reload_lead(db_session, lead).identity_doc_url is None


def test_delete_identity_document(client, db_session, storage):
    url = _signed("LD-TEST-1/identity/identity_doc_url_1.pdf")
    lead = make_lead(db_session, identity_doc_url=url)

    assert _delete(client).status_code == 400

    r = _delete(client, fileUrl=url)
    assert r.status_code == 200, r.text
    assert r.json()["storage_removed"] is True

    assert reload_lead(db_session, lead).identity_doc_url is None
    assert storage.deleted == [f"{BUCKET}/LD-TEST-1/identity/identity_doc_url_1.pdf"]


def test_delete_laboral_documents(client, db_session, storage):
    nomina = _signed("LD-TEST-1/laboral_financial/ultima_nomina_1.pdf")
    ayuda = _signed("LD-TEST-1/laboral_financial/complementary_2.pdf")
    lead = make_lead(
        db_session,
        laboral_financial_docs={
            "obligatory": {"ultima_nomina": nomina},
            "complementary": {"Ayudas": [{"type": "Ayudas", "title": "Beca", "url": ayuda}]},
        },
    )

    r = _delete(client, fileUrl=nomina, fieldType="laboral_financial", fieldKey="ultima_nomina")
    assert r.status_code == 200, r.text
    r = _delete(client, fileUrl=ayuda, fieldType="laboral_financial")
    assert r.status_code == 200, r.text

    assert reload_lead(db_session, lead).laboral_financial_docs == {"obligatory": {}, "complementary": {}}
    assert len(storage.deleted) == 2

    r = _delete(client, fileUrl=ayuda, fieldType="payroll")
    assert r.status_code == 400


def test_clear_obligatory_keeps_complementary(client, db_session, storage):
    complementary = {"Otros": [{"type": "Otros", "title": "Aval", "url": _signed("LD-TEST-1/laboral_financial/c_1.pdf")}]}
    lead = make_lead(
        db_session,
        laboral_financial_docs={
            "obligatory": {
                "ultima_nomina": _signed("LD-TEST-1/laboral_financial/ultima_nomina_1.pdf"),
                "vida_laboral": _signed("LD-TEST-1/laboral_financial/vida_laboral_1.pdf"),
                "contrato_laboral": None,
            },
            "complementary": complementary,
        },
    )

    r = client.post("/api/leads/LD-TEST-1/documents/clear-laboral-obligatory", headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["removed"] == 2

    assert reload_lead(db_session, lead).laboral_financial_docs == {"obligatory": {}, "complementary": complementary}
    assert sorted(storage.deleted) == [
        f"{BUCKET}/LD-TEST-1/laboral_financial/ultima_nomina_1.pdf",
        f"{BUCKET}/LD-TEST-1/laboral_financial/vida_laboral_1.pdf",
    ]


def test_lead_document_changes_are_audited(client, db_session):
    make_lead(db_session)
    assert _upload(client).status_code == 200

    r = client.get("/api/audit", params={"entity_type": "Lead", "entity_id": "LD-TEST-1"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert "lead.document_upload" in [e["action"] for e in r.json()]
