# backend/tests/test_prophero_reviews.py
from __future__ import annotations

import pytest

from rentals.domain.prophero_reviews import (
    META_KEY,
    ReviewError,
    mark_complete,
    reset_on_field_change,
    set_review,
    submit_comments,
    update_comments,
)

VALUES = {"admin_name": "Lucía", "keys_location": "Portería", "doc_renovation_files": ["b.pdf", "a.pdf"]}


def test_incorrect_review_flags_issue_and_snapshots_fields():
    out = set_review({}, "property-management-info", values=VALUES, is_correct=False, comments="Falta llave")
    r = out["property-management-info"]
    assert r["reviewed"] is True
    assert r["isCorrect"] is False
    assert r["hasIssue"] is True
    assert r["comments"] == "Falta llave"
    assert r["snapshot"] == {"admin_name": "Lucía", "keys_location": "Portería"}

    out = set_review(out, "property-management-info", values=VALUES, is_correct=True)
    r = out["property-management-info"]
    assert r["isCorrect"] is True
    assert r["hasIssue"] is True
    assert r["comments"] == "Falta llave"


def test_update_comments_defaults_to_incorrect():
    out = update_comments({}, "legal-documents", comments="Nota simple caducada", values=VALUES)
    assert out["legal-documents"]["isCorrect"] is False
    assert out["legal-documents"]["hasIssue"] is True

    out = mark_complete(out, "legal-documents", values=VALUES)
    assert out["legal-documents"]["isCorrect"] is True
    assert out["legal-documents"]["reviewed"] is True


def test_unknown_section_is_rejected():
    with pytest.raises(ReviewError):
        set_review({}, "not-a-section", values=VALUES, is_correct=True)


def test_submit_comments_appends_history_and_keeps_first_timestamp():
    reviews = set_review({}, "home-insurance", values=VALUES, is_correct=False, comments="Póliza vencida")
    reviews = set_review(reviews, "legal-documents", values=VALUES, is_correct=True)

    out, entries = submit_comments(reviews, values=VALUES)
    assert [e["sectionId"] for e in entries] == ["home-insurance"]
    assert entries[0]["sectionTitle"] == "Seguro de Hogar"
    assert out["home-insurance"]["submittedComments"] == "Póliza vencida"

    meta = out[META_KEY]
    assert meta["commentsSubmitted"] is True
    first_at = meta["commentsSubmittedAt"]
    assert len(meta["commentSubmissionHistory"]) == 1

    out2, _ = submit_comments(out, values=VALUES)
    assert out2[META_KEY]["commentsSubmittedAt"] == first_at
    assert len(out2[META_KEY]["commentSubmissionHistory"]) == 2


def test_submit_without_comments_fails():
    with pytest.raises(ReviewError):
        submit_comments({}, values=VALUES)


def test_field_change_resets_incorrect_section():
    values = {"doc_energy_cert": "https://x/cee.pdf", "doc_renovation_files": ["b.pdf", "a.pdf"]}
    reviews = set_review({}, "technical-documents", values=values, is_correct=False, comments="CEE ilegible")

    # same list, different order: no change
    out, reset = reset_on_field_change(reviews, {"doc_renovation_files": ["a.pdf", "b.pdf"]})
    assert reset == []

    out, reset = reset_on_field_change(reviews, {"doc_energy_cert": "https://x/cee-v2.pdf"})
    assert reset == ["technical-documents"]
    r = out["technical-documents"]
    assert r["isCorrect"] is None
    assert r["reviewed"] is False
    assert r["comments"] is None
    assert r["hasIssue"] is True


def test_field_change_ignores_correct_sections():
    reviews = set_review({}, "home-insurance", values=VALUES, is_correct=True)
    _, reset = reset_on_field_change(reviews, {"home_insurance_type": "Multirriesgo"})
    assert reset == []


def test_marking_correct_keeps_existing_comments():
    reviews = update_comments({}, "home-insurance", comments="Póliza vencida", values=VALUES)
    out = set_review(reviews, "home-insurance", values=VALUES, is_correct=True)
    assert out["home-insurance"]["isCorrect"] is True
    assert out["home-insurance"]["comments"] == "Póliza vencida"

    out = set_review(out, "home-insurance", values=VALUES, is_correct=True, comments="  ")
    assert out["home-insurance"]["comments"] is None


def test_empty_list_matches_missing_snapshot_value():
    values = {"doc_energy_cert": "https://x/cee.pdf", "doc_renovation_files": None}
    reviews = set_review({}, "technical-documents", values=values, is_correct=False, comments="Faltan planos")

    _, reset = reset_on_field_change(reviews, {"doc_renovation_files": []})
    assert reset == []

    _, reset = reset_on_field_change(reviews, {"doc_renovation_files": ["planos.pdf"]})
    assert reset == ["technical-documents"]
