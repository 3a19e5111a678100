# backend/tests/test_storage_paths.py
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from rentals.clients.supabase_storage import extract_storage_path
from rentals.services.documents import (
    DocumentError,
    build_storage_path,
    parse_room_index,
    photo_target,
    resolve_field,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TS = int(NOW.timestamp() * 1000)


def test_restricted_document_path():
    path = build_storage_path(property_id="SP-1", field_name="doc_energy_cert", filename="CEE.PDF", now=NOW)
    assert path == f"SP-1/property/technical/energy_certificate/doc_energy_cert_{TS}.pdf"
    assert resolve_field("doc_energy_cert").bucket == "properties-restricted-docs"


def test_photo_fields_go_to_public_bucket():
    mapping = resolve_field("marketing_photos_kitchen")
    assert mapping.folder == "photos/marketing/kitchen"
    assert mapping.bucket == "properties-public-docs"
    assert photo_target("incident_photos_bedrooms") == ("incident_photos", "bedrooms")
    assert photo_target("doc_energy_cert") is None


def test_supplies_share_a_folder_per_kind():
    assert resolve_field("doc_contract_water").folder == "property/supplies/water"
    assert resolve_field("doc_bill_water").folder == "property/supplies/water"


def test_unknown_field_is_rejected():
    with pytest.raises(DocumentError):
        resolve_field("favourite_colour")


def test_room_index_parsing():
    assert parse_room_index(None) is None
    assert parse_room_index("") is None
    assert parse_room_index("2") == 2
    with pytest.raises(DocumentError):
        parse_room_index("two")
    with pytest.raises(DocumentError):
        parse_room_index("-1")


def test_extract_storage_path_from_signed_and_public_urls():
    signed = "http://storage.test/storage/v1/object/sign/properties-restricted-docs/SP-1/client/identity/x_1.pdf?token=abc"
    assert extract_storage_path(signed) == ("properties-restricted-docs", "SP-1/client/identity/x_1.pdf")

    public = "http://storage.test/storage/v1/object/public/properties-public-docs/SP-1/photos/a%20b.jpg"
    assert extract_storage_path(public) == ("properties-public-docs", "SP-1/photos/a b.jpg")

    assert extract_storage_path("https://example.com/file.pdf") is None
    assert extract_storage_path(None) is None
