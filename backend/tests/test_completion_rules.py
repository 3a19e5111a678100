# backend/tests/test_completion_rules.py
from __future__ import annotations

from rentals.domain.completion import (
    CompletionContext,
    compute_phase_progress,
    get_section,
    has_value,
    phase_is_complete,
    sections_for_phase,
)


def _good_room(**extra):
    room = {"status": "good", "marketing_photos": ["https://cdn/x.jpg"], "incident_photos": []}
    room.update(extra)
    return room


def _complete_report(bedrooms: int = 0, bathrooms: int = 0) -> dict:
    report = {r: _good_room() for r in ("common_areas", "entry_hallways", "living_room", "kitchen", "exterior")}
    report["bedrooms"] = [_good_room() for _ in range(bedrooms)]
    report["bathrooms"] = [_good_room() for _ in range(bathrooms)]
    return report


def test_has_value_presence_rules():
    assert has_value(None) is False
    assert has_value(False) is False
    assert has_value(True) is True
    assert has_value("   ") is False
    assert has_value("x") is True
    assert has_value([]) is False
    assert has_value(["", None]) is False
    assert has_value(["https://a"]) is True
    assert has_value({}) is False
    assert has_value({"a": 1}) is True
    assert has_value(0) is True


def test_client_presentation_needs_done_date_and_known_channel():
    base = {
        "client_presentation_done": True,
        "client_presentation_date": "2026-01-10",
        "client_presentation_channel": "Ambos",
    }
    progress = compute_phase_progress("ready", base)
    assert progress["client-presentation"].is_complete

    progress = compute_phase_progress("ready", {**base, "client_presentation_channel": "WhatsApp"})
    assert progress["client-presentation"].completed == 2
    assert not progress["client-presentation"].is_complete

    progress = compute_phase_progress("ready", {**base, "client_presentation_done": False})
    assert progress["client-presentation"].completed == 0


def test_pricing_strategy_requires_positive_price_and_approval():
    progress = compute_phase_progress("ready", {"announcement_price": 0, "price_approval": True})
    assert progress["pricing-strategy"].completed == 1
    progress = compute_phase_progress("ready", {"announcement_price": 950.0, "price_approval": True})
    assert progress["pricing-strategy"].is_complete


def test_commercial_launch_not_publishing_is_complete():
    assert compute_phase_progress("ready", {"publish_online": False})["commercial-launch"].is_complete
    assert not compute_phase_progress("ready", {"publish_online": True})["commercial-launch"].is_complete
    done = compute_phase_progress("ready", {"publish_online": True, "idealista_description": "Piso luminoso"})
    assert done["commercial-launch"].is_complete


def test_technical_inspection_counts_expected_rooms():
    values = {"bedrooms": 2, "bathrooms": 1, "technical_inspection_report": _complete_report(2, 1)}
    sp = compute_phase_progress("ready", values)["technical-inspection"]
    assert (sp.completed, sp.total) == (8, 8)
    assert sp.is_complete

    values["has_terrace"] = True
    sp = compute_phase_progress("ready", values)["technical-inspection"]
    assert (sp.completed, sp.total) == (8, 9)


def test_ready_phase_complete_only_when_all_sections_are():
    values = {
        "client_presentation_done": True,
        "client_presentation_date": "2026-01-10",
        "client_presentation_channel": "Llamada telefónica",
        "announcement_price": 1200.0,
        "price_approval": True,
        "publish_online": False,
        "technical_inspection_report": _complete_report(),
    }
    assert phase_is_complete("ready", compute_phase_progress("ready", values))

    values["price_approval"] = False
    assert not phase_is_complete("ready", compute_phase_progress("ready", values))


def test_leads_section_follows_accepted_leads():
    assert not compute_phase_progress("published", {}, CompletionContext(accepted_leads=0))["leads"].is_complete
    assert compute_phase_progress("published", {}, CompletionContext(accepted_leads=1))["leads"].is_complete


def test_bank_data_branches():
    assert compute_phase_progress("accepted", {"client_wants_to_change_bank_account": False})["bank-data"].is_complete
    sp = compute_phase_progress("accepted", {"client_wants_to_change_bank_account": True})["bank-data"]
    assert (sp.completed, sp.total) == (0, 2)
    sp = compute_phase_progress(
        "accepted",
        {
            "client_wants_to_change_bank_account": True,
            "client_rent_receiving_iban": "ES9121000418450200051332",
            "client_rent_receiving_bank_certificate_url": "https://x/cert.pdf",
        },
    )["bank-data"]
    assert sp.is_complete
    assert not compute_phase_progress("accepted", {})["bank-data"].is_complete


def test_contract_duration_needs_known_unit():
    values = {
        "signed_lease_contract_url": "https://x/lease.pdf",
        "contract_signature_date": "2026-02-01",
        "lease_start_date": "2026-02-15",
        "lease_duration": 12,
        "lease_duration_unit": "weeks",
        "final_rent_amount": 1150.0,
    }
    sp = compute_phase_progress("accepted", values)["contract"]
    assert (sp.completed, sp.total) == (4, 5)

    values["lease_duration_unit"] = "months"
    assert compute_phase_progress("accepted", values)["contract"].is_complete


def test_deposit_depends_on_responsible():
    assert compute_phase_progress("pending", {"deposit_responsible": "Inversor"})["deposit"].is_complete
    assert not compute_phase_progress("pending", {"deposit_responsible": "Prophero"})["deposit"].is_complete
    assert compute_phase_progress(
        "pending", {"deposit_responsible": "Prophero", "deposit_receipt_file_url": "https://x/r.pdf"}
    )["deposit"].is_complete


def test_supplies_change_only_counts_enabled_toggles():
    assert compute_phase_progress("pending", {})["supplies-change"].is_complete

    values = {"tenant_supplies_toggles": {"electricity": True, "other": True}}
    sp = compute_phase_progress("pending", values)["supplies-change"]
    assert (sp.completed, sp.total) == (0, 2)

    values.update(tenant_contract_electricity="https://x/e.pdf", tenant_contract_other=["https://x/o.pdf"])
    assert compute_phase_progress("pending", values)["supplies-change"].is_complete


def test_prophero_section_needs_data_and_correct_review():
    values = {"admin_name": "Lucía", "keys_location": "Oficina"}
    sp = compute_phase_progress("prophero", values, CompletionContext())["property-management-info"]
    assert not sp.is_complete

    ctx = CompletionContext(prophero_reviews={"property-management-info": {"isCorrect": True}})
    assert compute_phase_progress("prophero", values, ctx)["property-management-info"].is_complete

    ctx = CompletionContext(prophero_reviews={"property-management-info": {"isCorrect": True}})
    assert not compute_phase_progress("prophero", {}, ctx)["property-management-info"].is_complete


def test_portfolio_phases_never_complete_on_their_own():
    values = {
        "ipc_index_type": "ipc",
        "ipc_new_rent_amount": 1200.0,
        "ipc_official_communication": True,
        "ipc_notification_date": "2026-03-01",
        "ipc_system_updated": True,
        "ipc_confirmation": True,
        "ipc_tenant_accepted": True,
    }
    progress = compute_phase_progress("rent-update", values)
    assert all(sp.is_complete for sp in progress.values())
    assert phase_is_complete("rent-update", progress) is False
    assert sections_for_phase("rented") == []


def test_formalization_no_agreement_short_circuits():
    assert compute_phase_progress("renovation", {"renewal_no_agreement": True})["formalization"].is_complete


def test_accepted_sections_carry_task_aliases():
    assert get_section("accepted", "bank-data").extra["task_type"] == "bankDataConfirmed"
    assert get_section("accepted", "contract").extra["task_type"] == "contractSigned"
    assert get_section("accepted", "guarantee").extra["task_type"] == "guaranteeSigned"
