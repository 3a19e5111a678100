# backend/rentals/domain/completion.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from . import phases as ph
from .inspection import room_states

# -----------------------------------------------------------------------------
# Section completion
# -----------------------------------------------------------------------------
# Every phase is split into form sections. A section is complete when its rule
# reports completed == total (and total > 0). Rules only look at field values,
# plus a small context for things that live outside the property row (linked
# leads, prophero reviews).
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SectionProgress:
    completed: int
    total: int

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed >= self.total

    @property
    def pct(self) -> float:
        if self.total <= 0:
            return 0.0
        return float(self.completed) / float(self.total)

    def as_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "is_complete": self.is_complete,
            "pct": self.pct,
        }


@dataclass(frozen=True)
class CompletionContext:
    accepted_leads: int = 0
    prophero_reviews: Optional[Mapping[str, Any]] = None


Rule = Callable[[Mapping[str, Any], CompletionContext], SectionProgress]


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    phase: str  # phase slug
    fields: tuple[str, ...]
    rule: Rule
    required: bool = True
    extra: dict = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Value presence
# -----------------------------------------------------------------------------


def has_value(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, bool):
        return v is True
    if isinstance(v, str):
        return bool(v.strip())
    if isinstance(v, (list, tuple)):
        return any(has_value(x) if not isinstance(x, dict) else bool(x) for x in v)
    if isinstance(v, dict):
        return bool(v)
    return True


def _positive(v: Any) -> bool:
    try:
        return v is not None and float(v) > 0
    except (TypeError, ValueError):
        return False


def _count_fields(values: Mapping[str, Any], names: tuple[str, ...]) -> SectionProgress:
    done = sum(1 for n in names if has_value(values.get(n)))
    return SectionProgress(done, len(names))


def fields_rule(*names: str) -> Rule:
    def _rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
        return _count_fields(values, names)

    return _rule


# -----------------------------------------------------------------------------
# Prophero: data present AND reviewed as correct
# -----------------------------------------------------------------------------


def prophero_rule(section_id: str, names: tuple[str, ...]) -> Rule:
    def _rule(values: Mapping[str, Any], ctx: CompletionContext) -> SectionProgress:
        filled = any(has_value(values.get(n)) for n in names)
        review = (ctx.prophero_reviews or {}).get(section_id) or {}
        ok = filled and review.get("isCorrect") is True
        return SectionProgress(1 if ok else 0, 1)

    return _rule


# -----------------------------------------------------------------------------
# Listo para Alquilar
# -----------------------------------------------------------------------------

PRESENTATION_CHANNELS = ("Llamada telefónica", "Correo electrónico", "Ambos")


def client_presentation_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    if values.get("client_presentation_done") is not True:
        return SectionProgress(0, 1)
    done = 1
    done += 1 if has_value(values.get("client_presentation_date")) else 0
    done += 1 if values.get("client_presentation_channel") in PRESENTATION_CHANNELS else 0
    return SectionProgress(done, 3)


def pricing_strategy_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    done = (1 if _positive(values.get("announcement_price")) else 0) + (
        1 if values.get("price_approval") is True else 0
    )
    return SectionProgress(done, 2)


def technical_inspection_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    states = room_states(values)
    return SectionProgress(sum(1 for s in states if s.is_complete), len(states))


def commercial_launch_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    publish = values.get("publish_online")
    if publish is False:
        return SectionProgress(1, 1)
    if publish is True and has_value(values.get("idealista_description")):
        return SectionProgress(1, 1)
    return SectionProgress(0, 1)


# -----------------------------------------------------------------------------
# Publicado
# -----------------------------------------------------------------------------


def leads_rule(_values: Mapping[str, Any], ctx: CompletionContext) -> SectionProgress:
    return SectionProgress(1 if ctx.accepted_leads > 0 else 0, 1)


# -----------------------------------------------------------------------------
# Inquilino aceptado
# -----------------------------------------------------------------------------

LEASE_DURATION_UNITS = ("months", "years")


def bank_data_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    change = values.get("client_wants_to_change_bank_account")
    if change is False:
        return SectionProgress(1, 1)
    if change is True:
        return _count_fields(
            values, ("client_rent_receiving_iban", "client_rent_receiving_bank_certificate_url")
        )
    return SectionProgress(0, 1)


def contract_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    done = sum(
        [
            has_value(values.get("signed_lease_contract_url")),
            has_value(values.get("contract_signature_date")),
            has_value(values.get("lease_start_date")),
            _positive(values.get("lease_duration"))
            and values.get("lease_duration_unit") in LEASE_DURATION_UNITS,
            _positive(values.get("final_rent_amount")),
        ]
    )
    return SectionProgress(int(done), 5)


def guarantee_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    return SectionProgress(1 if values.get("guarantee_sent_to_signature") is True else 0, 1)


# -----------------------------------------------------------------------------
# Pendiente de trámites
# -----------------------------------------------------------------------------

SUPPLY_KINDS = ("electricity", "water", "gas", "other")
DEPOSIT_RESPONSIBLES = ("Inversor", "Prophero")


def guarantee_signing_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    done = (1 if values.get("guarantee_signed") is True else 0) + (
        1 if has_value(values.get("guarantee_file_url")) else 0
    )
    return SectionProgress(done, 2)


def deposit_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    who = values.get("deposit_responsible")
    if who == "Inversor":
        return SectionProgress(1, 1)
    if who == "Prophero":
        return SectionProgress(1 if has_value(values.get("deposit_receipt_file_url")) else 0, 1)
    return SectionProgress(0, 1)


def supplies_change_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    toggles = values.get("tenant_supplies_toggles") or {}
    if not isinstance(toggles, Mapping):
        toggles = {}

    enabled = [k for k in SUPPLY_KINDS if toggles.get(k) is True]
    if not enabled:
        return SectionProgress(1, 1)

    done = 0
    for kind in enabled:
        v = values.get(f"tenant_contract_{kind}")
        if kind == "other":
            done += 1 if isinstance(v, list) and has_value(v) else 0
        else:
            done += 1 if has_value(v) else 0
    return SectionProgress(done, max(1, len(enabled)))


# -----------------------------------------------------------------------------
# Portfolio phases
# -----------------------------------------------------------------------------


def formalization_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    if values.get("renewal_no_agreement") is True:
        return SectionProgress(1, 1)
    return _count_fields(
        values,
        (
            "renewal_formalized",
            "renewal_document_file_url",
            "renewal_new_start_date",
            "renewal_new_end_date",
            "renewal_deadlines_updated",
        ),
    )


def deposit_settlement_rule(values: Mapping[str, Any], _ctx: CompletionContext) -> SectionProgress:
    done = (1 if values.get("deposit_liquidated") is True else 0) + (
        1 if values.get("deposit_returned") is True or values.get("deposit_retained") is True else 0
    )
    return SectionProgress(done, 2)


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------

PROPHERO_SECTIONS: list[tuple[str, str, tuple[str, ...]]] = [
    ("property-management-info", "Información de Gestión de la Propiedad", ("admin_name", "keys_location")),
    ("technical-documents", "Documentos Técnicos de la Propiedad", ("doc_energy_cert", "doc_renovation_files")),
    ("legal-documents", "Documentos Legales de la Propiedad", ("doc_purchase_contract", "doc_land_registry_note")),
    ("client-financial-info", "Información Financiera del Cliente", ("client_iban", "client_bank_certificate_url")),
    (
        "supplies-contracts",
        "Contratos de Suministros",
        ("doc_contract_electricity", "doc_contract_water", "doc_contract_gas"),
    ),
    ("supplies-bills", "Facturas de Suministros", ("doc_bill_electricity", "doc_bill_water", "doc_bill_gas")),
    ("home-insurance", "Seguro de Hogar", ("home_insurance_type", "home_insurance_policy_url")),
    (
        "property-management",
        "Gestión de Propiedad (Property Management)",
        ("property_management_plan", "property_management_plan_contract_url", "property_manager"),
    ),
]


def _build_catalog() -> list[Section]:
    out: list[Section] = []

    for sid, title, names in PROPHERO_SECTIONS:
        out.append(Section(sid, title, ph.PROPHERO.slug, names, prophero_rule(sid, names)))

    out += [
        Section(
            "client-presentation",
            "Presentación al Cliente",
            ph.READY.slug,
            ("client_presentation_done", "client_presentation_date", "client_presentation_channel"),
            client_presentation_rule,
        ),
        Section(
            "pricing-strategy",
            "Estrategia de Precio",
            ph.READY.slug,
            ("announcement_price", "price_approval"),
            pricing_strategy_rule,
        ),
        Section(
            "technical-inspection",
            "Inspección Técnica",
            ph.READY.slug,
            ("technical_inspection_report",),
            technical_inspection_rule,
        ),
        Section(
            "commercial-launch",
            "Lanzamiento Comercial",
            ph.READY.slug,
            ("publish_online", "idealista_description"),
            commercial_launch_rule,
        ),
        Section("leads", "Gestión de Interesados", ph.PUBLISHED.slug, (), leads_rule),
        Section(
            "bank-data",
            "Datos Bancarios",
            ph.ACCEPTED.slug,
            (
                "client_wants_to_change_bank_account",
                "client_rent_receiving_iban",
                "client_rent_receiving_bank_certificate_url",
            ),
            bank_data_rule,
            extra={"task_type": "bankDataConfirmed"},
        ),
        Section(
            "contract",
            "Contrato",
            ph.ACCEPTED.slug,
            (
                "signed_lease_contract_url",
                "contract_signature_date",
                "lease_start_date",
                "lease_duration",
                "lease_duration_unit",
                "final_rent_amount",
            ),
            contract_rule,
            extra={"task_type": "contractSigned"},
        ),
        Section(
            "guarantee",
            "Garantía",
            ph.ACCEPTED.slug,
            ("guarantee_sent_to_signature",),
            guarantee_rule,
            extra={"task_type": "guaranteeSigned"},
        ),
        Section(
            "guarantee-signing",
            "Firma de la Garantía",
            ph.PENDING.slug,
            ("guarantee_signed", "guarantee_file_url"),
            guarantee_signing_rule,
        ),
        Section(
            "deposit",
            "Fianza",
            ph.PENDING.slug,
            ("deposit_responsible", "deposit_receipt_file_url"),
            deposit_rule,
        ),
        Section(
            "supplies-change",
            "Cambio de Suministros",
            ph.PENDING.slug,
            (
                "tenant_supplies_toggles",
                "tenant_contract_electricity",
                "tenant_contract_water",
                "tenant_contract_gas",
                "tenant_contract_other",
            ),
            supplies_change_rule,
        ),
        Section(
            "first-rent-payment",
            "Primer Pago de Renta",
            ph.PENDING.slug,
            ("first_rent_payment_file_url",),
            fields_rule("first_rent_payment_file_url"),
        ),
        Section(
            "ipc-calculation",
            "Cálculo del IPC",
            ph.RENT_UPDATE.slug,
            ("ipc_index_type", "ipc_new_rent_amount"),
            fields_rule("ipc_index_type", "ipc_new_rent_amount"),
            required=False,
        ),
        Section(
            "ipc-communication",
            "Comunicación al Inquilino",
            ph.RENT_UPDATE.slug,
            ("ipc_official_communication", "ipc_notification_date"),
            fields_rule("ipc_official_communication", "ipc_notification_date"),
            required=False,
        ),
        Section(
            "ipc-confirmation",
            "Confirmación de la Actualización",
            ph.RENT_UPDATE.slug,
            ("ipc_system_updated", "ipc_confirmation", "ipc_tenant_accepted"),
            fields_rule("ipc_system_updated", "ipc_confirmation", "ipc_tenant_accepted"),
            required=False,
        ),
        Section(
            "owner-consultation",
            "Consulta al Propietario",
            ph.RENOVATION.slug,
            ("renewal_owner_consulted", "renewal_owner_intention"),
            fields_rule("renewal_owner_consulted", "renewal_owner_intention"),
            required=False,
        ),
        Section(
            "negotiation",
            "Negociación con el Inquilino",
            ph.RENOVATION.slug,
            ("renewal_new_conditions", "renewal_tenant_negotiated", "renewal_negotiation_notes"),
            fields_rule("renewal_new_conditions", "renewal_tenant_negotiated"),
            required=False,
        ),
        Section(
            "formalization",
            "Formalización",
            ph.RENOVATION.slug,
            (
                "renewal_formalized",
                "renewal_document_file_url",
                "renewal_new_start_date",
                "renewal_new_end_date",
                "renewal_deadlines_updated",
                "renewal_no_agreement",
            ),
            formalization_rule,
            required=False,
        ),
        Section(
            "notice",
            "Preaviso",
            ph.FINALIZATION.slug,
            ("finalization_notice_received", "notice_document_file_url"),
            fields_rule("finalization_notice_received", "notice_document_file_url"),
            required=False,
        ),
        Section(
            "checkout",
            "Salida del Inquilino",
            ph.FINALIZATION.slug,
            ("checkout_completed", "checkout_notes", "inventory_checked", "keys_collected"),
            fields_rule("checkout_completed", "inventory_checked", "keys_collected"),
            required=False,
        ),
        Section(
            "deposit-settlement",
            "Liquidación de la Fianza",
            ph.FINALIZATION.slug,
            ("deposit_liquidated", "deductions", "deposit_amount", "deposit_returned", "deposit_retained"),
            deposit_settlement_rule,
            required=False,
        ),
    ]
    return out


SECTIONS: list[Section] = _build_catalog()

_SECTIONS_BY_PHASE: dict[str, list[Section]] = {}
for _s in SECTIONS:
    _SECTIONS_BY_PHASE.setdefault(_s.phase, []).append(_s)


def sections_for_phase(phase_slug: str) -> list[Section]:
    return list(_SECTIONS_BY_PHASE.get(phase_slug, []))


def get_section(phase_slug: str, section_id: str) -> Optional[Section]:
    for s in _SECTIONS_BY_PHASE.get(phase_slug, []):
        if s.id == section_id:
            return s
    return None


def section_for_field(phase_slug: str, field_name: str) -> Optional[Section]:
    for s in _SECTIONS_BY_PHASE.get(phase_slug, []):
        if field_name in s.fields:
            return s
    return None


def compute_section(section: Section, values: Mapping[str, Any], ctx: CompletionContext) -> SectionProgress:
    return section.rule(values, ctx)


def compute_phase_progress(
    phase_slug: str,
    values: Mapping[str, Any],
    ctx: Optional[CompletionContext] = None,
) -> dict[str, SectionProgress]:
    ctx = ctx or CompletionContext(prophero_reviews=values.get("prophero_section_reviews"))
    return {s.id: compute_section(s, values, ctx) for s in sections_for_phase(phase_slug)}


def phase_is_complete(phase_slug: str, progress: Mapping[str, SectionProgress]) -> bool:
    """
    All required sections complete. Phases with no required sections are
    never complete (they only move by explicit action).
    """
    required = [s for s in sections_for_phase(phase_slug) if s.required]
    if not required:
        return False
    return all(progress.get(s.id) is not None and progress[s.id].is_complete for s in required)
