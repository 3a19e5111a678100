# backend/rentals/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


# -----------------------------
# Users / roles
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class UserRole(Base):
    """
    supply_admin | supply_analyst | supply_partner.

    property_id is only meaningful for partners: one row per assigned property.
    """

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", "property_id", name="uq_user_roles_user_role_property"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id", ondelete="CASCADE"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    property_id: Mapped[Optional[str]] = mapped_column(String(60), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False, index=True)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # property_unique_id / leads_unique_id, not FKs: events outlive deleted rows
    property_id: Mapped[Optional[str]] = mapped_column(String(60), nullable=True, index=True)
    lead_id: Mapped[Optional[str]] = mapped_column(String(60), nullable=True, index=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Core domain: Properties
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_unique_id: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    area_cluster: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    property_asset_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    rental_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    # workflow
    current_stage: Mapped[str] = mapped_column(String(60), nullable=False, default="Viviendas Prophero", index=True)
    stage_entered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    days_in_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    needs_update: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    rentals_analyst: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    property_manager: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    keys_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # characteristics
    square_meters: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    floor_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    construction_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    orientation: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    garage: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    has_elevator: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    has_terrace: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # timeline
    writing_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    visit_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    reno_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    property_ready_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    days_to_visit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    days_to_start: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    days_to_publish_rent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # financials
    target_rent_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    announcement_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    monthly_rent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    expected_yield: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    actual_yield: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vacancy_gap_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_approval: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # owner (client)
    client_full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_identity_doc_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    client_identity_doc_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    client_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_iban: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    client_bank_certificate_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # prophero documents
    doc_energy_cert: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_renovation_files: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    doc_purchase_contract: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_land_registry_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_contract_electricity: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_contract_water: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_contract_gas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_bill_electricity: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_bill_water: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_bill_gas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    home_insurance_type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    home_insurance_policy_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    property_management_plan: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    property_management_plan_contract_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # custom document lists: [{title, url, createdAt}]
    client_custom_identity_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    client_custom_financial_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    client_custom_other_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    custom_insurance_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    custom_technical_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    custom_legal_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    custom_supplies_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    property_custom_other_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # ready to rent
    client_presentation_done: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    client_presentation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    client_presentation_channel: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    technical_inspection_report: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    publish_online: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    idealista_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # tenant accepted
    client_wants_to_change_bank_account: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    client_rent_receiving_iban: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    client_rent_receiving_bank_certificate_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signed_lease_contract_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contract_signature_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lease_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lease_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lease_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lease_duration_unit: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    final_rent_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    guarantee_sent_to_signature: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    tenant_full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tenant_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tenant_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    tenant_nif: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    tenant_iban: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # pending procedures
    guarantee_signed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    guarantee_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    guarantee_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    deposit_responsible: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    deposit_receipt_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_supplies_toggles: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    tenant_contract_electricity: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_contract_water: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_contract_gas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tenant_contract_other: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    first_rent_payment_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ipc update
    ipc_index_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    ipc_index_calculated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    ipc_new_rent_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ipc_official_communication: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    ipc_notification_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ipc_system_updated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    ipc_confirmation: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    ipc_tenant_accepted: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # renewal
    renewal_owner_consulted: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    renewal_owner_intention: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    renewal_new_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    renewal_tenant_negotiated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    renewal_negotiation_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    renewal_formalized: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    renewal_document_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    renewal_new_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    renewal_new_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    renewal_deadlines_updated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    renewal_no_agreement: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # finalization
    finalization_notice_received: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    notice_document_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkout_completed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    checkout_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    inventory_checked: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    keys_collected: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    deposit_liquidated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    deductions: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deposit_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deposit_returned: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    deposit_retained: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    reactivated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    prophero_section_reviews: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    def model_dump(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for col in self.__table__.columns:
            v = getattr(self, col.name)
            out[col.name] = v.isoformat() if isinstance(v, (date, datetime)) else v
        return out


class PropertyTask(Base):
    __tablename__ = "property_tasks"
    __table_args__ = (
        UniqueConstraint("property_id", "phase", "task_type", name="uq_property_tasks_property_phase_type"),
        Index("ix_property_tasks_property_phase", "property_id", "phase"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("properties.property_unique_id", ondelete="CASCADE"), nullable=False
    )
    phase: Mapped[str] = mapped_column(String(60), nullable=False)
    task_type: Mapped[str] = mapped_column(String(80), nullable=False)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    task_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class PropertyVisit(Base):
    __tablename__ = "property_visits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("properties.property_unique_id", ondelete="CASCADE"), nullable=False, index=True
    )
    visit_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    visit_type: Mapped[str] = mapped_column(String(30), nullable=False)  # renovation-end|contract-end|scheduled-visit|ipc-update
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class PropertyTenant(Base):
    __tablename__ = "property_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("properties.property_unique_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    nif: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class PropertyRental(Base):
    __tablename__ = "property_rentals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("properties.property_unique_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    rent_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    duration: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    security_deposit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    legal_contract_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Leads
# -----------------------------
class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    leads_unique_id: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    zone: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    current_phase: Mapped[str] = mapped_column(String(40), nullable=False, default="perfil-cualificado", index=True)
    phase_entered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    days_in_phase: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    needs_update: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    called: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)  # Si|No
    discarded: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    qualified: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    visit_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    average_income: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    finaer_status: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    number_of_occupants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    identity_doc_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # {"obligatory": {field: url}, "complementary": {doc type: [{type, title, url, createdAt}]}}
    laboral_financial_docs: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class LeadProperty(Base):
    __tablename__ = "leads_properties"
    __table_args__ = (
        UniqueConstraint("leads_unique_id", "properties_unique_id", name="uq_leads_properties_lead_property"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    leads_unique_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("leads.leads_unique_id", ondelete="CASCADE"), nullable=False, index=True
    )
    properties_unique_id: Mapped[str] = mapped_column(
        String(60), ForeignKey("properties.property_unique_id", ondelete="CASCADE"), nullable=False, index=True
    )
    scheduled_visit_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
