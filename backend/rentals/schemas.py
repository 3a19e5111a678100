# backend/rentals/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AssetType = Literal["Project", "New Build", "Building", "Unit", "WIP"]
RentalType = Literal["Larga estancia", "Corta estancia", "Vacacional"]
ManagementPlan = Literal["Premium", "Basic"]
PresentationChannel = Literal["Llamada telefónica", "Correo electrónico", "Ambos"]
DurationUnit = Literal["months", "years"]
DepositResponsible = Literal["Inversor", "Prophero"]
IpcIndexType = Literal["ipc", "igc", "tope-gubernamental"]
VisitType = Literal["renovation-end", "contract-end", "scheduled-visit", "ipc-update"]
YesNo = Literal["Si", "No"]


class CustomDocument(BaseModel):
    title: str
    url: str
    createdAt: Optional[str] = None


class SuppliesToggles(BaseModel):
    electricity: bool = False
    water: bool = False
    gas: bool = False
    other: bool = False


# -------------------- Properties --------------------


class PropertyFields(BaseModel):
    """Every column a form section can write. All optional: updates are partial."""

    address: Optional[str] = None
    city: Optional[str] = None
    area_cluster: Optional[str] = None
    property_asset_type: Optional[AssetType] = None
    rental_type: Optional[RentalType] = None

    needs_update: Optional[bool] = None
    admin_name: Optional[str] = None
    rentals_analyst: Optional[str] = None
    property_manager: Optional[str] = None
    keys_location: Optional[str] = None

    square_meters: Optional[float] = None
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    floor_number: Optional[int] = None
    construction_year: Optional[int] = None
    orientation: Optional[str] = None
    garage: Optional[str] = None
    has_elevator: Optional[bool] = None
    has_terrace: Optional[bool] = None

    writing_date: Optional[date] = None
    visit_date: Optional[date] = None
    reno_end_date: Optional[date] = None
    property_ready_date: Optional[date] = None
    days_to_visit: Optional[int] = None
    days_to_start: Optional[int] = None
    days_to_publish_rent: Optional[int] = None

    target_rent_price: Optional[float] = None
    announcement_price: Optional[float] = None
    monthly_rent: Optional[float] = None
    expected_yield: Optional[float] = None
    actual_yield: Optional[float] = None
    vacancy_gap_days: Optional[int] = None
    price_approval: Optional[bool] = None

    client_full_name: Optional[str] = None
    client_identity_doc_number: Optional[str] = None
    client_identity_doc_url: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    client_iban: Optional[str] = None
    client_bank_certificate_url: Optional[str] = None

    doc_energy_cert: Optional[str] = None
    doc_renovation_files: Optional[List[str]] = None
    doc_purchase_contract: Optional[str] = None
    doc_land_registry_note: Optional[str] = None
    doc_contract_electricity: Optional[str] = None
    doc_contract_water: Optional[str] = None
    doc_contract_gas: Optional[str] = None
    doc_bill_electricity: Optional[str] = None
    doc_bill_water: Optional[str] = None
    doc_bill_gas: Optional[str] = None
    home_insurance_type: Optional[str] = None
    home_insurance_policy_url: Optional[str] = None
    property_management_plan: Optional[ManagementPlan] = None
    property_management_plan_contract_url: Optional[str] = None

    client_custom_identity_documents: Optional[List[CustomDocument]] = None
    client_custom_financial_documents: Optional[List[CustomDocument]] = None
    client_custom_other_documents: Optional[List[CustomDocument]] = None
    custom_insurance_documents: Optional[List[CustomDocument]] = None
    custom_technical_documents: Optional[List[CustomDocument]] = None
    custom_legal_documents: Optional[List[CustomDocument]] = None
    custom_supplies_documents: Optional[List[CustomDocument]] = None
    property_custom_other_documents: Optional[List[CustomDocument]] = None

    client_presentation_done: Optional[bool] = None
    client_presentation_date: Optional[date] = None
    client_presentation_channel: Optional[PresentationChannel] = None
    technical_inspection_report: Optional[dict[str, Any]] = None
    publish_online: Optional[bool] = None
    idealista_description: Optional[str] = None

    client_wants_to_change_bank_account: Optional[bool] = None
    client_rent_receiving_iban: Optional[str] = None
    client_rent_receiving_bank_certificate_url: Optional[str] = None
    signed_lease_contract_url: Optional[str] = None
    contract_signature_date: Optional[date] = None
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    lease_duration: Optional[int] = Field(default=None, ge=0)
    lease_duration_unit: Optional[DurationUnit] = None
    final_rent_amount: Optional[float] = None
    guarantee_sent_to_signature: Optional[bool] = None
    tenant_full_name: Optional[str] = None
    tenant_email: Optional[str] = None
    tenant_phone: Optional[str] = None
    tenant_nif: Optional[str] = None
    tenant_iban: Optional[str] = None

    guarantee_signed: Optional[bool] = None
    guarantee_file_url: Optional[str] = None
    guarantee_id: Optional[str] = None
    deposit_responsible: Optional[DepositResponsible] = None
    deposit_receipt_file_url: Optional[str] = None
    tenant_supplies_toggles: Optional[SuppliesToggles] = None
    tenant_contract_electricity: Optional[str] = None
    tenant_contract_water: Optional[str] = None
    tenant_contract_gas: Optional[str] = None
    tenant_contract_other: Optional[List[str]] = None
    first_rent_payment_file_url: Optional[str] = None

    ipc_index_type: Optional[IpcIndexType] = None
    ipc_index_calculated: Optional[bool] = None
    ipc_new_rent_amount: Optional[float] = None
    ipc_official_communication: Optional[bool] = None
    ipc_notification_date: Optional[date] = None
    ipc_system_updated: Optional[bool] = None
    ipc_confirmation: Optional[bool] = None
    ipc_tenant_accepted: Optional[bool] = None

    renewal_owner_consulted: Optional[bool] = None
    renewal_owner_intention: Optional[str] = None
    renewal_new_conditions: Optional[str] = None
    renewal_tenant_negotiated: Optional[bool] = None
    renewal_negotiation_notes: Optional[str] = None
    renewal_formalized: Optional[bool] = None
    renewal_document_file_url: Optional[str] = None
    renewal_new_start_date: Optional[date] = None
    renewal_new_end_date: Optional[date] = None
    renewal_deadlines_updated: Optional[bool] = None
    renewal_no_agreement: Optional[bool] = None

    finalization_notice_received: Optional[bool] = None
    notice_document_file_url: Optional[str] = None
    checkout_completed: Optional[bool] = None
    checkout_notes: Optional[str] = None
    inventory_checked: Optional[bool] = None
    keys_collected: Optional[bool] = None
    deposit_liquidated: Optional[bool] = None
    deductions: Optional[float] = None
    deposit_amount: Optional[float] = None
    deposit_returned: Optional[bool] = None
    deposit_retained: Optional[bool] = None
    reactivated: Optional[bool] = None


class PropertyUpdate(PropertyFields):
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, Any]:
        """Only what the client sent; JSON-typed members come back as plain dicts/lists."""
        return self.model_dump(exclude_unset=True)


class PropertyCreate(PropertyFields):
    model_config = ConfigDict(extra="forbid")

    property_unique_id: str = Field(min_length=1, max_length=60)
    address: str = Field(min_length=1)


class PropertyOut(PropertyFields):
    id: int
    property_unique_id: str
    address: str
    current_stage: str
    stage_entered_at: Optional[datetime] = None
    days_in_stage: int = 0
    is_expired: bool = False
    needs_update: Optional[bool] = None
    prophero_section_reviews: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PropertyCardOut(BaseModel):
    """Compact kanban card."""

    property_unique_id: str
    address: str
    city: Optional[str] = None
    area_cluster: Optional[str] = None
    property_asset_type: Optional[str] = None
    admin_name: Optional[str] = None
    current_stage: str
    days_in_stage: int = 0
    days_to_publish_rent: Optional[int] = None
    is_expired: bool = False
    needs_update: bool = False
    announcement_price: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class KanbanColumnOut(BaseModel):
    phase: str
    title: str
    count: int
    items: list[PropertyCardOut]


class KanbanOut(BaseModel):
    kanban_type: Optional[str] = None
    total: int
    columns: list[KanbanColumnOut]


class PublishedFilterOptions(BaseModel):
    cities: list[str]
    area_clusters: list[str]
    rental_types: list[str]


class PublishedOut(BaseModel):
    properties: list[PropertyOut]
    filter_options: PublishedFilterOptions


class PhaseMoveIn(BaseModel):
    target: str  # slug or title
    force: bool = False


class UpdateOut(BaseModel):
    property: PropertyOut
    reset_sections: list[str] = Field(default_factory=list)
    transitions: list[dict[str, str]] = Field(default_factory=list)


# -------------------- Tasks --------------------


class TaskUpsert(BaseModel):
    phase: str
    task_type: str
    is_completed: Optional[bool] = None
    task_data: Optional[dict[str, Any]] = None


class TaskOut(BaseModel):
    id: int
    property_id: str
    phase: str
    task_type: str
    is_completed: bool
    completed_at: Optional[datetime] = None
    task_data: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Inspection --------------------


class RoomPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[Literal["good", "incident"]] = None
    comment: Optional[str] = None
    affects_commercialization: Optional[bool] = None
    incident_photos: Optional[list[str]] = None
    marketing_photos: Optional[list[str]] = None


class RoomStateOut(BaseModel):
    room: str
    index: Optional[int] = None
    key: str
    status: Optional[str] = None
    state: str
    is_complete: bool


class InspectionOut(BaseModel):
    property_id: str
    report: dict[str, Any]
    rooms: list[RoomStateOut]
    completed: int
    total: int
    is_complete: bool


# -------------------- Prophero reviews --------------------


class ReviewUpdate(BaseModel):
    is_correct: Optional[bool] = None
    comments: Optional[str] = None


class ReviewsOut(BaseModel):
    property_id: str
    reviews: dict[str, Any]
    submitted: list[dict[str, Any]] = Field(default_factory=list)


# -------------------- Documents --------------------


class DocumentUploadOut(BaseModel):
    success: bool = True
    url: str
    field_name: str
    property_id: str
    bucket: str
    storage_path: str


class DocumentDeleteIn(BaseModel):
    fieldName: str
    propertyId: str
    fileUrl: str
    roomIndex: Optional[int] = None


class DocumentDeleteOut(BaseModel):
    success: bool = True
    storage_removed: bool


class LeadDocumentUploadOut(BaseModel):
    success: bool = True
    url: str
    lead_id: str
    bucket: str
    storage_path: str


class LeadDocumentDeleteIn(BaseModel):
    fileUrl: Optional[str] = None
    fieldType: Optional[str] = None  # identity|laboral_financial
    fieldKey: Optional[str] = None


class LeadObligatoryClearOut(BaseModel):
    success: bool = True
    removed: int
    storage_removed: bool


# -------------------- Tenants / rentals / visits --------------------


class TenantUpsert(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nif: Optional[str] = None


class TenantOut(TenantUpsert):
    id: int
    property_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RentalUpsert(BaseModel):
    rent_price: Optional[float] = None
    start_date: Optional[date] = None
    duration: Optional[str] = None
    security_deposit: Optional[float] = None
    legal_contract_url: Optional[str] = None


class RentalOut(RentalUpsert):
    id: int
    property_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VisitCreate(BaseModel):
    visit_date: datetime
    visit_type: VisitType
    notes: Optional[str] = None


class VisitUpdate(BaseModel):
    visit_date: Optional[datetime] = None
    visit_type: Optional[VisitType] = None
    notes: Optional[str] = None


class VisitOut(BaseModel):
    id: int
    property_id: str
    visit_date: datetime
    visit_type: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Leads --------------------


class LeadFields(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    zone: Optional[str] = None
    needs_update: Optional[bool] = None
    called: Optional[YesNo] = None
    discarded: Optional[YesNo] = None
    qualified: Optional[YesNo] = None
    scheduled_date: Optional[datetime] = None
    visit_date: Optional[datetime] = None
    average_income: Optional[float] = None
    finaer_status: Optional[str] = None
    number_of_occupants: Optional[int] = Field(default=None, ge=0)


class LeadCreate(LeadFields):
    model_config = ConfigDict(extra="forbid")

    leads_unique_id: str = Field(min_length=1, max_length=60)
    name: str = Field(min_length=1)
    current_phase: str = "perfil-cualificado"


class LeadUpdate(LeadFields):
    model_config = ConfigDict(extra="forbid")


class LeadOut(LeadFields):
    id: int
    leads_unique_id: str
    name: str
    current_phase: str
    phase_entered_at: Optional[datetime] = None
    days_in_phase: int = 0
    identity_doc_url: Optional[str] = None
    laboral_financial_docs: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LeadPhaseMove(BaseModel):
    phase: str


class LeadPropertyCreate(BaseModel):
    property_id: str
    scheduled_visit_date: Optional[datetime] = None


class LeadPropertyPatch(BaseModel):
    scheduled_visit_date: Optional[datetime] = None

    @field_validator("scheduled_visit_date", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class LeadPropertyOut(BaseModel):
    id: int
    leads_unique_id: str
    properties_unique_id: str
    scheduled_visit_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LeadPropertyItem(BaseModel):
    leads_property: LeadPropertyOut
    property: PropertyCardOut


# -------------------- Workflow / audit / auth --------------------


class WorkflowEventOut(BaseModel):
    id: int
    property_id: Optional[str] = None
    lead_id: Optional[str] = None
    actor_user_id: Optional[int] = None
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuditEventOut(BaseModel):
    id: int
    actor_user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _parse_json_columns(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return data
        return {
            "id": data.id,
            "actor_user_id": data.actor_user_id,
            "action": data.action,
            "entity_type": data.entity_type,
            "entity_id": data.entity_id,
            "before": json.loads(data.before_json) if data.before_json else None,
            "after": json.loads(data.after_json) if data.after_json else None,
            "created_at": data.created_at,
        }


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int


class MeOut(BaseModel):
    user_id: int
    email: str
    roles: list[str]
    assigned_property_ids: list[str]
