"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(200), nullable=False),
        sa.Column("display_name", sa.String(160), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email", name="uq_app_users_email"),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("property_id", sa.String(60), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "role", "property_id", name="uq_user_roles_user_role_property"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_property_id", "user_roles", ["property_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(80), nullable=False),
        sa.Column("entity_type", sa.String(80), nullable=False),
        sa.Column("entity_id", sa.String(80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_entity_type", "audit_events", ["entity_type"])
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])

    op.create_table(
        "workflow_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_id", sa.String(60), nullable=True),
        sa.Column("lead_id", sa.String(60), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("event_type", sa.String(80), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_workflow_events_property_id", "workflow_events", ["property_id"])
    op.create_index("ix_workflow_events_lead_id", "workflow_events", ["lead_id"])
    op.create_index("ix_workflow_events_event_type", "workflow_events", ["event_type"])

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_unique_id", sa.String(60), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("city", sa.String(120), nullable=True),
        sa.Column("area_cluster", sa.String(120), nullable=True),
        sa.Column("property_asset_type", sa.String(30), nullable=True),
        sa.Column("rental_type", sa.String(30), nullable=True),
        sa.Column("current_stage", sa.String(60), nullable=False, server_default="Viviendas Prophero"),
        sa.Column("stage_entered_at", sa.DateTime(), nullable=True),
        sa.Column("days_in_stage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_expired", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("needs_update", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("admin_name", sa.String(160), nullable=True),
        sa.Column("rentals_analyst", sa.String(160), nullable=True),
        sa.Column("property_manager", sa.String(160), nullable=True),
        sa.Column("keys_location", sa.String(255), nullable=True),
        sa.Column("square_meters", sa.Float(), nullable=True),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("floor_number", sa.Integer(), nullable=True),
        sa.Column("construction_year", sa.Integer(), nullable=True),
        sa.Column("orientation", sa.String(60), nullable=True),
        sa.Column("garage", sa.String(60), nullable=True),
        sa.Column("has_elevator", sa.Boolean(), nullable=True),
        sa.Column("has_terrace", sa.Boolean(), nullable=True),
        sa.Column("writing_date", sa.Date(), nullable=True),
        sa.Column("visit_date", sa.Date(), nullable=True),
        sa.Column("reno_end_date", sa.Date(), nullable=True),
        sa.Column("property_ready_date", sa.Date(), nullable=True),
        sa.Column("days_to_visit", sa.Integer(), nullable=True),
        sa.Column("days_to_start", sa.Integer(), nullable=True),
        sa.Column("days_to_publish_rent", sa.Integer(), nullable=True),
        sa.Column("target_rent_price", sa.Float(), nullable=True),
        sa.Column("announcement_price", sa.Float(), nullable=True),
        sa.Column("monthly_rent", sa.Float(), nullable=True),
        sa.Column("expected_yield", sa.Float(), nullable=True),
        sa.Column("actual_yield", sa.Float(), nullable=True),
        sa.Column("vacancy_gap_days", sa.Integer(), nullable=True),
        sa.Column("price_approval", sa.Boolean(), nullable=True),
        sa.Column("client_full_name", sa.String(200), nullable=True),
        sa.Column("client_identity_doc_number", sa.String(40), nullable=True),
        sa.Column("client_identity_doc_url", sa.Text(), nullable=True),
        sa.Column("client_phone", sa.String(40), nullable=True),
        sa.Column("client_email", sa.String(200), nullable=True),
        sa.Column("client_iban", sa.String(40), nullable=True),
        sa.Column("client_bank_certificate_url", sa.Text(), nullable=True),
        sa.Column("doc_energy_cert", sa.Text(), nullable=True),
        sa.Column("doc_renovation_files", sa.JSON(), nullable=True),
        sa.Column("doc_purchase_contract", sa.Text(), nullable=True),
        sa.Column("doc_land_registry_note", sa.Text(), nullable=True),
        sa.Column("doc_contract_electricity", sa.Text(), nullable=True),
        sa.Column("doc_contract_water", sa.Text(), nullable=True),
        sa.Column("doc_contract_gas", sa.Text(), nullable=True),
        sa.Column("doc_bill_electricity", sa.Text(), nullable=True),
        sa.Column("doc_bill_water", sa.Text(), nullable=True),
        sa.Column("doc_bill_gas", sa.Text(), nullable=True),
        sa.Column("home_insurance_type", sa.String(120), nullable=True),
        sa.Column("home_insurance_policy_url", sa.Text(), nullable=True),
        sa.Column("property_management_plan", sa.String(30), nullable=True),
        sa.Column("property_management_plan_contract_url", sa.Text(), nullable=True),
        sa.Column("client_custom_identity_documents", sa.JSON(), nullable=True),
        sa.Column("client_custom_financial_documents", sa.JSON(), nullable=True),
        sa.Column("client_custom_other_documents", sa.JSON(), nullable=True),
        sa.Column("custom_insurance_documents", sa.JSON(), nullable=True),
        sa.Column("custom_technical_documents", sa.JSON(), nullable=True),
        sa.Column("custom_legal_documents", sa.JSON(), nullable=True),
        sa.Column("custom_supplies_documents", sa.JSON(), nullable=True),
        sa.Column("property_custom_other_documents", sa.JSON(), nullable=True),
        sa.Column("client_presentation_done", sa.Boolean(), nullable=True),
        sa.Column("client_presentation_date", sa.Date(), nullable=True),
        sa.Column("client_presentation_channel", sa.String(40), nullable=True),
        sa.Column("technical_inspection_report", sa.JSON(), nullable=True),
        sa.Column("publish_online", sa.Boolean(), nullable=True),
        sa.Column("idealista_description", sa.Text(), nullable=True),
        sa.Column("client_wants_to_change_bank_account", sa.Boolean(), nullable=True),
        sa.Column("client_rent_receiving_iban", sa.String(40), nullable=True),
        sa.Column("client_rent_receiving_bank_certificate_url", sa.Text(), nullable=True),
        sa.Column("signed_lease_contract_url", sa.Text(), nullable=True),
        sa.Column("contract_signature_date", sa.Date(), nullable=True),
        sa.Column("lease_start_date", sa.Date(), nullable=True),
        sa.Column("lease_end_date", sa.Date(), nullable=True),
        sa.Column("lease_duration", sa.Integer(), nullable=True),
        sa.Column("lease_duration_unit", sa.String(10), nullable=True),
        sa.Column("final_rent_amount", sa.Float(), nullable=True),
        sa.Column("guarantee_sent_to_signature", sa.Boolean(), nullable=True),
        sa.Column("tenant_full_name", sa.String(200), nullable=True),
        sa.Column("tenant_email", sa.String(200), nullable=True),
        sa.Column("tenant_phone", sa.String(40), nullable=True),
        sa.Column("tenant_nif", sa.String(40), nullable=True),
        sa.Column("tenant_iban", sa.String(40), nullable=True),
        sa.Column("guarantee_signed", sa.Boolean(), nullable=True),
        sa.Column("guarantee_file_url", sa.Text(), nullable=True),
        sa.Column("guarantee_id", sa.String(80), nullable=True),
        sa.Column("deposit_responsible", sa.String(20), nullable=True),
        sa.Column("deposit_receipt_file_url", sa.Text(), nullable=True),
        sa.Column("tenant_supplies_toggles", sa.JSON(), nullable=True),
        sa.Column("tenant_contract_electricity", sa.Text(), nullable=True),
        sa.Column("tenant_contract_water", sa.Text(), nullable=True),
        sa.Column("tenant_contract_gas", sa.Text(), nullable=True),
        sa.Column("tenant_contract_other", sa.JSON(), nullable=True),
        sa.Column("first_rent_payment_file_url", sa.Text(), nullable=True),
        sa.Column("ipc_index_type", sa.String(30), nullable=True),
        sa.Column("ipc_index_calculated", sa.Boolean(), nullable=True),
        sa.Column("ipc_new_rent_amount", sa.Float(), nullable=True),
        sa.Column("ipc_official_communication", sa.Boolean(), nullable=True),
        sa.Column("ipc_notification_date", sa.Date(), nullable=True),
        sa.Column("ipc_system_updated", sa.Boolean(), nullable=True),
        sa.Column("ipc_confirmation", sa.Boolean(), nullable=True),
        sa.Column("ipc_tenant_accepted", sa.Boolean(), nullable=True),
        sa.Column("renewal_owner_consulted", sa.Boolean(), nullable=True),
        sa.Column("renewal_owner_intention", sa.String(60), nullable=True),
        sa.Column("renewal_new_conditions", sa.Text(), nullable=True),
        sa.Column("renewal_tenant_negotiated", sa.Boolean(), nullable=True),
        sa.Column("renewal_negotiation_notes", sa.Text(), nullable=True),
        sa.Column("renewal_formalized", sa.Boolean(), nullable=True),
        sa.Column("renewal_document_file_url", sa.Text(), nullable=True),
        sa.Column("renewal_new_start_date", sa.Date(), nullable=True),
        sa.Column("renewal_new_end_date", sa.Date(), nullable=True),
        sa.Column("renewal_deadlines_updated", sa.Boolean(), nullable=True),
        sa.Column("renewal_no_agreement", sa.Boolean(), nullable=True),
        sa.Column("finalization_notice_received", sa.Boolean(), nullable=True),
        sa.Column("notice_document_file_url", sa.Text(), nullable=True),
        sa.Column("checkout_completed", sa.Boolean(), nullable=True),
        sa.Column("checkout_notes", sa.Text(), nullable=True),
        sa.Column("inventory_checked", sa.Boolean(), nullable=True),
        sa.Column("keys_collected", sa.Boolean(), nullable=True),
        sa.Column("deposit_liquidated", sa.Boolean(), nullable=True),
        sa.Column("deductions", sa.Float(), nullable=True),
        sa.Column("deposit_amount", sa.Float(), nullable=True),
        sa.Column("deposit_returned", sa.Boolean(), nullable=True),
        sa.Column("deposit_retained", sa.Boolean(), nullable=True),
        sa.Column("reactivated", sa.Boolean(), nullable=True),
        sa.Column("prophero_section_reviews", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("property_unique_id", name="uq_properties_property_unique_id"),
    )
    op.create_index("ix_properties_property_unique_id", "properties", ["property_unique_id"])
    op.create_index("ix_properties_city", "properties", ["city"])
    op.create_index("ix_properties_current_stage", "properties", ["current_stage"])

    op.create_table(
        "property_tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "property_id",
            sa.String(60),
            sa.ForeignKey("properties.property_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("phase", sa.String(60), nullable=False),
        sa.Column("task_type", sa.String(80), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("task_data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("property_id", "phase", "task_type", name="uq_property_tasks_property_phase_type"),
    )
    op.create_index("ix_property_tasks_property_phase", "property_tasks", ["property_id", "phase"])

    op.create_table(
        "property_visits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "property_id",
            sa.String(60),
            sa.ForeignKey("properties.property_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("visit_date", sa.DateTime(), nullable=False),
        sa.Column("visit_type", sa.String(30), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_property_visits_property_id", "property_visits", ["property_id"])
    op.create_index("ix_property_visits_visit_date", "property_visits", ["visit_date"])

    op.create_table(
        "property_tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "property_id",
            sa.String(60),
            sa.ForeignKey("properties.property_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("nif", sa.String(40), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("property_id", name="uq_property_tenants_property"),
    )

    op.create_table(
        "property_rentals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "property_id",
            sa.String(60),
            sa.ForeignKey("properties.property_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rent_price", sa.Float(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("duration", sa.String(40), nullable=True),
        sa.Column("security_deposit", sa.Float(), nullable=True),
        sa.Column("legal_contract_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("property_id", name="uq_property_rentals_property"),
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("leads_unique_id", sa.String(60), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("zone", sa.String(120), nullable=True),
        sa.Column("current_phase", sa.String(40), nullable=False, server_default="perfil-cualificado"),
        sa.Column("phase_entered_at", sa.DateTime(), nullable=True),
        sa.Column("days_in_phase", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("needs_update", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("called", sa.String(2), nullable=True),
        sa.Column("discarded", sa.String(2), nullable=True),
        sa.Column("qualified", sa.String(2), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(), nullable=True),
        sa.Column("visit_date", sa.DateTime(), nullable=True),
        sa.Column("average_income", sa.Float(), nullable=True),
        sa.Column("finaer_status", sa.String(60), nullable=True),
        sa.Column("number_of_occupants", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("leads_unique_id", name="uq_leads_leads_unique_id"),
    )
    op.create_index("ix_leads_leads_unique_id", "leads", ["leads_unique_id"])
    op.create_index("ix_leads_current_phase", "leads", ["current_phase"])

    op.create_table(
        "leads_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "leads_unique_id",
            sa.String(60),
            sa.ForeignKey("leads.leads_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "properties_unique_id",
            sa.String(60),
            sa.ForeignKey("properties.property_unique_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("scheduled_visit_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("leads_unique_id", "properties_unique_id", name="uq_leads_properties_lead_property"),
    )
    op.create_index("ix_leads_properties_leads_unique_id", "leads_properties", ["leads_unique_id"])
    op.create_index("ix_leads_properties_properties_unique_id", "leads_properties", ["properties_unique_id"])


def downgrade():
    op.drop_table("leads_properties")
    op.drop_table("leads")
    op.drop_table("property_rentals")
    op.drop_table("property_tenants")
    op.drop_table("property_visits")
    op.drop_table("property_tasks")
    op.drop_table("properties")
    op.drop_table("workflow_events")
    op.drop_table("audit_events")
    op.drop_table("user_roles")
    op.drop_table("app_users")
