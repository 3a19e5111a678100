# backend/rentals/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentals.db import Base, SessionLocal, engine
from rentals.domain import phases as ph
from rentals.models import Lead, LeadProperty, Property
from rentals.services.auth_service import ensure_role, get_or_create_user, set_password
from rentals.services.property_phase_machine import advance_phase_if_ready


@dataclass(frozen=True)
class SeedResult:
    admin_email: str
    partner_email: str
    property_ids: tuple[str, ...]
    lead_ids: tuple[str, ...]


_DEMO_PROPERTIES = [
    {
        "property_unique_id": "SP-MAD-0001",
        "address": "Calle de Alcalá 120, 3ºB",
        "city": "Madrid",
        "area_cluster": "Salamanca",
        "property_asset_type": "Unit",
        "rental_type": "Larga estancia",
        "bedrooms": 2,
        "bathrooms": 1,
        "square_meters": 78.0,
        "garage": "No tiene",
        "has_terrace": False,
        "target_rent_price": 1450.0,
        "admin_name": "Lucía Martín",
    },
    {
        "property_unique_id": "SP-MAD-0002",
        "address": "Calle de Toledo 45, 1ºA",
        "city": "Madrid",
        "area_cluster": "La Latina",
        "property_asset_type": "Unit",
        "rental_type": "Larga estancia",
        "bedrooms": 1,
        "bathrooms": 1,
        "square_meters": 52.0,
        "announcement_price": 1100.0,
        "admin_name": "Lucía Martín",
        "stage": ph.PUBLISHED,
    },
    {
        "property_unique_id": "SP-VLC-0001",
        "address": "Carrer de Colón 8, 5º",
        "city": "Valencia",
        "area_cluster": "Ciutat Vella",
        "property_asset_type": "Unit",
        "rental_type": "Larga estancia",
        "bedrooms": 3,
        "bathrooms": 2,
        "square_meters": 96.0,
        "announcement_price": 1250.0,
        "admin_name": "Javier Ortega",
        "stage": ph.PUBLISHED,
    },
]

_DEMO_LEADS = [
    {"leads_unique_id": "LD-0001", "name": "Marta Gil", "phone": "+34 600 111 222", "zone": "Madrid"},
    {"leads_unique_id": "LD-0002", "name": "Pablo Ruiz", "email": "pablo@example.com", "zone": "Valencia"},
]


def _get_or_create_property(db: Session, data: dict) -> Property:
    data = dict(data)
    stage = data.pop("stage", ph.PROPHERO)
    row = db.scalar(select(Property).where(Property.property_unique_id == data["property_unique_id"]))
    if row:
        return row

    now = datetime.utcnow()
    row = Property(**data)
    row.current_stage = stage.title
    row.stage_entered_at = now - timedelta(days=3)
    row.writing_date = date.today() - timedelta(days=20)
    db.add(row)
    db.flush()
    return row


def _get_or_create_lead(db: Session, data: dict) -> Lead:
    row = db.scalar(select(Lead).where(Lead.leads_unique_id == data["leads_unique_id"]))
    if row:
        return row
    row = Lead(**data, phase_entered_at=datetime.utcnow())
    db.add(row)
    db.flush()
    return row


def seed_demo(
    *,
    admin_email: str,
    admin_password: str,
    partner_email: str,
    create_tables: bool = False,
) -> SeedResult:
    if create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = get_or_create_user(db, admin_email, "Admin")
        ensure_role(db, user_id=int(admin.id), role="supply_admin")
        set_password(db, user=admin, password=admin_password)

        props = [_get_or_create_property(db, d) for d in _DEMO_PROPERTIES]
        leads = [_get_or_create_lead(db, d) for d in _DEMO_LEADS]

        partner = get_or_create_user(db, partner_email, "Partner")
        ensure_role(db, user_id=int(partner.id), role="supply_partner", property_id=props[0].property_unique_id)

        link = db.scalar(
            select(LeadProperty).where(
                LeadProperty.leads_unique_id == leads[0].leads_unique_id,
                LeadProperty.properties_unique_id == props[1].property_unique_id,
            )
        )
        if link is None:
            db.add(
                LeadProperty(
                    leads_unique_id=leads[0].leads_unique_id,
                    properties_unique_id=props[1].property_unique_id,
                    scheduled_visit_date=datetime.utcnow() + timedelta(days=2),
                )
            )

        for prop in props:
            advance_phase_if_ready(db, prop=prop, actor_user_id=int(admin.id))
        db.commit()

        return SeedResult(
            admin_email=admin_email,
            partner_email=partner_email,
            property_ids=tuple(p.property_unique_id for p in props),
            lead_ids=tuple(lead.leads_unique_id for lead in leads),
        )
    finally:
        db.close()
