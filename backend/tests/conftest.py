# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile

# Must happen before rentals.config is imported anywhere.
_TMP = tempfile.mkdtemp(prefix="rentals-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "local"
os.environ["SUPABASE_URL"] = "http://storage.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-key"

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from rentals import models  # noqa: F401
from rentals.clients.supabase_storage import SupabaseStorageClient, get_storage_client
from rentals.db import Base, SessionLocal, engine
from rentals.domain import phases as ph
from rentals.main import create_app
from rentals.models import AppUser, Lead, Property, UserRole

ADMIN = {"X-User-Email": "admin@rentals.test", "X-User-Role": "supply_admin"}
ANALYST = {"X-User-Email": "analyst@rentals.test", "X-User-Role": "supply_analyst"}
PARTNER = {"X-User-Email": "partner@rentals.test", "X-User-Role": "supply_partner"}


@dataclass
class FakeStorage:
    """Records Supabase Storage calls made through httpx.MockTransport."""

    calls: list[tuple[str, str]] = field(default_factory=list)
    uploads: dict[str, bytes] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    fail_upload: bool = False
    fail_sign: bool = False
    fail_remove: bool = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))

        if request.method == "POST" and path.startswith("/storage/v1/object/sign/"):
            if self.fail_sign:
                return httpx.Response(500, json={"error": "sign failed"})
            obj = path[len("/storage/v1/object/sign/"):]
            return httpx.Response(200, json={"signedURL": f"/object/sign/{obj}?token=tok"})

        if request.method == "POST" and path.startswith("/storage/v1/object/"):
            if self.fail_upload:
                return httpx.Response(500, json={"error": "upload failed"})
            self.uploads[path[len("/storage/v1/object/"):]] = request.content
            return httpx.Response(200, json={"Key": path})

        if request.method == "DELETE" and path.startswith("/storage/v1/object/"):
            if self.fail_remove:
                return httpx.Response(500, json={"error": "remove failed"})
            body = json.loads(request.content or b"{}")
            bucket = path[len("/storage/v1/object/"):]
            self.deleted += [f"{bucket}/{p}" for p in body.get("prefixes", [])]
            return httpx.Response(200, json=[{"name": p} for p in body.get("prefixes", [])])

        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> SupabaseStorageClient:
        return SupabaseStorageClient(
            base_url="http://storage.test",
            service_key="test-service-key",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client(storage: FakeStorage) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_storage_client] = storage.client
    return TestClient(app)


def make_property(
    db,
    property_unique_id: str = "SP-TEST-1",
    *,
    stage: ph.Phase = ph.PROPHERO,
    **values: Any,
) -> Property:
    now = datetime.utcnow()
    prop = Property(
        property_unique_id=property_unique_id,
        address=values.pop("address", "Calle Mayor 1"),
        current_stage=stage.title,
        stage_entered_at=now,
        created_at=now,
        updated_at=now,
        **values,
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def assign_partner(db, email: str, property_unique_id: str) -> None:
    user = db.query(AppUser).filter(AppUser.email == email).one_or_none()
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0])
        db.add(user)
        db.flush()
    db.add(UserRole(user_id=int(user.id), role="supply_partner", property_id=property_unique_id))
    db.commit()


def reload(db, prop: Property) -> Optional[Property]:
    db.expire_all()
    return db.query(Property).filter(Property.property_unique_id == prop.property_unique_id).one_or_none()


def make_lead(db, leads_unique_id: str = "LD-TEST-1", **values: Any) -> Lead:
    now = datetime.utcnow()
    lead = Lead(
        leads_unique_id=leads_unique_id,
        name=values.pop("name", "Lucía Pérez"),
        phase_entered_at=now,
        created_at=now,
        updated_at=now,
        **values,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def reload_lead(db, lead: Lead) -> Optional[Lead]:
    db.expire_all()
    return db.query(Lead).filter(Lead.leads_unique_id == lead.leads_unique_id).one_or_none()
