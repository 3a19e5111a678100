# backend/rentals/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.inspection import InspectionError
from .domain.prophero_reviews import ReviewError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.audit import router as audit_router
from .routers.auth import router as auth_router
from .routers.documents import router as documents_router
from .routers.health import router as health_router
from .routers.inspections import router as inspections_router
from .routers.lead_documents import router as lead_documents_router
from .routers.leads import router as leads_router
from .routers.leads_properties import router as leads_properties_router
from .routers.prophero import router as prophero_router
from .routers.properties import router as properties_router
from .routers.tasks import router as tasks_router
from .routers.tenants import router as tenants_router
from .routers.visits import router as visits_router
from .routers.workflow import router as workflow_router
from .services.documents import DocumentError
from .services.property_phase_machine import PhaseTransitionError

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def _domain_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Rentals Operations API", version=settings.app_version)

    # last added runs first: request id must exist before the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc in (DocumentError, InspectionError, PhaseTransitionError, ReviewError):
        app.add_exception_handler(exc, _domain_error)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)

    # Properties + phase forms
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(tasks_router, prefix=API_PREFIX)
    app.include_router(inspections_router, prefix=API_PREFIX)
    app.include_router(prophero_router, prefix=API_PREFIX)
    app.include_router(tenants_router, prefix=API_PREFIX)
    app.include_router(visits_router, prefix=API_PREFIX)
    app.include_router(documents_router, prefix=API_PREFIX)

    # Leads
    app.include_router(leads_router, prefix=API_PREFIX)
    app.include_router(leads_properties_router, prefix=API_PREFIX)
    app.include_router(lead_documents_router, prefix=API_PREFIX)

    # Audit + workflow
    app.include_router(workflow_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)

    return app


app = create_app()
