# backend/rentals/services/lead_documents.py
from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import Lead
from .documents import DocumentError, storage_file_name

# -----------------------------------------------------------------------------
# Lead (tenant candidate) documents
# -----------------------------------------------------------------------------
# identity_doc_url holds one signed URL.
# laboral_financial_docs holds
#   {"obligatory": {<field key>: url},
#    "complementary": {<doc type>: [{type, title, url, createdAt}]}}
# Everything lives in the leads bucket under <lead id>/<folder>/.
# -----------------------------------------------------------------------------

IDENTITY = "identity"
LABORAL_FINANCIAL = "laboral_financial"

OBLIGATORY_FIELDS = (
    "ultima_nomina",
    "vida_laboral",
    "contrato_laboral",
    "ultimo_irpf",
    "ultimo_iva",
    "certificado_administracion_publica",
    "justificante_bancario",
    "demostracion_ingresos",
    "justificantes_bancarios_3_meses",
    "matricula_curso_carnet_estudiante",
    "demostracion_ingresos_avalista",
)

COMPLEMENTARY_DOC_TYPES = (
    "Saldo en cuenta bancaria",
    "Fondo de inversión / ahorro",
    "Fondo de pensión privado",
    "Ayudas",
    "Rentas de alquiler",
    "Otros",
)


@dataclass(frozen=True)
class LeadUploadTarget:
    kind: str  # identity|obligatory|complementary
    folder: str
    stem: str
    field_key: Optional[str] = None
    doc_type: Optional[str] = None
    title: Optional[str] = None


def resolve_lead_upload(
    *,
    folder: Optional[str] = None,
    field_key: Optional[str] = None,
    doc_type: Optional[str] = None,
    doc_title: Optional[str] = None,
) -> LeadUploadTarget:
    folder = (folder or "").strip() or None
    if folder not in (None, IDENTITY, LABORAL_FINANCIAL):
        raise DocumentError(f"Unknown folder: {folder}")

    if doc_type:
        if doc_type not in COMPLEMENTARY_DOC_TYPES:
            raise DocumentError(f"Unknown docType: {doc_type}")
        title = (doc_title or "").strip() or doc_type
        return LeadUploadTarget("complementary", LABORAL_FINANCIAL, "complementary", doc_type=doc_type, title=title)

    if folder == LABORAL_FINANCIAL or field_key:
        if field_key not in OBLIGATORY_FIELDS:
            raise DocumentError(f"Unknown fieldKey: {field_key}")
        return LeadUploadTarget("obligatory", LABORAL_FINANCIAL, field_key, field_key=field_key)

    return LeadUploadTarget(IDENTITY, IDENTITY, "identity_doc_url")


def build_lead_storage_path(
    *, lead_id: str, target: LeadUploadTarget, filename: str, now: Optional[datetime] = None
) -> str:
    return f"{lead_id}/{target.folder}/{storage_file_name(target.stem, filename, now)}"


def _docs(lead: Lead) -> dict[str, Any]:
    raw = copy.deepcopy(lead.laboral_financial_docs or {})
    return {
        "obligatory": dict(raw.get("obligatory") or {}),
        "complementary": dict(raw.get("complementary") or {}),
    }


def apply_lead_upload(
    lead: Lead,
    *,
    target: LeadUploadTarget,
    url: str,
    old_value: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Writes the new URL into the lead; returns {column: new value}."""
    if target.kind == IDENTITY:
        lead.identity_doc_url = url
        return {"identity_doc_url": url}

    docs = _docs(lead)
    if target.kind == "obligatory":
        docs["obligatory"][target.field_key] = url
    else:
        entry = {
            "type": target.doc_type,
            "title": target.title,
            "url": url,
            "createdAt": (now or datetime.now(timezone.utc)).isoformat(),
        }
        group = list(docs["complementary"].get(target.doc_type) or [])
        for i, doc in enumerate(group):
            if old_value and isinstance(doc, dict) and doc.get("url") == old_value:
                group[i] = entry
                break
        else:
            group.append(entry)
        docs["complementary"][target.doc_type] = group

    lead.laboral_financial_docs = docs
    return {"laboral_financial_docs": docs}


def apply_lead_delete(
    lead: Lead,
    *,
    file_url: str,
    field_type: Optional[str] = None,
    field_key: Optional[str] = None,
) -> dict[str, Any]:
    if not field_type or field_type == IDENTITY:
        lead.identity_doc_url = None
        return {"identity_doc_url": None}
    if field_type != LABORAL_FINANCIAL:
        raise DocumentError(f"Unknown fieldType: {field_type}")

    docs = _docs(lead)
    if field_key in OBLIGATORY_FIELDS:
        docs["obligatory"].pop(field_key, None)
    elif field_key is None or field_key in COMPLEMENTARY_DOC_TYPES:
        groups = {}
        for doc_type, group in docs["complementary"].items():
            kept = [d for d in group or [] if not (isinstance(d, dict) and d.get("url") == file_url)]
            if kept:
                groups[doc_type] = kept
        docs["complementary"] = groups
    else:
        raise DocumentError(f"Unknown fieldKey: {field_key}")

    lead.laboral_financial_docs = docs
    return {"laboral_financial_docs": docs}


def clear_obligatory(lead: Lead) -> tuple[dict[str, Any], list[str]]:
    """
    Empties the obligatory group (the required set depends on the employment
    situation). Complementary documents are kept.

    Returns ({column: new value}, URLs the caller should remove from storage).
    """
    docs = _docs(lead)
    urls = [v for v in docs["obligatory"].values() if isinstance(v, str) and v]
    docs["obligatory"] = {}
    lead.laboral_financial_docs = docs
    return {"laboral_financial_docs": docs}, urls
