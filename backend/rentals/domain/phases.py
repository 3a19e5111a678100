# backend/rentals/domain/phases.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# -----------------------------------------------------------------------------
# Property phases
# -----------------------------------------------------------------------------
# current_stage stores the human title (what the kanban columns show); the
# slug is what URLs and task rows use.
# -----------------------------------------------------------------------------

KANBAN_CAPTACION = "captacion"
KANBAN_PORTFOLIO = "portfolio"


@dataclass(frozen=True)
class Phase:
    slug: str
    title: str
    kanban: str


PROPHERO = Phase("prophero", "Viviendas Prophero", KANBAN_CAPTACION)
READY = Phase("ready", "Listo para Alquilar", KANBAN_CAPTACION)
PUBLISHED = Phase("published", "Publicado", KANBAN_CAPTACION)
ACCEPTED = Phase("accepted", "Inquilino aceptado", KANBAN_CAPTACION)
PENDING = Phase("pending", "Pendiente de trámites", KANBAN_CAPTACION)
RENTED = Phase("rented", "Alquilado", KANBAN_PORTFOLIO)
RENT_UPDATE = Phase("rent-update", "Actualización de Renta (IPC)", KANBAN_PORTFOLIO)
RENOVATION = Phase("renovation", "Gestión de Renovación", KANBAN_PORTFOLIO)
FINALIZATION = Phase("finalization", "Finalización y Salida", KANBAN_PORTFOLIO)

PHASES: list[Phase] = [
    PROPHERO,
    READY,
    PUBLISHED,
    ACCEPTED,
    PENDING,
    RENTED,
    RENT_UPDATE,
    RENOVATION,
    FINALIZATION,
]

STAGE_ORDER = [p.title for p in PHASES]

_BY_SLUG = {p.slug: p for p in PHASES}
_BY_TITLE = {p.title: p for p in PHASES}


def get_phase(value: Optional[str]) -> Optional[Phase]:
    """Accepts either a slug ("ready") or a title ("Listo para Alquilar")."""
    v = (value or "").strip()
    return _BY_SLUG.get(v.lower()) or _BY_TITLE.get(v)


def clamp_stage(stage: Optional[str]) -> Phase:
    return get_phase(stage) or PROPHERO


def stage_rank(stage: Optional[str]) -> int:
    return PHASES.index(clamp_stage(stage))


def next_phase(phase: Phase) -> Optional[Phase]:
    i = PHASES.index(phase)
    return PHASES[i + 1] if i + 1 < len(PHASES) else None


def phases_for_kanban(kanban: Optional[str]) -> list[Phase]:
    if not kanban:
        return list(PHASES)
    k = kanban.strip().lower()
    return [p for p in PHASES if p.kanban == k]


# -----------------------------------------------------------------------------
# Lead phases
# -----------------------------------------------------------------------------

LEAD_PHASES: list[tuple[str, str]] = [
    ("perfil-cualificado", "Perfil cualificado"),
    ("visita-agendada", "Visita agendada"),
    ("recogiendo-informacion", "Recogiendo Información"),
    ("calificacion-en-curso", "Calificación en curso"),
    ("calificacion-aprobada", "Inquilino presentado"),
    ("inquilino-aceptado", "Inquilino aceptado"),
]

LEAD_PHASE_IDS = [pid for pid, _ in LEAD_PHASES]
LEAD_ACCEPTED = "inquilino-aceptado"


def lead_phase_title(phase_id: str) -> Optional[str]:
    return dict(LEAD_PHASES).get(phase_id)
