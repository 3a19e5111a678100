# backend/tests/test_stage_tasks.py
from __future__ import annotations

from datetime import datetime, timedelta

from conftest import make_property, reload

from rentals.domain import phases as ph
from rentals.models import Lead
from rentals.workers.stage_tasks import refresh_stage_counters, sync_phases


def test_refresh_counts_days_and_flags_expired(db_session):
    old = make_property(db_session, "SP-OLD")
    fresh = make_property(db_session, "SP-FRESH")
    now = datetime.utcnow()
    old.stage_entered_at = now - timedelta(days=45)
    fresh.stage_entered_at = now - timedelta(days=2)
    db_session.add(Lead(leads_unique_id="LD-1", name="Marta", phase_entered_at=now - timedelta(days=20)))
    db_session.commit()

    out = refresh_stage_counters(db_session, now=now)
    assert out == {"properties": 2, "leads": 1}

    old = reload(db_session, old)
    assert old.days_in_stage == 45
    assert old.is_expired is True
    fresh = reload(db_session, fresh)
    assert fresh.days_in_stage == 2
    assert fresh.is_expired is False

    lead = db_session.query(Lead).filter(Lead.leads_unique_id == "LD-1").one()
    assert lead.days_in_phase == 20
    assert lead.needs_update is True

    # nothing moved since the last run
    assert refresh_stage_counters(db_session, now=now) == {"properties": 0, "leads": 0}


def test_sync_phases_reports_transitions(db_session):
    make_property(db_session, "SP-A", stage=ph.PENDING, deposit_responsible="Inversor")
    make_property(db_session, "SP-B")

    out = sync_phases(db_session)
    assert out == {"properties": 2, "transitions": 0, "failed": 0}
