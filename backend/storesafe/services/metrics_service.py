"""
Metrics Service
===============

Database counts shared by the compliance forecast route, the AI
compliance report and the weekly digest.
"""

from collections import Counter
from datetime import date, datetime, timedelta, UTC
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from storesafe.core.enums import (
    ACTIVE_INCIDENT_STATUSES,
    IncidentStatus,
    RESOLVED_ACTION_STATUSES,
    Severity,
)
from storesafe.models.action import Action
from storesafe.models.incident import Incident
from storesafe.models.store import Store
from storesafe.services.compliance_forecast import compute_forecast
from storesafe.services.store_service import audit_tracker_stats

HIGH_SEVERITIES = (Severity.HIGH, Severity.CRITICAL)
TOP_STORES_LIMIT = 5


def open_incidents_by_store(db: Session) -> Dict[UUID, int]:
    rows = (
        db.query(Incident.store_id, func.count(Incident.id))
        .filter(Incident.status.in_(ACTIVE_INCIDENT_STATUSES))
        .group_by(Incident.store_id)
        .all()
    )
    return {store_id: count for store_id, count in rows}


def overdue_actions_query(db: Session, today: date):
    return db.query(Action).filter(
        Action.due_date < today,
        Action.status.notin_(RESOLVED_ACTION_STATUSES),
    )


def overdue_actions_by_store(db: Session, today: date) -> Dict[UUID, int]:
    rows = (
        db.query(Incident.store_id, func.count(Action.id))
        .join(Action, Action.incident_id == Incident.id)
        .filter(
            Action.due_date < today,
            Action.status.notin_(RESOLVED_ACTION_STATUSES),
        )
        .group_by(Incident.store_id)
        .all()
    )
    return {store_id: count for store_id, count in rows}


def store_forecast(db: Session, today: Optional[date] = None) -> dict:
    """Compliance forecast for all active stores."""
    today = today or date.today()
    stores = db.query(Store).filter(Store.is_active.is_(True)).all()
    return compute_forecast(
        stores,
        open_incidents_by_store(db),
        overdue_actions_by_store(db, today),
        today=today,
    )


def top_stores_by_incidents(db: Session, limit: int = TOP_STORES_LIMIT) -> List[dict]:
    counts = Counter(store_id for (store_id,) in db.query(Incident.store_id).all())
    if not counts:
        return []
    names = {
        store.id: store.store_name
        for store in db.query(Store).filter(Store.id.in_(list(counts))).all()
    }
    return [
        {"name": names.get(store_id, "Unknown store"), "count": count}
        for store_id, count in counts.most_common(limit)
    ]


def dashboard_figures(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Headline figures for the compliance report.

    Returns:
        open_incidents, under_investigation, overdue_actions,
        high_critical_30d, audit_stats, top_stores
    """
    now = now or datetime.now(UTC)
    tracker = audit_tracker_stats(db.query(Store).all())
    return {
        "open_incidents": db.query(Incident)
        .filter(Incident.status.in_(ACTIVE_INCIDENT_STATUSES))
        .count(),
        "under_investigation": db.query(Incident)
        .filter(Incident.status == IncidentStatus.UNDER_INVESTIGATION)
        .count(),
        "overdue_actions": overdue_actions_query(db, now.date()).count(),
        "high_critical_30d": db.query(Incident)
        .filter(
            Incident.severity.in_(HIGH_SEVERITIES),
            Incident.occurred_at >= now - timedelta(days=30),
        )
        .count(),
        "audit_stats": {
            "first_audit_percentage": round(tracker["round_1_completion_pct"]),
            "second_audit_percentage": round(tracker["round_2_completion_pct"]),
        },
        "top_stores": top_stores_by_incidents(db),
    }
