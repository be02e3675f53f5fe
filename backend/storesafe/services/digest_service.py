"""
Weekly Digest Service
=====================

Monday-to-Sunday executive digest: headline metrics, the compliance
forecast summary and a markdown write-up.
"""

from datetime import date, datetime, time, timedelta, UTC
from typing import Optional

from sqlalchemy.orm import Session

from storesafe.core.enums import ACTIVE_INCIDENT_STATUSES
from storesafe.core.logging import get_logger
from storesafe.models.action import Action
from storesafe.models.activity_log import ActivityLog
from storesafe.models.incident import ClosedIncident, Incident
from storesafe.models.store import Store
from storesafe.services.compliance_forecast import PASS_THRESHOLD, fra_status
from storesafe.services.metrics_service import HIGH_SEVERITIES, overdue_actions_query, store_forecast

logger = get_logger(__name__)

TOP_FORECAST_STORES = 5


def parse_week_start(raw: Optional[str], today: Optional[date] = None) -> date:
    """Monday of the week containing `raw` (ISO date); the current week when missing or invalid."""
    today = today or date.today()
    try:
        anchor = date.fromisoformat(raw) if raw else today
    except ValueError:
        anchor = today
    return anchor - timedelta(days=anchor.weekday())


def format_day(value: date) -> str:
    return f"{value.day} {value.strftime('%b %Y')}"


def _passed_in_week(store: Store, start: date, end: date) -> bool:
    for round_no in (1, 2):
        audit_date = store.audit_date(round_no)
        pct = store.audit_pct(round_no)
        if audit_date and start <= audit_date <= end and pct is not None and pct >= PASS_THRESHOLD:
            return True
    return False


def digest_markdown(period_label: str, metrics: dict, top_stores: list) -> str:
    lines = [
        f"# Weekly Executive Digest ({period_label})",
        "",
        "## Executive Summary",
        f"- {metrics['open_incidents']} open incidents are currently active across the estate.",
        f"- {metrics['overdue_actions']} actions are overdue; "
        f"{metrics['completed_actions_this_week']} actions were completed this week.",
        f"- {metrics['routes_planned_this_week']} planned routes cover "
        f"{metrics['planned_stores_this_week']} stores this week.",
        "",
        "## Risk Snapshot",
        f"- High/Critical incidents logged this week: {metrics['high_severity_this_week']}.",
        f"- FRA overdue/required stores: {metrics['fra_overdue_or_required']}.",
        f"- FRA due within 30 days: {metrics['fra_due_soon']}.",
        f"- Compliance forecast high-risk stores (30 days): {metrics['forecast_high_risk_count']}.",
        "",
        "## Operational Performance",
        f"- Audit passes this week (>=80%): {metrics['audit_passes_this_week']}.",
        f"- Activity events recorded this week: {metrics['activity_events_this_week']}.",
        "",
        "## Top Forecast Priorities",
    ]
    if not top_stores:
        lines.append("- No forecast priorities available.")
    for index, store in enumerate(top_stores, start=1):
        code = f" ({store['store_code']})" if store["store_code"] else ""
        drivers = f" | drivers: {'; '.join(store['drivers'])}" if store["drivers"] else ""
        lines.append(f"{index}. {store['store_name']}{code} - {store['risk_score']}% risk{drivers}")
    lines.extend([
        "",
        "## Recommended Focus This Week",
        "- Prioritize high-risk stores with overdue FRA and sub-80 audit outcomes.",
        "- Close oldest overdue actions first to reduce near-term forecast risk.",
        "- Use route planning to keep drive time within target and improve manager capacity.",
    ])
    return "\n".join(lines)


def weekly_digest(db: Session, start: Optional[str] = None, today: Optional[date] = None) -> dict:
    today = today or date.today()
    week_start = parse_week_start(start, today)
    week_end = week_start + timedelta(days=6)
    window_start = datetime.combine(week_start, time.min, tzinfo=UTC)
    window_end = datetime.combine(week_end, time.max, tzinfo=UTC)

    open_incidents = db.query(Incident).filter(Incident.status.in_(ACTIVE_INCIDENT_STATUSES)).count()
    overdue_actions = overdue_actions_query(db, today).count()
    completed_actions = (
        db.query(Action)
        .filter(Action.completed_at.isnot(None), Action.completed_at.between(window_start, window_end))
        .count()
    )
    high_severity = sum(
        db.query(model)
        .filter(model.severity.in_(HIGH_SEVERITIES), model.occurred_at.between(window_start, window_end))
        .count()
        for model in (Incident, ClosedIncident)
    )
    activity_events = (
        db.query(ActivityLog).filter(ActivityLog.created_at.between(window_start, window_end)).count()
    )

    active_stores = db.query(Store).filter(Store.is_active.is_(True)).all()
    planned = [
        store
        for store in active_stores
        if store.compliance_audit_2_planned_date
        and week_start <= store.compliance_audit_2_planned_date <= week_end
    ]
    route_groups = {
        (
            store.compliance_audit_2_assigned_manager_user_id,
            store.compliance_audit_2_planned_date,
            store.region,
        )
        for store in planned
    }

    fra_statuses = [fra_status(store.fire_risk_assessment_date, today) for store in active_stores]
    forecast = store_forecast(db, today)
    top_stores = forecast["stores"][:TOP_FORECAST_STORES]

    metrics = {
        "open_incidents": open_incidents,
        "overdue_actions": overdue_actions,
        "completed_actions_this_week": completed_actions,
        "routes_planned_this_week": len(route_groups),
        "planned_stores_this_week": len(planned),
        "high_severity_this_week": high_severity,
        "activity_events_this_week": activity_events,
        "fra_due_soon": fra_statuses.count("due"),
        "fra_overdue_or_required": fra_statuses.count("overdue") + fra_statuses.count("required"),
        "forecast_high_risk_count": forecast["high"],
        "audit_passes_this_week": sum(
            1 for store in active_stores if _passed_in_week(store, week_start, week_end)
        ),
    }
    label = f"{format_day(week_start)} - {format_day(week_end)}"

    logger.info("Weekly digest generated", extra={"week_start": week_start.isoformat()})
    return {
        "generated_at": datetime.now(UTC),
        "period": {"start": week_start, "end": week_end, "label": label},
        "metrics": metrics,
        "forecast": {
            "average_risk_score": forecast["average_score"],
            "high_risk_count": forecast["high"],
            "medium_risk_count": forecast["medium"],
            "low_risk_count": forecast["low"],
            "top_stores": top_stores,
        },
        "digest_markdown": digest_markdown(label, metrics, top_stores),
    }
