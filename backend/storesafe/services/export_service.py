"""
CSV Export Service
==================

Incident and action registers as CSV downloads. Every cell is quoted.
"""

import csv
import io
from datetime import date
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from storesafe.models.action import Action
from storesafe.models.incident import ClosedIncident, Incident

INCIDENT_HEADERS = [
    "Reference No",
    "Store",
    "Store Code",
    "Category",
    "Severity",
    "Status",
    "Summary",
    "Occurred At",
    "Reported At",
    "Reported By",
    "Investigator",
    "RIDDOR Reportable",
]

ACTION_HEADERS = [
    "Title",
    "Incident Reference",
    "Assigned To",
    "Priority",
    "Status",
    "Due Date",
    "Completed At",
    "Evidence Required",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if hasattr(value, "value"):
        return str(value.value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def to_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def export_filename(prefix: str, today: Optional[date] = None) -> str:
    return f"{prefix}-{(today or date.today()).isoformat()}.csv"


def _name(user) -> str:
    if user is None:
        return ""
    return user.full_name or ""


def incident_rows(incidents) -> List[list]:
    return [
        [
            incident.reference_no,
            incident.store.store_name if incident.store else "",
            incident.store.store_code if incident.store else "",
            incident.incident_category,
            incident.severity,
            incident.status,
            incident.summary,
            incident.occurred_at,
            incident.reported_at,
            _name(incident.reported_by),
            _name(incident.assigned_investigator),
            bool(incident.riddor_reportable),
        ]
        for incident in incidents
    ]


def incidents_csv(db: Session) -> str:
    """Open and closed incidents, most recent first."""
    incidents = db.query(Incident).all() + db.query(ClosedIncident).all()
    incidents.sort(key=lambda incident: incident.occurred_at, reverse=True)
    return to_csv(INCIDENT_HEADERS, incident_rows(incidents))


def actions_csv(db: Session) -> str:
    actions = db.query(Action).order_by(Action.due_date).all()
    rows = [
        [
            action.title,
            action.incident.reference_no if action.incident else "",
            _name(action.assigned_to),
            action.priority,
            action.status,
            action.due_date,
            action.completed_at,
            bool(action.evidence_required),
        ]
        for action in actions
    ]
    return to_csv(ACTION_HEADERS, rows)
