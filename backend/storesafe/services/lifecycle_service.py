"""
Lifecycle Service
=================

Single authority for status changes on incidents, investigations and
corrective actions.

Every handler that changes a status goes through this module, either by
validating a requested transition or by asking which status a side effect
(investigator assignment, action creation, action completion) implies.

Incident lifecycle:
    open -> under_investigation -> actions_in_progress -> closed
    actions_in_progress -> under_investigation or open once actions resolve
    any active status -> cancelled; cancelled -> open (reopen)
    closed is terminal (closed rows move to fa_closed_incidents)
"""

from datetime import datetime, UTC
from typing import Dict, Iterable, Optional, Set

from storesafe.core.enums import (
    ActionStatus,
    IncidentStatus,
    InvestigationStatus,
    RESOLVED_ACTION_STATUSES,
)
from storesafe.core.exceptions import InvalidTransitionError

# Define allowed lifecycle transitions
INCIDENT_TRANSITIONS: Dict[IncidentStatus, Set[IncidentStatus]] = {
    IncidentStatus.OPEN: {
        IncidentStatus.UNDER_INVESTIGATION,
        IncidentStatus.ACTIONS_IN_PROGRESS,
        IncidentStatus.CLOSED,
        IncidentStatus.CANCELLED,
    },
    IncidentStatus.UNDER_INVESTIGATION: {
        IncidentStatus.OPEN,
        IncidentStatus.ACTIONS_IN_PROGRESS,
        IncidentStatus.CLOSED,
        IncidentStatus.CANCELLED,
    },
    IncidentStatus.ACTIONS_IN_PROGRESS: {
        IncidentStatus.OPEN,
        IncidentStatus.UNDER_INVESTIGATION,
        IncidentStatus.CLOSED,
        IncidentStatus.CANCELLED,
    },
    IncidentStatus.CANCELLED: {IncidentStatus.OPEN},
    IncidentStatus.CLOSED: set(),
}

INVESTIGATION_TRANSITIONS: Dict[InvestigationStatus, Set[InvestigationStatus]] = {
    InvestigationStatus.NOT_STARTED: {
        InvestigationStatus.IN_PROGRESS,
        InvestigationStatus.COMPLETE,
    },
    InvestigationStatus.IN_PROGRESS: {
        InvestigationStatus.AWAITING_ACTIONS,
        InvestigationStatus.COMPLETE,
    },
    InvestigationStatus.AWAITING_ACTIONS: {
        InvestigationStatus.IN_PROGRESS,
        InvestigationStatus.COMPLETE,
    },
    InvestigationStatus.COMPLETE: {InvestigationStatus.IN_PROGRESS},
}

ACTION_TRANSITIONS: Dict[ActionStatus, Set[ActionStatus]] = {
    ActionStatus.OPEN: {
        ActionStatus.IN_PROGRESS,
        ActionStatus.BLOCKED,
        ActionStatus.COMPLETE,
        ActionStatus.CANCELLED,
    },
    ActionStatus.IN_PROGRESS: {
        ActionStatus.OPEN,
        ActionStatus.BLOCKED,
        ActionStatus.COMPLETE,
        ActionStatus.CANCELLED,
    },
    ActionStatus.BLOCKED: {
        ActionStatus.OPEN,
        ActionStatus.IN_PROGRESS,
        ActionStatus.COMPLETE,
        ActionStatus.CANCELLED,
    },
    ActionStatus.COMPLETE: {ActionStatus.IN_PROGRESS},
    ActionStatus.CANCELLED: {ActionStatus.OPEN},
}

_TABLES = {
    "incident": (IncidentStatus, INCIDENT_TRANSITIONS),
    "investigation": (InvestigationStatus, INVESTIGATION_TRANSITIONS),
    "action": (ActionStatus, ACTION_TRANSITIONS),
}


def validate_transition(entity: str, current_status: str, new_status: str) -> None:
    """
    Validate a lifecycle transition.

    A transition to the current status is a no-op and always allowed.

    Args:
        entity: "incident", "investigation" or "action"
        current_status: Status stored on the record
        new_status: Requested status

    Raises:
        InvalidTransitionError: If the move is not allowed
        ValueError: If the entity or either status is unknown
    """
    status_enum, table = _TABLES[entity]
    current = status_enum(current_status)
    requested = status_enum(new_status)

    if current == requested:
        return

    if requested not in table[current]:
        raise InvalidTransitionError(entity, current.value, requested.value)


def can_transition(entity: str, current_status: str, new_status: str) -> bool:
    """Boolean form of `validate_transition`."""
    try:
        validate_transition(entity, current_status, new_status)
    except InvalidTransitionError:
        return False
    return True


# =====================================
# Derived incident status
# =====================================

def status_after_investigator_assigned(
    current_status: IncidentStatus,
    investigator_assigned: bool,
) -> IncidentStatus:
    """
    Incident status after the investigator field changes.

    Assigning someone to an open incident starts the investigation.
    Clearing the investigator never changes status.
    """
    current = IncidentStatus(current_status)
    if investigator_assigned and current == IncidentStatus.OPEN:
        return IncidentStatus.UNDER_INVESTIGATION
    return current


def status_after_action_created(current_status: IncidentStatus) -> IncidentStatus:
    """Incident status after a corrective action is raised against it."""
    current = IncidentStatus(current_status)
    if current in (IncidentStatus.OPEN, IncidentStatus.UNDER_INVESTIGATION):
        return IncidentStatus.ACTIONS_IN_PROGRESS
    return current


def status_after_actions_resolved(
    current_status: IncidentStatus,
    has_investigator: bool,
    action_statuses: Iterable[ActionStatus],
) -> IncidentStatus:
    """
    Incident status once its actions change.

    When every action is complete or cancelled, an incident that was
    waiting on actions returns to investigation (or to open when nobody
    is investigating).
    """
    current = IncidentStatus(current_status)
    statuses = [ActionStatus(s) for s in action_statuses]
    if current != IncidentStatus.ACTIONS_IN_PROGRESS or not statuses:
        return current
    if all(s in RESOLVED_ACTION_STATUSES for s in statuses):
        return IncidentStatus.UNDER_INVESTIGATION if has_investigator else IncidentStatus.OPEN
    return current


# =====================================
# Timestamp side effects
# =====================================

def apply_action_status(action, new_status: ActionStatus, now: Optional[datetime] = None) -> None:
    """Validate and apply an action status, stamping completed_at."""
    validate_transition("action", action.status, new_status)
    new_status = ActionStatus(new_status)
    now = now or datetime.now(UTC)

    if new_status == ActionStatus.COMPLETE and action.status != ActionStatus.COMPLETE:
        action.completed_at = now
    elif new_status != ActionStatus.COMPLETE:
        action.completed_at = None

    action.status = new_status


def apply_investigation_status(
    investigation,
    new_status: InvestigationStatus,
    now: Optional[datetime] = None,
) -> None:
    """Validate and apply an investigation status, stamping started/completed."""
    validate_transition("investigation", investigation.status, new_status)
    new_status = InvestigationStatus(new_status)
    now = now or datetime.now(UTC)

    if new_status == InvestigationStatus.IN_PROGRESS and investigation.status != InvestigationStatus.IN_PROGRESS:
        if investigation.started_at is None:
            investigation.started_at = now
    if new_status == InvestigationStatus.COMPLETE and investigation.status != InvestigationStatus.COMPLETE:
        investigation.completed_at = now
    elif new_status != InvestigationStatus.COMPLETE:
        investigation.completed_at = None

    investigation.status = new_status


def apply_incident_status(incident, new_status: IncidentStatus) -> IncidentStatus:
    """
    Validate and apply an incident status, returning the previous one.

    Closing is not applied here; the incident service moves the row to
    the closed table after this check.
    """
    previous = IncidentStatus(incident.status)
    validate_transition("incident", previous, new_status)
    incident.status = IncidentStatus(new_status)
    return previous


def apply_initial_investigation_status(
    investigation,
    status: InvestigationStatus,
    now: Optional[datetime] = None,
) -> None:
    """Stamp a new investigation created directly in a later status."""
    status = InvestigationStatus(status)
    now = now or datetime.now(UTC)
    investigation.status = status
    if status in (InvestigationStatus.IN_PROGRESS, InvestigationStatus.AWAITING_ACTIONS):
        investigation.started_at = now
    if status == InvestigationStatus.COMPLETE:
        investigation.started_at = investigation.started_at or now
        investigation.completed_at = now
