"""
Enumeration Module
==================

Defines enumerations used across the application.
"""

from enum import Enum


class IncidentStatus(str, Enum):
    """Lifecycle statuses for store incidents."""

    OPEN = "open"
    UNDER_INVESTIGATION = "under_investigation"
    ACTIONS_IN_PROGRESS = "actions_in_progress"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class IncidentCategory(str, Enum):
    ACCIDENT = "accident"
    NEAR_MISS = "near_miss"
    SECURITY = "security"
    FIRE = "fire"
    HEALTH_SAFETY = "health_safety"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InvestigationType(str, Enum):
    LIGHT_TOUCH = "light_touch"
    FORMAL = "formal"


class InvestigationStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    AWAITING_ACTIONS = "awaiting_actions"
    COMPLETE = "complete"


class ActionPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ActionStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class EntityType(str, Enum):
    """Entities that carry attachments and activity history."""

    INCIDENT = "incident"
    INVESTIGATION = "investigation"
    ACTION = "action"
    STORE = "store"


class ActivityAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    CLOSED = "CLOSED"


class QuestionType(str, Enum):
    """Answer kinds for audit template questions."""

    YESNO = "yesno"
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


# Statuses counted as "open" in dashboards and forecasts
ACTIVE_INCIDENT_STATUSES = (
    IncidentStatus.OPEN,
    IncidentStatus.UNDER_INVESTIGATION,
    IncidentStatus.ACTIONS_IN_PROGRESS,
)

RESOLVED_ACTION_STATUSES = (
    ActionStatus.COMPLETE,
    ActionStatus.CANCELLED,
)
