"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from storesafe.models import User, Store, Incident
"""

from .role_enum import Role
from .user import User
from .store import Store
from .incident import Incident, ClosedIncident
from .investigation import Investigation
from .action import Action
from .attachment import Attachment
from .activity_log import ActivityLog
from .route_planning import RouteOperationalItem, RouteVisitTime
from .audit_template import AuditTemplate, AuditTemplateSection, AuditTemplateQuestion

__all__ = [
    "Role",
    "User",
    "Store",
    "Incident",
    "ClosedIncident",
    "Investigation",
    "Action",
    "Attachment",
    "ActivityLog",
    "RouteOperationalItem",
    "RouteVisitTime",
    "AuditTemplate",
    "AuditTemplateSection",
    "AuditTemplateQuestion",
]
