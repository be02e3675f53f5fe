"""
Activity Service
================

Writes and reads the per-entity history in `fa_activity_log`.

Entries are added to the caller's session and committed together with the
change they describe.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from storesafe.core.enums import ActivityAction, EntityType
from storesafe.models.activity_log import ActivityLog
from storesafe.models.user import User


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def diff_fields(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Build `{"old": {...}, "new": {...}}` for the keys whose value changed.
    """
    changed = [key for key in new if _jsonable(old.get(key)) != _jsonable(new[key])]
    return {
        "old": {key: _jsonable(old.get(key)) for key in changed},
        "new": {key: _jsonable(new[key]) for key in changed},
    }


def log_activity(
    db: Session,
    entity_type: EntityType,
    entity_id: UUID,
    action: ActivityAction,
    user: Optional[User],
    details: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """
    Add an activity entry to the current transaction.

    The caller commits; a failed change rolls the entry back with it.
    """
    entry = ActivityLog(
        entity_type=EntityType(entity_type),
        entity_id=entity_id,
        action=ActivityAction(action).value,
        performed_by_user_id=user.id if user else None,
        details={key: _jsonable(value) for key, value in (details or {}).items()},
    )
    db.add(entry)
    return entry


def list_activity(
    db: Session,
    entity_type: Optional[EntityType] = None,
    entity_id: Optional[UUID] = None,
    limit: int = 50,
) -> List[ActivityLog]:
    """Newest first."""
    query = db.query(ActivityLog)
    if entity_type:
        query = query.filter(ActivityLog.entity_type == EntityType(entity_type))
    if entity_id:
        query = query.filter(ActivityLog.entity_id == entity_id)
    return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
