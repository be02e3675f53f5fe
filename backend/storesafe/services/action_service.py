"""
Corrective Action Service
=========================

Actions are raised against open incidents. Creating one, or resolving the
last outstanding one, can move the parent incident; both derivations come
from `lifecycle_service`.
"""

from datetime import date, datetime, UTC
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from storesafe.core.enums import ActionStatus, ActivityAction, EntityType, RESOLVED_ACTION_STATUSES
from storesafe.core.exceptions import NotFoundError, ValidationError
from storesafe.models.action import Action
from storesafe.models.investigation import Investigation
from storesafe.models.user import User
from storesafe.schemas.action import ActionCreate, ActionUpdate
from storesafe.services import lifecycle_service
from storesafe.services.activity_service import diff_fields, log_activity
from storesafe.services.incident_service import IncidentService


class ActionService:

    def __init__(self, db: Session):
        self.db = db
        self.incidents = IncidentService(db)

    def get(self, action_id: UUID) -> Action:
        action = self.db.get(Action, action_id)
        if action is None:
            raise NotFoundError("Action", str(action_id))
        return action

    def list(
        self,
        status: Optional[ActionStatus] = None,
        incident_id: Optional[UUID] = None,
        assigned_to: Optional[UUID] = None,
        overdue: bool = False,
        today: Optional[date] = None,
    ) -> List[Action]:
        """
        Filtered actions ordered by due date.

        `overdue` keeps actions past their due date that are neither
        complete nor cancelled.
        """
        query = self.db.query(Action)
        if status:
            query = query.filter(Action.status == ActionStatus(status))
        if incident_id:
            query = query.filter(Action.incident_id == incident_id)
        if assigned_to:
            query = query.filter(Action.assigned_to_user_id == assigned_to)
        if overdue:
            query = query.filter(
                Action.due_date < (today or date.today()),
                Action.status.notin_(RESOLVED_ACTION_STATUSES),
            )
        return query.order_by(Action.due_date).all()

    def create(self, payload: ActionCreate, user: User) -> Action:
        incident = self.incidents.get_open(payload.incident_id)

        if payload.investigation_id is not None:
            investigation = self.db.get(Investigation, payload.investigation_id)
            if investigation is None or investigation.incident_id != incident.id:
                raise ValidationError(
                    "Investigation does not belong to this incident",
                    details={"investigation_id": str(payload.investigation_id)},
                )

        action = Action(**payload.model_dump(), status=ActionStatus.OPEN)
        self.db.add(action)
        self.db.flush()

        log_activity(
            self.db,
            EntityType.ACTION,
            action.id,
            ActivityAction.CREATED,
            user,
            {"incident_id": str(incident.id), "title": action.title},
        )
        self.incidents.on_action_created(incident, user)

        self.db.commit()
        self.db.refresh(action)
        return action

    def update(
        self,
        action_id: UUID,
        payload: ActionUpdate,
        user: User,
        now: Optional[datetime] = None,
    ) -> Action:
        action = self.get(action_id)
        changes = payload.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)

        old = {field: getattr(action, field) for field in changes}
        if new_status is not None:
            old["status"] = action.status
            lifecycle_service.apply_action_status(action, new_status, now or datetime.now(UTC))
            changes["status"] = ActionStatus(new_status)

        for field, value in changes.items():
            if field != "status":
                setattr(action, field, value)

        details = diff_fields(old, changes)
        if details["new"]:
            log_activity(
                self.db, EntityType.ACTION, action.id, ActivityAction.UPDATED, user, details
            )

        if new_status is not None:
            self.db.flush()
            self.incidents.sync_status_with_actions(action.incident, user)

        self.db.commit()
        self.db.refresh(action)
        return action

    def delete(self, action_id: UUID, user: User) -> None:
        action = self.get(action_id)
        incident = action.incident

        log_activity(
            self.db,
            EntityType.ACTION,
            action.id,
            ActivityAction.DELETED,
            user,
            {"incident_id": str(action.incident_id), "title": action.title},
        )
        self.db.delete(action)
        self.db.flush()
        self.db.expire(incident, ["actions"])
        self.incidents.sync_status_with_actions(incident, user)
        self.db.commit()
