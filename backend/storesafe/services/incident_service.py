"""
Incident Service
================

Create, update, assign, close and delete incidents.

Open incidents live in `fa_incidents`. Closing copies the row into
`fa_closed_incidents` under the same id and deletes the original; its
investigations, actions and attachment rows go with it. Reads fall back
to the closed table so a closed incident stays reachable by id.

Every status change is validated by `lifecycle_service`.
"""

from datetime import datetime, UTC
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from storesafe.core.enums import ActivityAction, EntityType, IncidentStatus
from storesafe.core.exceptions import (
    ConflictError,
    IncidentNotFoundError,
    StoreNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from storesafe.core.logging import get_logger, audit_logger
from storesafe.models.action import Action
from storesafe.models.activity_log import ActivityLog
from storesafe.models.attachment import Attachment
from storesafe.models.incident import ClosedIncident, Incident
from storesafe.models.investigation import Investigation
from storesafe.models.store import Store
from storesafe.models.user import User
from storesafe.schemas.incident import IncidentCreate, IncidentUpdate
from storesafe.services import lifecycle_service
from storesafe.services.activity_service import diff_fields, log_activity

logger = get_logger(__name__)

AnyIncident = Union[Incident, ClosedIncident]

UNASSIGNED = "unassigned"


def format_reference_no(year: int, sequence: int) -> str:
    """`INC-YYYY-NNNNNN`"""
    return f"INC-{year}-{sequence:06d}"


class IncidentService:
    """
    Incident operations bound to one request's session.

    Usage:
        service = IncidentService(db)
        incident = service.create(payload, current_user)
    """

    def __init__(self, db: Session):
        self.db = db

    # --------------------------
    # Reference Numbers
    # --------------------------

    def next_reference_no(self, year: Optional[int] = None) -> str:
        """
        Next per-year reference, unique across open and closed incidents.

        Sequences are zero padded so the string maximum is the numeric one.
        """
        year = year or datetime.now(UTC).year
        prefix = f"INC-{year}-"
        highest = 0
        for model in (Incident, ClosedIncident):
            current = (
                self.db.query(func.max(model.reference_no))
                .filter(model.reference_no.like(f"{prefix}%"))
                .scalar()
            )
            if current:
                highest = max(highest, int(current[len(prefix):]))
        return format_reference_no(year, highest + 1)

    # --------------------------
    # Lookup
    # --------------------------

    def get(self, incident_id: UUID) -> AnyIncident:
        """Open incident, else the closed one."""
        incident = self.db.get(Incident, incident_id)
        if incident is None:
            incident = self.db.get(ClosedIncident, incident_id)
        if incident is None:
            raise IncidentNotFoundError(str(incident_id))
        return incident

    def get_open(self, incident_id: UUID) -> Incident:
        """
        Open incident for a write.

        Raises:
            ConflictError: If the incident has already been closed
            IncidentNotFoundError: If it exists in neither table
        """
        incident = self.db.get(Incident, incident_id)
        if incident is not None:
            return incident
        if self.db.get(ClosedIncident, incident_id) is not None:
            raise ConflictError(
                "Incident is already closed",
                details={"incident_id": str(incident_id)},
            )
        raise IncidentNotFoundError(str(incident_id))

    def list(
        self,
        status: Optional[IncidentStatus] = None,
        severity: Optional[str] = None,
        category: Optional[str] = None,
        store_id: Optional[UUID] = None,
        include_closed: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[AnyIncident], int]:
        """
        Filtered incidents, newest occurrence first.

        Closed incidents are only included when asked for without a status
        filter, or when the status filter is `closed`.
        """
        if status == IncidentStatus.CLOSED:
            models = [ClosedIncident]
        elif include_closed and not status:
            models = [Incident, ClosedIncident]
        else:
            models = [Incident]

        def filtered(model):
            query = self.db.query(model)
            if status and model is Incident:
                query = query.filter(model.status == IncidentStatus(status))
            if severity:
                query = query.filter(model.severity == severity)
            if category:
                query = query.filter(model.incident_category == category)
            if store_id:
                query = query.filter(model.store_id == store_id)
            return query

        offset = (page - 1) * page_size
        if len(models) == 1:
            query = filtered(models[0])
            total = query.count()
            items = (
                query.order_by(models[0].occurred_at.desc())
                .offset(offset)
                .limit(page_size)
                .all()
            )
            return items, total

        rows: List[AnyIncident] = []
        for model in models:
            rows.extend(filtered(model).all())
        rows.sort(key=lambda row: row.occurred_at, reverse=True)
        return rows[offset:offset + page_size], len(rows)

    def detail(self, incident_id: UUID) -> dict:
        """Incident plus investigations, actions, attachments and history."""
        incident = self.get(incident_id)

        investigations = (
            self.db.query(Investigation)
            .filter(Investigation.incident_id == incident.id)
            .order_by(Investigation.created_at)
            .all()
        )
        actions = (
            self.db.query(Action)
            .filter(Action.incident_id == incident.id)
            .order_by(Action.due_date)
            .all()
        )
        attachments = (
            self.db.query(Attachment)
            .filter(
                Attachment.entity_type == EntityType.INCIDENT,
                Attachment.entity_id == incident.id,
            )
            .order_by(Attachment.created_at.desc())
            .all()
        )
        related_ids = [incident.id] + [i.id for i in investigations] + [a.id for a in actions]
        activity = (
            self.db.query(ActivityLog)
            .filter(ActivityLog.entity_id.in_(related_ids))
            .order_by(ActivityLog.created_at.desc())
            .all()
        )
        return {
            "incident": incident,
            "investigations": investigations,
            "actions": actions,
            "attachments": attachments,
            "activity": activity,
        }

    # --------------------------
    # Writes
    # --------------------------

    def _require_profile(self, user_id: Optional[UUID]) -> None:
        if user_id is not None and self.db.get(User, user_id) is None:
            raise UserNotFoundError(str(user_id))

    def create(self, payload: IncidentCreate, user: User) -> Incident:
        """Report an incident. New incidents are always `open`."""
        if self.db.get(Store, payload.store_id) is None:
            raise StoreNotFoundError(str(payload.store_id))
        self._require_profile(payload.assigned_investigator_user_id)

        values = payload.model_dump()
        status = lifecycle_service.status_after_investigator_assigned(
            IncidentStatus.OPEN,
            payload.assigned_investigator_user_id is not None,
        )
        incident = Incident(
            **values,
            reference_no=self.next_reference_no(),
            reported_by_user_id=user.id,
            reported_at=datetime.now(UTC),
            status=status,
        )
        self.db.add(incident)
        self.db.flush()

        log_activity(
            self.db,
            EntityType.INCIDENT,
            incident.id,
            ActivityAction.CREATED,
            user,
            {"reference_no": incident.reference_no, "summary": incident.summary},
        )
        self.db.commit()
        self.db.refresh(incident)

        logger.info(
            "Incident created",
            extra={"incident_id": str(incident.id), "reference_no": incident.reference_no}
        )
        return incident

    def update(self, incident_id: UUID, payload: IncidentUpdate, user: User) -> AnyIncident:
        """
        Update fields and optionally the status.

        A request to close is handed to `close`.
        """
        changes = payload.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)

        if new_status is not None and IncidentStatus(new_status) == IncidentStatus.CLOSED:
            incident = self.get_open(incident_id)
            details = diff_fields(
                {field: getattr(incident, field) for field in changes}, changes
            )
            for field, value in changes.items():
                setattr(incident, field, value)
            if details["new"]:
                log_activity(
                    self.db, EntityType.INCIDENT, incident.id, ActivityAction.UPDATED, user, details
                )
            return self.close(incident_id, None, user)

        incident = self.get_open(incident_id)
        old = {field: getattr(incident, field) for field in changes}
        if new_status is not None:
            old["status"] = incident.status
            lifecycle_service.apply_incident_status(incident, new_status)
            changes["status"] = IncidentStatus(new_status)

        for field, value in changes.items():
            if field != "status":
                setattr(incident, field, value)

        details = diff_fields(old, changes)
        if details["new"]:
            log_activity(
                self.db, EntityType.INCIDENT, incident.id, ActivityAction.UPDATED, user, details
            )
        self.db.commit()
        self.db.refresh(incident)
        return incident

    def assign_investigator(
        self,
        incident_id: UUID,
        investigator_id: Optional[str],
        user: User,
    ) -> Incident:
        """
        Set or clear the investigator.

        `"unassigned"` or an empty value clears it and leaves the status
        alone; assigning someone to an open incident starts the
        investigation.
        """
        incident = self.get_open(incident_id)
        clearing = not investigator_id or investigator_id == UNASSIGNED

        if clearing:
            investigator_uuid = None
        else:
            try:
                investigator_uuid = UUID(investigator_id)
            except ValueError:
                raise ValidationError(
                    "Invalid investigator id",
                    details={"investigator_user_id": investigator_id},
                )
            self._require_profile(investigator_uuid)

        old_status = incident.status
        incident.assigned_investigator_user_id = investigator_uuid
        new_status = lifecycle_service.status_after_investigator_assigned(
            incident.status, not clearing
        )
        if new_status != old_status:
            lifecycle_service.apply_incident_status(incident, new_status)

        details = {
            "message": "Investigator unassigned" if clearing else "Investigator assigned",
            "investigator_id": str(investigator_uuid) if investigator_uuid else None,
        }
        if new_status != old_status:
            details.update(diff_fields({"status": old_status}, {"status": new_status}))

        log_activity(
            self.db, EntityType.INCIDENT, incident.id, ActivityAction.UPDATED, user, details
        )
        self.db.commit()
        self.db.refresh(incident)
        return incident

    def close(self, incident_id: UUID, closure_summary: Optional[str], user: User) -> ClosedIncident:
        """
        Move an incident into the closed table.

        The copy keeps the id. If a closed row with that id already exists
        it is kept as is and only the open row is removed.
        """
        incident = self.get_open(incident_id)
        lifecycle_service.validate_transition("incident", incident.status, IncidentStatus.CLOSED)

        now = datetime.now(UTC)
        old_values = incident.copy_values()

        closed = self.db.get(ClosedIncident, incident.id)
        if closed is None:
            values = dict(old_values)
            values.update(
                status=IncidentStatus.CLOSED,
                closed_at=now,
                closure_summary=closure_summary or incident.closure_summary,
                updated_at=now,
            )
            closed = ClosedIncident(**values)
            self.db.add(closed)

        child_ids = [incident.id]
        child_ids += [row.id for row in incident.investigations]
        child_ids += [row.id for row in incident.actions]
        self.db.query(Attachment).filter(Attachment.entity_id.in_(child_ids)).delete(
            synchronize_session=False
        )

        self.db.delete(incident)

        log_activity(
            self.db,
            EntityType.INCIDENT,
            incident_id,
            ActivityAction.CLOSED,
            user,
            {
                "old": {"status": IncidentStatus(old_values["status"]).value},
                "new": {"status": IncidentStatus.CLOSED.value, "closed_at": now.isoformat()},
                "reference_no": old_values["reference_no"],
            },
        )
        self.db.commit()
        self.db.refresh(closed)

        audit_logger.log_incident_closed(
            actor_id=str(user.id),
            incident_id=str(incident_id),
            reference_no=closed.reference_no,
        )
        return closed

    def delete(self, incident_id: UUID, user: User) -> str:
        """
        Delete an incident from whichever table holds it.

        Returns:
            The deleted incident's reference number
        """
        incident: Optional[AnyIncident] = self.db.get(ClosedIncident, incident_id)
        if incident is None:
            incident = self.db.get(Incident, incident_id)
        if incident is None:
            raise IncidentNotFoundError(str(incident_id))

        reference_no = incident.reference_no
        child_ids = [incident.id]
        if isinstance(incident, Incident):
            child_ids += [row.id for row in incident.investigations]
            child_ids += [row.id for row in incident.actions]
        self.db.query(Attachment).filter(Attachment.entity_id.in_(child_ids)).delete(
            synchronize_session=False
        )
        self.db.delete(incident)

        log_activity(
            self.db,
            EntityType.INCIDENT,
            incident_id,
            ActivityAction.DELETED,
            user,
            {"reference_no": reference_no},
        )
        self.db.commit()

        audit_logger.log_incident_deleted(
            actor_id=str(user.id),
            incident_id=str(incident_id),
            reference_no=reference_no,
        )
        return reference_no

    # --------------------------
    # Derived Status
    # --------------------------

    def sync_status_with_actions(self, incident: Incident, user: Optional[User]) -> None:
        """
        Re-derive the incident status after its actions changed.

        Adds an activity entry when the status moves; the caller commits.
        """
        statuses = [action.status for action in incident.actions]
        new_status = lifecycle_service.status_after_actions_resolved(
            incident.status,
            incident.assigned_investigator_user_id is not None,
            statuses,
        )
        self._apply_derived_status(incident, new_status, user)

    def on_action_created(self, incident: Incident, user: Optional[User]) -> None:
        new_status = lifecycle_service.status_after_action_created(incident.status)
        self._apply_derived_status(incident, new_status, user)

    def _apply_derived_status(
        self,
        incident: Incident,
        new_status: IncidentStatus,
        user: Optional[User],
    ) -> None:
        old_status = incident.status
        if new_status == old_status:
            return
        lifecycle_service.apply_incident_status(incident, new_status)
        log_activity(
            self.db,
            EntityType.INCIDENT,
            incident.id,
            ActivityAction.UPDATED,
            user,
            diff_fields({"status": old_status}, {"status": new_status}),
        )

