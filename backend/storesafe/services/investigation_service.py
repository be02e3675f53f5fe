"""
Investigation Service
=====================

Investigations hang off open incidents. Status changes and their
started/completed timestamps go through `lifecycle_service`.
"""

from datetime import datetime, UTC
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from storesafe.core.enums import ActivityAction, EntityType, InvestigationStatus
from storesafe.core.exceptions import NotFoundError
from storesafe.models.investigation import Investigation
from storesafe.models.user import User
from storesafe.schemas.investigation import InvestigationCreate, InvestigationUpdate
from storesafe.services import lifecycle_service
from storesafe.services.activity_service import diff_fields, log_activity
from storesafe.services.incident_service import IncidentService


class InvestigationService:

    def __init__(self, db: Session):
        self.db = db

    def get(self, investigation_id: UUID) -> Investigation:
        investigation = self.db.get(Investigation, investigation_id)
        if investigation is None:
            raise NotFoundError("Investigation", str(investigation_id))
        return investigation

    def list_for_incident(self, incident_id: UUID) -> List[Investigation]:
        return (
            self.db.query(Investigation)
            .filter(Investigation.incident_id == incident_id)
            .order_by(Investigation.created_at)
            .all()
        )

    def create(self, payload: InvestigationCreate, user: User) -> Investigation:
        """
        Open an investigation. Creating directly as `in_progress` stamps
        `started_at`.
        """
        incident = IncidentService(self.db).get_open(payload.incident_id)

        values = payload.model_dump(exclude={"status"})
        investigation = Investigation(**values)
        lifecycle_service.apply_initial_investigation_status(investigation, payload.status)

        self.db.add(investigation)
        self.db.flush()

        log_activity(
            self.db,
            EntityType.INVESTIGATION,
            investigation.id,
            ActivityAction.CREATED,
            user,
            {
                "incident_id": str(incident.id),
                "investigation_type": investigation.investigation_type,
                "status": investigation.status,
            },
        )
        self.db.commit()
        self.db.refresh(investigation)
        return investigation

    def update(
        self,
        investigation_id: UUID,
        payload: InvestigationUpdate,
        user: User,
        now: Optional[datetime] = None,
    ) -> Investigation:
        investigation = self.get(investigation_id)
        changes = payload.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)

        old = {field: getattr(investigation, field) for field in changes}
        if new_status is not None:
            old["status"] = investigation.status
            lifecycle_service.apply_investigation_status(
                investigation, new_status, now or datetime.now(UTC)
            )
            changes["status"] = InvestigationStatus(new_status)

        for field, value in changes.items():
            if field != "status":
                setattr(investigation, field, value)

        details = diff_fields(old, changes)
        if details["new"]:
            log_activity(
                self.db,
                EntityType.INVESTIGATION,
                investigation.id,
                ActivityAction.UPDATED,
                user,
                details,
            )
        self.db.commit()
        self.db.refresh(investigation)
        return investigation
