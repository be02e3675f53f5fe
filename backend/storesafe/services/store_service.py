"""
Store Service
=============

Store CRUD, compliance audit results, audit-2 tracking, FRA records and
the audit tracker statistics.
"""

import math
from collections import defaultdict
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from storesafe.core.enums import ActivityAction, EntityType
from storesafe.core.exceptions import ConflictError, StoreNotFoundError, UserNotFoundError, ValidationError
from storesafe.core.logging import get_logger
from storesafe.models.store import AUDIT_ROUNDS, Store
from storesafe.models.user import User
from storesafe.schemas.store import (
    Audit2TrackingUpdate,
    AuditResultUpdate,
    FRAUpdate,
    StoreCreate,
    StoreLocationUpdate,
    StoreUpdate,
)
from storesafe.services.activity_service import diff_fields, log_activity

logger = get_logger(__name__)

NO_REGION = "Unassigned"


# ==========================
# Formatting
# ==========================

def truncate_to_decimals(value: float, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return math.trunc(value * factor) / factor


def format_percent(value: Optional[float], decimals: int = 2) -> str:
    """`72.459` -> `"72.45%"`. Truncates rather than rounds; None -> `"—"`."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "—"
    return f"{truncate_to_decimals(value, decimals):.{decimals}f}%"


def latest_pct(store: Store) -> Optional[float]:
    """Round 2 score when present, else round 1."""
    if store.compliance_audit_2_overall_pct is not None:
        return store.compliance_audit_2_overall_pct
    return store.compliance_audit_1_overall_pct


# ==========================
# Audit Tracker
# ==========================

def _completion(stores: List[Store], round_no: int) -> float:
    active = [s for s in stores if s.is_active]
    if not active:
        return 0.0
    done = sum(1 for s in active if s.audit_pct(round_no) is not None)
    return done / len(active) * 100


def _average_latest(stores: List[Store]) -> Optional[float]:
    scores = [latest_pct(s) for s in stores if s.is_active]
    scores = [score for score in scores if score is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


def audit_tracker_stats(stores: Iterable[Store]) -> dict:
    """
    Region breakdown of audit progress.

    Completion is the share of active stores with a recorded score for the
    round.
    """
    stores = list(stores)
    by_region = defaultdict(list)
    for store in stores:
        by_region[store.region or NO_REGION].append(store)

    regions = [
        {
            "region": region,
            "store_count": sum(1 for s in members if s.is_active),
            "average_latest_pct": _average_latest(members),
            "round_1_completion_pct": _completion(members, 1),
            "round_2_completion_pct": _completion(members, 2),
        }
        for region, members in sorted(by_region.items())
    ]
    return {
        "total_stores": sum(1 for s in stores if s.is_active),
        "average_latest_pct": _average_latest(stores),
        "round_1_completion_pct": _completion(stores, 1),
        "round_2_completion_pct": _completion(stores, 2),
        "regions": regions,
    }


# ==========================
# Store Service Class
# ==========================

class StoreService:

    def __init__(self, db: Session):
        self.db = db

    def get(self, store_id: UUID) -> Store:
        store = self.db.get(Store, store_id)
        if store is None:
            raise StoreNotFoundError(str(store_id))
        return store

    def list(
        self,
        q: Optional[str] = None,
        region: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[Store]:
        """`q` matches name, code or postcode (case-insensitive)."""
        query = self.db.query(Store)
        if q:
            pattern = f"%{q.strip()}%"
            query = query.filter(
                or_(
                    Store.store_name.ilike(pattern),
                    Store.store_code.ilike(pattern),
                    Store.postcode.ilike(pattern),
                )
            )
        if region:
            query = query.filter(Store.region == region)
        if is_active is not None:
            query = query.filter(Store.is_active == is_active)
        return query.order_by(Store.store_name).all()

    def _check_code_free(self, store_code: Optional[str], store_id: Optional[UUID] = None) -> None:
        if not store_code:
            return
        existing = self.db.query(Store).filter(Store.store_code == store_code).first()
        if existing is not None and existing.id != store_id:
            raise ConflictError(
                "A store with this code already exists",
                details={"store_code": store_code},
            )

    def create(self, payload: StoreCreate, user: User) -> Store:
        self._check_code_free(payload.store_code)
        store = Store(**payload.model_dump())
        self.db.add(store)
        self.db.flush()
        log_activity(
            self.db, EntityType.STORE, store.id, ActivityAction.CREATED, user,
            {"store_name": store.store_name},
        )
        self.db.commit()
        self.db.refresh(store)
        return store

    def _apply(self, store: Store, values: dict, user: User, old: Optional[dict] = None) -> Store:
        if old is None:
            old = {field: getattr(store, field) for field in values}
        for field, value in values.items():
            setattr(store, field, value)
        details = diff_fields(old, values)
        if details["new"]:
            log_activity(self.db, EntityType.STORE, store.id, ActivityAction.UPDATED, user, details)
        self.db.commit()
        self.db.refresh(store)
        return store

    def update(self, store_id: UUID, payload: StoreUpdate, user: User) -> Store:
        store = self.get(store_id)
        values = payload.model_dump(exclude_unset=True)
        if "store_code" in values:
            self._check_code_free(values["store_code"], store.id)
        return self._apply(store, values, user)

    def update_location(self, store_id: UUID, payload: StoreLocationUpdate, user: User) -> Store:
        store = self.get(store_id)
        return self._apply(store, payload.model_dump(), user)

    def record_audit_result(
        self,
        store_id: UUID,
        round_no: int,
        payload: AuditResultUpdate,
        user: User,
    ) -> Store:
        """
        Record the result of audit round 1, 2 or 3.

        `total_audits_to_date` is recomputed from the rounds with a score.
        """
        if round_no not in AUDIT_ROUNDS:
            raise ValidationError(
                "Audit round must be 1, 2 or 3",
                details={"round": round_no},
            )
        store = self.get(store_id)
        fields = {
            "audit_date": f"compliance_audit_{round_no}_date",
            "overall_pct": f"compliance_audit_{round_no}_overall_pct",
            "action_plan_sent": f"action_plan_{round_no}_sent",
            "pdf_path": f"compliance_audit_{round_no}_pdf_path",
        }
        values = {
            fields[key]: value
            for key, value in payload.model_dump(exclude_unset=True).items()
        }
        old = {column: getattr(store, column) for column in values}
        old["total_audits_to_date"] = store.total_audits_to_date
        for column, value in values.items():
            setattr(store, column, value)
        values["total_audits_to_date"] = store.recompute_total_audits()
        return self._apply(store, values, user, old=old)

    def update_audit_2_tracking(
        self,
        store_id: UUID,
        payload: Audit2TrackingUpdate,
        user: User,
    ) -> Store:
        store = self.get(store_id)
        changes = payload.model_dump(exclude_unset=True)
        values = {}
        if "assigned_manager_user_id" in changes:
            manager_id = changes["assigned_manager_user_id"]
            if manager_id is not None and self.db.get(User, manager_id) is None:
                raise UserNotFoundError(str(manager_id))
            values["compliance_audit_2_assigned_manager_user_id"] = manager_id
        if "planned_date" in changes:
            values["compliance_audit_2_planned_date"] = changes["planned_date"]
            if changes["planned_date"] is None:
                values["route_sequence"] = None
        return self._apply(store, values, user)

    def update_fra(self, store_id: UUID, payload: FRAUpdate, user: User) -> Store:
        store = self.get(store_id)
        changes = payload.model_dump(exclude_unset=True)
        mapping = {
            "assessment_date": "fire_risk_assessment_date",
            "notes": "fire_risk_assessment_notes",
            "pct": "fire_risk_assessment_pct",
            "pdf_path": "fire_risk_assessment_pdf_path",
        }
        values = {mapping[key]: value for key, value in changes.items()}
        return self._apply(store, values, user)

    def cleanup_incomplete_audit_2_dates(self) -> int:
        """
        Clear audit 2 dates that never got a score.

        Returns:
            Number of stores changed
        """
        stores = (
            self.db.query(Store)
            .filter(
                Store.compliance_audit_2_date.isnot(None),
                Store.compliance_audit_2_overall_pct.is_(None),
            )
            .all()
        )
        for store in stores:
            store.compliance_audit_2_date = None
        self.db.commit()

        logger.info("Cleared incomplete audit 2 dates", extra={"count": len(stores)})
        return len(stores)

    def tracker_stats(self) -> dict:
        return audit_tracker_stats(self.db.query(Store).all())

