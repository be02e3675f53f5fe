"""
Route Planning Service
======================

Persisted route state on `fa_stores` (planned date, assigned manager,
sequence), per-day operational items, visit time overrides and the
schedule for one route.

A route is identified by (manager, planned date, region). A NULL region
only matches NULL.
"""

from collections import defaultdict
from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from storesafe.core.enums import ActivityAction, EntityType
from storesafe.core.exceptions import NotFoundError, StoreNotFoundError, UserNotFoundError
from storesafe.core.logging import get_logger
from storesafe.models.route_planning import RouteOperationalItem, RouteVisitTime
from storesafe.models.store import Store
from storesafe.models.user import User
from storesafe.schemas.route import (
    OperationalItemCreate,
    OperationalItemUpdate,
    PlannedDateUpdate,
    VisitTimeUpsert,
)
from storesafe.services import route_schedule
from storesafe.services.activity_service import diff_fields, log_activity

logger = get_logger(__name__)


def _region_filter(column, region: Optional[str]):
    return column.is_(None) if region is None else column == region


def _sequence_key(store: Store):
    return (store.route_sequence is None, store.route_sequence or 0, store.store_name)


class HomeAddress:
    """Manager home as used by the schedule builder."""

    def __init__(self, user: User):
        self.address = user.home_address or "Home"
        self.latitude = user.home_latitude
        self.longitude = user.home_longitude


class RoutePlanningService:

    def __init__(self, db: Session):
        self.db = db

    # ==========================
    # Stores on a route
    # ==========================

    def _store(self, store_id: UUID) -> Store:
        store = self.db.get(Store, store_id)
        if store is None:
            raise StoreNotFoundError(str(store_id))
        return store

    def _stores(self, store_ids: Sequence[UUID]) -> List[Store]:
        return [self._store(store_id) for store_id in store_ids]

    def set_planned_date(self, store_id: UUID, payload: PlannedDateUpdate, user: User) -> Store:
        """Plan a visit; clearing the date also clears the route sequence."""
        store = self._store(store_id)
        changes = payload.model_dump(exclude_unset=True)
        values = {"compliance_audit_2_planned_date": payload.planned_date}

        if "manager_user_id" in changes:
            manager_id = changes["manager_user_id"]
            if manager_id is not None and self.db.get(User, manager_id) is None:
                raise UserNotFoundError(str(manager_id))
            values["compliance_audit_2_assigned_manager_user_id"] = manager_id
        if payload.planned_date is None:
            values["route_sequence"] = None

        old = {field: getattr(store, field) for field in values}
        for field, value in values.items():
            setattr(store, field, value)

        details = diff_fields(old, values)
        if details["new"]:
            log_activity(self.db, EntityType.STORE, store.id, ActivityAction.UPDATED, user, details)
        self.db.commit()
        self.db.refresh(store)
        return store

    def set_sequence(self, store_ids: Sequence[UUID]) -> List[Store]:
        """Number stores 1..n in the order given."""
        stores = self._stores(store_ids)
        for position, store in enumerate(stores, start=1):
            store.route_sequence = position
        self.db.commit()
        logger.info("Route sequence saved", extra={"store_count": len(stores)})
        return stores

    def complete_route(self, store_ids: Sequence[UUID]) -> int:
        """Clear planned date and sequence for the visited stores."""
        stores = self._stores(store_ids)
        for store in stores:
            store.compliance_audit_2_planned_date = None
            store.route_sequence = None
        self.db.commit()
        logger.info("Route completed", extra={"store_count": len(stores)})
        return len(stores)

    def reschedule_route(self, store_ids: Sequence[UUID], planned_date: date) -> int:
        stores = self._stores(store_ids)
        for store in stores:
            store.compliance_audit_2_planned_date = planned_date
        self.db.commit()
        logger.info(
            "Route rescheduled",
            extra={"store_count": len(stores), "planned_date": str(planned_date)},
        )
        return len(stores)

    def list_planned_routes(self, manager_user_id: Optional[UUID] = None) -> List[dict]:
        """
        Stores with a planned date grouped by (manager, date, region).

        Groups are ordered by date; stores within a group by route
        sequence with unsequenced stores last.
        """
        query = self.db.query(Store).filter(Store.compliance_audit_2_planned_date.isnot(None))
        if manager_user_id is not None:
            query = query.filter(Store.compliance_audit_2_assigned_manager_user_id == manager_user_id)

        groups = defaultdict(list)
        for store in query.all():
            key = (
                store.compliance_audit_2_assigned_manager_user_id,
                store.compliance_audit_2_planned_date,
                store.region,
            )
            groups[key].append(store)

        manager_ids = {key[0] for key in groups if key[0] is not None}
        managers = {
            user.id: user
            for user in self.db.query(User).filter(User.id.in_(manager_ids)).all()
        } if manager_ids else {}

        routes = []
        for (manager_id, planned_date, region), stores in groups.items():
            manager = managers.get(manager_id)
            routes.append({
                "manager_user_id": manager_id,
                "manager_name": manager.display_name if manager else None,
                "planned_date": planned_date,
                "region": region,
                "stores": [
                    {
                        "store_id": store.id,
                        "store_name": store.store_name,
                        "store_code": store.store_code,
                        "postcode": store.postcode,
                        "route_sequence": store.route_sequence,
                        "latitude": store.latitude,
                        "longitude": store.longitude,
                    }
                    for store in sorted(stores, key=_sequence_key)
                ],
            })
        routes.sort(key=lambda route: (route["planned_date"], route["manager_name"] or "", route["region"] or ""))
        return routes

    def route_stores(self, manager_user_id: UUID, planned_date: date, region: Optional[str]) -> List[Store]:
        stores = (
            self.db.query(Store)
            .filter(
                Store.compliance_audit_2_assigned_manager_user_id == manager_user_id,
                Store.compliance_audit_2_planned_date == planned_date,
                _region_filter(Store.region, region),
            )
            .all()
        )
        return sorted(stores, key=_sequence_key)

    # ==========================
    # Operational items
    # ==========================

    def list_operational_items(
        self, manager_user_id: UUID, planned_date: date, region: Optional[str]
    ) -> List[RouteOperationalItem]:
        return (
            self.db.query(RouteOperationalItem)
            .filter(
                RouteOperationalItem.manager_user_id == manager_user_id,
                RouteOperationalItem.planned_date == planned_date,
                _region_filter(RouteOperationalItem.region, region),
            )
            .order_by(RouteOperationalItem.start_time)
            .all()
        )

    def _operational_item(self, item_id: UUID) -> RouteOperationalItem:
        item = self.db.get(RouteOperationalItem, item_id)
        if item is None:
            raise NotFoundError("Operational item", str(item_id))
        return item

    def create_operational_item(self, payload: OperationalItemCreate) -> RouteOperationalItem:
        item = RouteOperationalItem(**payload.model_dump())
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_operational_item(self, item_id: UUID, payload: OperationalItemUpdate) -> RouteOperationalItem:
        item = self._operational_item(item_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_operational_item(self, item_id: UUID) -> None:
        self.db.delete(self._operational_item(item_id))
        self.db.commit()

    # ==========================
    # Visit time overrides
    # ==========================

    def list_visit_times(
        self, manager_user_id: UUID, planned_date: date, region: Optional[str]
    ) -> List[RouteVisitTime]:
        return (
            self.db.query(RouteVisitTime)
            .filter(
                RouteVisitTime.manager_user_id == manager_user_id,
                RouteVisitTime.planned_date == planned_date,
                _region_filter(RouteVisitTime.region, region),
            )
            .all()
        )

    def upsert_visit_time(self, payload: VisitTimeUpsert) -> RouteVisitTime:
        self._store(payload.store_id)
        visit = (
            self.db.query(RouteVisitTime)
            .filter(
                RouteVisitTime.manager_user_id == payload.manager_user_id,
                RouteVisitTime.planned_date == payload.planned_date,
                _region_filter(RouteVisitTime.region, payload.region),
                RouteVisitTime.store_id == payload.store_id,
            )
            .first()
        )
        if visit is None:
            visit = RouteVisitTime(**payload.model_dump())
            self.db.add(visit)
        else:
            visit.start_time = payload.start_time
            visit.end_time = payload.end_time
        self.db.commit()
        self.db.refresh(visit)
        return visit

    def delete_visit_time(self, visit_time_id: UUID) -> None:
        visit = self.db.get(RouteVisitTime, visit_time_id)
        if visit is None:
            raise NotFoundError("Visit time", str(visit_time_id))
        self.db.delete(visit)
        self.db.commit()

    def clear_visit_times(self, manager_user_id: UUID, planned_date: date, region: Optional[str]) -> int:
        visits = self.list_visit_times(manager_user_id, planned_date, region)
        for visit in visits:
            self.db.delete(visit)
        self.db.commit()
        return len(visits)

    # ==========================
    # Schedule
    # ==========================

    def schedule_entries(
        self, manager_user_id: UUID, planned_date: date, region: Optional[str]
    ) -> tuple:
        """
        Returns:
            (entries, stores) for the route
        """
        manager = self.db.get(User, manager_user_id)
        if manager is None:
            raise UserNotFoundError(str(manager_user_id))

        stores = self.route_stores(manager_user_id, planned_date, region)
        visit_times = {
            visit.store_id: visit
            for visit in self.list_visit_times(manager_user_id, planned_date, region)
        }
        items = self.list_operational_items(manager_user_id, planned_date, region)
        home = HomeAddress(manager) if manager.has_home_location else None

        entries = route_schedule.build_schedule(
            planned_date, stores, home=home, visit_times=visit_times, operational_items=items
        )
        return entries, stores

    def schedule(self, manager_user_id: UUID, planned_date: date, region: Optional[str]) -> dict:
        entries, _ = self.schedule_entries(manager_user_id, planned_date, region)
        return {
            "manager_user_id": manager_user_id,
            "planned_date": planned_date,
            "region": region,
            "items": [entry.to_dict() for entry in entries],
        }

    def schedule_ics(self, manager_user_id: UUID, planned_date: date, region: Optional[str]) -> str:
        entries, stores = self.schedule_entries(manager_user_id, planned_date, region)
        store_names = {store.id: store.store_name for store in stores}
        return route_schedule.build_ics(entries, planned_date, store_names)
