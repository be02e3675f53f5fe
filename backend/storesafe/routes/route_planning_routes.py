"""
Route Planning Routes
=====================

Endpoints:
- Optimizer and nearest-neighbour ordering (stateless)
- Planned dates, sequences, completion and rescheduling
- Operational items and visit time overrides for one route day
- Day schedule as JSON or as an iCalendar file

A route is addressed by `manager_user_id`, `planned_date` and an optional
`region`.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_ops, require_reader
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.route import (
    OperationalItemCreate,
    OperationalItemResponse,
    OperationalItemUpdate,
    PlannedDateUpdate,
    PlannedRoute,
    RouteOptimizeRequest,
    RouteOptimizeResponse,
    RouteOrderResponse,
    RouteRescheduleRequest,
    RouteSequenceUpdate,
    RouteStoresRequest,
    ScheduleResponse,
    VisitTimeResponse,
    VisitTimeUpsert,
)
from storesafe.schemas.store import StoreResponse
from storesafe.services.route_optimizer import nearest_neighbour_order, optimize_cluster
from storesafe.services.route_planning_service import HomeAddress, RoutePlanningService

router = APIRouter(
    prefix="/api/v1/routes",
    tags=["Route Planning"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid route input"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
    },
)


def _home(payload: RouteOptimizeRequest, user: User):
    """Explicit home from the request, else the caller's saved home."""
    if payload.home is not None:
        return payload.home
    if user.has_home_location:
        return HomeAddress(user)
    return None


# =====================================
# Optimizer
# =====================================

@router.post("/optimize", response_model=RouteOptimizeResponse, summary="Best Three-Store Cluster")
def optimize_route(
    payload: RouteOptimizeRequest,
    current_user: User = Depends(require_reader),
):
    return optimize_cluster(payload.stores, _home(payload, current_user))


@router.post("/order", response_model=RouteOrderResponse, summary="Nearest-Neighbour Order")
def order_route(
    payload: RouteOptimizeRequest,
    current_user: User = Depends(require_reader),
):
    return nearest_neighbour_order(payload.stores, _home(payload, current_user))


# =====================================
# Persisted planning
# =====================================

@router.get("/planned", response_model=List[PlannedRoute], summary="List Planned Routes")
def list_planned_routes(
    manager_user_id: Optional[UUID] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).list_planned_routes(manager_user_id)


@router.put("/stores/{store_id}/planned-date", response_model=StoreResponse, summary="Plan Store Visit")
def set_planned_date(
    store_id: UUID,
    payload: PlannedDateUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).set_planned_date(store_id, payload, current_user)


@router.put("/sequence", summary="Save Visit Order")
def set_sequence(
    payload: RouteSequenceUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> dict:
    stores = RoutePlanningService(db).set_sequence(payload.store_ids)
    return {"updated": len(stores)}


@router.post("/complete", summary="Complete Route")
def complete_route(
    payload: RouteStoresRequest,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> dict:
    return {"updated": RoutePlanningService(db).complete_route(payload.store_ids)}


@router.post("/reschedule", summary="Reschedule Route")
def reschedule_route(
    payload: RouteRescheduleRequest,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> dict:
    updated = RoutePlanningService(db).reschedule_route(payload.store_ids, payload.planned_date)
    return {"updated": updated}


# =====================================
# Operational items
# =====================================

@router.get(
    "/operational-items",
    response_model=List[OperationalItemResponse],
    summary="List Operational Items",
)
def list_operational_items(
    manager_user_id: UUID = Query(...),
    planned_date: date = Query(...),
    region: Optional[str] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).list_operational_items(manager_user_id, planned_date, region)


@router.post(
    "/operational-items",
    response_model=OperationalItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Operational Item",
)
def create_operational_item(
    payload: OperationalItemCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).create_operational_item(payload)


@router.patch(
    "/operational-items/{item_id}",
    response_model=OperationalItemResponse,
    summary="Update Operational Item",
)
def update_operational_item(
    item_id: UUID,
    payload: OperationalItemUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).update_operational_item(item_id, payload)


@router.delete(
    "/operational-items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Operational Item",
)
def delete_operational_item(
    item_id: UUID,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> None:
    RoutePlanningService(db).delete_operational_item(item_id)


# =====================================
# Visit time overrides
# =====================================

@router.get("/visit-times", response_model=List[VisitTimeResponse], summary="List Visit Times")
def list_visit_times(
    manager_user_id: UUID = Query(...),
    planned_date: date = Query(...),
    region: Optional[str] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).list_visit_times(manager_user_id, planned_date, region)


@router.put("/visit-times", response_model=VisitTimeResponse, summary="Save Visit Time")
def upsert_visit_time(
    payload: VisitTimeUpsert,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).upsert_visit_time(payload)


@router.delete(
    "/visit-times",
    summary="Reset Visit Times",
    description="Removes every override for the route day.",
)
def clear_visit_times(
    manager_user_id: UUID = Query(...),
    planned_date: date = Query(...),
    region: Optional[str] = Query(None),
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> dict:
    deleted = RoutePlanningService(db).clear_visit_times(manager_user_id, planned_date, region)
    return {"deleted": deleted}


@router.delete(
    "/visit-times/{visit_time_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Visit Time",
)
def delete_visit_time(
    visit_time_id: UUID,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> None:
    RoutePlanningService(db).delete_visit_time(visit_time_id)


# =====================================
# Schedule
# =====================================

@router.get("/schedule", response_model=ScheduleResponse, summary="Route Day Schedule")
def get_schedule(
    manager_user_id: UUID = Query(...),
    planned_date: date = Query(...),
    region: Optional[str] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return RoutePlanningService(db).schedule(manager_user_id, planned_date, region)


@router.get("/schedule.ics", summary="Route Day Calendar (ICS)")
def get_schedule_ics(
    manager_user_id: UUID = Query(...),
    planned_date: date = Query(...),
    region: Optional[str] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
) -> Response:
    calendar = RoutePlanningService(db).schedule_ics(manager_user_id, planned_date, region)
    return Response(
        content=calendar,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="route-{planned_date.isoformat()}.ics"'
        },
    )
