"""
Store Routes
============

Store register, audit results, audit-2 planning, FRA tracking, the audit
tracker summary and the 30-day compliance forecast.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_ops, require_reader
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.store import (
    Audit2TrackingUpdate,
    AuditResultUpdate,
    AuditTrackerStats,
    CleanupResponse,
    ComplianceForecastResponse,
    FRAUpdate,
    StoreCreate,
    StoreListResponse,
    StoreLocationUpdate,
    StoreResponse,
    StoreUpdate,
)
from storesafe.services.metrics_service import store_forecast
from storesafe.services.store_service import StoreService

router = APIRouter(
    prefix="/api/v1/stores",
    tags=["Stores"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Store not found"},
    },
)


@router.get("", response_model=StoreListResponse, summary="List Stores")
def list_stores(
    q: Optional[str] = Query(None, description="Matches name, code or postcode"),
    region: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
) -> dict:
    stores = StoreService(db).list(q=q, region=region, is_active=is_active)
    return {"stores": stores, "total": len(stores)}


@router.post("", response_model=StoreResponse, status_code=status.HTTP_201_CREATED, summary="Create Store")
def create_store(
    payload: StoreCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).create(payload, current_user)


# =====================================
# Estate-wide views
# =====================================

@router.get("/tracker", response_model=AuditTrackerStats, summary="Audit Tracker Stats")
def audit_tracker(
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return StoreService(db).tracker_stats()


@router.get(
    "/compliance-forecast",
    response_model=ComplianceForecastResponse,
    summary="30-day Compliance Forecast",
)
def compliance_forecast(
    today: Optional[date] = Query(None, description="Override the reference date"),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return store_forecast(db, today)


@router.post(
    "/cleanup-audit-2-dates",
    response_model=CleanupResponse,
    summary="Clear Unscored Audit 2 Dates",
)
def cleanup_audit_2_dates(
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> dict:
    return {"updated": StoreService(db).cleanup_incomplete_audit_2_dates()}


# =====================================
# Single store
# =====================================

@router.get("/{store_id}", response_model=StoreResponse, summary="Get Store")
def get_store(
    store_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return StoreService(db).get(store_id)


@router.patch("/{store_id}", response_model=StoreResponse, summary="Update Store")
def update_store(
    store_id: UUID,
    payload: StoreUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).update(store_id, payload, current_user)


@router.put("/{store_id}/location", response_model=StoreResponse, summary="Set Store Coordinates")
def update_location(
    store_id: UUID,
    payload: StoreLocationUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).update_location(store_id, payload, current_user)


@router.put(
    "/{store_id}/audits/{round_no}",
    response_model=StoreResponse,
    summary="Record Audit Result",
)
def record_audit_result(
    store_id: UUID,
    payload: AuditResultUpdate,
    round_no: int = Path(..., ge=1, le=3),
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).record_audit_result(store_id, round_no, payload, current_user)


@router.patch("/{store_id}/audit-2", response_model=StoreResponse, summary="Update Audit 2 Planning")
def update_audit_2_tracking(
    store_id: UUID,
    payload: Audit2TrackingUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).update_audit_2_tracking(store_id, payload, current_user)


@router.patch("/{store_id}/fra", response_model=StoreResponse, summary="Update FRA Tracking")
def update_fra(
    store_id: UUID,
    payload: FRAUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return StoreService(db).update_fra(store_id, payload, current_user)
