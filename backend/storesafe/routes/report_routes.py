"""
Report Routes
=============

CSV exports and the weekly digest.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_reader
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.report import WeeklyDigestResponse
from storesafe.services.digest_service import weekly_digest
from storesafe.services.export_service import actions_csv, export_filename, incidents_csv

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["Reports"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
    },
)


def _csv_response(content: str, prefix: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(prefix)}"'},
    )


@router.get("/incidents.csv", summary="Export Incidents (CSV)")
def export_incidents(
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
) -> Response:
    return _csv_response(incidents_csv(db), "incidents")


@router.get("/actions.csv", summary="Export Actions (CSV)")
def export_actions(
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
) -> Response:
    return _csv_response(actions_csv(db), "actions")


@router.get("/weekly-digest", response_model=WeeklyDigestResponse, summary="Weekly Digest")
def get_weekly_digest(
    start: Optional[str] = Query(None, description="Any date in the week, YYYY-MM-DD"),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return weekly_digest(db, start)
