"""
Route Planning Models
=====================

Per-day extras for a manager's planned route. A route is identified by
(manager, planned date, region); region may be NULL.
"""

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from storesafe.db.base import Base
import uuid
from datetime import datetime, UTC


class RouteOperationalItem(Base):
    """Non-store stop on a route day (e.g. a team meeting), HH:MM start."""

    __tablename__ = "fa_route_operational_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    manager_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    planned_date = Column(Date, nullable=False)
    region = Column(String(50), nullable=True)

    title = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    start_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class RouteVisitTime(Base):
    """Saved start/end override for one store visit on a route day."""

    __tablename__ = "fa_route_visit_times"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    manager_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    planned_date = Column(Date, nullable=False)
    region = Column(String(50), nullable=True)
    store_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fa_stores.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "manager_user_id", "planned_date", "region", "store_id",
            name="uq_fa_route_visit_times_stop",
        ),
    )
