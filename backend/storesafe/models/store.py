"""
Store Model
===========

A retail store with its compliance audit history, FRA record and
route-planning state.

Audit rounds:
    Rounds 1 and 2 are the yearly compliance audits; round 3 is an
    optional follow-up. Round 2 can be planned against a manager and a date,
    which is what the route planner works from.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Float,
    Date,
    DateTime,
    Text,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storesafe.db.base import Base
from storesafe.models.user import User

AUDIT_ROUNDS = (1, 2, 3)


class Store(Base):
    __tablename__ = "fa_stores"

    def __init__(self, **kwargs):
        if 'is_active' not in kwargs:
            kwargs['is_active'] = True
        super().__init__(**kwargs)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ==========================
    # Identity & Address
    # ==========================
    store_code: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line_1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # ==========================
    # Compliance Audits
    # ==========================
    compliance_audit_1_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    compliance_audit_1_overall_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    action_plan_1_sent: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    compliance_audit_1_pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    compliance_audit_2_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    compliance_audit_2_overall_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    action_plan_2_sent: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    compliance_audit_2_pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    compliance_audit_3_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    compliance_audit_3_overall_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    action_plan_3_sent: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    compliance_audit_3_pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    area_average_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_audits_to_date: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ==========================
    # Route Planning (audit round 2)
    # ==========================
    compliance_audit_2_assigned_manager_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    compliance_audit_2_planned_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    route_sequence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    assigned_manager: Mapped[Optional[User]] = relationship(
        User,
        foreign_keys=[compliance_audit_2_assigned_manager_user_id],
    )

    # ==========================
    # Fire Risk Assessment
    # ==========================
    fire_risk_assessment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    fire_risk_assessment_pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    fire_risk_assessment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fire_risk_assessment_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index(
            "ix_fa_stores_route",
            "compliance_audit_2_assigned_manager_user_id",
            "compliance_audit_2_planned_date",
        ),
    )

    def __repr__(self) -> str:
        return f"<Store(code={self.store_code}, name={self.store_name})>"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def label(self) -> str:
        """Schedule label: "Name (POSTCODE)" when a postcode is known."""
        if self.postcode:
            return f"{self.store_name} ({self.postcode})"
        return self.store_name

    @property
    def full_address(self) -> str:
        parts = [self.address_line_1, self.city, self.postcode]
        return ", ".join(part for part in parts if part)

    def audit_date(self, round_no: int) -> Optional[date]:
        return getattr(self, f"compliance_audit_{round_no}_date")

    def audit_pct(self, round_no: int) -> Optional[float]:
        return getattr(self, f"compliance_audit_{round_no}_overall_pct")

    def recompute_total_audits(self) -> int:
        """Count audit rounds that have a recorded score."""
        self.total_audits_to_date = sum(
            1 for round_no in AUDIT_ROUNDS if self.audit_pct(round_no) is not None
        )
        return self.total_audits_to_date
