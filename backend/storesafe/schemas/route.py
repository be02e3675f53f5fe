"""
Route Planning Schemas Module
=============================

Optimizer and ordering inputs, persisted route state, operational items,
visit time overrides and the day schedule.
"""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ==========================
# Optimizer
# ==========================

class RouteStoreInput(BaseModel):
    id: str
    name: Optional[str] = None
    code: Optional[str] = None
    latitude: float
    longitude: float


class HomeLocation(BaseModel):
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class RouteOptimizeRequest(BaseModel):
    stores: list[RouteStoreInput] = []
    home: Optional[HomeLocation] = None


class RouteOptimizeResponse(BaseModel):
    store_ids: list[str] = Field(..., serialization_alias="storeIds")
    score: float
    route_distance_km: float


class RouteOrderResponse(BaseModel):
    store_ids: list[str] = Field(..., serialization_alias="storeIds")
    total_distance_km: float
    total_distance_miles: float


# ==========================
# Persisted Planning
# ==========================

class PlannedDateUpdate(BaseModel):
    """Clearing `planned_date` also clears the route sequence."""

    planned_date: Optional[date] = None
    manager_user_id: Optional[UUID] = None


class RouteSequenceUpdate(BaseModel):
    store_ids: list[UUID] = Field(..., min_length=1, description="Stores in visit order")


class RouteStoresRequest(BaseModel):
    store_ids: list[UUID] = Field(..., min_length=1)


class RouteRescheduleRequest(RouteStoresRequest):
    planned_date: date


class PlannedStop(BaseModel):
    store_id: UUID
    store_name: str
    store_code: Optional[str] = None
    postcode: Optional[str] = None
    route_sequence: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PlannedRoute(BaseModel):
    manager_user_id: Optional[UUID] = None
    manager_name: Optional[str] = None
    planned_date: date
    region: Optional[str] = None
    stores: list[PlannedStop]


# ==========================
# Operational Items
# ==========================

class OperationalItemCreate(BaseModel):
    manager_user_id: UUID
    planned_date: date
    region: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    start_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60)


class OperationalItemUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)


class OperationalItemResponse(BaseModel):
    id: UUID
    manager_user_id: UUID
    planned_date: date
    region: Optional[str] = None
    title: str
    location: Optional[str] = None
    start_time: str
    duration_minutes: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================
# Visit Time Overrides
# ==========================

class VisitTimeUpsert(BaseModel):
    manager_user_id: UUID
    planned_date: date
    region: Optional[str] = None
    store_id: UUID
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)


class VisitTimeResponse(BaseModel):
    id: UUID
    manager_user_id: UUID
    planned_date: date
    region: Optional[str] = None
    store_id: UUID
    start_time: str
    end_time: str

    model_config = ConfigDict(from_attributes=True)


# ==========================
# Schedule
# ==========================

ScheduleItemType = Literal["leave_home", "travel", "visit", "arrive_home", "operational"]


class ScheduleItem(BaseModel):
    type: ScheduleItemType
    label: str
    start_time: str
    end_time: Optional[str] = None
    travel_minutes: Optional[int] = None
    distance_miles: Optional[float] = None
    location: Optional[str] = None
    store_id: Optional[UUID] = None


class ScheduleResponse(BaseModel):
    manager_user_id: UUID
    planned_date: date
    region: Optional[str] = None
    items: list[ScheduleItem]
