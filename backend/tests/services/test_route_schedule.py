"""
Route Schedule Unit Tests
=========================

Travel estimates, the timed day plan and the iCalendar export.
"""

from datetime import date, datetime, timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from storesafe.models.store import Store
from storesafe.services.route_schedule import (
    ARRIVE_HOME,
    LEAVE_HOME,
    OPERATIONAL,
    TRAVEL,
    VISIT,
    build_ics,
    build_schedule,
    estimate_travel_minutes,
)

pytestmark = pytest.mark.unit

ROUTE_DAY = date(2026, 5, 12)


def _store(name, postcode, lat, lon, **extra):
    return Store(
        id=uuid4(),
        store_code=name[:3].upper(),
        store_name=name,
        postcode=postcode,
        latitude=lat,
        longitude=lon,
        **extra,
    )


@pytest.fixture
def arndale():
    return _store(
        "Manchester Arndale", "M4 3AQ", 53.4831, -2.2400,
        address_line_1="Market Street", city="Manchester",
    )


@pytest.fixture
def stockport():
    return _store("Stockport Merseyway", "SK1 1PD", 53.4103, -2.1575)


@pytest.fixture
def home():
    return SimpleNamespace(address="1 Deansgate, Manchester", latitude=53.4794, longitude=-2.2453)


def _at(hh, mm):
    return datetime(ROUTE_DAY.year, ROUTE_DAY.month, ROUTE_DAY.day, hh, mm)


class TestEstimateTravelMinutes:
    """Tests for the per-leg travel estimate."""

    @pytest.mark.parametrize(
        "miles,expected",
        [
            (0.0, 0),
            (0.05, 0),
            (0.06, 4),
            (0.5, 5),
            (2.0, 14),
            (10.0, 29),
        ],
    )
    def test_estimates(self, miles, expected):
        assert estimate_travel_minutes(miles) == expected


class TestBuildSchedule:
    """Tests for the timed day plan."""

    def test_no_located_stores_gives_empty_plan(self):
        unlocated = _store("Unmapped", None, None, None)

        assert build_schedule(ROUTE_DAY, [unlocated]) == []

    def test_first_visit_starts_at_nine_for_two_hours(self, arndale):
        # Act
        entries = build_schedule(ROUTE_DAY, [arndale])

        # Assert
        assert len(entries) == 1
        visit = entries[0]
        assert visit.type == VISIT
        assert visit.label == "Manchester Arndale (M4 3AQ)"
        assert visit.start == _at(9, 0)
        assert visit.end == _at(11, 0)
        assert visit.location == "Market Street, Manchester, M4 3AQ"

    def test_travel_leg_follows_first_visit(self, arndale, stockport):
        # Act
        entries = build_schedule(ROUTE_DAY, [arndale, stockport])

        # Assert
        assert [entry.type for entry in entries] == [VISIT, TRAVEL, VISIT]
        travel = entries[1]
        assert travel.start == _at(11, 0)
        assert travel.travel_minutes > 10
        assert travel.label == "Manchester Arndale (M4 3AQ) → Stockport Merseyway (SK1 1PD)"
        assert entries[2].start == _at(11, 0) + timedelta(minutes=travel.travel_minutes)

    def test_saved_visit_time_moves_travel_before_it(self, arndale, stockport):
        # Arrange
        visit_times = {stockport.id: SimpleNamespace(start_time="14:00", end_time="15:30")}

        # Act
        entries = build_schedule(ROUTE_DAY, [arndale, stockport], visit_times=visit_times)

        # Assert
        travel, second_visit = entries[1], entries[2]
        assert second_visit.start == _at(14, 0)
        assert second_visit.end == _at(15, 30)
        assert travel.start == _at(14, 0) - timedelta(minutes=travel.travel_minutes)

    def test_home_adds_leave_and_arrive_entries(self, arndale, stockport, home):
        # Act
        entries = build_schedule(ROUTE_DAY, [arndale, stockport], home=home)

        # Assert
        types = [entry.type for entry in entries]
        assert types == [LEAVE_HOME, VISIT, TRAVEL, VISIT, TRAVEL, ARRIVE_HOME]
        leave = entries[0]
        assert leave.start == _at(9, 0) - timedelta(minutes=leave.travel_minutes)
        assert leave.destination == arndale.label
        assert leave.location == "1 Deansgate, Manchester"
        assert entries[4].destination == "Home"
        assert entries[5].start == entries[3].end + timedelta(minutes=entries[4].travel_minutes)

    def test_leave_home_uses_saved_first_visit_time(self, arndale, home):
        visit_times = {arndale.id: SimpleNamespace(start_time="10:15", end_time="12:00")}

        entries = build_schedule(ROUTE_DAY, [arndale], home=home, visit_times=visit_times)

        leave = entries[0]
        assert leave.type == LEAVE_HOME
        assert leave.start == _at(10, 15) - timedelta(minutes=leave.travel_minutes)

    def test_operational_items_are_sorted_in(self, arndale, stockport, home):
        # Arrange
        items = [
            SimpleNamespace(title="Team call", location=None, start_time="08:00", duration_minutes=30),
        ]

        # Act
        entries = build_schedule(ROUTE_DAY, [arndale, stockport], home=home, operational_items=items)

        # Assert
        assert entries[0].type == LEAVE_HOME
        operational = [entry for entry in entries if entry.type == OPERATIONAL]
        assert len(operational) == 1
        assert operational[0].end == _at(8, 30)
        starts = [entry.start for entry in entries[1:]]
        assert starts == sorted(starts)

    def test_stores_without_coordinates_are_skipped(self, arndale):
        unlocated = _store("Unmapped", None, None, None)

        entries = build_schedule(ROUTE_DAY, [unlocated, arndale])

        assert [entry.store_id for entry in entries] == [arndale.id]


class TestBuildIcs:
    """Tests for the iCalendar export."""

    def test_calendar_envelope_and_line_endings(self, arndale):
        # Arrange
        entries = build_schedule(ROUTE_DAY, [arndale])

        # Act
        ics = build_ics(entries, ROUTE_DAY)

        # Assert
        assert ics.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\n")
        assert "METHOD:PUBLISH\r\n" in ics
        assert ics.endswith("END:VCALENDAR\r\n")
        assert "\n" not in ics.replace("\r\n", "")

    def test_event_per_entry_with_stable_uids(self, arndale, stockport, home):
        entries = build_schedule(ROUTE_DAY, [arndale, stockport], home=home)

        ics = build_ics(entries, ROUTE_DAY)

        assert ics.count("BEGIN:VEVENT") == len(entries)
        assert "UID:route-20260512-0@storesafe" in ics
        assert f"UID:route-20260512-{len(entries) - 1}@storesafe" in ics

    def test_summaries(self, arndale, stockport, home):
        # Arrange
        entries = build_schedule(ROUTE_DAY, [arndale, stockport], home=home)
        names = {arndale.id: arndale.store_name, stockport.id: stockport.store_name}

        # Act
        ics = build_ics(entries, ROUTE_DAY, names)

        # Assert
        assert "SUMMARY:Leave Home" in ics
        assert "SUMMARY:Manchester Arndale Visit" in ics
        assert "SUMMARY:Travel to Stockport Merseyway (SK1 1PD)" in ics
        assert "SUMMARY:Arrive Home" in ics

    def test_visit_times_and_escaped_location(self, arndale):
        entries = build_schedule(ROUTE_DAY, [arndale])

        ics = build_ics(entries, ROUTE_DAY)

        assert "DTSTART:20260512T090000" in ics
        assert "DTEND:20260512T110000" in ics
        assert "LOCATION:Market Street\\, Manchester\\, M4 3AQ" in ics
        assert "Visit duration: 120 minutes" in ics

    def test_arrive_home_lasts_five_minutes(self, arndale, home):
        entries = build_schedule(ROUTE_DAY, [arndale], home=home)
        arrive = entries[-1]

        ics = build_ics(entries, ROUTE_DAY)

        end = arrive.start + timedelta(minutes=5)
        assert f"DTEND:{end.strftime('%Y%m%dT%H%M%S')}" in ics
