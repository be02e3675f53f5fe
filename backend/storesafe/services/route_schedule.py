"""
Route Schedule Module
=====================

Builds a manager's timed day plan for a planned route and exports it as
an iCalendar file.

Timing rules:
- travel per leg: 0 minutes up to 0.05 miles, otherwise
  max(1, round(miles / 0.517 + buffer)) with a 4 minute buffer under a
  mile and 10 minutes beyond
- the first visit starts at 09:00, each visit lasts 2 hours
- a saved visit time replaces both start and end, and the travel before
  it is moved so the manager arrives on time
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from storesafe.core.config import settings
from storesafe.services.compliance_forecast import round_half_up
from storesafe.services.route_optimizer import distance_between, home_has_coordinates, km_to_miles

DAY_START = time(9, 0)
VISIT_DURATION = timedelta(hours=2)
ARRIVE_HOME_DURATION = timedelta(minutes=5)
AVERAGE_MILES_PER_MINUTE = 0.517
SAME_SITE_MILES = 0.05

LEAVE_HOME = "leave_home"
TRAVEL = "travel"
VISIT = "visit"
ARRIVE_HOME = "arrive_home"
OPERATIONAL = "operational"


@dataclass
class ScheduleEntry:
    type: str
    label: str
    start: datetime
    end: Optional[datetime] = None
    travel_minutes: Optional[int] = None
    distance_miles: Optional[float] = None
    location: Optional[str] = None
    store_id: Optional[object] = None
    destination: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "label": self.label,
            "start_time": self.start.strftime("%H:%M"),
            "end_time": self.end.strftime("%H:%M") if self.end else None,
            "travel_minutes": self.travel_minutes,
            "distance_miles": round(self.distance_miles, 2) if self.distance_miles is not None else None,
            "location": self.location,
            "store_id": self.store_id,
        }


def estimate_travel_minutes(miles: float) -> int:
    if miles <= SAME_SITE_MILES:
        return 0
    buffer = 4 if miles < 1 else 10
    return max(1, round_half_up(miles / AVERAGE_MILES_PER_MINUTE + buffer))


def parse_hhmm(planned_date: date, value: str) -> datetime:
    hours, minutes = (int(part) for part in value.split(":"))
    return datetime.combine(planned_date, time(hours, minutes))


def _leg(a, b) -> Tuple[float, int]:
    miles = km_to_miles(distance_between(a, b))
    return miles, estimate_travel_minutes(miles)


def build_schedule(
    planned_date: date,
    stores: Sequence,
    home=None,
    visit_times: Optional[Dict] = None,
    operational_items: Sequence = (),
) -> List[ScheduleEntry]:
    """
    Timed day plan for stores already in route order.

    Args:
        planned_date: Route day
        stores: Store rows in visiting order; rows without coordinates are skipped
        home: Object with address/latitude/longitude, or None
        visit_times: store_id -> object with `start_time`/`end_time` (HH:MM)
        operational_items: Rows with `title`, `location`, `start_time`, `duration_minutes`

    Returns:
        Schedule entries. With operational items everything is sorted by
        start time; "Leave home" always comes first.
    """
    visit_times = visit_times or {}
    located = [store for store in stores if store.has_coordinates]
    if not located:
        return []

    with_home = home_has_coordinates(home)
    home_address = getattr(home, "address", None) or "Home"
    entries: List[ScheduleEntry] = []
    current = datetime.combine(planned_date, DAY_START)

    for index, store in enumerate(located):
        override = visit_times.get(store.id)
        if override is not None:
            visit_start = parse_hhmm(planned_date, override.start_time)
            visit_end = parse_hhmm(planned_date, override.end_time)
        else:
            visit_start = current
            visit_end = current + VISIT_DURATION

        if index == 0 and with_home:
            miles, minutes = _leg(home, store)
            entries.append(
                ScheduleEntry(
                    type=LEAVE_HOME,
                    label="Leave home",
                    start=visit_start - timedelta(minutes=minutes),
                    travel_minutes=minutes,
                    distance_miles=miles,
                    location=home_address,
                    destination=store.label,
                )
            )

        entries.append(
            ScheduleEntry(
                type=VISIT,
                label=store.label,
                start=visit_start,
                end=visit_end,
                location=store.full_address or store.store_name,
                store_id=store.id,
            )
        )

        if index < len(located) - 1:
            next_store = located[index + 1]
            miles, minutes = _leg(store, next_store)
            next_override = visit_times.get(next_store.id)
            if next_override is not None:
                arrive = parse_hhmm(planned_date, next_override.start_time)
                travel_start = arrive - timedelta(minutes=minutes)
            else:
                travel_start = visit_end
                arrive = visit_end + timedelta(minutes=minutes)
            entries.append(
                ScheduleEntry(
                    type=TRAVEL,
                    label=f"{store.label} → {next_store.label}",
                    start=travel_start,
                    travel_minutes=minutes,
                    distance_miles=miles,
                    location=next_store.label,
                    destination=next_store.label,
                )
            )
            current = arrive
        elif with_home:
            miles, minutes = _leg(store, home)
            entries.append(
                ScheduleEntry(
                    type=TRAVEL,
                    label=f"{store.label} → Home",
                    start=visit_end,
                    travel_minutes=minutes,
                    distance_miles=miles,
                    location=home_address,
                    destination="Home",
                )
            )
            entries.append(
                ScheduleEntry(
                    type=ARRIVE_HOME,
                    label="Arrive home",
                    start=visit_end + timedelta(minutes=minutes),
                    location=home_address,
                )
            )

    for item in operational_items:
        start = parse_hhmm(planned_date, item.start_time)
        entries.append(
            ScheduleEntry(
                type=OPERATIONAL,
                label=item.title,
                start=start,
                end=start + timedelta(minutes=item.duration_minutes),
                location=item.location or "",
            )
        )

    if operational_items:
        entries.sort(key=lambda entry: (entry.type != LEAVE_HOME, entry.start))
    return entries


# ==========================
# iCalendar Export
# ==========================

def format_ics_datetime(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%S")


def _event_end(entry: ScheduleEntry) -> datetime:
    if entry.end is not None:
        return entry.end
    if entry.travel_minutes:
        return entry.start + timedelta(minutes=entry.travel_minutes)
    if entry.type == ARRIVE_HOME:
        return entry.start + ARRIVE_HOME_DURATION
    return entry.start


def _summary(entry: ScheduleEntry, store_names: Dict) -> str:
    if entry.type == VISIT:
        return f"{store_names.get(entry.store_id, entry.label)} Visit"
    if entry.type == TRAVEL:
        return f"Travel to {entry.destination}"
    if entry.type == LEAVE_HOME:
        return "Leave Home"
    if entry.type == ARRIVE_HOME:
        return "Arrive Home"
    return entry.label


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def build_ics(
    entries: Sequence[ScheduleEntry],
    planned_date: date,
    store_names: Optional[Dict] = None,
) -> str:
    """
    Render schedule entries as a VCALENDAR, one VEVENT per entry.

    Times are floating local times (no TZID). Lines end with CRLF.
    """
    store_names = store_names or {}
    stamp = planned_date.strftime("%Y%m%d")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{settings.ICS_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for index, entry in enumerate(entries):
        summary = _summary(entry, store_names)
        description = [summary]
        if entry.travel_minutes and entry.distance_miles:
            description.append(f"Distance: {entry.distance_miles:.1f} miles")
            description.append(f"Duration: {entry.travel_minutes} minutes")
        if entry.type == VISIT and entry.end is not None:
            minutes = round_half_up((entry.end - entry.start).total_seconds() / 60)
            description.append(f"Visit duration: {minutes} minutes")
        if entry.location and entry.type != TRAVEL:
            description.append(f"Location: {entry.location}")

        lines.extend([
            "BEGIN:VEVENT",
            f"UID:route-{stamp}-{index}@storesafe",
            f"DTSTART:{format_ics_datetime(entry.start)}",
            f"DTEND:{format_ics_datetime(_event_end(entry))}",
            f"SUMMARY:{_escape(summary)}",
            "DESCRIPTION:" + "\\n".join(_escape(part) for part in description),
            f"LOCATION:{_escape(entry.location or '')}",
            "STATUS:CONFIRMED",
            "SEQUENCE:0",
            "END:VEVENT",
        ])

    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
