"""
Compliance Forecast Module
==========================

Scores each store's short-term compliance risk from its audit history,
FRA status, overdue actions, open incidents and planned visits.

Score:
    starts at 15, adjusted per driver, clamped to 0..99 and rounded
    high >= 70, medium >= 45, otherwise low

Stores are duck-typed: any object with the `fa_stores` column attributes
works, so the digest and the forecast route share this code.
"""

import math
from datetime import date, timedelta
from typing import Dict, List, Optional

FRA_VALID_MONTHS = 12
FRA_DUE_WINDOW_DAYS = 30
PASS_THRESHOLD = 80
NARROW_MARGIN = 85
VISIT_WINDOW_DAYS = 14
RECENT_AUDIT_DAYS = 30
MAX_DRIVERS = 4


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def add_months(value: date, months: int) -> date:
    """Calendar month arithmetic; a day past month end rolls into the next month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    try:
        return value.replace(year=year, month=month)
    except ValueError:
        first = value.replace(year=year, month=month, day=1)
        return first + timedelta(days=value.day - 1)


def fra_status(fra_date: Optional[date], today: Optional[date] = None) -> str:
    """
    FRA status from the last assessment date.

    Returns:
        "required" with no date, "overdue" past the 12 month due date,
        "due" within 30 days of it, otherwise "up_to_date"
    """
    if fra_date is None:
        return "required"
    today = today or date.today()
    days_until_due = (add_months(fra_date, FRA_VALID_MONTHS) - today).days
    if days_until_due < 0:
        return "overdue"
    if days_until_due <= FRA_DUE_WINDOW_DAYS:
        return "due"
    return "up_to_date"


def latest_audit(store) -> tuple:
    """(date, pct) of the most recent dated audit among rounds 1 and 2."""
    candidates = []
    for round_no in (1, 2):
        audit_date = getattr(store, f"compliance_audit_{round_no}_date")
        pct = getattr(store, f"compliance_audit_{round_no}_overall_pct")
        if audit_date is not None and pct is not None:
            candidates.append((audit_date, pct))
    if not candidates:
        return None, None
    # Stable sort keeps round 1 first on equal dates
    candidates.sort(key=lambda item: item[0], reverse=True)
    return candidates[0]


def risk_band(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 45:
        return "medium"
    return "low"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def forecast_store(
    store,
    open_incidents: int = 0,
    overdue_actions: int = 0,
    today: Optional[date] = None,
) -> dict:
    """Risk score, band and the top drivers for one store."""
    today = today or date.today()
    drivers: List[str] = []
    status = fra_status(store.fire_risk_assessment_date, today)
    _, latest_score = latest_audit(store)

    score = 15.0

    if latest_score is None:
        score += 25
        drivers.append("No recent audit score recorded")
    elif latest_score < PASS_THRESHOLD:
        shortfall = PASS_THRESHOLD - latest_score
        score += 28 + min(18, shortfall * 0.7)
        drivers.append(f"Latest audit below pass threshold ({round_half_up(latest_score)}%)")
    elif latest_score < NARROW_MARGIN:
        score += 8
        drivers.append(f"Latest audit margin is narrow ({round_half_up(latest_score)}%)")

    if status == "overdue":
        score += 30
        drivers.append("FRA is overdue")
    elif status == "required":
        score += 24
        drivers.append("No in-date FRA recorded")
    elif status == "due":
        score += 12
        drivers.append("FRA expires within 30 days")

    if overdue_actions > 0:
        score += min(28, overdue_actions * 7)
        drivers.append(_plural(overdue_actions, "overdue action"))

    if open_incidents > 0:
        score += min(24, open_incidents * 6)
        drivers.append(_plural(open_incidents, "open incident"))

    planned = store.compliance_audit_2_planned_date
    if planned is not None and 0 <= (planned - today).days <= VISIT_WINDOW_DAYS:
        score -= 10
        drivers.append("Planned compliance visit scheduled within 14 days")

    audit_dates = [
        d for d in (store.compliance_audit_1_date, store.compliance_audit_2_date) if d is not None
    ]
    if audit_dates and latest_score is not None and latest_score >= PASS_THRESHOLD:
        days_since = (today - max(audit_dates)).days
        if 0 <= days_since <= RECENT_AUDIT_DAYS:
            score -= 8
            drivers.append("Strong recent audit completion")

    bounded = max(0, min(99, round_half_up(score)))

    return {
        "store_id": store.id,
        "store_name": store.store_name,
        "store_code": store.store_code,
        "region": store.region,
        "risk_score": bounded,
        "risk_band": risk_band(bounded),
        "fra_status": status,
        "latest_audit_pct": latest_score,
        "open_incidents": open_incidents,
        "overdue_actions": overdue_actions,
        "planned_date": planned,
        "drivers": drivers[:MAX_DRIVERS],
    }


def compute_forecast(
    stores,
    open_incidents_by_store: Optional[Dict] = None,
    overdue_actions_by_store: Optional[Dict] = None,
    today: Optional[date] = None,
) -> dict:
    """
    Forecast every store, highest risk first.

    Returns:
        {"stores": [...], "high": n, "medium": n, "low": n, "average_score": n}
    """
    open_incidents_by_store = open_incidents_by_store or {}
    overdue_actions_by_store = overdue_actions_by_store or {}

    forecasts = [
        forecast_store(
            store,
            open_incidents=open_incidents_by_store.get(store.id, 0),
            overdue_actions=overdue_actions_by_store.get(store.id, 0),
            today=today,
        )
        for store in stores
    ]
    forecasts.sort(key=lambda item: item["risk_score"], reverse=True)

    bands = [item["risk_band"] for item in forecasts]
    average = (
        round_half_up(sum(item["risk_score"] for item in forecasts) / len(forecasts))
        if forecasts
        else 0
    )
    return {
        "stores": forecasts,
        "high": bands.count("high"),
        "medium": bands.count("medium"),
        "low": bands.count("low"),
        "average_score": average,
    }
