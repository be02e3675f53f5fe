"""
Compliance Forecast Unit Tests
==============================
"""

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest

from storesafe.services.compliance_forecast import (
    add_months,
    compute_forecast,
    forecast_store,
    fra_status,
    latest_audit,
    risk_band,
)

pytestmark = pytest.mark.unit

TODAY = date(2026, 6, 15)


def _store(**overrides):
    values = dict(
        id=uuid4(),
        store_name="Manchester Arndale",
        store_code="MAN01",
        region="North West",
        fire_risk_assessment_date=date(2026, 1, 10),
        compliance_audit_1_date=None,
        compliance_audit_1_overall_pct=None,
        compliance_audit_2_date=None,
        compliance_audit_2_overall_pct=None,
        compliance_audit_2_planned_date=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestDates:
    def test_add_months_rolls_past_month_end(self):
        assert add_months(date(2026, 1, 31), 1) == date(2026, 3, 3)

    def test_add_months_across_year(self):
        assert add_months(date(2025, 11, 15), 12) == date(2026, 11, 15)

    @pytest.mark.parametrize(
        "fra_date,expected",
        [
            (None, "required"),
            (date(2025, 6, 1), "overdue"),
            (date(2025, 7, 1), "due"),
            (date(2026, 1, 10), "up_to_date"),
        ],
    )
    def test_fra_status(self, fra_date, expected):
        assert fra_status(fra_date, TODAY) == expected

    def test_latest_audit_prefers_later_date(self):
        store = _store(
            compliance_audit_1_date=date(2026, 5, 1),
            compliance_audit_1_overall_pct=90.0,
            compliance_audit_2_date=date(2026, 2, 1),
            compliance_audit_2_overall_pct=70.0,
        )

        assert latest_audit(store) == (date(2026, 5, 1), 90.0)

    def test_latest_audit_ignores_undated_scores(self):
        store = _store(compliance_audit_1_overall_pct=90.0)

        assert latest_audit(store) == (None, None)


class TestForecastStore:
    """Tests for the per-store score."""

    def test_no_audit_score(self):
        # Act
        result = forecast_store(_store(), today=TODAY)

        # Assert
        assert result["risk_score"] == 40
        assert result["risk_band"] == "low"
        assert result["drivers"] == ["No recent audit score recorded"]

    def test_failed_audit_and_overdue_fra(self):
        # Arrange
        store = _store(
            fire_risk_assessment_date=date(2025, 1, 1),
            compliance_audit_1_date=date(2026, 3, 1),
            compliance_audit_1_overall_pct=60.0,
        )

        # Act
        result = forecast_store(store, open_incidents=1, overdue_actions=2, today=TODAY)

        # Assert
        # 15 + 28 + 14 (shortfall) + 30 + 14 + 6
        assert result["risk_score"] == 99
        assert result["risk_band"] == "high"
        assert result["fra_status"] == "overdue"
        assert result["drivers"] == [
            "Latest audit below pass threshold (60%)",
            "FRA is overdue",
            "2 overdue actions",
            "1 open incident",
        ]

    def test_strong_recent_audit_lowers_score(self):
        store = _store(
            compliance_audit_2_date=date(2026, 6, 1),
            compliance_audit_2_overall_pct=95.0,
        )

        result = forecast_store(store, today=TODAY)

        assert result["risk_score"] == 7
        assert result["drivers"] == ["Strong recent audit completion"]

    def test_planned_visit_within_two_weeks(self):
        store = _store(
            compliance_audit_1_date=date(2026, 1, 5),
            compliance_audit_1_overall_pct=82.0,
            compliance_audit_2_planned_date=date(2026, 6, 20),
        )

        result = forecast_store(store, today=TODAY)

        # 15 + 8 (narrow margin) - 10
        assert result["risk_score"] == 13
        assert "Planned compliance visit scheduled within 14 days" in result["drivers"]

    def test_score_is_clamped_to_zero(self):
        store = _store(
            compliance_audit_2_date=date(2026, 6, 10),
            compliance_audit_2_overall_pct=100.0,
            compliance_audit_2_planned_date=date(2026, 6, 16),
        )

        assert forecast_store(store, today=TODAY)["risk_score"] == 0

    @pytest.mark.parametrize("score,band", [(70, "high"), (69, "medium"), (45, "medium"), (44, "low")])
    def test_risk_band(self, score, band):
        assert risk_band(score) == band


class TestComputeForecast:
    def test_sorted_with_band_counts(self):
        # Arrange
        risky = _store(store_code="STK01", fire_risk_assessment_date=None)
        safe = _store(
            store_code="MAN01",
            compliance_audit_1_date=date(2026, 6, 1),
            compliance_audit_1_overall_pct=92.0,
        )

        # Act
        result = compute_forecast(
            [safe, risky],
            open_incidents_by_store={risky.id: 1},
            today=TODAY,
        )

        # Assert
        assert [item["store_code"] for item in result["stores"]] == ["STK01", "MAN01"]
        assert result["stores"][0]["risk_score"] == 70
        assert result["high"] == 1
        assert result["low"] == 1
        assert result["average_score"] == 39

    def test_empty(self):
        result = compute_forecast([], today=TODAY)

        assert result == {"stores": [], "high": 0, "medium": 0, "low": 0, "average_score": 0}
