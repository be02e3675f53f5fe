"""
Route Optimizer Unit Tests
==========================
"""

from types import SimpleNamespace

import pytest

from storesafe.core.exceptions import BadRequestError
from storesafe.services.route_optimizer import (
    haversine_km,
    km_to_miles,
    nearest_neighbour_order,
    optimize_cluster,
    route_distance_km,
)

pytestmark = pytest.mark.unit


def _stop(store_id, lat, lon):
    return SimpleNamespace(id=store_id, latitude=lat, longitude=lon)


@pytest.fixture
def stops():
    return [
        _stop("MAN01", 53.4831, -2.2400),
        _stop("MAN02", 53.4668, -2.3470),
        _stop("STK01", 53.4103, -2.1575),
        _stop("LIV01", 53.4038, -2.9870),
    ]


@pytest.fixture
def home():
    return SimpleNamespace(latitude=53.4794, longitude=-2.2453)


class TestDistances:
    def test_same_point_is_zero(self):
        assert haversine_km(53.48, -2.24, 53.48, -2.24) == 0

    def test_manchester_to_liverpool(self):
        km = haversine_km(53.4831, -2.2400, 53.4038, -2.9870)

        assert 49 < km < 52

    def test_km_to_miles(self):
        assert km_to_miles(10) == pytest.approx(6.21371)

    def test_route_includes_home_legs_only_with_located_home(self, stops, home):
        # Arrange
        route = stops[:2]
        unlocated = SimpleNamespace(latitude=None, longitude=None)

        # Act
        with_home = route_distance_km(route, home)
        without_home = route_distance_km(route, unlocated)

        # Assert
        assert with_home > without_home
        assert without_home == pytest.approx(route_distance_km(route))


class TestOptimizeCluster:
    """Tests for the three-store cluster pick."""

    def test_picks_tightest_cluster(self, stops):
        # Act
        result = optimize_cluster(stops)

        # Assert
        assert sorted(result["store_ids"]) == ["MAN01", "MAN02", "STK01"]
        assert "LIV01" not in result["store_ids"]
        assert result["route_distance_km"] > 0

    def test_home_legs_add_to_route_distance(self, stops, home):
        result = optimize_cluster(stops, home)

        assert len(result["store_ids"]) == 3
        assert result["route_distance_km"] > optimize_cluster(stops)["route_distance_km"]

    def test_exactly_three_stores_returns_all(self, stops):
        result = optimize_cluster(stops[1:])

        assert sorted(result["store_ids"]) == ["LIV01", "MAN02", "STK01"]

    def test_no_stores_rejected(self):
        with pytest.raises(BadRequestError) as exc_info:
            optimize_cluster([])

        assert exc_info.value.message == "No stores provided"
        assert exc_info.value.status_code == 400

    def test_two_stores_rejected(self, stops):
        with pytest.raises(BadRequestError) as exc_info:
            optimize_cluster(stops[:2])

        assert exc_info.value.message == "Need at least 3 stores for optimization"
        assert exc_info.value.details == {"store_count": 2}


class TestNearestNeighbourOrder:
    """Tests for the greedy visiting order."""

    def test_order_from_home(self, stops, home):
        # Act
        result = nearest_neighbour_order(list(reversed(stops)), home)

        # Assert
        assert result["store_ids"] == ["MAN01", "MAN02", "STK01", "LIV01"]
        assert result["total_distance_miles"] == pytest.approx(
            km_to_miles(result["total_distance_km"])
        )

    def test_order_without_home_starts_at_first_store(self, stops):
        result = nearest_neighbour_order([stops[2], stops[0], stops[3], stops[1]])

        assert result["store_ids"][0] == "STK01"
        assert len(result["store_ids"]) == 4

    def test_single_store(self, stops):
        result = nearest_neighbour_order(stops[:1])

        assert result["store_ids"] == ["MAN01"]
        assert result["total_distance_km"] == 0

    def test_empty_rejected(self):
        with pytest.raises(BadRequestError):
            nearest_neighbour_order([])
