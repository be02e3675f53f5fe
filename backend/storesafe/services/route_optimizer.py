"""
Route Optimizer Module
======================

Picks the tightest cluster of three stores for a compliance visit day and
orders stores by nearest neighbour.

Works on anything with `id`, `latitude` and `longitude` attributes, so both
request payloads and `Store` rows can be passed in.
"""

import math
from itertools import combinations, permutations
from typing import Optional, Sequence

from storesafe.core.exceptions import BadRequestError
from storesafe.core.logging import get_logger, log_execution_time

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371
KM_TO_MILES = 0.621371
CLUSTER_SIZE = 3


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def km_to_miles(km: float) -> float:
    return km * KM_TO_MILES


def distance_between(a, b) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def home_has_coordinates(home) -> bool:
    return (
        home is not None
        and getattr(home, "latitude", None) is not None
        and getattr(home, "longitude", None) is not None
    )


def route_distance_km(stops: Sequence, home=None) -> float:
    """Length of home -> stops -> home; home legs only when home is located."""
    total = sum(distance_between(a, b) for a, b in zip(stops, stops[1:]))
    if stops and home_has_coordinates(home):
        total += distance_between(home, stops[0]) + distance_between(stops[-1], home)
    return total


@log_execution_time(logger, "optimize_cluster")
def optimize_cluster(stores: Sequence, home=None) -> dict:
    """
    Best three-store visit in visiting order.

    For every combination the score weighs the cluster diameter most:
        diameter * 0.9 + tightness * 0.05 + best_route * 0.05
    where tightness is the sum of the pairwise distances and best_route
    the shortest of the six visiting orders. Ties keep the earlier
    combination.

    Raises:
        BadRequestError: No stores, or fewer than three
    """
    if not stores:
        raise BadRequestError("No stores provided")
    if len(stores) < CLUSTER_SIZE:
        raise BadRequestError(
            "Need at least 3 stores for optimization",
            details={"store_count": len(stores)},
        )

    best_score = math.inf
    best_route: list = []
    best_distance = 0.0

    for cluster in combinations(stores, CLUSTER_SIZE):
        pairwise = [distance_between(a, b) for a, b in combinations(cluster, 2)]
        tightness = sum(pairwise)
        diameter = max(pairwise)

        route, route_km = None, math.inf
        for order in permutations(cluster):
            km = route_distance_km(order, home)
            if km < route_km:
                route, route_km = order, km

        score = diameter * 0.9 + tightness * 0.05 + route_km * 0.05
        if score < best_score:
            best_score = score
            best_route = list(route)
            best_distance = route_km

    return {
        "store_ids": [str(store.id) for store in best_route],
        "score": best_score,
        "route_distance_km": best_distance,
    }


def nearest_neighbour_order(stores: Sequence, home=None) -> dict:
    """
    Greedy visiting order.

    Starts at home (or the first store without one) and keeps moving to
    the closest unvisited store. The total includes the home legs when a
    located home is given.
    """
    if not stores:
        raise BadRequestError("No stores provided")

    remaining = list(stores)
    use_home = home_has_coordinates(home)
    if use_home:
        current: Optional[object] = home
        ordered = []
    else:
        current = remaining.pop(0)
        ordered = [current]

    while remaining:
        closest = min(remaining, key=lambda store: distance_between(current, store))
        remaining.remove(closest)
        ordered.append(closest)
        current = closest

    total_km = route_distance_km(ordered, home if use_home else None)
    return {
        "store_ids": [str(store.id) for store in ordered],
        "total_distance_km": total_km,
        "total_distance_miles": km_to_miles(total_km),
    }
