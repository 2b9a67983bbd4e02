"""Great-circle distance and radius filtering over shop records."""

import math

from shopfinder.schemas.shop_schema import SearchResult, ShopRecord

EARTH_RADIUS_MILES = 3958.8


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in miles.

    Examples:
        >>> haversine_miles(32.78, -96.80, 32.78, -96.80)
        0.0
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(min(1.0, a)))


def within_radius(distance_miles: float, radius_miles: float) -> bool:
    """Radius test; the boundary itself is inside."""
    return distance_miles <= radius_miles


def rank_by_distance(
    records: list[ShopRecord],
    center_lat: float,
    center_lng: float,
    radius_miles: float,
) -> list[SearchResult]:
    """Records with coordinates inside the radius, nearest first.

    The sort is stable, so equidistant records keep their stored order.
    """
    results = []
    for record in records:
        if not record.has_coordinates:
            continue
        d = haversine_miles(center_lat, center_lng, record.lat, record.lng)
        if within_radius(d, radius_miles):
            results.append(SearchResult(record=record, distance_miles=d))
    results.sort(key=lambda r: r.distance_miles)
    return results
