from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

"""
Geospatial helpers.

We keep a tiny geometry layer here so the query engine can do distance calculations
without pulling in heavier GIS dependencies. Nothing in this module validates ranges
or raises: callers decide what counts as a usable coordinate.
"""

EARTH_RADIUS_KM = 6371.0


class LatLng(Protocol):
    """Anything exposing `lat`/`lng` in decimal degrees."""

    lat: float
    lng: float


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def calculate_distance(a: LatLng, b: LatLng) -> float:
    """Compute great-circle distance in kilometers between two points (Haversine)."""
    if not (is_valid_coordinate(a) and is_valid_coordinate(b)):
        return math.nan

    d_lat = to_radians(b.lat - a.lat)
    d_lng = to_radians(b.lng - a.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(to_radians(a.lat)) * math.cos(to_radians(b.lat)) * math.sin(
        d_lng / 2
    ) ** 2
    # Rounding can push `h` a hair outside [0, 1], where sqrt is undefined.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _fixed_one_decimal(value: float) -> str:
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_distance(km: float) -> str:
    """Convert a distance in km into a short label ("500m away", "3.5km away", "42km away").

    Negative and non-finite inputs are not rejected: NaN fails both band checks and
    lands in the km band, negatives land in the meter band.
    """
    if km < 1:
        meters = km * 1000
        return f"{_round_half_up(meters) if math.isfinite(meters) else meters}m away"
    if km < 10:
        return f"{_fixed_one_decimal(km)}km away"
    if math.isfinite(km):
        return f"{_round_half_up(km)}km away"
    return f"{km}km away"


def is_valid_coordinate(point: LatLng | None) -> bool:
    """True when both components are finite numbers (no range check)."""
    if point is None:
        return False
    try:
        return math.isfinite(float(point.lat)) and math.isfinite(float(point.lng))
    except (TypeError, ValueError, AttributeError):
        return False
