from __future__ import annotations

import math
from typing import Iterable

from backend.flightlo.models import AirportRecord


EARTH_RADIUS_KM = 6371.0
# used when either airport has no coordinates
DEFAULT_DISTANCE_KM = 1000.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def airport_distance_km(origin: AirportRecord | None, destination: AirportRecord | None) -> float:
    if origin is None or destination is None:
        return DEFAULT_DISTANCE_KM
    if not origin.has_coordinates or not destination.has_coordinates:
        return DEFAULT_DISTANCE_KM
    return haversine_km(origin.lat, origin.lon, destination.lat, destination.lon)


def nearest_airports(lat: float, lon: float, airports: Iterable[AirportRecord], n: int = 10) -> list[AirportRecord]:
    located = [a for a in airports if a.has_coordinates]
    located.sort(key=lambda a: haversine_km(lat, lon, a.lat, a.lon))
    return located[:n]
