"""Great-circle distance and travel-time estimation."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance between two points in kilometers using the haversine formula."""

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def travel_minutes(distance_km: float, speed_kmh: float) -> float:
    """Minutes needed to cover ``distance_km`` at ``speed_kmh``; 0 for a non-positive speed."""

    if speed_kmh <= 0:
        return 0.0
    return distance_km / speed_kmh * 60.0
