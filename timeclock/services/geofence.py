import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from timeclock.core.roles import GeofenceMode

EARTH_RADIUS_METRES = 6371000

_MAP_LINK_PATTERNS = [
    re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)"),  # /@lat,lng or /@lat,lng,zoom
    re.compile(r"[?&]q=(-?\d+\.\d+),(-?\d+\.\d+)"),  # ?q=lat,lng
    re.compile(r"ll=(-?\d+\.\d+),(-?\d+\.\d+)"),  # ll=lat,lng
]


def distance_metres(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points (haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_METRES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_within_geofence(
    user_lat: float, user_lng: float, center_lat: float, center_lng: float, radius: float
) -> bool:
    return distance_metres(user_lat, user_lng, center_lat, center_lng) <= radius


def parse_coords_from_map_link(url: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Extract (lat, lng) from a Google Maps style link.

    Shortened links (maps.app.goo.gl) carry no coordinates and return None.
    """
    if not url or not isinstance(url, str):
        return None
    trimmed = url.strip()
    for pattern in _MAP_LINK_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            lat, lng = float(match.group(1)), float(match.group(2))
            if -90 <= lat <= 90 and -180 <= lng <= 180:
                return lat, lng
    return None


def parse_coordinate(value) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass
class GeofenceResult:
    allowed: bool
    flag: bool
    location: Optional[str] = None
    distance: Optional[float] = None


def evaluate_geofence(lat, lng, locations: Iterable) -> GeofenceResult:
    """
    Check a punch position against the fenced location categories.

    ``locations`` are Category rows; the ones without a complete fence are
    ignored. Outside every fence the punch is rejected when any of them is
    hard, otherwise it is accepted and flagged.
    """
    fences = [c for c in locations if c.has_geofence]
    user_lat, user_lng = parse_coordinate(lat), parse_coordinate(lng)
    if user_lat is None or user_lng is None:
        return GeofenceResult(allowed=True, flag=True)
    if not fences:
        return GeofenceResult(allowed=True, flag=False)

    nearest = None
    for fence in fences:
        dist = distance_metres(user_lat, user_lng, fence.lat, fence.lng)
        if dist <= fence.radius:
            return GeofenceResult(allowed=True, flag=False, location=fence.name, distance=dist)
        if nearest is None or dist < nearest[1]:
            nearest = (fence.name, dist)

    hard = any((f.geofence_mode or GeofenceMode.HARD.value) == GeofenceMode.HARD.value for f in fences)
    return GeofenceResult(allowed=not hard, flag=True, location=nearest[0], distance=nearest[1])
