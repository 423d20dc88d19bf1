# lostfound/utils/geo.py
import math
from math import radians, sin, cos, asin, sqrt
from typing import NamedTuple, Optional

KM_PER_DEGREE = 111.0

class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

def is_finite(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False

def normalize_coordinate(value) -> Optional[float]:
    return float(value) if is_finite(value) else None

def bounding_box(lat: float, lng: float, radius_km: float) -> BoundingBox:
    """Axis-aligned box of +-radius around a point (1 degree ~ 111 km on both axes)."""
    d = radius_km / KM_PER_DEGREE
    return BoundingBox(lat - d, lat + d, lng - d, lng + d)

def haversine_km(lat1: float, lon1: float, lat2: Optional[float], lon2: Optional[float]) -> Optional[float]:
    if lat2 is None or lon2 is None:
        return None
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    r = 6371
    return r * c
