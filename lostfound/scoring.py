# lostfound/scoring.py
import re
from datetime import datetime
from typing import Optional

from lostfound.schemas import ListingView
from lostfound.utils.dates import parse_occurred_at
from lostfound.utils.geo import haversine_km, is_finite

CATEGORY_POINTS = 30.0
DISTANCE_POINTS = 40.0
TIME_POINTS = 20.0
TITLE_POINTS = 10.0

_TOKEN = re.compile(r"\w+", re.UNICODE)
_PREFIX = re.compile(r"^\s*(lost|found)\s*:\s*", re.IGNORECASE)

def distance_points(lost: ListingView, found: ListingView, radius_km: float = 5.0) -> float:
    if not all(is_finite(v) for v in (lost.lat, lost.lng, found.lat, found.lng)):
        return 0.0
    d = haversine_km(lost.lat, lost.lng, found.lat, found.lng)
    return DISTANCE_POINTS * max(0.0, 1.0 - d / radius_km)

def _moment(listing: ListingView) -> Optional[datetime]:
    return parse_occurred_at(listing.occurred_at) or parse_occurred_at(listing.created_at)

def time_points(lost: ListingView, found: ListingView) -> float:
    lost_at, found_at = _moment(lost), _moment(found)
    if lost_at is None or found_at is None:
        return TIME_POINTS / 2
    gap_days = (found_at - lost_at).total_seconds() / 86400.0
    if gap_days < -1:
        return 0.0
    if gap_days <= 14:
        return TIME_POINTS
    if gap_days >= 30:
        return 0.0
    return TIME_POINTS * (30 - gap_days) / 16

def _tokens(title: str) -> set[str]:
    return {t for t in _TOKEN.findall(_PREFIX.sub("", title or "").lower()) if len(t) > 1}

def title_points(lost: ListingView, found: ListingView) -> float:
    a, b = _tokens(lost.title), _tokens(found.title)
    if not a or not b:
        return 0.0
    return TITLE_POINTS * len(a & b) / len(a | b)

def score(lost: ListingView, found: ListingView) -> float:
    """Compatibility of a lost report with a found report, 0..100."""
    total = 0.0
    if lost.category and lost.category == found.category:
        total += CATEGORY_POINTS
    total += distance_points(lost, found)
    total += time_points(lost, found)
    total += title_points(lost, found)
    return round(total, 2)
