# lostfound/privacy.py
import math
from typing import NamedTuple, Optional

from lostfound.schemas import Coordinate, Flow, PublicLocation

# ~1.1 km grid
AREA_STEP = 0.01


class GeneralizedLocation(NamedTuple):
    public: Optional[PublicLocation]
    original: Optional[Coordinate]


def round_to_step(value: float, step: float = AREA_STEP) -> float:
    # halves round up
    return round(math.floor(value / step + 0.5) * step, 6)


def generalize(flow: Flow, point: Optional[Coordinate]) -> GeneralizedLocation:
    """Public-safe location for a report.

    A finder's point is snapped to the area grid until the owner is verified;
    a loser's point stays exact.
    """
    if point is None:
        return GeneralizedLocation(None, None)

    original = Coordinate(lat=float(point.lat), lng=float(point.lng))
    if flow is Flow.FOUND:
        public = PublicLocation(
            lat=round_to_step(original.lat),
            lng=round_to_step(original.lng),
            precision="area",
        )
        return GeneralizedLocation(public, original)

    public = PublicLocation(lat=original.lat, lng=original.lng, precision="point")
    return GeneralizedLocation(public, original)
