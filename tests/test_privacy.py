import pytest

from lostfound.privacy import generalize, round_to_step
from lostfound.schemas import Coordinate, Flow


def test_found_point_is_snapped_to_area_grid():
    public, original = generalize(Flow.FOUND, Coordinate(lat=55.7634, lng=37.6201))
    assert public.lat == pytest.approx(55.76)
    assert public.lng == pytest.approx(37.62)
    assert public.precision == "area"
    assert original == Coordinate(lat=55.7634, lng=37.6201)


def test_lost_point_stays_exact():
    public, original = generalize(Flow.LOST, Coordinate(lat=55.7634, lng=37.6201))
    assert (public.lat, public.lng, public.precision) == (55.7634, 37.6201, "point")
    assert (original.lat, original.lng) == (public.lat, public.lng)


def test_no_point():
    assert generalize(Flow.FOUND, None) == (None, None)


@pytest.mark.parametrize("value,expected", [
    (55.7551, 55.76),
    (55.7549, 55.75),
    (-33.8688, -33.87),
    (0.004, 0.0),
    (55.765, 55.77),
    (0.015, 0.02),
    (0.025, 0.03),
    (-0.025, -0.02),
])
def test_round_to_step(value, expected):
    assert round_to_step(value) == pytest.approx(expected)
