import pytest

from datago.utils.geometry import (
    Position,
    bearing,
    calculate_distance,
    clamp_position,
    get_angle_difference,
    heading_vector,
    normalize_heading,
    smooth_heading,
)


def test_angle_difference_is_bounded_and_antisymmetric():
    headings = [h * 7.5 for h in range(48)] + [0.1, 179.9, 180.0, 359.99]
    for a in headings:
        for b in headings:
            diff = get_angle_difference(a, b)
            assert -180 <= diff <= 180
            assert diff == pytest.approx(-get_angle_difference(b, a))


def test_angle_difference_takes_short_way_round():
    assert get_angle_difference(350, 10) == pytest.approx(20)
    assert get_angle_difference(10, 350) == pytest.approx(-20)
    assert get_angle_difference(90, 45) == pytest.approx(-45)


def test_bearing_uses_north_as_negative_y():
    origin = Position(2.5, 2.5)
    assert bearing(origin, Position(2.5, 1.5)) == pytest.approx(0)
    assert bearing(origin, Position(3.5, 2.5)) == pytest.approx(90)
    assert bearing(origin, Position(2.5, 3.5)) == pytest.approx(180)
    assert bearing(origin, Position(1.5, 2.5)) == pytest.approx(270)


def test_heading_vector_matches_bearing():
    north = heading_vector(0, 1.0)
    east = heading_vector(90, 1.0)
    assert (north.x, north.y) == pytest.approx((0.0, -1.0))
    assert (east.x, east.y) == pytest.approx((1.0, 0.0))

    step = heading_vector(30, 0.4)
    assert bearing(Position(0, 0), step) == pytest.approx(30)


def test_normalize_heading():
    assert normalize_heading(-90) == pytest.approx(270)
    assert normalize_heading(360) == 0
    assert normalize_heading(725) == pytest.approx(5)


def test_smooth_heading_wraps_across_north():
    assert smooth_heading(350, 10) == pytest.approx(354)
    assert smooth_heading(10, 350) == pytest.approx(6)
    assert smooth_heading(0, 90) == pytest.approx(18)


def test_clamp_and_distance():
    clamped = clamp_position(Position(-1, 7), 5, 5, margin=0.2)
    assert (clamped.x, clamped.y) == pytest.approx((0.2, 4.8))
    assert calculate_distance(Position(0, 0), Position(3, 4)) == pytest.approx(5)


def test_position_from_any():
    assert Position.from_any({'x': 1, 'y': 2}) == Position(1.0, 2.0)
    assert Position.from_any((3, 4)) == Position(3.0, 4.0)
