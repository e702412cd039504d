import pytest

from datago.tracking.fov_projector import ProjectedObject, ScreenPosition
from datago.tracking.throw_targeting import HitGrade, ThrowConfig, ThrowTargeting
from datago.utils.geometry import Position


def _target(object_id, x, y):
    return ProjectedObject(
        object_id=object_id,
        world_position=Position(1.0, 1.0),
        screen_position=ScreenPosition(x=x, y=y, distance=1.0, relative_angle=0.0),
        distance=1.0,
        relative_angle=0.0
    )


@pytest.mark.parametrize("offset,grade,multiplier", [
    (0, HitGrade.PERFECT, 1.5),
    (50, HitGrade.PERFECT, 1.5),
    (75, HitGrade.GOOD, 1.0),
    (120, HitGrade.OKAY, 0.7),
])
def test_hit_grades(offset, grade, multiplier):
    targeting = ThrowTargeting()

    result = targeting.attempt_throw(500 + offset, 400, [_target(3, 500, 400)])

    assert result.success
    assert result.grade == grade
    assert result.multiplier == multiplier
    assert result.screen_distance == pytest.approx(offset)


def test_miss_inside_range():
    result = ThrowTargeting().attempt_throw(680, 400, [_target(3, 500, 400)])

    assert not result.success
    assert result.reason == 'miss'
    assert result.target.object_id == 3
    assert result.to_capture_request(Position(1.0, 1.0)) is None


def test_no_target_in_range():
    result = ThrowTargeting().attempt_throw(900, 400, [_target(3, 500, 400)])

    assert not result.success
    assert result.reason == 'no-target-in-range'
    assert result.target is None


def test_no_targets():
    result = ThrowTargeting().attempt_throw(500, 400, [])

    assert result.reason == 'no-targets'


def test_closest_target_is_graded():
    targets = [_target('a', 300, 400), _target('b', 420, 400)]

    result = ThrowTargeting().attempt_throw(400, 400, targets)

    assert result.target.object_id == 'b'
    assert result.grade == HitGrade.PERFECT


def test_hit_becomes_capture_request():
    result = ThrowTargeting().attempt_throw(560, 400, [_target(12, 500, 400)])

    request = result.to_capture_request(Position(2.0, 3.0))

    assert request == {
        'type': 'attempt-capture',
        'spawnId': 12,
        'playerPosition': {'x': 2.0, 'y': 3.0},
        'captureMethod': 'throw',
        'throwAccuracy': 'good',
        'throwMultiplier': 1.0
    }


def test_config_radii_must_increase():
    with pytest.raises(ValueError):
        ThrowConfig(perfect_radius=120.0, good_radius=100.0)
