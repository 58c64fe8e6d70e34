import math

import pytest

from formation_planner.algorithms.base import make_dancer_path
from formation_planner.assignment import solve_assignment
from formation_planner.curves import linear_path, stationary_path
from formation_planner.models import Position
from formation_planner.validation import validate


def test_collision_free_set_is_valid():
    paths = [
        make_dancer_path(1, linear_path(Position(0, 0), Position(10, 0), 0, 8)),
        make_dancer_path(2, linear_path(Position(0, 2), Position(10, 2), 0, 8)),
    ]
    report = validate(paths)

    assert report.valid
    assert report.collisions == []
    assert report.speed_violations == []
    assert report.endpoint_errors == {}


def test_head_on_straight_lines_are_invalid():
    paths = [
        make_dancer_path(1, linear_path(Position(0, 0), Position(10, 0), 0, 8)),
        make_dancer_path(2, linear_path(Position(10, 0), Position(0, 0), 0, 8)),
    ]
    report = validate(paths, collision_radius=0.5, total_counts=8.0)

    assert not report.valid
    assert len(report.collisions) == 1
    assert (report.collisions[0].dancer_a, report.collisions[0].dancer_b) == (1, 2)


def test_radius_scales_the_threshold():
    paths = [
        make_dancer_path(1, stationary_path(Position(0, 0), 0, 8)),
        make_dancer_path(2, stationary_path(Position(1.5, 0), 0, 8)),
    ]
    assert validate(paths, collision_radius=0.5).valid
    assert not validate(paths, collision_radius=1.0).valid


def test_speed_violations_do_not_invalidate():
    paths = [make_dancer_path(1, linear_path(Position(0, 0), Position(10, 0), 0, 2))]
    report = validate(paths, max_speed=1.5)

    assert report.valid
    assert report.speed_violations
    assert all(v.dancer_id == 1 and v.speed == pytest.approx(5.0) for v in report.speed_violations)


def test_endpoint_errors():
    assignments = solve_assignment([Position(0, 0), Position(0, 5)], [Position(10, 0), Position(10, 5)])
    paths = [make_dancer_path(1, linear_path(Position(0, 0), Position(9, 0), 0, 8))]
    report = validate(paths, assignments=assignments)

    assert report.endpoint_errors[1] == pytest.approx(1.0)
    assert report.endpoint_errors[2] == math.inf
    assert report.valid
