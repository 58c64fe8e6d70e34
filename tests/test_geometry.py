import math

import pytest

from formation_planner.algorithms.base import make_dancer_path
from formation_planner.curves import linear_path, stationary_path
from formation_planner.geometry import (
    SampledPaths,
    count_crossings,
    find_all_collisions,
    find_collision_time,
    fit_duration_to_speed,
    max_deviation,
    max_segment_speed,
    min_separation,
    path_length,
    position_at_time,
    sample_times,
)
from formation_planner.models import PathPoint, Position


def test_position_at_time_interpolates_and_clamps():
    path = [PathPoint(0, 0, 1.0), PathPoint(4, 2, 3.0)]

    assert position_at_time(path, 0.0) == Position(0, 0)
    assert position_at_time(path, 2.0) == Position(2, 1)
    assert position_at_time(path, 10.0) == Position(4, 2)


def test_position_at_time_matches_samples():
    path = linear_path(Position(1, 1), Position(7, 5), 0.5, 6.5, 12)
    for p in path:
        q = position_at_time(path, p.t)
        assert q.x == pytest.approx(p.x)
        assert q.y == pytest.approx(p.y)


def test_position_at_time_rejects_empty_path():
    with pytest.raises(ValueError):
        position_at_time([], 1.0)


def test_sample_times_includes_horizon():
    times = sample_times(1.0, 0.3)
    assert times[0] == 0.0
    assert times[-1] == pytest.approx(1.0)
    assert len(sample_times(8.0, 0.05)) == 161


def test_head_on_straight_lines_collide_at_midpoint():
    a = linear_path(Position(0, 0), Position(10, 0), 0, 8)
    b = linear_path(Position(10, 0), Position(0, 0), 0, 8)

    t = find_collision_time(a, b, radius=0.5, horizon=8.0)
    assert t is not None and t < 4.0
    gap, when = min_separation(a, b, 8.0, step=0.01)
    assert gap == pytest.approx(0.0, abs=1e-9)
    assert when == pytest.approx(4.0)


def test_parallel_lines_do_not_collide():
    a = linear_path(Position(0, 0), Position(10, 0), 0, 8)
    b = linear_path(Position(0, 2), Position(10, 2), 0, 8)
    assert find_collision_time(a, b, radius=0.5, horizon=8.0) is None
    assert find_collision_time(a, b, radius=0.5, horizon=8.0, margin=1.5) == 0.0


def test_find_all_collisions_reports_each_pair_once_in_time_order():
    paths = [
        make_dancer_path(1, linear_path(Position(0, 0), Position(10, 0), 0, 8)),
        make_dancer_path(2, linear_path(Position(10, 0), Position(0, 0), 0, 8)),
        make_dancer_path(3, stationary_path(Position(3, 5), 0, 8)),
        make_dancer_path(4, stationary_path(Position(3.5, 5), 0, 8)),
    ]
    found = find_all_collisions(paths, radius=0.5, horizon=8.0)

    assert [(c.dancer_a, c.dancer_b) for c in found] == [(3, 4), (1, 2)]
    assert found[0].time == 0.0
    assert found[0].time <= found[1].time


def test_sampled_paths_first_hit_and_min_gap():
    placed = [make_dancer_path(1, stationary_path(Position(5, 0), 0, 8))]
    table = SampledPaths(placed, 8.0)
    crossing = linear_path(Position(0, 0), Position(10, 0), 0, 8)

    hit = table.first_hit(crossing, 1.0)
    assert hit is not None and hit[0] == 1
    assert hit[1] == pytest.approx(3.25, abs=0.05)
    assert table.min_gap(crossing) == pytest.approx(0.0, abs=1e-9)
    assert table.first_hit(crossing, 1.0, exclude=1) is None


def test_count_crossings():
    a = linear_path(Position(0, 0), Position(4, 4), 0, 1, 1)
    b = linear_path(Position(0, 4), Position(4, 0), 0, 1, 1)
    c = linear_path(Position(0, 1), Position(4, 5), 0, 1, 1)

    assert count_crossings(a, b) == 1
    assert count_crossings(a, c) == 0
    assert count_crossings(a[:1], b) == 0


def test_path_measures():
    path = [PathPoint(0, 0, 0), PathPoint(3, 4, 1), PathPoint(6, 0, 3)]

    assert path_length(path) == pytest.approx(10.0)
    assert max_deviation(path) == pytest.approx(4.0)
    assert max_segment_speed(path) == pytest.approx(5.0)
    assert max_segment_speed([PathPoint(0, 0, 1), PathPoint(1, 0, 1)]) == math.inf


def test_fit_duration_to_speed_extends_end_then_start():
    assert fit_duration_to_speed(3.0, 0.0, 4.0, 1.5, 8.0) == (0.0, 4.0)
    assert fit_duration_to_speed(6.0, 1.0, 2.0, 1.5, 8.0) == pytest.approx((1.0, 5.0))
    assert fit_duration_to_speed(6.0, 6.0, 7.0, 1.5, 8.0) == pytest.approx((4.0, 8.0))
