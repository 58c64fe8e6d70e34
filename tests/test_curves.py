import pytest

from formation_planner.curves import (
    LINEAR,
    arc,
    bow,
    cubic_path,
    linear_path,
    perpendicular,
    quadratic_path,
    s_curve_path,
    stationary_path,
)
from formation_planner.geometry import max_deviation
from formation_planner.models import Position


START = Position(1.0, 2.0)
END = Position(9.0, 2.0)


def assert_endpoints(path, start, end, t0, t1):
    assert path[0].x == pytest.approx(start.x, abs=1e-6)
    assert path[0].y == pytest.approx(start.y, abs=1e-6)
    assert path[-1].x == pytest.approx(end.x, abs=1e-6)
    assert path[-1].y == pytest.approx(end.y, abs=1e-6)
    assert path[0].t == pytest.approx(t0)
    assert path[-1].t == pytest.approx(t1)
    assert all(a.t < b.t for a, b in zip(path, path[1:]))


@pytest.mark.parametrize(
    "build",
    [
        lambda: linear_path(START, END, 1.0, 7.0, 20),
        lambda: quadratic_path(START, END, 1.0, 7.0, 20, offset=2.0),
        lambda: cubic_path(START, END, 1.0, 7.0, 20, 1.5, 0.5),
        lambda: s_curve_path(START, END, 1.0, 7.0, 20, amplitude=1.0),
    ],
)
def test_curves_hit_their_endpoints(build):
    assert_endpoints(build(), START, END, 1.0, 7.0)


def test_perpendicular_points_left_of_heading():
    assert perpendicular(START, END) == pytest.approx((0.0, 1.0))
    assert perpendicular(END, START) == pytest.approx((0.0, -1.0))


def test_quadratic_peak_is_half_the_offset():
    path = quadratic_path(START, END, 0.0, 8.0, 20, offset=2.0)
    assert max(p.y for p in path) == pytest.approx(3.0)
    assert max_deviation(path) == pytest.approx(1.0)


def test_s_curve_crosses_the_chord():
    path = s_curve_path(START, END, 0.0, 8.0, 40, amplitude=1.5)
    assert any(p.y > START.y + 0.1 for p in path)
    assert any(p.y < START.y - 0.1 for p in path)


def test_zero_length_move_is_stationary():
    path = quadratic_path(START, Position(1.0, 2.0), 0.0, 8.0, 10, offset=3.0)
    assert all(p.x == START.x and p.y == START.y for p in path)
    assert path[-1].t == 8.0
    assert len(stationary_path(START, 2.0, 2.0)) == 1


def test_curve_shape_sides():
    assert LINEAR.side == 0 and LINEAR.is_linear
    assert arc(1.2).side == 1
    assert arc(-1.2).side == -1
    assert arc(1.2).mirrored().side == -1
    assert bow(1.0, -1.0, "s_curve").side == 0
    assert bow(2.0, 0.5, "start_heavy").magnitude == 2.0


def test_curve_shape_build_matches_builders():
    shape = bow(1.0, 0.4, "start_heavy")
    assert shape.build(START, END, 0.0, 8.0, 20) == cubic_path(START, END, 0.0, 8.0, 20, 1.0, 0.4)
    assert arc(0.8).build(START, END, 0.0, 8.0, 20) == quadratic_path(START, END, 0.0, 8.0, 20, 0.8)
    assert LINEAR.describe() == "linear"
    assert arc(0.8).describe() == "arc +0.80"
