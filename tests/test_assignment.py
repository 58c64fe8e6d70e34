import itertools
import math

import numpy as np
import pytest

from formation_planner.assignment import (
    DP_MAX_DANCERS,
    AssignmentMode,
    LengthMismatchError,
    NonFiniteCoordinateError,
    cost_matrix,
    solve_assignment,
    summarize_assignments,
    total_distance,
)
from formation_planner.models import Position


def random_formation(rng, n):
    return [Position(float(x), float(y)) for x, y in rng.uniform(0, 10, size=(n, 2))]


def brute_force_cost(starts, ends):
    cost = cost_matrix(starts, ends)
    n = len(starts)
    return min(sum(cost[i, perm[i]] for i in range(n)) for perm in itertools.permutations(range(n)))


def is_permutation(assignments, ends):
    used = [ends.index(a.end_position) for a in assignments]
    return sorted(used) == list(range(len(ends)))


def test_fixed_mode_keeps_index_order():
    starts = [Position(0, 0), Position(5, 0)]
    ends = [Position(5, 1), Position(0, 1)]
    result = solve_assignment(starts, ends)

    assert [a.dancer_id for a in result] == [1, 2]
    assert result[0].end_position == ends[0]
    assert result[1].end_position == ends[1]
    assert result[0].distance == pytest.approx(math.hypot(5, 1))


@pytest.mark.parametrize("n", [1, 2, 4, 6, 7])
def test_optimal_mode_matches_brute_force(n):
    rng = np.random.default_rng(n)
    starts = random_formation(rng, n)
    ends = random_formation(rng, n)

    result = solve_assignment(starts, ends, AssignmentMode.OPTIMAL)

    assert is_permutation(result, ends)
    assert total_distance(result) == pytest.approx(brute_force_cost(starts, ends))


def test_optimal_never_worse_than_fixed():
    rng = np.random.default_rng(7)
    starts = random_formation(rng, 12)
    ends = random_formation(rng, 12)

    fixed = solve_assignment(starts, ends, AssignmentMode.FIXED)
    optimal = solve_assignment(starts, ends, "optimal")
    assert total_distance(optimal) <= total_distance(fixed) + 1e-9


def test_greedy_above_dp_limit_is_still_a_permutation():
    rng = np.random.default_rng(3)
    n = DP_MAX_DANCERS + 4
    starts = random_formation(rng, n)
    ends = random_formation(rng, n)

    result = solve_assignment(starts, ends, AssignmentMode.OPTIMAL)
    assert len(result) == n
    assert is_permutation(result, ends)


def test_partial_mode_keeps_locked_dancers():
    starts = [Position(0, 0), Position(5, 0), Position(10, 0)]
    ends = [Position(10, 0), Position(5, 3), Position(0, 0)]

    free = solve_assignment(starts, ends, AssignmentMode.OPTIMAL)
    assert free[0].end_position == Position(0, 0)

    partial = solve_assignment(starts, ends, AssignmentMode.PARTIAL, locked_dancers=[1])
    assert partial[0].end_position == ends[0]
    assert is_permutation(partial, ends)
    assert partial[1].end_position == Position(0, 0)
    assert partial[2].end_position == Position(5, 3)


def test_empty_formation():
    assert solve_assignment([], []) == []
    assert summarize_assignments([])["total"] == 0.0


def test_length_mismatch_raises():
    with pytest.raises(LengthMismatchError):
        solve_assignment([Position(0, 0)], [Position(1, 1), Position(2, 2)])


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_coordinates_raise(bad):
    with pytest.raises(NonFiniteCoordinateError):
        solve_assignment([Position(0, 0)], [Position(bad, 1)])


def test_assignment_errors_are_value_errors():
    with pytest.raises(ValueError):
        solve_assignment([Position(0, 0)], [])


def test_summarize_assignments():
    result = solve_assignment([Position(0, 0), Position(0, 2)], [Position(3, 0), Position(0, 3)])
    summary = summarize_assignments(result)

    assert summary["total"] == pytest.approx(4.0)
    assert summary["average"] == pytest.approx(2.0)
    assert summary["max"] == pytest.approx(3.0)
    assert summary["min"] == pytest.approx(1.0)
