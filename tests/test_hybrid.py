import logging

import pytest

from formation_planner.algorithms.cbs import CBSConfig
from formation_planner.algorithms.hybrid import (
    SYNC_PROFILES,
    Candidate,
    ChoreographyConfig,
    ChoreographyPlanner,
    HybridConfig,
    HybridPlanner,
    HybridVariant,
    SyncMode,
    build_phases,
    passing_lanes,
)
from formation_planner.algorithms.hybrid.base import lane_allows, speed_fitted, windows
from formation_planner.assignment import AssignmentMode, solve_assignment
from formation_planner.curves import LINEAR, arc, bow
from formation_planner.geometry import exceeds_speed, max_segment_speed, path_length
from formation_planner.models import Position
from formation_planner.strategies import Strategy, run_strategy
from formation_planner.validation import validate


def bulge(dancer_path):
    """Y of the sample farthest from the y = 0 chord."""
    return max((p.y for p in dancer_path.path), key=abs)


@pytest.mark.parametrize("variant", list(HybridVariant))
def test_hybrid_head_on_pair_takes_opposite_sides(head_on, variant):
    result = HybridPlanner(HybridConfig(variant=variant)).plan(head_on)

    a, b = result.paths
    assert bulge(a) * bulge(b) < 0
    assert result.converged
    assert result.strategy == f"hybrid_{variant.value}"


def test_choreography_head_on_pair_takes_opposite_sides(head_on):
    result = ChoreographyPlanner().plan(head_on)

    a, b = result.paths
    assert bulge(a) * bulge(b) < 0
    assert result.converged


def test_passing_lanes_only_for_opposed_close_chords(head_on):
    assert passing_lanes(head_on, 1.05) == {1: 1, 2: 1}

    side_by_side = solve_assignment(
        [Position(0, 0), Position(10, 5)], [Position(10, 0), Position(0, 5)]
    )
    assert passing_lanes(side_by_side, 1.05) == {}

    same_way = solve_assignment([Position(0, 0), Position(0, 0.5)], [Position(10, 0), Position(10, 0.5)])
    assert passing_lanes(same_way, 1.05) == {}


def test_lane_allows_only_curves_on_the_lane_side():
    assert lane_allows(LINEAR, None)
    assert lane_allows(arc(-1.0), None)
    assert lane_allows(arc(1.0), 1)
    assert not lane_allows(arc(-1.0), 1)
    assert not lane_allows(LINEAR, 1)
    assert not lane_allows(bow(1.0, -1.0, "s_curve"), 1)


def test_windows_drop_short_movements():
    profile = SYNC_PROFILES[SyncMode.BALANCED]

    table = windows(profile, 8.0, 1.5)
    assert table[0] == (0.0, 8.0)
    assert all(end <= 8.0 and end - start >= 1.5 for start, end in table)
    assert windows(profile, 8.0, 1.5, delays=[7.0]) == []


def test_candidate_holds_outside_its_window(head_on):
    candidate = Candidate(arc(1.0), 1.0, 6.0, "delayed")
    points = candidate.build(head_on[0], 8.0, 10)

    assert points[0].t == 0.0 and points[0].position == head_on[0].start_position
    assert points[1].t == 1.0
    assert points[-1].t == 8.0
    assert points[-2].t == pytest.approx(6.0)
    assert "delayed" in candidate.describe()


@pytest.mark.parametrize("variant", list(HybridVariant))
def test_every_variant_ends_with_an_accepting_phase(variant):
    phases = build_phases(HybridConfig(variant=variant))

    assert phases
    assert phases[-1].accept_colliding
    assert [p.tier for p in phases] == sorted(p.tier for p in phases)


@pytest.mark.parametrize("mode", list(SyncMode))
def test_sync_modes_resolve_line_to_v(line_to_v, mode):
    starts, ends = line_to_v
    assignments = solve_assignment(starts, ends, AssignmentMode.OPTIMAL)

    result = HybridPlanner(HybridConfig(sync_mode=mode)).plan(assignments)

    assert validate(result.paths).valid
    assert result.unresolved == []


@pytest.mark.parametrize(
    "strategy,config",
    [
        (Strategy.CBS, CBSConfig(max_high_level_iterations=5)),
        (Strategy.HYBRID, HybridConfig(variant=HybridVariant.ARC)),
        (Strategy.HYBRID, HybridConfig(variant=HybridVariant.CUBIC)),
        (Strategy.HYBRID, HybridConfig(variant=HybridVariant.DETOUR)),
        (Strategy.CHOREOGRAPHY, ChoreographyConfig()),
    ],
)
def test_resolved_log_agrees_with_validator(caplog, line_to_v, strategy, config):
    starts, ends = line_to_v
    ends = list(reversed(ends))
    assignments = solve_assignment(starts, ends)

    with caplog.at_level(logging.INFO):
        result = run_strategy(strategy, assignments, config)

    resolved = any(
        "all collisions resolved" in r.getMessage() or "resolved all conflicts" in r.getMessage()
        for r in caplog.records
    )
    report = validate(result.paths, config.collision_radius, config.total_counts)
    if resolved:
        assert report.valid
    if not report.valid:
        assert not result.converged
        assert result.unresolved


def test_speed_fitted_sizes_window_by_fastest_segment(head_on):
    dancer = head_on[0]
    late = Candidate(arc(3.0), 3.2, 8.0, "last resort")

    fitted = speed_fitted(late, dancer, HybridConfig())
    path = fitted.build(dancer, 8.0, 20)

    assert fitted.end_time == 8.0
    assert fitted.start_time < late.start_time
    assert max_segment_speed(path) <= 1.5 + 1e-6
    # an average-speed window would be shorter and still too fast at the ends
    average_window = path_length(path) / 1.5
    assert fitted.end_time - fitted.start_time > average_window
    assert exceeds_speed(Candidate(arc(3.0), 8.0 - average_window, 8.0).build(dancer, 8.0, 20), 1.5)


def test_speed_fitted_keeps_windows_that_already_fit(head_on):
    relaxed = Candidate(LINEAR, 0.0, 8.0, "synchronized")
    assert speed_fitted(relaxed, head_on[0], HybridConfig()) is relaxed


def test_choreography_windows_respect_the_speed_ceiling(line_to_v):
    starts, ends = line_to_v
    assignments = solve_assignment(starts, list(reversed(ends)))

    result = ChoreographyPlanner().plan(assignments)

    too_fast = [p.dancer_id for p in result.paths if exceeds_speed(p.path, 1.5)]
    if too_fast:
        assert not result.converged
