import logging

import pytest

from formation_planner.algorithms.base import make_dancer_path
from formation_planner.algorithms.cbs import CBSConfig
from formation_planner.algorithms.hybrid import HybridConfig, HybridVariant
from formation_planner.algorithms.pathfinder import SimpleConfig
from formation_planner.assignment import solve_assignment
from formation_planner.curves import stationary_path
from formation_planner.geometry import exceeds_speed, min_separation
from formation_planner.models import Position
from formation_planner.strategies import (
    CONFIG_TYPES,
    Strategy,
    default_config,
    parse_strategy,
    plan_paths,
    run_strategy,
)
from formation_planner.validation import validate


PLANNERS = [(s, None) for s in Strategy] + [
    (Strategy.HYBRID, HybridConfig(variant=HybridVariant.CUBIC)),
    (Strategy.HYBRID, HybridConfig(variant=HybridVariant.DETOUR)),
]
PLANNER_IDS = [s.value if c is None else f"{s.value}-{c.variant.value}" for s, c in PLANNERS]

# the fully crossing set keeps CBS to a few constraint-tree nodes
CROSSING_PLANNERS = [(s, CBSConfig(max_high_level_iterations=5) if s == Strategy.CBS else c) for s, c in PLANNERS]


@pytest.mark.parametrize("strategy,config", PLANNERS, ids=PLANNER_IDS)
def test_head_on_swap_keeps_separation(head_on, strategy, config):
    result = run_strategy(strategy, head_on, config)

    assert [p.dancer_id for p in result.paths] == [1, 2]
    a, b = result.paths
    gap, _ = min_separation(a.path, b.path, 8.0, step=0.01)
    assert gap >= 1.0
    for dancer_path, assignment in zip(result.paths, head_on):
        assert not exceeds_speed(dancer_path.path, 1.5)
        assert dancer_path.path[0].position == assignment.start_position
        assert dancer_path.path[-1].x == pytest.approx(assignment.end_position.x, abs=1e-6)
        assert dancer_path.path[-1].y == pytest.approx(assignment.end_position.y, abs=1e-6)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_stationary_dancers_stay_put(holding, strategy):
    paths = plan_paths(strategy, holding)

    assert len(paths) == len(holding)
    for dancer_path in paths:
        assert dancer_path.total_distance == pytest.approx(0.0, abs=1e-9)
    assert validate(paths).valid


@pytest.mark.parametrize("strategy", list(Strategy))
def test_new_paths_are_appended_to_already_placed(head_on, strategy):
    bystander = make_dancer_path(9, stationary_path(Position(11.0, 9.0), 0.0, 8.0))
    placed = [bystander]

    result = run_strategy(strategy, head_on, already_placed=placed)

    assert placed[0] is bystander
    assert sorted(p.dancer_id for p in placed) == [1, 2, 9]
    assert [p.dancer_id for p in result.paths] == [1, 2]


def test_default_config_matches_strategy():
    for strategy in Strategy:
        assert type(default_config(strategy)) is CONFIG_TYPES[strategy]
    assert isinstance(default_config("simple"), SimpleConfig)


def test_mismatched_config_raises_type_error(head_on):
    with pytest.raises(TypeError):
        run_strategy(Strategy.ASTAR, head_on, SimpleConfig())


def test_unknown_strategy_raises_value_error(head_on):
    with pytest.raises(ValueError):
        parse_strategy("teleport")
    with pytest.raises(ValueError):
        run_strategy("teleport", head_on)


def test_plan_result_fields(head_on):
    result = run_strategy(Strategy.SIMPLE, head_on)

    assert result.strategy == "simple"
    assert result.converged
    assert result.unresolved == []
    assert set(result.notes) == {1, 2}
    assert result.cpu_time >= 0.0


def test_empty_assignment_list():
    for strategy in Strategy:
        assert plan_paths(strategy, []) == []


@pytest.mark.parametrize("strategy,config", PLANNERS, ids=PLANNER_IDS)
def test_movers_route_around_a_dancer_standing_still(bystander, strategy, config):
    result = run_strategy(strategy, bystander, config)

    report = validate(result.paths, max_speed=1.5)
    assert report.valid
    assert report.speed_violations == []
    assert result.converged
    assert result.unresolved == []
    still = next(p for p in result.paths if p.dancer_id == 2)
    assert still.total_distance == pytest.approx(0.0, abs=1e-9)


@pytest.mark.parametrize("strategy,config", CROSSING_PLANNERS, ids=PLANNER_IDS)
def test_converged_plans_keep_separation_and_speed(line_to_v, strategy, config):
    starts, ends = line_to_v
    assignments = solve_assignment(starts, list(reversed(ends)))

    result = run_strategy(strategy, assignments, config)

    report = validate(result.paths, max_speed=1.5)
    if result.converged:
        assert report.valid
        assert report.speed_violations == []
    if not report.valid:
        assert result.unresolved


@pytest.mark.parametrize("variant", list(HybridVariant))
def test_hybrid_fallbacks_stay_under_the_speed_ceiling(line_to_v, variant):
    starts, ends = line_to_v
    assignments = solve_assignment(starts, list(reversed(ends)))

    paths = plan_paths(Strategy.HYBRID, assignments, HybridConfig(variant=variant))

    assert validate(paths, max_speed=1.5).speed_violations == []


def test_planners_log_under_their_own_module(caplog, head_on):
    with caplog.at_level(logging.INFO):
        run_strategy(Strategy.RVO, head_on)

    names = {r.name for r in caplog.records}
    assert "formation_planner.algorithms.rvo" in names
    assert "formation_planner.algorithms.base" not in names
