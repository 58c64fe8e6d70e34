import pytest

from formation_planner.algorithms.base import make_dancer_path
from formation_planner.assignment import LengthMismatchError
from formation_planner.candidates import (
    DEFAULT_RECIPES,
    RECIPES,
    CandidateGeneratorConfig,
    arrival_time,
    calculate_metrics,
    departure_time,
    generate_candidates,
    get_recipe,
    paths_equivalent,
    summarize_candidates,
    symmetry_score,
)
from formation_planner.curves import linear_path, stationary_path
from formation_planner.models import PathPoint, Position
from formation_planner.strategies import Strategy


def test_line_to_v_candidates_are_ranked(line_to_v):
    starts, ends = line_to_v
    candidates = generate_candidates(starts, ends)

    assert candidates
    counts = [c.metrics.collision_count for c in candidates]
    assert counts == sorted(counts)
    assert candidates[0].metrics.collision_count == 0
    assert len({c.id for c in candidates}) == len(candidates)
    for candidate in candidates:
        assert len(candidate.paths) == len(starts)
        assert [p.dancer_id for p in candidate.paths] == list(range(1, len(starts) + 1))


def test_duplicate_candidates_are_dropped(line_to_v):
    starts, ends = line_to_v
    config = CandidateGeneratorConfig(strategies=("synchronized_arrival", "synchronized_arrival"))

    candidates = generate_candidates(starts, ends, config)
    assert [c.id for c in candidates] == ["synchronized_arrival"]


def test_custom_rank_key(line_to_v):
    starts, ends = line_to_v
    config = CandidateGeneratorConfig(strategies=("distance_longest_first", "synchronized_arrival", "hybrid_arc"))

    candidates = generate_candidates(starts, ends, config, rank_key=lambda c: -c.metrics.total_distance)
    distances = [c.metrics.total_distance for c in candidates]
    assert distances == sorted(distances, reverse=True)


def test_generate_candidates_rejects_bad_input(line_to_v):
    starts, ends = line_to_v
    with pytest.raises(LengthMismatchError):
        generate_candidates(starts, ends[:-1])
    with pytest.raises(ValueError):
        generate_candidates(starts, ends, CandidateGeneratorConfig(strategies=("warp_drive",)))


def test_recipes():
    assert set(DEFAULT_RECIPES) <= set(RECIPES)
    assert {r.strategy for r in RECIPES.values()} == set(Strategy)

    config = get_recipe("quick_burst").config_for(CandidateGeneratorConfig(total_counts=16.0, stage_width=20.0))
    assert config.speed_multiplier == 1.5
    assert config.total_counts == 16.0
    assert config.stage_width == 20.0
    with pytest.raises(ValueError):
        get_recipe("nope")


def test_departure_and_arrival_times():
    path = [PathPoint(0, 0, 0), PathPoint(0, 0, 2), PathPoint(4, 0, 6), PathPoint(4, 0, 8)]
    assert departure_time(path) == 2
    assert arrival_time(path) == 6

    still = stationary_path(Position(1, 1), 0, 8)
    assert departure_time(still) == 0.0
    assert arrival_time(still) == 0.0


def test_symmetry_score():
    mirrored = [
        make_dancer_path(1, stationary_path(Position(3, 5), 0, 8)),
        make_dancer_path(2, stationary_path(Position(9, 5), 0, 8)),
    ]
    lopsided = [
        make_dancer_path(1, stationary_path(Position(1, 5), 0, 8)),
        make_dancer_path(2, stationary_path(Position(2, 5), 0, 8)),
    ]
    assert symmetry_score(mirrored, 12.0, 8.0) == 100
    assert symmetry_score(lopsided, 12.0, 8.0) == 0
    assert symmetry_score(mirrored[:1], 12.0, 8.0) == 0


def test_calculate_metrics():
    paths = [
        make_dancer_path(1, linear_path(Position(0, 0), Position(4, 4), 0, 8)),
        make_dancer_path(2, linear_path(Position(1, 4), Position(4, 0), 2, 6)),
    ]
    metrics = calculate_metrics(paths, 0.5, 8.0, 12.0)

    # the chords cross at (16/7, 16/7), between samples on both paths
    assert metrics.crossing_count == 1
    assert metrics.max_delay == 2
    assert metrics.avg_delay == 1
    assert metrics.smoothness == 100
    assert metrics.simultaneous_arrival == 75
    assert metrics.total_distance == pytest.approx(4 * 2 ** 0.5 + 5)


def test_paths_equivalent():
    a = [make_dancer_path(1, linear_path(Position(0, 0), Position(4, 0), 0, 8))]
    b = [make_dancer_path(1, linear_path(Position(0, 0), Position(4, 0.005), 0, 8))]
    c = [make_dancer_path(1, linear_path(Position(0, 0), Position(4, 1), 0, 8))]

    assert paths_equivalent(a, b)
    assert not paths_equivalent(a, c)
    assert not paths_equivalent(a, [])


def test_summarize_candidates(line_to_v):
    starts, ends = line_to_v
    candidates = generate_candidates(starts, ends, CandidateGeneratorConfig(strategies=("hybrid_arc",)))
    rows = summarize_candidates(candidates)

    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == "hybrid_arc"
    assert row["strategy"] == "hybrid"
    assert row["collisions"] == candidates[0].metrics.collision_count
    assert set(row) >= {"crossings", "symmetry", "smoothness", "simultaneous_arrival", "total_distance"}
