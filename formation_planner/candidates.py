"""Multi-candidate generation and scoring.

Every recipe pairs a strategy with config overrides. ``generate_candidates``
solves the assignment once, runs each recipe, scores its trajectories,
drops near-duplicates and returns the survivors best-first (fewest
collisions, then fewest crossings).
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .algorithms.hybrid import HybridVariant
from .algorithms.pathfinder import TimingMode
from .assignment import AssignmentMode, solve_assignment
from .config import PlacementOrder
from .geometry import count_crossings, distance, max_deviation, path_length, sample_path
from .models import Assignment, CandidateMetrics, CandidateResult, DancerPath, Position
from .strategies import Strategy, default_config, run_strategy
from .validation import validate


SYMMETRY_TOLERANCE = 1.0
EQUIVALENCE_TOLERANCE = 0.01
MOVE_EPS = 1e-6


@dataclass(frozen=True)
class CandidateRecipe:
    """A named strategy setup.

    Attributes:
        name: Candidate id.
        strategy: Planner used.
        overrides: Config fields set on top of the strategy defaults.
    """

    name: str
    strategy: Strategy
    overrides: Dict[str, Any] = field(default_factory=dict)

    def config_for(self, settings: "CandidateGeneratorConfig"):
        return replace(
            default_config(self.strategy),
            total_counts=settings.total_counts,
            collision_radius=settings.collision_radius,
            stage_width=settings.stage_width,
            stage_height=settings.stage_height,
            **self.overrides,
        )


RECIPES: Dict[str, CandidateRecipe] = {
    recipe.name: recipe
    for recipe in [
        CandidateRecipe("distance_longest_first", Strategy.SIMPLE, {"sort_strategy": PlacementOrder.LONGEST_FIRST}),
        CandidateRecipe("distance_shortest_first", Strategy.SIMPLE, {"sort_strategy": PlacementOrder.SHORTEST_FIRST}),
        CandidateRecipe("synchronized_arrival", Strategy.SIMPLE, {"timing_mode": TimingMode.SYNCHRONIZED}),
        CandidateRecipe("staggered_wave", Strategy.SIMPLE, {"timing_mode": TimingMode.STAGGERED}),
        CandidateRecipe("center_priority", Strategy.SIMPLE, {"sort_strategy": PlacementOrder.CENTER_FIRST}),
        CandidateRecipe("curved_smooth", Strategy.SIMPLE, {"force_curve": True, "max_curve_offset": 1.5}),
        CandidateRecipe(
            "quick_burst", Strategy.SIMPLE, {"timing_mode": TimingMode.SYNCHRONIZED, "speed_multiplier": 1.5}
        ),
        CandidateRecipe(
            "slow_dramatic",
            Strategy.SIMPLE,
            {"timing_mode": TimingMode.STAGGERED, "stagger_delay": 1.0, "speed_multiplier": 0.7},
        ),
        CandidateRecipe("hybrid_arc", Strategy.HYBRID, {"variant": HybridVariant.ARC}),
        CandidateRecipe("hybrid_cubic", Strategy.HYBRID, {"variant": HybridVariant.CUBIC}),
        CandidateRecipe("hybrid_detour", Strategy.HYBRID, {"variant": HybridVariant.DETOUR}),
        CandidateRecipe("choreography", Strategy.CHOREOGRAPHY),
        CandidateRecipe("astar", Strategy.ASTAR),
        CandidateRecipe("jps", Strategy.JPS),
        CandidateRecipe("cbs", Strategy.CBS),
        CandidateRecipe("rvo", Strategy.RVO),
        CandidateRecipe("boids", Strategy.BOIDS),
        CandidateRecipe("potential_field", Strategy.POTENTIAL_FIELD),
    ]
}

DEFAULT_RECIPES: Tuple[str, ...] = (
    "distance_longest_first",
    "synchronized_arrival",
    "staggered_wave",
    "curved_smooth",
    "quick_burst",
    "slow_dramatic",
    "hybrid_arc",
    "hybrid_cubic",
)


@dataclass
class CandidateGeneratorConfig:
    """Settings of one generation request.

    Attributes:
        strategies: Recipe names, run in order.
        assignment_mode: Start -> end mapping mode.
        locked_dancers: Dancer ids kept on their own index in ``partial`` mode.
    """

    strategies: Tuple[str, ...] = DEFAULT_RECIPES
    total_counts: float = 8.0
    collision_radius: float = 0.5
    stage_width: float = 12.0
    stage_height: float = 10.0
    assignment_mode: AssignmentMode = AssignmentMode.FIXED
    locked_dancers: Tuple[int, ...] = ()


def get_recipe(name: str) -> CandidateRecipe:
    try:
        return RECIPES[name]
    except KeyError:
        raise ValueError(f"Unknown candidate recipe '{name}'") from None


# =============================================================================
# Metrics
# =============================================================================

def departure_time(path: Sequence) -> float:
    """Time the dancer leaves its first position (0 when it never moves)."""
    first = path[0]
    for prev, point in zip(path, path[1:]):
        if distance(point, first) > MOVE_EPS:
            return prev.t
    return 0.0


def arrival_time(path: Sequence) -> float:
    """Time the dancer reaches its final position for good."""
    last = path[-1]
    for point, nxt in zip(reversed(path[:-1]), reversed(path[1:])):
        if distance(point, last) > MOVE_EPS:
            return nxt.t
    return path[0].t


def symmetry_score(paths: Sequence[DancerPath], stage_width: float, total_counts: float) -> int:
    """Share of (dancer, whole count) samples whose mirror image across the
    stage centerline is occupied by another dancer."""
    if len(paths) < 2:
        return 0
    times = np.arange(0.0, math.floor(total_counts) + 1.0)
    samples = np.stack([sample_path(p.path, times) for p in paths], axis=1)  # (T, N, 2)
    mirrored = samples.copy()
    mirrored[..., 0] = stage_width - mirrored[..., 0]
    n = len(paths)
    matched = 0
    for k in range(len(times)):
        gaps = np.hypot(
            mirrored[k][:, None, 0] - samples[k][None, :, 0],
            mirrored[k][:, None, 1] - samples[k][None, :, 1],
        )
        np.fill_diagonal(gaps, np.inf)
        matched += int(np.count_nonzero(gaps.min(axis=1) <= SYMMETRY_TOLERANCE))
    return int(round(100.0 * matched / (n * len(times))))


def calculate_metrics(
    paths: Sequence[DancerPath],
    collision_radius: float = 0.5,
    total_counts: float = 8.0,
    stage_width: float = 12.0,
) -> CandidateMetrics:
    report = validate(paths, collision_radius, total_counts)
    crossings = 0
    for i in range(len(paths)):
        for j in range(i + 1, len(paths)):
            crossings += count_crossings(paths[i].path, paths[j].path)

    if paths:
        deviation = sum(max_deviation(p.path) for p in paths) / len(paths)
        departures = [departure_time(p.path) for p in paths]
    else:
        deviation = 0.0
        departures = [0.0]
    moving = [p for p in paths if path_length(p.path) > MOVE_EPS]
    if moving:
        arrivals = [arrival_time(p.path) for p in moving]
        spread = max(arrivals) - min(arrivals)
    else:
        spread = 0.0

    return CandidateMetrics(
        collision_count=len(report.collisions),
        crossing_count=crossings,
        symmetry_score=symmetry_score(paths, stage_width, total_counts),
        smoothness=max(0, int(round(100 - 50 * deviation))),
        max_delay=max(departures),
        avg_delay=sum(departures) / len(departures),
        simultaneous_arrival=int(round(max(0.0, 100 - spread / total_counts * 100))),
        total_distance=sum(path_length(p.path) for p in paths),
    )


def paths_equivalent(a: Sequence[DancerPath], b: Sequence[DancerPath], tol: float = EQUIVALENCE_TOLERANCE) -> bool:
    """True when both sets hold the same dancers with the same start time and
    near-identical start, middle and end points."""
    if len(a) != len(b):
        return False
    others = {p.dancer_id: p for p in b}
    for p in a:
        q = others.get(p.dancer_id)
        if q is None or abs(p.start_time - q.start_time) > tol:
            return False
        for i, j in ((0, 0), (len(p.path) // 2, len(q.path) // 2), (-1, -1)):
            if distance(p.path[i], q.path[j]) > tol:
                return False
    return True


def default_rank_key(candidate: CandidateResult):
    return (candidate.metrics.collision_count, candidate.metrics.crossing_count)


# =============================================================================
# Generation
# =============================================================================

def generate_candidates(
    starts: Sequence[Position],
    ends: Sequence[Position],
    config: Optional[CandidateGeneratorConfig] = None,
    logger: Optional[logging.Logger] = None,
    rank_key: Optional[Callable[[CandidateResult], Any]] = None,
) -> List[CandidateResult]:
    """Run every configured recipe and return the scored candidates best-first.

    Raises:
        LengthMismatchError: If the formations differ in size.
        NonFiniteCoordinateError: If any coordinate is NaN or infinite.
        ValueError: Unknown recipe name.
    """
    config = config or CandidateGeneratorConfig()
    log = logger or logging.getLogger(__name__)
    assignments: List[Assignment] = solve_assignment(
        starts, ends, config.assignment_mode, config.locked_dancers
    )
    recipes = [get_recipe(name) for name in config.strategies]

    candidates: List[CandidateResult] = []
    for recipe in recipes:
        result = run_strategy(recipe.strategy, assignments, recipe.config_for(config), logger=log)
        metrics = calculate_metrics(result.paths, config.collision_radius, config.total_counts, config.stage_width)
        candidate = CandidateResult(
            id=recipe.name,
            strategy=recipe.strategy.value,
            paths=result.paths,
            metrics=metrics,
            assignments=list(assignments),
            cpu_time=result.cpu_time,
            converged=result.converged,
        )
        duplicate = next((c for c in candidates if paths_equivalent(c.paths, candidate.paths)), None)
        if duplicate is not None:
            log.debug("candidate %s duplicates %s, dropped", recipe.name, duplicate.id)
            continue
        log.debug(
            "candidate %s: collisions=%d crossings=%d cpu=%.3fs",
            recipe.name, metrics.collision_count, metrics.crossing_count, result.cpu_time,
        )
        candidates.append(candidate)

    candidates.sort(key=rank_key or default_rank_key)
    if candidates:
        log.info(
            "generated %d candidates from %d recipes, best %s (%d collisions)",
            len(candidates), len(recipes), candidates[0].id, candidates[0].metrics.collision_count,
        )
    return candidates


def summarize_candidates(candidates: Sequence[CandidateResult]) -> List[Dict[str, Any]]:
    """Compact per-candidate dicts for external rankers."""
    return [
        {
            "id": c.id,
            "strategy": c.strategy,
            "collisions": c.metrics.collision_count,
            "crossings": c.metrics.crossing_count,
            "symmetry": c.metrics.symmetry_score,
            "smoothness": c.metrics.smoothness,
            "simultaneous_arrival": c.metrics.simultaneous_arrival,
            "max_delay": round(c.metrics.max_delay, 2),
            "total_distance": round(c.metrics.total_distance, 2),
            "converged": c.converged,
        }
        for c in candidates
    ]
