"""Shared records for the curve-fitting planners.

A per-dancer search draws ``Candidate`` trajectories from an ordered list of
``CandidatePhase`` values. Phases with the same ``tier`` are concatenated and
filtered once; the first tier that leaves a survivor decides. The last tier
accepts a colliding candidate so a trajectory is always produced.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...config import PlannerConfig
from ...curves import CurveShape
from ...geometry import fit_duration_to_speed, max_segment_speed, segments_intersect
from ...models import Assignment, PathPoint, Position


class HybridVariant(str, Enum):
    ARC = "arc"
    CUBIC = "cubic"
    DETOUR = "detour"


class SyncMode(str, Enum):
    """How strongly the planner insists on every dancer moving for the whole window."""

    STRICT = "strict"
    BALANCED = "balanced"
    RELAXED = "relaxed"


@dataclass(frozen=True)
class SyncProfile:
    """Candidate tables of one sync mode.

    Attributes:
        delays: Start delays tried in the main tier (counts).
        duration_factors: Movement durations as fractions of the window.
        small_offsets: Curve magnitudes combined with every delay/duration.
        large_offsets: Curve magnitudes combined with delays and fallback delays.
        fallback_delays: Extra delays used only with large offsets.
        sync_multiplier: Weight of the timing penalty in the ranking.
    """

    delays: Tuple[float, ...]
    duration_factors: Tuple[float, ...]
    small_offsets: Tuple[float, ...]
    large_offsets: Tuple[float, ...]
    fallback_delays: Tuple[float, ...]
    sync_multiplier: float


SYNC_PROFILES: Dict[SyncMode, SyncProfile] = {
    SyncMode.STRICT: SyncProfile(
        delays=(0.0,),
        duration_factors=(1.0,),
        small_offsets=(0.5, 0.8, 1.0, 1.2, 1.5),
        large_offsets=(2.0, 2.5, 3.0, 3.5, 4.0),
        fallback_delays=(0.3, 0.5, 0.8),
        sync_multiplier=10.0,
    ),
    SyncMode.BALANCED: SyncProfile(
        delays=(0.0, 0.3, 0.5, 0.8, 1.0),
        duration_factors=(1.0, 0.9, 0.8),
        small_offsets=(0.8, 1.2, 1.5),
        large_offsets=(2.0, 2.5, 3.0),
        fallback_delays=(1.5, 2.0, 2.5),
        sync_multiplier=3.0,
    ),
    SyncMode.RELAXED: SyncProfile(
        delays=(0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0, 4.5, 5.0),
        duration_factors=(1.0, 0.8, 0.7, 0.6),
        small_offsets=(0.5, 1.0, 1.5),
        large_offsets=(2.0, 2.5, 3.0, 3.5),
        fallback_delays=(4.0, 4.5, 5.0),
        sync_multiplier=0.5,
    ),
}


@dataclass
class HybridConfig(PlannerConfig):
    """Curve-fitting planner settings.

    Attributes:
        variant: Candidate family (``arc``, ``cubic`` or ``detour``).
        sync_mode: Timing tables and ranking order.
        repair_iterations: Cap of the post-placement repair loop.
        max_detour_ratio: Largest path length / chord ratio a detour may have.
        max_curve_offset: Largest regular offset of a detour.
        time_filling: Stretch detour trajectories to end with the window.
        min_duration: Shortest movement window a delayed candidate may have.
    """

    variant: HybridVariant = HybridVariant.ARC
    sync_mode: SyncMode = SyncMode.BALANCED
    num_points: int = 30
    repair_iterations: int = 50
    max_detour_ratio: float = 1.8
    max_curve_offset: float = 3.0
    time_filling: bool = False
    min_duration: float = 1.5

    @property
    def profile(self) -> SyncProfile:
        return SYNC_PROFILES[SyncMode(self.sync_mode)]


@dataclass(frozen=True)
class Candidate:
    """One trajectory proposal: a curve shape drawn over a time window."""

    shape: CurveShape
    start_time: float
    end_time: float
    phase: str = ""

    def build(self, assignment: Assignment, total_counts: float, num_points: int) -> List[PathPoint]:
        points = self.shape.build(
            assignment.start_position, assignment.end_position, self.start_time, self.end_time, num_points
        )
        if self.start_time > 0:
            points.insert(0, PathPoint(points[0].x, points[0].y, 0.0))
        if self.end_time < total_counts:
            points.append(PathPoint(points[-1].x, points[-1].y, total_counts))
        return points

    def describe(self) -> str:
        return f"{self.phase}: {self.shape.describe()} [{self.start_time:.2f}, {self.end_time:.2f}]"


def speed_fitted(candidate: Candidate, assignment: Assignment, config: PlannerConfig) -> Candidate:
    """``candidate`` with its window widened until no segment outruns ``max_human_speed``.

    Curve samples are uniform in the curve parameter, not in distance, so the
    fastest segment of the unit-time path fixes the shortest admissible window.
    The window grows towards the horizon first, then starts earlier.
    """
    unit = candidate.shape.build(assignment.start_position, assignment.end_position, 0.0, 1.0, config.num_points)
    start, end = fit_duration_to_speed(
        max_segment_speed(unit), candidate.start_time, candidate.end_time, config.max_human_speed, config.total_counts
    )
    if (start, end) == (candidate.start_time, candidate.end_time):
        return candidate
    return Candidate(candidate.shape, start, end, candidate.phase)


@dataclass(frozen=True)
class CandidatePhase:
    """An ordered step of the per-dancer search.

    Attributes:
        name: Label used in logs and notes.
        tier: Phases sharing a tier are pooled and ranked together.
        build: ``build(assignment, side)`` yields the phase's candidates;
            ``side`` is the passing-lane side the dancer is held to, if any.
        first_fit: Take the first surviving candidate instead of ranking.
        accept_colliding: Last resort; a candidate is returned even if it collides.
    """

    name: str
    tier: int
    build: Callable[[Assignment, Optional[int]], Iterable[Candidate]]
    first_fit: bool = False
    accept_colliding: bool = False


def group_tiers(phases: Sequence[CandidatePhase]) -> List[List[CandidatePhase]]:
    tiers: Dict[int, List[CandidatePhase]] = {}
    for phase in phases:
        tiers.setdefault(phase.tier, []).append(phase)
    return [tiers[k] for k in sorted(tiers)]


def windows(
    profile: SyncProfile, total: float, min_duration: float, delays: Optional[Sequence[float]] = None
) -> List[Tuple[float, float]]:
    """(start, end) windows of the delay x duration table, shortest windows dropped."""
    out = []
    for delay in profile.delays if delays is None else delays:
        for factor in profile.duration_factors:
            end = min(total, delay + factor * total)
            if end - delay < min_duration:
                continue
            if (delay, end) not in out:
                out.append((delay, end))
    return out


# =============================================================================
# Passing lanes
# =============================================================================

def _point_segment_distance(p: Position, a: Position, b: Position) -> float:
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p.x - a.x, p.y - a.y)
    u = max(0.0, min(1.0, ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq))
    return math.hypot(p.x - (a.x + u * dx), p.y - (a.y + u * dy))


def segment_distance(a: Position, b: Position, c: Position, d: Position) -> float:
    """Closest distance between segments AB and CD."""
    if segments_intersect(a, b, c, d):
        return 0.0
    return min(
        _point_segment_distance(a, c, d),
        _point_segment_distance(b, c, d),
        _point_segment_distance(c, a, b),
        _point_segment_distance(d, a, b),
    )


def passing_lanes(assignments: Sequence[Assignment], separation: float) -> Dict[int, int]:
    """Dancer id -> +1 for every dancer in an anti-parallel pair whose chords pass too close.

    Both dancers of such a pair must bulge to the left of their own heading,
    which puts them on opposite sides of the shared corridor.
    """
    lanes: Dict[int, int] = {}
    moving = [a for a in assignments if a.distance > 1e-9]
    for i, a in enumerate(moving):
        ax = (a.end_position.x - a.start_position.x) / a.distance
        ay = (a.end_position.y - a.start_position.y) / a.distance
        for b in moving[i + 1:]:
            bx = (b.end_position.x - b.start_position.x) / b.distance
            by = (b.end_position.y - b.start_position.y) / b.distance
            if ax * bx + ay * by >= -0.9:
                continue
            gap = segment_distance(a.start_position, a.end_position, b.start_position, b.end_position)
            if gap < separation:
                lanes[a.dancer_id] = 1
                lanes[b.dancer_id] = 1
    return lanes


def lane_allows(shape: CurveShape, side: Optional[int]) -> bool:
    """Lane-bound dancers may only use one-sided curves on their lane side."""
    if side is None:
        return True
    return shape.side == side
