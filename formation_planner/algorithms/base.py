"""Sequential-commitment planning shared by every strategy.

A planner walks the assignments in its own order and, for each dancer,
plans against the trajectories committed so far. Committed trajectories are
appended to a caller-owned ``already_placed`` list, so a caller can seed it
with dancers that are not being re-planned and read the full set back.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import PlacementOrder, PlannerConfig
from ..curves import linear_path, stationary_path
from ..geometry import STATIONARY_EPS, SampledPaths, exceeds_speed, path_length
from ..models import Assignment, DancerPath, PathPoint


MIN_DISPLAY_SPEED = 0.3
MAX_DISPLAY_SPEED = 2.0


@dataclass
class PlanResult:
    """Outcome of one planner run.

    Attributes:
        paths: One trajectory per planned dancer, ordered by dancer id.
        strategy: Strategy name.
        cpu_time: Wall time spent planning, in seconds.
        converged: False when an iteration cap or fallback was hit.
        iterations: Search iterations (high-level for CBS, repair rounds for
            curve planners, node expansions for grid planners).
        unresolved: Dancer ids left with a known collision.
        notes: Per-dancer description of the chosen trajectory.
    """

    paths: List[DancerPath]
    strategy: str
    cpu_time: float = 0.0
    converged: bool = True
    iterations: int = 0
    unresolved: List[int] = field(default_factory=list)
    notes: Dict[int, str] = field(default_factory=dict)


def is_stationary(assignment: Assignment) -> bool:
    return assignment.distance < STATIONARY_EPS


def make_dancer_path(dancer_id: int, path: List[PathPoint]) -> DancerPath:
    """Wrap samples into a DancerPath with derived summary fields."""
    length = path_length(path)
    duration = path[-1].t - path[0].t
    speed = length / duration if duration > 0 else 0.0
    return DancerPath(
        dancer_id=dancer_id,
        path=path,
        start_time=path[0].t,
        speed=max(MIN_DISPLAY_SPEED, min(MAX_DISPLAY_SPEED, speed)),
        total_distance=length,
    )


def stationary_dancer_path(assignment: Assignment, config: PlannerConfig) -> DancerPath:
    return make_dancer_path(
        assignment.dancer_id,
        stationary_path(assignment.start_position, 0.0, config.total_counts, 2),
    )


def direct_dancer_path(assignment: Assignment, config: PlannerConfig, num_points: Optional[int] = None) -> DancerPath:
    """Straight line over the whole window, collisions unchecked."""
    return make_dancer_path(
        assignment.dancer_id,
        linear_path(
            assignment.start_position,
            assignment.end_position,
            0.0,
            config.total_counts,
            num_points or config.num_points,
        ),
    )


def order_assignments(
    assignments: Sequence[Assignment],
    order: PlacementOrder,
    config: Optional[PlannerConfig] = None,
) -> List[Assignment]:
    """Sort assignments into placement order (stable)."""
    order = PlacementOrder(order)
    items = list(assignments)
    if order == PlacementOrder.LONGEST_FIRST:
        return sorted(items, key=lambda a: -a.distance)
    if order == PlacementOrder.SHORTEST_FIRST:
        return sorted(items, key=lambda a: a.distance)
    if order == PlacementOrder.FRONT_TO_BACK:
        # dancers heading upstage (towards smaller y) go first, then longest
        return sorted(
            items,
            key=lambda a: (0 if a.start_position.y > a.end_position.y else 1, -a.distance),
        )
    if order == PlacementOrder.CENTER_FIRST:
        cfg = config or PlannerConfig()
        cx, cy = cfg.stage_width / 2, cfg.stage_height / 2
        return sorted(
            items,
            key=lambda a: math.hypot(a.end_position.x - cx, a.end_position.y - cy),
        )
    if order == PlacementOrder.STAGE_DEPTH:
        return sorted(items, key=lambda a: (-a.end_position.y, -a.distance))
    return items


class SequentialPlanner:
    """Base class for planners that commit dancers one at a time.

    Subclasses implement ``plan_agent`` and may override ``placement_order``
    or ``finish``.
    """

    name = "sequential"

    def __init__(self, config: PlannerConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.log = logger or logging.getLogger(type(self).__module__)
        self.converged = True
        self.iterations = 0
        self.unresolved: List[int] = []
        self.notes: Dict[int, str] = {}

    def prepare(self, assignments: Sequence[Assignment], placed: List[DancerPath]) -> None:
        """Hook run once before the first dancer is placed."""

    def placement_order(self, assignments: Sequence[Assignment]) -> List[Assignment]:
        return order_assignments(assignments, PlacementOrder.LONGEST_FIRST, self.config)

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        raise NotImplementedError

    def finish(self, planned: List[DancerPath], placed: List[DancerPath]) -> List[DancerPath]:
        """Hook run after every dancer is placed; returns the final planned set."""
        return planned

    def plan(
        self,
        assignments: Sequence[Assignment],
        already_placed: Optional[List[DancerPath]] = None,
    ) -> PlanResult:
        """Plan every assignment.

        Args:
            assignments: Dancers to plan.
            already_placed: Caller-owned list of committed trajectories. Existing
                entries are treated as obstacles; new trajectories are appended
                in placement order.
        """
        t0 = time.perf_counter()
        placed = already_placed if already_placed is not None else []
        self.converged = True
        self.iterations = 0
        self.unresolved = []
        self.notes = {}

        self.prepare(assignments, placed)
        planned: List[DancerPath] = []
        order = self.placement_order(assignments)
        # stationary dancers are committed first: they are obstacles for every mover
        for assignment in order:
            if is_stationary(assignment):
                dancer_path = stationary_dancer_path(assignment, self.config)
                self.notes[assignment.dancer_id] = "stationary"
                placed.append(dancer_path)
                planned.append(dancer_path)
        for assignment in order:
            if is_stationary(assignment):
                continue
            dancer_path = self.plan_agent(assignment, placed)
            placed.append(dancer_path)
            planned.append(dancer_path)

        planned = self.finish(planned, placed)
        planned.sort(key=lambda p: p.dancer_id)
        too_fast = [p.dancer_id for p in planned if exceeds_speed(p.path, self.config.max_human_speed)]
        if too_fast:
            self.log.warning("%s: dancers %s exceed the speed ceiling", self.name, too_fast)
            self.converged = False
        cpu_time = time.perf_counter() - t0
        self.log.info(
            "%s placed %d dancers in %.3fs (iterations=%d, unresolved=%d)",
            self.name, len(planned), cpu_time, self.iterations, len(self.unresolved),
        )
        return PlanResult(
            paths=planned,
            strategy=self.name,
            cpu_time=cpu_time,
            converged=self.converged and not self.unresolved,
            iterations=self.iterations,
            unresolved=sorted(set(self.unresolved)),
            notes=dict(self.notes),
        )

    def first_conflict(self, path: List[PathPoint], placed: Sequence[DancerPath]):
        """Earliest (dancer_id, time) at which ``path`` breaks separation against ``placed``."""
        table = SampledPaths(placed, self.config.total_counts, self.config.check_step)
        return table.first_hit(path, self.config.separation)

    def collides(self, path: List[PathPoint], placed: Sequence[DancerPath]) -> bool:
        """True when ``path`` comes closer than two radii to a placed dancer."""
        table = SampledPaths(placed, self.config.total_counts, self.config.check_step)
        return table.min_gap(path) < 2 * self.config.collision_radius

    @staticmethod
    def replace_placed(placed: List[DancerPath], new_path: DancerPath) -> None:
        """Swap the committed trajectory of ``new_path.dancer_id`` in place."""
        for i, existing in enumerate(placed):
            if existing.dancer_id == new_path.dancer_id:
                placed[i] = new_path
                return
        placed.append(new_path)
