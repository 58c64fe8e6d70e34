"""Conflict-Based Search.

High level: a best-first search over constraint sets. Each node holds one
trajectory per dancer; the earliest conflict between two dancers spawns two
children, each forbidding one of the pair from a disk around the other's
position at the conflict time, and only that dancer is re-searched.

Low level: the space-time A* of ``astar.py`` with disk constraints. Dancers
are searched with no knowledge of each other (committed trajectories passed in
``already_placed`` stay static obstacles).

The root is seeded by prioritized planning by default, so the constraint
tree only has to fix what sequential placement could not.
"""

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import PlacementOrder
from ..geometry import exceeds_speed, find_all_collisions, position_at_time
from ..models import Assignment, Collision, DancerPath
from .astar import direct_point_count, low_level_search
from .base import (
    PlanResult,
    direct_dancer_path,
    is_stationary,
    make_dancer_path,
    order_assignments,
    stationary_dancer_path,
)
from .grid import DiskConstraint, GridConfig


@dataclass
class CBSConfig(GridConfig):
    """CBS settings.

    Attributes:
        max_high_level_iterations: Constraint-tree node expansions.
        prioritized_root: Seed the root with prioritized planning instead of
            independent searches.
        constraint_window: Half-width (counts) of the time window a disk
            constraint covers.
    """

    max_high_level_iterations: int = 100
    prioritized_root: bool = True
    constraint_window: float = 0.5


@dataclass(order=True)
class CBSNode:
    priority: Tuple[float, int]
    paths: Dict[int, DancerPath] = field(compare=False)
    costs: Dict[int, float] = field(compare=False)
    constraints: Tuple[DiskConstraint, ...] = field(compare=False, default=())

    @property
    def cost(self) -> float:
        return sum(self.costs.values())


class CBSPlanner:
    """Two-level conflict-based planner."""

    name = "cbs"

    def __init__(self, config: Optional[CBSConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or CBSConfig()
        self.log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Low level
    # ------------------------------------------------------------------

    def _search(
        self,
        assignment: Assignment,
        obstacles: Sequence[DancerPath],
        constraints: Sequence[DiskConstraint],
    ) -> Tuple[Optional[DancerPath], float]:
        own = [c for c in constraints if c.dancer_id == assignment.dancer_id]
        outcome = low_level_search(assignment, self.config, obstacles, own)
        if outcome.path is None:
            return None, outcome.cost
        return make_dancer_path(assignment.dancer_id, outcome.path), outcome.cost

    def _root(
        self,
        movers: Sequence[Assignment],
        fixed: Sequence[DancerPath],
        stationary: Sequence[DancerPath],
    ) -> CBSNode:
        paths: Dict[int, DancerPath] = {p.dancer_id: p for p in stationary}
        costs: Dict[int, float] = {p.dancer_id: 0.0 for p in stationary}
        committed = list(fixed)
        for assignment in order_assignments(movers, PlacementOrder.LONGEST_FIRST, self.config):
            obstacles = committed if self.config.prioritized_root else fixed
            dancer_path, cost = self._search(assignment, obstacles, ())
            if dancer_path is None and self.config.prioritized_root:
                # fall back to ignoring the other movers; the tree resolves conflicts
                dancer_path, cost = self._search(assignment, fixed, ())
            if dancer_path is None:
                self.log.warning("dancer %d: root search exhausted, using direct path", assignment.dancer_id)
                dancer_path = direct_dancer_path(assignment, self.config, direct_point_count(self.config))
                cost = assignment.distance
            paths[assignment.dancer_id] = dancer_path
            costs[assignment.dancer_id] = cost
            committed.append(dancer_path)
        return CBSNode((sum(costs.values()), 0), paths, costs, ())

    # ------------------------------------------------------------------
    # High level
    # ------------------------------------------------------------------

    def conflicts(self, node: CBSNode) -> List[Collision]:
        cfg = self.config
        return find_all_collisions(list(node.paths.values()), cfg.collision_radius, cfg.total_counts, cfg.check_step)

    def _constraint_for(self, dancer_id: int, other: DancerPath, t: float) -> DiskConstraint:
        p = position_at_time(other.path, t)
        return DiskConstraint(
            dancer_id=dancer_id,
            x=p.x,
            y=p.y,
            t=t,
            radius=self.config.separation,
            window=self.config.constraint_window,
        )

    def plan(
        self,
        assignments: Sequence[Assignment],
        already_placed: Optional[List[DancerPath]] = None,
    ) -> PlanResult:
        t0 = time.perf_counter()
        placed = already_placed if already_placed is not None else []
        by_id = {a.dancer_id: a for a in assignments}
        stationary = [stationary_dancer_path(a, self.config) for a in assignments if is_stationary(a)]
        # stationary dancers are obstacles for every search and never move
        fixed = list(placed) + stationary
        movers = [a for a in assignments if not is_stationary(a)]
        counter = itertools.count(1)

        root = self._root(movers, fixed, stationary)
        open_list: List[CBSNode] = [root]
        iterations = 0
        solution: Optional[CBSNode] = None

        while open_list and iterations < self.config.max_high_level_iterations:
            node = heapq.heappop(open_list)
            iterations += 1
            found = self.conflicts(node)
            if not found:
                solution = node
                break

            conflict = found[0]
            self.log.debug(
                "iteration %d: %d conflicts, first %d-%d at t=%.2f",
                iterations, len(found), conflict.dancer_a, conflict.dancer_b, conflict.time,
            )
            for mover, other in ((conflict.dancer_a, conflict.dancer_b), (conflict.dancer_b, conflict.dancer_a)):
                if is_stationary(by_id[mover]):
                    continue
                constraint = self._constraint_for(mover, node.paths[other], conflict.time)
                constraints = node.constraints + (constraint,)
                dancer_path, cost = self._search(by_id[mover], fixed, constraints)
                if dancer_path is None:
                    continue
                paths = dict(node.paths)
                paths[mover] = dancer_path
                costs = dict(node.costs)
                costs[mover] = cost
                child = CBSNode((sum(costs.values()), next(counter)), paths, costs, constraints)
                heapq.heappush(open_list, child)

        converged = solution is not None
        if solution is None:
            solution = open_list[0] if open_list else root
            self.log.warning(
                "CBS stopped after %d iterations without a conflict-free node; returning best-cost node",
                iterations,
            )

        planned = sorted(solution.paths.values(), key=lambda p: p.dancer_id)
        remaining = self.conflicts(solution)
        unresolved = sorted({c.dancer_a for c in remaining} | {c.dancer_b for c in remaining})
        unresolved = [d for d in unresolved if d in by_id]
        if converged:
            self.log.info("CBS resolved all conflicts after %d iterations", iterations)
        elif unresolved:
            self.log.error("CBS left %d dancers in conflict: %s", len(unresolved), unresolved)
        too_fast = [p.dancer_id for p in planned if exceeds_speed(p.path, self.config.max_human_speed)]
        if too_fast:
            self.log.warning("CBS: dancers %s exceed the speed ceiling", too_fast)
            converged = False

        placed.extend(planned)
        return PlanResult(
            paths=planned,
            strategy=self.name,
            cpu_time=time.perf_counter() - t0,
            converged=converged,
            iterations=iterations,
            unresolved=unresolved,
            notes={d: "cbs" for d in by_id},
        )


def plan_cbs(
    assignments: Sequence[Assignment],
    config: Optional[CBSConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return CBSPlanner(config, logger).plan(assignments, already_placed).paths
