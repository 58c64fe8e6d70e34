"""Space-time A* over (x, y, t).

Each dancer is searched against the trajectories committed before it. The
heuristic is the straight-line distance to the goal; time only enters
through the goal test and the feasibility pruning in ``SpaceTimeGrid``.
"""

import heapq
import itertools
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Assignment, DancerPath, PathPoint
from .base import SequentialPlanner, direct_dancer_path, make_dancer_path
from .grid import MOVES, DiskConstraint, GridConfig, SpaceTimeGrid


Node = Tuple[int, int, int]


@dataclass
class AStarConfig(GridConfig):
    """A* settings (see ``GridConfig``)."""
    pass


@dataclass
class SearchOutcome:
    path: Optional[List[PathPoint]]
    expansions: int
    cost: float = math.inf


def _reconstruct(parent: Dict[Node, Node], node: Node) -> List[Node]:
    nodes = [node]
    while node in parent:
        node = parent[node]
        nodes.append(node)
    nodes.reverse()
    return nodes


def astar_search(grid: SpaceTimeGrid, max_iterations: int) -> SearchOutcome:
    """Run A* on ``grid``; ``path`` is None when the search is exhausted."""
    start: Node = (0, 0, 0)
    counter = itertools.count()
    open_heap = [(grid.heuristic(0, 0), grid.heuristic(0, 0), next(counter), start)]
    g_score: Dict[Node, float] = {start: 0.0}
    parent: Dict[Node, Node] = {}
    closed = set()
    expansions = 0

    while open_heap and expansions < max_iterations:
        _, _, _, node = heapq.heappop(open_heap)
        if node in closed:
            continue
        closed.add(node)
        expansions += 1

        ix, iy, tick = node
        if grid.is_goal(ix, iy, tick):
            return SearchOutcome(grid.to_path(_reconstruct(parent, node)), expansions, g_score[node])

        g = g_score[node]
        for dx, dy in MOVES:
            nxt = grid.step(ix, iy, tick, dx, dy)
            if nxt is None or nxt in closed:
                continue
            ng = g + grid.move_cost(dx, dy)
            if ng >= g_score.get(nxt, math.inf):
                continue
            g_score[nxt] = ng
            parent[nxt] = node
            h = grid.heuristic(nxt[0], nxt[1])
            heapq.heappush(open_heap, (ng + h, h, next(counter), nxt))

    return SearchOutcome(None, expansions)


def direct_point_count(config: GridConfig) -> int:
    return max(1, int(math.ceil(config.total_counts / config.time_resolution)))


class AStarPlanner(SequentialPlanner):
    name = "astar"

    def __init__(self, config: Optional[AStarConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or AStarConfig(), logger)

    def search(self, grid: SpaceTimeGrid) -> SearchOutcome:
        return astar_search(grid, self.config.max_iterations)

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        grid = SpaceTimeGrid(assignment, self.config, placed)
        outcome = self.search(grid)
        self.iterations += outcome.expansions
        if outcome.path is not None:
            self.log.debug(
                "dancer %d: path with %d nodes after %d expansions",
                assignment.dancer_id, len(outcome.path), outcome.expansions,
            )
            self.notes[assignment.dancer_id] = f"{self.name} ({outcome.expansions} expansions)"
            if self.collides(outcome.path, placed):
                self.log.error("dancer %d: grid path comes within two radii of a placed dancer", assignment.dancer_id)
                self.unresolved.append(assignment.dancer_id)
            return make_dancer_path(assignment.dancer_id, outcome.path)
        return self.fallback(assignment, placed, outcome.expansions)

    def fallback(self, assignment: Assignment, placed: List[DancerPath], expansions: int) -> DancerPath:
        self.log.warning(
            "dancer %d: %s exhausted after %d expansions, using direct path",
            assignment.dancer_id, self.name, expansions,
        )
        self.converged = False
        dancer_path = direct_dancer_path(assignment, self.config, direct_point_count(self.config))
        if self.first_conflict(dancer_path.path, placed) is not None:
            self.unresolved.append(assignment.dancer_id)
        self.notes[assignment.dancer_id] = "direct fallback"
        return dancer_path


def low_level_search(
    assignment: Assignment,
    config: GridConfig,
    obstacles: Sequence[DancerPath],
    constraints: Sequence[DiskConstraint],
) -> SearchOutcome:
    """Single-dancer A* honouring disk constraints (used by CBS)."""
    grid = SpaceTimeGrid(assignment, config, obstacles, constraints)
    return astar_search(grid, config.max_iterations)


def plan_astar(
    assignments: Sequence[Assignment],
    config: Optional[AStarConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return AStarPlanner(config, logger).plan(assignments, already_placed).paths
