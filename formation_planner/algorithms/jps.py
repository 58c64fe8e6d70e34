"""Jump Point Search on the space-time grid.

Straight and diagonal moves are repeated ("jumped") until the dancer reaches
the goal, becomes aligned with it, meets a forced neighbour (a cell beside
the line of travel blocked by a committed dancer while the cell diagonally
past it is free), or has jumped ``max_jump_steps`` moves. Only those jump
points, plus single wait steps, enter the open list. When jumping finds
nothing, the dancer is searched again with plain A*.
"""

import heapq
import itertools
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Assignment, DancerPath
from .astar import AStarPlanner, SearchOutcome, astar_search
from .grid import DIAGONAL_TICKS, GridConfig, SpaceTimeGrid


Node = Tuple[int, int, int]
Direction = Tuple[int, int]

ALL_DIRECTIONS: Tuple[Direction, ...] = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (1, -1), (-1, 1), (-1, -1),
)

ALL_DIRECTIONS_CCW: Tuple[Direction, ...] = (
    (1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1),
)


@dataclass
class JPSConfig(GridConfig):
    """JPS settings.

    Attributes:
        max_jump_steps: Longest jump before a jump point is forced.
        fallback_to_astar: Retry with plain A* when jumping is exhausted.
    """

    max_jump_steps: int = 8
    fallback_to_astar: bool = True


def _sign(v: float) -> int:
    if v > 0.5:
        return 1
    if v < -0.5:
        return -1
    return 0


class JumpSearch:
    """One JPS query over a ``SpaceTimeGrid``."""

    def __init__(self, grid: SpaceTimeGrid, max_jump_steps: int):
        self.grid = grid
        self.max_jump_steps = max(1, max_jump_steps)
        self._steps: Dict[Tuple[int, int, int, int, int], Optional[Node]] = {}

    def _step(self, ix: int, iy: int, tick: int, dx: int, dy: int) -> Optional[Node]:
        key = (ix, iy, tick, dx, dy)
        if key not in self._steps:
            self._steps[key] = self.grid.step(ix, iy, tick, dx, dy)
        return self._steps[key]

    def _blocked(self, ix: int, iy: int, tick: int) -> bool:
        grid = self.grid
        if not grid.in_bounds(ix, iy) or tick > grid.horizon_ticks:
            return False
        return not grid.point_free(ix, iy, tick)

    def _open(self, ix: int, iy: int, tick: int) -> bool:
        grid = self.grid
        return grid.in_bounds(ix, iy) and tick <= grid.horizon_ticks and grid.point_free(ix, iy, tick)

    def forced(self, ix: int, iy: int, tick: int, dx: int, dy: int) -> List[Direction]:
        """Directions forced open at (ix, iy) when arriving with (dx, dy)."""
        ahead = tick + DIAGONAL_TICKS
        found = []
        if dx != 0 and dy != 0:
            if self._blocked(ix - dx, iy, tick) and self._open(ix - dx, iy + dy, ahead):
                found.append((-dx, dy))
            if self._blocked(ix, iy - dy, tick) and self._open(ix + dx, iy - dy, ahead):
                found.append((dx, -dy))
        elif dx != 0:
            for side in (1, -1):
                if self._blocked(ix, iy + side, tick) and self._open(ix + dx, iy + side, ahead):
                    found.append((dx, side))
        else:
            for side in (1, -1):
                if self._blocked(ix + side, iy, tick) and self._open(ix + side, iy + dy, ahead):
                    found.append((side, dy))
        return found

    def _aligned(self, ix: int, iy: int, dx: int, dy: int) -> bool:
        grid = self.grid
        on_x = abs(ix - grid.goal_cx) < 0.5
        on_y = abs(iy - grid.goal_cy) < 0.5
        if dx != 0 and dy != 0:
            return on_x or on_y
        if dx != 0:
            return on_x
        return on_y

    def jump(self, node: Node, dx: int, dy: int, depth: int = 0) -> Optional[Tuple[Node, float]]:
        """Follow (dx, dy) from ``node``; returns (jump point, cost) or None."""
        grid = self.grid
        ix, iy, tick = node
        cost = 0.0
        for steps in range(1, self.max_jump_steps + 1):
            nxt = self._step(ix, iy, tick, dx, dy)
            if nxt is None:
                # blocked part-way: the last reachable cell is a jump point
                if steps > 1 and depth == 0:
                    return (ix, iy, tick), cost
                return None
            ix, iy, tick = nxt
            cost += grid.move_cost(dx, dy)
            if grid.near_goal(ix, iy):
                return nxt, cost
            if self.forced(ix, iy, tick, dx, dy):
                return nxt, cost
            if dx != 0 and dy != 0 and depth == 0:
                if self.jump(nxt, dx, 0, depth + 1) is not None or self.jump(nxt, 0, dy, depth + 1) is not None:
                    return nxt, cost
            if self._aligned(ix, iy, dx, dy):
                return nxt, cost
        return (ix, iy, tick), cost

    def successor_directions(self, node: Node, arrived: Optional[Direction]) -> List[Direction]:
        if arrived is None:
            return list(ALL_DIRECTIONS)
        dx, dy = arrived
        ix, iy, tick = node
        dirs: List[Direction] = []
        if dx != 0 and dy != 0:
            dirs.extend([(dx, 0), (0, dy), (dx, dy)])
        else:
            dirs.append((dx, dy))
        dirs.extend(self.forced(ix, iy, tick, dx, dy))
        toward = (_sign(self.grid.goal_cx - ix), _sign(self.grid.goal_cy - iy))
        if toward != (0, 0):
            dirs.append(toward)
            # the two headings 45 degrees either side of the goal direction
            k = ALL_DIRECTIONS_CCW.index(toward)
            dirs.append(ALL_DIRECTIONS_CCW[(k + 1) % 8])
            dirs.append(ALL_DIRECTIONS_CCW[(k - 1) % 8])
        unique = []
        for d in dirs:
            if d not in unique:
                unique.append(d)
        return unique

    def run(self, max_iterations: int) -> SearchOutcome:
        grid = self.grid
        start: Node = (0, 0, 0)
        counter = itertools.count()
        open_heap = [(grid.heuristic(0, 0), grid.heuristic(0, 0), next(counter), start)]
        g_score: Dict[Node, float] = {start: 0.0}
        parent: Dict[Node, Node] = {}
        arrived: Dict[Node, Optional[Direction]] = {start: None}
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
                nodes = [node]
                while nodes[-1] in parent:
                    nodes.append(parent[nodes[-1]])
                nodes.reverse()
                return SearchOutcome(grid.to_path(nodes), expansions, g_score[node])

            g = g_score[node]
            successors: List[Tuple[Node, float, Optional[Direction]]] = []
            for dx, dy in self.successor_directions(node, arrived.get(node)):
                result = self.jump(node, dx, dy)
                if result is not None:
                    successors.append((result[0], result[1], (dx, dy)))
            wait = grid.step(ix, iy, tick, 0, 0)
            if wait is not None:
                successors.append((wait, grid.move_cost(0, 0), None))

            for nxt, step_cost, direction in successors:
                if nxt in closed:
                    continue
                ng = g + step_cost
                if ng >= g_score.get(nxt, math.inf):
                    continue
                g_score[nxt] = ng
                parent[nxt] = node
                arrived[nxt] = direction
                h = grid.heuristic(nxt[0], nxt[1])
                heapq.heappush(open_heap, (ng + h, h, next(counter), nxt))

        return SearchOutcome(None, expansions)


def jps_search(grid: SpaceTimeGrid, max_iterations: int, max_jump_steps: int = 8) -> SearchOutcome:
    return JumpSearch(grid, max_jump_steps).run(max_iterations)


class JPSPlanner(AStarPlanner):
    name = "jps"

    def __init__(self, config: Optional[JPSConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or JPSConfig(), logger)

    def search(self, grid: SpaceTimeGrid) -> SearchOutcome:
        outcome = jps_search(grid, self.config.max_iterations, self.config.max_jump_steps)
        if outcome.path is not None or not self.config.fallback_to_astar:
            return outcome
        self.log.warning(
            "jump search exhausted after %d expansions, retrying with plain A*", outcome.expansions
        )
        retry = astar_search(grid, self.config.max_iterations)
        retry.expansions += outcome.expansions
        return retry


def plan_jps(
    assignments: Sequence[Assignment],
    config: Optional[JPSConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return JPSPlanner(config, logger).plan(assignments, already_placed).paths
