"""Discretised (x, y, t) search space for the grid planners.

Cells are anchored at the dancer's start position. Moves take a whole number
of ticks: a straight move two, a diagonal three, a wait one, so straight and
diagonal speeds stay close to the cruise speed. Committed trajectories are
sampled every half tick into an ``OccupancyTable`` and every move is checked
at those sub-samples.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import PlannerConfig
from ..geometry import EPS, distance, sample_path
from ..models import Assignment, DancerPath, PathPoint


# (dx, dy) in cells; (0, 0) is a wait
MOVES: Tuple[Tuple[int, int], ...] = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (1, -1), (-1, 1), (-1, -1),
    (0, 0),
)

STRAIGHT_TICKS = 2
DIAGONAL_TICKS = 3
WAIT_TICKS = 1

# Headroom over the average speed a dancer strictly needs
CRUISE_HEADROOM = 1.15


@dataclass
class GridConfig(PlannerConfig):
    """Settings shared by the grid planners.

    Attributes:
        grid_resolution: Cell size.
        time_resolution: Upper bound on the duration of one straight move; also
            the goal-time tolerance (arrival at or after ``total_counts - time_resolution``).
        max_iterations: Node expansion cap per search.
        wait_cost: Cost of one wait tick as a fraction of ``grid_resolution``.
    """

    grid_resolution: float = 0.5
    time_resolution: float = 0.5
    max_iterations: int = 10000
    wait_cost: float = 0.1


@dataclass(frozen=True)
class DiskConstraint:
    """Forbids ``dancer_id`` from the disk around (x, y) during [t - window, t + window]."""

    dancer_id: int
    x: float
    y: float
    t: float
    radius: float
    window: float

    def blocks(self, x: float, y: float, t: float) -> bool:
        return abs(t - self.t) <= self.window and math.hypot(x - self.x, y - self.y) < self.radius


class OccupancyTable:
    """Positions of committed dancers sampled every ``dt``."""

    def __init__(self, paths: Sequence[DancerPath], horizon: float, dt: float):
        self.dt = dt
        self.n_samples = int(math.ceil(horizon / dt - EPS)) + 1
        times = np.arange(self.n_samples, dtype=float) * dt
        if paths:
            self.positions: Optional[np.ndarray] = np.stack(
                [sample_path(p.path, times) for p in paths], axis=1
            )
        else:
            self.positions = None

    def clearance(self, x: float, y: float, k: int) -> float:
        """Distance from (x, y) to the nearest committed dancer at sample ``k``."""
        if self.positions is None:
            return math.inf
        row = self.positions[min(k, self.n_samples - 1)]
        return float(np.min(np.hypot(row[:, 0] - x, row[:, 1] - y)))


class SpaceTimeGrid:
    """Search space for one dancer.

    Nodes are ``(ix, iy, tick)`` with ``(0, 0, 0)`` the start.
    """

    def __init__(
        self,
        assignment: Assignment,
        config: GridConfig,
        obstacles: Sequence[DancerPath],
        constraints: Sequence[DiskConstraint] = (),
    ):
        self.config = config
        self.start = assignment.start_position
        self.goal = assignment.end_position
        self.res = config.grid_resolution
        total = config.total_counts

        required = assignment.distance / total if total > 0 else 0.0
        self.cruise = max(config.max_human_speed, required * CRUISE_HEADROOM)
        self.tick = min(config.time_resolution / STRAIGHT_TICKS, self.res / (STRAIGHT_TICKS * self.cruise))
        self.horizon_ticks = int(math.floor(total / self.tick + EPS))
        self.goal_tick = max(0, int(math.ceil((total - config.time_resolution) / self.tick - EPS)))

        self.goal_cx = (self.goal.x - self.start.x) / self.res
        self.goal_cy = (self.goal.y - self.start.y) / self.res
        self.ix_min = int(math.ceil(-self.start.x / self.res - EPS))
        self.ix_max = int(math.floor((config.stage_width - self.start.x) / self.res + EPS))
        self.iy_min = int(math.ceil(-self.start.y / self.res - EPS))
        self.iy_max = int(math.floor((config.stage_height - self.start.y) / self.res + EPS))

        self.separation = config.separation
        self.occupancy = OccupancyTable(obstacles, total, self.tick / 2)
        self.constraints = list(constraints)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def position(self, ix: float, iy: float) -> Tuple[float, float]:
        return self.start.x + ix * self.res, self.start.y + iy * self.res

    def time_of(self, tick: int) -> float:
        return tick * self.tick

    def in_bounds(self, ix: int, iy: int) -> bool:
        return self.ix_min <= ix <= self.ix_max and self.iy_min <= iy <= self.iy_max

    def heuristic(self, ix: int, iy: int) -> float:
        return math.hypot(ix - self.goal_cx, iy - self.goal_cy) * self.res

    def near_goal(self, ix: int, iy: int) -> bool:
        return math.hypot(ix - self.goal_cx, iy - self.goal_cy) < 1.0 - EPS

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    @staticmethod
    def move_ticks(dx: int, dy: int) -> int:
        if dx == 0 and dy == 0:
            return WAIT_TICKS
        if dx != 0 and dy != 0:
            return DIAGONAL_TICKS
        return STRAIGHT_TICKS

    def move_cost(self, dx: int, dy: int) -> float:
        if dx == 0 and dy == 0:
            return self.config.wait_cost * self.res
        if dx != 0 and dy != 0:
            return self.res * math.sqrt(2)
        return self.res

    def min_ticks_to_goal(self, ix: int, iy: int) -> int:
        """Lower bound on ticks needed to get within one cell of the goal."""
        a = max(0, int(math.ceil(abs(self.goal_cx - ix) - 1.0 - EPS)))
        b = max(0, int(math.ceil(abs(self.goal_cy - iy) - 1.0 - EPS)))
        return STRAIGHT_TICKS * max(a, b) + min(a, b)

    def _free_at(self, x: float, y: float, k: int) -> bool:
        if self.occupancy.clearance(x, y, k) < self.separation:
            return False
        if self.constraints:
            t = k * self.occupancy.dt
            for c in self.constraints:
                if c.blocks(x, y, t):
                    return False
        return True

    def point_free(self, ix: int, iy: int, tick: int) -> bool:
        x, y = self.position(ix, iy)
        return self._free_at(x, y, 2 * tick)

    def move_free(self, ix: int, iy: int, tick: int, dx: int, dy: int) -> bool:
        """Check the move at every half-tick sub-sample, endpoint included."""
        x0, y0 = self.position(ix, iy)
        ticks = self.move_ticks(dx, dy)
        subs = 2 * ticks
        for s in range(1, subs + 1):
            frac = s / subs
            x = x0 + dx * self.res * frac
            y = y0 + dy * self.res * frac
            if not self._free_at(x, y, 2 * tick + s):
                return False
        return True

    def step(self, ix: int, iy: int, tick: int, dx: int, dy: int) -> Optional[Tuple[int, int, int]]:
        """Successor node of a single move, or None if it is not allowed."""
        nt = tick + self.move_ticks(dx, dy)
        if nt > self.horizon_ticks:
            return None
        nx, ny = ix + dx, iy + dy
        if not self.in_bounds(nx, ny):
            return None
        if nt + self.min_ticks_to_goal(nx, ny) > self.horizon_ticks:
            return None
        if not self.move_free(ix, iy, tick, dx, dy):
            return None
        return nx, ny, nt

    def dwell_free(self, ix: int, iy: int, tick: int) -> bool:
        """Standing at (ix, iy) from ``tick`` until the end of the window is clear."""
        x, y = self.position(ix, iy)
        for k in range(2 * tick, self.occupancy.n_samples):
            if not self._free_at(x, y, k):
                return False
        return True

    def closing_leg_fits(self, ix: int, iy: int, tick: int) -> bool:
        """The last move from the cell onto the exact goal is no faster than cruise."""
        leg = math.hypot(ix - self.goal_cx, iy - self.goal_cy) * self.res
        return leg <= (self.config.total_counts - self.time_of(tick)) * self.cruise + EPS

    def is_goal(self, ix: int, iy: int, tick: int) -> bool:
        return (
            tick >= self.goal_tick
            and self.near_goal(ix, iy)
            and self.closing_leg_fits(ix, iy, tick)
            and self.dwell_free(ix, iy, tick)
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def to_path(self, nodes: Sequence[Tuple[int, int, int]]) -> List[PathPoint]:
        """Turn a node sequence into samples ending exactly on the goal."""
        points = []
        for ix, iy, tick in nodes:
            x, y = self.position(ix, iy)
            points.append(PathPoint(x, y, self.time_of(tick)))
        total = self.config.total_counts
        last = points[-1]
        if last.t < total - EPS:
            points.append(PathPoint(self.goal.x, self.goal.y, total))
        elif distance(last, self.goal) > EPS:
            points[-1] = PathPoint(self.goal.x, self.goal.y, last.t)
        return points
