"""Time-stepped steering simulation shared by RVO, Boids and potential fields.

A dancer is integrated from its start to its goal with a fixed time step,
reacting to the committed dancers' known trajectories. The preferred speed is
the remaining distance over the remaining time, so an unobstructed dancer
arrives at the end of the window.

After each simulation the trajectory is checked with the collision kernel.
If it breaks separation, the dancer is simulated again through a detour
waypoint beside the chord midpoint (in-stage side first, growing offsets).
When every attempt fails, the best-separated one is kept and logged.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import PlannerConfig
from ..curves import perpendicular
from ..geometry import EPS, SPEED_TOLERANCE, SampledPaths, max_segment_speed, point_in_stage, sample_path
from ..models import Assignment, DancerPath, PathPoint, Position
from .base import SequentialPlanner, make_dancer_path


def norm(a: np.ndarray) -> float:
    return float(np.linalg.norm(a))


def normalize(a: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    n = norm(a)
    if n < eps:
        return np.zeros_like(a)
    return a / n


def cross2(a: np.ndarray, b: np.ndarray) -> float:
    return float(a[0] * b[1] - a[1] * b[0])


def left_of(v: np.ndarray) -> np.ndarray:
    return np.array([-v[1], v[0]])


@dataclass
class SteeringConfig(PlannerConfig):
    """Settings shared by the steering simulations.

    Attributes:
        time_step: Integration step in counts.
        max_speed: Speed cap in units per count.
        arrival_tolerance: Distance at which a dancer snaps onto its goal.
        waypoint_radius: Distance at which a detour waypoint counts as passed.
        detour_offsets: Lateral offsets of the detour waypoints, tried in order.
    """

    time_step: float = 0.1
    max_speed: float = 1.5
    arrival_tolerance: float = 0.05
    waypoint_radius: float = 0.5
    detour_offsets: Tuple[float, ...] = (1.5, 2.5, 3.5)


class NeighborTable:
    """Positions and velocities of committed dancers at every simulation step."""

    def __init__(self, paths: Sequence[DancerPath], n_steps: int, dt: float):
        self.count = len(paths)
        times = np.arange(n_steps + 2, dtype=float) * dt
        if paths:
            positions = np.stack([sample_path(p.path, times) for p in paths], axis=1)
        else:
            positions = np.zeros((n_steps + 2, 0, 2))
        self.positions = positions[:-1]
        self.velocities = (positions[1:] - positions[:-1]) / dt

    def at(self, k: int) -> Tuple[np.ndarray, np.ndarray]:
        k = min(k, len(self.positions) - 1)
        return self.positions[k], self.velocities[k]


class SteeringPlanner(SequentialPlanner):
    """Base class; subclasses implement ``steer``."""

    name = "steering"

    def steer(
        self,
        k: int,
        position: np.ndarray,
        velocity: np.ndarray,
        preferred: np.ndarray,
        target: np.ndarray,
        neighbors: Tuple[np.ndarray, np.ndarray],
    ) -> np.ndarray:
        """New velocity for step ``k``."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def n_steps(self) -> int:
        return max(1, int(round(self.config.total_counts / self.config.time_step)))

    def clamp(self, p: np.ndarray) -> np.ndarray:
        cfg = self.config
        return np.array([min(max(p[0], 0.0), cfg.stage_width), min(max(p[1], 0.0), cfg.stage_height)])

    def simulate(
        self,
        assignment: Assignment,
        table: NeighborTable,
        waypoint: Optional[Position] = None,
    ) -> List[PathPoint]:
        cfg = self.config
        dt = cfg.time_step
        steps = self.n_steps()
        total = cfg.total_counts
        goal = np.array([assignment.end_position.x, assignment.end_position.y])
        p = np.array([assignment.start_position.x, assignment.start_position.y])
        v = np.zeros(2)
        targets = [goal] if waypoint is None else [np.array([waypoint.x, waypoint.y]), goal]
        points = [PathPoint(float(p[0]), float(p[1]), 0.0)]

        for k in range(steps):
            t = k * dt
            if len(targets) > 1 and norm(targets[0] - p) < cfg.waypoint_radius:
                targets.pop(0)
            target = targets[0]
            remaining = norm(target - p) + (norm(goal - target) if len(targets) > 1 else 0.0)
            speed = min(cfg.max_speed, remaining / max(total - t, dt))
            preferred = normalize(target - p) * speed

            v = self.steer(k, p, v, preferred, target, table.at(k))
            speed_now = norm(v)
            if speed_now > cfg.max_speed:
                v = v / speed_now * cfg.max_speed
            new_p = self.clamp(p + v * dt)
            v = (new_p - p) / dt
            prev, p = p, new_p

            t_next = min(total, (k + 1) * dt)
            # snapping onto the goal must not outrun the speed cap
            if (
                len(targets) == 1
                and norm(goal - p) < cfg.arrival_tolerance
                and norm(goal - prev) <= cfg.max_speed * dt
            ):
                points.append(PathPoint(float(goal[0]), float(goal[1]), t_next))
                return points
            points.append(PathPoint(float(p[0]), float(p[1]), t_next))

        last = points[-1]
        gap = math.hypot(goal[0] - last.x, goal[1] - last.y)
        if gap > EPS:
            if gap > cfg.max_speed * dt:
                self.log.debug("dancer %d snapped %.2f onto its goal", assignment.dancer_id, gap)
            points[-1] = PathPoint(float(goal[0]), float(goal[1]), last.t)
        return points

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    def detour_waypoints(self, assignment: Assignment) -> List[Position]:
        """Detour waypoints beside the chord midpoint, in-stage ones first."""
        cfg = self.config
        s, e = assignment.start_position, assignment.end_position
        mx, my = (s.x + e.x) / 2, (s.y + e.y) / 2
        px, py = perpendicular(s, e)
        ranked = []
        for offset in cfg.detour_offsets:
            for sign in (1, -1):
                w = Position(mx + px * sign * offset, my + py * sign * offset)
                outside = 0 if point_in_stage(w, cfg.stage_width, cfg.stage_height) else 1
                ranked.append((outside, offset, w))
        ranked.sort(key=lambda item: (item[0], item[1]))
        waypoints = []
        for _, _, w in ranked:
            clamped = Position(min(max(w.x, 0.0), cfg.stage_width), min(max(w.y, 0.0), cfg.stage_height))
            if clamped not in waypoints:
                waypoints.append(clamped)
        return waypoints

    def constant_speed(self, points: List[PathPoint]) -> List[PathPoint]:
        """The simulated route replayed at constant speed over the whole horizon."""
        kept = [points[0]]
        for p in points[1:]:
            if math.hypot(p.x - kept[-1].x, p.y - kept[-1].y) > EPS:
                kept.append(p)
        xy = np.array([[p.x, p.y] for p in kept])
        if len(kept) < 2:
            return kept
        arc = np.concatenate([[0.0], np.cumsum(np.hypot(*np.diff(xy, axis=0).T))])
        times = arc / arc[-1] * self.config.total_counts
        return [PathPoint(float(x), float(y), float(t)) for (x, y), t in zip(xy, times)]

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        cfg = self.config
        table = NeighborTable(placed, self.n_steps(), cfg.time_step)
        checker = SampledPaths(placed, cfg.total_counts, cfg.check_step)

        best: Optional[Tuple[Tuple[bool, float, float], List[PathPoint]]] = None
        routes: List[List[PathPoint]] = []

        def accepts(points: List[PathPoint]) -> bool:
            nonlocal best
            gap = checker.min_gap(points)
            peak = max_segment_speed(points)
            if gap >= cfg.separation and peak <= cfg.max_human_speed + SPEED_TOLERANCE:
                return True
            # collision-free first, then the smallest speed overshoot, then the widest gap
            rank = (gap < 2 * cfg.collision_radius, max(0.0, peak - cfg.max_human_speed), -gap)
            if best is None or rank < best[0]:
                best = (rank, points)
            return False

        attempts: List[Optional[Position]] = [None]
        attempts.extend(self.detour_waypoints(assignment))
        for attempt, waypoint in enumerate(attempts):
            points = self.simulate(assignment, table, waypoint)
            self.iterations += 1
            if accepts(points):
                if waypoint is not None:
                    self.log.debug(
                        "dancer %d cleared via waypoint (%.2f, %.2f)", assignment.dancer_id, waypoint.x, waypoint.y
                    )
                self.notes[assignment.dancer_id] = "direct" if waypoint is None else f"detour #{attempt}"
                return make_dancer_path(assignment.dancer_id, points)
            routes.append(points)

        # every run broke separation or the speed ceiling: replay the routes at constant speed
        for attempt, points in enumerate(routes):
            retimed = self.constant_speed(points)
            if accepts(retimed):
                self.log.debug("dancer %d: route #%d retimed to constant speed", assignment.dancer_id, attempt)
                self.notes[assignment.dancer_id] = f"retimed #{attempt}"
                return make_dancer_path(assignment.dancer_id, retimed)

        (collides, overshoot, neg_gap), best_points = best
        if collides:
            self.log.error(
                "dancer %d: no collision-free simulation (closest approach %.2f)", assignment.dancer_id, -neg_gap
            )
            self.unresolved.append(assignment.dancer_id)
        if overshoot > SPEED_TOLERANCE:
            self.log.warning(
                "dancer %d: every simulation exceeds the speed ceiling (peak %.2f > %.2f)",
                assignment.dancer_id, cfg.max_human_speed + overshoot, cfg.max_human_speed,
            )
            self.converged = False
        self.notes[assignment.dancer_id] = "best effort"
        return make_dancer_path(assignment.dancer_id, best_points)
