"""Stage-depth choreography planner.

Timing comes first: dancers heading to the back of the stage get longer
windows, dancers heading to the front move quicker. Every dancer starts on a
straight line (or a passing-lane bow), then a bounded resolution loop takes
the earliest collision and changes the yielding dancer only:

- crossing conflicts (opposed headings, close chord midpoints) and conflicts
  with dancers that never move escalate the shape: bow away from the other
  dancer, grow the bow, switch to an S-curve, then wait half a count longer;
- passing conflicts adjust timing: an early conflict delays the start, a
  late one bends a straight path or ends the movement earlier.

A final pass stretches any window too short for the human speed ceiling,
sized by the fastest curve segment rather than the average speed.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ...config import PlannerConfig
from ...curves import LINEAR, bow, perpendicular
from ...geometry import exceeds_speed, find_all_collisions, position_at_time
from ...models import Assignment, Collision, DancerPath
from ..base import SequentialPlanner, is_stationary, make_dancer_path
from .base import Candidate, passing_lanes, speed_fitted


@dataclass
class ChoreographyConfig(PlannerConfig):
    """Choreography planner settings.

    Attributes:
        resolution_iterations: Cap of the conflict-resolution loop.
        fill_ratio: Share of the window the longest move takes.
        back_stage_fraction: Ends with ``y`` below this share of the stage
            height count as back stage.
        back_stage_extension: Extra window share granted to back-stage dancers.
        front_stage_cap: Largest window share of a front-stage dancer.
        min_duration: Shortest movement window.
        lane_offset: Initial bow of passing-lane dancers.
        max_bow: Largest bow before switching to an S-curve.
        s_curve_amplitude: Amplitude of the S-curve escalation.
        delay_step: Delay added per timing adjustment.
        crossing_distance: Chord midpoints closer than this mark a crossing conflict.
    """

    num_points: int = 30
    resolution_iterations: int = 50
    fill_ratio: float = 0.8
    back_stage_fraction: float = 0.4
    back_stage_extension: float = 0.3
    front_stage_cap: float = 0.9
    min_duration: float = 2.0
    lane_offset: float = 1.0
    max_bow: float = 3.0
    s_curve_amplitude: float = 1.5
    delay_step: float = 0.5
    crossing_distance: float = 3.0


class ChoreographyPlanner(SequentialPlanner):
    name = "choreography"

    def __init__(self, config: Optional[ChoreographyConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or ChoreographyConfig(), logger)
        self.by_id: Dict[int, Assignment] = {}
        self.priority: Dict[int, float] = {}
        self.plans: Dict[int, Candidate] = {}
        self.lanes: Dict[int, int] = {}

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def prepare(self, assignments: Sequence[Assignment], placed: List[DancerPath]) -> None:
        cfg = self.config
        total = cfg.total_counts
        self.by_id = {a.dancer_id: a for a in assignments}
        self.priority = {a.dancer_id: a.end_position.y / cfg.stage_height for a in assignments}
        self.lanes = passing_lanes(assignments, cfg.separation)
        self.plans = {}
        longest = max((a.distance for a in assignments), default=0.0)
        for a in assignments:
            if is_stationary(a) or longest <= 0:
                continue
            p = self.priority[a.dancer_id]
            duration = a.distance / longest * total * cfg.fill_ratio
            min_duration = max(cfg.min_duration, a.distance / cfg.max_human_speed)
            if a.end_position.y < cfg.back_stage_fraction * cfg.stage_height:
                duration = min(total, duration + (1.0 - p) * total * cfg.back_stage_extension)
            else:
                duration = min(duration, cfg.front_stage_cap * total)
            duration = min(total, max(duration, min_duration))
            shape = LINEAR
            if a.dancer_id in self.lanes:
                shape = bow(cfg.lane_offset, cfg.lane_offset, "lane")
            self.plans[a.dancer_id] = Candidate(shape, 0.0, duration, "timing")

    def placement_order(self, assignments: Sequence[Assignment]) -> List[Assignment]:
        return sorted(assignments, key=lambda a: (-self.priority.get(a.dancer_id, 0.0), a.dancer_id))

    def _build(self, dancer_id: int) -> DancerPath:
        cfg = self.config
        plan = self.plans[dancer_id]
        path = plan.build(self.by_id[dancer_id], cfg.total_counts, cfg.num_points)
        return make_dancer_path(dancer_id, path)

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        return self._build(assignment.dancer_id)

    # ------------------------------------------------------------------
    # Conflict resolution
    # ------------------------------------------------------------------

    def _yielder(self, collision: Collision) -> Optional[int]:
        movable = [d for d in (collision.dancer_a, collision.dancer_b) if d in self.plans]
        if not movable:
            return None
        return min(movable, key=lambda d: (self.priority[d], -d))

    def _is_crossing(self, a: Assignment, b: Assignment) -> bool:
        ax, ay = a.end_position.x - a.start_position.x, a.end_position.y - a.start_position.y
        bx, by = b.end_position.x - b.start_position.x, b.end_position.y - b.start_position.y
        if ax * bx + ay * by >= 0:
            return False
        ma = ((a.start_position.x + a.end_position.x) / 2, (a.start_position.y + a.end_position.y) / 2)
        mb = ((b.start_position.x + b.end_position.x) / 2, (b.start_position.y + b.end_position.y) / 2)
        return math.hypot(ma[0] - mb[0], ma[1] - mb[1]) < self.config.crossing_distance

    def _away_side(self, dancer_id: int, other: DancerPath, t: float, placed: Sequence[DancerPath]) -> int:
        """+1 if bowing left moves ``dancer_id`` away from ``other`` at time ``t``."""
        own = next(p for p in placed if p.dancer_id == dancer_id)
        a = self.by_id[dancer_id]
        px, py = perpendicular(a.start_position, a.end_position)
        mine = position_at_time(own.path, t)
        theirs = position_at_time(other.path, t)
        dot = px * (mine.x - theirs.x) + py * (mine.y - theirs.y)
        if abs(dot) < 1e-9:
            return self.lanes.get(dancer_id, 1)
        return 1 if dot > 0 else -1

    def _shift(self, plan: Candidate, delay: float) -> Candidate:
        total = self.config.total_counts
        start = min(plan.start_time + delay, total - self.config.min_duration)
        end = min(total, plan.end_time + delay)
        return Candidate(plan.shape, max(0.0, start), end, "delayed")

    def _escalate(self, plan: Candidate, away: int) -> Candidate:
        cfg = self.config
        shape = plan.shape
        if shape.label == "s_curve":
            return self._shift(plan, cfg.delay_step)
        if shape.is_linear or shape.side != away:
            o = cfg.lane_offset * away
            return Candidate(bow(o, o, "bow"), plan.start_time, plan.end_time, "bow")
        grown = shape.magnitude * 1.5
        if grown <= cfg.max_bow:
            o = grown * away
            return Candidate(bow(o, o, "bow"), plan.start_time, plan.end_time, "bow")
        a = cfg.s_curve_amplitude * away
        return Candidate(bow(a, -a, "s_curve"), plan.start_time, plan.end_time, "s_curve")

    def _adjust_timing(self, plan: Candidate, t: float, away: int) -> Candidate:
        cfg = self.config
        if t < (plan.start_time + plan.end_time) / 2:
            return self._shift(plan, cfg.delay_step)
        if plan.shape.is_linear:
            o = 0.5 * away
            return Candidate(bow(o, o, "bow"), plan.start_time, plan.end_time, "bow")
        end = max(plan.start_time + cfg.min_duration, plan.end_time - 0.3)
        return Candidate(plan.shape, plan.start_time, end, "early")

    def _enforce_speed(self, dancer_id: int) -> None:
        cfg = self.config
        plan = self.plans[dancer_id]
        fitted = speed_fitted(plan, self.by_id[dancer_id], cfg)
        if fitted != plan:
            self.plans[dancer_id] = fitted
            self.log.debug("dancer %d: window stretched to [%.2f, %.2f]", dancer_id, fitted.start_time, fitted.end_time)
        if exceeds_speed(self._build(dancer_id).path, cfg.max_human_speed):
            self.log.warning("dancer %d: no window within the horizon stays under the speed ceiling", dancer_id)
            self.converged = False

    def _sync(self, dancer_id: int, planned: List[DancerPath], placed: List[DancerPath]) -> None:
        new_path = self._build(dancer_id)
        self.replace_placed(placed, new_path)
        self.replace_placed(planned, new_path)
        self.notes[dancer_id] = self.plans[dancer_id].shape.describe()

    def _collisions(self, placed: Sequence[DancerPath], margin: float) -> List[Collision]:
        cfg = self.config
        found = find_all_collisions(placed, cfg.collision_radius, cfg.total_counts, cfg.check_step, margin)
        return [c for c in found if self._yielder(c) is not None]

    def finish(self, planned: List[DancerPath], placed: List[DancerPath]) -> List[DancerPath]:
        cfg = self.config
        for dancer_id in self.plans:
            self.notes[dancer_id] = self.plans[dancer_id].shape.describe()

        rounds = 0
        while rounds < cfg.resolution_iterations:
            collisions = self._collisions(placed, cfg.safety_margin)
            if not collisions:
                break
            rounds += 1
            collision = collisions[0]
            yielder = self._yielder(collision)
            other_id = collision.dancer_b if collision.dancer_a == yielder else collision.dancer_a
            other = next(p for p in placed if p.dancer_id == other_id)
            away = self._away_side(yielder, other, collision.time, placed)
            plan = self.plans[yielder]
            # dancers without a plan are static obstacles
            if other_id not in self.plans or self._is_crossing(self.by_id[yielder], self.by_id[other_id]):
                self.plans[yielder] = self._escalate(plan, away)
            else:
                self.plans[yielder] = self._adjust_timing(plan, collision.time, away)
            self.log.debug(
                "round %d: dancer %d yields to %d at t=%.2f -> %s",
                rounds, yielder, other_id, collision.time, self.plans[yielder].describe(),
            )
            self._sync(yielder, planned, placed)
        else:
            if self._collisions(placed, cfg.safety_margin):
                self.log.warning("choreography: resolution loop hit its cap of %d rounds", cfg.resolution_iterations)
                self.converged = False

        for dancer_id in self.plans:
            before = self.plans[dancer_id]
            self._enforce_speed(dancer_id)
            if self.plans[dancer_id] != before:
                self._sync(dancer_id, planned, placed)

        self.iterations = rounds
        remaining = self._collisions(placed, 0.0)
        if remaining:
            ids = sorted({d for c in remaining for d in (c.dancer_a, c.dancer_b) if d in self.by_id})
            self.unresolved.extend(ids)
            self.log.error("choreography: %d collisions left after %d rounds", len(remaining), rounds)
        else:
            self.log.info("choreography: all collisions resolved (%d rounds)", rounds)
        return planned


def plan_choreography(
    assignments: Sequence[Assignment],
    config: Optional[ChoreographyConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return ChoreographyPlanner(config, logger).plan(assignments, already_placed).paths
