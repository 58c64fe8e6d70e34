"""Simple pathfinder: straight lines first, then timing and curve repair.

Each dancer starts from a straight line over a window derived from its
distance. If that collides with a committed dancer, repair phases are tried
in order (faster, delayed, delayed and faster, curved) and the first
collision-free candidate within the human-speed ceiling is kept.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from ..config import PlacementOrder, PlannerConfig
from ..curves import LINEAR, CurveShape, arc
from ..geometry import (
    SampledPaths,
    exceeds_speed,
    fit_duration_to_speed,
    point_in_stage,
)
from ..models import Assignment, DancerPath, PathPoint
from .base import SequentialPlanner, make_dancer_path, order_assignments


FASTER_FACTORS = (0.6, 0.5, 0.4, 0.3)
DELAYS = (0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0)
DELAY_FASTER_DELAYS = (1.0, 2.0, 3.0)
DELAY_FASTER_FACTORS = (0.5, 0.4, 0.3)
CURVE_OFFSETS = (0.2, 0.35, 0.5, 0.8, 1.2, 1.6, 2.2, 2.8, 3.5)


class TimingMode(str, Enum):
    PROPORTIONAL = "proportional"
    SYNCHRONIZED = "synchronized"
    STAGGERED = "staggered"


@dataclass
class SimpleConfig(PlannerConfig):
    """Simple pathfinder settings.

    Attributes:
        sort_strategy: Placement order.
        timing_mode: How each dancer's window is derived.
        stagger_delay: Start offset between consecutive dancers when staggered.
        speed_multiplier: >1 shortens windows, <1 lengthens them.
        force_curve: Start every mover on a gentle alternating arc.
        max_curve_offset: Largest arc offset tried during repair.
        min_duration: Shortest proportional window.
    """

    sort_strategy: PlacementOrder = PlacementOrder.LONGEST_FIRST
    timing_mode: TimingMode = TimingMode.PROPORTIONAL
    stagger_delay: float = 0.5
    speed_multiplier: float = 1.0
    force_curve: bool = False
    max_curve_offset: float = 3.0
    min_duration: float = 2.0


Window = Tuple[float, float]


class SimplePathfinder(SequentialPlanner):
    name = "simple"

    def __init__(self, config: Optional[SimpleConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or SimpleConfig(), logger)
        self._base_speed = 1.0
        self._rank = {}

    def prepare(self, assignments: Sequence[Assignment], placed: List[DancerPath]) -> None:
        longest = max((a.distance for a in assignments), default=0.0)
        self._base_speed = longest / self.config.total_counts if longest > 0 else 1.0
        ordered = self.placement_order(assignments)
        self._rank = {a.dancer_id: i for i, a in enumerate(ordered)}

    def placement_order(self, assignments: Sequence[Assignment]) -> List[Assignment]:
        return order_assignments(assignments, self.config.sort_strategy, self.config)

    def window(self, assignment: Assignment) -> Window:
        """Base (start, end) window for a dancer."""
        cfg = self.config
        total = cfg.total_counts
        if cfg.timing_mode == TimingMode.SYNCHRONIZED:
            duration = total
        else:
            duration = min(total, max(cfg.min_duration, assignment.distance / self._base_speed))
        if cfg.speed_multiplier > 0:
            duration = duration / cfg.speed_multiplier
        duration = max(1.0, min(duration, total))

        start = 0.0
        if cfg.timing_mode == TimingMode.STAGGERED:
            start = min(self._rank.get(assignment.dancer_id, 0) * cfg.stagger_delay, total - duration)
            start = max(0.0, start)
        return fit_duration_to_speed(assignment.distance, start, start + duration, cfg.max_human_speed, total)

    def base_shape(self, assignment: Assignment) -> CurveShape:
        if not self.config.force_curve:
            return LINEAR
        sign = 1 if self._rank.get(assignment.dancer_id, 0) % 2 == 0 else -1
        return arc(sign * 0.25 * self.config.max_curve_offset)

    def repair_candidates(
        self, assignment: Assignment, window: Window
    ) -> Iterator[Tuple[str, Window, CurveShape]]:
        """Repair candidates in trial order."""
        cfg = self.config
        total = cfg.total_counts
        start, end = window
        duration = end - start
        shape = self.base_shape(assignment)

        for factor in FASTER_FACTORS:
            new_end = start + duration * factor
            if new_end - start >= 1.0:
                yield f"faster x{factor}", (start, new_end), shape

        for delay in DELAYS:
            new_start = start + delay
            new_end = min(new_start + duration, total)
            if new_end - new_start >= 1.0:
                yield f"delay {delay}", (new_start, new_end), shape

        for delay in DELAY_FASTER_DELAYS:
            for factor in DELAY_FASTER_FACTORS:
                new_start = start + delay
                new_end = min(new_start + duration * factor, total)
                if new_end - new_start >= 1.0:
                    yield f"delay {delay} faster x{factor}", (new_start, new_end), shape

        curves = []
        for magnitude in CURVE_OFFSETS:
            if magnitude > cfg.max_curve_offset + 1e-9:
                break
            for sign in (1, -1):
                curved = arc(sign * magnitude)
                points = curved.build(assignment.start_position, assignment.end_position, start, end, cfg.num_points)
                on_stage = all(point_in_stage(p, cfg.stage_width, cfg.stage_height) for p in points)
                curves.append((0 if on_stage else 1, magnitude, curved))
        curves.sort(key=lambda item: (item[0], item[1]))
        for _, magnitude, curved in curves:
            yield f"curve {curved.offset1:+.2f}", window, curved

    def build(self, assignment: Assignment, window: Window, shape: CurveShape) -> List[PathPoint]:
        return shape.build(
            assignment.start_position, assignment.end_position, window[0], window[1], self.config.num_points
        )

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        cfg = self.config
        table = SampledPaths(placed, cfg.total_counts, cfg.check_step)
        window = self.window(assignment)
        base = self.build(assignment, window, self.base_shape(assignment))
        if table.first_hit(base, cfg.separation) is None:
            self.notes[assignment.dancer_id] = self.base_shape(assignment).describe()
            return make_dancer_path(assignment.dancer_id, base)

        for label, new_window, shape in self.repair_candidates(assignment, window):
            points = self.build(assignment, new_window, shape)
            if exceeds_speed(points, cfg.max_human_speed):
                continue
            if table.first_hit(points, cfg.separation) is None:
                self.log.debug("dancer %d repaired with %s", assignment.dancer_id, label)
                self.notes[assignment.dancer_id] = label
                return make_dancer_path(assignment.dancer_id, points)

        self.log.error("dancer %d: no collision-free repair found, keeping base path", assignment.dancer_id)
        self.unresolved.append(assignment.dancer_id)
        self.notes[assignment.dancer_id] = "unresolved"
        return make_dancer_path(assignment.dancer_id, base)


def plan_simple(
    assignments: Sequence[Assignment],
    config: Optional[SimpleConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return SimplePathfinder(config, logger).plan(assignments, already_placed).paths
