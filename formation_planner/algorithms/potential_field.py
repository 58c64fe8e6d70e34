"""Potential-field simulation.

The dancer descends ``U = U_att + sum(U_rep)``:

- ``U_att`` is quadratic within ``attractive_threshold`` of the target and
  conic beyond it, so the pull never exceeds ``attractive_gain * attractive_threshold``;
- ``U_rep = 0.5 * k * (1/d - 1/range)**2`` for every committed dancer closer
  than ``repulsive_range`` at the current time, 0 otherwise.

A tangential ("vortex") term proportional to each repulsion lets the dancer
slide around a neighbour instead of stalling in front of it. The step length
follows the schedule speed, and the base class snaps the dancer onto its goal
once within ``arrival_tolerance``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..models import Assignment, DancerPath
from .steering import SteeringConfig, SteeringPlanner, left_of, norm, normalize


@dataclass
class PotentialFieldConfig(SteeringConfig):
    """Potential-field settings.

    Attributes:
        attractive_gain: Gain of the attractive potential.
        attractive_threshold: Distance where the attraction turns conic.
        repulsive_gain: ``k`` of the repulsive potential.
        repulsive_range: Influence range of each neighbour.
        vortex_gain: Tangential share of the repulsion.
        stall_force: Net force below which the dancer is nudged sideways.
    """

    arrival_tolerance: float = 0.1
    attractive_gain: float = 1.0
    attractive_threshold: float = 1.0
    repulsive_gain: float = 6.0
    repulsive_range: float = 2.5
    vortex_gain: float = 1.5
    stall_force: float = 0.01


class PotentialFieldPlanner(SteeringPlanner):
    name = "potential_field"

    def __init__(self, config: Optional[PotentialFieldConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or PotentialFieldConfig(), logger)

    def attractive_force(self, position: np.ndarray, target: np.ndarray) -> np.ndarray:
        cfg = self.config
        diff = target - position
        d = norm(diff)
        if d <= cfg.attractive_threshold:
            return cfg.attractive_gain * diff
        return cfg.attractive_gain * cfg.attractive_threshold * diff / d

    def _room(self, p: np.ndarray) -> float:
        cfg = self.config
        return min(p[0], cfg.stage_width - p[0], p[1], cfg.stage_height - p[1])

    def tangent(self, position: np.ndarray, away: np.ndarray, heading: np.ndarray) -> np.ndarray:
        """Direction perpendicular to ``away`` that keeps making progress."""
        t1 = left_of(away)
        t2 = -t1
        p1, p2 = float(np.dot(t1, heading)), float(np.dot(t2, heading))
        if abs(p1 - p2) > 1e-6:
            return t1 if p1 > p2 else t2
        return t1 if self._room(position + t1) >= self._room(position + t2) else t2

    def repulsive_force(self, position: np.ndarray, heading: np.ndarray, neighbors: np.ndarray) -> np.ndarray:
        cfg = self.config
        force = np.zeros(2)
        for q in neighbors:
            delta = position - q
            d = norm(delta)
            if d >= cfg.repulsive_range:
                continue
            if d < 1e-6:
                away = left_of(heading) if norm(heading) > 0 else np.array([1.0, 0.0])
                d = 1e-6
            else:
                away = delta / d
            magnitude = cfg.repulsive_gain * (1.0 / d - 1.0 / cfg.repulsive_range) / (d * d)
            force += away * magnitude
            force += self.tangent(position, away, heading) * magnitude * cfg.vortex_gain
        return force

    def steer(self, k, position, velocity, preferred, target, neighbors):
        cfg = self.config
        positions, _ = neighbors
        heading = normalize(target - position)
        force = self.attractive_force(position, target)
        if len(positions):
            force = force + self.repulsive_force(position, heading, positions)
        speed = norm(preferred)
        if norm(force) < cfg.stall_force:
            if speed == 0.0:
                return np.zeros(2)
            return left_of(heading) * speed
        return normalize(force) * speed


def plan_potential_field(
    assignments: Sequence[Assignment],
    config: Optional[PotentialFieldConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return PotentialFieldPlanner(config, logger).plan(assignments, already_placed).paths
