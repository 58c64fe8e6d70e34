"""Flocking simulation.

Steering is a weighted sum of the classic rules computed against the
committed dancers around the moving one:

- separation: inverse-distance push away from neighbours inside
  ``separation_radius``;
- alignment: average heading of moving neighbours;
- cohesion: pull toward the neighbours' centroid;
- goal seeking: heading toward the current target;
- avoidance: push away from the predicted closest-approach point of any
  neighbour expected to come within ``avoid_radius`` during ``lookahead``.

The change of velocity per step is capped at ``max_force`` and the velocity
itself at ``max_speed``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..models import Assignment, DancerPath
from .steering import SteeringConfig, SteeringPlanner, left_of, norm, normalize


@dataclass
class BoidsConfig(SteeringConfig):
    """Boids settings.

    Attributes:
        neighbor_radius: Neighbours used for alignment, cohesion and avoidance.
        separation_radius: Neighbours pushed away from.
        max_force: Largest velocity change per step.
        avoid_radius: Predicted clearance below which avoidance engages.
        lookahead: Prediction window for avoidance (counts).
    """

    time_step: float = 0.2
    neighbor_radius: float = 3.0
    separation_radius: float = 1.5
    max_force: float = 0.5
    separation_weight: float = 2.0
    alignment_weight: float = 0.5
    cohesion_weight: float = 0.3
    goal_weight: float = 2.0
    avoidance_weight: float = 3.0
    avoid_radius: float = 1.3
    lookahead: float = 3.0


class BoidsPlanner(SteeringPlanner):
    name = "boids"

    def __init__(self, config: Optional[BoidsConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or BoidsConfig(), logger)

    def apply_separation(self, position: np.ndarray, nearby: np.ndarray) -> np.ndarray:
        if len(nearby) == 0:
            return np.zeros(2)
        diff = position[None, :] - nearby
        distances = np.hypot(diff[:, 0], diff[:, 1]) + 1e-8
        force = np.sum(diff / (distances ** 2)[:, None], axis=0)
        return normalize(force)

    def apply_alignment(self, velocities: np.ndarray) -> np.ndarray:
        moving = velocities[np.hypot(velocities[:, 0], velocities[:, 1]) > 0.05]
        if len(moving) == 0:
            return np.zeros(2)
        return normalize(np.mean(moving, axis=0))

    def apply_cohesion(self, position: np.ndarray, nearby: np.ndarray) -> np.ndarray:
        if len(nearby) == 0:
            return np.zeros(2)
        return normalize(np.mean(nearby, axis=0) - position)

    def _sideways(self, position: np.ndarray, heading: np.ndarray) -> np.ndarray:
        """Unit vector beside ``heading``, on the side with more stage room."""
        cfg = self.config
        left = left_of(normalize(heading))
        side_point = position + left
        if 0.0 <= side_point[0] <= cfg.stage_width and 0.0 <= side_point[1] <= cfg.stage_height:
            return left
        return -left

    def apply_avoidance(
        self,
        position: np.ndarray,
        preferred: np.ndarray,
        nearby: np.ndarray,
        velocities: np.ndarray,
    ) -> np.ndarray:
        cfg = self.config
        force = np.zeros(2)
        for q, vq in zip(nearby, velocities):
            d0 = position - q
            w = preferred - vq
            ww = float(np.dot(w, w))
            if ww < 1e-9:
                continue
            tau = float(np.clip(-np.dot(d0, w) / ww, 0.0, cfg.lookahead))
            if tau <= 0.0:
                continue
            closest = d0 + w * tau
            if norm(closest) >= cfg.avoid_radius:
                continue
            away = normalize(closest)
            if norm(away) == 0.0:
                away = self._sideways(position, preferred)
            force += away * (1.0 - tau / cfg.lookahead)
        return normalize(force)

    def steer(self, k, position, velocity, preferred, target, neighbors):
        cfg = self.config
        positions, velocities = neighbors
        speed = norm(preferred)
        goal = normalize(target - position)
        steering = goal * cfg.goal_weight
        if len(positions):
            gaps = np.hypot(positions[:, 0] - position[0], positions[:, 1] - position[1])
            near = gaps < cfg.neighbor_radius
            close = gaps < cfg.separation_radius
            steering = (
                steering
                + self.apply_separation(position, positions[close]) * cfg.separation_weight
                + self.apply_alignment(velocities[near]) * cfg.alignment_weight
                + self.apply_cohesion(position, positions[near]) * cfg.cohesion_weight
                + self.apply_avoidance(position, preferred, positions[near], velocities[near]) * cfg.avoidance_weight
            )
        desired = normalize(steering) * speed
        change = desired - velocity
        magnitude = norm(change)
        if magnitude > cfg.max_force:
            change = change / magnitude * cfg.max_force
        new_velocity = velocity + change
        if norm(new_velocity) > cfg.max_speed:
            new_velocity = normalize(new_velocity) * cfg.max_speed
        return new_velocity


def plan_boids(
    assignments: Sequence[Assignment],
    config: Optional[BoidsConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return BoidsPlanner(config, logger).plan(assignments, already_placed).paths
