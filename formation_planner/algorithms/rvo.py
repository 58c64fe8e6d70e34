"""Velocity-obstacle simulation.

At every step the dancer keeps its preferred velocity unless that velocity
lies inside the truncated velocity obstacle of a nearby committed dancer:
the set of velocities whose straight-line relative motion brings the pair
within the combined radius before ``time_horizon``. Otherwise candidate
velocities on rings around the preferred one are sampled and the closest
safe one wins. Committed dancers do not react, so the moving dancer takes the
whole avoidance responsibility.

Head-on encounters (a neighbour ahead moving against the preferred heading)
enlarge the obstacle, slow the preferred velocity and double the sampling.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..models import Assignment, DancerPath
from .steering import SteeringConfig, SteeringPlanner, norm, normalize


@dataclass
class RVOConfig(SteeringConfig):
    """RVO settings.

    Attributes:
        time_horizon: Look-ahead (counts) of the velocity obstacles.
        neighbor_dist: Neighbours farther than this are ignored.
        samples: Candidate directions per ring.
        head_on_samples: Candidate directions per ring in head-on encounters.
        head_on_margin: Extra radius in head-on encounters.
        head_on_slowdown: Preferred-speed factor in head-on encounters.
    """

    time_horizon: float = 3.0
    neighbor_dist: float = 8.0
    samples: int = 36
    head_on_samples: int = 72
    head_on_margin: float = 0.2
    head_on_slowdown: float = 0.7


RING_FRACTIONS = (0.25, 0.5, 0.75, 1.0)


def closest_approach(
    rel_position: np.ndarray, rel_velocity: np.ndarray, horizon: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Closest distance within [0, horizon] of linear relative motion.

    ``rel_position`` has shape (M, 2); ``rel_velocity`` has shape (C, M, 2).
    Returns (distance (C, M), approach rate d0 . w (C, M)).
    """
    ww = np.sum(rel_velocity * rel_velocity, axis=-1)
    dw = np.sum(rel_position[None, :, :] * rel_velocity, axis=-1)
    safe_ww = np.where(ww > 1e-12, ww, 1.0)
    tau = np.where(ww > 1e-12, np.clip(-dw / safe_ww, 0.0, horizon), 0.0)
    closest = rel_position[None, :, :] + rel_velocity * tau[..., None]
    return np.hypot(closest[..., 0], closest[..., 1]), dw


def velocity_obstacle_mask(
    position: np.ndarray,
    candidates: np.ndarray,
    neighbor_positions: np.ndarray,
    neighbor_velocities: np.ndarray,
    radius: float,
    horizon: float,
) -> np.ndarray:
    """Boolean mask (C,) of candidate velocities inside any velocity obstacle."""
    d0 = position[None, :] - neighbor_positions
    w = candidates[:, None, :] - neighbor_velocities[None, :, :]
    dist, dw = closest_approach(d0, w, horizon)
    inside_now = np.hypot(d0[:, 0], d0[:, 1]) < radius
    blocked = np.where(inside_now[None, :], dw <= 0.0, dist < radius)
    return blocked.any(axis=1)


class RVOPlanner(SteeringPlanner):
    name = "rvo"

    def __init__(self, config: Optional[RVOConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or RVOConfig(), logger)

    def _is_head_on(self, position, preferred, neighbor_positions, neighbor_velocities) -> bool:
        heading = normalize(preferred)
        if norm(heading) == 0.0:
            return False
        for q, vq in zip(neighbor_positions, neighbor_velocities):
            if norm(vq) < 0.05:
                continue
            if np.dot(heading, normalize(vq)) < -0.5 and np.dot(heading, normalize(q - position)) > 0.5:
                return True
        return False

    def _candidates(self, preferred: np.ndarray, samples: int) -> np.ndarray:
        cfg = self.config
        angles = np.linspace(0.0, 2 * math.pi, samples, endpoint=False)
        ring = np.stack([np.cos(angles), np.sin(angles)], axis=1)
        rows = [preferred[None, :], np.zeros((1, 2))]
        for fraction in RING_FRACTIONS:
            rows.append(preferred[None, :] + ring * fraction * cfg.max_speed)
        candidates = np.concatenate(rows, axis=0)
        speeds = np.hypot(candidates[:, 0], candidates[:, 1])
        scale = np.where(speeds > cfg.max_speed, cfg.max_speed / np.maximum(speeds, 1e-12), 1.0)
        return candidates * scale[:, None]

    def _stage_limited(self, position: np.ndarray, candidates: np.ndarray) -> np.ndarray:
        cfg = self.config
        dt = cfg.time_step
        nxt = position[None, :] + candidates * dt
        nxt[:, 0] = np.clip(nxt[:, 0], 0.0, cfg.stage_width)
        nxt[:, 1] = np.clip(nxt[:, 1], 0.0, cfg.stage_height)
        return (nxt - position[None, :]) / dt

    def steer(self, k, position, velocity, preferred, target, neighbors):
        cfg = self.config
        positions, velocities = neighbors
        if len(positions) == 0:
            return preferred
        gaps = np.hypot(positions[:, 0] - position[0], positions[:, 1] - position[1])
        near = gaps < cfg.neighbor_dist
        if not near.any():
            return preferred
        q, vq = positions[near], velocities[near]

        head_on = self._is_head_on(position, preferred, q, vq)
        radius = cfg.separation + (cfg.head_on_margin if head_on else 0.0)
        pref = preferred
        if head_on:
            # never slow below the share of max speed the schedule already needs
            pref = preferred * max(cfg.head_on_slowdown, min(1.0, norm(preferred) / cfg.max_speed))
        samples = cfg.head_on_samples if head_on else cfg.samples

        candidates = self._stage_limited(position, self._candidates(pref, samples))
        blocked = velocity_obstacle_mask(position, candidates, q, vq, radius, cfg.time_horizon)
        if not blocked[0]:
            return candidates[0]

        deviation = np.hypot(candidates[:, 0] - pref[0], candidates[:, 1] - pref[1])
        if (~blocked).any():
            deviation = np.where(blocked, np.inf, deviation)
            return candidates[int(np.argmin(deviation))]

        # every candidate is unsafe: keep the widest predicted clearance
        d0 = position[None, :] - q
        w = candidates[:, None, :] - vq[None, :, :]
        dist, _ = closest_approach(d0, w, cfg.time_horizon)
        clearance = dist.min(axis=1)
        best = np.flatnonzero(clearance >= clearance.max() - 1e-9)
        return candidates[best[int(np.argmin(deviation[best]))]]


def plan_rvo(
    assignments: Sequence[Assignment],
    config: Optional[RVOConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return RVOPlanner(config, logger).plan(assignments, already_placed).paths
