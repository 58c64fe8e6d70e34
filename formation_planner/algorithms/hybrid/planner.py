"""Curve-fitting planner ("Hybrid").

Each dancer picks the best trajectory from a bounded catalogue of curve
shapes drawn over a set of time windows, against the trajectories committed
before it. Anti-parallel pairs on overlapping corridors are held to passing
lanes. Once everyone is placed, a bounded repair loop regenerates one dancer
of each remaining collision.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ...config import PlacementOrder
from ...geometry import SampledPaths, exceeds_speed, find_all_collisions, total_crossings
from ...models import Assignment, DancerPath, PathPoint
from ..base import SequentialPlanner, is_stationary, make_dancer_path, order_assignments
from .base import (
    Candidate,
    CandidatePhase,
    HybridConfig,
    HybridVariant,
    SyncMode,
    group_tiers,
    lane_allows,
    passing_lanes,
)
from .presets import build_phases, repair_candidates


Choice = Tuple[Candidate, List[PathPoint]]


class HybridPlanner(SequentialPlanner):
    name = "hybrid"

    def __init__(self, config: Optional[HybridConfig] = None, logger: Optional[logging.Logger] = None):
        super().__init__(config or HybridConfig(), logger)
        self.name = f"hybrid_{HybridVariant(self.config.variant).value}"
        self.tiers: List[List[CandidatePhase]] = group_tiers(build_phases(self.config))
        self.lanes: Dict[int, int] = {}
        self.by_id: Dict[int, Assignment] = {}
        self.fixed_ids = set()

    def prepare(self, assignments: Sequence[Assignment], placed: List[DancerPath]) -> None:
        self.lanes = passing_lanes(assignments, self.config.separation)
        self.by_id = {a.dancer_id: a for a in assignments}
        self.fixed_ids = {p.dancer_id for p in placed}
        if self.lanes:
            self.log.debug("passing lanes for dancers %s", sorted(self.lanes))

    def placement_order(self, assignments: Sequence[Assignment]) -> List[Assignment]:
        if HybridVariant(self.config.variant) == HybridVariant.DETOUR:
            return sorted(assignments, key=lambda a: (-a.distance, -a.start_position.y))
        return order_assignments(assignments, PlacementOrder.FRONT_TO_BACK, self.config)

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def rank_key(self, candidate: Candidate, crossings: int) -> tuple:
        cfg = self.config
        sync = (candidate.start_time + (cfg.total_counts - candidate.end_time)) * cfg.profile.sync_multiplier
        curve = candidate.shape.penalty + candidate.shape.magnitude
        mode = SyncMode(cfg.sync_mode)
        if mode == SyncMode.STRICT:
            return (sync, crossings, curve)
        if mode == SyncMode.RELAXED:
            return (crossings, curve, candidate.start_time)
        return (crossings, sync + 0.5 * curve)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        assignment: Assignment,
        others: Sequence[DancerPath],
        include_last_resort: bool = True,
    ) -> Tuple[Optional[Choice], bool]:
        """Best candidate against ``others``.

        Returns ((candidate, path), collision_free), or (None, False) when no
        tier before the last resort produced a survivor and the last resort
        was excluded.
        """
        cfg = self.config
        side = self.lanes.get(assignment.dancer_id)
        checker = SampledPaths(others, cfg.total_counts, cfg.check_step)

        for tier in self.tiers:
            last_resort = any(phase.accept_colliding for phase in tier)
            if last_resort and not include_last_resort:
                break
            first_fit = any(phase.first_fit for phase in tier)
            pool = [c for phase in tier for c in phase.build(assignment, side) if lane_allows(c.shape, side)]
            survivors: List[Choice] = []
            for candidate in pool:
                path = candidate.build(assignment, cfg.total_counts, cfg.num_points)
                if exceeds_speed(path, cfg.max_human_speed):
                    continue
                if checker.first_hit(path, cfg.separation) is not None:
                    continue
                survivors.append((candidate, path))
                if first_fit:
                    break
            if survivors:
                if first_fit or len(survivors) == 1:
                    return survivors[0], True
                return min(
                    survivors, key=lambda choice: self.rank_key(choice[0], total_crossings(choice[1], others))
                ), True
            if last_resort and pool:
                return self.least_bad(assignment, pool, checker), False
        return None, False

    def least_bad(self, assignment: Assignment, pool: Sequence[Candidate], checker: SampledPaths) -> Choice:
        """Colliding fallback: within the speed ceiling if possible, then the widest gap."""
        cfg = self.config
        built = [(c, c.build(assignment, cfg.total_counts, cfg.num_points)) for c in pool]
        return min(
            built,
            key=lambda choice: (exceeds_speed(choice[1], cfg.max_human_speed), -checker.min_gap(choice[1])),
        )

    def plan_agent(self, assignment: Assignment, placed: List[DancerPath]) -> DancerPath:
        choice, clean = self.search(assignment, placed)
        if choice is None:
            fallbacks = repair_candidates(assignment, self.config, self.lanes.get(assignment.dancer_id))
            checker = SampledPaths(placed, self.config.total_counts, self.config.check_step)
            choice = self.least_bad(assignment, fallbacks, checker)
        candidate, path = choice
        if clean:
            self.log.debug("dancer %d: %s", assignment.dancer_id, candidate.describe())
        else:
            self.log.warning(
                "dancer %d: no collision-free candidate, accepted %s", assignment.dancer_id, candidate.describe()
            )
        self.notes[assignment.dancer_id] = candidate.describe()
        return make_dancer_path(assignment.dancer_id, path)

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def _open_collisions(self, placed: Sequence[DancerPath], margin: float):
        cfg = self.config
        found = find_all_collisions(placed, cfg.collision_radius, cfg.total_counts, cfg.check_step, margin)
        return [c for c in found if c.dancer_a in self.by_id or c.dancer_b in self.by_id]

    def _repair_target(self, dancer_a: int, dancer_b: int) -> Optional[int]:
        """Dancer regenerated for a collision: the one starting further upstage."""
        movable = [
            d for d in (dancer_a, dancer_b)
            if d in self.by_id and d not in self.fixed_ids and not is_stationary(self.by_id[d])
        ]
        if not movable:
            return None
        return min(movable, key=lambda d: (self.by_id[d].start_position.y, -d))

    def finish(self, planned: List[DancerPath], placed: List[DancerPath]) -> List[DancerPath]:
        cfg = self.config
        rounds = 0
        while rounds < cfg.repair_iterations:
            collisions = self._open_collisions(placed, cfg.safety_margin)
            targets = [(c, self._repair_target(c.dancer_a, c.dancer_b)) for c in collisions]
            targets = [(c, t) for c, t in targets if t is not None]
            if not targets:
                break
            rounds += 1
            collision, dancer_id = targets[0]
            assignment = self.by_id[dancer_id]
            others = [p for p in placed if p.dancer_id != dancer_id]
            choice, _ = self.search(assignment, others, include_last_resort=False)
            if choice is None:
                fallbacks = repair_candidates(assignment, cfg, self.lanes.get(dancer_id))
                choice = self.least_bad(assignment, fallbacks, SampledPaths(others, cfg.total_counts, cfg.check_step))
                self.log.debug("repair %d: forcing %s on dancer %d", rounds, choice[0].describe(), dancer_id)
            else:
                self.log.debug(
                    "repair %d: dancer %d (hit %d at t=%.2f) -> %s",
                    rounds, dancer_id, collision.dancer_b if collision.dancer_a == dancer_id else collision.dancer_a,
                    collision.time, choice[0].describe(),
                )
            new_path = make_dancer_path(dancer_id, choice[1])
            self.notes[dancer_id] = choice[0].describe()
            self.replace_placed(placed, new_path)
            self.replace_placed(planned, new_path)
        else:
            if self._open_collisions(placed, cfg.safety_margin):
                self.log.warning("%s: repair loop hit its cap of %d rounds", self.name, cfg.repair_iterations)
                self.converged = False

        self.iterations = rounds
        remaining = self._open_collisions(placed, 0.0)
        if remaining:
            ids = sorted({d for c in remaining for d in (c.dancer_a, c.dancer_b) if d in self.by_id})
            self.unresolved.extend(ids)
            self.log.error("%s: %d collisions left after %d repair rounds", self.name, len(remaining), rounds)
        else:
            self.log.info("%s: all collisions resolved (%d repair rounds)", self.name, rounds)
        return planned


def plan_hybrid(
    assignments: Sequence[Assignment],
    config: Optional[HybridConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    return HybridPlanner(config, logger).plan(assignments, already_placed).paths
