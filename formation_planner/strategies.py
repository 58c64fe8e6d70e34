"""Strategy selection.

``Strategy`` is the closed set of path planners. Each strategy carries its
own config record; ``run_strategy`` checks the record and dispatches with a
single if-chain.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from .algorithms.astar import AStarConfig, AStarPlanner
from .algorithms.base import PlanResult
from .algorithms.boids import BoidsConfig, BoidsPlanner
from .algorithms.cbs import CBSConfig, CBSPlanner
from .algorithms.hybrid import ChoreographyConfig, ChoreographyPlanner, HybridConfig, HybridPlanner
from .algorithms.jps import JPSConfig, JPSPlanner
from .algorithms.pathfinder import SimpleConfig, SimplePathfinder
from .algorithms.potential_field import PotentialFieldConfig, PotentialFieldPlanner
from .algorithms.rvo import RVOConfig, RVOPlanner
from .config import PlannerConfig
from .models import Assignment, DancerPath


class Strategy(str, Enum):
    SIMPLE = "simple"
    ASTAR = "astar"
    JPS = "jps"
    CBS = "cbs"
    RVO = "rvo"
    BOIDS = "boids"
    POTENTIAL_FIELD = "potential_field"
    HYBRID = "hybrid"
    CHOREOGRAPHY = "choreography"


CONFIG_TYPES = {
    Strategy.SIMPLE: SimpleConfig,
    Strategy.ASTAR: AStarConfig,
    Strategy.JPS: JPSConfig,
    Strategy.CBS: CBSConfig,
    Strategy.RVO: RVOConfig,
    Strategy.BOIDS: BoidsConfig,
    Strategy.POTENTIAL_FIELD: PotentialFieldConfig,
    Strategy.HYBRID: HybridConfig,
    Strategy.CHOREOGRAPHY: ChoreographyConfig,
}


def parse_strategy(name) -> Strategy:
    try:
        return Strategy(name)
    except ValueError:
        valid = ", ".join(s.value for s in Strategy)
        raise ValueError(f"Unknown strategy '{name}' (expected one of: {valid})") from None


def default_config(strategy) -> PlannerConfig:
    """Fresh config record with every default for ``strategy``."""
    return CONFIG_TYPES[parse_strategy(strategy)]()


def run_strategy(
    strategy,
    assignments: Sequence[Assignment],
    config: Optional[PlannerConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> PlanResult:
    """Plan every assignment with one strategy.

    Args:
        strategy: ``Strategy`` member or its value.
        assignments: Dancers to plan.
        config: Config record of that strategy; defaults when omitted.
        already_placed: Caller-owned list of committed trajectories; new
            trajectories are appended to it.
        logger: Logger used by the planner.

    Raises:
        ValueError: Unknown strategy name.
        TypeError: ``config`` belongs to another strategy.
    """
    strategy = parse_strategy(strategy)
    expected = CONFIG_TYPES[strategy]
    if config is None:
        config = expected()
    elif not isinstance(config, expected):
        raise TypeError(
            f"Strategy '{strategy.value}' expects {expected.__name__}, got {type(config).__name__}"
        )

    if strategy == Strategy.SIMPLE:
        planner = SimplePathfinder(config, logger)
    elif strategy == Strategy.ASTAR:
        planner = AStarPlanner(config, logger)
    elif strategy == Strategy.JPS:
        planner = JPSPlanner(config, logger)
    elif strategy == Strategy.CBS:
        planner = CBSPlanner(config, logger)
    elif strategy == Strategy.RVO:
        planner = RVOPlanner(config, logger)
    elif strategy == Strategy.BOIDS:
        planner = BoidsPlanner(config, logger)
    elif strategy == Strategy.POTENTIAL_FIELD:
        planner = PotentialFieldPlanner(config, logger)
    elif strategy == Strategy.HYBRID:
        planner = HybridPlanner(config, logger)
    else:
        planner = ChoreographyPlanner(config, logger)
    return planner.plan(assignments, already_placed)


def plan_paths(
    strategy,
    assignments: Sequence[Assignment],
    config: Optional[PlannerConfig] = None,
    already_placed: Optional[List[DancerPath]] = None,
    logger: Optional[logging.Logger] = None,
) -> List[DancerPath]:
    """Trajectories of ``run_strategy``, ordered by dancer id."""
    return run_strategy(strategy, assignments, config, already_placed, logger).paths
