"""Path planning algorithms."""

from .base import PlanResult, SequentialPlanner, order_assignments
from .pathfinder import SimpleConfig, SimplePathfinder, TimingMode, plan_simple
from .grid import GridConfig, SpaceTimeGrid
from .astar import AStarConfig, AStarPlanner, astar_search, plan_astar
from .jps import JPSConfig, JPSPlanner, jps_search, plan_jps
from .cbs import CBSConfig, CBSPlanner, plan_cbs
from .steering import SteeringConfig, SteeringPlanner
from .rvo import RVOConfig, RVOPlanner, plan_rvo
from .boids import BoidsConfig, BoidsPlanner, plan_boids
from .potential_field import PotentialFieldConfig, PotentialFieldPlanner, plan_potential_field
from .hybrid import (
    ChoreographyConfig,
    ChoreographyPlanner,
    HybridConfig,
    HybridPlanner,
    HybridVariant,
    SyncMode,
    plan_choreography,
    plan_hybrid,
)

__all__ = [
    # Shared
    "PlanResult",
    "SequentialPlanner",
    "order_assignments",

    # Simple pathfinder
    "SimpleConfig",
    "SimplePathfinder",
    "TimingMode",
    "plan_simple",

    # Grid search
    "GridConfig",
    "SpaceTimeGrid",
    "AStarConfig",
    "AStarPlanner",
    "astar_search",
    "plan_astar",
    "JPSConfig",
    "JPSPlanner",
    "jps_search",
    "plan_jps",
    "CBSConfig",
    "CBSPlanner",
    "plan_cbs",

    # Simulation
    "SteeringConfig",
    "SteeringPlanner",
    "RVOConfig",
    "RVOPlanner",
    "plan_rvo",
    "BoidsConfig",
    "BoidsPlanner",
    "plan_boids",
    "PotentialFieldConfig",
    "PotentialFieldPlanner",
    "plan_potential_field",

    # Curve fitting
    "ChoreographyConfig",
    "ChoreographyPlanner",
    "HybridConfig",
    "HybridPlanner",
    "HybridVariant",
    "SyncMode",
    "plan_choreography",
    "plan_hybrid",
]
