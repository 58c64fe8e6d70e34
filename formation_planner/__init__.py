"""formation_planner - Collision-free trajectories for dancer formation changes."""

from .loader import load_scenario, load_scenarios, ScenarioValidationError, ScenarioParseError
from .models import (
    Assignment,
    CandidateMetrics,
    CandidateResult,
    Collision,
    DancerPath,
    FormationScenario,
    PathPoint,
    Position,
    SpeedViolation,
    ValidationReport,
)
from .config import PlacementOrder, PlannerConfig
from .geometry import (
    distance,
    position_at_time,
    find_collision_time,
    find_all_collisions,
    has_collision,
    min_separation,
    count_crossings,
    path_length,
    max_deviation,
)
from .assignment import (
    AssignmentError,
    AssignmentMode,
    LengthMismatchError,
    NonFiniteCoordinateError,
    solve_assignment,
)
from .curves import cubic_path, linear_path, quadratic_path, s_curve_path, stationary_path
from .strategies import Strategy, default_config, plan_paths, run_strategy
from .candidates import CandidateGeneratorConfig, generate_candidates, summarize_candidates
from .validation import validate

# Algorithms
from .algorithms import PlanResult

__all__ = [
    "load_scenario",
    "load_scenarios",
    "ScenarioValidationError",
    "ScenarioParseError",
    "Assignment",
    "CandidateMetrics",
    "CandidateResult",
    "Collision",
    "DancerPath",
    "FormationScenario",
    "PathPoint",
    "Position",
    "SpeedViolation",
    "ValidationReport",
    "PlacementOrder",
    "PlannerConfig",
    "distance",
    "position_at_time",
    "find_collision_time",
    "find_all_collisions",
    "has_collision",
    "min_separation",
    "count_crossings",
    "path_length",
    "max_deviation",
    "AssignmentError",
    "AssignmentMode",
    "LengthMismatchError",
    "NonFiniteCoordinateError",
    "solve_assignment",
    "cubic_path",
    "linear_path",
    "quadratic_path",
    "s_curve_path",
    "stationary_path",
    "Strategy",
    "default_config",
    "plan_paths",
    "run_strategy",
    "CandidateGeneratorConfig",
    "generate_candidates",
    "summarize_candidates",
    "validate",
    "PlanResult",
]
