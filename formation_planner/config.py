from dataclasses import dataclass
from enum import Enum


class PlacementOrder(str, Enum):
    """Order in which a sequential planner commits dancers."""

    LONGEST_FIRST = "longest_first"
    SHORTEST_FIRST = "shortest_first"
    INPUT = "input"
    FRONT_TO_BACK = "front_to_back"
    CENTER_FIRST = "center_first"
    STAGE_DEPTH = "stage_depth"


@dataclass
class PlannerConfig:
    """Settings shared by every planner.

    Attributes:
        total_counts: Length of the planning window in counts.
        collision_radius: Dancers collide when closer than twice this.
        stage_width: Stage extent in X.
        stage_height: Stage extent in Y (front of stage is large Y).
        max_human_speed: Speed ceiling in units per count.
        safety_margin: Extra clearance planners keep above ``2 * collision_radius``.
        check_step: Sampling step used for collision checks.
        num_points: Segments per generated curve.
    """

    total_counts: float = 8.0
    collision_radius: float = 0.5
    stage_width: float = 12.0
    stage_height: float = 10.0
    max_human_speed: float = 1.5
    safety_margin: float = 0.05
    check_step: float = 0.05
    num_points: int = 20

    @property
    def separation(self) -> float:
        """Distance planners keep between dancer centers."""
        return 2 * self.collision_radius + self.safety_margin
