"""Independent judgement of a trajectory set.

Planners never fail; this module decides whether what they produced is
acceptable. Only collisions make a set invalid. Speed violations and
endpoint mismatches are reported for the caller to weigh.
"""

import math
from typing import Dict, List, Optional, Sequence

from .geometry import COLLISION_STEP, find_all_collisions, speed_violations
from .models import Assignment, DancerPath, SpeedViolation, ValidationReport


ENDPOINT_TOLERANCE = 1e-6


def validate(
    paths: Sequence[DancerPath],
    collision_radius: float = 0.5,
    total_counts: float = 8.0,
    step: float = COLLISION_STEP,
    max_speed: Optional[float] = None,
    assignments: Optional[Sequence[Assignment]] = None,
) -> ValidationReport:
    """Check a trajectory set.

    Args:
        paths: One trajectory per dancer.
        collision_radius: Dancers closer than twice this collide.
        total_counts: End of the checked window.
        step: Sampling step of the collision check.
        max_speed: When given, segments faster than this are reported.
        assignments: When given, trajectories not starting and ending at
            their assigned positions are reported.
    """
    collisions = find_all_collisions(paths, collision_radius, total_counts, step)

    violations: List[SpeedViolation] = []
    if max_speed is not None:
        for dancer_path in paths:
            for t, speed in speed_violations(dancer_path.path, max_speed):
                violations.append(SpeedViolation(dancer_path.dancer_id, t, speed))

    endpoint_errors: Dict[int, float] = {}
    if assignments is not None:
        by_id = {p.dancer_id: p for p in paths}
        for a in assignments:
            dancer_path = by_id.get(a.dancer_id)
            if dancer_path is None:
                endpoint_errors[a.dancer_id] = math.inf
                continue
            first, last = dancer_path.path[0], dancer_path.path[-1]
            error = max(
                math.hypot(first.x - a.start_position.x, first.y - a.start_position.y),
                math.hypot(last.x - a.end_position.x, last.y - a.end_position.y),
            )
            if error > ENDPOINT_TOLERANCE:
                endpoint_errors[a.dancer_id] = error

    return ValidationReport(
        valid=not collisions,
        collisions=collisions,
        speed_violations=violations,
        endpoint_errors=endpoint_errors,
    )
