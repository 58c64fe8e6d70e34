from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Position:
    """Represents a point on the stage."""

    x: float
    y: float


@dataclass(frozen=True)
class PathPoint:
    """A stage position tagged with a time in counts.

    Attributes:
        x: X coordinate.
        y: Y coordinate (larger values are closer to the audience).
        t: Time in counts.
    """

    x: float
    y: float
    t: float

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


@dataclass(frozen=True)
class Assignment:
    """Resolved start -> end mapping for one dancer.

    Attributes:
        dancer_id: 1-based dancer identifier.
        start_position: Where the dancer stands at count 0.
        end_position: Where the dancer must stand at the end of the window.
        distance: Euclidean length of the straight chord.
    """

    dancer_id: int
    start_position: Position
    end_position: Position
    distance: float


@dataclass
class DancerPath:
    """Trajectory of one dancer.

    Attributes:
        dancer_id: Dancer identifier.
        path: Time-ordered samples; positions between samples are linear.
        start_time: Time of the first sample.
        speed: Display-only speed summary, clamped to [0.3, 2.0].
        total_distance: Polyline length of ``path``.
    """

    dancer_id: int
    path: List[PathPoint]
    start_time: float
    speed: float
    total_distance: float

    @property
    def end_time(self) -> float:
        return self.path[-1].t

    @property
    def start(self) -> PathPoint:
        return self.path[0]

    @property
    def end(self) -> PathPoint:
        return self.path[-1]


@dataclass(frozen=True)
class Collision:
    """Two dancers closer than the separation threshold at ``time``."""

    dancer_a: int
    dancer_b: int
    time: float


@dataclass(frozen=True)
class SpeedViolation:
    dancer_id: int
    time: float
    speed: float


@dataclass
class ValidationReport:
    """Outcome of validating a trajectory set.

    ``valid`` only reflects collisions; speed and endpoint findings are
    informational.
    """

    valid: bool
    collisions: List[Collision]
    speed_violations: List[SpeedViolation] = field(default_factory=list)
    endpoint_errors: Dict[int, float] = field(default_factory=dict)


@dataclass
class CandidateMetrics:
    """Comparable quality summary of one candidate.

    Attributes:
        collision_count: Colliding dancer pairs.
        crossing_count: Geometric path crossings summed over pairs.
        symmetry_score: 0-100, mirror occupancy across the stage centerline.
        smoothness: 0-100, falls with chord deviation.
        max_delay: Latest start time.
        avg_delay: Mean start time.
        simultaneous_arrival: 0-100, falls with spread of finish times.
        total_distance: Sum of path lengths.
    """

    collision_count: int
    crossing_count: int
    symmetry_score: int
    smoothness: int
    max_delay: float
    avg_delay: float
    simultaneous_arrival: int
    total_distance: float


@dataclass
class CandidateResult:
    id: str
    strategy: str
    paths: List[DancerPath]
    metrics: CandidateMetrics
    assignments: List[Assignment]
    cpu_time: float = 0.0
    converged: bool = True


@dataclass
class FormationScenario:
    """A formation transition loaded from disk.

    Attributes:
        name: Scenario name (file stem).
        stage_width: Stage extent in X.
        stage_height: Stage extent in Y.
        total_counts: Length of the planning window.
        collision_radius: Dancers collide below twice this distance.
        starts: Start formation.
        ends: End formation, same length as ``starts``.
    """

    name: str
    stage_width: float
    stage_height: float
    total_counts: float
    collision_radius: float
    starts: List[Position]
    ends: List[Position]
    description: Optional[str] = None

    @property
    def n_dancers(self) -> int:
        return len(self.starts)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return stage bounds as (x_min, y_min, x_max, y_max)."""
        return (0, 0, self.stage_width, self.stage_height)
