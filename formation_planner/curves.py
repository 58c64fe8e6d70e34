"""Parametric trajectory builders.

Every builder samples ``num_points`` segments (``num_points + 1`` samples)
uniformly in time over ``[start_time, end_time]``. A start/end pair closer
than ``STATIONARY_EPS`` yields a stationary sequence at the start position.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .geometry import STATIONARY_EPS, distance
from .models import PathPoint, Position


DEFAULT_TANGENT = 0.33
S_CURVE_TANGENT = 0.4


class CurveKind(str, Enum):
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CUBIC = "cubic"


def perpendicular(start: Position, end: Position) -> Tuple[float, float]:
    """Unit vector to the left of the start -> end direction; (0, 0) if degenerate."""
    dx, dy = end.x - start.x, end.y - start.y
    length = math.hypot(dx, dy)
    if length < STATIONARY_EPS:
        return 0.0, 0.0
    return -dy / length, dx / length


def _times(start_time: float, end_time: float, num_points: int) -> List[float]:
    n = max(1, num_points)
    return [start_time + (end_time - start_time) * i / n for i in range(n + 1)]


def stationary_path(position: Position, start_time: float, end_time: float, num_points: int = 2) -> List[PathPoint]:
    if end_time - start_time <= 0:
        return [PathPoint(position.x, position.y, start_time)]
    return [PathPoint(position.x, position.y, t) for t in _times(start_time, end_time, num_points)]


def linear_path(
    start: Position, end: Position, start_time: float, end_time: float, num_points: int = 20
) -> List[PathPoint]:
    if distance(start, end) < STATIONARY_EPS:
        return stationary_path(start, start_time, end_time, num_points)
    n = max(1, num_points)
    points = []
    for i, t in enumerate(_times(start_time, end_time, n)):
        u = i / n
        points.append(PathPoint(start.x + (end.x - start.x) * u, start.y + (end.y - start.y) * u, t))
    return points


def quadratic_path(
    start: Position,
    end: Position,
    start_time: float,
    end_time: float,
    num_points: int = 20,
    offset: float = 0.0,
) -> List[PathPoint]:
    """Quadratic Bezier whose control point is the chord midpoint pushed
    ``offset`` to the left (negative: right). Peak lateral displacement is
    ``offset / 2``."""
    if distance(start, end) < STATIONARY_EPS:
        return stationary_path(start, start_time, end_time, num_points)
    px, py = perpendicular(start, end)
    cx = (start.x + end.x) / 2 + px * offset
    cy = (start.y + end.y) / 2 + py * offset
    n = max(1, num_points)
    points = []
    for i, t in enumerate(_times(start_time, end_time, n)):
        u = i / n
        a, b, c = (1 - u) ** 2, 2 * (1 - u) * u, u * u
        points.append(PathPoint(a * start.x + b * cx + c * end.x, a * start.y + b * cy + c * end.y, t))
    return points


def cubic_path(
    start: Position,
    end: Position,
    start_time: float,
    end_time: float,
    num_points: int = 20,
    offset1: float = 0.0,
    offset2: float = 0.0,
    tangent: float = DEFAULT_TANGENT,
) -> List[PathPoint]:
    """Cubic Bezier with independent perpendicular control-point offsets.

    Control points sit ``tangent`` of the chord length in from each end and are
    pushed left by ``offset1`` / ``offset2``. Equal offsets bow the path to one
    side, unequal offsets skew the bulge, opposite offsets give an S shape.
    """
    if distance(start, end) < STATIONARY_EPS:
        return stationary_path(start, start_time, end_time, num_points)
    dx, dy = end.x - start.x, end.y - start.y
    px, py = perpendicular(start, end)
    c1x = start.x + dx * tangent + px * offset1
    c1y = start.y + dy * tangent + py * offset1
    c2x = end.x - dx * tangent + px * offset2
    c2y = end.y - dy * tangent + py * offset2
    n = max(1, num_points)
    points = []
    for i, t in enumerate(_times(start_time, end_time, n)):
        u = i / n
        v = 1 - u
        a, b, c, d = v ** 3, 3 * v * v * u, 3 * v * u * u, u ** 3
        points.append(PathPoint(
            a * start.x + b * c1x + c * c2x + d * end.x,
            a * start.y + b * c1y + c * c2y + d * end.y,
            t,
        ))
    return points


def s_curve_path(
    start: Position,
    end: Position,
    start_time: float,
    end_time: float,
    num_points: int = 20,
    amplitude: float = 1.0,
    tangent: float = S_CURVE_TANGENT,
) -> List[PathPoint]:
    return cubic_path(start, end, start_time, end_time, num_points, amplitude, -amplitude, tangent)


@dataclass(frozen=True)
class CurveShape:
    """A curve family member, independent of where and when it is drawn.

    Attributes:
        kind: Builder used.
        offset1: Quadratic offset, or first cubic control offset.
        offset2: Second cubic control offset (ignored for quadratic).
        tangent: Cubic control placement along the chord.
        label: Preset name (``linear``, ``symmetric``, ``start_heavy``...).
        penalty: Complexity used when ranking shapes.
    """

    kind: CurveKind = CurveKind.LINEAR
    offset1: float = 0.0
    offset2: float = 0.0
    tangent: float = DEFAULT_TANGENT
    label: str = "linear"
    penalty: float = 0.0

    @property
    def is_linear(self) -> bool:
        return self.kind == CurveKind.LINEAR or (self.offset1 == 0.0 and self.offset2 == 0.0)

    @property
    def side(self) -> int:
        """+1 if the path bulges left of its heading, -1 if right, 0 if straight or S-shaped."""
        if self.kind == CurveKind.QUADRATIC:
            total = self.offset1
        elif self.kind == CurveKind.CUBIC:
            total = self.offset1 + self.offset2
        else:
            return 0
        if abs(total) < 1e-9:
            return 0
        return 1 if total > 0 else -1

    @property
    def magnitude(self) -> float:
        return max(abs(self.offset1), abs(self.offset2))

    def mirrored(self) -> "CurveShape":
        return CurveShape(self.kind, -self.offset1, -self.offset2, self.tangent, self.label, self.penalty)

    def build(
        self, start: Position, end: Position, start_time: float, end_time: float, num_points: int
    ) -> List[PathPoint]:
        if self.kind == CurveKind.QUADRATIC:
            return quadratic_path(start, end, start_time, end_time, num_points, self.offset1)
        if self.kind == CurveKind.CUBIC:
            return cubic_path(start, end, start_time, end_time, num_points, self.offset1, self.offset2, self.tangent)
        return linear_path(start, end, start_time, end_time, num_points)

    def describe(self) -> str:
        if self.is_linear:
            return "linear"
        if self.kind == CurveKind.QUADRATIC:
            return f"arc {self.offset1:+.2f}"
        return f"{self.label} ({self.offset1:+.2f}, {self.offset2:+.2f})"


LINEAR = CurveShape()


def arc(offset: float, penalty: float = 0.0) -> CurveShape:
    return CurveShape(CurveKind.QUADRATIC, offset, 0.0, DEFAULT_TANGENT, "arc", penalty)


def bow(offset1: float, offset2: float, label: str = "symmetric", penalty: float = 1.0,
        tangent: float = DEFAULT_TANGENT) -> CurveShape:
    return CurveShape(CurveKind.CUBIC, offset1, offset2, tangent, label, penalty)
