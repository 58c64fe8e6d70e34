import math
from bisect import bisect_right
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .models import Collision, DancerPath, PathPoint, Position


# Numerical tolerance for floating point comparisons
EPS = 1e-9

# Default sampling step (counts) for pairwise collision checks
COLLISION_STEP = 0.05

# Chords shorter than this are treated as "no movement"
STATIONARY_EPS = 0.01

# Slack allowed above the human speed ceiling
SPEED_TOLERANCE = 1e-6


def distance(a, b) -> float:
    """Euclidean distance between any two objects with ``x``/``y``."""
    return math.hypot(b.x - a.x, b.y - a.y)


def point_in_stage(p, width: float, height: float) -> bool:
    return -EPS <= p.x <= width + EPS and -EPS <= p.y <= height + EPS


def clamp_to_stage(p: Position, width: float, height: float, margin: float = 0.0) -> Position:
    x = min(max(p.x, margin), width - margin)
    y = min(max(p.y, margin), height - margin)
    return Position(x, y)


# =============================================================================
# Trajectory interpolation
# =============================================================================

def position_at_time(path: Sequence[PathPoint], t: float) -> Position:
    """Position on ``path`` at time ``t``.

    Clamps to the first/last sample outside the recorded range and
    interpolates linearly between the bracketing samples otherwise.
    """
    if not path:
        raise ValueError("cannot interpolate an empty path")

    first, last = path[0], path[-1]
    if t <= first.t:
        return Position(first.x, first.y)
    if t >= last.t:
        return Position(last.x, last.y)

    i = bisect_right(path, t, key=lambda p: p.t)
    a, b = path[i - 1], path[i]
    span = b.t - a.t
    if span <= EPS:
        return Position(b.x, b.y)
    ratio = (t - a.t) / span
    return Position(a.x + (b.x - a.x) * ratio, a.y + (b.y - a.y) * ratio)


def sample_times(horizon: float, step: float = COLLISION_STEP) -> np.ndarray:
    """Sample times ``0, step, 2*step, ...`` up to and including ``horizon``."""
    n = int(math.floor(horizon / step + EPS))
    times = np.arange(n + 1, dtype=float) * step
    if horizon - times[-1] > EPS:
        times = np.append(times, horizon)
    return times


def sample_path(path: Sequence[PathPoint], times: np.ndarray) -> np.ndarray:
    """Vectorised ``position_at_time``; returns an array of shape (len(times), 2)."""
    if not path:
        raise ValueError("cannot interpolate an empty path")
    ts = np.fromiter((p.t for p in path), dtype=float, count=len(path))
    xs = np.fromiter((p.x for p in path), dtype=float, count=len(path))
    ys = np.fromiter((p.y for p in path), dtype=float, count=len(path))
    out = np.empty((len(times), 2))
    out[:, 0] = np.interp(times, ts, xs)
    out[:, 1] = np.interp(times, ts, ys)
    return out


# =============================================================================
# Collision tests
# =============================================================================

def find_collision_time(
    path1: Sequence[PathPoint],
    path2: Sequence[PathPoint],
    radius: float,
    horizon: float,
    step: float = COLLISION_STEP,
    margin: float = 0.0,
) -> Optional[float]:
    """First sampled time where the two paths are closer than ``2*radius + margin``."""
    times = sample_times(horizon, step)
    return first_contact(sample_path(path1, times), sample_path(path2, times), times, 2 * radius + margin)


def first_contact(
    samples1: np.ndarray,
    samples2: np.ndarray,
    times: np.ndarray,
    threshold: float,
) -> Optional[float]:
    """First time at which pre-sampled positions come within ``threshold``."""
    gaps = np.hypot(samples1[:, 0] - samples2[:, 0], samples1[:, 1] - samples2[:, 1])
    hits = np.flatnonzero(gaps < threshold)
    if hits.size == 0:
        return None
    return float(times[hits[0]])


def has_collision(
    path1: Sequence[PathPoint],
    path2: Sequence[PathPoint],
    radius: float,
    horizon: float,
    step: float = COLLISION_STEP,
    margin: float = 0.0,
) -> bool:
    return find_collision_time(path1, path2, radius, horizon, step, margin) is not None


def min_separation(
    path1: Sequence[PathPoint],
    path2: Sequence[PathPoint],
    horizon: float,
    step: float = COLLISION_STEP,
) -> Tuple[float, float]:
    """Return (minimum separation, time at which it occurs)."""
    times = sample_times(horizon, step)
    a = sample_path(path1, times)
    b = sample_path(path2, times)
    gaps = np.hypot(a[:, 0] - b[:, 0], a[:, 1] - b[:, 1])
    k = int(np.argmin(gaps))
    return float(gaps[k]), float(times[k])


def find_all_collisions(
    paths: Sequence[DancerPath],
    radius: float,
    horizon: float,
    step: float = COLLISION_STEP,
    margin: float = 0.0,
) -> List[Collision]:
    """One ``Collision`` per colliding pair, at the earliest sampled time.

    Result is ordered by time, then by dancer ids.
    """
    times = sample_times(horizon, step)
    samples = [sample_path(p.path, times) for p in paths]
    threshold = 2 * radius + margin
    found: List[Collision] = []
    for i in range(len(paths)):
        for j in range(i + 1, len(paths)):
            t = first_contact(samples[i], samples[j], times, threshold)
            if t is not None:
                a, b = sorted((paths[i].dancer_id, paths[j].dancer_id))
                found.append(Collision(a, b, t))
    found.sort(key=lambda c: (c.time, c.dancer_a, c.dancer_b))
    return found


class SampledPaths:
    """Paths pre-sampled on a shared time grid for repeated collision queries."""

    def __init__(self, paths: Iterable[DancerPath], horizon: float, step: float = COLLISION_STEP):
        self.times = sample_times(horizon, step)
        self.paths: List[DancerPath] = list(paths)
        self._samples: Dict[int, np.ndarray] = {}

    def samples_for(self, dancer_path: DancerPath) -> np.ndarray:
        key = id(dancer_path)
        cached = self._samples.get(key)
        if cached is None:
            cached = sample_path(dancer_path.path, self.times)
            self._samples[key] = cached
        return cached

    def first_hit(
        self,
        path: Sequence[PathPoint],
        threshold: float,
        exclude: Optional[int] = None,
    ) -> Optional[Tuple[int, float]]:
        """First (dancer_id, time) colliding with ``path``, earliest time wins."""
        ours = sample_path(path, self.times)
        best: Optional[Tuple[int, float]] = None
        for other in self.paths:
            if exclude is not None and other.dancer_id == exclude:
                continue
            t = first_contact(ours, self.samples_for(other), self.times, threshold)
            if t is not None and (best is None or t < best[1]):
                best = (other.dancer_id, t)
        return best

    def min_gap(self, path: Sequence[PathPoint], exclude: Optional[int] = None) -> float:
        """Smallest sampled separation between ``path`` and any stored path."""
        ours = sample_path(path, self.times)
        gap = math.inf
        for other in self.paths:
            if exclude is not None and other.dancer_id == exclude:
                continue
            theirs = self.samples_for(other)
            gap = min(gap, float(np.min(np.hypot(ours[:, 0] - theirs[:, 0], ours[:, 1] - theirs[:, 1]))))
        return gap


# =============================================================================
# Crossings
# =============================================================================

def _ccw(a, b, c) -> float:
    """Returns positive if CCW, negative if CW, 0 if collinear."""
    return (c.y - a.y) * (b.x - a.x) - (b.y - a.y) * (c.x - a.x)


def segments_intersect(a, b, c, d) -> bool:
    """Check if segment AB properly crosses segment CD.

    Touching endpoints and collinear overlaps do not count as crossings.
    """
    d1 = _ccw(c, d, a)
    d2 = _ccw(c, d, b)
    d3 = _ccw(a, b, c)
    d4 = _ccw(a, b, d)
    return ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4))


def _segments(path: Sequence[PathPoint]) -> Tuple[np.ndarray, np.ndarray]:
    pts = np.array([(p.x, p.y) for p in path], dtype=float)
    return pts[:-1], pts[1:]


def count_crossings(path1: Sequence[PathPoint], path2: Sequence[PathPoint]) -> int:
    """Number of segment pairs of the two polylines that cross (time ignored)."""
    if len(path1) < 2 or len(path2) < 2:
        return 0
    a, b = _segments(path1)
    c, d = _segments(path2)
    a, b = a[:, None, :], b[:, None, :]
    c, d = c[None, :, :], d[None, :, :]

    def orient(p, q, r):
        return (r[..., 1] - p[..., 1]) * (q[..., 0] - p[..., 0]) - (q[..., 1] - p[..., 1]) * (r[..., 0] - p[..., 0])

    d1 = orient(c, d, a)
    d2 = orient(c, d, b)
    d3 = orient(a, b, c)
    d4 = orient(a, b, d)
    crosses = (d1 * d2 < 0) & (d3 * d4 < 0)
    return int(np.count_nonzero(crosses))


def total_crossings(path: Sequence[PathPoint], others: Iterable[DancerPath]) -> int:
    return sum(count_crossings(path, other.path) for other in others)


# =============================================================================
# Path measures
# =============================================================================

def path_length(path: Sequence[PathPoint]) -> float:
    total = 0.0
    for i in range(len(path) - 1):
        total += distance(path[i], path[i + 1])
    return total


def max_deviation(path: Sequence[PathPoint]) -> float:
    """Largest perpendicular distance of any sample from the start-end chord."""
    if len(path) < 3:
        return 0.0
    start, end = path[0], path[-1]
    dx, dy = end.x - start.x, end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq < EPS:
        return max(distance(start, p) for p in path)
    worst = 0.0
    for p in path[1:-1]:
        u = ((p.x - start.x) * dx + (p.y - start.y) * dy) / length_sq
        px, py = start.x + u * dx, start.y + u * dy
        worst = max(worst, math.hypot(p.x - px, p.y - py))
    return worst


def max_segment_speed(path: Sequence[PathPoint]) -> float:
    """Highest implied speed (units per count) between consecutive samples."""
    fastest = 0.0
    for a, b in zip(path, path[1:]):
        d = distance(a, b)
        dt = b.t - a.t
        if dt <= EPS:
            if d > EPS:
                return math.inf
            continue
        fastest = max(fastest, d / dt)
    return fastest


def exceeds_speed(path: Sequence[PathPoint], max_speed: float) -> bool:
    return max_segment_speed(path) > max_speed + SPEED_TOLERANCE


def speed_violations(path: Sequence[PathPoint], max_speed: float) -> List[Tuple[float, float]]:
    """(time, speed) for every segment faster than ``max_speed``."""
    found = []
    for a, b in zip(path, path[1:]):
        dt = b.t - a.t
        d = distance(a, b)
        speed = d / dt if dt > EPS else (math.inf if d > EPS else 0.0)
        if speed > max_speed + SPEED_TOLERANCE:
            found.append((a.t, speed))
    return found


def retime(path: Sequence[PathPoint], start_time: float, end_time: float) -> List[PathPoint]:
    """Map the path's time range linearly onto [start_time, end_time]."""
    if not path:
        return []
    t0, t1 = path[0].t, path[-1].t
    span = t1 - t0
    if span <= EPS:
        n = len(path)
        if n == 1:
            return [PathPoint(path[0].x, path[0].y, start_time)]
        return [
            PathPoint(p.x, p.y, start_time + (end_time - start_time) * i / (n - 1))
            for i, p in enumerate(path)
        ]
    scale = (end_time - start_time) / span
    return [PathPoint(p.x, p.y, start_time + (p.t - t0) * scale) for p in path]


def fit_duration_to_speed(
    length: float,
    start_time: float,
    end_time: float,
    max_speed: float,
    horizon: float,
) -> Tuple[float, float]:
    """Stretch [start_time, end_time] until ``length`` can be covered at ``max_speed``.

    Extends the end first (up to ``horizon``), then starts earlier (down to 0).
    """
    if max_speed <= 0 or length <= EPS:
        return start_time, end_time
    needed = length / max_speed
    if end_time - start_time >= needed:
        return start_time, end_time
    end_time = min(horizon, start_time + needed)
    if end_time - start_time < needed:
        start_time = max(0.0, end_time - needed)
    return start_time, end_time


def clamp_path_to_stage(
    path: Sequence[PathPoint], width: float, height: float, margin: float = 0.0
) -> List[PathPoint]:
    out = []
    for p in path:
        q = clamp_to_stage(Position(p.x, p.y), width, height, margin)
        out.append(PathPoint(q.x, q.y, p.t))
    return out
