"""Start -> end assignment for a formation transition.

Small groups are solved exactly with a bitmask dynamic program over the set
of used end positions; larger groups use a greedy nearest-free heuristic.
"""

import math
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .models import Assignment, Position


# Largest group solved exactly (2**20 DP states)
DP_MAX_DANCERS = 20


class AssignmentMode(str, Enum):
    FIXED = "fixed"
    OPTIMAL = "optimal"
    PARTIAL = "partial"


class AssignmentError(ValueError):
    """Raised when assignment inputs are unusable."""
    pass


class LengthMismatchError(AssignmentError):
    """Raised when start and end formations have different sizes."""
    pass


class NonFiniteCoordinateError(AssignmentError):
    """Raised when a coordinate is NaN or infinite."""
    pass


def _check_inputs(starts: Sequence[Position], ends: Sequence[Position]) -> None:
    if len(starts) != len(ends):
        raise LengthMismatchError(
            f"start formation has {len(starts)} positions, end formation has {len(ends)}"
        )
    for label, group in (("start", starts), ("end", ends)):
        for i, p in enumerate(group):
            if not (math.isfinite(p.x) and math.isfinite(p.y)):
                raise NonFiniteCoordinateError(f"{label} position {i} is not finite: ({p.x}, {p.y})")


def cost_matrix(starts: Sequence[Position], ends: Sequence[Position]) -> np.ndarray:
    """Pairwise Euclidean distances, rows = starts, columns = ends."""
    s = np.array([(p.x, p.y) for p in starts], dtype=float).reshape(-1, 2)
    e = np.array([(p.x, p.y) for p in ends], dtype=float).reshape(-1, 2)
    diff = s[:, None, :] - e[None, :, :]
    return np.hypot(diff[..., 0], diff[..., 1])


def _bitmask_dp(cost: np.ndarray) -> List[int]:
    """Exact minimum-cost assignment; returns the end column for each row.

    ``dp[mask]`` is the cheapest way to give the first ``popcount(mask)`` rows
    exactly the columns in ``mask``. Masks are processed one popcount layer at a
    time so every transition out of a layer reads finished values.
    """
    n = cost.shape[0]
    if n == 0:
        return []
    size = 1 << n
    masks = np.arange(size, dtype=np.int64)
    popcount = np.zeros(size, dtype=np.int64)
    for bit in range(n):
        popcount += (masks >> bit) & 1

    dp = np.full(size, np.inf)
    parent = np.full(size, -1, dtype=np.int64)
    dp[0] = 0.0

    for row in range(n):
        layer = masks[popcount == row]
        layer = layer[np.isfinite(dp[layer])]
        for col in range(n):
            free = layer[((layer >> col) & 1) == 0]
            if free.size == 0:
                continue
            targets = free | (1 << col)
            candidate = dp[free] + cost[row, col]
            better = candidate < dp[targets]
            dp[targets[better]] = candidate[better]
            parent[targets[better]] = col

    columns = [0] * n
    mask = size - 1
    for row in range(n - 1, -1, -1):
        col = int(parent[mask])
        columns[row] = col
        mask ^= 1 << col
    return columns


def _greedy(cost: np.ndarray) -> List[int]:
    """Each row in order takes its nearest unused column."""
    n = cost.shape[0]
    used = np.zeros(n, dtype=bool)
    columns = []
    for row in range(n):
        masked = np.where(used, np.inf, cost[row])
        col = int(np.argmin(masked))
        used[col] = True
        columns.append(col)
    return columns


def _optimal_columns(cost: np.ndarray) -> List[int]:
    if cost.shape[0] <= DP_MAX_DANCERS:
        return _bitmask_dp(cost)
    return _greedy(cost)


def solve_assignment(
    starts: Sequence[Position],
    ends: Sequence[Position],
    mode: AssignmentMode = AssignmentMode.FIXED,
    locked_dancers: Optional[Iterable[int]] = None,
) -> List[Assignment]:
    """Map start positions to end positions.

    Args:
        starts: Start formation; dancer ``i`` gets id ``i + 1``.
        ends: End formation.
        mode: ``fixed`` keeps index order, ``optimal`` minimises total
            distance, ``partial`` keeps ``locked_dancers`` fixed and
            optimises the rest.
        locked_dancers: Dancer ids kept on their own index in ``partial`` mode.

    Returns:
        One Assignment per dancer, ordered by dancer id.

    Raises:
        LengthMismatchError: If the formations differ in size.
        NonFiniteCoordinateError: If any coordinate is NaN or infinite.
    """
    mode = AssignmentMode(mode)
    _check_inputs(starts, ends)
    n = len(starts)
    cost = cost_matrix(starts, ends)

    if mode == AssignmentMode.FIXED:
        columns = list(range(n))
    elif mode == AssignmentMode.OPTIMAL:
        columns = _optimal_columns(cost)
    else:
        locked = {d - 1 for d in (locked_dancers or []) if 1 <= d <= n}
        free_rows = [i for i in range(n) if i not in locked]
        free_cols = [j for j in range(n) if j not in locked]
        columns = list(range(n))
        if free_rows:
            sub = cost[np.ix_(free_rows, free_cols)]
            for row, sub_col in zip(free_rows, _optimal_columns(sub)):
                columns[row] = free_cols[sub_col]

    return [
        Assignment(
            dancer_id=i + 1,
            start_position=starts[i],
            end_position=ends[columns[i]],
            distance=float(cost[i, columns[i]]),
        )
        for i in range(n)
    ]


def total_distance(assignments: Iterable[Assignment]) -> float:
    return sum(a.distance for a in assignments)


def summarize_assignments(assignments: Sequence[Assignment]) -> Dict[str, float]:
    """Total / average / max / min straight-line distance."""
    if not assignments:
        return {"total": 0.0, "average": 0.0, "max": 0.0, "min": 0.0}
    distances = [a.distance for a in assignments]
    return {
        "total": sum(distances),
        "average": sum(distances) / len(distances),
        "max": max(distances),
        "min": min(distances),
    }
