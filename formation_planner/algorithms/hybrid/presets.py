"""Candidate phases of the three curve families."""

from typing import Iterable, List, Optional

from ...curves import LINEAR, CurveShape, arc, bow
from ...geometry import path_length
from ...models import Assignment
from .base import Candidate, CandidatePhase, HybridConfig, HybridVariant, speed_fitted, windows


SYMMETRIC_OFFSETS = (0.5, 1.0, 1.5, 2.0, 2.5, 3.0)
HEAVY_OFFSETS = (1.5, 2.0, 3.0, 4.0)
HEAVY_FACTOR = 0.2
S_CURVE_OFFSETS = (1.5, 2.0, 3.0)
EXTREME_ARC_OFFSETS = (4.0, 5.0, 6.0, 7.0, 8.0)
EXTREME_CUBIC_OFFSETS = (5.0, 6.0, 7.0, 8.0, 9.0, 10.0)
EXTREME_FACTOR = 0.1
LAST_RESORT_ARC = 10.0
FORCED_CUBIC = 6.0
DETOUR_OFFSETS = (0.5, 1.0, 1.5, 2.0, 2.5, 3.0)
DETOUR_CRUISE = 0.8

REPAIR_ARC = 5.0
REPAIR_ARC_DELAY = 0.3

# Forced curves shrink by these factors until one fits under the speed ceiling
FALLBACK_SCALES = (1.0, 0.8, 0.6, 0.4, 0.25)


def _both_sides(shapes: Iterable[CurveShape]) -> List[CurveShape]:
    out = []
    for shape in shapes:
        out.append(shape)
        out.append(shape.mirrored())
    return out


def forced_side(assignment: Assignment, side: Optional[int]) -> int:
    """Side of a forced curve: the lane side, else alternating by dancer id."""
    if side is not None:
        return side
    return 1 if assignment.dancer_id % 2 == 1 else -1


# =============================================================================
# Quadratic arcs
# =============================================================================

def arc_phases(config: HybridConfig) -> List[CandidatePhase]:
    profile = config.profile
    total = config.total_counts
    small = [LINEAR] + _both_sides(arc(o, penalty=o) for o in profile.small_offsets)
    large = _both_sides(arc(o, penalty=o) for o in profile.large_offsets)

    def synchronized(assignment, side):
        for shape in small:
            yield Candidate(shape, 0.0, total, "synchronized")

    with_synchronized = config.sync_mode != "relaxed"

    def delayed(assignment, side):
        for start, end in windows(profile, total, config.min_duration):
            if with_synchronized and start == 0.0 and end == total:
                continue
            for shape in small:
                yield Candidate(shape, start, end, "delayed")

    def large_offsets(assignment, side):
        delays = list(profile.delays) + list(profile.fallback_delays)
        for delay in delays:
            if total - delay < config.min_duration:
                continue
            for shape in large:
                yield Candidate(shape, delay, total, "large")

    def extreme(assignment, side):
        for delay in (0.0,) + profile.fallback_delays:
            for shape in _both_sides(arc(o, penalty=o) for o in EXTREME_ARC_OFFSETS):
                yield Candidate(shape, delay, total, "extreme")

    def last_resort(assignment, side):
        delay = 0.5 if config.sync_mode == "strict" else 0.4 * total
        sign = forced_side(assignment, side)
        for scale in FALLBACK_SCALES:
            offset = LAST_RESORT_ARC * scale
            candidate = Candidate(arc(offset * sign, penalty=offset), delay, total, "last resort")
            yield speed_fitted(candidate, assignment, config)

    phases = []
    if with_synchronized:
        phases.append(CandidatePhase("synchronized", 0, synchronized))
    phases.extend([
        CandidatePhase("delayed", 0, delayed),
        CandidatePhase("large", 0, large_offsets),
        CandidatePhase("extreme", 1, extreme, first_fit=True),
        CandidatePhase("last resort", 2, last_resort, accept_colliding=True),
    ])
    return phases


# =============================================================================
# Cubic presets
# =============================================================================

def cubic_presets() -> List[CurveShape]:
    """Linear plus symmetric, start-heavy, end-heavy and S-curve bows on both sides."""
    shapes = [LINEAR]
    shapes.extend(_both_sides(bow(o, o, "symmetric", 1.0) for o in SYMMETRIC_OFFSETS))
    shapes.extend(_both_sides(bow(o, o * HEAVY_FACTOR, "start_heavy", 2.0) for o in HEAVY_OFFSETS))
    shapes.extend(_both_sides(bow(o * HEAVY_FACTOR, o, "end_heavy", 2.0) for o in HEAVY_OFFSETS))
    shapes.extend(_both_sides(bow(o, -o, "s_curve", 3.0, tangent=0.4) for o in S_CURVE_OFFSETS))
    return shapes


def cubic_phases(config: HybridConfig) -> List[CandidatePhase]:
    profile = config.profile
    total = config.total_counts
    presets = cubic_presets()

    def synchronized(assignment, side):
        for shape in presets:
            yield Candidate(shape, 0.0, total, "synchronized")

    def delayed(assignment, side):
        delays = list(profile.delays) + list(profile.fallback_delays)
        for start, end in windows(profile, total, config.min_duration, delays):
            if start == 0.0 and end == total:
                continue
            for shape in presets:
                yield Candidate(shape, start, end, "delayed")

    def extreme(assignment, side):
        shapes = []
        for o in EXTREME_CUBIC_OFFSETS:
            shapes.append(bow(o, o, "symmetric", 4.0))
            shapes.append(bow(o, o * EXTREME_FACTOR, "start_heavy", 4.0))
            shapes.append(bow(o * EXTREME_FACTOR, o, "end_heavy", 4.0))
        for shape in _both_sides(shapes):
            yield Candidate(shape, 0.0, total, "extreme")

    def forced(assignment, side):
        sign = forced_side(assignment, side)
        for scale in FALLBACK_SCALES:
            offset = FORCED_CUBIC * scale * sign
            yield speed_fitted(Candidate(bow(offset, offset, "forced", 5.0), 0.0, total, "forced"), assignment, config)

    return [
        CandidatePhase("synchronized", 0, synchronized),
        CandidatePhase("delayed", 0, delayed),
        CandidatePhase("extreme", 1, extreme),
        CandidatePhase("forced", 2, forced, accept_colliding=True),
    ]


# =============================================================================
# Detours
# =============================================================================

def detour_phases(config: HybridConfig) -> List[CandidatePhase]:
    total = config.total_counts
    cruise = config.max_human_speed * DETOUR_CRUISE

    def window(assignment: Assignment, shape: CurveShape, delay: float):
        if config.time_filling:
            return delay, total
        unit = shape.build(assignment.start_position, assignment.end_position, 0.0, 1.0, config.num_points)
        duration = max(config.min_duration, path_length(unit) / cruise)
        return delay, min(total, delay + duration)

    def within_ratio(assignment: Assignment, shape: CurveShape, ratio: float) -> bool:
        if shape.is_linear:
            return True
        unit = shape.build(assignment.start_position, assignment.end_position, 0.0, 1.0, config.num_points)
        return path_length(unit) <= assignment.distance * ratio

    offsets = [o for o in DETOUR_OFFSETS if o <= config.max_curve_offset]
    regular = _both_sides(arc(o, penalty=o) for o in offsets)
    expanded = _both_sides(arc(o * 1.5, penalty=o * 1.5) for o in offsets)

    def delay_allowance(assignment: Assignment) -> float:
        depth = 1.0 - assignment.start_position.y / config.stage_height
        slack = total - assignment.distance / config.max_human_speed
        return max(0.0, slack * min(1.0, max(0.15, depth)))

    def delays(assignment: Assignment) -> List[float]:
        allowance = delay_allowance(assignment)
        out = []
        d = 0.5
        while d <= allowance + 1e-9:
            out.append(d)
            d += 0.5
        return out

    def linear(assignment, side):
        yield Candidate(LINEAR, *window(assignment, LINEAR, 0.0), phase="linear")

    def offset(assignment, side):
        for shape in regular:
            if within_ratio(assignment, shape, config.max_detour_ratio):
                yield Candidate(shape, *window(assignment, shape, 0.0), phase="offset")

    def delayed(assignment, side):
        for delay in delays(assignment):
            for shape in [LINEAR] + regular:
                if within_ratio(assignment, shape, config.max_detour_ratio):
                    yield Candidate(shape, *window(assignment, shape, delay), phase="delayed")

    def expanded_offsets(assignment, side):
        for delay in [0.0] + delays(assignment):
            for shape in expanded:
                if within_ratio(assignment, shape, config.max_detour_ratio * 1.3):
                    yield Candidate(shape, *window(assignment, shape, delay), phase="expanded")

    def forced(assignment, side):
        if side is None:
            yield Candidate(LINEAR, 0.0, total, "forced")
        else:
            widest = (offsets[-1] if offsets else DETOUR_OFFSETS[0]) * 1.5
            for scale in FALLBACK_SCALES:
                candidate = Candidate(arc(widest * scale * side, penalty=widest * scale), 0.0, total, "forced")
                yield speed_fitted(candidate, assignment, config)

    return [
        CandidatePhase("linear", 0, linear, first_fit=True),
        CandidatePhase("offset", 1, offset, first_fit=True),
        CandidatePhase("delayed", 2, delayed, first_fit=True),
        CandidatePhase("expanded", 3, expanded_offsets, first_fit=True),
        CandidatePhase("forced", 4, forced, accept_colliding=True),
    ]


def build_phases(config: HybridConfig) -> List[CandidatePhase]:
    variant = HybridVariant(config.variant)
    if variant == HybridVariant.CUBIC:
        return cubic_phases(config)
    if variant == HybridVariant.DETOUR:
        return detour_phases(config)
    return arc_phases(config)


def repair_candidates(assignment: Assignment, config: HybridConfig, side: Optional[int]) -> List[Candidate]:
    """Extreme curves, largest first, for a dancer the repair search could not clear."""
    total = config.total_counts
    sign = forced_side(assignment, side)
    out = []
    for scale in FALLBACK_SCALES:
        if HybridVariant(config.variant) == HybridVariant.CUBIC:
            o = FORCED_CUBIC * scale * sign
            candidate = Candidate(bow(o, o, "forced", 5.0), 0.0, total, "repair")
        else:
            o = REPAIR_ARC * scale
            candidate = Candidate(arc(o * sign, penalty=o), REPAIR_ARC_DELAY * total, total, "repair")
        out.append(speed_fitted(candidate, assignment, config))
    return out
