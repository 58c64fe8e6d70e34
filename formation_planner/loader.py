import math
from pathlib import Path
from typing import List

from .models import FormationScenario, Position


class ScenarioValidationError(Exception):
    """Raised when scenario validation fails."""
    pass


class ScenarioParseError(Exception):
    """Raised when scenario file cannot be parsed."""
    pass


HEADER_FIELDS = 5


def _point_in_bounds(p: Position, width: float, height: float) -> bool:
    """Check if point is within [0, width] x [0, height]."""
    return 0 <= p.x <= width and 0 <= p.y <= height


def _parse_values(filepath: Path) -> List[float]:
    """Parse file content into list of floats, skipping ``#`` comments."""
    try:
        content = filepath.read_text()
    except FileNotFoundError:
        raise ScenarioParseError(f"File not found: {filepath}")
    except PermissionError:
        raise ScenarioParseError(f"Permission denied: {filepath}")

    lines = [line.split("#", 1)[0] for line in content.splitlines()]
    tokens = " ".join(lines).split()
    if not tokens:
        raise ScenarioParseError(f"File is empty: {filepath}")

    values: List[float] = []
    for i, token in enumerate(tokens):
        try:
            values.append(float(token))
        except ValueError:
            raise ScenarioParseError(
                f"Invalid number at position {i}: '{token}' in {filepath}"
            )
        if not math.isfinite(values[-1]):
            raise ScenarioParseError(f"Non-finite number at position {i}: '{token}' in {filepath}")

    return values


def _read_description(filepath: Path) -> str:
    """First ``#`` comment line of the file, if any."""
    for line in filepath.read_text().splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            return stripped.lstrip("#").strip()
    return ""


def _validate_field_count(values: List[float], filepath: Path) -> int:
    """Validate the header and dancer rows; return the dancer count."""
    if len(values) < HEADER_FIELDS:
        raise ScenarioParseError(
            f"Not enough values in {filepath}: expected at least {HEADER_FIELDS}, got {len(values)}"
        )

    n = values[HEADER_FIELDS - 1]
    if n < 1 or n != int(n):
        raise ScenarioParseError(f"Dancer count must be a positive integer in {filepath}, got {n}")
    n = int(n)

    remaining = len(values) - HEADER_FIELDS
    if remaining != 4 * n:
        raise ScenarioParseError(
            f"Invalid dancer data in {filepath}: expected {4 * n} values for {n} dancers, got {remaining}"
        )
    return n


def _validate_stage(width: float, height: float, total_counts: float) -> None:
    """Validate stage dimensions and window length."""
    if width <= 0:
        raise ScenarioValidationError(f"stage width must be positive, got {width}")
    if height <= 0:
        raise ScenarioValidationError(f"stage height must be positive, got {height}")
    if total_counts <= 0:
        raise ScenarioValidationError(f"total counts must be positive, got {total_counts}")


def _validate_collision_radius(radius: float) -> None:
    """Validate collision radius."""
    if radius < 0:
        raise ScenarioValidationError(f"Collision radius must be non-negative, got {radius}")


def _validate_point_in_bounds(
    p: Position, name: str, width: float, height: float
) -> None:
    """Validate that a point is on the stage."""
    if not _point_in_bounds(p, width, height):
        raise ScenarioValidationError(
            f"{name} ({p.x}, {p.y}) is outside stage bounds [0, {width}] x [0, {height}]"
        )


def _validate_no_overlap(points: List[Position], label: str, radius: float) -> None:
    """Validate that no two dancers of a formation already collide."""
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            gap = math.hypot(points[i].x - points[j].x, points[i].y - points[j].y)
            if gap < 2 * radius:
                raise ScenarioValidationError(
                    f"{label} positions of dancers {i + 1} and {j + 1} overlap "
                    f"(distance {gap:.3f} < {2 * radius:.3f})"
                )


def load_scenario(filepath: str | Path) -> FormationScenario:
    """Load a formation transition from file.

    Args:
        filepath: Path to the scenario file.

    Returns:
        FormationScenario named after the file stem.

    Raises:
        ScenarioParseError: If file cannot be parsed.
        ScenarioValidationError: If validation fails.

    File format (whitespace-separated values, ``#`` starts a comment):
        stage_width stage_height total_counts collision_radius N
        start_x start_y end_x end_y   (N lines, one per dancer)
    """
    filepath = Path(filepath)

    values = _parse_values(filepath)
    n = _validate_field_count(values, filepath)

    width, height, total_counts, radius = values[0], values[1], values[2], values[3]
    starts: List[Position] = []
    ends: List[Position] = []
    i = HEADER_FIELDS
    for _ in range(n):
        starts.append(Position(values[i], values[i + 1]))
        ends.append(Position(values[i + 2], values[i + 3]))
        i += 4

    _validate_stage(width, height, total_counts)
    _validate_collision_radius(radius)

    for k, (start, end) in enumerate(zip(starts, ends), start=1):
        _validate_point_in_bounds(start, f"start{k}", width, height)
        _validate_point_in_bounds(end, f"end{k}", width, height)

    _validate_no_overlap(starts, "start", radius)

    return FormationScenario(
        name=filepath.stem,
        stage_width=width,
        stage_height=height,
        total_counts=total_counts,
        collision_radius=radius,
        starts=starts,
        ends=ends,
        description=_read_description(filepath) or None,
    )


def load_scenarios(directory: str | Path) -> List[FormationScenario]:
    """Load every ``*.txt`` scenario of a directory, sorted by name."""
    return [load_scenario(p) for p in sorted(Path(directory).glob("*.txt"))]
