import matplotlib

matplotlib.use("Agg")

import pytest

from formation_planner.assignment import solve_assignment
from formation_planner.models import Position


LINE_STARTS = [Position(x, 2.0) for x in (1.0, 2.4, 3.8, 5.2, 6.6, 8.0, 9.4, 10.8)]
V_ENDS = [
    Position(1.5, 3.0),
    Position(2.7, 4.5),
    Position(3.9, 6.0),
    Position(5.1, 7.5),
    Position(6.9, 7.5),
    Position(8.1, 6.0),
    Position(9.3, 4.5),
    Position(10.5, 3.0),
]


@pytest.fixture
def head_on():
    """Two dancers swapping places along the back edge."""
    return solve_assignment([Position(0, 0), Position(10, 0)], [Position(10, 0), Position(0, 0)])


@pytest.fixture
def holding():
    """Four dancers that stay where they are."""
    spots = [Position(2, 2), Position(5, 2), Position(8, 5), Position(3, 7)]
    return solve_assignment(spots, list(spots))


@pytest.fixture
def line_to_v():
    return list(LINE_STARTS), list(V_ENDS)


@pytest.fixture
def bystander():
    """Dancer 1 crosses the stage straight through dancer 2, who stays put."""
    return solve_assignment([Position(1, 5), Position(6, 5)], [Position(11, 5), Position(6, 5)])
