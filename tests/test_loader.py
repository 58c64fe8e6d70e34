from pathlib import Path

import pytest

from formation_planner.loader import (
    ScenarioParseError,
    ScenarioValidationError,
    load_scenario,
    load_scenarios,
)
from formation_planner.models import Position


SCENARIOS_DIR = Path(__file__).resolve().parent.parent / "scenarios"


def write(tmp_path, text, name="case.txt"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_load_scenario(tmp_path):
    path = write(tmp_path, "# Swap\n12 10 8 0.5 2\n0 0 10 0   # front pair\n10 0 0 0\n", "swap.txt")
    scenario = load_scenario(path)

    assert scenario.name == "swap"
    assert scenario.description == "Swap"
    assert (scenario.stage_width, scenario.stage_height) == (12, 10)
    assert scenario.total_counts == 8
    assert scenario.collision_radius == 0.5
    assert scenario.starts == [Position(0, 0), Position(10, 0)]
    assert scenario.ends == [Position(10, 0), Position(0, 0)]
    assert scenario.n_dancers == 2
    assert scenario.bounds == (0, 0, 12, 10)


def test_bundled_scenarios_load():
    scenarios = load_scenarios(SCENARIOS_DIR)
    names = [s.name for s in scenarios]

    assert names == sorted(names)
    assert {"head_on_swap", "line_to_v", "hold_still"} <= set(names)
    for scenario in scenarios:
        assert len(scenario.starts) == len(scenario.ends)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "# only a comment\n",
        "12 10 8 0.5",
        "12 10 8 0.5 2\n0 0 10 0\n",
        "12 10 8 0.5 1.5\n0 0 1 1\n",
        "12 10 8 0.5 1\n0 zero 1 1\n",
        "12 10 8 0.5 1\n0 nan 1 1\n",
    ],
)
def test_parse_errors(tmp_path, text):
    with pytest.raises(ScenarioParseError):
        load_scenario(write(tmp_path, text))


def test_missing_file_is_a_parse_error(tmp_path):
    with pytest.raises(ScenarioParseError):
        load_scenario(tmp_path / "nope.txt")


@pytest.mark.parametrize(
    "text",
    [
        "0 10 8 0.5 1\n0 0 1 1\n",
        "12 -1 8 0.5 1\n0 0 1 1\n",
        "12 10 0 0.5 1\n0 0 1 1\n",
        "12 10 8 -0.5 1\n0 0 1 1\n",
        "12 10 8 0.5 1\n13 0 1 1\n",
        "12 10 8 0.5 1\n0 0 1 11\n",
        "12 10 8 0.5 2\n0 0 1 1\n0.5 0 5 5\n",
    ],
)
def test_validation_errors(tmp_path, text):
    with pytest.raises(ScenarioValidationError):
        load_scenario(write(tmp_path, text))
