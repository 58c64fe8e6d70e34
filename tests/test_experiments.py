import csv
from pathlib import Path

import matplotlib.pyplot as plt

from formation_planner.assignment import AssignmentMode, solve_assignment
from formation_planner.candidates import CandidateGeneratorConfig, generate_candidates
from formation_planner.loader import load_scenario
from formation_planner.strategies import Strategy, plan_paths
from formation_planner.utils.experiments import (
    print_results_summary,
    run_all_experiments,
    run_experiment,
    save_results_csv,
)
from formation_planner.utils.plotting import plot_candidate_metrics, plot_separation
from formation_planner.visualization import plot_snapshot, plot_trajectories


SCENARIOS_DIR = Path(__file__).resolve().parent.parent / "scenarios"


def test_run_experiment_saves_plots(tmp_path):
    result = run_experiment(
        SCENARIOS_DIR / "head_on_swap.txt", Strategy.HYBRID, AssignmentMode.FIXED, output_dir=tmp_path, verbose=False
    )

    assert result.scenario_name == "head_on_swap.txt"
    assert result.strategy == "hybrid"
    assert result.n_dancers == 2
    assert result.valid and result.collisions == 0
    assert (tmp_path / "head_on_swap_hybrid_paths.png").exists()
    assert (tmp_path / "head_on_swap_hybrid_separation.png").exists()


def test_run_all_experiments_and_csv(tmp_path, capsys):
    results = run_all_experiments(
        SCENARIOS_DIR, strategies=[Strategy.SIMPLE], save_plots=False, verbose=False
    )
    assert len(results) == len(list(SCENARIOS_DIR.glob("*.txt")))

    csv_path = tmp_path / "results.csv"
    save_results_csv(results, csv_path)
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == len(results)
    assert rows[0]["strategy"] == "simple"

    print_results_summary(results)
    assert "FORMATION PLANNING RESULTS SUMMARY" in capsys.readouterr().out


def test_plots_write_files(tmp_path):
    scenario = load_scenario(SCENARIOS_DIR / "line_to_v.txt")
    paths = plan_paths(Strategy.SIMPLE, solve_assignment(scenario.starts, scenario.ends))

    fig, _ = plot_trajectories(scenario, paths, save_to=tmp_path / "paths.png", show=False)
    plt.close(fig)
    fig, _ = plot_snapshot(scenario, paths, 4.0, save_to=tmp_path / "snapshot.png", show=False)
    plt.close(fig)
    plot_separation(paths, scenario.collision_radius, scenario.total_counts, scenario.name, tmp_path / "sep.png")

    candidates = generate_candidates(
        scenario.starts, scenario.ends, CandidateGeneratorConfig(strategies=("synchronized_arrival", "staggered_wave"))
    )
    plot_candidate_metrics(candidates, scenario.name, tmp_path / "candidates.png")

    for name in ("paths.png", "snapshot.png", "sep.png", "candidates.png"):
        assert (tmp_path / name).exists()
