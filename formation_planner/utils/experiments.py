"""Experiment utilities for running strategies over scenario files."""

import csv
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt

from ..assignment import AssignmentMode, solve_assignment
from ..geometry import count_crossings, max_segment_speed, path_length
from ..loader import load_scenario
from ..strategies import Strategy, default_config, run_strategy
from ..validation import validate
from ..visualization import plot_trajectories
from .plotting import plot_separation


@dataclass
class ExperimentResult:
    scenario_name: str
    strategy: str
    n_dancers: int
    collisions: int
    crossings: int
    total_distance: float
    max_speed: float
    cpu_time: float
    converged: bool
    valid: bool
    iterations: int = 0


def run_experiment(
    scenario_path: Path,
    strategy: Strategy,
    assignment_mode: AssignmentMode = AssignmentMode.OPTIMAL,
    output_dir: Optional[Path] = None,
    save_plots: bool = True,
    verbose: bool = True,
) -> ExperimentResult:
    strategy = Strategy(strategy)
    scenario_id = scenario_path.stem

    if verbose:
        print(f"\nProcessing {scenario_path.name} with {strategy.value}...")

    # Load scenario
    scenario = load_scenario(scenario_path)

    if verbose:
        print(f"  Stage: {scenario.stage_width} x {scenario.stage_height}")
        print(f"  Dancers: {scenario.n_dancers}")
        print(f"  Counts: {scenario.total_counts}, collision radius: {scenario.collision_radius}")

    assignments = solve_assignment(scenario.starts, scenario.ends, assignment_mode)
    config = replace(
        default_config(strategy),
        total_counts=scenario.total_counts,
        collision_radius=scenario.collision_radius,
        stage_width=scenario.stage_width,
        stage_height=scenario.stage_height,
    )
    result = run_strategy(strategy, assignments, config)
    report = validate(
        result.paths,
        scenario.collision_radius,
        scenario.total_counts,
        max_speed=config.max_human_speed,
        assignments=assignments,
    )

    crossings = 0
    for i in range(len(result.paths)):
        for j in range(i + 1, len(result.paths)):
            crossings += count_crossings(result.paths[i].path, result.paths[j].path)
    fastest = max((max_segment_speed(p.path) for p in result.paths), default=0.0)

    if verbose:
        print(f"  Converged: {result.converged}")
        print(f"  Iterations: {result.iterations}")
        print(f"  CPU Time: {result.cpu_time:.3f}s")
        print(f"  Collisions: {len(report.collisions)}")
        print(f"  Crossings: {crossings}")
        print(f"  Max speed: {fastest:.2f}")
        for collision in report.collisions:
            print(f"  Collision: dancers {collision.dancer_a}-{collision.dancer_b} at t={collision.time:.2f} (WARNING)")

    # Save plots
    if save_plots and output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

        path_plot_file = output_dir / f"{scenario_id}_{strategy.value}_paths.png"
        fig, _ = plot_trajectories(
            scenario,
            result.paths,
            collisions=report.collisions,
            title=f"{scenario_id} - {strategy.value}",
            save_to=path_plot_file,
            show=False,
        )
        plt.close(fig)
        if verbose:
            print(f"  Saved: {path_plot_file.name}")

        sep_plot_file = output_dir / f"{scenario_id}_{strategy.value}_separation.png"
        plot_separation(
            result.paths, scenario.collision_radius, scenario.total_counts, scenario_id, sep_plot_file
        )
        if verbose:
            print(f"  Saved: {sep_plot_file.name}")

    return ExperimentResult(
        scenario_name=scenario_path.name,
        strategy=strategy.value,
        n_dancers=scenario.n_dancers,
        collisions=len(report.collisions),
        crossings=crossings,
        total_distance=sum(path_length(p.path) for p in result.paths),
        max_speed=fastest,
        cpu_time=result.cpu_time,
        converged=result.converged,
        valid=report.valid,
        iterations=result.iterations,
    )


def run_all_experiments(
    scenarios_dir: Path,
    strategies: Optional[Sequence[Strategy]] = None,
    assignment_mode: AssignmentMode = AssignmentMode.OPTIMAL,
    output_dir: Optional[Path] = None,
    save_plots: bool = True,
    verbose: bool = True,
) -> List[ExperimentResult]:
    """Run every strategy on all scenarios in a directory.

    Args:
        scenarios_dir: Directory containing scenario files.
        strategies: Strategies to run. If None, runs all of them.
        assignment_mode: Start -> end mapping mode.
        output_dir: Directory to save output files.
        save_plots: Whether to save plots.
        verbose: Whether to print progress.

    Returns:
        List of ExperimentResult, one per (scenario, strategy).
    """
    scenario_files = sorted(scenarios_dir.glob("*.txt"))
    strategies = list(strategies) if strategies else list(Strategy)

    if verbose:
        print(f"Found {len(scenario_files)} scenarios: {[f.stem for f in scenario_files]}")
        print(f"Strategies: {[Strategy(s).value for s in strategies]}")

    results = []
    for scenario_file in scenario_files:
        for strategy in strategies:
            result = run_experiment(
                scenario_file, strategy, assignment_mode, output_dir, save_plots, verbose
            )
            results.append(result)

    if verbose:
        print(f"\n{'='*60}")
        print(f"Completed {len(results)} experiments.")
        valid = [r for r in results if r.valid]
        print(f"Collision-free: {len(valid)}/{len(results)}")
        if valid:
            fastest = min(valid, key=lambda r: r.cpu_time)
            print(f"Fastest collision-free run: {fastest.strategy} on {fastest.scenario_name} "
                  f"({fastest.cpu_time:.3f}s)")

    return results


def save_results_csv(
    results: List[ExperimentResult],
    output_path: Path,
) -> None:
    """Save experiment results to CSV file."""
    if not results:
        return

    fieldnames = [
        "scenario_name", "strategy", "n_dancers", "collisions", "crossings",
        "total_distance", "max_speed", "cpu_time", "converged", "valid", "iterations",
    ]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in results:
            writer.writerow(asdict(r))


def print_results_summary(results: List[ExperimentResult]) -> None:
    """Print formatted summary table of results."""
    print("\n" + "=" * 100)
    print("FORMATION PLANNING RESULTS SUMMARY")
    print("=" * 100)
    print()

    # Table header
    header = (f"{'Scenario':<22} {'Strategy':<16} {'N':>3} {'Coll':>5} {'Cross':>6} "
              f"{'Dist':>8} {'MaxV':>6} {'CPU(s)':>8} {'Conv':>5} {'Valid':>6}")
    print(header)
    print("-" * len(header))

    for r in results:
        print(f"{r.scenario_name:<22} {r.strategy:<16} {r.n_dancers:>3} {r.collisions:>5} {r.crossings:>6} "
              f"{r.total_distance:>8.2f} {r.max_speed:>6.2f} {r.cpu_time:>8.3f} "
              f"{'Yes' if r.converged else 'No':>5} {'Yes' if r.valid else 'No':>6}")

    print("-" * len(header))
    print(f"\nTotal runs: {len(results)}")
    print(f"Valid: {sum(1 for r in results if r.valid)}/{len(results)}")
    if results:
        print(f"Avg CPU time: {sum(r.cpu_time for r in results)/len(results):.3f}s")
