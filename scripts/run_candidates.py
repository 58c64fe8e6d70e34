"""Generate ranked candidates for one scenario and print them."""
import argparse
import sys
from pathlib import Path

_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import matplotlib.pyplot as plt

from formation_planner.assignment import AssignmentMode
from formation_planner.candidates import (
    DEFAULT_RECIPES,
    RECIPES,
    CandidateGeneratorConfig,
    generate_candidates,
    summarize_candidates,
)
from formation_planner.loader import load_scenario
from formation_planner.log import configure_logging
from formation_planner.utils.plotting import plot_candidate_metrics
from formation_planner.visualization import plot_trajectories


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("scenario", type=Path, help="Scenario file")
    parser.add_argument("--recipes", nargs="+", choices=sorted(RECIPES), default=list(DEFAULT_RECIPES))
    parser.add_argument(
        "--assignment", choices=[m.value for m in AssignmentMode], default=AssignmentMode.FIXED.value,
    )
    parser.add_argument("--output", type=Path, default=None, help="Save plots to this directory")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(args.log_level)
    scenario = load_scenario(args.scenario)
    config = CandidateGeneratorConfig(
        strategies=tuple(args.recipes),
        total_counts=scenario.total_counts,
        collision_radius=scenario.collision_radius,
        stage_width=scenario.stage_width,
        stage_height=scenario.stage_height,
        assignment_mode=AssignmentMode(args.assignment),
    )
    candidates = generate_candidates(scenario.starts, scenario.ends, config)

    header = (f"{'#':>2} {'Candidate':<24} {'Coll':>5} {'Cross':>6} {'Sym':>4} {'Smooth':>7} "
              f"{'Arrive':>7} {'Dist':>8} {'Conv':>5}")
    print(header)
    print("-" * len(header))
    for rank, row in enumerate(summarize_candidates(candidates), start=1):
        print(f"{rank:>2} {row['id']:<24} {row['collisions']:>5} {row['crossings']:>6} {row['symmetry']:>4} "
              f"{row['smoothness']:>7} {row['simultaneous_arrival']:>7} {row['total_distance']:>8.2f} "
              f"{'Yes' if row['converged'] else 'No':>5}")

    if args.output and candidates:
        args.output.mkdir(parents=True, exist_ok=True)
        plot_candidate_metrics(candidates, scenario.name, args.output / f"{scenario.name}_candidates.png")
        best = candidates[0]
        fig, _ = plot_trajectories(
            scenario, best.paths, title=f"{scenario.name} - {best.id}",
            save_to=args.output / f"{scenario.name}_{best.id}.png", show=False,
        )
        plt.close(fig)
        print(f"\nSaved plots to {args.output}")


if __name__ == "__main__":
    main()
