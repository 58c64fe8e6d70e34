"""Run one scenario with several strategies; print comparison and save CSV."""
import argparse
import sys
from pathlib import Path

_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from formation_planner.assignment import AssignmentMode
from formation_planner.log import configure_logging
from formation_planner.strategies import Strategy
from formation_planner.utils.experiments import print_results_summary, run_experiment, save_results_csv


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("scenario", type=Path, help="Scenario file")
    parser.add_argument(
        "--strategies", nargs="+", choices=[s.value for s in Strategy],
        default=[s.value for s in Strategy], help="Strategies to compare",
    )
    parser.add_argument(
        "--assignment", choices=[m.value for m in AssignmentMode], default=AssignmentMode.OPTIMAL.value,
    )
    parser.add_argument("--output", type=Path, default=None, help="Output directory")
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level)
    output_dir = args.output or _project_root / "output" / args.scenario.stem

    print("=" * 55)
    print(f"Scenario: {args.scenario.name}")
    print("=" * 55)
    results = []
    for name in args.strategies:
        results.append(run_experiment(
            args.scenario,
            Strategy(name),
            AssignmentMode(args.assignment),
            output_dir=output_dir,
            save_plots=not args.no_plots,
            verbose=False,
        ))

    print_results_summary(results)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / "comparison.csv"
    save_results_csv(results, csv_path)
    print(f"\nSaved: {csv_path}")


if __name__ == "__main__":
    main()
