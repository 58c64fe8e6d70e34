"""Main entry point for the formation planner experiments."""
import argparse
from pathlib import Path

from .log import configure_logging
from .strategies import Strategy
from .utils.experiments import print_results_summary, run_all_experiments, save_results_csv


def main():
    parser = argparse.ArgumentParser(description="Run every strategy on every scenario file")
    parser.add_argument("--scenarios", type=Path, default=None, help="Scenario directory")
    parser.add_argument("--output", type=Path, default=None, help="Output directory")
    parser.add_argument(
        "--strategies", nargs="+", choices=[s.value for s in Strategy], default=None,
        help="Strategies to run (default: all)",
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip PNG output")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    configure_logging(args.log_level)

    print("Formation Planner - Multi-Dancer Trajectory Planning")
    print("=" * 52)

    # Configuration
    base_dir = Path(__file__).parent.parent
    scenarios_dir = args.scenarios or base_dir / "scenarios"
    output_dir = args.output or base_dir / "output/results"

    print(f"Running experiments from {scenarios_dir}...")
    results = run_all_experiments(
        scenarios_dir=scenarios_dir,
        strategies=args.strategies,
        output_dir=output_dir,
        save_plots=not args.no_plots,
    )

    print_results_summary(results)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / "results.csv"
    save_results_csv(results, csv_path)
    print(f"\nResults saved to {csv_path}")
    print("\nAll experiments completed.")


if __name__ == "__main__":
    main()
