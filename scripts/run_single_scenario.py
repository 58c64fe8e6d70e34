"""Run a single scenario with one strategy (edit config at top)."""
import sys
from pathlib import Path

_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from formation_planner.log import configure_logging
from formation_planner.strategies import Strategy
from formation_planner.utils.experiments import run_experiment

# Edit: which scenario (index into the sorted scenario files) and strategy
SCENARIO_INDEX = 0
STRATEGY = Strategy.HYBRID
OUTPUT_DIR = _project_root / "output" / "results"
SAVE_PLOTS = True
LOG_LEVEL = "INFO"

def main():
    configure_logging(LOG_LEVEL)
    scenarios_dir = _project_root / "scenarios"
    scenario_files = sorted(scenarios_dir.glob("*.txt"))
    if not scenario_files or SCENARIO_INDEX < 0 or SCENARIO_INDEX >= len(scenario_files):
        print(f"SCENARIO_INDEX must be 0..{len(scenario_files) - 1}")
        return
    scenario_path = scenario_files[SCENARIO_INDEX]
    print("=" * 50)
    print(f"Scenario: {scenario_path.name}")
    print("=" * 50)
    result = run_experiment(
        scenario_path,
        STRATEGY,
        output_dir=OUTPUT_DIR if SAVE_PLOTS else None,
        save_plots=SAVE_PLOTS,
        verbose=True,
    )
    print("\nDone.")
    return result

if __name__ == "__main__":
    main()
