"""Utility functions for experiments and plotting."""

from .experiments import (
    ExperimentResult,
    run_experiment,
    run_all_experiments,
    save_results_csv,
    print_results_summary,
)
from .plotting import plot_candidate_metrics, plot_separation

__all__ = [
    "ExperimentResult",
    "run_experiment",
    "run_all_experiments",
    "save_results_csv",
    "print_results_summary",
    "plot_candidate_metrics",
    "plot_separation",
]
