"""Plotting utilities for experiments."""

from pathlib import Path
from typing import List, Sequence

import matplotlib.pyplot as plt
import numpy as np

from ..geometry import sample_path, sample_times
from ..models import CandidateResult, DancerPath


def plot_separation(
    paths: Sequence[DancerPath],
    collision_radius: float,
    total_counts: float,
    scenario_id: str,
    save_to: Path,
    fontsize: int = 16,
) -> None:
    """Closest pairwise distance over time, against the collision threshold."""
    times = sample_times(total_counts, 0.05)
    fig, ax = plt.subplots(figsize=(10, 6))

    if len(paths) >= 2:
        samples = np.stack([sample_path(p.path, times) for p in paths], axis=1)
        diff = samples[:, :, None, :] - samples[:, None, :, :]
        gaps = np.hypot(diff[..., 0], diff[..., 1])
        n = len(paths)
        gaps[:, np.arange(n), np.arange(n)] = np.inf
        closest = gaps.min(axis=(1, 2))
        ax.plot(times, closest, linewidth=2, color="blue", label="Closest pair")

    threshold = 2 * collision_radius
    ax.axhline(threshold, color="red", linestyle="--", linewidth=1.5, label=f"2R = {threshold:g}")
    ax.set_xlabel("Count", fontsize=fontsize)
    ax.set_ylabel("Minimum separation", fontsize=fontsize)
    ax.set_title(f"Separation - {scenario_id}", fontsize=fontsize + 2)
    ax.tick_params(axis="both", labelsize=fontsize - 2)
    ax.legend(loc="upper right", fontsize=fontsize - 2)
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(save_to, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_candidate_metrics(
    candidates: List[CandidateResult],
    scenario_id: str,
    save_to: Path,
    fontsize: int = 14,
) -> None:
    """Grouped bars of the 0-100 scores of every candidate, collisions on a second axis."""
    if not candidates:
        return
    labels = [c.id for c in candidates]
    x = np.arange(len(candidates))
    width = 0.25
    fig, ax = plt.subplots(figsize=(max(8, 1.2 * len(candidates)), 6))

    ax.bar(x - width, [c.metrics.smoothness for c in candidates], width, label="Smoothness", color="tab:blue")
    ax.bar(x, [c.metrics.simultaneous_arrival for c in candidates], width, label="Arrival", color="tab:green")
    ax.bar(x + width, [c.metrics.symmetry_score for c in candidates], width, label="Symmetry", color="tab:purple")
    ax.set_ylim(0, 105)
    ax.set_ylabel("Score", fontsize=fontsize)

    ax2 = ax.twinx()
    ax2.plot(x, [c.metrics.collision_count for c in candidates], "o-", color="red", label="Collisions")
    ax2.set_ylabel("Collisions", fontsize=fontsize, color="red")
    ax2.tick_params(axis="y", labelcolor="red", labelsize=fontsize - 2)

    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=30, ha="right", fontsize=fontsize - 2)
    ax.set_title(f"Candidates - {scenario_id}", fontsize=fontsize + 2)
    ax.legend(loc="upper left", fontsize=fontsize - 2)
    ax.grid(True, axis="y", alpha=0.3)

    fig.tight_layout()
    fig.savefig(save_to, dpi=150, bbox_inches="tight")
    plt.close(fig)
