from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import matplotlib.patches as patches
from matplotlib.figure import Figure
from matplotlib.axes import Axes

from .geometry import position_at_time
from .models import Collision, DancerPath, FormationScenario


def _stage_axes(width: float, height: float, fontsize: int) -> Tuple[Figure, Axes]:
    fig, ax = plt.subplots(figsize=(10, 10 * height / width))

    # Add padding so dancers at the edges are visible
    padding = max(width, height) * 0.05
    ax.set_xlim(-padding, width + padding)
    ax.set_ylim(-padding, height + padding)
    ax.set_aspect("equal")
    ax.grid(True, alpha=0.3)
    ax.tick_params(axis="both", labelsize=fontsize)

    border = patches.Rectangle(
        (0, 0), width, height,
        linewidth=2,
        edgecolor="black",
        facecolor="none",
    )
    ax.add_patch(border)
    ax.set_xlabel("X", fontsize=fontsize)
    ax.set_ylabel("Y (audience)", fontsize=fontsize)
    return fig, ax


def _finish(fig: Figure, save_to: Optional[str | Path], show: bool) -> None:
    if save_to:
        fig.savefig(save_to, dpi=150, bbox_inches="tight")
    if show:
        plt.show()


def plot_trajectories(
    scenario: FormationScenario,
    paths: Sequence[DancerPath],
    collisions: Optional[List[Collision]] = None,
    title: Optional[str] = None,
    save_to: Optional[str | Path] = None,
    show: bool = True,
) -> Tuple[Figure, Axes]:
    """Plot the stage, every trajectory, start/end markers and collision points."""
    fontsize = 14
    fig, ax = _stage_axes(scenario.stage_width, scenario.stage_height, fontsize)
    cmap = plt.get_cmap("tab20")

    for k, dancer_path in enumerate(paths):
        color = cmap(k % 20)
        xs = [p.x for p in dancer_path.path]
        ys = [p.y for p in dancer_path.path]
        ax.plot(xs, ys, color=color, linewidth=2, zorder=5)
        ax.plot(xs[0], ys[0], marker="o", markersize=10, color=color, zorder=10)
        ax.plot(xs[-1], ys[-1], marker="*", markersize=14, color=color, zorder=10)
        ax.annotate(
            str(dancer_path.dancer_id), (xs[0], ys[0]),
            textcoords="offset points", xytext=(6, 6), fontsize=fontsize - 4,
        )

    by_id = {p.dancer_id: p for p in paths}
    for collision in collisions or []:
        for dancer_id in (collision.dancer_a, collision.dancer_b):
            if dancer_id in by_id:
                at = position_at_time(by_id[dancer_id].path, collision.time)
                ax.add_patch(patches.Circle(
                    (at.x, at.y), scenario.collision_radius,
                    edgecolor="red", facecolor="red", alpha=0.25, zorder=8,
                ))

    ax.set_title(
        title or f"{scenario.name} ({len(paths)} dancers, {scenario.total_counts:g} counts)",
        fontsize=fontsize + 4,
    )
    _finish(fig, save_to, show)
    return fig, ax


def plot_snapshot(
    scenario: FormationScenario,
    paths: Sequence[DancerPath],
    t: float,
    save_to: Optional[str | Path] = None,
    show: bool = True,
) -> Tuple[Figure, Axes]:
    """Dancer bodies (collision-radius disks) at count ``t`` with their trails."""
    fontsize = 14
    fig, ax = _stage_axes(scenario.stage_width, scenario.stage_height, fontsize)
    cmap = plt.get_cmap("tab20")

    for k, dancer_path in enumerate(paths):
        color = cmap(k % 20)
        trail = [p for p in dancer_path.path if p.t <= t]
        if len(trail) >= 2:
            ax.plot([p.x for p in trail], [p.y for p in trail], color=color, linewidth=1, alpha=0.6)
        at = position_at_time(dancer_path.path, t)
        ax.add_patch(patches.Circle(
            (at.x, at.y), scenario.collision_radius,
            edgecolor=color, facecolor=color, alpha=0.5, zorder=10,
        ))
        ax.annotate(str(dancer_path.dancer_id), (at.x, at.y), ha="center", va="center", fontsize=fontsize - 4)

    ax.set_title(f"{scenario.name} at count {t:.2f}", fontsize=fontsize + 4)
    _finish(fig, save_to, show)
    return fig, ax
