import os
from pathlib import Path
from typing import Mapping, Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402

from swarmshop.models import Schedule  # noqa: E402


def _ensure_dir(path: str):
    if path:
        os.makedirs(path, exist_ok=True)


def plot_gantt(
    schedule: Schedule,
    save_path: str | Path,
    title: Optional[str] = None,
    show_legend: Optional[bool] = None,
) -> str:
    """Draw one row per machine with bars coloured by job and save as PNG.

    Each bar is labelled ``job/position`` (1-based). Figure size adapts to
    the number of machines; the legend is dropped for more than 40 jobs
    unless forced.

    Returns:
        The path the chart was written to.
    """
    by_machine = schedule.by_machine()
    machines = max(by_machine) + 1 if by_machine else 1
    jobs = max((r.job for r in schedule.operations), default=0) + 1

    fig, ax = plt.subplots(
        figsize=(min(10 + jobs * 0.1, 18), min(0.5 * machines + 2, 16)),
        constrained_layout=True,
    )
    cmap = plt.get_cmap("tab20")
    colors = [cmap(j % 20) for j in range(jobs)]
    for machine, rows in by_machine.items():
        for r in rows:
            ax.barh(
                machine,
                r.duration,
                left=r.start,
                height=0.8,
                color=colors[r.job],
                alpha=0.85,
                edgecolor="black",
                linewidth=0.6,
            )
            ax.text(
                r.start + r.duration / 2,
                machine,
                f"{r.job + 1}/{r.operation_index + 1}",
                ha="center",
                va="center",
                fontsize=7,
            )
    ax.set_xlabel("Time", fontsize=12)
    ax.set_ylabel("Machine", fontsize=12)
    ax.set_title(title or f"Gantt Chart - makespan = {schedule.makespan}", fontsize=14, fontweight="bold")
    ax.set_yticks(range(machines))
    ax.set_yticklabels([f"M{i + 1}" for i in range(machines)])
    ax.grid(True, alpha=0.25, axis="x", linestyle="--", linewidth=0.7)
    ax.set_ylim(-0.5, machines - 0.5)

    if show_legend is None:
        show_legend = jobs <= 40
    if show_legend:
        legend_elements = [
            plt.Rectangle(
                (0, 0), 1, 1, facecolor=colors[j], alpha=0.85, edgecolor="black", label=f"Job {j + 1}"
            )
            for j in range(jobs)
        ]
        ax.legend(
            handles=legend_elements,
            bbox_to_anchor=(1.02, 1),
            loc="upper left",
            borderaxespad=0.0,
            fontsize=8,
            frameon=False,
            ncol=1 if jobs <= 25 else 2,
        )

    save_path = str(save_path)
    _ensure_dir(os.path.dirname(save_path))
    fig.savefig(save_path, dpi=180)
    plt.close(fig)
    return save_path


def plot_convergence(
    histories: Mapping[str, Sequence[float]],
    save_path: str | Path,
    title: str = "Best makespan per iteration",
) -> str:
    """Plot the best-so-far makespan curve of every engine on one chart."""
    fig, ax = plt.subplots(figsize=(10, 6), constrained_layout=True)
    for label, values in histories.items():
        if not values:
            continue
        ax.plot(range(1, len(values) + 1), list(values), label=label, linewidth=1.5)
        ax.annotate(
            f"{values[-1]:.0f}",
            xy=(len(values), values[-1]),
            xytext=(6, -10),
            textcoords="offset points",
            fontsize=9,
            bbox=dict(boxstyle="round,pad=0.2", facecolor="white", alpha=0.55),
        )
    ax.set_xlabel("Iteration", fontsize=12)
    ax.set_ylabel("Makespan", fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.grid(True, alpha=0.3, linestyle="--")
    if histories:
        ax.legend(loc="upper right", fontsize=8, frameon=False)
    save_path = str(save_path)
    _ensure_dir(os.path.dirname(save_path))
    fig.savefig(save_path, dpi=150)
    plt.close(fig)
    return save_path
