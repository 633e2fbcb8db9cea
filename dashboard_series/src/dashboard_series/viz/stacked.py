from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from dashboard_series.report.assemble import RenderSeries
from dashboard_series.viz.common import save_figure


def plot_stacked_series(series: RenderSeries, output_path: Path, title: str = "") -> Path:
    """Preview a stacked monthly chart; months carrying events get a marker above the bar."""
    fig, ax = plt.subplots(figsize=(12, 5))
    positions = np.arange(len(series.labels))
    bottom = np.zeros(len(series.labels), dtype=float)

    for dataset in series.datasets:
        values = np.asarray(dataset.values, dtype=float)
        ax.bar(positions, values, bottom=bottom, color=dataset.color, label=dataset.label)
        bottom = bottom + values

    flagged = [index for index, emphasis in enumerate(series.emphasis) if emphasis]
    if flagged:
        ax.scatter(
            positions[flagged],
            bottom[flagged],
            marker="v",
            color="#D55E00",
            zorder=3,
            label="Events",
        )

    if series.is_empty:
        ax.text(0.5, 0.5, "No data", transform=ax.transAxes, ha="center", va="center")

    ax.set_xticks(positions)
    ax.set_xticklabels(series.labels, rotation=45, ha="right")
    ax.set_title(title or "Monthly totals")
    if series.datasets:
        # Legend reads top-down, matching the stack.
        handles, labels = ax.get_legend_handles_labels()
        ax.legend(handles[::-1], labels[::-1], loc="upper left", bbox_to_anchor=(1.0, 1.0))
    return save_figure(fig, output_path)
