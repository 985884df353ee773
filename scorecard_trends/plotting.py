"""
Visualization of standardized search interest around the Scorecard release.
"""

from datetime import date
from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")  # Use non-interactive backend for server/CI environments

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .config import EVENT_DATE

# Plot style configuration
PLOT_STYLE = {
    "figure.figsize": (12, 6),
    "font.size": 12,
    "axes.titlesize": 16,
    "axes.labelsize": 12,
    "xtick.labelsize": 10,
    "ytick.labelsize": 10,
}

GROUP_COLORS = {
    "High earnings": "#d62728",  # Red
    "Low earnings": "#1f77b4",  # Blue
}


def setup_plot_style():
    """Apply consistent plot styling."""
    plt.rcParams.update(PLOT_STYLE)
    sns.set_style("whitegrid")


def weekly_group_means(final: pd.DataFrame) -> pd.DataFrame:
    """
    Mean standardized index per week and earnings group.

    Returns:
        DataFrame with columns: week_start_date, group, standardized_index
    """
    means = (
        final.groupby(["week_start_date", "high_earnings"], as_index=False)["standardized_index"]
        .mean()
    )
    means["group"] = means["high_earnings"].map({True: "High earnings", False: "Low earnings"})
    return means[["week_start_date", "group", "standardized_index"]]


def plot_group_trends(
    final: pd.DataFrame,
    event_date: date = EVENT_DATE,
    output_path: Optional[Path] = None,
    show: bool = False,
    title: str = "Search Interest by Graduate Earnings",
) -> Optional[Path]:
    """
    Plot weekly mean standardized index by earnings group.

    A dashed vertical line marks the Scorecard release.

    Args:
        final: FinalRecord table
        event_date: Date of the vertical marker
        output_path: Optional output file path
        show: Whether to display the plot
        title: Plot title

    Returns:
        Output path if saved, None otherwise
    """
    if final.empty:
        print("No data to plot")
        return None

    setup_plot_style()

    fig, ax = plt.subplots(figsize=(12, 6))

    sns.lineplot(
        data=weekly_group_means(final),
        x="week_start_date",
        y="standardized_index",
        hue="group",
        palette=GROUP_COLORS,
        linewidth=2,
        ax=ax,
    )

    ax.axvline(
        pd.Timestamp(event_date),
        color="gray",
        linestyle="--",
        linewidth=1.5,
        label="Scorecard release",
    )
    ax.axhline(y=0, color="gray", linestyle=":", alpha=0.5)

    ax.set_xlabel("Week", fontsize=12)
    ax.set_ylabel("Standardized search index", fontsize=12)
    ax.set_title(title, fontsize=16)
    ax.legend(loc="best")

    plt.tight_layout()

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return output_path

    if show:
        plt.show()

    plt.close(fig)
    return None
