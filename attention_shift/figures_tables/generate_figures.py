"""Condition-level figures for the attention-shift thresholds.

condition_means_bar.png: mean threshold ISI per target_index with
    within-subject 95% CI error bars
condition_boxplots.png: participant means per target_index with the
    mean +/- 3 SD outlier band marked
"""
from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from attention_shift.analysis.utils import plain_factors
from attention_shift.preprocessing.constants import TARGET_COL
from attention_shift.preprocessing.features import MEAN_COL

plt.rcParams["font.family"] = ["DejaVu Sans", "Arial", "sans-serif"]
plt.rcParams["font.size"] = 10

BAR_COLOR = "#4C72B0"
OUTLIER_COLOR = "#C44E52"


def plot_condition_means(summary: pd.DataFrame, output_path: Path) -> Path:
    """Bar chart of condition means with within-subject CI error bars."""
    summary = plain_factors(summary)
    labels = summary[TARGET_COL].astype(str).tolist()
    x = np.arange(len(labels))

    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.bar(x, summary["mean"], color=BAR_COLOR, alpha=0.85, width=0.6)
    ax.errorbar(
        x,
        summary["mean"],
        yerr=summary["ci"].fillna(0.0),
        fmt="none",
        ecolor="black",
        elinewidth=1.2,
        capsize=5,
    )
    for xi, n in zip(x, summary["n"]):
        ax.text(xi, 0, f"n={n}", ha="center", va="bottom", fontsize=8, color="white")

    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_xlabel("Target index")
    ax.set_ylabel("Threshold ISI (ms)")
    ax.set_title("Mean threshold ISI by target (95% within-subject CI)")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    return output_path


def plot_condition_boxplots(means: pd.DataFrame, summary: pd.DataFrame, output_path: Path) -> Path:
    """Boxplots of participant means with the outlier thresholds per condition."""
    means = plain_factors(means)
    summary = plain_factors(summary)
    order = summary[TARGET_COL].tolist()
    means[TARGET_COL] = pd.Categorical(means[TARGET_COL], categories=order)

    fig, ax = plt.subplots(figsize=(7, 4.5))
    sns.boxplot(data=means, x=TARGET_COL, y=MEAN_COL, order=order, color="#DDDDDD", showfliers=False, ax=ax)
    sns.stripplot(data=means, x=TARGET_COL, y=MEAN_COL, order=order, color=BAR_COLOR, size=4, alpha=0.7, ax=ax)

    for pos, row in enumerate(summary.itertuples(index=False)):
        for bound in (row.lower_bound, row.upper_bound):
            if pd.notna(bound):
                ax.hlines(bound, pos - 0.4, pos + 0.4, colors=OUTLIER_COLOR, linestyles="--", linewidth=1.2)

    if "is_outlier" in means.columns and means["is_outlier"].any():
        flagged = means[means["is_outlier"]]
        ax.scatter(
            [order.index(level) for level in flagged[TARGET_COL]],
            flagged[MEAN_COL],
            marker="x",
            s=50,
            color=OUTLIER_COLOR,
            zorder=5,
            label="Outlier",
        )
        ax.legend(frameon=False, loc="upper right")

    ax.set_xlabel("Target index")
    ax.set_ylabel("Participant mean ISI (ms)")
    ax.set_title("Participant means by target (dashed: mean ± 3 SD)")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    return output_path


def generate_figures(
    flags: pd.DataFrame,
    summary: pd.DataFrame,
    summary_filtered: pd.DataFrame,
    figures_dir: Path,
    verbose: bool = True,
) -> list[Path]:
    """
    Bar chart from the post-exclusion summary and boxplots of every
    participant against the pre-exclusion bounds.
    """
    paths = []
    if not summary_filtered.empty:
        paths.append(plot_condition_means(summary_filtered, figures_dir / "condition_means_bar.png"))
    if not flags.empty and not summary.empty:
        first_pass = flags[flags["pass"] == flags["pass"].min()] if "pass" in flags.columns else flags
        paths.append(plot_condition_boxplots(first_pass, summary, figures_dir / "condition_boxplots.png"))
    if verbose:
        for path in paths:
            print(f"  [FIGURE] {path}")
    return paths
