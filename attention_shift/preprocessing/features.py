"""
Participant x condition means and condition-level descriptive statistics.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
from scipy import stats

from ..errors import EmptyGroupWarning
from .constants import (
    CI_LEVEL,
    CORRECT_COL,
    ISI_MS_COL,
    OUTLIER_N_SD,
    PARTICIPANT_COL,
    TARGET_COL,
)

MEAN_COL = "mean_ISI_ms"

MEANS_COLUMNS = [PARTICIPANT_COL, TARGET_COL, MEAN_COL, "n_trials", "accuracy"]
SUMMARY_COLUMNS = [
    TARGET_COL,
    "n",
    "mean",
    "sd",
    "se",
    "se_between",
    "ci",
    "lower_bound",
    "upper_bound",
    "accuracy",
]


def _missing_cells(clean: pd.DataFrame, means: pd.DataFrame) -> list[tuple[str, object]]:
    participants = pd.unique(clean[PARTICIPANT_COL].astype(str))
    levels = pd.unique(clean[TARGET_COL].dropna())
    present = set(zip(means[PARTICIPANT_COL].astype(str), means[TARGET_COL]))
    return [(pid, level) for pid in participants for level in levels if (pid, level) not in present]


def participant_condition_means(clean: pd.DataFrame, warn_empty: bool = True) -> pd.DataFrame:
    """
    Arithmetic mean ISI_ms per (participant, target_index) cell.

    Cells without trials are left out rather than imputed; when any exist an
    EmptyGroupWarning lists them.
    """
    if clean.empty:
        return pd.DataFrame(columns=MEANS_COLUMNS)

    grouped = clean.groupby([PARTICIPANT_COL, TARGET_COL], observed=True)
    aggs = {
        MEAN_COL: (ISI_MS_COL, "mean"),
        "n_trials": (ISI_MS_COL, "size"),
    }
    if CORRECT_COL in clean.columns:
        aggs["accuracy"] = (CORRECT_COL, "mean")
    means = grouped.agg(**aggs).reset_index()
    if "accuracy" not in means.columns:
        means["accuracy"] = np.nan

    if warn_empty:
        missing = _missing_cells(clean, means)
        if missing:
            preview = ", ".join(f"{pid}/{level}" for pid, level in missing[:5])
            more = f" (+{len(missing) - 5} more)" if len(missing) > 5 else ""
            warnings.warn(
                f"{len(missing)} participant x condition cells have no qualifying trials: {preview}{more}",
                EmptyGroupWarning,
                stacklevel=2,
            )
    return means[MEANS_COLUMNS]


def within_subject_se(means: pd.DataFrame) -> pd.Series:
    """
    Morey (2008) corrected within-subject standard error per condition.

    Each participant's condition means are centred on their own mean across
    conditions and shifted back by the grand mean; the SD of those normed
    values is scaled by sqrt(k / (k - 1)) and divided by sqrt(n).
    Undefined (NaN) with fewer than two conditions or participants.
    """
    if means.empty:
        return pd.Series(dtype=float, name="se")

    k = int(means[TARGET_COL].nunique())
    subject_mean = means.groupby(PARTICIPANT_COL, observed=True)[MEAN_COL].transform("mean")
    grand_mean = means[MEAN_COL].mean()
    normed = means[MEAN_COL] - subject_mean + grand_mean

    by_level = normed.groupby(means[TARGET_COL], observed=True)
    sd_normed = by_level.std(ddof=1)
    n = by_level.count()
    correction = np.sqrt(k / (k - 1)) if k > 1 else np.nan
    return (sd_normed * correction / np.sqrt(n)).rename("se")


def summarize_conditions(
    means: pd.DataFrame,
    n_sd: float = OUTLIER_N_SD,
    ci_level: float = CI_LEVEL,
) -> pd.DataFrame:
    """
    One row per target_index: n, mean and SD of participant means,
    within-subject SE and CI half-width, and the mean +/- n_sd * SD band.
    """
    if means.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    grouped = means.groupby(TARGET_COL, observed=True)
    summary = grouped[MEAN_COL].agg(n="count", mean="mean", sd="std").reset_index()
    if "accuracy" in means.columns:
        summary["accuracy"] = grouped["accuracy"].mean().to_numpy()
    else:
        summary["accuracy"] = np.nan

    se = within_subject_se(means).reset_index()
    summary = summary.merge(se, on=TARGET_COL, how="left")

    n = summary["n"].astype(float)
    summary["se_between"] = summary["sd"] / np.sqrt(n)
    dof = np.where(n >= 2, n - 1, np.nan)
    t_crit = stats.t.ppf((1 + ci_level) / 2, dof)
    summary["ci"] = summary["se"] * t_crit
    summary["lower_bound"] = summary["mean"] - n_sd * summary["sd"]
    summary["upper_bound"] = summary["mean"] + n_sd * summary["sd"]
    summary["n"] = summary["n"].astype(int)
    return summary[SUMMARY_COLUMNS]
