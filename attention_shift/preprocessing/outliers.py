"""
Participant-level outlier exclusion based on condition mean +/- n SD bands.

A participant flagged in any condition is removed from every condition, in
both the means table and the trial table used for inference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Set

import pandas as pd

from .constants import OUTLIER_MAX_PASSES, OUTLIER_N_SD, PARTICIPANT_COL, TARGET_COL
from .features import MEAN_COL, participant_condition_means, summarize_conditions
from .qc import drop_unused_levels


@dataclass
class OutlierCriteria:
    n_sd: float = OUTLIER_N_SD
    max_passes: int = OUTLIER_MAX_PASSES


@dataclass
class OutlierExclusion:
    means: pd.DataFrame
    trials: pd.DataFrame
    flags: pd.DataFrame
    excluded_ids: list[str] = field(default_factory=list)
    n_passes: int = 0
    converged: bool = True
    pending_ids: list[str] = field(default_factory=list)


def flag_outliers(means: pd.DataFrame, summary: pd.DataFrame) -> pd.DataFrame:
    """Attach each condition's bounds to the means and mark rows outside them."""
    bounds = summary[[TARGET_COL, "lower_bound", "upper_bound"]]
    flags = means.merge(bounds, on=TARGET_COL, how="left")
    flags["is_outlier"] = (flags[MEAN_COL] > flags["upper_bound"]) | (
        flags[MEAN_COL] < flags["lower_bound"]
    )
    return flags


def outlier_participants(flags: pd.DataFrame) -> Set[str]:
    if flags.empty:
        return set()
    return set(flags.loc[flags["is_outlier"], PARTICIPANT_COL].astype(str))


def remove_participants(df: pd.DataFrame, participant_ids: Iterable[str]) -> pd.DataFrame:
    participant_ids = set(participant_ids)
    if df.empty or not participant_ids:
        return df.copy()
    keep = ~df[PARTICIPANT_COL].astype(str).isin(participant_ids)
    return drop_unused_levels(df.loc[keep]).reset_index(drop=True)


def check_outlier_convergence(means: pd.DataFrame, n_sd: float = OUTLIER_N_SD) -> Set[str]:
    """
    Participants a further pass would flag once the summary is recomputed
    from `means`. An empty set means the exclusion has converged.
    """
    if means.empty:
        return set()
    summary = summarize_conditions(means, n_sd=n_sd)
    return outlier_participants(flag_outliers(means, summary))


def run_outlier_exclusion(
    trials: pd.DataFrame,
    means: Optional[pd.DataFrame] = None,
    criteria: Optional[OutlierCriteria] = None,
    verbose: bool = False,
) -> OutlierExclusion:
    """
    Flag and remove outlier participants from the means and trial tables.

    Runs up to `criteria.max_passes` passes, recomputing condition bounds
    from the surviving participants before each one. The result records
    whether a further pass would still flag anyone (`converged`,
    `pending_ids`).
    """
    if criteria is None:
        criteria = OutlierCriteria()
    if criteria.max_passes < 1:
        raise ValueError(f"max_passes must be >= 1, got {criteria.max_passes}")
    if means is None:
        means = participant_condition_means(trials, warn_empty=False)

    excluded: list[str] = []
    flag_frames: list[pd.DataFrame] = []
    n_passes = 0

    for pass_idx in range(1, criteria.max_passes + 1):
        if means.empty:
            break
        summary = summarize_conditions(means, n_sd=criteria.n_sd)
        flags = flag_outliers(means, summary)
        flags["pass"] = pass_idx
        flag_frames.append(flags)
        n_passes = pass_idx

        ids = sorted(outlier_participants(flags))
        if verbose:
            print(f"  [OUTLIER] pass {pass_idx}: {len(ids)} participant(s) flagged {ids if ids else ''}".rstrip())
        if not ids:
            break
        excluded.extend(ids)
        means = remove_participants(means, ids)
        trials = remove_participants(trials, ids)

    pending = sorted(check_outlier_convergence(means, n_sd=criteria.n_sd))

    flags_all = pd.concat(flag_frames, ignore_index=True) if flag_frames else pd.DataFrame()
    return OutlierExclusion(
        means=means,
        trials=trials,
        flags=flags_all,
        excluded_ids=excluded,
        n_passes=n_passes,
        converged=not pending,
        pending_ids=pending,
    )
