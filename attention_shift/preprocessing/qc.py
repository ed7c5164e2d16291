"""
Trial cleaning: threshold-trial filter, ISI conversion and factor typing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from .constants import (
    CATCH_TRIAL_VALUE,
    EXCLUDED_REVERSALS,
    ISI_COL,
    ISI_MS_COL,
    PARTICIPANT_COL,
    REVERSALS_COL,
    SECONDS_TO_MS,
    TARGET_COL,
)


@dataclass
class CleaningCriteria:
    """Which trials count as at-threshold trials."""
    excluded_reversals: Optional[int] = EXCLUDED_REVERSALS  # drop trials with exactly this count
    min_reversals: Optional[int] = None                     # optional lower bound on n_reversals
    exclude_catch_trials: bool = False
    catch_trial_value: int = CATCH_TRIAL_VALUE


def as_factor(values: pd.Series, levels: Optional[Sequence] = None) -> pd.Series:
    """
    Return an unordered categorical copy of `values`.

    Levels default to the sorted distinct values so numeric codes keep their
    natural display order without being treated as ordinal.
    """
    if levels is None:
        levels = sorted(pd.unique(values.dropna()))
    return pd.Series(
        pd.Categorical(values, categories=list(levels), ordered=False),
        index=values.index,
        name=values.name,
    )


def drop_unused_levels(df: pd.DataFrame) -> pd.DataFrame:
    """Drop categories that no longer occur after a row filter."""
    df = df.copy()
    for col in (PARTICIPANT_COL, TARGET_COL):
        if col in df.columns and isinstance(df[col].dtype, pd.CategoricalDtype):
            df[col] = df[col].cat.remove_unused_categories()
    return df


def threshold_trial_mask(trials: pd.DataFrame, criteria: CleaningCriteria) -> pd.Series:
    keep = pd.Series(True, index=trials.index)
    if criteria.excluded_reversals is not None:
        keep &= trials[REVERSALS_COL] != criteria.excluded_reversals
    if criteria.min_reversals is not None:
        keep &= trials[REVERSALS_COL] >= criteria.min_reversals
    if criteria.exclude_catch_trials:
        keep &= trials[TARGET_COL] != criteria.catch_trial_value
    return keep


def clean_trials(
    trials: pd.DataFrame,
    criteria: Optional[CleaningCriteria] = None,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Keep at-threshold trials, add ISI_ms and type the grouping factors.

    The input frame is not modified. Empty input yields an empty frame with
    the same columns plus ISI_ms.
    """
    if criteria is None:
        criteria = CleaningCriteria()

    keep = threshold_trial_mask(trials, criteria)
    clean = trials.loc[keep].copy()
    clean[ISI_MS_COL] = clean[ISI_COL].astype(float) * SECONDS_TO_MS
    clean[PARTICIPANT_COL] = as_factor(clean[PARTICIPANT_COL].astype(str))
    clean[TARGET_COL] = as_factor(clean[TARGET_COL])

    if verbose:
        n_dropped = int((~keep).sum())
        print(f"  [CLEAN] kept {len(clean)} of {len(trials)} trials ({n_dropped} dropped)")
        if clean.empty:
            print("  [WARN] no trials left after cleaning")
    return clean.reset_index(drop=True)
