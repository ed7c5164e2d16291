"""
Shared helpers for the inference and reporting steps.
"""

from __future__ import annotations

import pandas as pd

from ..errors import InsufficientDataError
from ..preprocessing.constants import PARTICIPANT_COL, TARGET_COL

MIN_LEVELS = 2
MIN_PARTICIPANTS_PER_LEVEL = 2


def print_section_header(title: str, width: int = 70) -> None:
    """Print formatted section header."""
    print("\n" + "=" * width)
    print(title)
    print("=" * width)


def format_pvalue(p: float) -> str:
    if pd.isna(p):
        return "NA"
    if p < 0.001:
        return "< .001"
    return f"{p:.3f}".lstrip("0")


def significance_stars(p: float) -> str:
    if pd.isna(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    return "ns"


def plain_factors(df: pd.DataFrame) -> pd.DataFrame:
    """
    Copy of `df` with the participant and condition factors as plain values.

    Categorical columns carry their unused levels into pivots and unstacks;
    model code works on the observed values only.
    """
    df = df.copy()
    for col in (PARTICIPANT_COL, TARGET_COL):
        if col in df.columns and isinstance(df[col].dtype, pd.CategoricalDtype):
            df[col] = df[col].astype(df[col].cat.categories.dtype)
    if PARTICIPANT_COL in df.columns:
        df[PARTICIPANT_COL] = df[PARTICIPANT_COL].astype(str)
    return df


def participants_per_level(trials: pd.DataFrame) -> pd.Series:
    if trials.empty:
        return pd.Series(dtype=int)
    plain = plain_factors(trials)
    return plain.groupby(TARGET_COL)[PARTICIPANT_COL].nunique().sort_index()


def check_design(trials: pd.DataFrame) -> pd.Series:
    """
    Require at least two condition levels, each with at least two participants.

    Returns the participant count per level; raises InsufficientDataError
    otherwise.
    """
    counts = participants_per_level(trials)
    if len(counts) < MIN_LEVELS:
        raise InsufficientDataError(
            f"Need at least {MIN_LEVELS} {TARGET_COL} levels, found {len(counts)}."
        )
    sparse = counts[counts < MIN_PARTICIPANTS_PER_LEVEL]
    if not sparse.empty:
        detail = ", ".join(f"{level}: n={n}" for level, n in sparse.items())
        raise InsufficientDataError(
            f"Each {TARGET_COL} level needs at least {MIN_PARTICIPANTS_PER_LEVEL} participants ({detail})."
        )
    return counts
