"""
Core helpers for preprocessing.
"""

from __future__ import annotations

import warnings

import pandas as pd

from .constants import (
    COLUMN_ALIASES,
    FALSE_TOKENS,
    PARTICIPANT_COL,
    TRUE_TOKENS,
)


def resolve_column_aliases(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename known column aliases to their canonical trial column names.
    A canonical column that is already present always wins over its aliases.
    """
    rename_map: dict[str, str] = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        if canonical in df.columns:
            continue
        for col in df.columns:
            if col in aliases and col not in rename_map:
                rename_map[col] = canonical
                break
    if rename_map:
        df = df.rename(columns=rename_map)
    return df


def ensure_participant_id(df: pd.DataFrame, warn_threshold: float = 1.0) -> pd.DataFrame:
    """
    Ensure there is exactly one 'participant_id' column, stored as strings.
    Prefers an existing participant_id column, otherwise renames common aliases.
    """
    if PARTICIPANT_COL not in df.columns:
        for col in df.columns:
            if col in COLUMN_ALIASES[PARTICIPANT_COL]:
                df = df.rename(columns={col: PARTICIPANT_COL})
                break
    if PARTICIPANT_COL not in df.columns:
        raise KeyError("No participant id column found in dataframe.")

    missing_count = int(df[PARTICIPANT_COL].isna().sum())
    missing_pct = missing_count / len(df) * 100 if len(df) > 0 else 0

    if missing_pct > warn_threshold:
        warnings.warn(
            f"participant_id column has {missing_pct:.1f}% missing values ({missing_count}/{len(df)} rows). "
            "These rows cannot be assigned to a participant and will be dropped.",
            UserWarning,
        )

    df = df.dropna(subset=[PARTICIPANT_COL]).copy()
    df[PARTICIPANT_COL] = df[PARTICIPANT_COL].astype(str).str.strip()
    return df


def coerce_bool_series(series: pd.Series) -> tuple[pd.Series, int]:
    """
    Map boolean-like tokens onto True/False.

    Returns the mapped series and the number of non-missing values that could
    not be interpreted.
    """
    if series.dtype == bool:
        return series, 0
    tokens = series.astype(str).str.strip().str.lower()
    mapped = pd.Series(pd.NA, index=series.index, dtype="boolean")
    mapped[tokens.isin(TRUE_TOKENS)] = True
    mapped[tokens.isin(FALSE_TOKENS)] = False
    n_bad = int((mapped.isna() & series.notna()).sum())
    return mapped, n_bad
