"""
Trial loader + format validation.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from ..errors import DataFormatError
from .constants import (
    CORRECT_COL,
    INTEGER_COLUMNS,
    NUMERIC_COLUMNS,
    PARTICIPANT_COL,
    REQUIRED_COLUMNS,
)
from .core import coerce_bool_series, ensure_participant_id, resolve_column_aliases


def validate_trials(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check a raw trial table and return a typed copy.

    Every problem found is collected and raised together as a
    DataFormatError: missing required columns, non-numeric values in numeric
    columns, non-integer codes in integer columns, and unrecognised tokens
    in the correct column. Extra columns are carried through untouched.
    """
    df = resolve_column_aliases(df.copy())

    missing_cols = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_cols:
        raise DataFormatError([f"missing required columns: {missing_cols}"])

    df = ensure_participant_id(df)
    issues: list[str] = []

    for col in NUMERIC_COLUMNS:
        raw = df[col]
        numeric = pd.to_numeric(raw, errors="coerce")
        bad = numeric.isna() & raw.notna()
        if bad.any():
            examples = raw[bad].astype(str).unique()[:3].tolist()
            issues.append(f"{col} has {int(bad.sum())} non-numeric values (e.g. {examples})")
        n_missing = int(raw.isna().sum())
        if n_missing:
            issues.append(f"{col} has {n_missing} missing values")
        df[col] = numeric

    for col in INTEGER_COLUMNS:
        values = df[col].dropna()
        fractional = ~np.isclose(values, np.round(values))
        if fractional.any():
            issues.append(f"{col} has {int(fractional.sum())} non-integer values")

    correct, n_bad = coerce_bool_series(df[CORRECT_COL])
    if n_bad:
        issues.append(f"{CORRECT_COL} has {n_bad} values that are not boolean or 0/1")
    n_missing = int(df[CORRECT_COL].isna().sum())
    if n_missing:
        issues.append(f"{CORRECT_COL} has {n_missing} missing values")

    if issues:
        raise DataFormatError(issues)

    for col in INTEGER_COLUMNS:
        df[col] = df[col].astype("int64")
    df[CORRECT_COL] = correct.astype(bool)
    return df.reset_index(drop=True)


def load_trials(path: Path | str, sep: str = ",") -> pd.DataFrame:
    """Read a delimited trial file and validate it."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trial file not found: {path}")
    try:
        df = pd.read_csv(path, sep=sep, encoding="utf-8-sig")
    except pd.errors.EmptyDataError as exc:
        raise DataFormatError([f"{path.name} contains no columns"]) from exc
    return validate_trials(df)


def summarize_loaded_trials(df: pd.DataFrame) -> dict[str, int]:
    return {
        "n_participants": int(df[PARTICIPANT_COL].nunique()) if not df.empty else 0,
        "n_trials": int(len(df)),
    }
