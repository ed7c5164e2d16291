"""Shared fixtures: synthetic trial tables in the raw export format."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from attention_shift.preprocessing.loaders import validate_trials

TRIAL_OFFSETS_MS = (-30.0, -10.0, 10.0, 30.0)


def make_trials(cell_means: dict, zero_reversal_isi: float | None = 5.0) -> pd.DataFrame:
    """
    Raw trials whose threshold trials average exactly to the given cell means.

    `cell_means` maps participant id -> {target_index: mean ISI in ms}. Each
    cell gets four threshold trials placed symmetrically around the mean and,
    unless `zero_reversal_isi` is None, one zero-reversal trial with a wild
    ISI (in seconds) that cleaning must remove.
    """
    rows = []
    for pid, levels in cell_means.items():
        trial_number = 0
        for target, mean_ms in levels.items():
            for reversals, offset in enumerate(TRIAL_OFFSETS_MS, start=1):
                trial_number += 1
                rows.append(
                    {
                        "participant_id": pid,
                        "trial_number": trial_number,
                        "ISI_adjusted": (mean_ms + offset) / 1000.0,
                        "target_index": target,
                        "correct": reversals % 2 == 0,
                        "n_reversals": reversals,
                    }
                )
            if zero_reversal_isi is not None:
                trial_number += 1
                rows.append(
                    {
                        "participant_id": pid,
                        "trial_number": trial_number,
                        "ISI_adjusted": zero_reversal_isi,
                        "target_index": target,
                        "correct": False,
                        "n_reversals": 0,
                    }
                )
    return pd.DataFrame(rows)


def simulate_trials(
    n_participants: int = 12,
    effects: tuple = (0.0, 40.0, 80.0),
    n_trials: int = 10,
    subject_sd: float = 30.0,
    noise_sd: float = 10.0,
    seed: int = 7,
) -> pd.DataFrame:
    """Noisy raw trials with a participant intercept and fixed condition offsets (ms)."""
    rng = np.random.default_rng(seed)
    rows = []
    for p in range(n_participants):
        intercept = 300.0 + rng.normal(0.0, subject_sd)
        trial_number = 0
        for target, effect in enumerate(effects):
            for _ in range(n_trials):
                trial_number += 1
                isi_ms = intercept + effect + rng.normal(0.0, noise_sd)
                rows.append(
                    {
                        "participant_id": f"P{p:02d}",
                        "trial_number": trial_number,
                        "ISI_adjusted": isi_ms / 1000.0,
                        "target_index": target,
                        "correct": bool(rng.random() < 0.8),
                        "n_reversals": int(rng.integers(1, 8)),
                    }
                )
    return pd.DataFrame(rows)


def example_cell_means(with_outlier: bool = True) -> dict:
    """
    Nineteen participants spread evenly over 100-200 ms in condition 0 and
    10 ms slower in condition 1, plus one participant at 10,000 ms in
    condition 0 only.
    """
    cells = {
        f"P{i:02d}": {0: float(m), 1: float(m) + 10.0}
        for i, m in enumerate(np.linspace(100.0, 200.0, 19))
    }
    if with_outlier:
        cells["OUT"] = {0: 10000.0, 1: 160.0}
    return cells


@pytest.fixture
def three_participant_trials() -> pd.DataFrame:
    cells = {
        "A": {0: 100.0, 1: 110.0},
        "B": {0: 150.0, 1: 160.0},
        "C": {0: 200.0, 1: 210.0},
    }
    return validate_trials(make_trials(cells))


@pytest.fixture
def outlier_trials() -> pd.DataFrame:
    return validate_trials(make_trials(example_cell_means()))


@pytest.fixture
def effect_trials() -> pd.DataFrame:
    return validate_trials(simulate_trials())


@pytest.fixture
def write_csv(tmp_path):
    def _write(df: pd.DataFrame, name: str = "trials.csv", sep: str = ","):
        path = tmp_path / name
        df.to_csv(path, index=False, sep=sep)
        return path

    return _write
