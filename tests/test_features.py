"""Tests for participant x condition means and condition summaries."""

import warnings

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from attention_shift.errors import EmptyGroupWarning
from attention_shift.preprocessing.features import (
    MEAN_COL,
    participant_condition_means,
    summarize_conditions,
    within_subject_se,
)
from attention_shift.preprocessing.loaders import validate_trials
from attention_shift.preprocessing.qc import clean_trials

from conftest import make_trials


def _cell(means, pid, level):
    row = means[(means["participant_id"].astype(str) == pid) & (means["target_index"] == level)]
    assert len(row) == 1
    return float(row[MEAN_COL].iloc[0])


class TestParticipantConditionMeans:
    """Tests for participant_condition_means."""

    def test_means_match_arithmetic_mean(self, effect_trials):
        clean = clean_trials(effect_trials)
        means = participant_condition_means(clean)
        for row in means.itertuples(index=False):
            mask = (clean["participant_id"] == row.participant_id) & (clean["target_index"] == row.target_index)
            expected = clean.loc[mask, "ISI_ms"].to_numpy().sum() / mask.sum()
            assert abs(row.mean_ISI_ms - expected) < 1e-9

    def test_example_cells(self, three_participant_trials):
        means = participant_condition_means(clean_trials(three_participant_trials))
        assert len(means) == 6
        assert _cell(means, "A", 0) == pytest.approx(100.0, abs=1e-9)
        assert _cell(means, "C", 1) == pytest.approx(210.0, abs=1e-9)
        assert (means["n_trials"] == 4).all()
        assert (means["accuracy"] == 0.5).all()

    def test_no_empty_cells_for_unobserved_levels(self, three_participant_trials):
        clean = clean_trials(three_participant_trials)
        clean["target_index"] = clean["target_index"].cat.add_categories([5])
        with warnings.catch_warnings():
            warnings.simplefilter("error", EmptyGroupWarning)
            means = participant_condition_means(clean)
        assert set(means["target_index"]) == {0, 1}

    def test_missing_cell_warns(self):
        raw = validate_trials(make_trials({"A": {0: 100.0, 1: 120.0}, "B": {0: 130.0}}))
        with pytest.warns(EmptyGroupWarning, match="B/1"):
            means = participant_condition_means(clean_trials(raw))
        assert len(means) == 3

    def test_empty_input(self):
        raw = validate_trials(make_trials({"A": {0: 100.0}}))
        raw["n_reversals"] = 0
        means = participant_condition_means(clean_trials(raw))
        assert means.empty
        assert MEAN_COL in means.columns


class TestSummarizeConditions:
    """Tests for summarize_conditions and within_subject_se."""

    def test_example_condition_means(self, three_participant_trials):
        summary = summarize_conditions(participant_condition_means(clean_trials(three_participant_trials)))
        by_level = summary.set_index("target_index")
        assert by_level.loc[0, "mean"] == pytest.approx(150.0, abs=1e-9)
        assert by_level.loc[1, "mean"] == pytest.approx(160.0, abs=1e-9)
        assert by_level.loc[0, "sd"] == pytest.approx(50.0)
        assert by_level.loc[0, "n"] == 3
        assert by_level.loc[0, "upper_bound"] == pytest.approx(300.0)
        assert by_level.loc[0, "lower_bound"] == pytest.approx(0.0, abs=1e-9)

    def test_within_subject_se_formula(self):
        means = pd.DataFrame(
            {
                "participant_id": ["A", "A", "B", "B", "C", "C"],
                "target_index": [0, 1, 0, 1, 0, 1],
                MEAN_COL: [100.0, 130.0, 150.0, 160.0, 200.0, 220.0],
            }
        )
        subject = means.groupby("participant_id")[MEAN_COL].transform("mean")
        normed = means[MEAN_COL] - subject + means[MEAN_COL].mean()
        expected = normed[means["target_index"] == 0].std(ddof=1) * np.sqrt(2) / np.sqrt(3)
        se = within_subject_se(means)
        assert se.loc[0] == pytest.approx(expected)

    def test_ci_uses_t_with_n_minus_one_df(self, effect_trials):
        summary = summarize_conditions(participant_condition_means(clean_trials(effect_trials)))
        t_crit = stats.t.ppf(0.975, 11)
        np.testing.assert_allclose(summary["ci"], summary["se"] * t_crit)

    def test_within_se_not_above_naive_se(self, effect_trials):
        summary = summarize_conditions(participant_condition_means(clean_trials(effect_trials)))
        assert (summary["se"] <= summary["se_between"]).all()

    def test_single_condition_has_undefined_se(self):
        raw = validate_trials(make_trials({"A": {0: 100.0}, "B": {0: 140.0}}))
        summary = summarize_conditions(participant_condition_means(clean_trials(raw)))
        assert summary["se"].isna().all()
        assert summary["ci"].isna().all()
        assert summary.loc[0, "mean"] == pytest.approx(120.0)

    def test_single_participant_has_undefined_sd(self):
        raw = validate_trials(make_trials({"A": {0: 100.0, 1: 120.0}}))
        summary = summarize_conditions(participant_condition_means(clean_trials(raw)))
        assert summary["sd"].isna().all()
        assert summary["ci"].isna().all()

    def test_custom_band_width(self, three_participant_trials):
        means = participant_condition_means(clean_trials(three_participant_trials))
        summary = summarize_conditions(means, n_sd=2.0).set_index("target_index")
        assert summary.loc[1, "upper_bound"] == pytest.approx(260.0)

    def test_empty_means(self):
        summary = summarize_conditions(pd.DataFrame(columns=["participant_id", "target_index", MEAN_COL]))
        assert summary.empty
        assert "ci" in summary.columns
