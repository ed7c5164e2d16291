"""Tests for participant-level outlier exclusion."""

import pandas as pd
import pytest

from attention_shift.preprocessing.features import (
    MEAN_COL,
    participant_condition_means,
    summarize_conditions,
)
from attention_shift.preprocessing.loaders import validate_trials
from attention_shift.preprocessing.outliers import (
    OutlierCriteria,
    check_outlier_convergence,
    flag_outliers,
    remove_participants,
    run_outlier_exclusion,
)
from attention_shift.preprocessing.qc import clean_trials

from conftest import example_cell_means, make_trials


@pytest.fixture
def clean_outlier_trials(outlier_trials):
    return clean_trials(outlier_trials)


class TestOutlierExclusion:
    """Tests for run_outlier_exclusion."""

    def test_outlier_flagged_in_one_condition_only(self, clean_outlier_trials):
        means = participant_condition_means(clean_outlier_trials)
        flags = flag_outliers(means, summarize_conditions(means))
        flagged = flags[flags["is_outlier"]]
        assert flagged["participant_id"].astype(str).tolist() == ["OUT"]
        assert flagged["target_index"].tolist() == [0]

    def test_exclusion_is_participant_wide(self, clean_outlier_trials):
        result = run_outlier_exclusion(clean_outlier_trials)
        assert result.excluded_ids == ["OUT"]
        for level in (0, 1):
            level_means = result.means[result.means["target_index"] == level]
            assert "OUT" not in set(level_means["participant_id"].astype(str))
            level_trials = result.trials[result.trials["target_index"] == level]
            assert "OUT" not in set(level_trials["participant_id"].astype(str))
        assert "OUT" not in result.trials["participant_id"].cat.categories

    def test_filtered_summary_recovers_clean_means(self, clean_outlier_trials):
        result = run_outlier_exclusion(clean_outlier_trials)
        summary = summarize_conditions(result.means).set_index("target_index")
        assert summary.loc[0, "mean"] == pytest.approx(150.0, abs=1e-9)
        assert summary.loc[1, "mean"] == pytest.approx(160.0, abs=1e-9)
        assert summary.loc[0, "n"] == 19

    def test_converges_within_one_extra_pass(self, clean_outlier_trials):
        result = run_outlier_exclusion(clean_outlier_trials)
        assert result.converged
        assert result.pending_ids == []
        assert check_outlier_convergence(result.means) == set()

        again = run_outlier_exclusion(result.trials)
        assert again.excluded_ids == []
        assert not again.flags["is_outlier"].any()

    def test_no_outliers_keeps_everyone(self):
        raw = validate_trials(make_trials(example_cell_means(with_outlier=False)))
        result = run_outlier_exclusion(clean_trials(raw))
        assert result.excluded_ids == []
        assert result.n_passes == 1
        assert result.means["participant_id"].nunique() == 19

    def test_input_tables_untouched(self, clean_outlier_trials):
        means = participant_condition_means(clean_outlier_trials)
        before = means.copy()
        run_outlier_exclusion(clean_outlier_trials, means=means)
        pd.testing.assert_frame_equal(means, before)

    def test_non_convergence_is_reported(self):
        cells = example_cell_means()
        cells["SLOW"] = {0: 400.0, 1: 170.0}
        raw = validate_trials(make_trials(cells))
        single = run_outlier_exclusion(clean_trials(raw))
        assert single.excluded_ids == ["OUT"]
        assert not single.converged
        assert single.pending_ids == ["SLOW"]

        repeated = run_outlier_exclusion(clean_trials(raw), criteria=OutlierCriteria(max_passes=5))
        assert repeated.excluded_ids == ["OUT", "SLOW"]
        assert repeated.converged
        assert set(repeated.flags["pass"]) == {1, 2, 3}

    def test_max_passes_must_be_positive(self, clean_outlier_trials):
        with pytest.raises(ValueError):
            run_outlier_exclusion(clean_outlier_trials, criteria=OutlierCriteria(max_passes=0))

    def test_empty_trials(self):
        raw = validate_trials(make_trials({"A": {0: 100.0}}))
        raw["n_reversals"] = 0
        result = run_outlier_exclusion(clean_trials(raw))
        assert result.excluded_ids == []
        assert result.flags.empty
        assert result.converged


def test_remove_participants_drops_all_rows():
    means = pd.DataFrame(
        {
            "participant_id": ["A", "A", "B", "B"],
            "target_index": [0, 1, 0, 1],
            MEAN_COL: [1.0, 2.0, 3.0, 4.0],
        }
    )
    kept = remove_participants(means, ["A"])
    assert kept["participant_id"].tolist() == ["B", "B"]
    assert len(remove_participants(means, [])) == 4
