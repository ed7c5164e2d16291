"""Tests for trial loading and format validation."""

import pandas as pd
import pytest

from attention_shift.errors import DataFormatError
from attention_shift.preprocessing.loaders import load_trials, summarize_loaded_trials, validate_trials

from conftest import make_trials


class TestValidateTrials:
    """Tests for validate_trials."""

    def test_valid_table_is_typed(self):
        raw = make_trials({"A": {0: 100.0, 1: 120.0}})
        df = validate_trials(raw)
        assert df["correct"].dtype == bool
        assert df["n_reversals"].dtype == "int64"
        assert df["target_index"].dtype == "int64"
        assert df["participant_id"].tolist() == ["A"] * len(raw)

    def test_input_is_not_modified(self):
        raw = make_trials({"A": {0: 100.0}})
        raw["correct"] = raw["correct"].map({True: "yes", False: "no"})
        before = raw.copy()
        validate_trials(raw)
        pd.testing.assert_frame_equal(raw, before)

    def test_missing_column_raises(self):
        raw = make_trials({"A": {0: 100.0}}).drop(columns=["n_reversals"])
        with pytest.raises(DataFormatError) as excinfo:
            validate_trials(raw)
        assert "n_reversals" in str(excinfo.value)

    def test_non_numeric_isi_raises(self):
        raw = make_trials({"A": {0: 100.0}})
        raw["ISI_adjusted"] = raw["ISI_adjusted"].astype(object)
        raw.loc[0, "ISI_adjusted"] = "fast"
        with pytest.raises(DataFormatError) as excinfo:
            validate_trials(raw)
        assert any("ISI_adjusted" in issue for issue in excinfo.value.issues)

    def test_all_issues_reported_together(self):
        raw = make_trials({"A": {0: 100.0}})
        raw["target_index"] = raw["target_index"].astype(float)
        raw.loc[0, "target_index"] = 0.5
        raw["correct"] = raw["correct"].astype(object)
        raw.loc[1, "correct"] = "maybe"
        with pytest.raises(DataFormatError) as excinfo:
            validate_trials(raw)
        assert len(excinfo.value.issues) == 2

    def test_missing_isi_raises(self):
        raw = make_trials({"A": {0: 100.0}})
        raw.loc[2, "ISI_adjusted"] = None
        with pytest.raises(DataFormatError, match="missing values"):
            validate_trials(raw)

    def test_column_aliases_are_resolved(self):
        raw = make_trials({"A": {0: 100.0}}).rename(
            columns={
                "participant_id": "subject",
                "trial_number": "trial",
                "target_index": "target",
                "n_reversals": "reversals",
            }
        )
        df = validate_trials(raw)
        for col in ("participant_id", "trial_number", "target_index", "n_reversals"):
            assert col in df.columns

    def test_boolean_tokens(self):
        raw = make_trials({"A": {0: 100.0}}, zero_reversal_isi=None)
        raw["correct"] = ["yes", "0", "TRUE", "n"]
        df = validate_trials(raw)
        assert df["correct"].tolist() == [True, False, True, False]

    def test_missing_correct_raises(self):
        raw = make_trials({"A": {0: 100.0}})
        raw["correct"] = raw["correct"].astype(object)
        raw.loc[0, "correct"] = None
        with pytest.raises(DataFormatError) as excinfo:
            validate_trials(raw)
        assert excinfo.value.issues == ["correct has 1 missing values"]

    def test_extra_columns_are_kept(self):
        raw = make_trials({"A": {0: 100.0}})
        raw["rt"] = 0.4
        assert "rt" in validate_trials(raw).columns


class TestLoadTrials:
    """Tests for load_trials."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_trials(tmp_path / "nope.csv")

    def test_reads_delimited_file(self, write_csv):
        path = write_csv(make_trials({"A": {0: 100.0}, "B": {0: 110.0}}), sep=";")
        df = load_trials(path, sep=";")
        assert summarize_loaded_trials(df) == {"n_participants": 2, "n_trials": 10}

    def test_numeric_participant_ids_become_strings(self, write_csv):
        path = write_csv(make_trials({7: {0: 100.0}}))
        df = load_trials(path)
        assert set(df["participant_id"]) == {"7"}

    def test_empty_file_raises_format_error(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(DataFormatError, match="contains no columns"):
            load_trials(path)
