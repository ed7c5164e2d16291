"""Shared constants for preprocessing and analysis."""

from __future__ import annotations

from pathlib import Path

# Directory paths
REPO_DIR = Path(__file__).resolve().parents[2]

OUTPUTS_DIR = REPO_DIR / "outputs"
OUTPUT_STATS_DIR = OUTPUTS_DIR / "stats"
OUTPUT_TABLES_DIR = OUTPUTS_DIR / "tables"
OUTPUT_FIGURES_DIR = OUTPUTS_DIR / "figures"

# Canonical trial columns
PARTICIPANT_COL = "participant_id"
TRIAL_COL = "trial_number"
ISI_COL = "ISI_adjusted"
ISI_MS_COL = "ISI_ms"
TARGET_COL = "target_index"
CORRECT_COL = "correct"
REVERSALS_COL = "n_reversals"

REQUIRED_COLUMNS = [
    PARTICIPANT_COL,
    TRIAL_COL,
    ISI_COL,
    TARGET_COL,
    CORRECT_COL,
    REVERSALS_COL,
]
NUMERIC_COLUMNS = [TRIAL_COL, ISI_COL, TARGET_COL, REVERSALS_COL]
INTEGER_COLUMNS = [TRIAL_COL, TARGET_COL, REVERSALS_COL]

# Column aliases seen in exported trial files
COLUMN_ALIASES = {
    PARTICIPANT_COL: {"participant", "participantId", "participantid", "participant_ID", "subject", "subject_id"},
    TRIAL_COL: {"trial", "trial_index", "trialIndex", "trial_n", "trialNumber"},
    ISI_COL: {"isi_adjusted", "ISI", "isi", "isi_s"},
    TARGET_COL: {"targetIndex", "target", "target_idx", "target_position"},
    CORRECT_COL: {"accuracy", "is_correct", "resp_correct"},
    REVERSALS_COL: {"reversals", "nReversals", "n_reversal", "num_reversals"},
}

# Trial filtering defaults
EXCLUDED_REVERSALS = 0
CATCH_TRIAL_VALUE = 99
SECONDS_TO_MS = 1000.0

# Outlier + interval defaults
OUTLIER_N_SD = 3.0
OUTLIER_MAX_PASSES = 1
CI_LEVEL = 0.95

# Boolean tokens accepted in the correct column
TRUE_TOKENS = {"true", "t", "1", "1.0", "yes", "y"}
FALSE_TOKENS = {"false", "f", "0", "0.0", "no", "n"}


def get_output_dirs(output_dir: Path | None = None) -> dict[str, Path]:
    """Return stats/tables/figures directories under an output root."""
    if output_dir is None:
        return {
            "stats": OUTPUT_STATS_DIR,
            "tables": OUTPUT_TABLES_DIR,
            "figures": OUTPUT_FIGURES_DIR,
        }
    output_dir = Path(output_dir)
    return {
        "stats": output_dir / "stats",
        "tables": output_dir / "tables",
        "figures": output_dir / "figures",
    }
