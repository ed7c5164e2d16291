"""Preprocessing: trial loading, cleaning, aggregation and outlier exclusion."""

from .loaders import load_trials, validate_trials
from .qc import CleaningCriteria, as_factor, clean_trials
from .features import (
    MEAN_COL,
    participant_condition_means,
    summarize_conditions,
    within_subject_se,
)
from .outliers import (
    OutlierCriteria,
    OutlierExclusion,
    check_outlier_convergence,
    flag_outliers,
    run_outlier_exclusion,
)

__all__ = [
    "load_trials",
    "validate_trials",
    "CleaningCriteria",
    "as_factor",
    "clean_trials",
    "MEAN_COL",
    "participant_condition_means",
    "summarize_conditions",
    "within_subject_se",
    "OutlierCriteria",
    "OutlierExclusion",
    "check_outlier_convergence",
    "flag_outliers",
    "run_outlier_exclusion",
]
