"""
Descriptive Statistics
======================

Participant x condition and condition-level tables for the threshold ISI.

Tables:
    - Participant means: one row per participant, one column per target_index
    - Condition summary: N, Mean, SD, within-subject SE, 95% CI, +/- 3 SD band

Usage:
    python -m attention_shift.analysis.descriptive_statistics data/trials.csv
"""

from __future__ import annotations

import sys
if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")

import argparse

import pandas as pd

from attention_shift.preprocessing.cli import (
    PreprocessResult,
    add_criteria_arguments,
    criteria_from_args,
    run_preprocess_pipeline,
)
from attention_shift.preprocessing.constants import PARTICIPANT_COL, TARGET_COL
from attention_shift.preprocessing.features import MEAN_COL
from attention_shift.analysis.utils import plain_factors, print_section_header


def participant_table(means: pd.DataFrame) -> pd.DataFrame:
    """Wide participant x target_index table of mean ISI (ms)."""
    if means.empty:
        return pd.DataFrame(columns=[PARTICIPANT_COL])
    plain = plain_factors(means)
    wide = plain.pivot(index=PARTICIPANT_COL, columns=TARGET_COL, values=MEAN_COL)
    wide.columns = [f"{TARGET_COL}_{level}" for level in wide.columns]
    return wide.reset_index()


def print_condition_table(summary: pd.DataFrame, title: str = "Condition summary") -> None:
    print(f"\n  {title}")
    print("  " + "-" * 72)
    print(f"  {'Target':<8} {'N':>4} {'M':>10} {'SD':>10} {'SE(ws)':>9} {'95% CI':>9} {'-3SD':>10} {'+3SD':>10}")
    print("  " + "-" * 72)
    for row in summary.itertuples(index=False):
        print(
            f"  {str(row.target_index):<8} {row.n:>4} {row.mean:>10.2f} {row.sd:>10.2f} "
            f"{row.se:>9.2f} {row.ci:>9.2f} {row.lower_bound:>10.2f} {row.upper_bound:>10.2f}"
        )
    print("  " + "-" * 72)
    print("  Note. SE(ws) = within-subject SE (Morey, 2008); CI = half-width.")


def run(result: PreprocessResult, verbose: bool = True) -> dict[str, pd.DataFrame]:
    tables = {
        "participants": participant_table(result.outliers.means),
        "summary": result.summary,
        "summary_filtered": result.summary_filtered,
    }
    if verbose:
        print_section_header("DESCRIPTIVE STATISTICS")
        print_condition_table(result.summary, "Condition summary (all participants)")
        if result.outliers.excluded_ids:
            print(f"\n  Excluded as outliers: {result.outliers.excluded_ids}")
            print_condition_table(result.summary_filtered, "Condition summary (after outlier exclusion)")
    return tables


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Descriptive statistics for attention-shift thresholds")
    add_criteria_arguments(parser)
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    cleaning, outlier_criteria = criteria_from_args(args)
    preprocessed = run_preprocess_pipeline(
        args.input,
        sep=args.sep,
        cleaning=cleaning,
        outlier_criteria=outlier_criteria,
        output_dir=args.output_dir,
        save=not args.no_save,
        verbose=not args.quiet,
    )
    run(preprocessed, verbose=True)
    print("\n" + "=" * 70)
    print("DESCRIPTIVE STATISTICS COMPLETE")
    print("=" * 70)
