"""
Preprocessing CLI: load, clean, aggregate and outlier-filter a trial file.

Usage:
    python -m attention_shift.preprocessing data/trials.csv
    python -m attention_shift.preprocessing data/trials.csv --no-save
    python -m attention_shift.preprocessing data/trials.csv --outlier-sd 2.5 --max-passes 3
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from .constants import (
    CATCH_TRIAL_VALUE,
    EXCLUDED_REVERSALS,
    OUTLIER_MAX_PASSES,
    OUTLIER_N_SD,
    PARTICIPANT_COL,
    get_output_dirs,
)
from .features import participant_condition_means, summarize_conditions
from .loaders import load_trials, summarize_loaded_trials
from .outliers import OutlierCriteria, OutlierExclusion, run_outlier_exclusion
from .qc import CleaningCriteria, clean_trials


if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")


@dataclass
class PreprocessResult:
    raw: pd.DataFrame
    clean: pd.DataFrame
    means: pd.DataFrame
    summary: pd.DataFrame
    outliers: OutlierExclusion
    summary_filtered: pd.DataFrame
    flow: pd.DataFrame


def run_stage(stage: str, func, *args, **kwargs):
    """Run one pipeline stage, naming it in the report if it fails."""
    try:
        return func(*args, **kwargs)
    except Exception as exc:
        print(f"[ERROR] {stage} failed: {exc}")
        raise


def _count(df: pd.DataFrame) -> tuple[int, int]:
    if df.empty:
        return 0, 0
    return int(df[PARTICIPANT_COL].astype(str).nunique()), int(len(df))


def build_participant_flow(
    raw: pd.DataFrame,
    clean: pd.DataFrame,
    outliers: OutlierExclusion,
) -> pd.DataFrame:
    rows = []
    for stage, df in (("loaded", raw), ("cleaned", clean), ("after_outlier_exclusion", outliers.trials)):
        n_participants, n_trials = _count(df)
        rows.append({"stage": stage, "n_participants": n_participants, "n_trials": n_trials})
    flow = pd.DataFrame(rows)
    flow["excluded_ids"] = ["", "", ";".join(outliers.excluded_ids)]
    return flow


def preprocess_trials(
    raw: pd.DataFrame,
    cleaning: Optional[CleaningCriteria] = None,
    outlier_criteria: Optional[OutlierCriteria] = None,
    verbose: bool = True,
) -> PreprocessResult:
    """Run cleaning, aggregation and outlier exclusion on a validated trial table."""
    if outlier_criteria is None:
        outlier_criteria = OutlierCriteria()

    clean = run_stage("clean", clean_trials, raw, cleaning, verbose=verbose)
    means = run_stage("aggregate", participant_condition_means, clean)
    summary = run_stage("aggregate", summarize_conditions, means, n_sd=outlier_criteria.n_sd)
    outliers = run_stage(
        "outlier_filter",
        run_outlier_exclusion,
        clean,
        means=means,
        criteria=outlier_criteria,
        verbose=verbose,
    )
    summary_filtered = run_stage(
        "outlier_filter", summarize_conditions, outliers.means, n_sd=outlier_criteria.n_sd
    )
    flow = build_participant_flow(raw, clean, outliers)
    if not outliers.converged:
        print(
            f"[WARN] outlier exclusion did not converge within {outliers.n_passes} pass(es); "
            f"a further pass would flag {outliers.pending_ids}"
        )

    if verbose:
        for row in flow.itertuples(index=False):
            print(f"  [FLOW] {row.stage}: {row.n_participants} participants, {row.n_trials} trials")

    return PreprocessResult(
        raw=raw,
        clean=clean,
        means=means,
        summary=summary,
        outliers=outliers,
        summary_filtered=summary_filtered,
        flow=flow,
    )


def save_preprocess_outputs(result: PreprocessResult, tables_dir: Path, verbose: bool = True) -> list[Path]:
    tables_dir.mkdir(parents=True, exist_ok=True)
    outputs = {
        "participant_condition_means.csv": result.means,
        "participant_condition_means_filtered.csv": result.outliers.means,
        "condition_summary.csv": result.summary,
        "condition_summary_filtered.csv": result.summary_filtered,
        "outlier_flags.csv": result.outliers.flags,
        "participant_flow.csv": result.flow,
    }
    paths = []
    for name, df in outputs.items():
        path = tables_dir / name
        df.to_csv(path, index=False, encoding="utf-8-sig")
        paths.append(path)
    if verbose:
        print(f"  [SAVE] {len(paths)} tables -> {tables_dir}")
    return paths


def run_preprocess_pipeline(
    input_path: Path | str,
    sep: str = ",",
    cleaning: Optional[CleaningCriteria] = None,
    outlier_criteria: Optional[OutlierCriteria] = None,
    output_dir: Optional[Path] = None,
    save: bool = True,
    verbose: bool = True,
) -> PreprocessResult:
    raw = run_stage("load", load_trials, input_path, sep=sep)
    if verbose:
        counts = summarize_loaded_trials(raw)
        print(f"  [LOAD] {input_path}: {counts['n_participants']} participants, {counts['n_trials']} trials")

    result = preprocess_trials(raw, cleaning, outlier_criteria, verbose=verbose)
    if save:
        save_preprocess_outputs(result, get_output_dirs(output_dir)["tables"], verbose=verbose)
    return result


def add_criteria_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="Trial-level CSV file")
    parser.add_argument("--sep", default=",", help="Field delimiter (default: ',')")
    parser.add_argument("--output-dir", type=Path, default=None, help="Output root (default: outputs/)")
    parser.add_argument(
        "--excluded-reversals",
        type=int,
        default=EXCLUDED_REVERSALS,
        help=f"Drop trials with exactly this many reversals (default: {EXCLUDED_REVERSALS})",
    )
    parser.add_argument(
        "--keep-zero-reversals",
        action="store_true",
        help="Disable the exact-reversal filter (overrides --excluded-reversals)",
    )
    parser.add_argument(
        "--min-reversals",
        type=int,
        default=None,
        help="Also drop trials with fewer reversals than this",
    )
    parser.add_argument(
        "--exclude-catch-trials",
        action="store_true",
        help=f"Drop catch trials (target_index == {CATCH_TRIAL_VALUE})",
    )
    parser.add_argument(
        "--outlier-sd",
        type=float,
        default=OUTLIER_N_SD,
        help=f"Half-width of the outlier band in SDs (default: {OUTLIER_N_SD})",
    )
    parser.add_argument(
        "--max-passes",
        type=int,
        default=OUTLIER_MAX_PASSES,
        help=f"Outlier exclusion passes (default: {OUTLIER_MAX_PASSES})",
    )
    parser.add_argument("--no-save", action="store_true", help="Do not write output tables")
    parser.add_argument("--quiet", action="store_true", help="Suppress verbose output")


def criteria_from_args(args: argparse.Namespace) -> tuple[CleaningCriteria, OutlierCriteria]:
    cleaning = CleaningCriteria(
        excluded_reversals=None if args.keep_zero_reversals else args.excluded_reversals,
        min_reversals=args.min_reversals,
        exclude_catch_trials=args.exclude_catch_trials,
    )
    return cleaning, OutlierCriteria(n_sd=args.outlier_sd, max_passes=args.max_passes)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Clean, aggregate and outlier-filter attention-shift trial data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_criteria_arguments(parser)
    args = parser.parse_args(argv)
    cleaning, outlier_criteria = criteria_from_args(args)

    run_preprocess_pipeline(
        args.input,
        sep=args.sep,
        cleaning=cleaning,
        outlier_criteria=outlier_criteria,
        output_dir=args.output_dir,
        save=not args.no_save,
        verbose=not args.quiet,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
