"""Run the full threshold-ISI analysis over one trial file.

Usage:
    python -m attention_shift data/trials.csv
    python -m attention_shift data/trials.csv --output-dir outputs --exclude-catch-trials
    python -m attention_shift data/trials.csv --no-figures --quiet
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from attention_shift.analysis import descriptive_statistics
from attention_shift.analysis.inference import InferenceResult, run_inference, save_inference_outputs
from attention_shift.analysis.utils import print_section_header
from attention_shift.figures_tables.generate_figures import generate_figures
from attention_shift.figures_tables.generate_tables import save_tables
from attention_shift.preprocessing.cli import (
    PreprocessResult,
    add_criteria_arguments,
    criteria_from_args,
    run_preprocess_pipeline,
    run_stage,
)
from attention_shift.preprocessing.constants import get_output_dirs
from attention_shift.preprocessing.outliers import OutlierCriteria
from attention_shift.preprocessing.qc import CleaningCriteria


@dataclass
class PipelineResult:
    preprocessed: PreprocessResult
    inference: Optional[InferenceResult]
    exit_code: int
    error: Optional[str] = None


def _safe_run(step: str, func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except Exception as exc:
        print(f"[WARN] {step} failed: {exc}")
        return None


def run_analysis(
    input_path: Path | str,
    sep: str = ",",
    cleaning: Optional[CleaningCriteria] = None,
    outlier_criteria: Optional[OutlierCriteria] = None,
    output_dir: Optional[Path] = None,
    figures: bool = True,
    save: bool = True,
    verbose: bool = True,
) -> PipelineResult:
    """
    Load -> clean -> aggregate -> outlier filter -> descriptives/figures -> inference.

    Failures before inference propagate. Any inference failure, including
    InsufficientDataError from a thin design, is reported under the
    inference stage and returned with exit code 1 after the descriptive
    tables and figures have been written.
    """
    dirs = get_output_dirs(output_dir)

    if verbose:
        print_section_header("PREPROCESSING")
    preprocessed = run_preprocess_pipeline(
        input_path,
        sep=sep,
        cleaning=cleaning,
        outlier_criteria=outlier_criteria,
        output_dir=output_dir,
        save=save,
        verbose=verbose,
    )

    descriptives = descriptive_statistics.run(preprocessed, verbose=verbose)
    if figures and save:
        _safe_run(
            "figures",
            generate_figures,
            preprocessed.outliers.flags,
            preprocessed.summary,
            preprocessed.summary_filtered,
            dirs["figures"],
            verbose=verbose,
        )

    if verbose:
        print_section_header("INFERENCE")
    try:
        inference = run_stage("inference", run_inference, preprocessed.outliers.trials, verbose=verbose)
    except Exception as exc:
        if save:
            save_tables(dirs["tables"], preprocessed.summary_filtered, descriptives["participants"], verbose=verbose)
            print("[INFO] descriptive tables and figures were still written.")
        return PipelineResult(preprocessed=preprocessed, inference=None, exit_code=1, error=str(exc))

    if save:
        save_inference_outputs(inference, dirs["stats"], verbose=verbose)
        save_tables(
            dirs["tables"],
            preprocessed.summary_filtered,
            descriptives["participants"],
            inference=inference,
            verbose=verbose,
        )
    return PipelineResult(preprocessed=preprocessed, inference=inference, exit_code=0)


def main(argv: Optional[list[str]] = None) -> int:
    if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8")

    parser = argparse.ArgumentParser(description="Run the attention-shift threshold analysis.")
    add_criteria_arguments(parser)
    parser.add_argument("--no-figures", action="store_true", help="Skip figure rendering.")
    args = parser.parse_args(argv)
    cleaning, outlier_criteria = criteria_from_args(args)

    result = run_analysis(
        args.input,
        sep=args.sep,
        cleaning=cleaning,
        outlier_criteria=outlier_criteria,
        output_dir=args.output_dir,
        figures=not args.no_figures,
        save=not args.no_save,
        verbose=not args.quiet,
    )
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
