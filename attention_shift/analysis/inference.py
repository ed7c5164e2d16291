"""
Inference stage: RM-ANOVA plus the mixed model and its post-hoc contrasts.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from .mixed_model import MixedModelFit, fit_mixed_model, fixed_effects_table, model_summary, pairwise_tukey
from .rm_anova import RMAnovaResult, run_rm_anova
from .utils import check_design, format_pvalue, significance_stars


@dataclass
class InferenceResult:
    anova: RMAnovaResult
    mixed_model: MixedModelFit
    fixed_effects: pd.DataFrame
    model_info: dict
    posthoc: pd.DataFrame


def run_inference(trials: pd.DataFrame, alpha: float = 0.05, verbose: bool = False) -> InferenceResult:
    """Fit both models on outlier-filtered trials. Raises InsufficientDataError on thin designs."""
    counts = check_design(trials)
    if verbose:
        print(f"  [DESIGN] {len(counts)} levels, participants per level: {dict(counts)}")

    anova = run_rm_anova(trials, verbose=verbose)
    fit = fit_mixed_model(trials, verbose=verbose)
    posthoc = pairwise_tukey(fit, alpha=alpha)

    if verbose:
        print_posthoc_table(posthoc)
    return InferenceResult(
        anova=anova,
        mixed_model=fit,
        fixed_effects=fixed_effects_table(fit),
        model_info=model_summary(fit),
        posthoc=posthoc,
    )


def print_posthoc_table(posthoc: pd.DataFrame) -> None:
    print("\n  Pairwise contrasts (Tukey)")
    print("  " + "-" * 66)
    print(f"  {'Contrast':<14} {'Estimate':>10} {'SE':>8} {'df':>5} {'p_adj':>8} {'95% CI':>18}")
    print("  " + "-" * 66)
    for row in posthoc.itertuples(index=False):
        ci = f"[{row.ci_low:.1f}, {row.ci_high:.1f}]"
        p = format_pvalue(row.p_tukey)
        print(
            f"  {row.contrast:<14} {row.estimate:>10.2f} {row.se:>8.2f} {row.df:>5} {p:>8} {ci:>18} "
            f"{significance_stars(row.p_tukey)}"
        )
    print("  " + "-" * 66)


def save_inference_outputs(result: InferenceResult, stats_dir: Path, verbose: bool = True) -> list[Path]:
    stats_dir.mkdir(parents=True, exist_ok=True)
    fixed = result.fixed_effects.copy()
    for key, value in result.model_info.items():
        fixed[key] = value
    outputs = {
        "rm_anova.csv": result.anova.to_frame(),
        "mixed_model.csv": fixed,
        "posthoc_tukey.csv": result.posthoc,
    }
    paths = []
    for name, df in outputs.items():
        path = stats_dir / name
        df.to_csv(path, index=False, encoding="utf-8-sig")
        paths.append(path)
    if verbose:
        print(f"  [SAVE] {len(paths)} result tables -> {stats_dir}")
    return paths
