"""Manuscript-style tables: condition descriptives, RM-ANOVA and post-hoc contrasts."""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from attention_shift.analysis.inference import InferenceResult
from attention_shift.analysis.utils import format_pvalue, plain_factors
from attention_shift.preprocessing.constants import TARGET_COL


def _format_ci(low: float, high: float, digits: int = 1) -> str:
    if pd.isna(low) or pd.isna(high):
        return "NA"
    return f"[{low:.{digits}f}, {high:.{digits}f}]"


def format_condition_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Table 1: N, M, SD, within-subject SE and 95% CI per target."""
    summary = plain_factors(summary)
    rows = []
    for row in summary.itertuples(index=False):
        rows.append(
            {
                "Target": row.target_index,
                "N": row.n,
                "M (ms)": round(row.mean, 2),
                "SD": round(row.sd, 2),
                "SE (within)": round(row.se, 2),
                "95% CI": _format_ci(row.mean - row.ci, row.mean + row.ci),
                "Outlier band": _format_ci(row.lower_bound, row.upper_bound),
            }
        )
    return pd.DataFrame(rows)


def format_anova_table(inference: InferenceResult) -> pd.DataFrame:
    """Table 2: repeated-measures ANOVA on threshold ISI."""
    anova = inference.anova
    return pd.DataFrame(
        [
            {
                "Effect": TARGET_COL,
                "F": round(anova.F, 3),
                "df": f"{anova.num_df:.0f}, {anova.den_df:.0f}",
                "p": format_pvalue(anova.p_value),
                "partial eta^2": round(anova.partial_eta_sq, 3),
                "GG epsilon": round(anova.gg_epsilon, 3),
                "p (GG)": format_pvalue(anova.p_gg),
                "N": anova.n_participants,
            }
        ]
    )


def format_posthoc_table(inference: InferenceResult) -> pd.DataFrame:
    """Table 3: Tukey-adjusted pairwise contrasts from the mixed model."""
    rows = []
    for row in inference.posthoc.itertuples(index=False):
        rows.append(
            {
                "Contrast": row.contrast,
                "Estimate (ms)": round(row.estimate, 2),
                "SE": round(row.se, 2),
                "df": row.df,
                "t": round(row.t_ratio, 3),
                "p (Tukey)": format_pvalue(row.p_tukey),
                "95% CI": _format_ci(row.ci_low, row.ci_high),
            }
        )
    return pd.DataFrame(rows)


def save_tables(
    tables_dir: Path,
    summary: pd.DataFrame,
    participants: pd.DataFrame,
    inference: InferenceResult | None = None,
    verbose: bool = True,
) -> list[Path]:
    tables_dir.mkdir(parents=True, exist_ok=True)
    outputs = {
        "table1_condition_descriptives.csv": format_condition_table(summary),
        "participant_means_wide.csv": participants,
    }
    if inference is not None:
        outputs["table2_rm_anova.csv"] = format_anova_table(inference)
        outputs["table3_posthoc_tukey.csv"] = format_posthoc_table(inference)

    paths = []
    for name, df in outputs.items():
        path = tables_dir / name
        df.to_csv(path, index=False, encoding="utf-8-sig")
        paths.append(path)
    if verbose:
        for path in paths:
            print(f"  [TABLE] {path}")
    return paths
