"""
Trial-level linear mixed model and Tukey-adjusted pairwise contrasts.

ISI_ms ~ C(target_index), with a random intercept per participant and a
participant x condition variance component, fit by maximum likelihood.
Pairwise contrasts between condition levels are built from the fixed
effects and their covariance, and adjusted with the studentized range
distribution.
"""

from __future__ import annotations

import itertools
import warnings
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from scipy import stats
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from ..preprocessing.constants import ISI_MS_COL, PARTICIPANT_COL, TARGET_COL
from .utils import check_design, plain_factors

FORMULA = f"{ISI_MS_COL} ~ C({TARGET_COL})"
VC_NAME = "participant_condition"

MODEL_ATTEMPTS = [
    {"structure": "participant + participant:condition", "vc": True, "method": "lbfgs"},
    {"structure": "participant + participant:condition", "vc": True, "method": "powell"},
    {"structure": "participant", "vc": False, "method": "lbfgs"},
    {"structure": "participant", "vc": False, "method": "powell"},
]


@dataclass
class MixedModelFit:
    result: object
    frame: pd.DataFrame
    levels: list
    structure: str
    method: str
    converged: bool
    warning_msgs: list[str] = field(default_factory=list)
    fit_note: Optional[str] = None

    @property
    def n_participants(self) -> int:
        return int(self.frame[PARTICIPANT_COL].nunique())


def model_frame(trials: pd.DataFrame) -> pd.DataFrame:
    """Trial rows with an unordered condition factor limited to observed levels."""
    frame = plain_factors(trials)[[PARTICIPANT_COL, TARGET_COL, ISI_MS_COL]].dropna()
    levels = sorted(frame[TARGET_COL].unique())
    frame[TARGET_COL] = pd.Categorical(frame[TARGET_COL], categories=levels, ordered=False)
    return frame.reset_index(drop=True)


def _fit_mixedlm_with_warnings(
    frame: pd.DataFrame,
    use_vc: bool,
    method: str,
) -> tuple[object, list[str]]:
    vc_formula = {VC_NAME: f"0 + C({TARGET_COL})"} if use_vc else None
    warning_msgs: list[str] = []
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        model = smf.mixedlm(
            FORMULA,
            data=frame,
            groups=frame[PARTICIPANT_COL],
            re_formula="1",
            vc_formula=vc_formula,
        )
        result = model.fit(reml=False, method=method, maxiter=500)
    for warn in caught:
        if issubclass(warn.category, ConvergenceWarning):
            warning_msgs.append(str(warn.message))
    return result, warning_msgs


def fit_mixed_model(trials: pd.DataFrame, verbose: bool = False) -> MixedModelFit:
    """
    Fit the mixed model, falling back to simpler optimisers and random
    structures until one converges. The last successful fit is returned
    with `converged=False` when none does.
    """
    check_design(trials)
    frame = model_frame(trials)
    levels = list(frame[TARGET_COL].cat.categories)

    last_error = None
    last_fit = None
    for attempt in MODEL_ATTEMPTS:
        try:
            result, warning_msgs = _fit_mixedlm_with_warnings(frame, attempt["vc"], attempt["method"])
        except Exception as exc:
            last_error = str(exc)
            continue
        last_fit = MixedModelFit(
            result=result,
            frame=frame,
            levels=levels,
            structure=attempt["structure"],
            method=attempt["method"],
            converged=bool(getattr(result, "converged", False)),
            warning_msgs=warning_msgs,
        )
        if last_fit.converged:
            break

    if last_fit is None:
        raise RuntimeError(f"MixedLM failed: {last_error}")
    if not last_fit.converged:
        last_fit.fit_note = last_error or "not_converged"

    if verbose:
        status = "converged" if last_fit.converged else "NOT converged"
        print(f"  [LMM] random structure: {last_fit.structure} ({last_fit.method}, {status})")
    return last_fit


def fixed_effects_table(fit: MixedModelFit) -> pd.DataFrame:
    result = fit.result
    k_fe = int(result.k_fe)
    names = list(result.model.exog_names)
    return pd.DataFrame(
        {
            "term": names,
            "beta": np.asarray(result.fe_params, dtype=float),
            "se": np.asarray(result.bse, dtype=float)[:k_fe],
            "z": np.asarray(result.tvalues, dtype=float)[:k_fe],
            "p": np.asarray(result.pvalues, dtype=float)[:k_fe],
        }
    )


def model_summary(fit: MixedModelFit) -> dict[str, object]:
    result = fit.result
    cov_re = np.asarray(result.cov_re, dtype=float)
    vcomp = np.asarray(getattr(result, "vcomp", []), dtype=float)
    return {
        "formula": FORMULA,
        "random_structure": fit.structure,
        "method": fit.method,
        "converged": fit.converged,
        "fit_note": fit.fit_note,
        "warning_count": len(fit.warning_msgs),
        "n_trials": int(len(fit.frame)),
        "n_participants": fit.n_participants,
        "n_levels": len(fit.levels),
        "participant_var": float(cov_re[0, 0]) if cov_re.size else np.nan,
        "participant_condition_var": float(vcomp[0]) if vcomp.size else np.nan,
        "residual_var": float(result.scale),
        "llf": float(getattr(result, "llf", np.nan)),
        "aic": float(getattr(result, "aic", np.nan)),
        "bic": float(getattr(result, "bic", np.nan)),
    }


def level_design_rows(fit: MixedModelFit) -> dict[object, np.ndarray]:
    """Fixed-effect design row for each condition level, taken from the fitted exog."""
    exog = np.asarray(fit.result.model.exog, dtype=float)
    codes = fit.frame[TARGET_COL].to_numpy()
    rows = {}
    for level in fit.levels:
        idx = np.flatnonzero(codes == level)
        rows[level] = exog[idx[0]]
    return rows


def contrast_df(fit: MixedModelFit) -> int:
    """Subject x condition stratum degrees of freedom, (n - 1)(k - 1)."""
    return (fit.n_participants - 1) * (len(fit.levels) - 1)


def pairwise_tukey(
    fit: MixedModelFit,
    pairs: Optional[Iterable[Sequence]] = None,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Pairwise differences of condition means with Tukey-adjusted p-values
    and simultaneous (1 - alpha) confidence intervals.

    `pairs` defaults to every unordered pair of levels in level order.
    Swapping a pair flips the sign of the estimate and the interval while
    leaving the adjusted p-value unchanged.
    """
    result = fit.result
    k_fe = int(result.k_fe)
    beta = np.asarray(result.fe_params, dtype=float)
    cov = np.asarray(result.cov_params(), dtype=float)[:k_fe, :k_fe]
    rows_by_level = level_design_rows(fit)

    k = len(fit.levels)
    df = contrast_df(fit)
    q_crit = float(stats.studentized_range.ppf(1 - alpha, k, df))
    if pairs is None:
        pairs = itertools.combinations(fit.levels, 2)

    rows = []
    for level_a, level_b in pairs:
        weights = rows_by_level[level_a] - rows_by_level[level_b]
        estimate = float(weights @ beta)
        se = float(np.sqrt(weights @ cov @ weights))
        t_ratio = estimate / se if se > 0 else np.nan
        q_stat = abs(t_ratio) * np.sqrt(2)
        p_adj = float(np.clip(stats.studentized_range.sf(q_stat, k, df), 0.0, 1.0))
        half_width = q_crit / np.sqrt(2) * se
        rows.append(
            {
                "contrast": f"{level_a} - {level_b}",
                "level_a": level_a,
                "level_b": level_b,
                "estimate": estimate,
                "se": se,
                "df": df,
                "t_ratio": t_ratio,
                "p_tukey": p_adj,
                "ci_low": estimate - half_width,
                "ci_high": estimate + half_width,
            }
        )
    return pd.DataFrame(rows)
