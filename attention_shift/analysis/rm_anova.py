"""
Repeated-measures ANOVA with target_index as the single within-subject factor.

The F test comes from statsmodels' AnovaRM on participant x condition means.
Partial eta squared is recovered from F and its degrees of freedom, and a
Greenhouse-Geisser corrected p-value is reported next to the uncorrected one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.anova import AnovaRM

from ..errors import InsufficientDataError
from ..preprocessing.constants import ISI_MS_COL, PARTICIPANT_COL, TARGET_COL
from .utils import check_design, plain_factors


@dataclass
class RMAnovaResult:
    F: float
    num_df: float
    den_df: float
    p_value: float
    partial_eta_sq: float
    gg_epsilon: float
    p_gg: float
    n_participants: int
    n_levels: int
    dropped_ids: list[str] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        row = asdict(self)
        row["dropped_ids"] = ";".join(self.dropped_ids)
        return pd.DataFrame([{"effect": TARGET_COL, **row}])


def complete_case_means(trials: pd.DataFrame, dv: str = ISI_MS_COL) -> tuple[pd.DataFrame, list[str]]:
    """
    Participant x level matrix of mean `dv`, restricted to participants with
    a mean in every level. Also returns the participants that were dropped.
    """
    plain = plain_factors(trials)
    means = plain.groupby([PARTICIPANT_COL, TARGET_COL])[dv].mean()
    wide = means.unstack(TARGET_COL).sort_index(axis=1)
    complete = wide.dropna()
    dropped = sorted(set(wide.index) - set(complete.index))
    return complete, dropped


def greenhouse_geisser_epsilon(wide: pd.DataFrame | np.ndarray) -> float:
    """
    Greenhouse-Geisser epsilon from a subjects x levels matrix.

    Uses the eigenvalues of the double-centred covariance matrix; equals 1
    for two levels and is bounded below by 1 / (k - 1).
    """
    values = np.asarray(wide, dtype=float)
    k = values.shape[1]
    if k < 3:
        return 1.0
    cov = np.cov(values, rowvar=False)
    centred = cov - cov.mean(axis=0, keepdims=True) - cov.mean(axis=1, keepdims=True) + cov.mean()
    denom = (k - 1) * np.sum(centred ** 2)
    if denom <= 0 or not np.isfinite(denom):
        return np.nan
    epsilon = np.trace(centred) ** 2 / denom
    return float(np.clip(epsilon, 1.0 / (k - 1), 1.0))


def run_rm_anova(
    trials: pd.DataFrame,
    dv: str = ISI_MS_COL,
    verbose: bool = False,
) -> RMAnovaResult:
    """
    One-way repeated-measures ANOVA of `dv` on target_index.

    Trials are averaged per participant x level. Participants missing a level
    are left out (the balanced design needs every cell) and listed in
    `dropped_ids`.
    """
    check_design(trials)
    complete, dropped = complete_case_means(trials, dv=dv)
    if dropped and verbose:
        print(f"  [WARN] RM-ANOVA: dropped {len(dropped)} participant(s) without every level: {dropped}")
    if len(complete) < 2:
        raise InsufficientDataError(
            f"RM-ANOVA needs at least 2 participants with every {TARGET_COL} level, found {len(complete)}."
        )

    long = complete.reset_index().melt(id_vars=PARTICIPANT_COL, var_name=TARGET_COL, value_name=dv)
    long[TARGET_COL] = long[TARGET_COL].astype(str)
    fitted = AnovaRM(long, depvar=dv, subject=PARTICIPANT_COL, within=[TARGET_COL]).fit()
    row = fitted.anova_table.iloc[0]

    F = float(row["F Value"])
    num_df = float(row["Num DF"])
    den_df = float(row["Den DF"])
    p_value = float(row["Pr > F"])
    partial_eta_sq = (F * num_df) / (F * num_df + den_df) if np.isfinite(F) else np.nan

    epsilon = greenhouse_geisser_epsilon(complete)
    p_gg = float(stats.f.sf(F, epsilon * num_df, epsilon * den_df)) if np.isfinite(epsilon) else np.nan

    result = RMAnovaResult(
        F=F,
        num_df=num_df,
        den_df=den_df,
        p_value=p_value,
        partial_eta_sq=float(partial_eta_sq),
        gg_epsilon=float(epsilon),
        p_gg=p_gg,
        n_participants=int(len(complete)),
        n_levels=int(complete.shape[1]),
        dropped_ids=dropped,
    )
    if verbose:
        print(
            f"  [ANOVA] F({num_df:.0f}, {den_df:.0f}) = {F:.3f}, p = {p_value:.4g}, "
            f"partial eta^2 = {result.partial_eta_sq:.3f}, GG eps = {epsilon:.3f}"
        )
    return result
