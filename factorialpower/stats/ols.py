"""
OLS fitting for factorial power analysis.

Fits ``outcome ~ 1 + persistence + identification`` (main effects only)
via a QR decomposition and reports estimate, standard error, t statistic
and two-sided p-value for every non-intercept predictor.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import t as t_dist

from ..core.design import FACTOR_COLUMNS
from ..exceptions import SingularDesign

FLOAT_NEAR_ZERO = 1e-15
RANK_TOLERANCE = 1e-10

DEFAULT_PREDICTORS = tuple(FACTOR_COLUMNS)


@dataclass(frozen=True)
class FitResultRow:
    """Inferential statistics for one predictor of one fitted model."""

    predictor: str
    estimate: float
    std_error: float
    statistic: float
    p_value: float
    n_obs: int


def _ols_core(X, y):
    """
    Core OLS with intercept.

    Args:
        X: (n, p) design matrix (no intercept)
        y: (n,) response vector

    Returns:
        Tuple ``(beta, std_err, dof)`` for the ``p`` non-intercept
        coefficients.

    Raises:
        SingularDesign: If ``[1, X]`` is rank-deficient or leaves no
            residual degrees of freedom.
    """
    n, p = X.shape
    X_int = np.column_stack((np.ones(n), X))

    Q, R = np.linalg.qr(X_int)
    diag = np.abs(np.diag(R))
    scale = diag.max() if diag.size else 0.0
    rank = int(np.sum(diag > RANK_TOLERANCE * max(scale, 1.0)))
    if rank < p + 1:
        raise SingularDesign(
            f"Design matrix is rank-deficient (rank {rank} < {p + 1} columns); "
            "every factor needs both levels present in the data",
            rank=rank,
            n_columns=p + 1,
        )

    dof = n - (p + 1)
    if dof <= 0:
        raise SingularDesign(
            f"No residual degrees of freedom (n={n}, parameters={p + 1})",
            rank=rank,
            n_columns=p + 1,
        )

    QTy = np.ascontiguousarray(Q.T) @ np.ascontiguousarray(y)
    beta_all = np.linalg.solve(R, QTy)

    residuals = y - X_int @ beta_all
    mse = np.sum(residuals**2) / dof

    # (X'X)^{-1} = R^{-1} R^{-T}; only the diagonal is needed
    R_inv = np.linalg.solve(R, np.eye(p + 1))
    var_coef = mse * np.sum(R_inv**2, axis=1)
    std_err = np.sqrt(var_coef)

    return beta_all[1:], std_err[1:], dof


def _t_test(beta, std_err, dof):
    """Two-sided t statistics and p-values for coefficients."""
    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = np.where(std_err > FLOAT_NEAR_ZERO, beta / std_err, np.where(beta == 0, 0.0, np.sign(beta) * np.inf))
    p_value = 2.0 * t_dist.sf(np.abs(statistic), dof)
    return statistic, p_value


def fit(
    outcome: np.ndarray,
    design: pd.DataFrame,
    predictors: Sequence[str] = DEFAULT_PREDICTORS,
) -> Tuple[FitResultRow, ...]:
    """Fit the main-effects OLS model and extract per-predictor statistics.

    Args:
        outcome: Simulated outcome, aligned with *design* rows.
        design: Design table holding the 0/1 predictor columns.
        predictors: Predictor columns to include (intercept is implicit).

    Returns:
        One ``FitResultRow`` per predictor, in *predictors* order.

    Raises:
        SingularDesign: If the design matrix is rank-deficient.
        ValueError: If *outcome* and *design* lengths differ.
    """
    y = np.asarray(outcome, dtype=np.float64)
    if y.shape != (len(design),):
        raise ValueError(f"outcome has shape {y.shape}, expected ({len(design)},) to match the design")

    X = design.loc[:, list(predictors)].to_numpy(dtype=np.float64)
    beta, std_err, dof = _ols_core(X, y)
    statistic, p_value = _t_test(beta, std_err, dof)

    n_obs = len(y)
    return tuple(
        FitResultRow(
            predictor=name,
            estimate=float(beta[i]),
            std_error=float(std_err[i]),
            statistic=float(statistic[i]),
            p_value=float(p_value[i]),
            n_obs=n_obs,
        )
        for i, name in enumerate(predictors)
    )
