"""
Instrumental Variables
======================

Two-stage least squares with standard errors built from the structural
residuals, plus the Wald (ratio) estimator for a single instrument.

A common mistake is to run the second stage as a plain OLS of y on the
first-stage fitted values and report its standard errors. Those residuals use
X̂ instead of X and understate the uncertainty. The estimator below computes
residuals as y − Xβ̂ with the actual endogenous regressor.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from numpy.typing import NDArray
from scipy import stats

from statnotes.simulate import RNGLike, as_rng


# =============================================================================
# CONSTANTS
# =============================================================================

ALPHA = 0.05

# Staiger & Stock (1997) rule of thumb for a single endogenous regressor
WEAK_INSTRUMENT_F = 10.0


@dataclass
class IVResult:
    """2SLS estimate of the coefficient on the endogenous regressor."""
    beta: float
    se: float
    se_homoskedastic: float
    ci_lower: float
    ci_upper: float
    p_value: float
    first_stage_f: float
    ols_beta: float
    ols_se: float
    n: int
    robust: bool

    @property
    def ci(self) -> Tuple[float, float]:
        return (self.ci_lower, self.ci_upper)

    @property
    def weak_instrument(self) -> bool:
        """First-stage F below the rule-of-thumb threshold of 10."""
        return self.first_stage_f < WEAK_INSTRUMENT_F

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["weak_instrument"] = self.weak_instrument
        return out

    def __repr__(self) -> str:
        return (
            f"\n"
            f"2SLS Estimate\n"
            f"──────────────────────\n"
            f"  β̂_IV  = {self.beta:.4f} (SE = {self.se:.4f})\n"
            f"  CI: [{self.ci_lower:.4f}, {self.ci_upper:.4f}]\n"
            f"  β̂_OLS = {self.ols_beta:.4f} (SE = {self.ols_se:.4f})\n"
            f"  First-stage F = {self.first_stage_f:.2f}"
            f"{'  (weak)' if self.weak_instrument else ''}  |  n = {self.n}\n"
        )


# =============================================================================
# SIMULATION
# =============================================================================

def simulate_iv(
    n: int = 1000,
    beta: float = 1.0,
    first_stage: float = 0.5,
    confounding: float = 1.0,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Linear IV design with an unobserved confounder u.

        z ~ N(0, 1),  u ~ N(0, 1)
        x = first_stage·z + confounding·u + v
        y = beta·x + confounding·u + ε

    OLS of y on x is biased whenever ``confounding != 0``; z is a valid
    instrument as long as ``first_stage != 0``.
    """
    rng = as_rng(rng)
    z = rng.normal(0.0, 1.0, size=n)
    u = rng.normal(0.0, 1.0, size=n)
    x = first_stage * z + confounding * u + rng.normal(0.0, 1.0, size=n)
    y = beta * x + confounding * u + rng.normal(0.0, 1.0, size=n)
    return pd.DataFrame({"z": z, "x": x, "y": y})


# =============================================================================
# ESTIMATION
# =============================================================================

def _design(data: pd.DataFrame, cols: Sequence[str]) -> NDArray:
    parts = [np.ones(len(data))] + [data[c].to_numpy(dtype=float) for c in cols]
    return np.column_stack(parts)


def estimate_2sls(
    data: pd.DataFrame,
    outcome: str,
    endog: str,
    instruments: Sequence[str],
    exog: Sequence[str] = (),
    robust: bool = True,
    alpha: float = ALPHA,
) -> IVResult:
    """
    Two-stage least squares for one endogenous regressor.

    Parameters
    ----------
    data : pd.DataFrame
    outcome : str
        Dependent variable.
    endog : str
        Endogenous regressor.
    instruments : sequence of str
        Excluded instruments.
    exog : sequence of str, optional
        Included exogenous controls (an intercept is always added).
    robust : bool, default True
        Report HC1 standard errors; otherwise homoskedastic.
    alpha : float, default 0.05

    Returns
    -------
    IVResult

    Raises
    ------
    ValueError
        If the instrument matrix is rank deficient or the first stage has
        no identifying variation.
    """
    instruments = list(instruments)
    exog = list(exog)
    if not instruments:
        raise ValueError("At least one excluded instrument is required")

    y = data[outcome].to_numpy(dtype=float)
    x = data[endog].to_numpy(dtype=float)
    Z = _design(data, exog + instruments)
    X = _design(data, exog + [endog])
    n, k = X.shape

    if np.linalg.matrix_rank(Z) < Z.shape[1]:
        raise ValueError("Instrument matrix is rank deficient")

    # First stage: x on (1, exog, instruments); F-test on the excluded block
    fs = sm.OLS(x, Z).fit()
    R = np.zeros((len(instruments), Z.shape[1]))
    for j in range(len(instruments)):
        R[j, 1 + len(exog) + j] = 1.0
    first_stage_f = float(np.squeeze(fs.f_test(R).fvalue))
    if not np.isfinite(first_stage_f):
        raise ValueError("First stage is degenerate (non-finite F statistic)")

    X_hat = X.copy()
    X_hat[:, -1] = fs.fittedvalues

    bread = np.linalg.inv(X_hat.T @ X_hat)
    b = bread @ X_hat.T @ y

    # Structural residuals use the actual endogenous regressor
    u = y - X @ b
    sigma2 = u @ u / (n - k)
    V_hom = sigma2 * bread
    meat = (X_hat * (u ** 2)[:, None]).T @ X_hat
    V_hc1 = n / (n - k) * bread @ meat @ bread

    se_hom = float(np.sqrt(V_hom[-1, -1]))
    se_rob = float(np.sqrt(V_hc1[-1, -1]))
    se = se_rob if robust else se_hom
    beta = float(b[-1])

    q = stats.t.ppf(1 - alpha / 2, n - k)
    p_value = float(2 * stats.t.sf(abs(beta / se), n - k))

    ols = sm.OLS(y, X).fit(cov_type="HC1" if robust else "nonrobust")

    return IVResult(
        beta=beta,
        se=se,
        se_homoskedastic=se_hom,
        ci_lower=beta - q * se,
        ci_upper=beta + q * se,
        p_value=p_value,
        first_stage_f=first_stage_f,
        ols_beta=float(ols.params[-1]),
        ols_se=float(ols.bse[-1]),
        n=n,
        robust=robust,
    )


def wald_estimator(
    data: pd.DataFrame,
    outcome: str,
    endog: str,
    instrument: str,
) -> Dict[str, float]:
    """
    Wald (ratio) estimator for a single instrument.

        β_IV = Cov(y, z) / Cov(x, z) = reduced form / first stage

    With a binary instrument this is the difference in mean outcomes divided
    by the difference in mean treatment.
    """
    y = data[outcome].to_numpy(dtype=float)
    x = data[endog].to_numpy(dtype=float)
    z = data[instrument].to_numpy(dtype=float)

    var_z = np.var(z, ddof=1)
    if var_z == 0:
        raise ValueError(f"Instrument '{instrument}' has no variation")

    reduced_form = np.cov(y, z, ddof=1)[0, 1] / var_z
    first_stage = np.cov(x, z, ddof=1)[0, 1] / var_z
    if first_stage == 0:
        raise ValueError("First stage is exactly zero; the ratio is undefined")

    return {
        "beta_iv": float(reduced_form / first_stage),
        "reduced_form": float(reduced_form),
        "first_stage": float(first_stage),
    }


def weak_instrument_simulation(
    first_stage_strengths: Sequence[float],
    n: int = 500,
    n_sims: int = 200,
    beta: float = 1.0,
    confounding: float = 1.0,
    base_seed: int = 2024,
) -> pd.DataFrame:
    """
    Sampling distribution of 2SLS and OLS as the instrument weakens.

    Returns one row per (strength, replication) with the 2SLS and OLS
    estimates and the first-stage F.
    """
    rows: List[Dict[str, Any]] = []
    for idx, strength in enumerate(first_stage_strengths):
        for rep in range(n_sims):
            seed = base_seed + idx * 10000 + rep
            df = simulate_iv(n, beta, strength, confounding, rng=seed)
            res = estimate_2sls(df, "y", "x", ["z"])
            rows.append({
                "first_stage": strength,
                "replication": rep,
                "beta_2sls": res.beta,
                "beta_ols": res.ols_beta,
                "first_stage_f": res.first_stage_f,
            })
    return pd.DataFrame(rows)


__all__ = [
    "IVResult",
    "WEAK_INSTRUMENT_F",
    "simulate_iv",
    "estimate_2sls",
    "wald_estimator",
    "weak_instrument_simulation",
]
