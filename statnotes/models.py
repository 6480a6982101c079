"""
Frequentist Model Fits
======================

Thin wrappers around statsmodels formula models that return a uniform
result container. The posts only ever need point estimates, standard errors,
intervals and p-values, so that is what :class:`FitResult` carries.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from numpy.typing import NDArray
from statsmodels.tools.sm_exceptions import PerfectSeparationError


# =============================================================================
# CONSTANTS
# =============================================================================

ALPHA = 0.05

COV_TYPES = ("nonrobust", "HC0", "HC1", "HC2", "HC3", "cluster")


# =============================================================================
# Result Container
# =============================================================================

@dataclass
class FitResult:
    """
    Container for a fitted regression.

    Attributes
    ----------
    terms : list of str
        Coefficient names, in design-matrix order.
    estimates, se, ci_lower, ci_upper, p_values : ndarray
        One entry per term.
    n : int
        Number of observations used.
    model : str
        'ols' or 'logit'.
    converged : bool
        False when the optimizer failed or the fit was degenerate.
    alpha : float
        Significance level used for the intervals.
    """
    terms: List[str]
    estimates: NDArray
    se: NDArray
    ci_lower: NDArray
    ci_upper: NDArray
    p_values: NDArray
    n: int
    model: str
    converged: bool = True
    alpha: float = ALPHA
    extra: Dict[str, Any] = field(default_factory=dict)

    def tidy(self) -> pd.DataFrame:
        """One row per term: estimate, se, interval, p-value."""
        return pd.DataFrame({
            "term": self.terms,
            "estimate": self.estimates,
            "se": self.se,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
            "p_value": self.p_values,
        })

    def term(self, name: str) -> Dict[str, float]:
        """Estimates for a single coefficient as a dict."""
        if name not in self.terms:
            raise ValueError(f"Unknown term: '{name}'. Available: {self.terms}")
        i = self.terms.index(name)
        return {
            "estimate": float(self.estimates[i]),
            "se": float(self.se[i]),
            "ci_lower": float(self.ci_lower[i]),
            "ci_upper": float(self.ci_upper[i]),
            "p_value": float(self.p_values[i]),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary keyed by term."""
        return {
            "model": self.model,
            "n": self.n,
            "converged": self.converged,
            "alpha": self.alpha,
            "coefficients": {t: self.term(t) for t in self.terms},
        }

    def __repr__(self) -> str:
        level = int(round((1 - self.alpha) * 100))
        lines = [
            "",
            f"{self.model.upper()} fit (n = {self.n}, converged = {self.converged})",
            "──────────────────────",
        ]
        for i, t in enumerate(self.terms):
            lines.append(
                f"  {t:<20s} {self.estimates[i]: .4f} (SE = {self.se[i]:.4f})  "
                f"{level}% CI: [{self.ci_lower[i]:.4f}, {self.ci_upper[i]:.4f}]"
            )
        return "\n".join(lines) + "\n"


# =============================================================================
# Extraction
# =============================================================================

def tidy(result: Any, alpha: float = ALPHA) -> pd.DataFrame:
    """
    Tidy table from any fitted statsmodels results object.

    Parameters
    ----------
    result : statsmodels results
        Anything exposing ``params``, ``bse``, ``pvalues`` and ``conf_int``.
    alpha : float, default 0.05

    Returns
    -------
    pd.DataFrame
        Columns term, estimate, se, ci_lower, ci_upper, p_value.
    """
    ci = np.asarray(result.conf_int(alpha=alpha))
    params = result.params
    terms = list(params.index) if hasattr(params, "index") else [f"x{i}" for i in range(len(params))]
    return pd.DataFrame({
        "term": terms,
        "estimate": np.asarray(params, dtype=float),
        "se": np.asarray(result.bse, dtype=float),
        "ci_lower": ci[:, 0],
        "ci_upper": ci[:, 1],
        "p_value": np.asarray(result.pvalues, dtype=float),
    })


def _from_statsmodels(result: Any, model: str, alpha: float, converged: bool) -> FitResult:
    table = tidy(result, alpha)
    return FitResult(
        terms=list(table["term"]),
        estimates=table["estimate"].to_numpy(),
        se=table["se"].to_numpy(),
        ci_lower=table["ci_lower"].to_numpy(),
        ci_upper=table["ci_upper"].to_numpy(),
        p_values=table["p_value"].to_numpy(),
        n=int(result.nobs),
        model=model,
        converged=converged,
        alpha=alpha,
    )


def _failed_fit(terms: List[str], n: int, model: str, alpha: float, reason: str) -> FitResult:
    warnings.warn(f"{model} fit did not converge: {reason}", RuntimeWarning, stacklevel=3)
    nan = np.full(len(terms), np.nan)
    return FitResult(
        terms=terms,
        estimates=nan.copy(),
        se=nan.copy(),
        ci_lower=nan.copy(),
        ci_upper=nan.copy(),
        p_values=nan.copy(),
        n=n,
        model=model,
        converged=False,
        alpha=alpha,
        extra={"reason": reason},
    )


def _check_design(model: Any) -> None:
    n, k = model.exog.shape
    if n < k:
        raise ValueError(
            f"Design matrix has fewer rows ({n}) than columns ({k}); "
            "the model is not identified."
        )


# =============================================================================
# Fits
# =============================================================================

def fit_ols(
    formula: str,
    data: pd.DataFrame,
    cov_type: str = "nonrobust",
    cluster: Optional[str] = None,
    alpha: float = ALPHA,
) -> FitResult:
    """
    Ordinary least squares via a formula.

    Parameters
    ----------
    formula : str
        Patsy formula, e.g. ``"y ~ treat"``.
    data : pd.DataFrame
    cov_type : str, default 'nonrobust'
        One of 'nonrobust', 'HC0'-'HC3' or 'cluster'.
    cluster : str, optional
        Group column for clustered standard errors. Implies
        ``cov_type='cluster'``.
    alpha : float, default 0.05

    Returns
    -------
    FitResult

    Examples
    --------
    >>> from statnotes import simulate_two_arm, fit_ols
    >>> df = simulate_two_arm(200, effect=0.5, rng=1)
    >>> fit_ols("y ~ treat", df).term("treat")["estimate"]  # doctest: +SKIP
    0.53...
    """
    if cluster is not None:
        cov_type = "cluster"
    if cov_type not in COV_TYPES:
        raise ValueError(f"Unknown cov_type: '{cov_type}'. Choose from: {', '.join(COV_TYPES)}")
    if cov_type == "cluster" and cluster is None:
        raise ValueError("cov_type='cluster' requires a cluster column")

    model = smf.ols(formula, data=data)
    _check_design(model)

    if cov_type == "cluster":
        # Patsy drops rows with missing values, so align groups to the design rows.
        groups = data.loc[model.data.row_labels, cluster]
        result = model.fit(cov_type="cluster", cov_kwds={"groups": pd.factorize(groups)[0]})
    else:
        result = model.fit(cov_type=cov_type)

    return _from_statsmodels(result, "ols", alpha, converged=True)


def fit_logit(
    formula: str,
    data: pd.DataFrame,
    alpha: float = ALPHA,
    maxiter: int = 100,
) -> FitResult:
    """
    Logistic regression via a formula.

    Perfect separation and singular Hessians do not raise. They return a
    :class:`FitResult` with ``converged=False`` and NaN estimates, and emit a
    ``RuntimeWarning``.
    """
    model = smf.logit(formula, data=data)
    _check_design(model)
    model.raise_on_perfect_prediction = True
    terms = list(model.exog_names)
    n = int(model.exog.shape[0])

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            result = model.fit(disp=0, maxiter=maxiter)
    except (PerfectSeparationError, np.linalg.LinAlgError) as e:
        return _failed_fit(terms, n, "logit", alpha, str(e))

    if np.allclose(result.predict(), model.endog, atol=1e-6):
        return _failed_fit(terms, n, "logit", alpha, "perfect separation")

    converged = bool(result.mle_retvals.get("converged", True))
    if not converged or not np.all(np.isfinite(result.bse)):
        return _failed_fit(terms, n, "logit", alpha, "optimizer did not converge")

    return _from_statsmodels(result, "logit", alpha, converged=True)


__all__ = ["FitResult", "fit_ols", "fit_logit", "tidy", "ALPHA"]
