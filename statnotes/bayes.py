"""
Bayesian Regression with User Priors
====================================

Two small Bayesian regression models whose posteriors are available without
MCMC, plus a posterior predictive check.

- :class:`BayesianLinearRegression`: conjugate Normal-Inverse-Gamma model.
  The posterior is exact, and coefficient marginals are Student-t.
- :class:`BayesianLogisticRegression`: independent normal priors and a
  Laplace (normal) approximation around the posterior mode.

The point of the tutorial is to show how priors move estimates, so both
classes take the prior explicitly through :class:`NormalPrior`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import optimize, stats
from scipy.special import expit

from statnotes.simulate import RNGLike, as_rng


# =============================================================================
# Priors
# =============================================================================

@dataclass
class NormalPrior:
    """
    Independent normal priors on regression coefficients.

    ``mean`` and ``scale`` may be scalars (shared by every coefficient) or
    sequences with one entry per coefficient, intercept included.

    For :class:`BayesianLinearRegression` the prior is conditional on the
    noise variance, so the prior sd of coefficient j is ``scale[j] · σ``.
    """
    mean: Union[float, Sequence[float]] = 0.0
    scale: Union[float, Sequence[float]] = 10.0

    def broadcast(self, p: int) -> Tuple[NDArray, NDArray]:
        """Return (mean, scale) as arrays of length ``p``."""
        mean = np.broadcast_to(np.asarray(self.mean, dtype=float), (p,)).copy()
        scale = np.broadcast_to(np.asarray(self.scale, dtype=float), (p,)).copy()
        if np.any(scale <= 0):
            raise ValueError("Prior scales must be strictly positive")
        return mean, scale


def add_intercept(X: Union[NDArray, pd.DataFrame]) -> Union[NDArray, pd.DataFrame]:
    """Prepend a column of ones (named 'Intercept' for DataFrames)."""
    if isinstance(X, pd.DataFrame):
        out = X.copy()
        out.insert(0, "Intercept", 1.0)
        return out
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    return np.column_stack([np.ones(X.shape[0]), X])


def _prepare(X: Any, y: Any, feature_names: Optional[List[str]]) -> Tuple[NDArray, NDArray, List[str]]:
    if isinstance(X, pd.DataFrame) and feature_names is None:
        feature_names = [str(c) for c in X.columns]
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    y = np.asarray(y, dtype=float)
    if y.ndim != 1:
        raise ValueError("y must be one-dimensional")
    if X.shape[0] != len(y):
        raise ValueError("X and y must have the same number of observations")
    if feature_names is None:
        feature_names = [f"x{j}" for j in range(X.shape[1])]
    if len(feature_names) != X.shape[1]:
        raise ValueError("feature_names must have one entry per column of X")
    return X, y, list(feature_names)


# =============================================================================
# Conjugate Linear Regression
# =============================================================================

class BayesianLinearRegression:
    """
    Conjugate Bayesian linear regression.

    Model:
        y | β, σ² ~ N(Xβ, σ² I)
        β | σ²    ~ N(m₀, σ² V₀),    V₀ = diag(scale²)
        σ²        ~ Inv-Gamma(a₀, b₀)

    Posterior:
        Vₙ = (V₀⁻¹ + XᵀX)⁻¹
        mₙ = Vₙ (V₀⁻¹ m₀ + Xᵀy)
        aₙ = a₀ + n/2
        bₙ = b₀ + ½ (yᵀy + m₀ᵀV₀⁻¹m₀ − mₙᵀVₙ⁻¹mₙ)

    Marginally β ~ multivariate t with 2aₙ degrees of freedom, location mₙ
    and scale (bₙ/aₙ)Vₙ.

    Parameters
    ----------
    prior : NormalPrior, optional
        Coefficient prior. Defaults to a weak N(0, 10²σ²) prior.
    a0, b0 : float, default 1.0
        Inverse-Gamma hyperparameters for σ².

    Examples
    --------
    >>> from statnotes.bayes import BayesianLinearRegression, NormalPrior, add_intercept
    >>> model = BayesianLinearRegression(prior=NormalPrior(0.0, 1.0))
    >>> model.fit(add_intercept(X), y).summary()  # doctest: +SKIP
    """

    def __init__(
        self,
        prior: Optional[NormalPrior] = None,
        a0: float = 1.0,
        b0: float = 1.0,
    ):
        if a0 <= 0 or b0 <= 0:
            raise ValueError("a0 and b0 must be strictly positive")
        self.prior = prior if prior is not None else NormalPrior()
        self.a0 = a0
        self.b0 = b0

        self.mean_: Optional[NDArray] = None
        self.cov_unscaled_: Optional[NDArray] = None
        self.a_n_: Optional[float] = None
        self.b_n_: Optional[float] = None
        self.feature_names_: List[str] = []
        self.n_: int = 0

    def fit(self, X: Any, y: Any, feature_names: Optional[List[str]] = None) -> "BayesianLinearRegression":
        X, y, names = _prepare(X, y, feature_names)
        n, p = X.shape
        m0, scale = self.prior.broadcast(p)
        V0_inv = np.diag(1.0 / scale ** 2)

        precision = V0_inv + X.T @ X
        Vn = np.linalg.inv(precision)
        mn = Vn @ (V0_inv @ m0 + X.T @ y)
        an = self.a0 + n / 2
        bn = self.b0 + 0.5 * (y @ y + m0 @ V0_inv @ m0 - mn @ precision @ mn)

        self.mean_ = mn
        self.cov_unscaled_ = Vn
        self.a_n_ = an
        self.b_n_ = float(bn)
        self.feature_names_ = names
        self.n_ = n
        return self

    def _check_fitted(self) -> None:
        if self.mean_ is None:
            raise RuntimeError("Model not fitted. Call .fit() first.")

    @property
    def df_(self) -> float:
        """Degrees of freedom of the coefficient marginals."""
        self._check_fitted()
        return 2 * self.a_n_

    @property
    def sigma2_mean_(self) -> float:
        """Posterior mean of σ² (finite when aₙ > 1)."""
        self._check_fitted()
        return self.b_n_ / (self.a_n_ - 1) if self.a_n_ > 1 else np.inf

    def summary(self, cred_mass: float = 0.95) -> pd.DataFrame:
        """Posterior mean, sd and equal-tailed credible interval per coefficient."""
        self._check_fitted()
        df = self.df_
        scale = np.sqrt(self.b_n_ / self.a_n_ * np.diag(self.cov_unscaled_))
        q = stats.t.ppf(0.5 + cred_mass / 2, df)
        sd = scale * np.sqrt(df / (df - 2)) if df > 2 else np.full_like(scale, np.inf)
        return pd.DataFrame({
            "term": self.feature_names_,
            "mean": self.mean_,
            "sd": sd,
            "ci_lower": self.mean_ - q * scale,
            "ci_upper": self.mean_ + q * scale,
        })

    def sample_posterior(self, n_draws: int = 1000, rng: RNGLike = None) -> Tuple[NDArray, NDArray]:
        """
        Draw (β, σ²) from the joint posterior.

        Returns
        -------
        beta : ndarray of shape (n_draws, p)
        sigma2 : ndarray of shape (n_draws,)
        """
        self._check_fitted()
        rng = as_rng(rng)
        sigma2 = 1.0 / rng.gamma(shape=self.a_n_, scale=1.0 / self.b_n_, size=n_draws)
        L = np.linalg.cholesky(self.cov_unscaled_)
        z = rng.standard_normal((n_draws, len(self.mean_)))
        beta = self.mean_ + np.sqrt(sigma2)[:, None] * (z @ L.T)
        return beta, sigma2

    def posterior_predictive(self, X: Any, n_draws: int = 1000, rng: RNGLike = None) -> NDArray:
        """Replicated outcomes, shape (n_draws, n)."""
        rng = as_rng(rng)
        X = np.asarray(X, dtype=float)
        beta, sigma2 = self.sample_posterior(n_draws, rng)
        mu = beta @ X.T
        return mu + np.sqrt(sigma2)[:, None] * rng.standard_normal(mu.shape)


# =============================================================================
# Logistic Regression (Laplace approximation)
# =============================================================================

class BayesianLogisticRegression:
    """
    Bayesian logistic regression with independent normal priors.

    The posterior is approximated by N(β̂, H⁻¹), where β̂ is the posterior
    mode (found with BFGS) and H is the Hessian of the negative log posterior
    at the mode:

        H = Xᵀ diag(p̂(1 − p̂)) X + diag(1/scale²)

    Parameters
    ----------
    prior : NormalPrior, optional
        Defaults to N(0, 2.5²), a common weakly-informative choice on the
        log-odds scale.
    """

    def __init__(self, prior: Optional[NormalPrior] = None):
        self.prior = prior if prior is not None else NormalPrior(0.0, 2.5)
        self.mean_: Optional[NDArray] = None
        self.cov_: Optional[NDArray] = None
        self.feature_names_: List[str] = []
        self.converged_: bool = False
        self.n_: int = 0

    def fit(self, X: Any, y: Any, feature_names: Optional[List[str]] = None) -> "BayesianLogisticRegression":
        X, y, names = _prepare(X, y, feature_names)
        if not np.all(np.isin(y, (0.0, 1.0))):
            raise ValueError("y must be binary (0/1)")
        m0, scale = self.prior.broadcast(X.shape[1])
        prec = 1.0 / scale ** 2

        def neg_log_post(b: NDArray) -> float:
            eta = X @ b
            return float(np.sum(np.logaddexp(0.0, eta) - y * eta) + 0.5 * np.sum(prec * (b - m0) ** 2))

        def grad(b: NDArray) -> NDArray:
            return X.T @ (expit(X @ b) - y) + prec * (b - m0)

        opt = optimize.minimize(neg_log_post, x0=m0.copy(), jac=grad, method="BFGS")
        mode = opt.x
        p = expit(X @ mode)
        H = (X * (p * (1 - p))[:, None]).T @ X + np.diag(prec)

        self.mean_ = mode
        self.cov_ = np.linalg.inv(H)
        self.feature_names_ = names
        self.converged_ = bool(opt.success)
        self.n_ = X.shape[0]
        return self

    def _check_fitted(self) -> None:
        if self.mean_ is None:
            raise RuntimeError("Model not fitted. Call .fit() first.")

    def summary(self, cred_mass: float = 0.95) -> pd.DataFrame:
        self._check_fitted()
        sd = np.sqrt(np.diag(self.cov_))
        q = stats.norm.ppf(0.5 + cred_mass / 2)
        return pd.DataFrame({
            "term": self.feature_names_,
            "mean": self.mean_,
            "sd": sd,
            "ci_lower": self.mean_ - q * sd,
            "ci_upper": self.mean_ + q * sd,
        })

    def sample_posterior(self, n_draws: int = 1000, rng: RNGLike = None) -> NDArray:
        self._check_fitted()
        rng = as_rng(rng)
        return rng.multivariate_normal(self.mean_, self.cov_, size=n_draws)

    def posterior_predictive(self, X: Any, n_draws: int = 1000, rng: RNGLike = None) -> NDArray:
        rng = as_rng(rng)
        X = np.asarray(X, dtype=float)
        beta = self.sample_posterior(n_draws, rng)
        return rng.binomial(1, expit(beta @ X.T))


# =============================================================================
# Posterior Predictive Check
# =============================================================================

def posterior_predictive_check(
    y_obs: NDArray,
    y_rep: NDArray,
    statistic: Callable[[NDArray], float] = np.mean,
) -> Dict[str, Any]:
    """
    Compare a test statistic on observed data with its posterior predictive
    distribution.

    Parameters
    ----------
    y_obs : ndarray of shape (n,)
        Observed outcomes.
    y_rep : ndarray of shape (n_draws, n)
        Replicated datasets from the posterior predictive.
    statistic : callable, default np.mean
        Test quantity T(y).

    Returns
    -------
    dict
        - observed: T(y_obs)
        - replicated: T(y_rep) for every draw
        - p_value: P(T(y_rep) >= T(y_obs)); values near 0 or 1 flag misfit
    """
    y_obs = np.asarray(y_obs)
    y_rep = np.atleast_2d(np.asarray(y_rep))
    if y_rep.shape[1] != y_obs.shape[0]:
        raise ValueError("y_rep must have one column per observation in y_obs")

    t_obs = float(statistic(y_obs))
    t_rep = np.array([statistic(row) for row in y_rep], dtype=float)

    return {
        "observed": t_obs,
        "replicated": t_rep,
        "p_value": float(np.mean(t_rep >= t_obs)),
    }


__all__ = [
    "NormalPrior",
    "add_intercept",
    "BayesianLinearRegression",
    "BayesianLogisticRegression",
    "posterior_predictive_check",
]
