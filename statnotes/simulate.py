"""
Data-Generating Processes
=========================

Small parametric simulators used throughout the tutorials. Each returns a
flat DataFrame that can be handed straight to a formula-based fit.

All simulators accept ``rng`` as either a ``numpy.random.Generator`` or an
integer seed, so the same seed always reproduces the same table.
"""

from typing import Dict, Literal, Optional, Sequence, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import expit, logit


RNGLike = Union[np.random.Generator, int, None]


# =============================================================================
# CONSTANTS
# =============================================================================

DISTRIBUTIONS = ("normal", "bernoulli", "binomial", "poisson", "lognormal", "uniform")


def as_rng(rng: RNGLike = None) -> np.random.Generator:
    """Coerce a seed or generator into a ``numpy.random.Generator``."""
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


# =============================================================================
# PARAMETRIC DRAWS
# =============================================================================

def draw(
    distribution: str,
    size: int,
    rng: RNGLike = None,
    **params: float,
) -> NDArray:
    """
    Draw ``size`` samples from a named parametric distribution.

    Parameters
    ----------
    distribution : str
        One of 'normal' (loc, scale), 'bernoulli' (p), 'binomial' (n, p),
        'poisson' (lam), 'lognormal' (mean, sigma), 'uniform' (low, high).
    size : int
        Number of draws.
    rng : Generator or int, optional
        Random generator or seed.
    **params
        Location/scale/shape parameters. Missing ones take numpy's defaults.

    Returns
    -------
    ndarray of shape (size,)

    Examples
    --------
    >>> draw("normal", 5, rng=1, loc=10, scale=2).shape
    (5,)
    """
    rng = as_rng(rng)
    name = distribution.lower()

    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")

    if name == "normal":
        return rng.normal(params.get("loc", 0.0), params.get("scale", 1.0), size=size)
    elif name == "bernoulli":
        return rng.binomial(1, params.get("p", 0.5), size=size)
    elif name == "binomial":
        return rng.binomial(int(params.get("n", 1)), params.get("p", 0.5), size=size)
    elif name == "poisson":
        return rng.poisson(params.get("lam", 1.0), size=size)
    elif name == "lognormal":
        return rng.lognormal(params.get("mean", 0.0), params.get("sigma", 1.0), size=size)
    elif name == "uniform":
        return rng.uniform(params.get("low", 0.0), params.get("high", 1.0), size=size)
    else:
        raise ValueError(
            f"Unknown distribution: '{distribution}'. "
            f"Choose from: {', '.join(DISTRIBUTIONS)}"
        )


# =============================================================================
# TWO-ARM EXPERIMENT
# =============================================================================

def simulate_two_arm(
    n: int,
    effect: float,
    sd: float = 1.0,
    baseline: float = 0.0,
    outcome: Literal["continuous", "binary"] = "continuous",
    p_control: float = 0.5,
    treat_share: float = 0.5,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Simulate a completely randomized two-arm experiment.

    Model:
        continuous:  y = baseline + effect·treat + ε,   ε ~ N(0, sd²)
        binary:      y ~ Bernoulli(expit(logit(p_control) + effect·treat))

    Exactly ``round(n · treat_share)`` units are assigned to treatment.

    Parameters
    ----------
    n : int
        Total sample size.
    effect : float
        Treatment effect (mean difference, or log-odds ratio when binary).
    sd : float, default 1.0
        Residual standard deviation for continuous outcomes.
    baseline : float, default 0.0
        Control-group mean for continuous outcomes.
    outcome : {'continuous', 'binary'}, default 'continuous'
    p_control : float, default 0.5
        Control-group success probability for binary outcomes.
    treat_share : float, default 0.5
        Share of units assigned to treatment.
    rng : Generator or int, optional

    Returns
    -------
    pd.DataFrame
        Columns ``unit``, ``treat``, ``y``.
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    if not 0 < treat_share < 1:
        raise ValueError("treat_share must be in (0, 1)")
    if sd < 0:
        raise ValueError("sd must be non-negative")

    rng = as_rng(rng)

    n_treated = int(round(n * treat_share))
    treat = np.zeros(n, dtype=int)
    treat[:n_treated] = 1
    treat = rng.permutation(treat)

    if outcome == "continuous":
        y = baseline + effect * treat + rng.normal(0.0, sd, size=n)
    elif outcome == "binary":
        if not 0 < p_control < 1:
            raise ValueError("p_control must be in (0, 1)")
        p = expit(logit(p_control) + effect * treat)
        y = rng.binomial(1, p)
    else:
        raise ValueError(f"Unknown outcome: '{outcome}'. Choose 'continuous' or 'binary'.")

    return pd.DataFrame({"unit": np.arange(n), "treat": treat, "y": y})


# =============================================================================
# REGRESSION DESIGNS
# =============================================================================

def _covariates(n: int, k: int, rng: np.random.Generator) -> Dict[str, NDArray]:
    X = rng.normal(0.0, 1.0, size=(n, k))
    return {f"x{j + 1}": X[:, j] for j in range(k)}


def simulate_regression(
    n: int,
    coefs: Sequence[float],
    intercept: float = 0.0,
    sd: float = 1.0,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Linear model with independent standard-normal covariates.

        y = intercept + Σⱼ coefs[j]·xⱼ + ε,   ε ~ N(0, sd²)

    Returns a DataFrame with columns ``x1..xk`` and ``y``.
    """
    rng = as_rng(rng)
    coefs = np.asarray(coefs, dtype=float)
    cols = _covariates(n, len(coefs), rng)
    X = np.column_stack(list(cols.values())) if cols else np.zeros((n, 0))
    y = intercept + X @ coefs + rng.normal(0.0, sd, size=n)
    df = pd.DataFrame(cols)
    df["y"] = y
    return df


def simulate_logistic(
    n: int,
    coefs: Sequence[float],
    intercept: float = 0.0,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Logistic model with independent standard-normal covariates.

        P(y = 1 | x) = expit(intercept + Σⱼ coefs[j]·xⱼ)
    """
    rng = as_rng(rng)
    coefs = np.asarray(coefs, dtype=float)
    cols = _covariates(n, len(coefs), rng)
    X = np.column_stack(list(cols.values())) if cols else np.zeros((n, 0))
    p = expit(intercept + X @ coefs)
    df = pd.DataFrame(cols)
    df["y"] = rng.binomial(1, p)
    return df


def simulate_confounded(
    n: int,
    effect: float = 1.0,
    confounding: float = 1.0,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Observational design where a covariate drives both treatment and outcome.

        x ~ N(0, 1)
        treat ~ Bernoulli(expit(confounding·x))
        y = effect·treat + confounding·x + ε

    A naive difference in means is biased upward when ``confounding > 0``;
    adjusting for ``x`` recovers ``effect``.
    """
    rng = as_rng(rng)
    x = rng.normal(0.0, 1.0, size=n)
    treat = rng.binomial(1, expit(confounding * x))
    y = effect * treat + confounding * x + rng.normal(0.0, 1.0, size=n)
    return pd.DataFrame({"x": x, "treat": treat, "y": y})


__all__ = [
    "DISTRIBUTIONS",
    "as_rng",
    "draw",
    "simulate_two_arm",
    "simulate_regression",
    "simulate_logistic",
    "simulate_confounded",
]
