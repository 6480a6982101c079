"""
Simulation-Based Design Analysis
================================

Estimate the operating characteristics of a two-arm experiment by brute
force. Simulate many datasets under known parameters, fit the analysis model
to each, and summarize how often the analysis does what we hope.

    for scenario in grid (sample size × effect size):
        for rep in 1..n_sims:
            data  ~ DGP(scenario, seed)
            fit   = model(data)
            row   = estimate, se, CI, p-value, significant, covers
    summary = groupby(scenario).agg(power, coverage, bias, ...)

Replications are independent, so the inner loop can fan out with joblib.
Seeds are assigned as ``base_seed + scenario_index · 10000 + rep``, which
makes every row reproducible regardless of ``n_jobs``.

References:
    - Gelman, A. & Carlin, J. (2014). Beyond Power Calculations: Assessing
      Type S (Sign) and Type M (Magnitude) Errors. Perspectives on
      Psychological Science 9(6): 641-651.
    - Morris, T., White, I. & Crowther, M. (2019). Using simulation studies
      to evaluate statistical methods. Statistics in Medicine 38: 2074-2102.
"""

from __future__ import annotations

import itertools
import warnings
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.typing import NDArray
from scipy import stats
from tqdm import tqdm

from statnotes.models import fit_logit, fit_ols
from statnotes.simulate import RNGLike, as_rng, simulate_two_arm


# =============================================================================
# CONSTANTS
# =============================================================================

ALPHA = 0.05
BASE_SEED = 2024
N_SIMS = 500

# Seeds for scenario i occupy [base_seed + i·SEED_BLOCK, base_seed + (i+1)·SEED_BLOCK)
SEED_BLOCK = 10000

# Standard errors this small relative to the estimate are treated as zero
SE_TOL = 1e-10

# Keys of a scenario row that are passed through to the simulator
DGP_PARAMS = ("sd", "baseline", "outcome", "p_control", "treat_share")

# Columns produced per replication (everything else is a scenario parameter)
REPLICATION_COLS = [
    "replication", "seed", "estimate", "se", "ci_lower", "ci_upper",
    "p_value", "converged", "significant", "covers",
]

ModelName = Literal["ols", "logit"]


# =============================================================================
# SCENARIO GRID
# =============================================================================

def make_scenario_grid(
    sample_sizes: Sequence[int],
    effect_sizes: Sequence[float],
    **fixed: Any,
) -> pd.DataFrame:
    """
    Cartesian product of sample sizes and effect sizes.

    Parameters
    ----------
    sample_sizes : sequence of int
        Total sample sizes (both arms).
    effect_sizes : sequence of float
        True treatment effects.
    **fixed
        Parameters held constant across scenarios (e.g. ``sd=1.0``,
        ``outcome="binary"``). Broadcast to every row.

    Returns
    -------
    pd.DataFrame
        One row per scenario with columns ``scenario_id``, ``n``, ``effect``
        and any fixed parameters.

    Examples
    --------
    >>> make_scenario_grid([50, 100], [0.2, 0.5], sd=1.0).shape
    (4, 4)
    """
    sample_sizes = list(sample_sizes)
    effect_sizes = list(effect_sizes)
    if not sample_sizes or not effect_sizes:
        raise ValueError("sample_sizes and effect_sizes must be non-empty")
    if any(int(n) < 1 for n in sample_sizes):
        raise ValueError("sample sizes must be positive")

    rows = []
    for i, (n, effect) in enumerate(itertools.product(sample_sizes, effect_sizes)):
        row = {"scenario_id": i, "n": int(n), "effect": float(effect)}
        row.update(fixed)
        rows.append(row)

    return pd.DataFrame(rows)


# =============================================================================
# SINGLE FIT
# =============================================================================

def _failed(reason: str) -> Dict[str, Any]:
    return {
        "estimate": np.nan, "se": np.nan,
        "ci_lower": np.nan, "ci_upper": np.nan,
        "p_value": np.nan, "converged": False, "reason": reason,
    }


def fit_two_arm(
    data: pd.DataFrame,
    model: ModelName = "ols",
    alpha: float = ALPHA,
) -> Dict[str, Any]:
    """
    Fit ``y ~ treat`` and return the treatment coefficient.

    Degenerate samples do not raise. The fit is recorded as failed
    (``converged=False``, NaN estimates) when:

    - either arm has fewer than two units,
    - the outcome has zero variance within an arm for a binary outcome
      (perfect separation),
    - the residual variance is zero, or
    - the optimizer fails.

    Returns
    -------
    dict
        estimate, se, ci_lower, ci_upper, p_value, converged, reason.
    """
    counts = data["treat"].value_counts()
    if counts.get(0, 0) < 2 or counts.get(1, 0) < 2:
        return _failed("fewer than two units in an arm")

    if model == "logit":
        arm_sd = data.groupby("treat")["y"].std(ddof=0)
        if (arm_sd == 0).any():
            return _failed("zero outcome variance in an arm")
    elif model != "ols":
        raise ValueError(f"Unknown model: '{model}'. Choose 'ols' or 'logit'.")

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            if model == "ols":
                fit = fit_ols("y ~ treat", data, alpha=alpha)
            else:
                fit = fit_logit("y ~ treat", data, alpha=alpha)
    except np.linalg.LinAlgError as e:
        return _failed(f"linear algebra error: {e}")

    if not fit.converged:
        return _failed(fit.extra.get("reason", "did not converge"))

    est = fit.term("treat")
    if not np.isfinite(est["se"]) or est["se"] <= SE_TOL * max(1.0, abs(est["estimate"])):
        return _failed("zero residual variance")

    est["converged"] = True
    est["reason"] = ""
    return est


# =============================================================================
# MONTE CARLO SIMULATION
# =============================================================================

def run_single_replication(
    scenario: Dict[str, Any],
    seed: int,
    model: ModelName = "ols",
    alpha: float = ALPHA,
) -> Dict[str, Any]:
    """
    Simulate one dataset for ``scenario``, fit it, and return one row.

    The row carries the scenario parameters, the fitted estimate and its
    interval, and two indicators: ``significant`` (p < alpha) and ``covers``
    (interval contains the true effect). Both are NaN for failed fits.
    """
    params = {k: scenario[k] for k in DGP_PARAMS if k in scenario}
    params.setdefault("outcome", "binary" if model == "logit" else "continuous")

    data = simulate_two_arm(
        n=int(scenario["n"]),
        effect=float(scenario["effect"]),
        rng=seed,
        **params,
    )
    fit = fit_two_arm(data, model=model, alpha=alpha)
    effect = float(scenario["effect"])

    if fit["converged"]:
        significant = float(fit["p_value"] < alpha)
        covers = float(fit["ci_lower"] <= effect <= fit["ci_upper"])
    else:
        significant = np.nan
        covers = np.nan

    row = dict(scenario)
    row.update({
        "seed": seed,
        "estimate": fit["estimate"],
        "se": fit["se"],
        "ci_lower": fit["ci_lower"],
        "ci_upper": fit["ci_upper"],
        "p_value": fit["p_value"],
        "converged": fit["converged"],
        "significant": significant,
        "covers": covers,
    })
    return row


def run_simulation_grid(
    grid: pd.DataFrame,
    n_sims: int = N_SIMS,
    model: ModelName = "ols",
    alpha: float = ALPHA,
    base_seed: int = BASE_SEED,
    n_jobs: int = 1,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Run Monte Carlo replications across a scenario grid.

    Parameters
    ----------
    grid : pd.DataFrame
        Output of :func:`make_scenario_grid` (needs ``n`` and ``effect``).
    n_sims : int, default 500
        Replications per scenario.
    model : {'ols', 'logit'}, default 'ols'
        Analysis model. 'logit' simulates binary outcomes unless the grid
        says otherwise.
    alpha : float, default 0.05
    base_seed : int, default 2024
    n_jobs : int, default 1
        joblib workers. Results are identical for any value.
    verbose : bool, default True
        Print scenario count and show a progress bar.

    Returns
    -------
    pd.DataFrame
        One row per replication.
    """
    if n_sims < 1:
        raise ValueError(f"n_sims must be positive, got {n_sims}")
    if n_sims > SEED_BLOCK:
        raise ValueError(f"n_sims must be at most {SEED_BLOCK} so seed blocks do not overlap")
    if grid.empty:
        raise ValueError("grid has no scenarios")

    scenarios = grid.to_dict("records")
    tasks = []
    for idx, scenario in enumerate(scenarios):
        for rep in range(n_sims):
            tasks.append((scenario, base_seed + idx * SEED_BLOCK + rep, rep))

    if verbose:
        print(f"Running {len(scenarios)} scenarios × {n_sims} replications "
              f"= {len(tasks):,} fits (model = {model}, n_jobs = {n_jobs})")

    iterator = tqdm(tasks, desc="replications", disable=not verbose)
    if n_jobs == 1:
        rows = [run_single_replication(s, seed, model, alpha) for s, seed, _ in iterator]
    else:
        rows = Parallel(n_jobs=n_jobs)(
            delayed(run_single_replication)(s, seed, model, alpha) for s, seed, _ in iterator
        )

    for row, (_, _, rep) in zip(rows, tasks):
        row["replication"] = rep

    results = pd.DataFrame(rows)

    n_failed = int((~results["converged"].astype(bool)).sum())
    if n_failed > 0:
        warnings.warn(
            f"{n_failed} of {len(results)} fits failed on degenerate samples "
            "and were excluded from power and coverage.",
            RuntimeWarning,
        )

    return results


# =============================================================================
# SUMMARY STATISTICS
# =============================================================================

def _scenario_keys(results: pd.DataFrame) -> List[str]:
    return [c for c in results.columns if c not in REPLICATION_COLS]


def compute_summary_statistics(
    results: pd.DataFrame,
    alpha: float = ALPHA,
) -> pd.DataFrame:
    """
    Summarize replications by scenario.

    Failed fits are counted in ``n_failed`` and excluded from every other
    statistic.

    Returns
    -------
    pd.DataFrame
        One row per scenario with columns:

        - n_sims, n_failed
        - power: share of fits with p < alpha
        - power_mcse: Monte Carlo standard error of ``power``
        - coverage: share of intervals containing the true effect
        - mean_estimate, bias, empirical_se, mean_se, rmse
        - type_s: share of significant estimates with the wrong sign
        - exaggeration: mean |estimate| / |effect| among significant fits
    """
    keys = _scenario_keys(results)
    rows = []

    for key_values, g in results.groupby(keys, sort=False, dropna=False):
        if not isinstance(key_values, tuple):
            key_values = (key_values,)
        row = dict(zip(keys, key_values))
        effect = float(row["effect"])

        ok = g[g["converged"].astype(bool)]
        est = ok["estimate"].to_numpy(dtype=float)
        sig = ok["p_value"].to_numpy(dtype=float) < alpha
        n_ok = len(ok)

        power = sig.mean() if n_ok else np.nan
        row.update({
            "n_sims": len(g),
            "n_failed": len(g) - n_ok,
            "power": power,
            "power_mcse": np.sqrt(power * (1 - power) / n_ok) if n_ok else np.nan,
            "coverage": ok["covers"].mean() if n_ok else np.nan,
            "mean_estimate": est.mean() if n_ok else np.nan,
            "bias": est.mean() - effect if n_ok else np.nan,
            "empirical_se": est.std(ddof=1) if n_ok > 1 else np.nan,
            "mean_se": ok["se"].mean() if n_ok else np.nan,
            "rmse": np.sqrt(np.mean((est - effect) ** 2)) if n_ok else np.nan,
        })

        if effect != 0 and sig.any():
            row["type_s"] = float(np.mean(np.sign(est[sig]) != np.sign(effect)))
            row["exaggeration"] = float(np.mean(np.abs(est[sig])) / abs(effect))
        else:
            row["type_s"] = np.nan
            row["exaggeration"] = np.nan

        rows.append(row)

    return pd.DataFrame(rows)


# =============================================================================
# ANALYTIC BENCHMARKS
# =============================================================================

def theoretical_power(
    n: Union[int, NDArray],
    effect: Union[float, NDArray],
    sd: float = 1.0,
    alpha: float = ALPHA,
    treat_share: float = 0.5,
) -> Union[float, NDArray]:
    """
    Exact power of the two-sided two-sample t-test.

    With n₁ = round(n · treat_share) treated and n₀ = n − n₁ controls:

        ncp = effect / (sd · √(1/n₁ + 1/n₀)),   df = n − 2
        power = P(|T| > t_{1−α/2, df}),          T ~ noncentral t(df, ncp)

    Broadcasts over arrays of ``n`` and ``effect``.
    """
    n = np.asarray(n, dtype=float)
    effect = np.asarray(effect, dtype=float)
    if np.any(n < 4):
        raise ValueError("n must be at least 4 for a two-sample t-test")

    n1 = np.round(n * treat_share)
    n0 = n - n1
    df = n - 2
    ncp = effect / (sd * np.sqrt(1 / n1 + 1 / n0))
    t_crit = stats.t.ppf(1 - alpha / 2, df)
    power = stats.nct.sf(t_crit, df, ncp) + stats.nct.cdf(-t_crit, df, ncp)

    return float(power) if np.ndim(power) == 0 else power


def required_sample_size(
    effect: float,
    sd: float = 1.0,
    power: float = 0.8,
    alpha: float = ALPHA,
    treat_share: float = 0.5,
    max_n: int = 10_000_000,
) -> int:
    """Smallest total sample size whose t-test power reaches ``power``."""
    if effect == 0:
        raise ValueError("effect must be non-zero")
    if not 0 < power < 1:
        raise ValueError("power must be in (0, 1)")

    hi = 4
    while theoretical_power(hi, effect, sd, alpha, treat_share) < power:
        hi *= 2
        if hi > max_n:
            raise ValueError(f"Required sample size exceeds max_n = {max_n}")

    lo = max(4, hi // 2)
    while lo < hi:
        mid = (lo + hi) // 2
        if theoretical_power(mid, effect, sd, alpha, treat_share) >= power:
            hi = mid
        else:
            lo = mid + 1
    return int(hi)


def retrodesign(
    true_effect: float,
    se: float,
    alpha: float = ALPHA,
    df: float = np.inf,
    n_sims: int = 10000,
    rng: RNGLike = None,
) -> Dict[str, float]:
    """
    Design analysis for a hypothesized true effect (Gelman & Carlin 2014).

    Parameters
    ----------
    true_effect : float
        Plausible true effect size (from outside the study).
    se : float
        Standard error of the study's estimate.
    alpha : float, default 0.05
    df : float, default inf
        Degrees of freedom of the sampling distribution (inf = normal).
    n_sims : int, default 10000
        Draws used to approximate the exaggeration ratio.
    rng : Generator or int, optional

    Returns
    -------
    dict
        - power: probability the estimate is statistically significant
        - type_s: probability a significant estimate has the wrong sign
        - exaggeration: expected |estimate| / |true_effect| given significance

    Examples
    --------
    The beauty-and-sex-ratio example from the paper:

    >>> out = retrodesign(2.0, 8.1, rng=0)
    >>> round(out["power"], 3), round(out["type_s"], 2)
    (0.057, 0.24)
    """
    if se <= 0:
        raise ValueError("se must be positive")
    if true_effect == 0:
        raise ValueError("true_effect must be non-zero")

    dist = stats.norm if np.isinf(df) else stats.t(df)
    z = dist.ppf(1 - alpha / 2)
    lam = true_effect / se

    p_hi = dist.sf(z - lam)
    p_lo = dist.cdf(-z - lam)
    power = p_hi + p_lo
    type_s = (p_lo if true_effect > 0 else p_hi) / power

    rng = as_rng(rng)
    noise = rng.standard_normal(n_sims) if np.isinf(df) else rng.standard_t(df, n_sims)
    estimate = true_effect + se * noise
    significant = np.abs(estimate) > se * z
    exaggeration = np.mean(np.abs(estimate[significant])) / abs(true_effect) if significant.any() else np.nan

    return {
        "power": float(power),
        "type_s": float(type_s),
        "exaggeration": float(exaggeration),
    }


__all__ = [
    "ALPHA",
    "BASE_SEED",
    "N_SIMS",
    "make_scenario_grid",
    "fit_two_arm",
    "run_single_replication",
    "run_simulation_grid",
    "compute_summary_statistics",
    "theoretical_power",
    "required_sample_size",
    "retrodesign",
]
