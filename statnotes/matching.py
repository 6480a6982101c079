"""
Propensity Score Matching
=========================

Nearest-neighbor matching on the estimated propensity score, used in the
LaLonde tutorial to show how far an observational comparison group can be
pulled toward the experimental benchmark.
"""

from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import logit
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import NearestNeighbors
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler


# Propensity scores are clipped away from 0 and 1 before taking logits
CLIP = 1e-6


def estimate_propensity(
    D: NDArray,
    X: NDArray,
    C: float = 1.0,
    random_state: int = 42,
) -> NDArray:
    """
    Estimate e(X) = P(D = 1 | X) with a standardized logistic regression.

    Parameters
    ----------
    D : array-like of shape (n,)
        Binary treatment indicator.
    X : array-like of shape (n, p)
        Covariates.
    C : float, default 1.0
        Inverse regularization strength.

    Returns
    -------
    ndarray of shape (n,)
    """
    D = np.asarray(D).ravel()
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if len(D) != X.shape[0]:
        raise ValueError("D and X must have the same number of observations")
    if len(np.unique(D)) != 2:
        raise ValueError("D must contain both treated and control units")

    model = make_pipeline(
        StandardScaler(),
        LogisticRegression(C=C, max_iter=1000, random_state=random_state),
    )
    model.fit(X, D)
    return model.predict_proba(X)[:, 1]


def nearest_neighbor_match(
    D: NDArray,
    score: NDArray,
    caliper: Optional[float] = None,
    replace: bool = True,
) -> NDArray:
    """
    One-to-one nearest-neighbor matching on the logit score.

    Parameters
    ----------
    D : array-like of shape (n,)
    score : array-like of shape (n,)
        Propensity scores.
    caliper : float, optional
        Maximum allowed distance on the logit scale, in standard deviations
        of the logit score. Treated units without a control inside the
        caliper are left unmatched.
    replace : bool, default True
        If False, each control is used at most once. Treated units are then
        matched greedily, highest score first.

    Returns
    -------
    ndarray of shape (n_treated,)
        Index (into the full sample) of each treated unit's matched control,
        or -1 if unmatched. Treated units appear in sample order.
    """
    D = np.asarray(D).ravel().astype(bool)
    lps = logit(np.clip(np.asarray(score, dtype=float), CLIP, 1 - CLIP))
    width = caliper * np.std(lps, ddof=1) if caliper is not None else np.inf

    control_idx = np.flatnonzero(~D)
    treated_idx = np.flatnonzero(D)
    if len(control_idx) == 0:
        raise ValueError("No control units to match against")
    if len(treated_idx) == 0:
        raise ValueError("No treated units to match")

    if replace:
        nn = NearestNeighbors(n_neighbors=1).fit(lps[control_idx].reshape(-1, 1))
        dist, pos = nn.kneighbors(lps[treated_idx].reshape(-1, 1))
        matches = control_idx[pos[:, 0]]
        return np.where(dist[:, 0] <= width, matches, -1)

    matches = np.full(len(treated_idx), -1)
    available = np.ones(len(control_idx), dtype=bool)
    for t in np.argsort(-lps[treated_idx]):
        if not available.any():
            break
        dist = np.abs(lps[control_idx] - lps[treated_idx[t]])
        dist[~available] = np.inf
        best = int(np.argmin(dist))
        if dist[best] <= width:
            matches[t] = control_idx[best]
            available[best] = False
    return matches


def att_matching(
    y: NDArray,
    D: NDArray,
    X: NDArray,
    caliper: Optional[float] = None,
    replace: bool = True,
    random_state: int = 42,
) -> Dict[str, Any]:
    """
    Average treatment effect on the treated by propensity-score matching.

    The reported standard error treats matched pairs as independent and
    ignores estimation of the score, so it is a rough guide only.

    Returns
    -------
    dict
        att, se, n_treated, n_matched, propensity, matches.
    """
    y = np.asarray(y, dtype=float).ravel()
    D = np.asarray(D).ravel()
    score = estimate_propensity(D, X, random_state=random_state)
    matches = nearest_neighbor_match(D, score, caliper=caliper, replace=replace)

    treated_idx = np.flatnonzero(D.astype(bool))
    ok = matches >= 0
    if not ok.any():
        raise ValueError("No treated unit has a control within the caliper")

    diffs = y[treated_idx[ok]] - y[matches[ok]]

    return {
        "att": float(diffs.mean()),
        "se": float(diffs.std(ddof=1) / np.sqrt(ok.sum())) if ok.sum() > 1 else np.nan,
        "n_treated": int(len(treated_idx)),
        "n_matched": int(ok.sum()),
        "propensity": score,
        "matches": matches,
    }


def _smd(a: NDArray, b: NDArray) -> float:
    pooled = np.sqrt((np.var(a, ddof=1) + np.var(b, ddof=1)) / 2)
    return float((a.mean() - b.mean()) / pooled) if pooled > 0 else 0.0


def balance_table(
    X: NDArray,
    D: NDArray,
    names: List[str],
    matches: Optional[NDArray] = None,
) -> pd.DataFrame:
    """
    Standardized mean differences before (and optionally after) matching.

    SMD = (mean_treated − mean_control) / √((var_treated + var_control) / 2)

    Values below 0.1 in absolute value are conventionally read as balanced.
    """
    X = np.asarray(X, dtype=float)
    D = np.asarray(D).ravel().astype(bool)
    treated_idx = np.flatnonzero(D)

    rows = []
    for j, name in enumerate(names):
        row = {
            "covariate": name,
            "mean_treated": X[D, j].mean(),
            "mean_control": X[~D, j].mean(),
            "smd_before": _smd(X[D, j], X[~D, j]),
        }
        if matches is not None:
            ok = matches >= 0
            row["mean_matched_control"] = X[matches[ok], j].mean()
            row["smd_after"] = _smd(X[treated_idx[ok], j], X[matches[ok], j])
        rows.append(row)

    return pd.DataFrame(rows)


__all__ = [
    "estimate_propensity",
    "nearest_neighbor_match",
    "att_matching",
    "balance_table",
]
