"""
Conjoint Experiments
====================

Forced-choice conjoint: respondents see pairs of profiles whose attributes
are randomized independently and pick one. Because each attribute is
randomized, the average marginal component effect (AMCE) of a level relative
to its baseline is identified by a linear probability model of the choice
indicator on treatment-coded attributes (Hainmueller, Hopkins & Yamamoto 2014).

Standard errors are clustered by respondent since every respondent
contributes several choices.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from statnotes.models import ALPHA, fit_ols
from statnotes.simulate import RNGLike, as_rng


# =============================================================================
# CONSTANTS
# =============================================================================

# First level of each attribute is the baseline
CANDIDATE_ATTRIBUTES: Dict[str, List[str]] = {
    "gender": ["Male", "Female"],
    "age": ["45", "35", "55", "65"],
    "experience": ["None", "City council", "State legislature", "Governor"],
    "policy": ["Moderate", "Progressive", "Conservative"],
    "education": ["State university", "Community college", "Ivy League"],
}

# Utility shifts relative to the baseline level (missing levels are zero)
CANDIDATE_EFFECTS: Dict[str, Dict[str, float]] = {
    "gender": {"Female": 0.05},
    "age": {"35": 0.05, "55": -0.05, "65": -0.30},
    "experience": {"City council": 0.20, "State legislature": 0.35, "Governor": 0.50},
    "policy": {"Progressive": -0.10, "Conservative": -0.15},
    "education": {"Community college": -0.05, "Ivy League": 0.10},
}


# =============================================================================
# SIMULATION
# =============================================================================

def simulate_conjoint(
    attributes: Mapping[str, Sequence[str]] = CANDIDATE_ATTRIBUTES,
    effects: Optional[Mapping[str, Mapping[str, float]]] = None,
    n_respondents: int = 500,
    n_tasks: int = 5,
    profiles_per_task: int = 2,
    noise: float = 1.0,
    rng: RNGLike = None,
) -> pd.DataFrame:
    """
    Simulate a forced-choice conjoint experiment.

    Each profile's attribute levels are drawn uniformly and independently.
    Latent utility is the sum of level effects; in every task the profile
    with the highest utility plus Gumbel(0, noise) noise is chosen, which
    gives conditional-logit choice probabilities.

    Returns
    -------
    pd.DataFrame
        One row per profile with columns respondent, task, profile, one
        column per attribute, utility and chosen (exactly one 1 per task).
    """
    if profiles_per_task < 2:
        raise ValueError("profiles_per_task must be at least 2")
    if effects is None:
        effects = CANDIDATE_EFFECTS if attributes is CANDIDATE_ATTRIBUTES else {}

    rng = as_rng(rng)
    n_tasks_total = n_respondents * n_tasks
    n_rows = n_tasks_total * profiles_per_task

    df = pd.DataFrame({
        "respondent": np.repeat(np.arange(n_respondents), n_tasks * profiles_per_task),
        "task": np.tile(np.repeat(np.arange(n_tasks), profiles_per_task), n_respondents),
        "profile": np.tile(np.arange(profiles_per_task), n_tasks_total),
    })

    utility = np.zeros(n_rows)
    for name, levels in attributes.items():
        levels = [str(level) for level in levels]
        drawn = rng.choice(np.array(levels, dtype=object), size=n_rows)
        df[name] = drawn
        shifts = effects.get(name, {})
        utility += np.array([shifts.get(level, 0.0) for level in drawn])

    df["utility"] = utility

    shocks = rng.gumbel(0.0, noise, size=n_rows) if noise > 0 else np.zeros(n_rows)
    scores = (utility + shocks).reshape(n_tasks_total, profiles_per_task)
    winner = np.argmax(scores, axis=1)
    chosen = np.zeros((n_tasks_total, profiles_per_task), dtype=int)
    chosen[np.arange(n_tasks_total), winner] = 1
    df["chosen"] = chosen.ravel()

    return df


# =============================================================================
# ESTIMATION
# =============================================================================

def _baseline(data: pd.DataFrame, attribute: str, levels: Optional[Sequence[str]]) -> str:
    if levels is not None:
        return str(levels[0])
    col = data[attribute]
    if isinstance(col.dtype, pd.CategoricalDtype):
        return str(col.cat.categories[0])
    return str(sorted(col.astype(str).unique())[0])


def estimate_amce(
    data: pd.DataFrame,
    attributes: Union[Mapping[str, Sequence[str]], Sequence[str]] = CANDIDATE_ATTRIBUTES,
    outcome: str = "chosen",
    respondent: Optional[str] = "respondent",
    alpha: float = ALPHA,
) -> pd.DataFrame:
    """
    Average marginal component effects with respondent-clustered SEs.

    Parameters
    ----------
    data : pd.DataFrame
        Long table, one row per profile.
    attributes : mapping or sequence
        Attribute names. If a mapping to levels is given, the first level is
        the baseline; otherwise the first category (or alphabetical first).
    outcome : str, default 'chosen'
    respondent : str or None, default 'respondent'
        Cluster column; None gives HC1 standard errors.
    alpha : float, default 0.05

    Returns
    -------
    pd.DataFrame
        One row per (attribute, level), baselines included with estimate 0.
        Columns attribute, level, estimate, se, ci_lower, ci_upper,
        p_value, baseline.
    """
    if isinstance(attributes, Mapping):
        names = list(attributes)
        level_map = {a: list(attributes[a]) for a in names}
    else:
        names = list(attributes)
        level_map = {a: None for a in names}

    df = data.copy()
    baselines = {}
    terms = []
    for a in names:
        baselines[a] = _baseline(df, a, level_map[a])
        df[a] = df[a].astype(str)
        if df[a].nunique() < 2:
            raise ValueError(f"Attribute '{a}' has a single observed level; its AMCE is not identified")
        terms.append(f"C({a}, Treatment(reference={baselines[a]!r}))")

    formula = f"{outcome} ~ " + " + ".join(terms)
    if respondent is not None:
        fit = fit_ols(formula, df, cluster=respondent, alpha=alpha)
    else:
        fit = fit_ols(formula, df, cov_type="HC1", alpha=alpha)
    table = fit.tidy().set_index("term")

    rows = []
    for a, term in zip(names, terms):
        observed = sorted(df[a].unique())
        levels = [str(level) for level in level_map[a]] if level_map[a] is not None else observed
        levels = [baselines[a]] + [level for level in levels if level != baselines[a]]
        for level in levels:
            if level == baselines[a]:
                rows.append({
                    "attribute": a, "level": level, "estimate": 0.0, "se": 0.0,
                    "ci_lower": 0.0, "ci_upper": 0.0, "p_value": np.nan, "baseline": True,
                })
                continue
            key = f"{term}[T.{level}]"
            if key not in table.index:
                continue
            r = table.loc[key]
            rows.append({
                "attribute": a, "level": level,
                "estimate": r["estimate"], "se": r["se"],
                "ci_lower": r["ci_lower"], "ci_upper": r["ci_upper"],
                "p_value": r["p_value"], "baseline": False,
            })

    return pd.DataFrame(rows)


def true_amce(
    attributes: Mapping[str, Sequence[str]] = CANDIDATE_ATTRIBUTES,
    effects: Mapping[str, Mapping[str, float]] = CANDIDATE_EFFECTS,
) -> pd.DataFrame:
    """Utility-scale effects used by :func:`simulate_conjoint`, in long form."""
    rows = []
    for a, levels in attributes.items():
        for level in levels:
            rows.append({
                "attribute": a,
                "level": str(level),
                "utility_shift": effects.get(a, {}).get(str(level), 0.0),
            })
    return pd.DataFrame(rows)


__all__ = [
    "CANDIDATE_ATTRIBUTES",
    "CANDIDATE_EFFECTS",
    "simulate_conjoint",
    "estimate_amce",
    "true_amce",
]
