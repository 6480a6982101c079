"""Tests for propensity-score matching."""

import numpy as np
import pytest

from statnotes.matching import (
    att_matching,
    balance_table,
    estimate_propensity,
    nearest_neighbor_match,
)
from statnotes.simulate import simulate_confounded


@pytest.fixture(scope="module")
def confounded():
    df = simulate_confounded(3000, effect=1.0, confounding=1.0, rng=51)
    return df["y"].to_numpy(), df["treat"].to_numpy(), df[["x"]].to_numpy()


def test_propensity_scores_are_probabilities(confounded):
    _, d, X = confounded
    score = estimate_propensity(d, X)
    assert score.shape == d.shape
    assert np.all((score > 0) & (score < 1))
    assert score[d == 1].mean() > score[d == 0].mean()


def test_propensity_validation():
    with pytest.raises(ValueError, match="both treated and control"):
        estimate_propensity(np.ones(5), np.arange(5.0))
    with pytest.raises(ValueError, match="same number"):
        estimate_propensity(np.array([0, 1, 0]), np.arange(4.0))


def test_match_with_replacement():
    d = np.array([1, 1, 0, 0, 0])
    score = np.array([0.8, 0.3, 0.79, 0.31, 0.5])
    np.testing.assert_array_equal(nearest_neighbor_match(d, score), [2, 3])


def test_match_with_replacement_reuses_controls():
    d = np.array([1, 1, 0, 0])
    score = np.array([0.6, 0.61, 0.6, 0.1])
    np.testing.assert_array_equal(nearest_neighbor_match(d, score), [2, 2])


def test_match_without_replacement_is_greedy():
    d = np.array([1, 1, 0])
    score = np.array([0.6, 0.59, 0.6])
    np.testing.assert_array_equal(nearest_neighbor_match(d, score, replace=False), [2, -1])


def test_caliper_leaves_units_unmatched():
    d = np.array([1, 0, 0])
    score = np.array([0.9, 0.1, 0.2])
    np.testing.assert_array_equal(nearest_neighbor_match(d, score, caliper=0.01), [-1])


def test_match_requires_controls():
    with pytest.raises(ValueError, match="No control"):
        nearest_neighbor_match(np.array([1, 1]), np.array([0.4, 0.6]))


def test_match_requires_treated_units():
    with pytest.raises(ValueError, match="No treated"):
        nearest_neighbor_match(np.zeros(5), np.linspace(0.1, 0.5, 5))


def test_att_matching_removes_confounding(confounded):
    y, d, X = confounded
    naive = y[d == 1].mean() - y[d == 0].mean()
    out = att_matching(y, d, X)
    assert abs(out["att"] - 1.0) < 0.25
    assert naive - 1.0 > 0.5
    assert out["n_matched"] == out["n_treated"] == int(d.sum())
    assert out["se"] > 0
    assert len(out["matches"]) == out["n_treated"]


def test_balance_improves_after_matching(confounded):
    y, d, X = confounded
    out = att_matching(y, d, X)
    table = balance_table(X, d, ["x"], matches=out["matches"])
    assert list(table.columns) == [
        "covariate", "mean_treated", "mean_control", "smd_before",
        "mean_matched_control", "smd_after",
    ]
    row = table.iloc[0]
    assert abs(row["smd_before"]) > 0.5
    assert abs(row["smd_after"]) < 0.1


def test_balance_before_matching_only(confounded):
    _, d, X = confounded
    table = balance_table(X, d, ["x"])
    assert "smd_after" not in table.columns
