"""Tests for the data-generating processes."""

import numpy as np
import pandas as pd
import pytest

from statnotes.simulate import (
    as_rng,
    draw,
    simulate_confounded,
    simulate_logistic,
    simulate_regression,
    simulate_two_arm,
)


@pytest.mark.parametrize("name, params, check", [
    ("normal", {"loc": 5.0, "scale": 0.1}, lambda x: abs(x.mean() - 5.0) < 0.05),
    ("bernoulli", {"p": 0.3}, lambda x: set(np.unique(x)) <= {0, 1}),
    ("binomial", {"n": 10, "p": 0.5}, lambda x: x.min() >= 0 and x.max() <= 10),
    ("poisson", {"lam": 2.0}, lambda x: x.min() >= 0),
    ("lognormal", {"mean": 0.0, "sigma": 0.5}, lambda x: x.min() > 0),
    ("uniform", {"low": -1.0, "high": 1.0}, lambda x: x.min() >= -1 and x.max() < 1),
])
def test_draw_distributions(name, params, check):
    """Every named distribution returns the requested size and support."""
    x = draw(name, 500, rng=1, **params)
    assert x.shape == (500,)
    assert check(x)


def test_draw_is_case_insensitive_and_reproducible():
    np.testing.assert_array_equal(draw("Normal", 10, rng=3), draw("normal", 10, rng=3))


def test_draw_rejects_unknown_distribution():
    with pytest.raises(ValueError, match="Unknown distribution"):
        draw("cauchy", 10)


def test_draw_rejects_negative_size():
    with pytest.raises(ValueError):
        draw("normal", -1)


def test_as_rng_passes_generators_through(rng):
    assert as_rng(rng) is rng
    assert isinstance(as_rng(7), np.random.Generator)


@pytest.mark.parametrize("n, share", [(100, 0.5), (51, 0.5), (80, 0.25)])
def test_two_arm_assigns_exact_treated_count(n, share):
    df = simulate_two_arm(n, effect=0.3, treat_share=share, rng=0)
    assert list(df.columns) == ["unit", "treat", "y"]
    assert len(df) == n
    assert df["treat"].sum() == int(round(n * share))


def test_two_arm_continuous_recovers_effect():
    df = simulate_two_arm(20000, effect=0.5, sd=1.0, baseline=2.0, rng=1)
    means = df.groupby("treat")["y"].mean()
    assert abs(means[0] - 2.0) < 0.05
    assert abs(means[1] - means[0] - 0.5) < 0.05


def test_two_arm_binary_outcome():
    df = simulate_two_arm(20000, effect=0.0, outcome="binary", p_control=0.2, rng=2)
    assert set(df["y"].unique()) <= {0, 1}
    assert abs(df["y"].mean() - 0.2) < 0.02


def test_two_arm_same_seed_same_data():
    pd.testing.assert_frame_equal(
        simulate_two_arm(50, 0.2, rng=42),
        simulate_two_arm(50, 0.2, rng=42),
    )


@pytest.mark.parametrize("kwargs", [
    {"n": 0, "effect": 0.1},
    {"n": 10, "effect": 0.1, "treat_share": 1.0},
    {"n": 10, "effect": 0.1, "outcome": "count"},
    {"n": 10, "effect": 0.1, "outcome": "binary", "p_control": 0.0},
])
def test_two_arm_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        simulate_two_arm(**kwargs)


def test_simulate_regression_columns_and_signal():
    df = simulate_regression(5000, [1.0, -0.5, 0.0], intercept=2.0, sd=0.5, rng=3)
    assert list(df.columns) == ["x1", "x2", "x3", "y"]
    assert abs(np.corrcoef(df["x1"], df["y"])[0, 1]) > 0.5
    assert abs(df["y"].mean() - 2.0) < 0.1


def test_simulate_logistic_is_binary():
    df = simulate_logistic(1000, [2.0], rng=4)
    assert set(df["y"].unique()) <= {0, 1}
    assert df.loc[df["x1"] > 1, "y"].mean() > df.loc[df["x1"] < -1, "y"].mean()


def test_confounding_biases_naive_difference():
    df = simulate_confounded(10000, effect=1.0, confounding=1.0, rng=5)
    naive = df.loc[df["treat"] == 1, "y"].mean() - df.loc[df["treat"] == 0, "y"].mean()
    assert naive > 1.3
