"""Tests for the conjugate and Laplace-approximate Bayesian regressions."""

import numpy as np
import pandas as pd
import pytest

from statnotes.bayes import (
    BayesianLinearRegression,
    BayesianLogisticRegression,
    NormalPrior,
    add_intercept,
    posterior_predictive_check,
)
from statnotes.models import fit_logit, fit_ols
from statnotes.simulate import simulate_logistic, simulate_regression


@pytest.fixture(scope="module")
def linear_data() -> pd.DataFrame:
    return simulate_regression(500, [1.0, 0.5], intercept=2.0, sd=1.0, rng=11)


def test_prior_broadcast():
    mean, scale = NormalPrior(0.0, [1.0, 2.0, 3.0]).broadcast(3)
    np.testing.assert_array_equal(mean, [0.0, 0.0, 0.0])
    np.testing.assert_array_equal(scale, [1.0, 2.0, 3.0])


def test_prior_rejects_non_positive_scale():
    with pytest.raises(ValueError, match="strictly positive"):
        NormalPrior(0.0, [1.0, 0.0]).broadcast(2)


def test_add_intercept():
    X = add_intercept(np.arange(3.0))
    np.testing.assert_array_equal(X[:, 0], 1.0)
    assert X.shape == (3, 2)
    df = add_intercept(pd.DataFrame({"a": [1.0, 2.0]}))
    assert list(df.columns) == ["Intercept", "a"]


def test_weak_prior_matches_ols(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    model = BayesianLinearRegression(prior=NormalPrior(0.0, 1000.0)).fit(X, linear_data["y"])
    ols = fit_ols("y ~ x1 + x2", linear_data)
    np.testing.assert_allclose(model.mean_, ols.estimates, atol=1e-3)
    assert model.feature_names_ == ["Intercept", "x1", "x2"]


def test_tight_prior_shrinks_to_prior_mean(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    prior = NormalPrior([0.0, 0.0, 0.0], [100.0, 1e-3, 1e-3])
    model = BayesianLinearRegression(prior=prior).fit(X, linear_data["y"])
    assert np.all(np.abs(model.mean_[1:]) < 0.05)


def test_prior_mean_pulls_estimates(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    y = linear_data["y"]
    neutral = BayesianLinearRegression(prior=NormalPrior(0.0, 0.1)).fit(X, y)
    pulled = BayesianLinearRegression(prior=NormalPrior(-1.0, 0.1)).fit(X, y)
    assert np.all(pulled.mean_ < neutral.mean_)


def test_summary_intervals_cover_truth(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    summary = BayesianLinearRegression().fit(X, linear_data["y"]).summary(cred_mass=0.999)
    assert list(summary.columns) == ["term", "mean", "sd", "ci_lower", "ci_upper"]
    truth = np.array([2.0, 1.0, 0.5])
    assert np.all((summary["ci_lower"] < truth) & (truth < summary["ci_upper"]))


def test_noise_variance_posterior(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    model = BayesianLinearRegression().fit(X, linear_data["y"])
    assert abs(model.sigma2_mean_ - 1.0) < 0.2
    assert model.df_ == pytest.approx(2 * (1.0 + 500 / 2))


def test_posterior_draw_shapes(linear_data):
    X = add_intercept(linear_data[["x1", "x2"]])
    model = BayesianLinearRegression().fit(X, linear_data["y"])
    beta, sigma2 = model.sample_posterior(200, rng=1)
    assert beta.shape == (200, 3)
    assert sigma2.shape == (200,)
    assert np.all(sigma2 > 0)
    y_rep = model.posterior_predictive(X, n_draws=50, rng=2)
    assert y_rep.shape == (50, 500)


def test_unfitted_model_raises():
    with pytest.raises(RuntimeError, match="not fitted"):
        BayesianLinearRegression().summary()
    with pytest.raises(RuntimeError, match="not fitted"):
        BayesianLogisticRegression().sample_posterior(10)


def test_invalid_inputs():
    with pytest.raises(ValueError):
        BayesianLinearRegression(a0=0.0)
    with pytest.raises(ValueError, match="same number"):
        BayesianLinearRegression().fit(np.ones((5, 2)), np.ones(4))


def test_logistic_close_to_mle():
    df = simulate_logistic(2000, [1.0, -0.5], intercept=-0.5, rng=12)
    X = add_intercept(df[["x1", "x2"]])
    model = BayesianLogisticRegression().fit(X, df["y"])
    mle = fit_logit("y ~ x1 + x2", df)
    assert isinstance(model.converged_, bool)
    np.testing.assert_allclose(model.mean_, mle.estimates, atol=0.05)
    summary = model.summary()
    assert (summary["sd"] > 0).all()


def test_logistic_posterior_predictive_is_binary():
    df = simulate_logistic(300, [1.0], rng=13)
    X = add_intercept(df[["x1"]])
    y_rep = BayesianLogisticRegression().fit(X, df["y"]).posterior_predictive(X, n_draws=20, rng=1)
    assert y_rep.shape == (20, 300)
    assert set(np.unique(y_rep)) <= {0, 1}


def test_logistic_requires_binary_outcome():
    with pytest.raises(ValueError, match="binary"):
        BayesianLogisticRegression().fit(np.ones((3, 1)), np.array([0.0, 1.0, 2.0]))


def test_posterior_predictive_check_p_value():
    y_obs = np.zeros(10)
    y_rep = np.vstack([np.full(10, k) for k in (-2.0, -1.0, 0.0, 1.0, 2.0)])
    check = posterior_predictive_check(y_obs, y_rep, np.mean)
    assert check["observed"] == 0.0
    np.testing.assert_array_equal(check["replicated"], [-2.0, -1.0, 0.0, 1.0, 2.0])
    assert check["p_value"] == pytest.approx(0.6)


def test_posterior_predictive_check_shape_mismatch():
    with pytest.raises(ValueError):
        posterior_predictive_check(np.zeros(5), np.zeros((3, 4)))
