"""Tests for two-stage least squares and the Wald estimator."""

import numpy as np
import pandas as pd
import pytest

from statnotes.iv import (
    WEAK_INSTRUMENT_F,
    IVResult,
    estimate_2sls,
    simulate_iv,
    wald_estimator,
    weak_instrument_simulation,
)


@pytest.fixture(scope="module")
def iv_data() -> pd.DataFrame:
    return simulate_iv(n=5000, beta=1.0, first_stage=1.0, confounding=1.0, rng=31)


def test_simulate_iv_columns(iv_data):
    assert list(iv_data.columns) == ["z", "x", "y"]
    assert len(iv_data) == 5000


def test_2sls_removes_confounding_bias(iv_data):
    result = estimate_2sls(iv_data, "y", "x", ["z"])
    assert isinstance(result, IVResult)
    assert abs(result.beta - 1.0) < 0.1
    # OLS bias is Cov(x, u) / Var(x) = 1/3 in this design
    assert result.ols_beta > 1.2
    assert result.first_stage_f > WEAK_INSTRUMENT_F
    assert not result.weak_instrument


def test_2sls_equals_wald_ratio_with_one_instrument(iv_data):
    result = estimate_2sls(iv_data, "y", "x", ["z"])
    wald = wald_estimator(iv_data, "y", "x", "z")
    assert result.beta == pytest.approx(wald["beta_iv"], rel=1e-8)
    assert wald["beta_iv"] == pytest.approx(wald["reduced_form"] / wald["first_stage"])


def test_robust_flag_selects_standard_error(iv_data):
    robust = estimate_2sls(iv_data, "y", "x", ["z"], robust=True)
    classic = estimate_2sls(iv_data, "y", "x", ["z"], robust=False)
    assert robust.beta == pytest.approx(classic.beta)
    assert classic.se == pytest.approx(classic.se_homoskedastic)
    assert robust.se > 0 and classic.se > 0
    assert robust.ci == (robust.ci_lower, robust.ci_upper)


def test_2sls_with_exogenous_control():
    rng = np.random.default_rng(32)
    df = simulate_iv(n=4000, beta=2.0, first_stage=1.0, rng=rng)
    df["w"] = rng.normal(size=len(df))
    df["y"] = df["y"] + 0.5 * df["w"]
    result = estimate_2sls(df, "y", "x", ["z"], exog=["w"])
    assert abs(result.beta - 2.0) < 0.15


def test_manual_second_stage_gets_standard_error_wrong(iv_data):
    result = estimate_2sls(iv_data, "y", "x", ["z"], robust=False)
    first = np.polyfit(iv_data["z"], iv_data["x"], 1)
    x_hat = np.polyval(first, iv_data["z"])
    resid = iv_data["y"] - np.polyval(np.polyfit(x_hat, iv_data["y"], 1), x_hat)
    naive_se = np.sqrt(resid.var(ddof=2) / (len(x_hat) * x_hat.var()))
    assert naive_se != pytest.approx(result.se_homoskedastic, rel=0.05)


def test_weak_instrument_flag():
    df = simulate_iv(n=200, beta=1.0, first_stage=0.02, rng=33)
    result = estimate_2sls(df, "y", "x", ["z"])
    assert result.weak_instrument


def test_2sls_input_validation(iv_data):
    with pytest.raises(ValueError, match="instrument"):
        estimate_2sls(iv_data, "y", "x", [])
    df = iv_data.assign(z2=iv_data["z"] * 2)
    with pytest.raises(ValueError, match="rank deficient"):
        estimate_2sls(df, "y", "x", ["z", "z2"])


def test_wald_requires_instrument_variation(iv_data):
    with pytest.raises(ValueError, match="no variation"):
        wald_estimator(iv_data.assign(c=1.0), "y", "x", "c")


def test_wald_binary_instrument_is_ratio_of_differences():
    df = pd.DataFrame({
        "z": [0, 0, 1, 1],
        "x": [0.0, 0.0, 1.0, 0.0],
        "y": [1.0, 1.0, 3.0, 2.0],
    })
    wald = wald_estimator(df, "y", "x", "z")
    # (2.5 - 1.0) / (0.5 - 0.0)
    assert wald["beta_iv"] == pytest.approx(3.0)


def test_weak_instrument_simulation_layout():
    sim = weak_instrument_simulation([0.1, 1.0], n=200, n_sims=5, base_seed=1)
    assert len(sim) == 10
    assert list(sim.columns) == ["first_stage", "replication", "beta_2sls", "beta_ols", "first_stage_f"]
    f = sim.groupby("first_stage")["first_stage_f"].median()
    assert f[1.0] > f[0.1]
