"""Smoke tests for the plotting recipes (Agg backend, set in conftest)."""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from matplotlib.axes import Axes

from statnotes.bayes import BayesianLinearRegression, add_intercept, posterior_predictive_check
from statnotes.conjoint import estimate_amce, simulate_conjoint, true_amce
from statnotes.design import compute_summary_statistics, make_scenario_grid, run_simulation_grid
from statnotes.matching import balance_table
from statnotes.plotting import (
    COLORS,
    FIGURE_SIZES,
    plot_amce,
    plot_balance,
    plot_coefficients,
    plot_estimate_distribution,
    plot_life_expectancy,
    plot_posterior_predictive,
    plot_power_curves,
    plot_ppc_statistic,
    plot_rdd,
    save_figure,
    set_blog_style,
)
from statnotes.rdd import binned_means, simulate_rdd


@pytest.fixture(scope="module")
def small_results() -> pd.DataFrame:
    grid = make_scenario_grid([20, 60], [0.3, 0.8])
    return run_simulation_grid(grid, n_sims=20, verbose=False)


def test_theme_constants():
    assert {"primary", "secondary", "treated", "control"} <= set(COLORS)
    assert {"single", "wide", "square", "panel"} <= set(FIGURE_SIZES)


def test_set_blog_style_updates_rcparams():
    set_blog_style()
    assert plt.rcParams["axes.spines.top"] is False


def test_save_figure(tmp_path):
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    paths = save_figure(fig, "line", tmp_path / "out", formats=("png", "pdf"))
    assert [p.name for p in paths] == ["line.png", "line.pdf"]
    assert all(p.exists() and p.stat().st_size > 0 for p in paths)


def test_plot_power_curves(small_results):
    summary = compute_summary_statistics(small_results)
    theory = summary[["n", "effect"]].assign(power=0.5)
    ax = plot_power_curves(summary, theoretical=theory)
    assert isinstance(ax, Axes)
    assert len(ax.get_legend().get_texts()) == 2


def test_plot_estimate_distribution_uses_given_axes(small_results):
    fig, ax = plt.subplots()
    out = plot_estimate_distribution(
        small_results["estimate"], true_effect=0.3, significant=small_results["significant"], ax=ax,
    )
    assert out is ax


def test_plot_coefficients():
    table = pd.DataFrame({
        "term": ["a", "b"], "estimate": [0.1, -0.2],
        "ci_lower": [0.0, -0.4], "ci_upper": [0.2, 0.0],
    })
    ax = plot_coefficients(table)
    assert {t.get_text() for t in ax.get_yticklabels()} == {"a", "b"}


def test_plot_rdd():
    df = simulate_rdd(n=500, rng=1)
    ax = plot_rdd(df, binned_means(df, n_bins=10), bandwidth=0.3)
    assert isinstance(ax, Axes)
    assert ax.get_xlabel() == "x"


def test_plot_amce_with_truth():
    df = simulate_conjoint(n_respondents=100, n_tasks=3, rng=2)
    amce = estimate_amce(df)
    ax = plot_amce(amce, truth=true_amce())
    labels = [t.get_text() for t in ax.get_yticklabels()]
    assert "gender:" in labels
    assert "   Female" in labels


def test_plot_balance():
    rng = np.random.default_rng(3)
    X = rng.normal(size=(100, 2))
    d = (X[:, 0] > 0).astype(int)
    ax = plot_balance(balance_table(X, d, ["x1", "x2"]))
    assert {t.get_text() for t in ax.get_yticklabels()} == {"x1", "x2"}


def test_posterior_predictive_plots():
    rng = np.random.default_rng(4)
    x = rng.normal(size=80)
    y = 1 + x + rng.normal(size=80)
    X = add_intercept(x)
    y_rep = BayesianLinearRegression().fit(X, y).posterior_predictive(X, n_draws=30, rng=5)
    ax = plot_posterior_predictive(y, y_rep, n_show=10)
    assert isinstance(ax, Axes)
    check = posterior_predictive_check(y, y_rep, np.max)
    ax = plot_ppc_statistic(check, label="max(y)")
    assert "p =" in ax.get_title()


def test_plot_life_expectancy_highlights():
    df = pd.DataFrame({
        "country": ["A", "A", "B", "B"],
        "year": [1952, 1957, 1952, 1957],
        "life_exp": [40.0, 45.0, 60.0, 61.0],
    })
    ax = plot_life_expectancy(df, highlight=np.array(["A"]))
    assert [t.get_text() for t in ax.texts] == ["A"]
    assert len(ax.lines) == 2
