"""
statnotes: Helpers Behind a Statistics Blog
===========================================

The tutorials in ``posts/`` are literate scripts that simulate data, fit a
model, and plot what happened. This package holds the pieces they share,
so each post can stay focused on the idea it explains.

Quick Start
-----------
>>> from statnotes import make_scenario_grid, run_simulation_grid, compute_summary_statistics
>>>
>>> # Power of a two-arm experiment by simulation
>>> grid = make_scenario_grid([50, 100, 200], [0.2, 0.5], sd=1.0)
>>> results = run_simulation_grid(grid, n_sims=500)
>>> summary = compute_summary_statistics(results)
>>>
>>> # Compare with the exact t-test power
>>> from statnotes import theoretical_power
>>> theoretical_power(100, 0.5)
0.69...

Modules
-------
- simulate: parametric draws and data-generating processes
- models: OLS / logit fits with tidy output (statsmodels)
- bayes: conjugate and Laplace-approximate Bayesian regression, PPCs
- design: simulation-based design analysis (power, coverage, type S/M)
- rdd, iv, conjoint, matching: causal-inference walkthroughs
- plotting, reporting: figures and tables for the posts
- site: turns the posts into a Markdown site

Author: statnotes contributors
License: MIT
"""

from statnotes.simulate import (
    draw,
    simulate_two_arm,
    simulate_regression,
    simulate_logistic,
    simulate_confounded,
)
from statnotes.models import FitResult, fit_ols, fit_logit, tidy
from statnotes.bayes import (
    NormalPrior,
    BayesianLinearRegression,
    BayesianLogisticRegression,
    posterior_predictive_check,
    add_intercept,
)
from statnotes.design import (
    make_scenario_grid,
    fit_two_arm,
    run_single_replication,
    run_simulation_grid,
    compute_summary_statistics,
    theoretical_power,
    required_sample_size,
    retrodesign,
)
from statnotes.rdd import (
    RDDResult,
    simulate_rdd,
    estimate_rdd,
    bandwidth_sensitivity,
    binned_means,
    density_test,
)
from statnotes.iv import IVResult, simulate_iv, estimate_2sls, wald_estimator
from statnotes.conjoint import simulate_conjoint, estimate_amce
from statnotes.matching import att_matching, balance_table, estimate_propensity
from statnotes.plotting import (
    set_blog_style,
    save_figure,
    COLORS,
    FIGURE_SIZES,
)
from statnotes.reporting import (
    summary_table,
    to_markdown,
    to_latex,
    format_estimate,
    print_summary,
)
from statnotes.data import load_gapminder, load_regional_panel, load_lalonde

__version__ = "1.0.0"

__all__ = [
    # Simulation
    "draw",
    "simulate_two_arm",
    "simulate_regression",
    "simulate_logistic",
    "simulate_confounded",
    # Frequentist fits
    "FitResult",
    "fit_ols",
    "fit_logit",
    "tidy",
    # Bayesian fits
    "NormalPrior",
    "BayesianLinearRegression",
    "BayesianLogisticRegression",
    "posterior_predictive_check",
    "add_intercept",
    # Design analysis
    "make_scenario_grid",
    "fit_two_arm",
    "run_single_replication",
    "run_simulation_grid",
    "compute_summary_statistics",
    "theoretical_power",
    "required_sample_size",
    "retrodesign",
    # Causal designs
    "RDDResult",
    "simulate_rdd",
    "estimate_rdd",
    "bandwidth_sensitivity",
    "binned_means",
    "density_test",
    "IVResult",
    "simulate_iv",
    "estimate_2sls",
    "wald_estimator",
    "simulate_conjoint",
    "estimate_amce",
    "att_matching",
    "balance_table",
    "estimate_propensity",
    # Plotting
    "set_blog_style",
    "save_figure",
    "COLORS",
    "FIGURE_SIZES",
    # Reporting
    "summary_table",
    "to_markdown",
    "to_latex",
    "format_estimate",
    "print_summary",
    # Data
    "load_gapminder",
    "load_regional_panel",
    "load_lalonde",
]
