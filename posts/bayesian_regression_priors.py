# ---
# title: How much do priors matter? Bayesian regression by hand
# date: 2024-04-07
# tags: [bayesian, regression, posterior predictive checks]
# summary: Conjugate Bayesian linear regression under weak and strong priors, a Laplace-approximate logistic regression, and posterior predictive checks that catch a misspecified model.
# outputs: [prior_comparison.png, ppc_density.png, ppc_statistic.png, prior_comparison.md]
# jupyter:
#   jupytext:
#     formats: ipynb,py:percent
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.16.1
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # How much do priors matter?
#
# With conjugate priors the posterior of a linear regression is available
# in closed form, which makes it a good sandbox for building intuition:
# we can change the prior and see the posterior move instantly, no sampler
# required.
#
# The model is
#
# $$y \mid \beta, \sigma^2 \sim N(X\beta, \sigma^2 I), \quad
#   \beta \mid \sigma^2 \sim N(m_0, \sigma^2 V_0), \quad
#   \sigma^2 \sim \text{Inv-Gamma}(a_0, b_0).$$

# %% [markdown]
# ## 1. Setup

# %%
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

sys.path.insert(0, '..')

from statnotes import (
    simulate_regression,
    simulate_logistic,
    fit_ols,
    fit_logit,
    NormalPrior,
    BayesianLinearRegression,
    BayesianLogisticRegression,
    posterior_predictive_check,
    add_intercept,
    to_markdown,
    set_blog_style,
    save_figure,
)
from statnotes.plotting import plot_posterior_predictive, plot_ppc_statistic

set_blog_style()

RESULTS_DIR = Path(os.environ.get("STATNOTES_RESULTS_DIR", "../results/bayesian_regression_priors"))
RESULTS_DIR.mkdir(parents=True, exist_ok=True)

BASE_SEED = 7

# %% [markdown]
# ## 2. A small dataset
#
# Thirty observations, two covariates, true coefficients 1.0 and 0.5.

# %%
TRUE_COEFS = [1.0, 0.5]
df = simulate_regression(30, TRUE_COEFS, intercept=2.0, sd=1.5, rng=BASE_SEED)
X = add_intercept(df[["x1", "x2"]])
y = df["y"]

ols = fit_ols("y ~ x1 + x2", df)
ols.tidy()

# %% [markdown]
# ## 3. Three priors
#
# - **weak**: $N(0, 10^2\sigma^2)$ on everything, which is essentially OLS,
# - **skeptical**: slopes shrunk toward zero with scale 0.2,
# - **wrong but confident**: slopes centered at $-1$ with scale 0.2.

# %%
priors = {
    "weak": NormalPrior(0.0, 10.0),
    "skeptical": NormalPrior([0.0, 0.0, 0.0], [10.0, 0.2, 0.2]),
    "wrong but confident": NormalPrior([0.0, -1.0, -1.0], [10.0, 0.2, 0.2]),
}

rows = []
for name, prior in priors.items():
    post = BayesianLinearRegression(prior=prior, a0=2.0, b0=2.0).fit(X, y).summary()
    post["prior"] = name
    rows.append(post)
comparison = pd.concat(rows, ignore_index=True)
(RESULTS_DIR / "prior_comparison.md").write_text(to_markdown(comparison))
comparison

# %%
fig, ax = plt.subplots()
slopes = comparison[comparison["term"] != "Intercept"].reset_index(drop=True)
offsets = {name: i * 0.2 - 0.2 for i, name in enumerate(priors)}
for name, g in slopes.groupby("prior", sort=False):
    ypos = np.arange(len(g)) + offsets[name]
    ax.errorbar(g["mean"], ypos, xerr=[g["mean"] - g["ci_lower"], g["ci_upper"] - g["mean"]],
                fmt="o", capsize=3, label=name)
ax.scatter(TRUE_COEFS, np.arange(len(TRUE_COEFS)), marker="x", color="black", zorder=4, label="truth")
ax.set_yticks(np.arange(len(TRUE_COEFS)))
ax.set_yticklabels(["x1", "x2"])
ax.set_xlabel("Posterior mean and 95% credible interval")
ax.legend(loc="lower right")
save_figure(fig, "prior_comparison", RESULTS_DIR, formats=("png",))

# %% [markdown]
# With thirty observations the data do not overwhelm a confident prior:
# the wrong prior drags both slopes well below the truth. Weak priors
# reproduce OLS.

# %% [markdown]
# ## 4. Logistic regression with a Laplace approximation
#
# For a binary outcome there is no conjugate prior, but the posterior is
# close to normal around its mode once there is a moderate amount of data.

# %%
df_bin = simulate_logistic(200, [1.0, -0.5], intercept=-0.5, rng=BASE_SEED)
Xb = add_intercept(df_bin[["x1", "x2"]])

bayes_logit = BayesianLogisticRegression(prior=NormalPrior(0.0, 2.5)).fit(Xb, df_bin["y"])
print(bayes_logit.summary())
print(fit_logit("y ~ x1 + x2", df_bin).tidy())

# %% [markdown]
# ## 5. Posterior predictive checks
#
# A check asks whether data simulated from the fitted model look like the
# data we have. Below the outcome is skewed (lognormal errors) but the model
# assumes normal errors. Means are fitted fine, but the minimum gives the
# problem away.

# %%
rng = np.random.default_rng(BASE_SEED)
n = 200
x = rng.normal(size=n)
y_skew = 1.0 + 0.5 * x + (rng.lognormal(0.0, 0.9, size=n) - np.exp(0.9 ** 2 / 2))
X_skew = add_intercept(x)

model = BayesianLinearRegression().fit(X_skew, y_skew)
y_rep = model.posterior_predictive(X_skew, n_draws=500, rng=BASE_SEED)

fig, ax = plt.subplots()
plot_posterior_predictive(y_skew, y_rep, n_show=60, ax=ax)
save_figure(fig, "ppc_density", RESULTS_DIR, formats=("png",))

# %%
check_mean = posterior_predictive_check(y_skew, y_rep, np.mean)
check_min = posterior_predictive_check(y_skew, y_rep, np.min)
print(f"p-value for the mean: {check_mean['p_value']:.2f}")
print(f"p-value for the min:  {check_min['p_value']:.2f}")

fig, ax = plt.subplots()
plot_ppc_statistic(check_min, label="min(y)", ax=ax)
save_figure(fig, "ppc_statistic", RESULTS_DIR, formats=("png",))
