# ---
# title: Can matching recover an experiment? The LaLonde data
# date: 2024-11-10
# tags: [causal inference, matching, observational data]
# summary: Propensity-score matching on the NSW treated units with PSID controls, checked against the $1,794 experimental benchmark, with balance diagnostics before and after matching.
# outputs: [balance.png, propensity_overlap.png, estimates.md, balance.md]
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
# # Can matching recover an experiment?
#
# LaLonde (1986) took the treated group of a randomized job training
# program and swapped its randomized control group for people drawn from
# general population surveys. Standard regression adjustments on the
# resulting observational sample were far from the experimental answer.
# Dehejia and Wahba (1999) showed that propensity-score matching does much
# better, at least on their subsample.
#
# This post redoes that comparison. The data are downloaded from NBER on
# first run.

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

from statnotes import load_lalonde, att_matching, balance_table, fit_ols, to_markdown, set_blog_style, save_figure
from statnotes.data import get_sample_summary, EXPERIMENTAL_BENCHMARK, COVARIATE_COLS
from statnotes.plotting import plot_balance, COLORS

set_blog_style()

RESULTS_DIR = Path(os.environ.get("STATNOTES_RESULTS_DIR", "../results/matching_lalonde"))
RESULTS_DIR.mkdir(parents=True, exist_ok=True)

# %% [markdown]
# ## 2. The two samples

# %%
y_exp, d_exp, X_exp = load_lalonde(mode="experimental", verbose=True)
y_obs, d_obs, X_obs, df_obs = load_lalonde(mode="observational", return_df=True, verbose=True)

pd.DataFrame({
    "experimental": get_sample_summary(y_exp, d_exp, X_exp),
    "observational": get_sample_summary(y_obs, d_obs, X_obs),
})

# %% [markdown]
# The naive difference in means is about \$1,800 in the experiment and
# hugely negative in the observational sample: the PSID comparison group is
# older, richer and more often married than the program participants.
#
# ## 3. Regression adjustment

# %%
formula = "re78 ~ treat + " + " + ".join(COVARIATE_COLS)
ols = fit_ols(formula, df_obs, cov_type="HC1").term("treat")

# %% [markdown]
# ## 4. Propensity-score matching

# %%
matched = att_matching(y_obs, d_obs, X_obs, caliper=0.2)
print(f"Matched {matched['n_matched']} of {matched['n_treated']} treated units")

estimates = pd.DataFrame([
    {"estimator": "Experimental benchmark", "estimate": EXPERIMENTAL_BENCHMARK, "se": np.nan},
    {"estimator": "Naive difference (PSID)", "estimate": y_obs[d_obs == 1].mean() - y_obs[d_obs == 0].mean(), "se": np.nan},
    {"estimator": "OLS with covariates (PSID)", "estimate": ols["estimate"], "se": ols["se"]},
    {"estimator": "PS matching (PSID)", "estimate": matched["att"], "se": matched["se"]},
])
(RESULTS_DIR / "estimates.md").write_text(to_markdown(estimates, floatfmt=".0f"))
estimates

# %% [markdown]
# The matching standard error is the spread of the matched differences over
# the square root of the number matched. It treats the propensity score as
# known and ignores that a control can be reused, so it is too small. A
# bootstrap over the whole procedure would be the honest version.
#
# ## 5. Did matching balance the covariates?

# %%
balance = balance_table(X_obs, d_obs, COVARIATE_COLS, matches=matched["matches"])
(RESULTS_DIR / "balance.md").write_text(to_markdown(balance))

fig, ax = plt.subplots()
plot_balance(balance, ax=ax)
save_figure(fig, "balance", RESULTS_DIR, formats=("png",))

# %% [markdown]
# ## 6. Overlap
#
# Most PSID controls have propensity scores near zero. Matching only works
# because a few hundred of them look like program participants.

# %%
score = matched["propensity"]
fig, ax = plt.subplots()
bins = np.linspace(0, 1, 41)
ax.hist(score[d_obs == 0], bins=bins, color=COLORS["control"], alpha=0.6, label="PSID controls", density=True)
ax.hist(score[d_obs == 1], bins=bins, color=COLORS["treated"], alpha=0.6, label="NSW treated", density=True)
ax.set_yscale("log")
ax.set_xlabel("Estimated propensity score")
ax.legend()
save_figure(fig, "propensity_overlap", RESULTS_DIR, formats=("png",))
