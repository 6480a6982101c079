# ---
# title: Instrumental variables and the weak-instrument trap
# date: 2024-06-23
# tags: [causal inference, instrumental variables]
# summary: Why OLS fails under confounding, how 2SLS fixes it, why second-stage standard errors need care, and what happens to 2SLS when the instrument is weak.
# outputs: [weak_instruments.png, estimates.md]
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
# # Instrumental variables and the weak-instrument trap
#
# An unobserved confounder $u$ drives both $x$ and $y$, so regressing $y$
# on $x$ mixes the causal effect with the confounding. An instrument $z$
# shifts $x$ but has no other path to $y$. Using only the variation in $x$
# that comes from $z$ recovers the effect:
#
# $$\beta_{IV} = \frac{\text{Cov}(y, z)}{\text{Cov}(x, z)}.$$

# %% [markdown]
# ## 1. Setup

# %%
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

sys.path.insert(0, '..')

from statnotes import simulate_iv, estimate_2sls, wald_estimator, fit_ols, to_markdown, set_blog_style, save_figure
from statnotes.iv import weak_instrument_simulation

set_blog_style()

RESULTS_DIR = Path(os.environ.get("STATNOTES_RESULTS_DIR", "../results/instrumental_variables"))
RESULTS_DIR.mkdir(parents=True, exist_ok=True)

BASE_SEED = 3
TRUE_BETA = 1.0

# %% [markdown]
# ## 2. OLS versus 2SLS

# %%
df = simulate_iv(n=1000, beta=TRUE_BETA, first_stage=0.6, confounding=1.0, rng=BASE_SEED)

ols = fit_ols("y ~ x", df, cov_type="HC1").term("x")
iv = estimate_2sls(df, outcome="y", endog="x", instruments=["z"])
wald = wald_estimator(df, outcome="y", endog="x", instrument="z")
print(iv)

estimates = pd.DataFrame([
    {"estimator": "OLS", "estimate": ols["estimate"], "se": ols["se"]},
    {"estimator": "2SLS", "estimate": iv.beta, "se": iv.se},
    {"estimator": "Wald ratio", "estimate": wald["beta_iv"], "se": float("nan")},
])
(RESULTS_DIR / "estimates.md").write_text(to_markdown(estimates))
estimates

# %% [markdown]
# The Wald ratio and 2SLS agree exactly with one instrument. OLS is pulled
# up by the confounder.
#
# ## 3. Second-stage standard errors
#
# Running the second stage by hand, as OLS of $y$ on $\hat{x}$, gives the
# right point estimate but the wrong standard error. Its residuals use
# $\hat{x}$ instead of $x$.

# %%
first = fit_ols("x ~ z", df)
df["x_hat"] = first.estimates[0] + first.estimates[1] * df["z"]
manual = fit_ols("y ~ x_hat", df).term("x_hat")
print(f"manual second stage: {manual['estimate']:.3f} (SE {manual['se']:.3f})")
print(f"2SLS, homoskedastic: {iv.beta:.3f} (SE {iv.se_homoskedastic:.3f})")

# %% [markdown]
# ## 4. Weak instruments
#
# As the first stage weakens, the 2SLS sampling distribution spreads out
# and drifts toward the OLS estimate. The first-stage F statistic is the
# standard warning light; values below about 10 are a red flag.

# %%
sim = weak_instrument_simulation([0.03, 0.1, 0.3], n=500, n_sims=300, beta=TRUE_BETA, base_seed=BASE_SEED)
print(sim.groupby("first_stage")[["beta_2sls", "beta_ols", "first_stage_f"]].median())

# %%
fig, ax = plt.subplots()
sim_plot = sim[sim["beta_2sls"].between(-2, 4)]
sns.kdeplot(data=sim_plot, x="beta_2sls", hue="first_stage", ax=ax, common_norm=False, palette="viridis")
ax.axvline(TRUE_BETA, color="black", linestyle="--", linewidth=1)
ax.axvline(sim["beta_ols"].median(), color="grey", linestyle=":", linewidth=1)
ax.set_xlabel("2SLS estimate")
ax.set_title("Sampling distribution of 2SLS by first-stage strength")
save_figure(fig, "weak_instruments", RESULTS_DIR, formats=("png",))
