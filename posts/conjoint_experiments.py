# ---
# title: Conjoint experiments from scratch
# date: 2024-08-04
# tags: [causal inference, survey experiments, conjoint]
# summary: Simulate a candidate-choice conjoint, estimate average marginal component effects with respondent-clustered standard errors, and see how many respondents a conjoint actually needs.
# outputs: [amce.png, amce.md, amce_precision.png]
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
# # Conjoint experiments from scratch
#
# In a forced-choice conjoint, respondents see two hypothetical candidates
# side by side and say which one they prefer. Every attribute (gender, age,
# experience, ...) is randomized independently, so the effect of switching
# one attribute from its baseline level is identified by simple
# comparisons. That effect, averaged over the other attributes, is the
# **average marginal component effect** (AMCE).
#
# A linear probability model of the choice on treatment-coded attributes
# estimates all AMCEs at once. Each respondent answers several tasks, so
# standard errors are clustered by respondent.

# %% [markdown]
# ## 1. Setup

# %%
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

sys.path.insert(0, '..')

from statnotes import simulate_conjoint, estimate_amce, to_markdown, set_blog_style, save_figure
from statnotes.conjoint import CANDIDATE_ATTRIBUTES, true_amce
from statnotes.plotting import plot_amce, COLORS

set_blog_style()

RESULTS_DIR = Path(os.environ.get("STATNOTES_RESULTS_DIR", "../results/conjoint_experiments"))
RESULTS_DIR.mkdir(parents=True, exist_ok=True)

BASE_SEED = 5

# %% [markdown]
# ## 2. Simulated survey
#
# 800 respondents, five tasks each, two profiles per task.

# %%
df = simulate_conjoint(n_respondents=800, n_tasks=5, rng=BASE_SEED)
df.head(6)

# %%
amce = estimate_amce(df)
(RESULTS_DIR / "amce.md").write_text(
    to_markdown(amce[["attribute", "level", "estimate", "se", "ci_lower", "ci_upper"]])
)

fig, ax = plt.subplots(figsize=(7, 8))
plot_amce(amce, ax=ax)
save_figure(fig, "amce", RESULTS_DIR, formats=("png",))

# %% [markdown]
# The AMCEs are on the probability scale, while the simulation works with
# utilities. The ordering of levels matches the true utility shifts, and
# larger shifts produce larger AMCEs:

# %%
truth = true_amce()
truth.merge(amce[["attribute", "level", "estimate"]], on=["attribute", "level"])

# %% [markdown]
# ## 3. How many respondents?
#
# The standard error of an AMCE shrinks with the square root of the number
# of choices. Repeating the survey at several sizes shows how quickly.

# %%
rows = []
for n_resp in [100, 200, 400, 800, 1600]:
    sample = simulate_conjoint(n_respondents=n_resp, n_tasks=5, rng=BASE_SEED + n_resp)
    est = estimate_amce(sample)
    est = est[~est["baseline"]]
    rows.append({"n_respondents": n_resp, "mean_se": est["se"].mean()})
precision = pd.DataFrame(rows)
precision

# %%
fig, ax = plt.subplots()
ax.plot(precision["n_respondents"], precision["mean_se"], "o-", color=COLORS["primary"])
ax.set_xscale("log")
ax.set_xlabel("Respondents (5 tasks each)")
ax.set_ylabel("Average AMCE standard error")
save_figure(fig, "amce_precision", RESULTS_DIR, formats=("png",))

# %% [markdown]
# Attributes with many levels spread the same number of choices over more
# comparisons. The candidate attributes used here have between two and
# four levels:

# %%
{name: len(levels) for name, levels in CANDIDATE_ATTRIBUTES.items()}
