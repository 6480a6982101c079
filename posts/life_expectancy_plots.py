# ---
# title: Plotting two centuries of progress, one decade at a time
# date: 2024-09-15
# tags: [visualization, data]
# summary: Life expectancy and income from the Gapminder extract, by country and by region, and three ways of plotting the same table that tell different stories.
# outputs: [life_expectancy_countries.png, life_expectancy_regions.png, life_expectancy_gap.png, regional_panel.md]
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
# # Plotting progress in life expectancy
#
# The Gapminder extract has life expectancy, population and GDP per capita
# for 142 countries every five years from 1952 to 2007. The same table can
# be plotted as spaghetti, as regional averages, or as gaps to a reference
# region, and each choice emphasizes something different.
#
# This post downloads the data on first run and caches it locally.

# %% [markdown]
# ## 1. Setup

# %%
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import seaborn as sns

sys.path.insert(0, '..')

from statnotes import load_gapminder, load_regional_panel, to_markdown, set_blog_style, save_figure
from statnotes.data import life_expectancy_gap
from statnotes.plotting import plot_life_expectancy

set_blog_style()

RESULTS_DIR = Path(os.environ.get("STATNOTES_RESULTS_DIR", "../results/life_expectancy_plots"))
RESULTS_DIR.mkdir(parents=True, exist_ok=True)

HIGHLIGHT = ["Japan", "China", "India", "United States", "Nigeria", "Rwanda"]

# %% [markdown]
# ## 2. Countries

# %%
gm = load_gapminder()
gm.head()

# %%
fig, ax = plt.subplots(figsize=(10, 4.5))
plot_life_expectancy(gm, group="country", highlight=HIGHLIGHT, ax=ax)
ax.set_title("Life expectancy at birth, 142 countries")
save_figure(fig, "life_expectancy_countries", RESULTS_DIR, formats=("png",))

# %% [markdown]
# Almost every line goes up. The exceptions are the ones worth explaining:
# the collapse in Rwanda in the early 1990s and the flattening across
# southern Africa from the HIV epidemic.
#
# ## 3. Regions
#
# Aggregating with population weights answers a different question: how
# long does a person born in the region expect to live?

# %%
panel = load_regional_panel(gm)
latest = panel[panel["year"] == panel["year"].max()]
(RESULTS_DIR / "regional_panel.md").write_text(to_markdown(latest, floatfmt=".1f"))
latest

# %%
fig, ax = plt.subplots(figsize=(10, 4.5))
plot_life_expectancy(panel, group="region", highlight=panel["region"].unique(), ax=ax)
ax.set_title("Population-weighted life expectancy by region")
save_figure(fig, "life_expectancy_regions", RESULTS_DIR, formats=("png",))

# %% [markdown]
# ## 4. Gaps
#
# Plotting each region's distance to Europe makes convergence (or its
# absence) the main feature.

# %%
gap = life_expectancy_gap(panel, reference="Europe")

fig, ax = plt.subplots(figsize=(10, 4.5))
sns.lineplot(data=gap, x="year", y="gap", hue="region", marker="o", ax=ax)
ax.axhline(0, color="black", linewidth=0.8)
ax.set_ylabel("Years relative to Europe")
ax.set_xlabel("Year")
save_figure(fig, "life_expectancy_gap", RESULTS_DIR, formats=("png",))

# %% [markdown]
# ## 5. Income and life expectancy
#
# The familiar Preston curve for the most recent year, on a log income scale.

# %%
recent = gm[gm["year"] == gm["year"].max()]
fig, ax = plt.subplots()
sns.scatterplot(data=recent, x="gdp_per_cap", y="life_exp", hue="continent", size="pop",
                sizes=(10, 400), alpha=0.7, ax=ax, legend=False)
ax.set_xscale("log")
ax.set_xlabel("GDP per capita (log scale)")
ax.set_ylabel("Life expectancy")
plt.tight_layout()
