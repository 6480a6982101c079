"""
Plotting Recipes
================

A shared theme plus the handful of figures the tutorials reuse. Every recipe
takes an optional ``ax`` and returns the axes, so figures can be composed
into panels.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from numpy.typing import NDArray


# =============================================================================
# Theme
# =============================================================================

COLORS: Dict[str, str] = {
    "primary": "#2E86AB",
    "secondary": "#E94F37",
    "accent": "#F6AE2D",
    "neutral": "#555555",
    "light": "#BBBBBB",
    "treated": "#E94F37",
    "control": "#2E86AB",
}

FIGURE_SIZES: Dict[str, Tuple[float, float]] = {
    "single": (7, 4.5),
    "wide": (10, 4.5),
    "square": (6, 6),
    "panel": (12, 5),
}

BLOG_RC: Dict[str, Any] = {
    "font.family": "serif",
    "font.serif": ["DejaVu Serif", "Times New Roman", "serif"],
    "font.size": 11,
    "mathtext.fontset": "stix",
    "figure.figsize": FIGURE_SIZES["single"],
    "figure.dpi": 110,
    "figure.facecolor": "white",
    "axes.labelsize": 11,
    "axes.titlesize": 12,
    "axes.spines.top": False,
    "axes.spines.right": False,
    "legend.fontsize": 9,
    "legend.frameon": False,
    "savefig.dpi": 200,
    "savefig.bbox": "tight",
    "savefig.facecolor": "white",
}


def set_blog_style(context: str = "notebook") -> None:
    """Apply the site-wide seaborn theme and rcParams."""
    sns.set_theme(context=context, style="whitegrid", palette="deep")
    plt.rcParams.update(BLOG_RC)


def save_figure(
    fig: Any,
    name: str,
    results_dir: Union[str, Path],
    formats: Sequence[str] = ("png", "pdf"),
) -> List[Path]:
    """
    Save ``fig`` as ``results_dir/name.<fmt>`` for each format.

    Returns the written paths.
    """
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for fmt in formats:
        path = results_dir / f"{name}.{fmt}"
        fig.savefig(path)
        paths.append(path)
    return paths


def _axes(ax: Optional[Any], size: str = "single") -> Any:
    if ax is None:
        _, ax = plt.subplots(figsize=FIGURE_SIZES[size])
    return ax


# =============================================================================
# Design analysis
# =============================================================================

def plot_power_curves(
    summary: pd.DataFrame,
    x: str = "n",
    hue: str = "effect",
    theoretical: Optional[pd.DataFrame] = None,
    target: Optional[float] = 0.8,
    ax: Optional[Any] = None,
) -> Any:
    """
    Simulated power against sample size, one line per effect size.

    Parameters
    ----------
    summary : pd.DataFrame
        Output of ``compute_summary_statistics`` (needs ``power`` and
        ``power_mcse``).
    x, hue : str
        Columns for the horizontal axis and line grouping.
    theoretical : pd.DataFrame, optional
        Same ``x``/``hue`` columns plus ``power``; drawn as dashed lines.
    target : float, optional
        Horizontal reference line (e.g. 0.8).
    """
    ax = _axes(ax)
    palette = sns.color_palette("viridis", summary[hue].nunique())

    for color, (level, g) in zip(palette, summary.groupby(hue)):
        g = g.sort_values(x)
        ax.errorbar(
            g[x], g["power"], yerr=1.96 * g["power_mcse"],
            fmt="o-", color=color, capsize=3, markersize=5,
            label=f"{hue} = {level}",
        )
        if theoretical is not None:
            t = theoretical[theoretical[hue] == level].sort_values(x)
            ax.plot(t[x], t["power"], "--", color=color, alpha=0.7, linewidth=1)

    if target is not None:
        ax.axhline(target, color=COLORS["neutral"], linestyle=":", linewidth=1)

    ax.set_xlabel("Sample size" if x == "n" else x)
    ax.set_ylabel("Power")
    ax.set_ylim(0, 1.02)
    ax.legend(loc="lower right")
    ax.set_title("Power by simulation", fontweight="bold")
    plt.tight_layout()
    return ax


def plot_estimate_distribution(
    estimates: Union[NDArray, pd.Series],
    true_effect: Optional[float] = None,
    significant: Optional[Union[NDArray, pd.Series]] = None,
    bins: int = 40,
    ax: Optional[Any] = None,
) -> Any:
    """
    Histogram of simulated estimates with the true effect marked.

    If ``significant`` is given, significant estimates are stacked in a
    second color, which makes the exaggeration of significant results visible.
    """
    ax = _axes(ax)
    estimates = np.asarray(estimates, dtype=float)
    keep = np.isfinite(estimates)

    if significant is None:
        ax.hist(estimates[keep], bins=bins, color=COLORS["primary"], alpha=0.8)
    else:
        sig = np.asarray(significant, dtype=float)[keep] == 1
        e = estimates[keep]
        ax.hist(
            [e[~sig], e[sig]], bins=bins, stacked=True,
            color=[COLORS["light"], COLORS["secondary"]],
            label=["not significant", "significant"],
        )
        ax.legend(loc="upper right")

    if true_effect is not None:
        ax.axvline(true_effect, color="black", linestyle="--", linewidth=1.2,
                   label=f"true effect = {true_effect:g}")

    ax.set_xlabel("Estimate")
    ax.set_ylabel("Count")
    plt.tight_layout()
    return ax


def plot_coefficients(
    table: pd.DataFrame,
    estimate: str = "estimate",
    lower: str = "ci_lower",
    upper: str = "ci_upper",
    label: str = "term",
    reference: Optional[float] = 0.0,
    ax: Optional[Any] = None,
) -> Any:
    """Dot-and-whisker plot from a tidy coefficient table."""
    ax = _axes(ax)
    y = np.arange(len(table))[::-1]

    ax.errorbar(
        table[estimate], y,
        xerr=[table[estimate] - table[lower], table[upper] - table[estimate]],
        fmt="o", color=COLORS["primary"], capsize=3, markersize=6,
    )
    if reference is not None:
        ax.axvline(reference, color=COLORS["neutral"], linestyle="--", linewidth=0.8)

    ax.set_yticks(y)
    ax.set_yticklabels(table[label])
    ax.set_xlabel("Estimate")
    plt.tight_layout()
    return ax


# =============================================================================
# Causal designs
# =============================================================================

def plot_rdd(
    data: pd.DataFrame,
    bins: pd.DataFrame,
    outcome: str = "y",
    running: str = "x",
    cutoff: float = 0.0,
    bandwidth: Optional[float] = None,
    show_points: bool = True,
    ax: Optional[Any] = None,
) -> Any:
    """
    Binned scatter with separate linear fits on each side of the cutoff.

    Parameters
    ----------
    data : pd.DataFrame
        Raw observations (drawn faintly when ``show_points``).
    bins : pd.DataFrame
        Output of ``binned_means``.
    bandwidth : float, optional
        Shade the estimation window.
    """
    ax = _axes(ax, "wide")

    if show_points:
        ax.scatter(data[running], data[outcome], s=4, alpha=0.15, color=COLORS["light"])

    for side, color in (("left", COLORS["control"]), ("right", COLORS["treated"])):
        b = bins[bins["side"] == side]
        ax.scatter(b["bin_center"], b["mean"], s=25, color=color, zorder=3)
        mask = data[running] < cutoff if side == "left" else data[running] >= cutoff
        xs = data.loc[mask, running].to_numpy(dtype=float)
        ys = data.loc[mask, outcome].to_numpy(dtype=float)
        if len(xs) > 1:
            slope, intercept = np.polyfit(xs, ys, 1)
            grid = np.linspace(xs.min(), xs.max(), 50)
            ax.plot(grid, intercept + slope * grid, color=color, linewidth=2)

    ax.axvline(cutoff, color="black", linestyle="--", linewidth=1)
    if bandwidth is not None:
        ax.axvspan(cutoff - bandwidth, cutoff + bandwidth, color=COLORS["accent"], alpha=0.1)

    ax.set_xlabel(running)
    ax.set_ylabel(outcome)
    plt.tight_layout()
    return ax


def plot_amce(
    amce: pd.DataFrame,
    truth: Optional[pd.DataFrame] = None,
    ax: Optional[Any] = None,
) -> Any:
    """
    Conjoint AMCE plot: levels grouped under attribute headers.

    Parameters
    ----------
    amce : pd.DataFrame
        Output of ``estimate_amce``.
    truth : pd.DataFrame, optional
        Columns attribute, level and a value column (first non-key column)
        drawn as open markers for comparison.
    """
    ax = _axes(ax, "square")

    labels, ys = [], []
    y = 0
    positions = {}
    for attribute, g in amce.groupby("attribute", sort=False):
        labels.append(f"{attribute}:")
        ys.append(y)
        y -= 1
        for _, r in g.iterrows():
            labels.append(f"   {r['level']}")
            ys.append(y)
            positions[(attribute, r["level"])] = y
            y -= 1

    est_y = [positions[(r["attribute"], r["level"])] for _, r in amce.iterrows()]
    ax.errorbar(
        amce["estimate"], est_y,
        xerr=[amce["estimate"] - amce["ci_lower"], amce["ci_upper"] - amce["estimate"]],
        fmt="o", color=COLORS["primary"], capsize=2, markersize=5,
    )

    if truth is not None:
        value = [c for c in truth.columns if c not in ("attribute", "level")][0]
        t = truth[[(a, lv) in positions for a, lv in zip(truth["attribute"], truth["level"])]]
        ax.scatter(
            t[value], [positions[(a, lv)] for a, lv in zip(t["attribute"], t["level"])],
            facecolors="none", edgecolors=COLORS["secondary"], s=50, zorder=3, label="truth",
        )
        ax.legend(loc="lower right")

    ax.axvline(0, color=COLORS["neutral"], linestyle="--", linewidth=0.8)
    ax.set_yticks(ys)
    ax.set_yticklabels(labels)
    ax.set_xlabel("Change in Pr(chosen)")
    ax.set_title("Average marginal component effects", fontweight="bold")
    plt.tight_layout()
    return ax


def plot_balance(
    balance: pd.DataFrame,
    threshold: float = 0.1,
    ax: Optional[Any] = None,
) -> Any:
    """Love plot of absolute standardized mean differences."""
    ax = _axes(ax)
    y = np.arange(len(balance))[::-1]

    ax.scatter(balance["smd_before"].abs(), y, color=COLORS["secondary"], label="before", zorder=3)
    if "smd_after" in balance.columns:
        ax.scatter(balance["smd_after"].abs(), y, color=COLORS["primary"], label="after", zorder=3)
    ax.axvline(threshold, color=COLORS["neutral"], linestyle="--", linewidth=0.8)

    ax.set_yticks(y)
    ax.set_yticklabels(balance["covariate"])
    ax.set_xlabel("|Standardized mean difference|")
    ax.legend(loc="lower right")
    plt.tight_layout()
    return ax


# =============================================================================
# Bayesian
# =============================================================================

def plot_posterior_predictive(
    y_obs: NDArray,
    y_rep: NDArray,
    n_show: int = 50,
    ax: Optional[Any] = None,
) -> Any:
    """Density of the observed data over densities of replicated datasets."""
    ax = _axes(ax)
    y_rep = np.atleast_2d(np.asarray(y_rep))

    for row in y_rep[: min(n_show, len(y_rep))]:
        sns.kdeplot(x=row, ax=ax, color=COLORS["light"], linewidth=0.6, alpha=0.5)
    sns.kdeplot(x=np.asarray(y_obs), ax=ax, color=COLORS["primary"], linewidth=2.2, label="observed")

    ax.set_xlabel("y")
    ax.set_ylabel("Density")
    ax.legend(loc="upper right")
    plt.tight_layout()
    return ax


def plot_ppc_statistic(
    check: Dict[str, Any],
    label: str = "T(y)",
    bins: int = 40,
    ax: Optional[Any] = None,
) -> Any:
    """Histogram of T(y_rep) with the observed T(y) and its p-value."""
    ax = _axes(ax)
    ax.hist(check["replicated"], bins=bins, color=COLORS["light"])
    ax.axvline(check["observed"], color=COLORS["secondary"], linewidth=2)
    ax.set_xlabel(label)
    ax.set_title(f"posterior predictive p = {check['p_value']:.2f}")
    plt.tight_layout()
    return ax


# =============================================================================
# Life expectancy
# =============================================================================

def plot_life_expectancy(
    data: pd.DataFrame,
    group: str = "country",
    highlight: Optional[Iterable[str]] = None,
    value: str = "life_exp",
    ax: Optional[Any] = None,
) -> Any:
    """
    Life expectancy over time, one line per ``group``.

    Lines in ``highlight`` are drawn in color and labelled at their last
    point; everything else is drawn in light grey.
    """
    ax = _axes(ax, "wide")
    highlight = set(highlight) if highlight is not None else set()
    palette = iter(sns.color_palette("deep", max(len(highlight), 1)))

    for name, g in data.groupby(group):
        g = g.sort_values("year")
        if name in highlight:
            color = next(palette)
            ax.plot(g["year"], g[value], color=color, linewidth=2)
            ax.annotate(
                name, (g["year"].iloc[-1], g[value].iloc[-1]),
                xytext=(4, 0), textcoords="offset points",
                fontsize=9, color=color, va="center",
            )
        else:
            ax.plot(g["year"], g[value], color=COLORS["light"], linewidth=0.7, alpha=0.6)

    ax.set_xlabel("Year")
    ax.set_ylabel("Life expectancy (years)")
    plt.tight_layout()
    return ax


__all__ = [
    "COLORS",
    "FIGURE_SIZES",
    "set_blog_style",
    "save_figure",
    "plot_power_curves",
    "plot_estimate_distribution",
    "plot_coefficients",
    "plot_rdd",
    "plot_amce",
    "plot_balance",
    "plot_posterior_predictive",
    "plot_ppc_statistic",
    "plot_life_expectancy",
]
