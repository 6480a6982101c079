"""
Reporting Functions
===================

Summary tables for the posts: a presentation DataFrame, then Markdown (for
the rendered pages) or LaTeX (for anything that ends up in a paper).
"""

from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


# Display names for design-analysis summary columns
COLUMN_LABELS: Dict[str, str] = {
    "n": "n",
    "effect": "Effect",
    "power": "Power",
    "power_mcse": "MCSE",
    "coverage": "Coverage",
    "mean_estimate": "Mean est.",
    "bias": "Bias",
    "empirical_se": "Emp. SE",
    "mean_se": "Mean SE",
    "rmse": "RMSE",
    "type_s": "Type S",
    "exaggeration": "Exaggeration",
    "n_sims": "Sims",
    "n_failed": "Failed",
    "theoretical_power": "Theory",
}

DEFAULT_COLUMNS = ["n", "effect", "power", "coverage", "bias", "rmse", "type_s", "exaggeration"]


def summary_table(
    summary: pd.DataFrame,
    columns: Optional[Sequence[str]] = None,
    digits: int = 3,
    rename: bool = True,
) -> pd.DataFrame:
    """
    Select, round and relabel columns of a summary DataFrame.

    Parameters
    ----------
    summary : pd.DataFrame
        Typically the output of ``compute_summary_statistics``.
    columns : sequence of str, optional
        Columns to keep, in order. Missing ones are skipped.
    digits : int, default 3
    rename : bool, default True
        Replace column names with ``COLUMN_LABELS``.
    """
    columns = list(columns) if columns is not None else DEFAULT_COLUMNS
    df = summary[[c for c in columns if c in summary.columns]].copy()

    numeric = df.select_dtypes(include=[np.number]).columns
    df[numeric] = df[numeric].round(digits)

    if rename:
        df = df.rename(columns=COLUMN_LABELS)
    return df.reset_index(drop=True)


def to_markdown(df: pd.DataFrame, floatfmt: str = ".3f") -> str:
    """GitHub-flavored Markdown table (via tabulate)."""
    return df.to_markdown(index=False, floatfmt=floatfmt)


def to_latex(
    df: pd.DataFrame,
    caption: Optional[str] = None,
    label: Optional[str] = None,
    float_format: str = "%.3f",
) -> str:
    """
    Export a DataFrame to a LaTeX tabular.

    With a caption or label the tabular is wrapped in a ``table`` float,
    caption and label below the tabular; otherwise the bare tabular is
    returned.
    """
    latex = df.to_latex(index=False, float_format=float_format, escape=False)

    if caption or label:
        lines = ["\\begin{table}[htbp]", "\\centering", latex.rstrip("\n")]
        if caption:
            lines.append(f"\\caption{{{caption}}}")
        if label:
            lines.append(f"\\label{{{label}}}")
        lines.append("\\end{table}")
        latex = "\n".join(lines) + "\n"

    return latex


def format_estimate(
    estimate: float,
    se: float,
    ci: Optional[Tuple[float, float]] = None,
    digits: int = 3,
) -> str:
    """
    Format an estimate for inline text, e.g. ``"0.512 (0.101) [0.31, 0.71]"``.
    """
    text = f"{estimate:.{digits}f} ({se:.{digits}f})"
    if ci is not None:
        ci_digits = max(digits - 1, 0)
        text += f" [{ci[0]:.{ci_digits}f}, {ci[1]:.{ci_digits}f}]"
    return text


def print_summary(summary: pd.DataFrame, title: str = "DESIGN ANALYSIS SUMMARY") -> None:
    """Print a design-analysis summary to the console, one block per scenario."""
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)

    for i, (_, r) in enumerate(summary.iterrows()):
        if i > 0:
            print("-" * 70)
        print(f"\nn = {int(r['n'])}, effect = {r['effect']:g}")
        print(f"  power    = {r['power']:.3f}  (MCSE = {r['power_mcse']:.3f})")
        print(f"  coverage = {r['coverage']:.3f}  |  bias = {r['bias']:.4f}  |  RMSE = {r['rmse']:.4f}")
        if np.isfinite(r.get("type_s", np.nan)):
            print(f"  type S   = {r['type_s']:.3f}  |  exaggeration = {r['exaggeration']:.2f}")
        if r.get("n_failed", 0):
            print(f"  failed fits: {int(r['n_failed'])} of {int(r['n_sims'])}")

    print("\n" + "=" * 70 + "\n")


__all__ = [
    "summary_table",
    "to_markdown",
    "to_latex",
    "format_estimate",
    "print_summary",
]
