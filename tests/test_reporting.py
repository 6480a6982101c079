"""Tests for summary tables and text formatting."""

import numpy as np
import pandas as pd
import pytest

from statnotes.design import compute_summary_statistics
from statnotes.reporting import (
    COLUMN_LABELS,
    format_estimate,
    print_summary,
    summary_table,
    to_latex,
    to_markdown,
)


@pytest.fixture
def summary(replication_rows) -> pd.DataFrame:
    return compute_summary_statistics(replication_rows)


def test_summary_table_selects_and_renames(summary):
    table = summary_table(summary)
    assert list(table.columns) == [
        COLUMN_LABELS[c] for c in ["n", "effect", "power", "coverage", "bias", "rmse", "type_s", "exaggeration"]
    ]
    assert table["Exaggeration"].iloc[0] == pytest.approx(2.333)


def test_summary_table_skips_missing_columns(summary):
    table = summary_table(summary, columns=["n", "power", "not_a_column"], rename=False)
    assert list(table.columns) == ["n", "power"]


def test_summary_table_rounding(summary):
    table = summary_table(summary, columns=["type_s"], digits=2, rename=False)
    assert table["type_s"].iloc[0] == 0.33


def test_to_markdown():
    df = pd.DataFrame({"term": ["x"], "estimate": [0.123456]})
    text = to_markdown(df)
    assert "| term" in text
    assert "0.123" in text
    assert "0.1234" not in text


def test_to_latex_caption_and_label():
    df = pd.DataFrame({"a": [1.0], "b": [2.0]})
    latex = to_latex(df, caption="A caption", label="tab:a")
    assert "\\begin{tabular}" in latex
    assert "\\caption{A caption}" in latex
    assert "\\label{tab:a}" in latex
    assert latex.index("\\end{tabular}") < latex.index("\\caption")
    assert latex.startswith("\\begin{table}")
    assert latex.rstrip().endswith("\\end{table}")


def test_to_latex_without_caption_is_bare_tabular():
    latex = to_latex(pd.DataFrame({"a": [1.0]}))
    assert latex.startswith("\\begin{tabular}")
    assert "\\begin{table}" not in latex
    assert "\\caption" not in latex


def test_format_estimate():
    assert format_estimate(0.512, 0.101) == "0.512 (0.101)"
    assert format_estimate(0.512, 0.101, ci=(0.314, 0.71)) == "0.512 (0.101) [0.31, 0.71]"
    assert format_estimate(1.5, 0.26, digits=1) == "1.5 (0.3)"


def test_print_summary(summary, capsys):
    print_summary(summary, title="MY TITLE")
    out = capsys.readouterr().out
    assert "MY TITLE" in out
    assert "power    = 0.750" in out
    assert "failed fits: 1 of 5" in out


def test_print_summary_without_type_s(replication_rows, capsys):
    summary = compute_summary_statistics(replication_rows.assign(effect=0.0))
    print_summary(summary)
    out = capsys.readouterr().out
    assert "type S" not in out
    assert np.isnan(summary["type_s"].iloc[0])
