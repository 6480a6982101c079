"""Pytest configuration and common fixtures for statnotes tests."""

import textwrap
from pathlib import Path
from typing import Callable, Dict, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    """Fresh generator with a fixed seed for each test."""
    return np.random.default_rng(12345)


@pytest.fixture(autouse=True)
def close_figures():
    """Close every figure a test opened."""
    yield
    plt.close("all")


@pytest.fixture
def replication_rows() -> pd.DataFrame:
    """
    Hand-built replication table for one scenario with true effect 1.0.

    Four converged fits (three significant, one of them with the wrong sign)
    and one failed fit.
    """
    return pd.DataFrame({
        "scenario_id": [0] * 5,
        "n": [50] * 5,
        "effect": [1.0] * 5,
        "replication": [0, 1, 2, 3, 4],
        "seed": [10, 11, 12, 13, 14],
        "estimate": [2.0, -2.0, 0.5, 3.0, np.nan],
        "se": [0.5, 0.5, 0.5, 0.5, np.nan],
        "ci_lower": [1.0, -3.0, -0.5, 2.0, np.nan],
        "ci_upper": [3.0, -1.0, 1.5, 4.0, np.nan],
        "p_value": [0.01, 0.01, 0.5, 0.02, np.nan],
        "converged": [True, True, True, True, False],
        "significant": [1.0, 1.0, 0.0, 1.0, np.nan],
        "covers": [1.0, 0.0, 1.0, 0.0, np.nan],
    })


POST_HEADER = """\
# ---
# title: {title}
# date: {date}
# tags: [{tags}]
# summary: {summary}
# outputs: [{outputs}]
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---
"""


@pytest.fixture
def post_factory(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory writing a percent-format post into ``tmp_path / 'posts'``.

    The default body writes ``table.md`` into the results directory given by
    ``STATNOTES_RESULTS_DIR``.
    """
    posts_dir = tmp_path / "posts"
    posts_dir.mkdir()

    default_body = textwrap.dedent("""\

        # %% [markdown]
        # # A heading
        #
        # Some prose.

        # %%
        import os
        from pathlib import Path

        out = Path(os.environ["STATNOTES_RESULTS_DIR"])
        (out / "table.md").write_text("| a |\\n|---|\\n| 1 |\\n")
        """)

    def _create_post(
        slug: str = "example",
        title: str = "An example post",
        date: str = "2024-01-15",
        tags: str = "simulation, power",
        summary: str = "One line summary.",
        outputs: str = "table.md",
        body: Optional[str] = None,
        extra: Optional[Dict[str, str]] = None,
    ) -> Path:
        header = POST_HEADER.format(title=title, date=date, tags=tags, summary=summary, outputs=outputs)
        if extra:
            lines = header.splitlines()
            for key, value in extra.items():
                lines.insert(1, f"# {key}: {value}")
            header = "\n".join(lines) + "\n"
        path = posts_dir / f"{slug}.py"
        path.write_text(header + (default_body if body is None else body), encoding="utf-8")
        return path

    return _create_post
