"""Data loaders for the statnotes tutorials."""

from statnotes.data.gapminder import life_expectancy_gap, load_gapminder, load_regional_panel
from statnotes.data.lalonde import (
    COVARIATE_COLS,
    EXPERIMENTAL_BENCHMARK,
    get_sample_summary,
    load_lalonde,
)

__all__ = [
    "load_gapminder",
    "load_regional_panel",
    "life_expectancy_gap",
    "load_lalonde",
    "get_sample_summary",
    "COVARIATE_COLS",
    "EXPERIMENTAL_BENCHMARK",
]
