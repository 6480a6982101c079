"""
Life Expectancy by Country (Gapminder)
======================================

Five-yearly life expectancy, population and GDP per capita for 142
countries, 1952-2007. The file is small, so it is downloaded once and cached
in the scikit-learn data home (``~/scikit_learn_data`` unless
``SCIKIT_LEARN_DATA`` says otherwise).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd
from sklearn.datasets import get_data_home


# =============================================================================
# CONSTANTS
# =============================================================================

GAPMINDER_URL = (
    "https://raw.githubusercontent.com/plotly/datasets/master/"
    "gapminderDataFiveYear.csv"
)
CACHE_SUBDIR = "statnotes"
CACHE_NAME = "gapminder.csv"

RENAME = {
    "lifeExp": "life_exp",
    "gdpPercap": "gdp_per_cap",
}
COLUMNS = ["country", "continent", "year", "life_exp", "pop", "gdp_per_cap"]


def _normalize(df: pd.DataFrame) -> pd.DataFrame:
    df = df.rename(columns=RENAME)
    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Life expectancy table is missing columns: {missing}")
    df = df[COLUMNS].copy()
    df["year"] = df["year"].astype(int)
    return df.sort_values(["country", "year"]).reset_index(drop=True)


def load_gapminder(
    path: Optional[Union[str, Path]] = None,
    data_home: Optional[Union[str, Path]] = None,
    download: bool = True,
    countries: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Load the life-expectancy-by-country table.

    Parameters
    ----------
    path : str or Path, optional
        Read this CSV instead of the cached copy.
    data_home : str or Path, optional
        Cache directory root (see ``sklearn.datasets.get_data_home``).
    download : bool, default True
        Download the file if it is not cached.
    countries : sequence of str, optional
        Keep only these countries.

    Returns
    -------
    pd.DataFrame
        Columns country, continent, year, life_exp, pop, gdp_per_cap.

    Raises
    ------
    RuntimeError
        If the download fails.
    FileNotFoundError
        If the file is not cached and ``download=False``.
    """
    if path is not None:
        df = pd.read_csv(path)
    else:
        cache = Path(get_data_home(data_home)) / CACHE_SUBDIR / CACHE_NAME
        if cache.exists():
            df = pd.read_csv(cache)
        elif download:
            try:
                df = pd.read_csv(GAPMINDER_URL)
            except Exception as e:
                raise RuntimeError(
                    f"Failed to download data from {GAPMINDER_URL}. "
                    f"Check internet connection. Error: {e}"
                ) from e
            cache.parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(cache, index=False)
        else:
            raise FileNotFoundError(f"{cache} not found and download=False")

    df = _normalize(df)
    if countries is not None:
        df = df[df["country"].isin(list(countries))].reset_index(drop=True)
    return df


def load_regional_panel(
    data: Optional[pd.DataFrame] = None,
    **kwargs,
) -> pd.DataFrame:
    """
    Region × year panel aggregated from the country table.

    Life expectancy and GDP per capita are population-weighted, so a region's
    GDP per capita is its total GDP divided by its total population.

    Parameters
    ----------
    data : pd.DataFrame, optional
        Output of :func:`load_gapminder`. Loaded with ``**kwargs`` if None.

    Returns
    -------
    pd.DataFrame
        Columns region, year, life_exp, gdp_per_cap, pop, n_countries.
    """
    if data is None:
        data = load_gapminder(**kwargs)

    df = data.assign(
        _le_pop=data["life_exp"] * data["pop"],
        _gdp=data["gdp_per_cap"] * data["pop"],
    )
    panel = df.groupby(["continent", "year"]).agg(
        pop=("pop", "sum"),
        _le_pop=("_le_pop", "sum"),
        _gdp=("_gdp", "sum"),
        n_countries=("country", "nunique"),
    ).reset_index()

    panel["life_exp"] = panel["_le_pop"] / panel["pop"]
    panel["gdp_per_cap"] = panel["_gdp"] / panel["pop"]
    panel = panel.rename(columns={"continent": "region"})

    return panel[["region", "year", "life_exp", "gdp_per_cap", "pop", "n_countries"]]


def life_expectancy_gap(panel: pd.DataFrame, reference: str = "Europe") -> pd.DataFrame:
    """Each region's life expectancy minus the reference region's, by year."""
    wide = panel.pivot(index="year", columns="region", values="life_exp")
    if reference not in wide.columns:
        raise ValueError(f"Unknown reference region: '{reference}'")
    gap = wide.sub(wide[reference], axis=0).drop(columns=reference)
    return gap.reset_index().melt(id_vars="year", var_name="region", value_name="gap").dropna()


__all__ = [
    "load_gapminder",
    "load_regional_panel",
    "life_expectancy_gap",
    "GAPMINDER_URL",
]
