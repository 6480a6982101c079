"""
LaLonde / Dehejia-Wahba Data Loader
===================================

The NSW job training data is the standard benchmark for matching methods:
the randomized experiment gives a treatment effect of about $1,794, and the
question is how close an observational comparison (NSW treated vs. PSID
controls) can get to it.

Data Sources
------------
- LaLonde, R. (1986). Evaluating the Econometric Evaluations of Training
  Programs with Experimental Data. American Economic Review 76(4): 604-620.
- Dehejia, R. & Wahba, S. (1999). Causal Effects in Nonexperimental Studies:
  Reevaluating the Evaluation of Training Programs. JASA 94(448): 1053-1062.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Literal, Optional, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from sklearn.preprocessing import StandardScaler


# =============================================================================
# CONSTANTS
# =============================================================================

BASE_URL = "https://users.nber.org/~rdehejia/data/"
FILES = {
    "treated": "nswre74_treated.txt",
    "control": "nswre74_control.txt",
    "psid": "psid_controls.txt",
}

COLUMN_NAMES = [
    "treat", "age", "education", "black", "hispanic",
    "married", "nodegree", "re74", "re75", "re78",
]

COVARIATE_COLS = ["age", "education", "black", "hispanic", "married", "nodegree", "re74", "re75"]
CONTINUOUS_COLS = ["age", "education", "re74", "re75"]

# Difference in mean 1978 earnings in the randomized sample
EXPERIMENTAL_BENCHMARK = 1794

Arrays = Tuple[NDArray, NDArray, NDArray]


# =============================================================================
# DATA LOADING FUNCTIONS
# =============================================================================

def _read_dehejia_wahba(name: str, data_dir: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """
    Read one whitespace-separated Dehejia-Wahba file, locally or from NBER.

    Raises
    ------
    RuntimeError
        If the file cannot be downloaded.
    """
    if data_dir is not None:
        return pd.read_csv(Path(data_dir) / FILES[name], sep=r"\s+", header=None, names=COLUMN_NAMES)

    url = BASE_URL + FILES[name]
    try:
        return pd.read_csv(url, sep=r"\s+", header=None, names=COLUMN_NAMES)
    except Exception as e:
        raise RuntimeError(
            f"Failed to load data from {url}. "
            f"Check internet connection. Error: {e}"
        ) from e


def load_lalonde(
    mode: Literal["experimental", "observational", "both"] = "experimental",
    standardize: bool = False,
    return_df: bool = False,
    data_dir: Optional[Union[str, Path]] = None,
    verbose: bool = False,
) -> Union[Arrays, Tuple[NDArray, NDArray, NDArray, pd.DataFrame], Dict[str, Arrays]]:
    """
    Load the LaLonde / Dehejia-Wahba dataset.

    Parameters
    ----------
    mode : {'experimental', 'observational', 'both'}, default 'experimental'
        - 'experimental': NSW treated + NSW control (n = 445)
        - 'observational': NSW treated + PSID control (n = 2,675)
        - 'both': dict with both samples
    standardize : bool, default False
        Standardize the continuous covariates (age, education, re74, re75).
    return_df : bool, default False
        Also return the combined DataFrame.
    data_dir : str or Path, optional
        Directory holding local copies of the NBER text files. If None the
        files are downloaded.
    verbose : bool, default False
        Print a short sample summary.

    Returns
    -------
    y : ndarray of shape (n,)
        Earnings in 1978 (dollars).
    d : ndarray of shape (n,)
        Treatment indicator.
    X : ndarray of shape (n, 8)
        Covariates in ``COVARIATE_COLS`` order.
    df : pd.DataFrame (optional)
        Full dataframe if ``return_df=True``.

    Examples
    --------
    >>> y, d, X = load_lalonde(mode="experimental")  # doctest: +SKIP
    >>> len(y), int(d.sum())  # doctest: +SKIP
    (445, 185)
    """
    mode = mode.lower()
    if mode == "both":
        return {
            m: load_lalonde(m, standardize, return_df, data_dir, verbose)
            for m in ("experimental", "observational")
        }
    if mode not in ("experimental", "observational"):
        raise ValueError(
            f"Unknown mode: '{mode}'. "
            f"Choose from: 'experimental', 'observational', 'both'"
        )

    if verbose:
        print(f"Loading LaLonde data (mode='{mode}')...")

    df_treated = _read_dehejia_wahba("treated", data_dir)
    df_control = _read_dehejia_wahba("control" if mode == "experimental" else "psid", data_dir)
    df = pd.concat([df_treated, df_control], ignore_index=True)

    y = df["re78"].to_numpy(dtype=np.float64)
    d = df["treat"].to_numpy(dtype=np.float64)
    X = df[COVARIATE_COLS].to_numpy(dtype=np.float64)

    if standardize:
        cont = [COVARIATE_COLS.index(c) for c in CONTINUOUS_COLS]
        X[:, cont] = StandardScaler().fit_transform(X[:, cont])

    if verbose:
        n_treated = int(d.sum())
        print(f"  N = {len(y):,} (Treated: {n_treated}, Control: {len(d) - n_treated})")

    if return_df:
        return y, d, X, df
    return y, d, X


# =============================================================================
# SAMPLE DIAGNOSTICS
# =============================================================================

def get_sample_summary(y: NDArray, d: NDArray, X: NDArray) -> dict:
    """
    Sample sizes, outcome means and the naive difference in means.

    The naive difference is unbiased only in the experimental sample.
    """
    treated = d > 0.5
    n_treated = int(treated.sum())

    return {
        "n": len(y),
        "n_treated": n_treated,
        "n_control": len(y) - n_treated,
        "prop_treated": n_treated / len(y),
        "mean_outcome_treated": float(y[treated].mean()),
        "mean_outcome_control": float(y[~treated].mean()),
        "naive_ate": float(y[treated].mean() - y[~treated].mean()),
        "n_covariates": X.shape[1],
    }


__all__ = [
    "load_lalonde",
    "get_sample_summary",
    "EXPERIMENTAL_BENCHMARK",
    "COVARIATE_COLS",
]
