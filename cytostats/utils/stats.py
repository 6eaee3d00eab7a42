"""Statistical primitives for per-channel summaries.

Provides location, spread and mode estimators on one-dimensional arrays.
Non-finite values are dropped before any estimator runs.
"""

from __future__ import annotations

from typing import Iterable, Union

import numpy as np
from scipy.stats import gaussian_kde

ArrayLike = Union[Iterable[float], np.ndarray]

DEFAULT_GRID_SIZE = 512


def _to_clean_array(values: ArrayLike) -> np.ndarray:
    """Convert input to clean numpy array, removing non-finite values.

    Parameters
    ----------
    values : ArrayLike
        Input values (list, iterable, or array).

    Returns
    -------
    np.ndarray
        Clean array with only finite values.
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        return arr
    return arr[np.isfinite(arr)]


def arithmetic_mean(values: ArrayLike) -> float:
    """Mean of finite values; NaN if there are none."""
    arr = _to_clean_array(values)
    if arr.size == 0:
        return float("nan")
    return float(np.mean(arr))


def median(values: ArrayLike) -> float:
    """Median of finite values; NaN if there are none."""
    arr = _to_clean_array(values)
    if arr.size == 0:
        return float("nan")
    return float(np.median(arr))


def geometric_mean(values: ArrayLike) -> float:
    """Compute exp(mean(log(x))).

    Parameters
    ----------
    values : ArrayLike
        Strictly positive values.

    Returns
    -------
    float
        Geometric mean, NaN for empty input.

    Raises
    ------
    ValueError
        If any value is zero or negative.
    """
    arr = _to_clean_array(values)
    if arr.size == 0:
        return float("nan")
    n_invalid = int(np.sum(arr <= 0))
    if n_invalid:
        raise ValueError(f"{n_invalid} non-positive value(s)")
    return float(np.exp(np.mean(np.log(arr))))


def coefficient_of_variation(values: ArrayLike) -> float:
    """Sample standard deviation over mean, as a percentage.

    Returns NaN for fewer than two values or a zero mean.
    """
    arr = _to_clean_array(values)
    if arr.size < 2:
        return float("nan")
    mean = np.mean(arr)
    if mean == 0:
        return float("nan")
    return float(np.std(arr, ddof=1) / mean * 100.0)


def nrd0_bandwidth(values: ArrayLike) -> float:
    """Silverman's rule-of-thumb bandwidth.

    Computes ``0.9 * min(sd, IQR / 1.34) * n ** -0.2``, falling back to the
    standard deviation, then to ``|x[0]|``, then to 1 when the spread is zero.

    Parameters
    ----------
    values : ArrayLike
        Input values (at least two).

    Returns
    -------
    float
        Positive bandwidth.
    """
    arr = _to_clean_array(values)
    if arr.size < 2:
        raise ValueError("Need at least 2 values to select a bandwidth")

    sd = np.std(arr, ddof=1)
    q75, q25 = np.percentile(arr, [75, 25])
    spread = min(sd, (q75 - q25) / 1.34)
    if spread == 0:
        spread = sd
    if spread == 0:
        spread = abs(arr[0])
    if spread == 0:
        spread = 1.0
    return float(0.9 * spread * arr.size ** -0.2)


def kde_mode(
    values: ArrayLike,
    density_smooth: float = 0.6,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> float:
    """Location of the highest kernel density estimate peak.

    The density is a Gaussian KDE whose bandwidth is ``nrd0 * density_smooth``,
    evaluated on ``grid_size`` points spanning the data plus three bandwidths
    on each side.

    Parameters
    ----------
    values : ArrayLike
        Input values.
    density_smooth : float
        Bandwidth multiplier; larger values give smoother densities.
    grid_size : int
        Number of evaluation points.

    Returns
    -------
    float
        Modal value. NaN for empty input, the value itself for a single or
        constant value.

    Raises
    ------
    ValueError
        If density_smooth is not positive.
    """
    if not density_smooth > 0:
        raise ValueError(f"density_smooth must be positive, got {density_smooth}")
    if grid_size < 2:
        raise ValueError(f"grid_size must be at least 2, got {grid_size}")

    arr = _to_clean_array(values)
    if arr.size == 0:
        return float("nan")
    if arr.size == 1 or np.all(arr == arr[0]):
        return float(arr[0])

    bw = nrd0_bandwidth(arr) * density_smooth
    # gaussian_kde scales a scalar bw_method by the sample standard deviation
    kde = gaussian_kde(arr, bw_method=bw / np.std(arr, ddof=1))
    grid = np.linspace(arr.min() - 3 * bw, arr.max() + 3 * bw, grid_size)
    density = kde(grid)
    return float(grid[int(np.argmax(density))])
