"""
Column statistics over matrices of feature vectors.

Only the first ``n`` rows of a matrix take part in each statistic, so a
preallocated buffer can be partially filled and still summarized.
"""

import math

import numpy as np


def column_mean(matrix: np.ndarray, col: int, n: int) -> float:
    """Arithmetic mean of the first ``n`` values in column ``col``."""
    values = np.asarray(matrix, dtype=np.float64)[:n, col]
    return float(values.sum() / n)


def column_std(matrix: np.ndarray, mean: float, col: int, n: int) -> float:
    """Sample standard deviation (divisor ``n - 1``) of column ``col``."""
    if n < 2:
        raise ValueError(f"sample stdev needs at least 2 rows, got {n}")
    values = np.asarray(matrix, dtype=np.float64)[:n, col]
    if np.all(values == values[0]):
        return 0.0
    return math.sqrt(float(np.sum((values - mean) ** 2)) / (n - 1))


def bin_means(matrix: np.ndarray, n: int) -> np.ndarray:
    """Per-column mean of the first ``n`` rows."""
    rows = np.asarray(matrix, dtype=np.float64)[:n]
    return rows.sum(axis=0) / n


def bin_stds(matrix: np.ndarray, means: np.ndarray, n: int) -> np.ndarray:
    """Per-column sample standard deviation of the first ``n`` rows."""
    if n < 2:
        raise ValueError(f"sample stdev needs at least 2 rows, got {n}")
    rows = np.asarray(matrix, dtype=np.float64)[:n]
    ssd = np.sum((rows - means) ** 2, axis=0)
    stdev = np.sqrt(ssd / (n - 1))
    # A rounded mean leaves ~1e-17 residue on columns that never vary.
    stdev[constant_columns(rows, n)] = 0.0
    return stdev


def constant_columns(matrix: np.ndarray, n: int) -> np.ndarray:
    """Mask of columns whose first ``n`` values are all identical."""
    rows = np.asarray(matrix)[:n]
    return np.all(rows == rows[0], axis=0)


def min_nonzero(vector) -> float:
    """
    Smallest strictly positive entry of ``vector``.

    Returns ``math.inf`` when no entry is positive; callers dividing by
    the result must check for that first.
    """
    values = np.asarray(vector, dtype=np.float64)
    positive = values[values > 0]
    if positive.size == 0:
        return math.inf
    return float(positive.min())
