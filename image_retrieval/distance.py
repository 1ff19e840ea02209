"""
Pairwise distance matrices over histograms and feature vectors.

Two modes share one fill strategy: row ``i`` computes the distances to
images ``0..i`` and the result is mirrored into column ``i``, so every
matrix is symmetric with a zero diagonal by construction.

    unweighted  Σ |H_i[k]/size_i - H_j[k]/size_j|   (raw histograms)
    weighted    Σ w[k] · |V_i[k] - V_j[k]|          (normalized features)

Rows are independent, so they can be fanned out to a thread pool
(RETRIEVAL_WORKERS). A deadline, when given, is checked before each row.
"""

import os
import time
import logging
import operator
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from .errors import DeadlineExceededError, InvalidImageError

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = int(os.environ.get("RETRIEVAL_WORKERS", "1"))


class DistanceMatrix:
    """
    Read-only N×N distance matrix with bounds-checked access.

    Values live in one contiguous row-major float64 buffer. ``matrix[i, j]``
    rejects negative and out-of-range indices instead of wrapping.
    ``degenerate`` is set when the matrix came from an all-zero weight
    vector, in which case every distance is 0.
    """

    def __init__(self, values: np.ndarray, degenerate: bool = False):
        values = np.ascontiguousarray(values, dtype=np.float64)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise ValueError(f"Distance matrix must be square, got {values.shape}")
        values.setflags(write=False)
        self._values = values
        self.degenerate = degenerate

    @property
    def size(self) -> int:
        return self._values.shape[0]

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the backing array."""
        return self._values

    def _check(self, index) -> int:
        index = operator.index(index)
        if not 0 <= index < self.size:
            raise IndexError(f"index {index} out of range for {self.size} images")
        return index

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, key) -> float:
        i, j = key
        return float(self._values[self._check(i), self._check(j)])

    def row(self, index) -> np.ndarray:
        """Distances from one image to every image, as a read-only view."""
        return self._values[self._check(index)]

    def __array__(self, dtype=None, copy=None):
        if copy:
            return np.array(self._values, dtype=dtype)
        return np.asarray(self._values, dtype=dtype)

    def __repr__(self) -> str:
        flag = ", degenerate" if self.degenerate else ""
        return f"DistanceMatrix({self.size}x{self.size}{flag})"


def histogram_distance(h1: np.ndarray, h2: np.ndarray, s1, s2) -> np.ndarray:
    """
    Size-normalized Manhattan distance between histograms.

    ``h2``/``s2`` may be a single histogram and size, or a stack of
    histograms with one size per row, in which case one distance per
    row is returned.
    """
    h1 = np.asarray(h1, dtype=np.float64)
    h2 = np.asarray(h2, dtype=np.float64)
    assert h1.shape[-1] == h2.shape[-1], (
        f"bin count mismatch: {h1.shape[-1]} vs {h2.shape[-1]}"
    )
    s2 = np.asarray(s2, dtype=np.float64)
    if h2.ndim == 2:
        s2 = s2.reshape(-1, 1)
    return np.abs(h1 / s1 - h2 / s2).sum(axis=-1)


def weighted_distance(v1: np.ndarray, v2: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Weighted Manhattan distance between feature vectors.

    ``v2`` may be a stack of vectors, one distance per row is returned.
    """
    v1 = np.asarray(v1, dtype=np.float64)
    v2 = np.asarray(v2, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    assert v1.shape[-1] == v2.shape[-1] == weights.shape[-1], (
        f"bin count mismatch: {v1.shape[-1]}, {v2.shape[-1]}, {weights.shape[-1]}"
    )
    return (weights * np.abs(v1 - v2)).sum(axis=-1)


def _fill_symmetric(n: int,
                    row_fn: Callable[[int], np.ndarray],
                    workers: int,
                    deadline: Optional[float]) -> np.ndarray:
    """Fill an n×n matrix from lower-triangle rows, mirroring each one."""
    matrix = np.zeros((n, n), dtype=np.float64)

    def fill(i: int) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise DeadlineExceededError(
                f"Deadline passed before row {i} of {n}"
            )
        row = row_fn(i)
        # Row i owns cells (i, 0..i) and (0..i, i); no two rows overlap.
        matrix[i, :i + 1] = row
        matrix[:i + 1, i] = row

    if workers <= 1 or n < 2:
        for i in range(n):
            fill(i)
        return matrix

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(fill, i) for i in range(n)]
        try:
            for future in futures:
                future.result()
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return matrix


def build_distance_matrix(histograms: np.ndarray,
                          sizes,
                          workers: int = None,
                          deadline: Optional[float] = None) -> DistanceMatrix:
    """
    Build the unweighted distance matrix of a set of raw histograms.

    Args:
        histograms: N×B array of bin counts.
        sizes: Pixel count of each image (N values, all > 0).
        workers: Row tasks to run in parallel. Defaults to RETRIEVAL_WORKERS.
        deadline: Optional time.monotonic() timestamp to abort at.

    Returns:
        Symmetric DistanceMatrix with a zero diagonal.

    Raises:
        InvalidImageError: If any size is zero or negative.
        DeadlineExceededError: If the deadline passes mid-build.
    """
    histograms = np.asarray(histograms, dtype=np.float64)
    sizes = np.asarray(sizes, dtype=np.float64)
    assert histograms.ndim == 2 and sizes.shape == (histograms.shape[0],), (
        f"expected N×B histograms and N sizes, got {histograms.shape} and {sizes.shape}"
    )
    empty = np.flatnonzero(sizes <= 0)
    if empty.size:
        raise InvalidImageError(int(empty[0]), "image has no pixels")

    workers = DEFAULT_WORKERS if workers is None else workers
    n = histograms.shape[0]
    started = time.monotonic()

    matrix = _fill_symmetric(
        n,
        lambda i: histogram_distance(histograms[i], histograms[:i + 1],
                                     sizes[i], sizes[:i + 1]),
        workers, deadline,
    )

    logger.info(
        f"Built {n}x{n} unweighted distance matrix over "
        f"{histograms.shape[1]} bins in {time.monotonic() - started:.3f}s"
    )
    return DistanceMatrix(matrix)


def build_weighted_distance_matrix(features: np.ndarray,
                                   weights: np.ndarray,
                                   workers: int = None,
                                   deadline: Optional[float] = None) -> DistanceMatrix:
    """
    Build the weighted distance matrix of a set of feature vectors.

    Args:
        features: N×B normalized feature matrix.
        weights: B feature weights.
        workers: Row tasks to run in parallel. Defaults to RETRIEVAL_WORKERS.
        deadline: Optional time.monotonic() timestamp to abort at.

    Returns:
        Symmetric DistanceMatrix with a zero diagonal, flagged degenerate
        when every weight is zero.
    """
    features = np.asarray(features, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    assert features.ndim == 2 and weights.shape == (features.shape[1],), (
        f"expected N×B features and B weights, got {features.shape} and {weights.shape}"
    )

    workers = DEFAULT_WORKERS if workers is None else workers
    n = features.shape[0]
    started = time.monotonic()

    matrix = _fill_symmetric(
        n,
        lambda i: weighted_distance(features[i], features[:i + 1], weights),
        workers, deadline,
    )

    logger.info(
        f"Built {n}x{n} weighted distance matrix over "
        f"{features.shape[1]} bins in {time.monotonic() - started:.3f}s"
    )
    return DistanceMatrix(matrix, degenerate=not np.any(weights))
