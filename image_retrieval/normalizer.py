"""
Collection-wide z-score normalization of histogram features.

Each image's intensity and color-code histograms are joined into one
89-bin vector and divided by the image's pixel count. Every bin is then
centered on its collection mean and scaled by its sample stdev, except
bins whose stdev is 0: those are only centered, which leaves them at 0.
"""

import logging

import numpy as np

from .histograms import FEATURE_BINS
from .stats import bin_means, bin_stds, constant_columns

logger = logging.getLogger(__name__)


def normalize_features(intensity: np.ndarray,
                       color_code: np.ndarray,
                       sizes) -> np.ndarray:
    """
    Build the normalized feature matrix of a collection.

    Args:
        intensity: N×25 intensity histograms.
        color_code: N×64 color-code histograms.
        sizes: Pixel count of each image.

    Returns:
        Read-only N×89 float64 matrix.
    """
    intensity = np.asarray(intensity, dtype=np.float64)
    color_code = np.asarray(color_code, dtype=np.float64)
    sizes = np.asarray(sizes, dtype=np.float64)
    assert intensity.shape[0] == color_code.shape[0] == sizes.shape[0], (
        "histogram and size counts differ"
    )

    matrix = np.hstack([intensity, color_code])
    assert matrix.shape[1] == FEATURE_BINS, f"expected {FEATURE_BINS} bins, got {matrix.shape[1]}"
    matrix /= sizes.reshape(-1, 1)

    n = matrix.shape[0]
    mean = bin_means(matrix, n)
    # A single image has no sample stdev; it is only centered.
    stdev = bin_stds(matrix, mean, n) if n >= 2 else None
    constant = constant_columns(matrix, n)
    matrix -= mean
    matrix[:, constant] = 0.0

    if stdev is not None:
        scaled = stdev > 0
        matrix[:, scaled] /= stdev[scaled]
        logger.debug(
            f"Normalized {n} images: {int(np.count_nonzero(~scaled))} "
            f"of {FEATURE_BINS} bins constant across the collection"
        )

    matrix.setflags(write=False)
    return matrix
