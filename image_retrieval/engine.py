"""
Color-histogram retrieval engine for one image collection.

Loading a collection runs the whole feature pipeline once:
    1. Read every image's pixels from the pixel source
    2. Build intensity (25-bin) and color-code (64-bin) histograms
    3. Build the unweighted intensity and color-code distance matrices
    4. Z-score normalize the combined 89-bin features

Those results are kept for the engine's lifetime and never change.
Relevance-feedback rounds reuse the normalized features but always build
a fresh weighted matrix, which belongs to the caller.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .collection import PixelSource
from .distance import DistanceMatrix, build_distance_matrix, build_weighted_distance_matrix
from .errors import InvalidImageError, InvalidInputError
from .feedback import compare, rank, relevance_analysis
from .histograms import FEATURE_BINS, color_code_histogram, intensity_histogram
from .normalizer import normalize_features

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """
    Distance matrices and relevance feedback over a loaded collection.
    """

    def __init__(self, source: PixelSource, workers: int = None):
        """
        Extract features and build the collection-wide matrices.

        Args:
            source: Pixel source for the collection, read once per image.
            workers: Row tasks used for every matrix build. Defaults to
                     RETRIEVAL_WORKERS.

        Raises:
            InvalidInputError: If ``source`` is None or holds no images.
            InvalidImageError: If an image has no pixels.
        """
        if source is None:
            raise InvalidInputError("RetrievalEngine: can't process a missing collection")
        if len(source) == 0:
            raise InvalidInputError("RetrievalEngine: can't process an empty collection")

        self.source = source
        self.workers = workers

        pixels = [np.asarray(source.pixel_values(i), dtype=np.int64).ravel()
                  for i in range(len(source))]
        for i, values in enumerate(pixels):
            if values.size == 0:
                raise InvalidImageError(i, "image has no pixels")

        self.sizes = self._frozen(np.array([p.size for p in pixels], dtype=np.int64))
        self.intensity_histograms = self._frozen(
            np.vstack([intensity_histogram(p) for p in pixels]))
        self.color_code_histograms = self._frozen(
            np.vstack([color_code_histogram(p) for p in pixels]))

        self._intensity_distance = build_distance_matrix(
            self.intensity_histograms, self.sizes, workers=workers)
        self._color_code_distance = build_distance_matrix(
            self.color_code_histograms, self.sizes, workers=workers)
        self.normalized = normalize_features(
            self.intensity_histograms, self.color_code_histograms, self.sizes)

        logger.info(
            f"Loaded collection: {len(pixels)} images, "
            f"{int(self.sizes.sum())} pixels, {FEATURE_BINS}-bin features"
        )

    @staticmethod
    def _frozen(array: np.ndarray) -> np.ndarray:
        array.setflags(write=False)
        return array

    def __len__(self) -> int:
        return int(self.sizes.shape[0])

    def intensity_distance_matrix(self) -> DistanceMatrix:
        """Unweighted intensity distance matrix, built once at load."""
        return self._intensity_distance

    def color_code_distance_matrix(self) -> DistanceMatrix:
        """Unweighted color-code distance matrix, built once at load."""
        return self._color_code_distance

    def baseline_distance_matrix(self, deadline: Optional[float] = None) -> DistanceMatrix:
        """Normalized-feature distances with uniform weights, rebuilt per call."""
        weights = np.full(FEATURE_BINS, 1.0 / FEATURE_BINS)
        return build_weighted_distance_matrix(self.normalized, weights,
                                              workers=self.workers, deadline=deadline)

    def relevance_analysis(self,
                           query: int,
                           order: Sequence[int],
                           relevant: Sequence[bool],
                           deadline: Optional[float] = None,
                           strict: bool = False) -> DistanceMatrix:
        """
        Re-weight features from user feedback and rebuild all distances.

        Args:
            query: Index of the query image.
            order: Permutation of range(N) giving the inclusion order.
            relevant: One flag per image, True where marked relevant.
            deadline: Optional time.monotonic() timestamp to abort at.
            strict: Raise DegenerateFeedbackError on an all-zero weighting.

        Returns:
            A new DistanceMatrix; check ``degenerate`` before ranking.
        """
        return relevance_analysis(self.normalized, query, order, relevant,
                                  workers=self.workers, deadline=deadline,
                                  strict=strict)

    @staticmethod
    def compare(matrix, reference: int, a: int, b: int) -> int:
        """Sign of (distance(reference, a) - distance(reference, b))."""
        return compare(matrix, reference, a, b)

    def rank(self, matrix, reference: int, candidates: Sequence[int] = None) -> List[int]:
        """Image indices ordered from most to least similar to ``reference``."""
        if candidates is None:
            candidates = range(len(self))
        return rank(matrix, reference, candidates)
