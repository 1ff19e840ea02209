"""
Relevance-feedback re-weighting of normalized features.

A feedback round takes the query image plus every image the user marked
relevant, and weights each of the 89 feature bins by how consistent the
marked images are on it:

    stdev != 0                  weight = 1 / stdev
    stdev == 0, mean != 0       weight = 0.5 / (smallest nonzero stdev)
    stdev == 0, mean == 0       weight = 0

Weights are then scaled to sum to 1. With only the query in the feedback
set every bin gets 1/89. The resulting weighted distance matrix covers the
whole collection and is rebuilt on every round; nothing here is cached.
"""

import logging
import operator
from functools import cmp_to_key
from typing import Optional, Sequence

import numpy as np

from .distance import DistanceMatrix, build_weighted_distance_matrix
from .errors import DegenerateFeedbackError, InvalidInputError
from .stats import bin_means, bin_stds, min_nonzero

logger = logging.getLogger(__name__)

# Zero-variance bins with a nonzero mean get this fraction of the
# reciprocal of the smallest nonzero stdev.
ZERO_VARIANCE_SCALE = 0.5


def collect_feedback_set(normalized: np.ndarray,
                         query: int,
                         order: Sequence[int],
                         relevant: Sequence[bool]) -> np.ndarray:
    """
    Gather the feature vectors of a feedback round.

    The query's vector comes first, followed by every other image flagged
    relevant, in the sequence given by ``order``.

    Raises:
        InvalidInputError: If the query is out of range, ``order`` is not a
            permutation of the image indices, or ``relevant`` has the wrong
            length.
    """
    n = normalized.shape[0]
    try:
        query = operator.index(query)
    except TypeError:
        raise InvalidInputError(f"query index must be an integer, got {query!r}") from None
    if not 0 <= query < n:
        raise InvalidInputError(f"query index {query} out of range for {n} images")

    order = np.asarray(order)
    if (order.dtype.kind not in "iu" or order.shape != (n,)
            or not np.array_equal(np.sort(order), np.arange(n))):
        raise InvalidInputError(f"order must be a permutation of range({n})")

    relevant = np.asarray(relevant, dtype=bool)
    if relevant.shape != (n,):
        raise InvalidInputError(f"expected {n} relevance flags, got shape {relevant.shape}")

    picked = [query] + [int(i) for i in order if relevant[i] and i != query]
    return normalized[picked]


def compute_feature_weights(feedback: np.ndarray) -> np.ndarray:
    """
    Derive per-bin weights from a feedback set.

    Args:
        feedback: m×B matrix, query vector first.

    Returns:
        B weights summing to 1, or all zeros when no bin carries signal.
    """
    m, bins = feedback.shape

    # First round: only the query is known to be relevant.
    if m == 1:
        return np.full(bins, 1.0 / bins)

    mean = bin_means(feedback, m)
    stdev = bin_stds(feedback, mean, m)

    weights = np.zeros(bins)
    varying = stdev != 0
    weights[varying] = 1.0 / stdev[varying]
    constant = ~varying & (mean != 0)
    weights[constant] = ZERO_VARIANCE_SCALE / min_nonzero(stdev)

    total = weights.sum()
    if total != 0:
        weights /= total

    logger.debug(
        f"Feedback weights from {m} images: {int(varying.sum())} varying, "
        f"{int(constant.sum())} constant, {int(np.count_nonzero(weights == 0))} zero"
    )
    return weights


def relevance_analysis(normalized: np.ndarray,
                       query: int,
                       order: Sequence[int],
                       relevant: Sequence[bool],
                       workers: int = None,
                       deadline: Optional[float] = None,
                       strict: bool = False) -> DistanceMatrix:
    """
    Run one relevance-feedback round over the whole collection.

    Args:
        normalized: N×89 normalized feature matrix of the collection.
        query: Index of the query image.
        order: Permutation of range(N) giving the inclusion order.
        relevant: N flags marking the images the user found relevant.
        workers: Row tasks for the matrix build.
        deadline: Optional time.monotonic() timestamp to abort at.
        strict: Raise DegenerateFeedbackError instead of returning a
                degenerate matrix.

    Returns:
        A fresh DistanceMatrix owned by the caller. ``degenerate`` is True
        when every weight came out zero and all images are equidistant.
    """
    feedback = collect_feedback_set(normalized, query, order, relevant)
    weights = compute_feature_weights(feedback)

    if not np.any(weights):
        if strict:
            raise DegenerateFeedbackError(
                f"No feature carries signal for query {query} "
                f"with {feedback.shape[0]} feedback images"
            )
        logger.warning(
            f"Degenerate feedback for query {query}: all weights are zero, "
            f"every image is equidistant"
        )

    return build_weighted_distance_matrix(normalized, weights,
                                          workers=workers, deadline=deadline)


def compare(matrix, reference: int, a: int, b: int) -> int:
    """
    Order two images by their distance to a reference image.

    Returns 1 when ``a`` is farther from ``reference`` than ``b``, -1 when
    it is closer and 0 on a tie.
    """
    difference = matrix[reference, a] - matrix[reference, b]
    if difference > 0:
        return 1
    if difference < 0:
        return -1
    return 0


def rank(matrix, reference: int, candidates: Sequence[int] = None) -> list:
    """
    Sort candidate images by ascending distance to ``reference``.

    Ties keep their candidate order. Defaults to every image in the
    matrix, the reference itself included.
    """
    if candidates is None:
        candidates = range(len(matrix))
    return sorted(candidates,
                  key=cmp_to_key(lambda a, b: compare(matrix, reference, a, b)))
