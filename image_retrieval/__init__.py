"""
image_retrieval — Color-histogram image retrieval with relevance feedback.

Compares images by intensity and color-code histograms and refines
rankings by re-weighting features from the images a user marks relevant.

Modules:
    engine        RetrievalEngine for one loaded collection
    histograms    Intensity and color-code histogram extraction
    normalizer    Collection-wide z-score normalization
    distance      Symmetric distance matrices (unweighted and weighted)
    feedback      Relevance-feedback weighting and ranking
    stats         Column mean / stdev helpers
    collection    Pixel sources (in-memory and directory-backed)
    preprocessing Image to packed-RGB conversion
    errors        Exception types
"""

from .collection import ArrayPixelSource, ImageCollection
from .distance import DistanceMatrix
from .engine import RetrievalEngine
from .errors import (
    DeadlineExceededError,
    DegenerateFeedbackError,
    InvalidImageError,
    InvalidInputError,
)

__version__ = "1.0.0"
