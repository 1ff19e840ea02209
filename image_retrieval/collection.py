"""
Pixel sources: where the retrieval engine gets each image's pixels.

Anything with ``__len__`` and ``pixel_values(index)`` returning packed RGB
integers can feed the engine. Two implementations are provided:

    ArrayPixelSource  in-memory images (arrays or pre-packed pixel lists)
    ImageCollection   every image file in a directory, decoded with OpenCV
                      and ordered by natural filename sort

Accepted extensions are configurable via RETRIEVAL_IMAGE_EXTENSIONS
(comma-separated, default "png,jpg,jpeg").
"""

import os
import re
import logging
from functools import cmp_to_key
from typing import List, Protocol, Sequence

import cv2
import numpy as np

from .errors import InvalidInputError
from .preprocessing import pack_rgb, to_rgb

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = tuple(
    ext.strip().lower().lstrip(".")
    for ext in os.environ.get("RETRIEVAL_IMAGE_EXTENSIONS", "png,jpg,jpeg").split(",")
    if ext.strip()
)

# Boundaries between digit runs and everything else
_NUMBER_BOUNDARY = re.compile(r"(?<=\D)(?=\d)|(?<=\d)(?=\D)")


class PixelSource(Protocol):
    """Supplies the packed RGB pixels of each image in a collection."""

    def __len__(self) -> int:
        ...

    def pixel_values(self, index: int) -> np.ndarray:
        ...


def natural_compare(a: str, b: str) -> int:
    """
    Compare filenames so that embedded numbers sort numerically.

    Names are split into digit and non-digit runs. Two digit runs compare
    by value first, then as text ("01" before "1"); any other pair
    compares as text. If all shared runs are equal, fewer runs sort first.
    """
    runs_a = _NUMBER_BOUNDARY.split(a)
    runs_b = _NUMBER_BOUNDARY.split(b)

    for run_a, run_b in zip(runs_a, runs_b):
        result = 0
        if run_a[:1].isdecimal() and run_b[:1].isdecimal():
            result = (int(run_a) > int(run_b)) - (int(run_a) < int(run_b))
        if result == 0:
            result = (run_a > run_b) - (run_a < run_b)
        if result != 0:
            return result

    return len(runs_a) - len(runs_b)


natural_sort_key = cmp_to_key(natural_compare)


def list_image_files(directory: str, extensions: Sequence[str] = None) -> List[str]:
    """
    List image filenames in a directory in natural sort order.

    Raises:
        InvalidInputError: If ``directory`` does not exist.
    """
    if not os.path.isdir(directory):
        raise InvalidInputError(f"Not a directory: {directory}")

    extensions = IMAGE_EXTENSIONS if extensions is None else tuple(extensions)
    names = [
        f for f in os.listdir(directory)
        if os.path.isfile(os.path.join(directory, f))
        and os.path.splitext(f)[1].lower().lstrip(".") in extensions
    ]
    return sorted(names, key=natural_sort_key)


class ArrayPixelSource:
    """
    Pixel source over images already in memory.

    Each entry is either an H×W(×C) image array or a flat sequence of
    packed RGB integers.
    """

    def __init__(self, images: Sequence, bgr: bool = False):
        self.images = list(images)
        self.bgr = bgr

    def __len__(self) -> int:
        return len(self.images)

    def pixel_values(self, index: int) -> np.ndarray:
        image = np.asarray(self.images[index])
        if image.ndim <= 1:
            return image.astype(np.int64).ravel()
        return pack_rgb(image, bgr=self.bgr)


class ImageCollection:
    """
    Every readable image in a directory, in natural filename order.

    Files that OpenCV cannot decode are skipped with a warning. Images are
    held as RGB uint8 arrays.
    """

    def __init__(self, directory: str, extensions: Sequence[str] = None):
        self.directory = directory
        self.images: List[np.ndarray] = []
        self.names: List[str] = []
        self.sizes: List[int] = []
        self._load(list_image_files(directory, extensions))

    def _load(self, filenames: List[str]) -> None:
        skipped = 0
        for filename in filenames:
            path = os.path.join(self.directory, filename)
            image = cv2.imread(path, cv2.IMREAD_COLOR)
            if image is None:
                logger.warning(f"Could not read: {filename}")
                skipped += 1
                continue

            image_rgb = to_rgb(image, bgr=True)
            self.images.append(image_rgb)
            self.names.append(filename)
            self.sizes.append(int(image_rgb.shape[0] * image_rgb.shape[1]))

        logger.info(
            f"Loaded {len(self.images)} images from {self.directory} "
            f"({skipped} skipped)"
        )

    def __len__(self) -> int:
        return len(self.images)

    def image_at(self, index: int) -> np.ndarray:
        return self.images[index]

    def name_at(self, index: int) -> str:
        return self.names[index]

    def size_of(self, index: int) -> int:
        return self.sizes[index]

    def pixel_values(self, index: int) -> np.ndarray:
        return pack_rgb(self.images[index])
