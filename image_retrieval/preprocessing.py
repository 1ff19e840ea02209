"""
Conversion of decoded images into packed RGB pixel streams.

Decoders hand back arrays in a variety of shapes and dtypes (grayscale,
BGR, BGRA, float). Everything is brought to uint8 RGB first and then
packed into one ``0xRRGGBB`` integer per pixel for histogram extraction.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)
    return image_np


def to_rgb(image_np: np.ndarray, bgr: bool = False) -> np.ndarray:
    """
    Bring an image to three-channel uint8 RGB.

    Args:
        image_np: H×W grayscale, H×W×3 color or H×W×4 color+alpha image.
        bgr: True when channels are in OpenCV's BGR(A) order.

    Returns:
        H×W×3 uint8 RGB image.

    Raises:
        ValueError: If the array is not a 2-D or 3/4-channel image.
    """
    image_np = normalize_image(np.asarray(image_np))

    if image_np.ndim == 2:
        return cv2.cvtColor(image_np, cv2.COLOR_GRAY2RGB)
    if image_np.ndim != 3 or image_np.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported image shape {image_np.shape}")

    if image_np.shape[2] == 4:
        code = cv2.COLOR_BGRA2RGB if bgr else cv2.COLOR_RGBA2RGB
        return cv2.cvtColor(image_np, code)
    if bgr:
        return cv2.cvtColor(image_np, cv2.COLOR_BGR2RGB)
    return image_np


def pack_rgb(image_np: np.ndarray, bgr: bool = False) -> np.ndarray:
    """
    Pack an image into a flat array of ``(R << 16) | (G << 8) | B`` ints.

    Pixels are emitted in row-major order; histogram extraction does not
    depend on the order.
    """
    rgb = to_rgb(image_np, bgr=bgr).astype(np.int64)
    packed = (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]
    return packed.ravel()
