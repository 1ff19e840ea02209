"""
Intensity and color-code histogram extraction.

Both histograms work on packed 24-bit RGB integers (``0xRRGGBB``), one per
pixel, in any order:

    intensity   25 bins over luma = 0.299 R + 0.587 G + 0.114 B. Luma is
                truncated, clamped at 240 and divided by 10, so bins 0-23
                are 10 values wide and bin 24 holds the 240-255 range.
    color code  64 bins over the 6-bit code formed from the top two bits
                of each channel, (R >> 6) << 4 | (G >> 6) << 2 | B >> 6.

Counts are returned unnormalized; they always sum to the pixel count.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma coefficients
RED_INTENSITY = 0.299
GREEN_INTENSITY = 0.587
BLUE_INTENSITY = 0.114

INTENSITY_BINS = 25
INTENSITY_BIN_WIDTH = 10
INTENSITY_CLAMP = 240

COLOR_CODE_BINS = 64
FEATURE_BINS = INTENSITY_BINS + COLOR_CODE_BINS


def split_channels(pixels) -> tuple:
    """Split packed RGB integers into 8-bit R, G, B arrays."""
    packed = np.asarray(pixels, dtype=np.int64).ravel()
    red = (packed >> 16) & 0xFF
    green = (packed >> 8) & 0xFF
    blue = packed & 0xFF
    return red, green, blue


def intensity_histogram(pixels) -> np.ndarray:
    """
    Build the 25-bin intensity histogram of a pixel stream.

    Args:
        pixels: Sequence or array of packed RGB integers. Bits above the
                low 24 (such as an alpha byte) are ignored.

    Returns:
        int64 array of INTENSITY_BINS counts. All zeros for empty input.
    """
    red, green, blue = split_channels(pixels)
    luma = RED_INTENSITY * red + GREEN_INTENSITY * green + BLUE_INTENSITY * blue
    clamped = np.minimum(luma.astype(np.int64), INTENSITY_CLAMP)
    return np.bincount(clamped // INTENSITY_BIN_WIDTH,
                       minlength=INTENSITY_BINS).astype(np.int64)


def color_code_histogram(pixels) -> np.ndarray:
    """
    Build the 64-bin color-code histogram of a pixel stream.

    Args:
        pixels: Sequence or array of packed RGB integers.

    Returns:
        int64 array of COLOR_CODE_BINS counts. All zeros for empty input.
    """
    red, green, blue = split_channels(pixels)
    codes = ((red >> 6) << 4) | ((green >> 6) << 2) | (blue >> 6)
    return np.bincount(codes, minlength=COLOR_CODE_BINS).astype(np.int64)

