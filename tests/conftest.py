"""Shared test fixtures for retrieval tests."""

import numpy as np
import pytest

from image_retrieval.collection import ArrayPixelSource


def pack(r, g, b):
    """Pack one RGB triple into a 0xRRGGBB integer."""
    return (r << 16) | (g << 8) | b


def solid(color, height=1, width=1):
    """Generate an RGB image filled with a single color."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = color
    return img


@pytest.fixture
def rgb_source():
    """Three 1x1 images: solid red, solid green, solid blue."""
    return ArrayPixelSource([
        solid((255, 0, 0)),
        solid((0, 255, 0)),
        solid((0, 0, 255)),
    ])


@pytest.fixture
def red_square_image():
    """Generate a 200x200 red square on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [200, 30, 30]  # Red square
    return img


@pytest.fixture
def blue_square_image():
    """Generate a 200x200 blue square on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [30, 30, 200]
    return img


@pytest.fixture
def noise_image():
    """Generate a 64x48 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, (64, 48, 3), dtype=np.uint8)


@pytest.fixture
def mixed_source(red_square_image, blue_square_image, noise_image):
    """A small collection of differently sized, differently colored images."""
    rng = np.random.RandomState(7)
    return ArrayPixelSource([
        red_square_image,
        blue_square_image,
        noise_image,
        rng.randint(0, 128, (30, 40, 3), dtype=np.uint8),   # dark noise
        rng.randint(128, 256, (20, 20, 3), dtype=np.uint8),  # bright noise
        red_square_image[::2, ::2].copy(),
    ])
