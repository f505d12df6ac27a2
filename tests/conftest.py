"""
Pytest configuration and fixtures for ambimage tests
"""

import numpy as np
import pytest
from PIL import Image

from ambimage.config import Settings
from ambimage.registry import ImageRegistry


def solid(width, height, color):
    """RGB Pillow image filled with one colour"""
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[...] = color
    return Image.fromarray(arr)


@pytest.fixture
def settings():
    """Default settings with an instant fade and narrow lights"""
    return Settings(fade_time=0, light_width=20)


@pytest.fixture
def registry():
    return ImageRegistry()


@pytest.fixture
def striped_image():
    """100x50 image: red left strip, green middle, blue right strip"""
    arr = np.zeros((50, 100, 3), dtype=np.uint8)
    arr[:, :40] = (255, 0, 0)
    arr[:, 40:60] = (0, 255, 0)
    arr[:, 60:] = (0, 0, 255)
    return Image.fromarray(arr)


@pytest.fixture
def mask_file(tmp_path):
    """Half-transparent black mask saved as PNG"""
    path = tmp_path / "mask.png"
    arr = np.zeros((10, 10, 4), dtype=np.uint8)
    arr[..., 3] = 128
    Image.fromarray(arr).save(path)
    return path
