import logging
from typing import Union

import numpy as np
from PIL import Image

logging.basicConfig(level=logging.DEBUG)


def solid(
    size: tuple[int, int], value: Union[int, tuple[int, ...]], mode: str = "L"
) -> Image.Image:
    """Create a single-color image."""
    return Image.new(mode, size, value)


def gradient(size: tuple[int, int], offset: int = 0, channels: int = 1) -> np.ndarray:
    """Create a uint8 array whose pixels all differ within the image."""
    width, height = size
    values = (np.arange(width * height * channels) + offset) % 256
    return values.astype(np.uint8).reshape((height, width, channels))
