"""
image-merger: compose equally sized images into a grid.

This package builds contact sheets and sprite atlases from a stream of
images without keeping the source images in memory. Each image is pasted
into the next free cell of a fixed grid, with the pixel copy split across
worker threads.

Basic usage::

    from image_merger import Merger

    merger = Merger((32, 32), columns=4, rows=4, mode="RGBA")
    for image in images:
        merger.push(image)

    merger.topil().save("atlas.png")

Architecture:

- :py:mod:`image_merger.merger`: Grid placement and parallel paste
- :py:mod:`image_merger.canvas`: Output buffer with exclusive views
- :py:mod:`image_merger.numpy_io`: Conversion from and to Pillow images
- :py:mod:`image_merger.pixel_format`: Pixel layout definitions
"""

from image_merger.canvas import Canvas
from image_merger.exceptions import (
    CapacityExhaustedError,
    DimensionMismatchError,
    InvalidConstructionError,
    MergerError,
    PixelFormatMismatchError,
)
from image_merger.merger import Merger
from image_merger.version import __version__

__all__ = [
    "Canvas",
    "CapacityExhaustedError",
    "DimensionMismatchError",
    "InvalidConstructionError",
    "Merger",
    "MergerError",
    "PixelFormatMismatchError",
    "__version__",
]
