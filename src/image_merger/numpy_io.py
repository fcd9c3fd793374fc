"""
NumPy IO module.

Converts caller images into arrays in canvas layout, and canvas arrays back
into Pillow images for encoding. No pixel value conversion ever happens here;
images must already be in the canvas pixel format.
"""

import logging
from typing import Union

import numpy as np
from PIL import Image

from image_merger.exceptions import PixelFormatMismatchError
from image_merger.pixel_format import PixelFormat, get_pil_mode

logger = logging.getLogger(__name__)

ImageLike = Union[Image.Image, np.ndarray]


def get_array(image: ImageLike, pixel_format: PixelFormat) -> np.ndarray:
    """
    Get a ``(height, width, channels)`` array view of the image.

    :param image: :py:class:`PIL.Image.Image` or :py:class:`numpy.ndarray`.
        A 2-D array is accepted for single-channel formats.
    :param pixel_format: expected :py:class:`~image_merger.pixel_format.PixelFormat`.
    :return: :py:class:`numpy.ndarray`
    :raises PixelFormatMismatchError: if the image layout differs from
        ``pixel_format``.
    """
    if isinstance(image, Image.Image):
        if pixel_format.mode is not None and image.mode != pixel_format.mode:
            raise PixelFormatMismatchError(
                f"Expected mode {pixel_format.mode!r}, got {image.mode!r}"
            )
        array = np.asarray(image)
    elif isinstance(image, np.ndarray):
        array = image
    else:
        raise TypeError(
            f"Expected PIL Image or numpy.ndarray, got {type(image).__name__}"
        )

    if array.ndim == 2:
        array = np.expand_dims(array, 2)
    if array.ndim != 3 or array.shape[2] != pixel_format.channels:
        raise PixelFormatMismatchError(
            f"Expected {pixel_format.channels} channel(s), got array of shape "
            f"{array.shape}"
        )
    if array.dtype != pixel_format.dtype:
        raise PixelFormatMismatchError(
            f"Expected dtype {pixel_format.dtype}, got {array.dtype}"
        )
    return array


def get_background(
    color: Union[int, float, tuple, np.ndarray], pixel_format: PixelFormat
) -> np.ndarray:
    """
    Get the background pixel for the given fill color.

    :param color: scalar applied to all channels, or per-channel sequence.
    :return: read-only array of shape ``(channels,)``.
    :raises ValueError: if a value cannot be stored in the pixel dtype
        without changing it.
    """
    values = np.asarray(color)
    if values.dtype.kind not in "biuf":
        raise ValueError(f"Expected a numeric color, got {color!r}")
    if values.dtype.kind == "b":
        values = values.astype(np.uint8)
    if values.ndim == 0:
        values = np.repeat(values, pixel_format.channels)
    if values.shape != (pixel_format.channels,):
        raise ValueError(
            f"Expected a scalar or {pixel_format.channels} value(s), got {color!r}"
        )
    _check_representable(values, pixel_format.dtype)
    background = values.astype(pixel_format.dtype)
    background.flags.writeable = False
    return background


def _check_representable(values: np.ndarray, dtype: np.dtype) -> None:
    if dtype.kind in "iu":
        info = np.iinfo(dtype)
        if not np.all(np.isfinite(values)) or np.any(values != np.floor(values)):
            raise ValueError(f"Expected integer values for {dtype}, got {values}")
        if values.min() < info.min or values.max() > info.max:
            raise ValueError(
                f"Values {values} out of range [{info.min}, {info.max}] for {dtype}"
            )
    elif dtype.kind == "f":
        finfo = np.finfo(dtype)
        if not np.all(np.abs(values) <= finfo.max):
            raise ValueError(f"Values {values} are not finite in {dtype}")


def topil(array: np.ndarray, pixel_format: PixelFormat) -> Image.Image:
    """
    Convert a canvas array to a Pillow image.

    The pixel data is copied; the returned image does not share memory with
    the canvas.
    """
    mode = get_pil_mode(pixel_format)
    height, width = array.shape[:2]
    data = np.ascontiguousarray(array, dtype=pixel_format.dtype)
    logger.debug("Converting %dx%d %s array to PIL", width, height, mode)
    return Image.frombytes(mode, (width, height), data.tobytes())
