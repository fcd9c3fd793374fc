"""
Pixel format definitions.

A canvas stores pixels as a ``(height, width, channels)`` NumPy array of a
single dtype. :py:class:`PixelFormat` pins down that layout, and optionally
the Pillow mode with the same memory layout so that finished canvases can be
handed to an image encoder.

Example::

    from image_merger.pixel_format import get_pixel_format

    rgba = get_pixel_format("RGBA")
    assert rgba.channels == 4
"""

import logging
from typing import Any, Optional, Union

import numpy as np
from attrs import define, field

from image_merger.validators import range_

logger = logging.getLogger(__name__)

#: Pillow modes supported by the canvas, and their (channels, dtype) layout.
PIL_MODES: dict[str, tuple[int, np.dtype]] = {
    "L": (1, np.dtype(np.uint8)),
    "LA": (2, np.dtype(np.uint8)),
    "RGB": (3, np.dtype(np.uint8)),
    "RGBA": (4, np.dtype(np.uint8)),
    "CMYK": (4, np.dtype(np.uint8)),
    "I;16": (1, np.dtype("<u2")),
    "I": (1, np.dtype(np.int32)),
    "F": (1, np.dtype(np.float32)),
}


@define(frozen=True)
class PixelFormat:
    """
    Memory layout of a single pixel.

    .. py:attribute:: channels

        Number of components per pixel.

    .. py:attribute:: dtype

        NumPy dtype of each component.

    .. py:attribute:: mode

        Pillow mode with the same layout, or `None` for raw pixel formats
        that Pillow cannot represent.
    """

    channels: int = field(validator=range_(1, 256))
    dtype: np.dtype = field(converter=np.dtype)
    mode: Optional[str] = field(default=None)

    @mode.validator
    def _validate_mode(self, attribute: Any, value: Optional[str]) -> None:
        if value is None:
            return
        if value not in PIL_MODES:
            raise ValueError(f"Unsupported mode: {value!r}")
        if PIL_MODES[value] != (self.channels, self.dtype):
            raise ValueError(
                f"Mode {value!r} does not match {self.channels} x {self.dtype}"
            )

    @classmethod
    def from_mode(cls, mode: str) -> "PixelFormat":
        """Get the pixel format of a Pillow mode."""
        if mode not in PIL_MODES:
            raise ValueError(
                f"Unsupported mode: {mode!r}, expected one of {sorted(PIL_MODES)}"
            )
        channels, dtype = PIL_MODES[mode]
        return cls(channels, dtype, mode)

    @property
    def itemsize(self) -> int:
        """Bytes per pixel."""
        return self.channels * self.dtype.itemsize

    def __str__(self) -> str:
        if self.mode is not None:
            return self.mode
        return f"{self.channels}x{self.dtype}"


def get_pixel_format(value: Union[str, PixelFormat]) -> PixelFormat:
    """Convert a Pillow mode or :py:class:`PixelFormat` to PixelFormat."""
    if isinstance(value, PixelFormat):
        return value
    if isinstance(value, str):
        return PixelFormat.from_mode(value)
    raise TypeError(f"Expected str or PixelFormat, got {type(value).__name__}")


def get_pil_mode(pixel_format: PixelFormat) -> str:
    """Get the Pillow mode of a pixel format."""
    if pixel_format.mode is None:
        raise ValueError(f"Pixel format {pixel_format} has no Pillow mode")
    return pixel_format.mode
