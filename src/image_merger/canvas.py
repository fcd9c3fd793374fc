"""
Canvas module.

The :py:class:`Canvas` owns the composed output buffer. Writers never get the
whole buffer; they get an exclusive view onto a region of it, either a single
pixel through :py:meth:`Canvas.request_exclusive_view` or a rectangle through
:py:meth:`Canvas.lease`. The canvas keeps a registry of outstanding views and
refuses to hand out one that overlaps another, so concurrent writers holding
views are guaranteed never to alias.

The registry lock is only taken while a view is acquired or released. Writes
through a view go straight to the underlying NumPy memory.

Example usage::

    from image_merger.canvas import Canvas

    canvas = Canvas(4, 2, "L")
    with canvas.lease((0, 0, 2, 2)) as region:
        region.write(numpy.ones((2, 2, 1), dtype=numpy.uint8))
    canvas.request_exclusive_view(3, 1).set(2)
    canvas.as_finished_image()
"""

import logging
import sys
import threading
from typing import Any, Optional, Union

import numpy as np
from PIL import Image

from image_merger import numpy_io
from image_merger.exceptions import InvalidConstructionError, OverlappingViewError
from image_merger.pixel_format import PixelFormat, get_pixel_format
from image_merger.utils import Box, intersect, is_empty

logger = logging.getLogger(__name__)


class RegionLease:
    """
    Exclusive mutable view onto a rectangular region of a canvas.

    Obtain leases with :py:meth:`Canvas.lease`. A lease is valid until
    :py:meth:`release` is called, or until the ``with`` block it is used in
    exits. No other lease overlapping the same region can be taken meanwhile.
    """

    def __init__(self, canvas: "Canvas", box: Box, array: np.ndarray):
        self._canvas = canvas
        self._box = box
        self._array: Optional[np.ndarray] = array

    @property
    def box(self) -> Box:
        """Leased region as (left, top, right, bottom)."""
        return self._box

    @property
    def released(self) -> bool:
        return self._array is None

    @property
    def array(self) -> np.ndarray:
        """
        Writable ``(height, width, channels)`` view of the region.

        :raises RuntimeError: if the lease has been released.
        """
        if self._array is None:
            raise RuntimeError(f"Lease on {self._box} has been released")
        return self._array

    def write(self, pixels: Union[np.ndarray, Any]) -> None:
        """
        Copy pixel values into the region.

        :param pixels: array of the region's shape, or a single pixel value
            broadcast over the region.
        """
        array = self.array
        if isinstance(pixels, np.ndarray) and pixels.ndim == 3:
            if pixels.shape != array.shape:
                raise ValueError(
                    f"Expected pixels of shape {array.shape}, got {pixels.shape}"
                )
        array[...] = pixels

    def release(self) -> None:
        """Give the region back to the canvas. Releasing twice is a no-op."""
        if self._array is None:
            return
        self._array = None
        self._canvas._release(self)

    def __enter__(self) -> "RegionLease":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return "%s(box=%r%s)" % (
            self.__class__.__name__,
            self._box,
            ", released" if self.released else "",
        )


class PixelHandle:
    """
    Write access to exactly one canvas pixel, good for exactly one write.

    Obtain handles with :py:meth:`Canvas.request_exclusive_view`.
    """

    def __init__(self, lease: RegionLease):
        self._lease = lease

    @property
    def x(self) -> int:
        return self._lease.box[0]

    @property
    def y(self) -> int:
        return self._lease.box[1]

    def set(self, pixel: Any) -> None:
        """
        Write the pixel value and release the reservation.

        :param pixel: scalar, or sequence with one value per channel.
        :raises RuntimeError: if the handle has already been written.
        """
        if self._lease.released:
            raise RuntimeError(f"Pixel ({self.x}, {self.y}) has already been set")
        try:
            self._lease.array[0, 0] = pixel
        finally:
            self._lease.release()

    def __repr__(self) -> str:
        return "%s(x=%d, y=%d)" % (self.__class__.__name__, self.x, self.y)


class Canvas:
    """
    Fixed-size pixel buffer shared by concurrent writers.

    :param width: width in pixels.
    :param height: height in pixels.
    :param pixel_format: Pillow mode or
        :py:class:`~image_merger.pixel_format.PixelFormat`.
    :param color: background color, a scalar or one value per channel.
    :raises InvalidConstructionError: if the size is zero, negative, or too
        large to address, or the background color does not fit the
        pixel format.
    """

    def __init__(
        self,
        width: int,
        height: int,
        pixel_format: Union[str, PixelFormat] = "RGBA",
        color: Union[int, float, tuple] = 0,
    ):
        self._format = get_pixel_format(pixel_format)
        _check_size(width, height, self._format)
        try:
            self._background = numpy_io.get_background(color, self._format)
        except ValueError as e:
            raise InvalidConstructionError(f"Invalid background color: {e}") from e
        logger.debug(
            "Allocating %dx%d canvas of %s (%d bytes)",
            width,
            height,
            self._format,
            width * height * self._format.itemsize,
        )
        self._buffer = np.empty(
            (int(height), int(width), self._format.channels), dtype=self._format.dtype
        )
        self._buffer[...] = self._background
        self._leases: list[RegionLease] = []
        self._lock = threading.Lock()

    @classmethod
    def new(
        cls,
        width: int,
        height: int,
        pixel_format: Union[str, PixelFormat] = "RGBA",
        color: Union[int, float, tuple] = 0,
    ) -> "Canvas":
        """Create a new canvas filled with the background color."""
        return cls(width, height, pixel_format, color)

    @property
    def width(self) -> int:
        return self._buffer.shape[1]

    @property
    def height(self) -> int:
        return self._buffer.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self.width, self.height

    @property
    def bbox(self) -> Box:
        return (0, 0, self.width, self.height)

    @property
    def pixel_format(self) -> PixelFormat:
        return self._format

    @property
    def background(self) -> np.ndarray:
        """Background pixel, a read-only array with one value per channel."""
        return self._background

    def lease(self, box: Box) -> RegionLease:
        """
        Take an exclusive writable view onto a region.

        :param box: (left, top, right, bottom) region inside the canvas.
        :return: :py:class:`RegionLease`
        :raises IndexError: if the region is empty or leaves the canvas.
        :raises OverlappingViewError: if the region intersects an outstanding
            lease.
        """
        left, top, right, bottom = box
        if is_empty(box) or intersect(box, self.bbox) != tuple(box):
            raise IndexError(f"Region {box} is outside of canvas {self.bbox}")
        with self._lock:
            for other in self._leases:
                if not is_empty(intersect(box, other.box)):
                    raise OverlappingViewError(
                        f"Region {box} overlaps outstanding lease {other.box}"
                    )
            lease = RegionLease(
                self, (left, top, right, bottom), self._buffer[top:bottom, left:right]
            )
            self._leases.append(lease)
        return lease

    def request_exclusive_view(self, x: int, y: int) -> PixelHandle:
        """
        Take write access to the single pixel at (x, y).

        :raises IndexError: if (x, y) is outside of the canvas.
        :raises OverlappingViewError: if the pixel is already reserved.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) is outside of canvas {self.size}")
        return PixelHandle(self.lease((x, y, x + 1, y + 1)))

    def clear(self, box: Optional[Box] = None) -> None:
        """Reset the region, or the whole canvas, to the background color."""
        with self.lease(box if box is not None else self.bbox) as region:
            region.write(self._background)

    def as_finished_image(self) -> np.ndarray:
        """
        Get a read-only view of the buffer.

        :return: non-writeable ``(height, width, channels)``
            :py:class:`numpy.ndarray` sharing memory with the canvas.
        :raises RuntimeError: if a view is still outstanding.
        """
        with self._lock:
            if self._leases:
                raise RuntimeError(
                    "Canvas has %d outstanding view(s)" % len(self._leases)
                )
        view = self._buffer.view()
        view.flags.writeable = False
        return view

    def topil(self) -> Image.Image:
        """Get a copy of the canvas as :py:class:`PIL.Image.Image`."""
        return numpy_io.topil(self.as_finished_image(), self._format)

    def _release(self, lease: RegionLease) -> None:
        with self._lock:
            self._leases.remove(lease)

    def __repr__(self) -> str:
        return "%s(size=%r, pixel_format=%s)" % (
            self.__class__.__name__,
            self.size,
            self._format,
        )


def _check_size(width: Any, height: Any, pixel_format: PixelFormat) -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidConstructionError(
                f"Canvas {name} must be an integer, got {type(value).__name__}"
            )
        if value <= 0:
            raise InvalidConstructionError(f"Canvas {name} must be positive: {value}")
    if int(width) * int(height) * pixel_format.itemsize > sys.maxsize:
        raise InvalidConstructionError(
            f"Canvas size {width}x{height} of {pixel_format} overflows"
        )
