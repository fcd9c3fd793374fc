"""
Merger module.

This module provides :py:class:`Merger`, which composes equally sized images
into a fixed grid on a single :py:class:`~image_merger.canvas.Canvas`.
Images are placed left to right, top to bottom, in the order they are pushed.
Only the image being pasted needs to be in memory, so a merger can build a
large contact sheet from a stream of images.

Each paste is split across a pool of worker threads. The image rows are
partitioned into contiguous bands and every worker leases the matching band
of the canvas cell, so no two workers ever write the same pixel.

Example usage::

    from PIL import Image
    from image_merger import Merger

    merger = Merger((64, 64), columns=8, rows=4, mode="RGB")
    for path in paths:
        with Image.open(path) as image:
            merger.push(image.convert("RGB"))
    merger.topil().save("sheet.png")
    merger.close()
"""

import logging
import os
from collections.abc import Iterable, Sized
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Optional, Union

import numpy as np
from attrs import define, field
from PIL import Image

from image_merger import numpy_io
from image_merger.canvas import Canvas
from image_merger.exceptions import (
    CapacityExhaustedError,
    DimensionMismatchError,
    InvalidConstructionError,
)
from image_merger.numpy_io import ImageLike
from image_merger.pixel_format import PixelFormat
from image_merger.utils import Box, partition
from image_merger.validators import check_range, positive_int

logger = logging.getLogger(__name__)


@define(frozen=True)
class Grid:
    """
    Grid geometry. Placement is a pure function of the index and geometry.

    .. py:attribute:: cell_width
    .. py:attribute:: cell_height
    .. py:attribute:: columns
    .. py:attribute:: rows
    """

    cell_width: int = field(validator=positive_int())
    cell_height: int = field(validator=positive_int())
    columns: int = field(validator=positive_int())
    rows: int = field(validator=positive_int())

    @property
    def capacity(self) -> int:
        return self.columns * self.rows

    @property
    def cell_size(self) -> tuple[int, int]:
        return self.cell_width, self.cell_height

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.cell_width * self.columns, self.cell_height * self.rows

    def cell_origin(self, index: int) -> tuple[int, int]:
        """Top-left pixel coordinates of the cell at a row-major index."""
        if not 0 <= index < self.capacity:
            raise IndexError(f"Cell index {index} out of range [0, {self.capacity})")
        row, column = divmod(index, self.columns)
        return column * self.cell_width, row * self.cell_height

    def cell_box(self, index: int) -> Box:
        """Bounding box (left, top, right, bottom) of the cell."""
        x, y = self.cell_origin(index)
        return x, y, x + self.cell_width, y + self.cell_height


class Merger:
    """
    Grid image composer.

    :param cell_size: (width, height) of every image to be pushed.
    :param columns: number of cells per row.
    :param rows: number of rows.
    :param mode: pixel format of the canvas, a Pillow mode or
        :py:class:`~image_merger.pixel_format.PixelFormat`. Pushed images
        must already be in this format.
    :param color: background color of empty cells.
    :param workers: maximum number of threads per paste. Default is the
        number of CPUs.
    :raises InvalidConstructionError: on non-positive geometry, an invalid
        worker count or background color, or a canvas too large to allocate.

    Worker threads are started on the first multi-threaded paste and kept
    until :py:meth:`close` is called, or until the ``with`` block the merger
    is used in exits.
    """

    def __init__(
        self,
        cell_size: tuple[int, int],
        columns: int,
        rows: int,
        mode: Union[str, PixelFormat] = "RGBA",
        color: Union[int, float, tuple] = 0,
        workers: Optional[int] = None,
    ):
        if len(cell_size) != 2:
            raise InvalidConstructionError(
                f"Cell size must be (width, height), got {cell_size!r}"
            )
        self._grid = Grid(cell_size[0], cell_size[1], columns, rows)
        if workers is None:
            workers = os.cpu_count() or 1
        check_range("workers", workers, 1, 2**16)
        self._workers = int(workers)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._canvas = Canvas(*self._grid.canvas_size, pixel_format=mode, color=color)
        self._num_images = 0
        self._last_index = -1
        logger.debug(
            "Created %dx%d grid of %dx%d cells, %d worker(s)",
            columns,
            rows,
            cell_size[0],
            cell_size[1],
            workers,
        )

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def cell_size(self) -> tuple[int, int]:
        return self._grid.cell_size

    @property
    def columns(self) -> int:
        return self._grid.columns

    @property
    def rows(self) -> int:
        return self._grid.rows

    @property
    def size(self) -> tuple[int, int]:
        """Canvas (width, height) in pixels."""
        return self._canvas.size

    @property
    def pixel_format(self) -> PixelFormat:
        return self._canvas.pixel_format

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def capacity(self) -> int:
        """Total number of cells."""
        return self._grid.capacity

    @property
    def remaining(self) -> int:
        """Number of free cells."""
        return self.capacity - self._num_images

    @property
    def last_index(self) -> int:
        """Index of the last placed image, -1 if none has been placed."""
        return self._last_index

    def is_full(self) -> bool:
        return self._num_images >= self.capacity

    def get_num_images(self) -> int:
        """Number of images placed so far."""
        return self._num_images

    def get_canvas(self) -> np.ndarray:
        """
        Get the composed canvas.

        :return: read-only ``(height, width, channels)``
            :py:class:`numpy.ndarray`.
        """
        return self._canvas.as_finished_image()

    def topil(self) -> Image.Image:
        """Get a copy of the composed canvas as :py:class:`PIL.Image.Image`."""
        return self._canvas.topil()

    def cell_box(self, index: int) -> Box:
        """Bounding box of the cell at a zero-based, row-major index."""
        return self._grid.cell_box(index)

    def push(self, image: ImageLike) -> None:
        """
        Paste the image into the next free cell.

        This can be used in a loop to paste a large number of images without
        holding all of them in memory.

        :param image: :py:class:`PIL.Image.Image` or
            :py:class:`numpy.ndarray` of the cell size and canvas format.
        :raises DimensionMismatchError: if the image is not of the cell size.
        :raises PixelFormatMismatchError: if the image is not of the canvas
            pixel format.
        :raises CapacityExhaustedError: if the grid is full.
        """
        array = numpy_io.get_array(image, self.pixel_format)
        height, width = array.shape[:2]
        if (width, height) != self.cell_size:
            raise DimensionMismatchError(
                f"Expected image of size {self.cell_size}, got {(width, height)}"
            )
        x, y = self._next_paste_coordinates()
        self._paste(array, x, y)

        self._last_index += 1
        self._num_images += 1

    def bulk_push(self, images: Iterable[ImageLike]) -> int:
        """
        Paste images into consecutive free cells.

        Images are consumed one at a time, so a generator keeps only the
        current image in memory. When ``images`` has a length that exceeds
        the free cells, nothing is pasted.

        :return: number of images pasted.
        :raises CapacityExhaustedError: if the images do not fit.
        """
        if isinstance(images, Sized) and len(images) > self.remaining:
            raise CapacityExhaustedError(
                f"Cannot push {len(images)} image(s), {self.remaining} cell(s) left"
            )
        count = 0
        for image in images:
            self.push(image)
            count += 1
        logger.debug("Bulk pushed %d image(s)", count)
        return count

    def remove_image(self, index: int) -> None:
        """
        Remove the image at a zero-based, row-major index.

        Images after it are shifted back by one cell, and the freed last cell
        is reset to the background color.

        :raises IndexError: if no image is placed at the index.
        """
        if not 0 <= index < self._num_images:
            raise IndexError(
                f"Image index {index} out of range [0, {self._num_images})"
            )
        for i in range(index + 1, self._num_images):
            with self._canvas.lease(self._grid.cell_box(i)) as source:
                with self._canvas.lease(self._grid.cell_box(i - 1)) as target:
                    target.write(source.array)
        self._canvas.clear(self._grid.cell_box(self._num_images - 1))

        self._last_index -= 1
        self._num_images -= 1
        logger.debug("Removed image %d, %d image(s) left", index, self._num_images)

    def close(self) -> None:
        """
        Stop the worker threads. Closing twice is a no-op, and a later push
        starts new workers.
        """
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "Merger":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _next_paste_coordinates(self) -> tuple[int, int]:
        index = self._last_index + 1
        if index >= self.capacity:
            raise CapacityExhaustedError(
                f"No more space on canvas, all {self.capacity} cell(s) are used"
            )
        return self._grid.cell_origin(index)

    def _paste(self, array: np.ndarray, paste_x: int, paste_y: int) -> None:
        # Row-aligned chunks of the row-major pixel index range.
        chunks = partition(array.shape[0], self._workers)
        logger.debug(
            "Pasting at (%d, %d) in %d chunk(s)", paste_x, paste_y, len(chunks)
        )
        if len(chunks) == 1:
            self._paste_rows(array, paste_x, paste_y, *chunks[0])
            return

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="image-merger"
            )
        futures = [
            self._executor.submit(
                self._paste_rows, array, paste_x, paste_y, start, stop
            )
            for start, stop in chunks
        ]
        # Join every band before reporting the first failure.
        wait(futures)
        for future in futures:
            future.result()

    def _paste_rows(
        self, array: np.ndarray, paste_x: int, paste_y: int, start: int, stop: int
    ) -> None:
        box = (paste_x, paste_y + start, paste_x + array.shape[1], paste_y + stop)
        with self._canvas.lease(box) as region:
            region.write(array[start:stop])

    def __repr__(self) -> str:
        return "%s(cell_size=%r, columns=%d, rows=%d, num_images=%d)" % (
            self.__class__.__name__,
            self.cell_size,
            self.columns,
            self.rows,
            self._num_images,
        )
