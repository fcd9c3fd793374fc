import logging

import numpy as np
import pytest

from image_merger import Merger
from image_merger.exceptions import (
    CapacityExhaustedError,
    DimensionMismatchError,
    InvalidConstructionError,
    PixelFormatMismatchError,
)
from image_merger.merger import Grid

from .utils import gradient, solid

logger = logging.getLogger(__name__)


def test_grid() -> None:
    grid = Grid(2, 3, 4, 5)
    assert grid.capacity == 20
    assert grid.cell_size == (2, 3)
    assert grid.canvas_size == (8, 15)
    assert grid.cell_origin(0) == (0, 0)
    assert grid.cell_origin(5) == (2, 3)
    assert grid.cell_box(19) == (6, 12, 8, 15)
    with pytest.raises(IndexError):
        grid.cell_origin(20)
    with pytest.raises(IndexError):
        grid.cell_origin(-1)


@pytest.mark.parametrize(
    "cell_size, columns, rows",
    [
        ((0, 2), 1, 1),
        ((2, 0), 1, 1),
        ((2, 2), 0, 1),
        ((2, 2), 1, 0),
        ((2, 2), -1, 1),
        ((2.0, 2), 1, 1),
        ((2, 2, 2), 1, 1),
        ((2**31 - 1, 2**31 - 1), 2**31 - 1, 2**31 - 1),
    ],
)
def test_invalid_construction(cell_size, columns, rows) -> None:
    with pytest.raises(InvalidConstructionError):
        Merger(cell_size, columns, rows, mode="L")


@pytest.mark.parametrize("workers", [0, -2, 2.0, True, "4", 2**16 + 1])
def test_invalid_workers(workers) -> None:
    with pytest.raises(InvalidConstructionError):
        Merger((2, 4), 1, 1, mode="L", workers=workers)


@pytest.mark.parametrize("color", [300, -1, 0.5, (1, 2), "white"])
def test_invalid_background(color) -> None:
    with pytest.raises(InvalidConstructionError):
        Merger((1, 1), 1, 1, mode="L", color=color)


def test_new_merger() -> None:
    merger = Merger((2, 3), columns=4, rows=2, mode="RGB", color=(9, 9, 9))
    assert merger.get_num_images() == 0
    assert merger.last_index == -1
    assert merger.capacity == 8
    assert merger.remaining == 8
    assert not merger.is_full()
    assert merger.size == (8, 6)
    assert merger.cell_size == (2, 3)
    assert (merger.columns, merger.rows) == (4, 2)
    assert merger.workers >= 1
    assert np.all(merger.get_canvas() == 9)


def test_two_cells() -> None:
    merger = Merger((2, 2), columns=2, rows=1, mode="L")
    merger.push(solid((2, 2), 1))
    merger.push(solid((2, 2), 2))
    assert merger.get_canvas()[:, :, 0].tolist() == [[1, 1, 2, 2], [1, 1, 2, 2]]
    assert merger.is_full()
    with pytest.raises(CapacityExhaustedError):
        merger.push(solid((2, 2), 3))
    assert merger.get_num_images() == 2
    assert merger.last_index == 1


def test_single_pixel_cells() -> None:
    merger = Merger((1, 1), columns=3, rows=2, mode="L")
    for value in range(6):
        merger.push(solid((1, 1), value))
    assert merger.get_canvas().ravel().tolist() == [0, 1, 2, 3, 4, 5]


@pytest.mark.parametrize(
    "cell_size, columns, rows, workers",
    [
        ((1, 1), 1, 1, 1),
        ((3, 2), 2, 3, 1),
        ((5, 7), 3, 2, 4),
        ((8, 8), 4, 4, 3),
        ((4, 1), 1, 5, 8),
        ((16, 9), 2, 2, 16),
    ],
)
def test_placement(cell_size, columns, rows, workers) -> None:
    width, height = cell_size
    merger = Merger(cell_size, columns, rows, mode="RGB", workers=workers)
    images = [
        gradient(cell_size, offset=17 * i, channels=3) for i in range(columns * rows)
    ]
    for i, image in enumerate(images):
        merger.push(image)
        assert merger.get_num_images() == i + 1
        assert merger.last_index == i

    canvas = merger.get_canvas()
    for i, image in enumerate(images):
        x, y = (i % columns) * width, (i // columns) * height
        assert merger.cell_box(i) == (x, y, x + width, y + height)
        assert np.array_equal(canvas[y : y + height, x : x + width], image)

    with pytest.raises(CapacityExhaustedError):
        merger.push(images[0])


def test_partial_fill_keeps_background() -> None:
    merger = Merger((2, 2), columns=2, rows=2, mode="L", color=7)
    merger.push(solid((2, 2), 1))
    canvas = merger.get_canvas()[:, :, 0]
    assert np.all(canvas[0:2, 0:2] == 1)
    assert np.all(canvas[0:2, 2:4] == 7)
    assert np.all(canvas[2:4, :] == 7)


def test_push_order_only_changes_cells() -> None:
    images = [gradient((3, 3), offset=i * 50) for i in range(4)]
    forward = Merger((3, 3), 2, 2, mode="L")
    backward = Merger((3, 3), 2, 2, mode="L")
    forward.bulk_push(images)
    backward.bulk_push(images[::-1])
    for i in range(4):
        left, top, right, bottom = forward.cell_box(i)
        mirrored = backward.cell_box(3 - i)
        assert np.array_equal(
            forward.get_canvas()[top:bottom, left:right],
            backward.get_canvas()[mirrored[1] : mirrored[3], mirrored[0] : mirrored[2]],
        )


@pytest.mark.parametrize("size", [(2, 3), (3, 2), (1, 1), (4, 4)])
def test_dimension_mismatch(size) -> None:
    merger = Merger((2, 2), columns=2, rows=1, mode="L", color=5)
    with pytest.raises(DimensionMismatchError):
        merger.push(solid(size, 1))
    assert merger.get_num_images() == 0
    assert merger.last_index == -1
    assert np.all(merger.get_canvas() == 5)


def test_pixel_format_mismatch() -> None:
    merger = Merger((2, 2), columns=1, rows=1, mode="RGB")
    with pytest.raises(PixelFormatMismatchError):
        merger.push(solid((2, 2), 1, "L"))
    with pytest.raises(PixelFormatMismatchError):
        merger.push(np.zeros((2, 2, 3), dtype=np.uint16))
    assert merger.get_num_images() == 0


def test_push_numpy_single_channel() -> None:
    merger = Merger((2, 1), columns=1, rows=2, mode="I;16")
    merger.push(np.array([[1000, 2000]], dtype=np.uint16))
    merger.push(np.array([[3000, 4000]], dtype=np.uint16))
    assert merger.get_canvas().ravel().tolist() == [1000, 2000, 3000, 4000]


def test_bulk_push() -> None:
    merger = Merger((1, 1), columns=2, rows=2, mode="L")
    assert merger.bulk_push(solid((1, 1), v) for v in (1, 2, 3)) == 3
    assert merger.get_num_images() == 3
    assert merger.bulk_push([]) == 0
    assert merger.get_canvas().ravel().tolist() == [1, 2, 3, 0]


def test_bulk_push_sized_overflow() -> None:
    merger = Merger((1, 1), columns=2, rows=1, mode="L")
    merger.push(solid((1, 1), 1))
    with pytest.raises(CapacityExhaustedError):
        merger.bulk_push([solid((1, 1), 2), solid((1, 1), 3)])
    assert merger.get_num_images() == 1
    assert merger.get_canvas().ravel().tolist() == [1, 0]


def test_bulk_push_unsized_overflow() -> None:
    merger = Merger((1, 1), columns=2, rows=1, mode="L")
    with pytest.raises(CapacityExhaustedError):
        merger.bulk_push(solid((1, 1), v) for v in (1, 2, 3))
    assert merger.get_num_images() == 2
    assert merger.get_canvas().ravel().tolist() == [1, 2]


@pytest.mark.parametrize(
    "index, expected",
    [
        (0, [2, 3, 4, 0]),
        (1, [1, 3, 4, 0]),
        (3, [1, 2, 3, 0]),
    ],
)
def test_remove_image(index, expected) -> None:
    merger = Merger((1, 1), columns=2, rows=2, mode="L")
    merger.bulk_push(solid((1, 1), v) for v in (1, 2, 3, 4))
    merger.remove_image(index)
    assert merger.get_canvas().ravel().tolist() == expected
    assert merger.get_num_images() == 3
    assert merger.last_index == 2
    merger.push(solid((1, 1), 9))
    assert merger.get_canvas().ravel().tolist() == expected[:3] + [9]


def test_remove_image_multi_pixel_cells() -> None:
    images = [gradient((3, 2), offset=10 * i) for i in range(3)]
    merger = Merger((3, 2), columns=2, rows=2, mode="L", color=255)
    merger.bulk_push(images)
    merger.remove_image(0)
    canvas = merger.get_canvas()
    assert np.array_equal(canvas[0:2, 0:3], images[1])
    assert np.array_equal(canvas[0:2, 3:6], images[2])
    assert np.all(canvas[2:4, :] == 255)


@pytest.mark.parametrize("index", [-1, 2, 4])
def test_remove_image_out_of_range(index) -> None:
    merger = Merger((1, 1), columns=2, rows=2, mode="L")
    merger.bulk_push([solid((1, 1), 1), solid((1, 1), 2)])
    with pytest.raises(IndexError):
        merger.remove_image(index)
    assert merger.get_num_images() == 2


@pytest.mark.threaded
def test_parallel_paste_large_image() -> None:
    merger = Merger((64, 48), columns=3, rows=2, mode="RGBA", workers=8)
    images = [gradient((64, 48), offset=i, channels=4) for i in range(6)]
    merger.bulk_push(images)
    canvas = merger.get_canvas()
    for i, image in enumerate(images):
        left, top, right, bottom = merger.cell_box(i)
        assert np.array_equal(canvas[top:bottom, left:right], image)


def test_topil() -> None:
    merger = Merger((2, 2), columns=2, rows=1, mode="RGB")
    merger.push(solid((2, 2), (255, 0, 0), "RGB"))
    image = merger.topil()
    assert image.size == (4, 2)
    assert image.getpixel((1, 1)) == (255, 0, 0)
    assert image.getpixel((2, 0)) == (0, 0, 0)


def test_repr() -> None:
    merger = Merger((2, 2), columns=2, rows=1, mode="L")
    assert repr(merger) == "Merger(cell_size=(2, 2), columns=2, rows=1, num_images=0)"


@pytest.mark.threaded
def test_workers_are_reused_until_close() -> None:
    with Merger((4, 8), columns=3, rows=1, mode="L", workers=4) as merger:
        merger.push(gradient((4, 8)))
        executor = merger._executor
        assert executor is not None
        merger.push(gradient((4, 8), offset=1))
        assert merger._executor is executor
    assert merger._executor is None

    merger.push(gradient((4, 8), offset=2))
    assert merger.get_num_images() == 3
    merger.close()
    merger.close()
    assert merger._executor is None


def test_single_worker_starts_no_threads() -> None:
    with Merger((4, 8), columns=1, rows=1, mode="L", workers=1) as merger:
        merger.push(gradient((4, 8)))
        assert merger._executor is None
