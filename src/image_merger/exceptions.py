"""
Exceptions raised by image-merger.

All errors derive from :py:class:`MergerError`, so callers can catch the
whole family at once. Errors that describe a bad argument also derive from
:py:class:`ValueError`.
"""


class MergerError(Exception):
    """Base class of image-merger errors."""


class CapacityExhaustedError(MergerError):
    """Raised when an image is pushed onto a grid with no free cell left."""


class DimensionMismatchError(MergerError, ValueError):
    """Raised when a pushed image does not match the cell size."""


class PixelFormatMismatchError(MergerError, ValueError):
    """Raised when a pushed image does not match the canvas pixel format."""


class InvalidConstructionError(MergerError, ValueError):
    """Raised for zero, negative, or overflowing canvas or grid dimensions."""


class OverlappingViewError(MergerError, RuntimeError):
    """
    Raised when an exclusive view would overlap an outstanding one.

    A correct :py:class:`~image_merger.merger.Merger` never triggers this.
    """
