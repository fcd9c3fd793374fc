"""
Validation functions for attrs.
"""

import numbers
from typing import Any

from attrs import define, field

from image_merger.exceptions import InvalidConstructionError

__all__ = ["check_range", "positive_int", "range_"]


def check_range(name: str, value: Any, minimum: int, maximum: int) -> None:
    """
    Raise :exc:`~image_merger.exceptions.InvalidConstructionError` unless
    ``value`` is an integer in the [minimum, maximum] range.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidConstructionError(
            f"'{name}' must be an integer, got {type(value).__name__}"
        )
    if not (minimum <= value <= maximum):
        raise InvalidConstructionError(
            f"'{name}' must be in range [{minimum}, {maximum}], got {value}"
        )


@define(repr=False, frozen=True)
class _RangeValidator:
    minimum: int = field()
    maximum: int = field()

    def __call__(self, inst: Any, attr: Any, value: Any) -> None:
        check_range(attr.name, value, self.minimum, self.maximum)

    def __repr__(self) -> str:
        return "<range_ validator with [{minimum!r}, {maximum!r}]>".format(
            minimum=self.minimum, maximum=self.maximum
        )


def range_(minimum: int, maximum: int) -> _RangeValidator:
    """
    A validator that raises a
    :exc:`~image_merger.exceptions.InvalidConstructionError` if the
    initializer is called with a value that is not an integer in the
    [minimum, maximum] range.
    """
    return _RangeValidator(minimum, maximum)


def positive_int(maximum: int = 2**31 - 1) -> _RangeValidator:
    """A :py:func:`range_` validator for integers in [1, maximum]."""
    return _RangeValidator(1, maximum)
