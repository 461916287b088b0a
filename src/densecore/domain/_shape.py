"""
Shape value object.

A `Shape` is an ordered, immutable sequence of positive dimension sizes.
It is a plain value: two shapes are equal when their dimensions are equal,
and copies can be made freely.

Notes
-----
- Empty shapes are rejected. Every tensor in this package holds at least one
  element, so `size()` is always >= 1.
- Comparison against a plain tuple of ints is accepted to keep call sites
  terse (e.g., `t.shape == (2, 3)`).
"""

from __future__ import annotations

import numbers
from typing import Any, Iterator, Sequence, Tuple, Union

ShapeLike = Union["Shape", int, Sequence[int]]


class Shape:
    """
    Immutable tuple of positive dimension sizes.

    Parameters
    ----------
    *dims : int or Sequence[int]
        Either the dimensions as separate positional integers
        (``Shape(2, 3)``) or a single sequence (``Shape([2, 3])``). Any
        `numbers.Integral` is accepted, so NumPy integer scalars work too.

    Raises
    ------
    ValueError
        If no dimensions are given or any dimension is not a positive integer.
    """

    __slots__ = ("_dims",)

    def __init__(self, *dims: Any) -> None:
        if len(dims) == 1 and not isinstance(dims[0], numbers.Integral):
            dims = tuple(dims[0])

        if len(dims) == 0:
            raise ValueError("Shape must have at least one dimension")

        normalized = []
        for d in dims:
            # bool is an int subclass; a dimension of True is a bug
            if isinstance(d, bool) or not isinstance(d, numbers.Integral) or d <= 0:
                raise ValueError(
                    f"Shape dimensions must be positive integers, got {dims!r}"
                )
            normalized.append(int(d))

        self._dims: Tuple[int, ...] = tuple(normalized)

    @classmethod
    def of(cls, shape: ShapeLike) -> "Shape":
        """
        Coerce a shape-like value into a `Shape`.

        Parameters
        ----------
        shape : Shape | int | Sequence[int]
            An existing shape (returned as-is), a single dimension, or a
            sequence of dimensions.

        Returns
        -------
        Shape
            The normalized shape.
        """
        if isinstance(shape, Shape):
            return shape
        if isinstance(shape, numbers.Integral):
            return cls(shape)
        return cls(tuple(shape))

    @property
    def dims(self) -> Tuple[int, ...]:
        """Return the dimensions as a tuple."""
        return self._dims

    @property
    def ndim(self) -> int:
        """Return the number of dimensions."""
        return len(self._dims)

    def size(self) -> int:
        """
        Return the number of elements described by this shape.

        Returns
        -------
        int
            Product of all dimensions.
        """
        n = 1
        for d in self._dims:
            n *= d
        return n

    def clone(self) -> "Shape":
        return Shape(self._dims)

    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    def __getitem__(self, index: int) -> int:
        return self._dims[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Shape):
            return self._dims == other._dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        if eq is NotImplemented:
            return NotImplemented
        return not eq

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"Shape{self._dims!r}"
