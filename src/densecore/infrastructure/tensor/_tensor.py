"""
Concrete Tensor implementation (NumPy backend).

This module provides `Tensor`, a shape paired with a flat, contiguous NumPy
buffer. It satisfies the domain-level `ITensor` protocol and is the value
type consumed and produced by layer kernels.

Design notes
------------
- The element type is a single floating-point dtype per tensor (float64 by
  default). Integer or complex dtypes are rejected.
- Constructors always copy their input, so a tensor never aliases a caller's
  buffer after construction.
- `flattened` exposes a read-only view. Kernels that need to write into a
  freshly allocated result tensor use `_writable_buffer`, which is private
  to the package.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np

from ...domain._errors import LengthMismatchError, ShapeMismatchError
from ...domain._shape import Shape, ShapeLike
from ...domain._tensor import ITensor

Number = Union[int, float]
DTypeLike = Union[np.dtype, type, str]


def _as_float_dtype(dtype: DTypeLike) -> np.dtype:
    """
    Normalize and validate a floating-point dtype.

    Raises
    ------
    TypeError
        If `dtype` is not a real floating-point type.
    """
    dt = np.dtype(dtype)
    if not np.issubdtype(dt, np.floating):
        raise TypeError(f"Tensor dtype must be a floating-point type, got {dt}")
    return dt


class Tensor(ITensor):
    """
    Shape plus flat numeric buffer.

    Parameters
    ----------
    shape : Shape | int | Sequence[int]
        Logical shape of the tensor.
    buffer : Sequence[Number] | np.ndarray
        Element values in row-major order. Multi-dimensional arrays are
        flattened. The number of elements must equal `shape.size()`.
    dtype : np.dtype, optional
        Floating-point element type. Defaults to float64.

    Raises
    ------
    LengthMismatchError
        If the buffer does not hold exactly `shape.size()` elements.
    TypeError
        If `dtype` is not a floating-point type.
    """

    def __init__(
        self,
        shape: ShapeLike,
        buffer: Union[Sequence[Number], np.ndarray],
        dtype: DTypeLike = np.float64,
    ) -> None:
        self._shape = Shape.of(shape)
        self._dtype = _as_float_dtype(dtype)

        flat = np.array(buffer, dtype=self._dtype, copy=True).reshape(-1)
        if flat.size != self._shape.size():
            raise LengthMismatchError(self._shape.size(), int(flat.size))
        self._data = np.ascontiguousarray(flat)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def zeros(cls, shape: ShapeLike, dtype: DTypeLike = np.float64) -> "Tensor":
        """
        Create a zero-filled tensor.

        Parameters
        ----------
        shape : Shape | int | Sequence[int]
            Tensor shape.
        dtype : np.dtype, optional
            Floating-point element type.

        Returns
        -------
        Tensor
            Tensor whose elements are all 0.
        """
        return cls.full(shape, 0.0, dtype=dtype)

    @classmethod
    def ones(cls, shape: ShapeLike, dtype: DTypeLike = np.float64) -> "Tensor":
        """Create a tensor with all elements set to 1."""
        return cls.full(shape, 1.0, dtype=dtype)

    @classmethod
    def full(
        cls, shape: ShapeLike, value: Number, dtype: DTypeLike = np.float64
    ) -> "Tensor":
        """Create a tensor with all elements set to `value`."""
        s = Shape.of(shape)
        dt = _as_float_dtype(dtype)
        return cls(s, np.full(s.size(), value, dtype=dt), dtype=dt)

    @classmethod
    def from_numpy(
        cls,
        arr: np.ndarray,
        shape: Optional[ShapeLike] = None,
        dtype: Optional[DTypeLike] = None,
    ) -> "Tensor":
        """
        Create a tensor from a NumPy array.

        Parameters
        ----------
        arr : np.ndarray
            Source array. Its data is copied.
        shape : Shape | Sequence[int], optional
            Target shape. Defaults to `arr.shape`.
        dtype : np.dtype, optional
            Target dtype. Defaults to `arr.dtype` when floating, else float64.

        Returns
        -------
        Tensor
            New tensor holding a copy of `arr`.
        """
        arr = np.asarray(arr)
        if dtype is None:
            dtype = arr.dtype if np.issubdtype(arr.dtype, np.floating) else np.float64
        if shape is None:
            shape = arr.shape
        return cls(shape, arr, dtype=dtype)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def flattened(self) -> np.ndarray:
        """
        Return a read-only view of the flat buffer.

        Returns
        -------
        np.ndarray
            One-dimensional, non-writeable view of length `numel()`.
        """
        view = self._data.view()
        view.flags.writeable = False
        return view

    def _writable_buffer(self) -> np.ndarray:
        return self._data

    def numel(self) -> int:
        return int(self._data.size)

    def to_numpy(self) -> np.ndarray:
        return self._data.reshape(self._shape.dims).copy()

    def tolist(self) -> list:
        return self._data.tolist()

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite this tensor's elements in place.

        Parameters
        ----------
        arr : array-like
            Values to copy. Flattened in row-major order.

        Raises
        ------
        LengthMismatchError
            If `arr` does not hold exactly `numel()` elements.
        """
        flat = np.asarray(arr, dtype=self._dtype).reshape(-1)
        if flat.size != self._data.size:
            raise LengthMismatchError(int(self._data.size), int(flat.size))
        self._data[...] = flat

    def clone(self) -> "Tensor":
        return Tensor(self._shape, self._data, dtype=self._dtype)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------
    def allclose(
        self, other: "Tensor", rtol: float = 1e-05, atol: float = 1e-08
    ) -> bool:
        """
        Return True if both tensors have the same shape and close elements.

        Raises
        ------
        ShapeMismatchError
            If the shapes differ.
        """
        if self._shape != other.shape:
            raise ShapeMismatchError("other", self._shape, other.shape)
        return bool(np.allclose(self._data, other.flattened, rtol=rtol, atol=atol))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        return self._shape == other._shape and bool(
            np.array_equal(self._data, other._data)
        )

    __hash__ = None  # mutable container

    def __len__(self) -> int:
        return self._shape[0]

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self._shape.dims}, dtype={self._dtype.name}, "
            f"data={np.array2string(self._data, threshold=16)})"
        )
