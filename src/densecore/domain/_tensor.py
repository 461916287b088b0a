"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. Layers only need a shape and a flat numeric buffer, so the
protocol is intentionally small: anything that exposes these members can be
consumed by the layer kernels.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from ._shape import Shape


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` pairs a `Shape` with a flat numeric buffer whose length is
    always `shape.size()`.

    Notes
    -----
    - `flattened` must return the row-major flat buffer. Implementations are
      free to return a read-only view.
    - `to_numpy` must return a copy reshaped to `shape.dims`.
    """

    @property
    def shape(self) -> Shape:
        """
        Return the shape of the tensor.

        Returns
        -------
        Shape
            The tensor's shape.
        """
        ...

    @property
    def dtype(self) -> np.dtype:
        """Return the floating-point element type."""
        ...

    @property
    def flattened(self) -> np.ndarray:
        """
        Return the flat, row-major element buffer.

        Returns
        -------
        np.ndarray
            One-dimensional array of length `shape.size()`.
        """
        ...

    def to_numpy(self) -> np.ndarray:
        """
        Return a copy of the data reshaped to `shape.dims`.

        Returns
        -------
        np.ndarray
            Array copy with shape `shape.dims`.
        """
        ...

    def numel(self) -> int:
        """Return the number of elements."""
        ...
