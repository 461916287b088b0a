"""
Shape-, length- and execution-related exceptions for DenseCore.

This module defines the error types raised by tensors and layers. Shape and
length mismatches are programming errors: they are raised eagerly, before
any state is touched, and are never retried.

`ParallelExecutionError` is different in kind. It signals that a worker task
inside a fork-join round failed, which means the chunk partitioning contract
was violated. It derives from `RuntimeError` (not `ValueError`) so callers
handling bad input do not accidentally swallow it.
"""

from __future__ import annotations

from typing import Any


class ShapeMismatchError(ValueError):
    """
    Raised when a tensor argument does not have the shape a layer expects.

    Attributes
    ----------
    role : str
        Name of the offending argument (e.g., "input", "delta", "a_prev").
    expected : Any
        The shape the layer expected for that role.
    actual : Any
        The shape that was actually provided.
    """

    def __init__(self, role: str, expected: Any, actual: Any) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        role : str
            Name of the argument whose shape is wrong.
        expected : Any
            Expected shape.
        actual : Any
            Provided shape.
        """
        super().__init__(
            f"Shape mismatch for {role}: expected {expected}, got {actual}."
        )
        self.role = role
        self.expected = expected
        self.actual = actual


class LengthMismatchError(ValueError):
    """
    Raised when a flat buffer length does not match the size of its shape.

    Attributes
    ----------
    expected : int
        Number of elements implied by the shape.
    actual : int
        Number of elements in the provided buffer.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Buffer length mismatch: shape requires {expected} elements, "
            f"got {actual}."
        )
        self.expected = expected
        self.actual = actual


class ParallelExecutionError(RuntimeError):
    """
    Raised when a worker task of a fork-join round fails.

    The original exception is attached as `__cause__`. This error is treated
    as fatal: the operation that raised it may have left its scratch buffers
    in an undefined state.
    """
