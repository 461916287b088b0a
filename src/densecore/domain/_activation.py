"""
Activation contract.

This module defines the abstract base class shared by every activation
variant. An activation is a stateless pointwise function together with its
derivative. Both methods accept either a Python scalar or a NumPy array and
must operate elementwise, so the same object can be used inside scalar
reference code and inside vectorized layer kernels.

The concrete variants (identity, sigmoid, ReLU, ...) live in the
infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Union

import numpy as np

Scalar = Union[int, float, np.floating]
ArrayOrScalar = Union[Scalar, np.ndarray]


class Activation(ABC):
    """
    Pointwise activation function with derivative.

    Notes
    -----
    - `derivative(x)` is evaluated at the *pre-activation* value `x`, i.e. it
      returns f'(x), not f'(f^-1(y)).
    - Instances are immutable. Two activations compare equal when they are of
      the same type and carry the same configuration.
    """

    @abstractmethod
    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        """
        Evaluate the activation elementwise.

        Parameters
        ----------
        x : scalar or np.ndarray
            Pre-activation value(s).

        Returns
        -------
        scalar or np.ndarray
            Activated value(s), same shape as `x`.
        """
        ...

    @abstractmethod
    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        """
        Evaluate the activation derivative elementwise.

        Parameters
        ----------
        x : scalar or np.ndarray
            Pre-activation value(s).

        Returns
        -------
        scalar or np.ndarray
            f'(x), same shape as `x`.
        """
        ...

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration dictionary.

        Returns
        -------
        Dict[str, Any]
            Constructor keyword arguments. Empty for stateless variants.
        """
        return {}

    def __call__(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return self.apply(x)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Activation):
            return NotImplemented
        return type(self) is type(other) and self.get_config() == other.get_config()

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple(sorted(self.get_config().items()))))

    def __repr__(self) -> str:
        cfg = ", ".join(f"{k}={v!r}" for k, v in self.get_config().items())
        return f"{type(self).__name__}({cfg})"
