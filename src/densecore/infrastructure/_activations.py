"""
Pointwise activation variants.

This module provides the closed set of activation functions a `Dense` layer
can use, each implemented as a subclass of the domain `Activation` contract:

- `Identity`:   f(x) = x,                  f'(x) = 1
- `Sigmoid`:    f(x) = 1 / (1 + exp(-x)),  f'(x) = f(x) * (1 - f(x))
- `ReLU`:       f(x) = max(0, x),          f'(x) = 1 if x > 0 else 0
- `Tanh`:       f(x) = tanh(x),            f'(x) = 1 - tanh(x)^2
- `LeakyReLU`:  f(x) = x if x > 0 else a*x, f'(x) = 1 if x > 0 else a

Every method accepts a scalar or a NumPy array and evaluates elementwise.
Scalar inputs produce NumPy scalars (or 0-d arrays), array inputs produce
arrays of the same shape and dtype.

Registry
--------
Variants are registered by name with `register_activation`, so layers can be
configured with a string (e.g., ``Dense(..., activation="relu")``) and
configuration dictionaries can be turned back into instances.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Type, TypeVar, Union

import numpy as np
from typing_extensions import Self

from ..domain._activation import Activation, ArrayOrScalar

A = TypeVar("A", bound=Type[Activation])

_ACTIVATION_REGISTRY: Dict[str, Type[Activation]] = {}


def register_activation(name: str) -> Callable[[A], A]:
    """
    Decorator to register an Activation subclass under `name`.

    Parameters
    ----------
    name : str
        Registry key used by `get_activation` and config round-trips.

    Raises
    ------
    ValueError
        If `name` is empty or already registered.
    """
    if not isinstance(name, str) or not name:
        raise ValueError("Activation name must be a non-empty string")

    def deco(cls: A) -> A:
        if name in _ACTIVATION_REGISTRY:
            raise ValueError(f"Activation already registered: {name!r}")
        _ACTIVATION_REGISTRY[name] = cls
        cls.name = name
        return cls

    return deco


def available_activations() -> tuple[str, ...]:
    """Return registered activation names (sorted)."""
    return tuple(sorted(_ACTIVATION_REGISTRY))


def get_activation(
    activation: Union[str, Activation], **kwargs: Any
) -> Activation:
    """
    Resolve an activation from a registry name or pass an instance through.

    Parameters
    ----------
    activation : str | Activation
        Registered name (e.g., "sigmoid") or an existing instance.
    **kwargs
        Constructor arguments, only used when `activation` is a name.

    Returns
    -------
    Activation
        The resolved activation instance.

    Raises
    ------
    ValueError
        If `activation` is an unknown name.
    TypeError
        If `activation` is neither a string nor an `Activation`.
    """
    if isinstance(activation, Activation):
        return activation
    if not isinstance(activation, str):
        raise TypeError(
            f"activation must be a name or an Activation, got {type(activation)!r}"
        )
    try:
        cls = _ACTIVATION_REGISTRY[activation]
    except KeyError as e:
        available = ", ".join(available_activations()) or "<none>"
        raise ValueError(
            f"Unsupported activation name: {activation!r}. Available: {available}"
        ) from e
    return cls(**kwargs)


def activation_to_config(activation: Activation) -> Dict[str, Any]:
    """
    Convert an activation into a JSON-serializable node.

    Node format
    -----------
    {"type": "leaky_relu", "config": {"alpha": 0.01}}
    """
    return {"type": activation.name, "config": activation.get_config()}


def activation_from_config(node: Dict[str, Any]) -> Activation:
    """Rebuild an activation from a node produced by `activation_to_config`."""
    return get_activation(str(node["type"]), **(node.get("config") or {}))


class _StatelessActivation(Activation):
    """Base for variants without hyperparameters."""

    name: str = ""

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        return cls()


@register_activation("identity")
class Identity(_StatelessActivation):
    """
    Identity activation (no-op).

    Used for linear output layers; `derivative` is constant 1.
    """

    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.positive(x)

    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.ones_like(x)


@register_activation("sigmoid")
class Sigmoid(_StatelessActivation):
    """
    Logistic sigmoid activation.

    Implements:

        sigmoid(x) = 1 / (1 + exp(-x))

    Derivative:

        d(sigmoid)/dx = sigmoid(x) * (1 - sigmoid(x))

    Notes
    -----
    No overflow guarding is done; `exp(-x)` may overflow to inf for very
    negative `x`, which still yields the correct limit 0.
    """

    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return 1 / (1 + np.exp(np.negative(x)))

    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        s = self.apply(x)
        return s * (1 - s)


@register_activation("relu")
class ReLU(_StatelessActivation):
    """
    Rectified linear unit.

    relu(x) = max(0, x); the derivative is 1 where x > 0 and 0 elsewhere
    (including x == 0).
    """

    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.where(np.greater(x, 0), x, np.zeros_like(x))

    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.where(np.greater(x, 0), np.ones_like(x), np.zeros_like(x))


@register_activation("tanh")
class Tanh(_StatelessActivation):
    """Hyperbolic tangent; derivative is 1 - tanh(x)^2."""

    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.tanh(x)

    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        t = np.tanh(x)
        return 1 - t * t


@register_activation("leaky_relu")
class LeakyReLU(Activation):
    """
    Leaky ReLU activation.

    Implements:

        f(x) = x               if x > 0
             = alpha * x       otherwise

    Parameters
    ----------
    alpha : float, default=0.01
        Slope for non-positive inputs.
    """

    name: str = ""

    def __init__(self, alpha: float = 0.01) -> None:
        self._alpha = float(alpha)

    @property
    def alpha(self) -> float:
        return self._alpha

    def apply(self, x: ArrayOrScalar) -> ArrayOrScalar:
        return np.where(np.greater(x, 0), x, np.multiply(x, self._alpha))

    def derivative(self, x: ArrayOrScalar) -> ArrayOrScalar:
        ones = np.ones_like(x)
        return np.where(np.greater(x, 0), ones, ones * self._alpha)

    def get_config(self) -> Dict[str, Any]:
        return {"alpha": self._alpha}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        return cls(**cfg)


__all__ = [
    Identity.__name__,
    Sigmoid.__name__,
    ReLU.__name__,
    Tanh.__name__,
    LeakyReLU.__name__,
    "register_activation",
    "available_activations",
    "get_activation",
    "activation_to_config",
    "activation_from_config",
]
