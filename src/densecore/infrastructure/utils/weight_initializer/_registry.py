"""
Named parameter samplers and the `WeightInitializer` that applies them.

A sampler is registered under a string name and only draws values from the
layer's `Fan` and a NumPy `Generator`. `WeightInitializer.fill` writes those
values into a parameter tensor, so dtype casting and the element-count check
happen in one place for every sampler.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple, TypeVar

import numpy as np

from ....domain.utils._weight_initialization import Fan, Sampler
from ...tensor._tensor import Tensor

S = TypeVar("S", bound=Sampler)

_SAMPLERS: Dict[str, Sampler] = {}


def register_sampler(name: str) -> Callable[[S], S]:
    """
    Decorator that makes a sampler selectable by `name`.

    Raises
    ------
    ValueError
        If `name` is empty or already taken.
    """
    if not isinstance(name, str) or not name:
        raise ValueError("Sampler name must be a non-empty string")

    def deco(sampler: S) -> S:
        if name in _SAMPLERS:
            raise ValueError(f"Sampler already registered: {name!r}")
        _SAMPLERS[name] = sampler
        return sampler

    return deco


def available_initializers() -> Tuple[str, ...]:
    """Return registered initializer names (sorted)."""
    return tuple(sorted(_SAMPLERS))


class WeightInitializer:
    """
    Fill dense-layer parameters with a registered sampler.

    Parameters
    ----------
    name : str
        Registered sampler name, e.g. "ones" or "xavier".

    Raises
    ------
    ValueError
        If `name` is not registered.
    """

    __slots__ = ("_name", "_sampler")

    def __init__(self, name: str) -> None:
        sampler = _SAMPLERS.get(name)
        if sampler is None:
            raise ValueError(
                f"Unknown weight initializer {name!r}. "
                f"Available: {', '.join(available_initializers())}"
            )
        self._name = name
        self._sampler = sampler

    @property
    def name(self) -> str:
        return self._name

    def fill(
        self,
        tensor: Tensor,
        fan: Fan,
        rng: Optional[np.random.Generator] = None,
    ) -> Tensor:
        """
        Overwrite `tensor` in place with freshly sampled values.

        Parameters
        ----------
        tensor : Tensor
            Parameter buffer to fill. Its dtype is preserved.
        fan : Fan
            Fan pair of the layer that owns `tensor`.
        rng : np.random.Generator, optional
            Source of randomness. A fresh, unseeded generator is used when
            omitted.

        Returns
        -------
        Tensor
            `tensor` itself.

        Raises
        ------
        LengthMismatchError
            If the sampler returns the wrong number of values.
        """
        if rng is None:
            rng = np.random.default_rng()
        tensor.copy_from_numpy(self._sampler(tensor.numel(), fan, rng))
        return tensor

    def __repr__(self) -> str:
        return f"WeightInitializer({self._name!r})"
