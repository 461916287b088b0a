"""
Fan geometry and the sampler contract for parameter initialization.

A `Dense` layer owns a weight matrix laid out `(output_size, input_size)` and
a bias vector of `output_size` elements. Both buffers are filled from the
same `Fan`: each output unit receives `input_size` connections (fan-in) and
each input unit feeds `output_size` units (fan-out).

Samplers only draw values. Writing them into a tensor, casting to the layer
dtype and checking the element count belong to the infrastructure
dispatcher.
"""

from __future__ import annotations

from typing import NamedTuple, Protocol

import numpy as np


class Fan(NamedTuple):
    """Connection counts used to scale random initializers."""

    fan_in: int
    fan_out: int

    @classmethod
    def for_dense(cls, input_size: int, output_size: int) -> "Fan":
        """
        Return the fan pair of a dense layer.

        Raises
        ------
        ValueError
            If either size is not positive.
        """
        if input_size <= 0 or output_size <= 0:
            raise ValueError(
                "Layer sizes must be positive, "
                f"got input_size={input_size}, output_size={output_size}"
            )
        return cls(fan_in=int(input_size), fan_out=int(output_size))


class Sampler(Protocol):
    """
    Draw `n` initial parameter values.

    Implementations return a 1-D array of `n` elements. The array dtype does
    not matter; the caller casts it to the parameter dtype.
    """

    def __call__(self, n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
        ...
