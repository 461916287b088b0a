"""
Built-in parameter samplers.

===================  ==============================================
name                 values
===================  ==============================================
``zeros``            0
``ones``             1 (the `Dense` default)
``xavier``           N(0, std^2), std = sqrt(2 / (fan_in + fan_out))
``xavier_uniform``   U(-b, b), b = sqrt(6 / (fan_in + fan_out))
``kaiming``          N(0, std^2), std = sqrt(2 / fan_in)
``kaiming_uniform``  U(-b, b), b = sqrt(6 / fan_in)
===================  ==============================================

The all-ones default leaves every output unit with identical weights, which
keeps tests easy to reason about but never breaks symmetry during training.
"""

import math

import numpy as np

from ....domain.utils._weight_initialization import Fan
from ._registry import register_sampler


@register_sampler("zeros")
def zeros(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    return np.zeros(n)


@register_sampler("ones")
def ones(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    return np.ones(n)


@register_sampler("xavier")
def xavier(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    return rng.standard_normal(n) * math.sqrt(2.0 / (fan.fan_in + fan.fan_out))


@register_sampler("xavier_uniform")
def xavier_uniform(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    bound = math.sqrt(6.0 / (fan.fan_in + fan.fan_out))
    return rng.uniform(-bound, bound, size=n)


@register_sampler("kaiming")
def kaiming(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    """He normal; suited to ReLU-family activations."""
    return rng.standard_normal(n) * math.sqrt(2.0 / fan.fan_in)


@register_sampler("kaiming_uniform")
def kaiming_uniform(n: int, fan: Fan, rng: np.random.Generator) -> np.ndarray:
    bound = math.sqrt(6.0 / fan.fan_in)
    return rng.uniform(-bound, bound, size=n)
