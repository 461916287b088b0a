"""
Weight initialization public API.

Importing this package registers the built-in samplers as a side effect.
"""

from . import _samplers  # noqa: F401
from ._registry import WeightInitializer, available_initializers, register_sampler

__all__ = [
    WeightInitializer.__name__,
    available_initializers.__name__,
    register_sampler.__name__,
]
