"""
DenseCore: parallel compute kernels for fully-connected layers.

The package is split into two layers:

- `densecore.domain`: value objects (`Shape`), protocols (`ITensor`,
  `ILayer`), the `Activation` contract and error types.
- `densecore.infrastructure`: NumPy-backed implementations (`Tensor`,
  activation variants, weight initializers, fork-join helpers and `Dense`).
"""

from .domain._errors import (
    LengthMismatchError,
    ParallelExecutionError,
    ShapeMismatchError,
)
from .domain._shape import Shape
from .domain._activation import Activation
from .domain._layer import ILayer
from .domain._tensor import ITensor
from .infrastructure.tensor import Tensor
from .infrastructure._activations import (
    Identity,
    LeakyReLU,
    ReLU,
    Sigmoid,
    Tanh,
    available_activations,
    get_activation,
)
from .infrastructure.utils.weight_initializer import (
    WeightInitializer,
    available_initializers,
)
from .infrastructure.fully_connected import Dense

__version__ = "0.1.0"

__all__ = [
    "Activation",
    "Dense",
    "ILayer",
    "ITensor",
    "Identity",
    "LeakyReLU",
    "LengthMismatchError",
    "ParallelExecutionError",
    "ReLU",
    "Shape",
    "ShapeMismatchError",
    "Sigmoid",
    "Tanh",
    "Tensor",
    "WeightInitializer",
    "available_activations",
    "available_initializers",
    "get_activation",
]
