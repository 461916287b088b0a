"""
Layer contract.

This module defines `ILayer`, the operation surface a trainable layer exposes
to a training-loop orchestrator.

The contract carries the previous layer's activation explicitly in
`backpropagate_delta`: computing the previous layer's error signal needs the
derivative of *that* layer's activation, which the current layer does not
own. `predict` is kept as a shorthand for an activated forward pass.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ._activation import Activation
from ._shape import Shape
from ._tensor import ITensor


@runtime_checkable
class ILayer(Protocol):
    """
    Trainable layer interface.

    Every operation validates argument shapes first and raises
    `ShapeMismatchError` without touching any layer state. The optional
    `workers` argument pins the degree of parallelism for one call.
    """

    @property
    def input_shape(self) -> Shape: ...

    @property
    def output_shape(self) -> Shape: ...

    def predict(self, input: ITensor, *, workers: Optional[int] = None) -> ITensor:
        """Return the activated output for `input`."""
        ...

    def forward_propagate(
        self, input: ITensor, activate: bool, *, workers: Optional[int] = None
    ) -> ITensor:
        """Compute `bias + W @ input`, optionally activated."""
        ...

    def activate(self, output: ITensor, *, workers: Optional[int] = None) -> ITensor:
        """Apply this layer's activation to a pre-activation output."""
        ...

    def backpropagate_delta(
        self,
        delta: ITensor,
        a_prev: ITensor,
        prev_activation: Activation,
        *,
        workers: Optional[int] = None,
    ) -> ITensor:
        """Compute the previous layer's delta."""
        ...

    def descend(
        self,
        learning_rate: float,
        delta: ITensor,
        a_prev: ITensor,
        *,
        workers: Optional[int] = None,
    ) -> None:
        """Apply one gradient-descent step to weight and bias in place."""
        ...
