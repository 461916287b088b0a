"""
Fully-connected layer with chunked fork-join kernels.

This module defines `Dense`, a fully-connected layer whose forward pass,
backward delta computation and gradient-descent update are each executed as
one fork-join round over contiguous chunks of output units.

Parameter layout
----------------
Weights are stored flat and row-major. Row `j` holds the weights connecting
every input unit to output unit `j`, so the buffer has
`output_size * input_size` elements:

    input  (flat): [x0, x1, x2, x3]
    output (flat): [y0, y1]
    weight (flat): [y0~x0, y0~x1, y0~x2, y0~x3, y1~x0, y1~x1, y1~x2, y1~x3]
    bias   (flat): [y0, y1]

Parallel layout
---------------
The output index range is split into chunks of ceil(output_size / workers)
units. Chunk `i` of the weight buffer covers exactly the rows of chunk `i` of
the outputs (`chunk * input_size` elements), so every task writes to disjoint
output slots, weight rows and scratch rows.

Numerics
--------
- Forward and descend compute each element with a fixed operation order
  (bias first, then inputs in ascending index order), so their results are
  bit-identical for any worker count.
- Backward sums per-output contributions with a tree reduction whose shape
  depends on the worker count. Results agree across worker counts only up to
  floating-point reassociation error.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from typing_extensions import Self

from ...domain._activation import Activation
from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape, ShapeLike
from ...domain._tensor import ITensor
from ...domain.utils._weight_initialization import Fan
from .._activations import (
    activation_from_config,
    activation_to_config,
    get_activation,
)
from ..parallel._fork_join import (
    fork_join,
    partition,
    resolve_workers,
    row_block,
    row_slice,
)
from ..tensor._tensor import Tensor
from ..utils.weight_initializer import WeightInitializer

Number = Union[int, float]


class Dense:
    """
    Fully-connected layer: `y = activation(bias + W @ x)`.

    Parameters
    ----------
    input_shape : Shape | int | Sequence[int]
        Shape of the input tensor. Inputs are consumed flat, so any shape with
        `input_size` elements is allowed.
    output_shape : Shape | int | Sequence[int]
        Shape of the output tensor.
    activation : str | Activation, optional
        Activation applied to the output. Defaults to identity.
    weight : Sequence[float] | np.ndarray, optional
        Explicit row-major weights (`output_size * input_size` elements).
        Overrides `weight_initializer`.
    bias : Sequence[float] | np.ndarray, optional
        Explicit biases (`output_size` elements). Overrides
        `bias_initializer`.
    weight_initializer : str, optional
        Registered initializer name for weights. Defaults to "ones".
    bias_initializer : str, optional
        Registered initializer name for biases. Defaults to "ones".
    dtype : np.dtype, optional
        Floating-point element type of parameters and results.
    workers : Optional[int], optional
        Default worker count for every operation. None queries the CPU count
        on each call. Every operation also accepts a per-call override.
    seed : Optional[int], optional
        Seed for the random initializers. Layers built with the same seed and
        initializers start with identical parameters. None draws fresh
        entropy.

    Raises
    ------
    LengthMismatchError
        If an explicit `weight` or `bias` has the wrong number of elements.
    ValueError
        If an initializer or activation name is unknown, or `workers` is not
        a positive integer.

    Notes
    -----
    The default all-ones initialization is deterministic but symmetric: every
    output unit starts with identical weights. Use "xavier" or "kaiming" for
    training from scratch.
    """

    def __init__(
        self,
        input_shape: ShapeLike,
        output_shape: ShapeLike,
        activation: Union[str, Activation] = "identity",
        *,
        weight: Optional[Union[Sequence[Number], np.ndarray]] = None,
        bias: Optional[Union[Sequence[Number], np.ndarray]] = None,
        weight_initializer: str = "ones",
        bias_initializer: str = "ones",
        dtype: Any = np.float64,
        workers: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> None:
        self._input_shape = Shape.of(input_shape)
        self._output_shape = Shape.of(output_shape)
        self._activation = get_activation(activation)
        self._workers = None if workers is None else resolve_workers(workers)

        ilen = self._input_shape.size()
        olen = self._output_shape.size()

        self._weight = Tensor.zeros((olen, ilen), dtype=dtype)
        self._bias = Tensor.zeros((olen,), dtype=dtype)
        self._dtype = self._weight.dtype

        self._weight_initializer = weight_initializer
        self._bias_initializer = bias_initializer
        self._seed = seed

        fan = Fan.for_dense(ilen, olen)
        rng = np.random.default_rng(seed)

        # weights draw before biases so a seed pins both
        if weight is None:
            WeightInitializer(weight_initializer).fill(self._weight, fan, rng)
        else:
            self._weight.copy_from_numpy(weight)

        if bias is None:
            WeightInitializer(bias_initializer).fill(self._bias, fan, rng)
        else:
            self._bias.copy_from_numpy(bias)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def input_shape(self) -> Shape:
        return self._input_shape

    @property
    def output_shape(self) -> Shape:
        return self._output_shape

    @property
    def input_size(self) -> int:
        return self._input_shape.size()

    @property
    def output_size(self) -> int:
        return self._output_shape.size()

    @property
    def activation(self) -> Activation:
        return self._activation

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def workers(self) -> Optional[int]:
        return self._workers

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @property
    def weight(self) -> np.ndarray:
        """
        Return a copy of the flat, row-major weight buffer.

        Returns
        -------
        np.ndarray
            Array of `output_size * input_size` elements. Mutating it does
            not affect the layer.
        """
        return self._weight.flattened.copy()

    @property
    def bias(self) -> np.ndarray:
        """Return a copy of the bias buffer (`output_size` elements)."""
        return self._bias.flattened.copy()

    def parameters(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return copies of `(weight, bias)`."""
        return self.weight, self.bias

    def weight_row(self, j: int) -> np.ndarray:
        """Return a copy of the weights of output unit `j`."""
        return row_slice(self._weight.flattened, self.input_size, j).copy()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _resolve_workers(self, workers: Optional[int]) -> int:
        return resolve_workers(workers if workers is not None else self._workers)

    @staticmethod
    def _check_shape(role: str, tensor: ITensor, expected: Shape) -> None:
        if tensor.shape != expected:
            raise ShapeMismatchError(role, expected, tensor.shape)

    def _flat(self, tensor: ITensor) -> np.ndarray:
        return np.asarray(tensor.flattened, dtype=self._dtype)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def predict(self, input: ITensor, *, workers: Optional[int] = None) -> Tensor:
        """Shorthand for `forward_propagate(input, activate=True)`."""
        return self.forward_propagate(input, True, workers=workers)

    def forward_propagate(
        self, input: ITensor, activate: bool, *, workers: Optional[int] = None
    ) -> Tensor:
        """
        Compute the layer output for `input`.

        For every output unit `j`:

            out[j] = bias[j] + sum_k weight[j, k] * input[k]

        accumulated in ascending `k`, then passed through the activation if
        `activate` is True.

        Parameters
        ----------
        input : ITensor
            Tensor of shape `input_shape`.
        activate : bool
            Whether to apply the layer's activation to the result.
        workers : Optional[int], optional
            Worker count override for this call.

        Returns
        -------
        Tensor
            New tensor of shape `output_shape`.

        Raises
        ------
        ShapeMismatchError
            If `input.shape != input_shape`.
        """
        self._check_shape("input", input, self._input_shape)
        n_workers = self._resolve_workers(workers)

        ilen = self.input_size
        x = self._flat(input)
        w = self._weight.flattened
        b = self._bias.flattened

        output = Tensor.zeros(self._output_shape, dtype=self._dtype)
        out = output._writable_buffer()
        act = self._activation

        def task(start: int, stop: int) -> None:
            o_chk = out[start:stop]
            w_chk = row_block(w, ilen, start, stop).reshape(stop - start, ilen)
            # column 0 is the bias, column k + 1 is weight[j, k] * x[k]
            terms = np.empty((stop - start, ilen + 1), dtype=out.dtype)
            terms[:, 0] = b[start:stop]
            np.multiply(w_chk, x, out=terms[:, 1:])
            # accumulate adds strictly left to right along each row
            o_chk[...] = np.add.accumulate(terms, axis=1)[:, -1]
            if activate:
                o_chk[...] = act.apply(o_chk)

        fork_join(task, partition(self.output_size, n_workers), n_workers)
        return output

    def activate(self, output: ITensor, *, workers: Optional[int] = None) -> Tensor:
        """
        Apply the layer's activation elementwise.

        Parameters
        ----------
        output : ITensor
            Pre-activation tensor of shape `output_shape`. Not mutated.
        workers : Optional[int], optional
            Worker count override for this call.

        Returns
        -------
        Tensor
            New tensor of shape `output_shape`.

        Raises
        ------
        ShapeMismatchError
            If `output.shape != output_shape`.

        Notes
        -----
        Activation is not idempotent: calling this on an already activated
        tensor applies the function a second time.
        """
        self._check_shape("output", output, self._output_shape)
        n_workers = self._resolve_workers(workers)

        src = self._flat(output)
        result = Tensor.zeros(self._output_shape, dtype=self._dtype)
        dst = result._writable_buffer()
        act = self._activation

        def task(start: int, stop: int) -> None:
            dst[start:stop] = act.apply(src[start:stop])

        fork_join(task, partition(dst.size, n_workers), n_workers)
        return result

    def backpropagate_delta(
        self,
        delta: ITensor,
        a_prev: ITensor,
        prev_activation: Union[str, Activation],
        *,
        workers: Optional[int] = None,
    ) -> Tensor:
        """
        Compute the previous layer's delta.

        For every input unit `k`:

            prev_delta[k] = (sum_j weight[j, k] * delta[j])
                            * prev_activation.derivative(a_prev[k])

        The transposed product is computed in three fork-join rounds:

        1. Every output unit `j` writes `weight[j, :] * delta[j]` into its own
           row of a scratch buffer laid out like the weights.
        2. The scratch rows are summed by a tree reduction: each worker folds
           its own chunk of rows, then the per-worker partial rows are
           combined pairwise, level by level, until one row remains.
        3. The reduced row is multiplied elementwise by the derivative.

        Parameters
        ----------
        delta : ITensor
            Error signal of this layer, shape `output_shape`.
        a_prev : ITensor
            Stored pre-activation values of the previous layer, shape
            `input_shape`.
        prev_activation : str | Activation
            Activation of the previous layer.
        workers : Optional[int], optional
            Worker count override for this call.

        Returns
        -------
        Tensor
            New tensor of shape `input_shape`.

        Raises
        ------
        ShapeMismatchError
            If `delta` or `a_prev` has the wrong shape.

        Notes
        -----
        Step 2 reassociates floating-point additions differently for
        different worker counts. Compare results across worker counts with
        a tolerance of the order of `eps * output_size`.
        """
        self._check_shape("delta", delta, self._output_shape)
        self._check_shape("a_prev", a_prev, self._input_shape)
        prev_act = get_activation(prev_activation)
        n_workers = self._resolve_workers(workers)

        ilen = self.input_size
        olen = self.output_size
        d = self._flat(delta)
        a = self._flat(a_prev)
        w = self._weight.flattened

        prod = np.zeros(olen * ilen, dtype=self._dtype)
        chunks = partition(olen, n_workers)

        def scale_rows(start: int, stop: int) -> None:
            w_chk = row_block(w, ilen, start, stop).reshape(stop - start, ilen)
            p_chk = row_block(prod, ilen, start, stop).reshape(stop - start, ilen)
            np.multiply(w_chk, d[start:stop, None], out=p_chk)

        fork_join(scale_rows, chunks, n_workers)

        summed = self._reduce_rows(prod, ilen, chunks, n_workers)

        result = Tensor.zeros(self._input_shape, dtype=self._dtype)
        out = result._writable_buffer()

        def chain_rule(start: int, stop: int) -> None:
            out[start:stop] = summed[start:stop] * prev_act.derivative(a[start:stop])

        fork_join(chain_rule, partition(ilen, n_workers), n_workers)
        return result

    @staticmethod
    def _combine(left: np.ndarray, right: np.ndarray) -> None:
        np.add(left, right, out=left)
        right[...] = left

    def _reduce_rows(
        self,
        prod: np.ndarray,
        ilen: int,
        chunks: Sequence[Tuple[int, int]],
        n_workers: int,
    ) -> np.ndarray:
        """
        Sum the rows of `prod` in place and return the total row.

        The reduction runs in two phases. First every worker folds the rows
        of its own chunk into the chunk's first row. Then the chunk leaders
        are combined pairwise (leader `2i` with leader `2i + 1`), each level
        as one fork-join round, until only row 0 is left. Pairs within one
        level never share a row.
        """
        combine = self._combine

        def fold_chunk(start: int, stop: int) -> None:
            head = row_slice(prod, ilen, start)
            for r in range(start + 1, stop):
                combine(head, row_slice(prod, ilen, r))

        fork_join(fold_chunk, chunks, n_workers)

        leaders = [start for start, _ in chunks]
        while len(leaders) > 1:
            pairs = [
                (leaders[i], leaders[i + 1]) for i in range(0, len(leaders) - 1, 2)
            ]

            def combine_pairs(start: int, stop: int) -> None:
                for left, right in pairs[start:stop]:
                    combine(row_slice(prod, ilen, left), row_slice(prod, ilen, right))

            fork_join(combine_pairs, partition(len(pairs), n_workers), n_workers)
            leaders = leaders[::2]

        return row_slice(prod, ilen, leaders[0]).copy()

    def descend(
        self,
        learning_rate: Number,
        delta: ITensor,
        a_prev: ITensor,
        *,
        workers: Optional[int] = None,
    ) -> None:
        """
        Apply one gradient-descent step in place.

        Updates:

            weight[j, k] -= learning_rate * delta[j] * a_prev[k]
            bias[j]      -= learning_rate * delta[j]

        Parameters
        ----------
        learning_rate : float
            Step size. Coerced to the layer dtype.
        delta : ITensor
            Error signal of this layer, shape `output_shape`.
        a_prev : ITensor
            Activations of the previous layer, shape `input_shape`.
        workers : Optional[int], optional
            Worker count override for this call.

        Raises
        ------
        ShapeMismatchError
            If `delta` or `a_prev` has the wrong shape. Both shapes are
            validated before any parameter is touched.
        """
        self._check_shape("delta", delta, self._output_shape)
        self._check_shape("a_prev", a_prev, self._input_shape)
        n_workers = self._resolve_workers(workers)

        ilen = self.input_size
        olen = self.output_size
        rate = self._dtype.type(learning_rate)
        d = self._flat(delta)
        a = self._flat(a_prev)
        w = self._weight._writable_buffer()
        b = self._bias._writable_buffer()

        def update_rows(start: int, stop: int) -> None:
            w_chk = row_block(w, ilen, start, stop).reshape(stop - start, ilen)
            w_chk -= np.outer(rate * d[start:stop], a)

        def update_bias(start: int, stop: int) -> None:
            b[start:stop] -= rate * d[start:stop]

        chunks = partition(olen, n_workers)
        fork_join(update_rows, chunks, n_workers)
        fork_join(update_bias, chunks, n_workers)

    # ------------------------------------------------------------------
    # Config hooks
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration dictionary.

        Parameter values are not included; a layer rebuilt with
        `from_config` is freshly initialized. When the layer was built with a
        `seed`, the rebuilt layer starts from the same initial parameters.
        """
        return {
            "input_shape": list(self._input_shape.dims),
            "output_shape": list(self._output_shape.dims),
            "activation": activation_to_config(self._activation),
            "weight_initializer": self._weight_initializer,
            "bias_initializer": self._bias_initializer,
            "dtype": self._dtype.name,
            "workers": self._workers,
            "seed": self._seed,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        """
        Reconstruct a Dense layer from `get_config` output.

        Parameters
        ----------
        cfg : Dict[str, Any]
            Configuration dictionary.

        Returns
        -------
        Dense
            New layer with freshly initialized parameters.
        """
        act_node = cfg.get("activation", "identity")
        activation = (
            activation_from_config(act_node) if isinstance(act_node, dict) else act_node
        )
        return cls(
            input_shape=tuple(cfg["input_shape"]),
            output_shape=tuple(cfg["output_shape"]),
            activation=activation,
            weight_initializer=cfg.get("weight_initializer", "ones"),
            bias_initializer=cfg.get("bias_initializer", "ones"),
            dtype=np.dtype(cfg.get("dtype", "float64")),
            workers=cfg.get("workers", None),
            seed=cfg.get("seed", None),
        )

    def __repr__(self) -> str:
        return (
            f"Dense(input_shape={self._input_shape.dims}, "
            f"output_shape={self._output_shape.dims}, "
            f"activation={self._activation!r}, dtype={self._dtype.name})"
        )


__all__ = [
    Dense.__name__,
]
