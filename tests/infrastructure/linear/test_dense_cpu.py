import unittest

import numpy as np

from densecore.domain._errors import LengthMismatchError, ShapeMismatchError
from densecore.domain._layer import ILayer
from densecore.domain._shape import Shape
from densecore.infrastructure._activations import Identity, ReLU, Sigmoid
from densecore.infrastructure.fully_connected._dense import Dense
from densecore.infrastructure.tensor._tensor import Tensor

WEIGHT = [
    2.0, 1.0, -1.0, 3.0, 2.0, 1.0,
    1.0, 0.0, 0.0, -2.0, 1.0, 0.0,
]
BIAS = [-5.0, -1.0]


def _make_layer(activation="identity", workers=None) -> Dense:
    return Dense(
        Shape(2, 3),
        Shape(2),
        activation,
        weight=WEIGHT,
        bias=BIAS,
        workers=workers,
    )


def _a_prev() -> Tensor:
    return Tensor(Shape(2, 3), [1.0, 7.0, 8.0, -2.0, 3.0, 5.0])


class TestDenseConstruction(unittest.TestCase):
    def test_default_parameters_are_ones(self):
        layer = Dense((2, 3), 4)
        self.assertEqual(layer.input_size, 6)
        self.assertEqual(layer.output_size, 4)
        np.testing.assert_array_equal(layer.weight, np.ones(24))
        np.testing.assert_array_equal(layer.bias, np.ones(4))

    def test_explicit_parameters(self):
        layer = _make_layer()
        np.testing.assert_array_equal(layer.weight, WEIGHT)
        np.testing.assert_array_equal(layer.bias, BIAS)
        np.testing.assert_array_equal(layer.weight_row(1), WEIGHT[6:])

    def test_explicit_parameter_lengths_validated(self):
        with self.assertRaises(LengthMismatchError):
            Dense((2, 3), 2, weight=WEIGHT[:-1])
        with self.assertRaises(LengthMismatchError):
            Dense((2, 3), 2, bias=[1.0, 2.0, 3.0])

    def test_random_initializer_by_name(self):
        layer = Dense(
            16, 8, weight_initializer="xavier", bias_initializer="zeros", seed=1
        )
        self.assertEqual(layer.weight.shape, (128,))
        self.assertGreater(len(np.unique(layer.weight)), 1)
        np.testing.assert_array_equal(layer.bias, np.zeros(8))

    def test_seed_pins_initial_parameters(self):
        kwargs = dict(weight_initializer="kaiming", bias_initializer="xavier_uniform")
        a = Dense(5, 3, seed=42, **kwargs)
        b = Dense(5, 3, seed=42, **kwargs)
        c = Dense(5, 3, seed=43, **kwargs)
        np.testing.assert_array_equal(a.weight, b.weight)
        np.testing.assert_array_equal(a.bias, b.bias)
        self.assertFalse(np.array_equal(a.weight, c.weight))
        self.assertEqual(a.seed, 42)

    def test_random_initializers_scale_with_layer_fans(self):
        layer = Dense(
            400,
            300,
            weight_initializer="kaiming_uniform",
            bias_initializer="xavier_uniform",
            seed=0,
        )
        self.assertLessEqual(np.abs(layer.weight).max(), np.sqrt(6.0 / 400))
        self.assertLessEqual(np.abs(layer.bias).max(), np.sqrt(6.0 / 700))

    def test_numpy_integer_sizes_accepted(self):
        layer = Dense(np.int64(4), np.int32(2))
        self.assertEqual(layer.input_shape, (4,))
        self.assertEqual(layer.output_size, 2)
        out = layer.forward_propagate(Tensor.ones(4), False, workers=2)
        np.testing.assert_array_equal(out.flattened, [5.0, 5.0])

    def test_unknown_initializer_rejected(self):
        with self.assertRaises(ValueError):
            Dense(2, 2, weight_initializer="___nope___")

    def test_activation_by_name_or_instance(self):
        self.assertEqual(Dense(2, 2, "sigmoid").activation, Sigmoid())
        act = ReLU()
        self.assertIs(Dense(2, 2, act).activation, act)

    def test_invalid_workers_rejected(self):
        with self.assertRaises(ValueError):
            Dense(2, 2, workers=0)

    def test_parameter_accessors_return_copies(self):
        layer = _make_layer()
        w, b = layer.parameters()
        w[:] = 0.0
        b[:] = 0.0
        layer.weight[0] = 123.0
        np.testing.assert_array_equal(layer.weight, WEIGHT)
        np.testing.assert_array_equal(layer.bias, BIAS)

    def test_float32_layer(self):
        layer = Dense(3, 2, dtype=np.float32)
        out = layer.forward_propagate(Tensor((3,), [1, 2, 3]), True)
        self.assertEqual(out.dtype, np.float32)
        np.testing.assert_array_equal(out.flattened, [7.0, 7.0])

    def test_satisfies_layer_protocol(self):
        self.assertIsInstance(_make_layer(), ILayer)


class TestDenseForward(unittest.TestCase):
    def test_forward_literal_case(self):
        layer = _make_layer()
        out = layer.forward_propagate(_a_prev(), True)
        self.assertEqual(out, Tensor(Shape(2), [1.0, 7.0]))

    def test_forward_without_activation_returns_pre_activation(self):
        layer = _make_layer("relu")
        x = Tensor(Shape(2, 3), [0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        pre = layer.forward_propagate(x, False)
        post = layer.forward_propagate(x, True)
        np.testing.assert_array_equal(pre.flattened, BIAS)
        np.testing.assert_array_equal(post.flattened, [0.0, 0.0])

    def test_predict_is_activated_forward(self):
        layer = _make_layer("sigmoid")
        x = _a_prev()
        self.assertEqual(layer.predict(x), layer.forward_propagate(x, True))

    def test_forward_matches_numpy_reference(self):
        rng = np.random.default_rng(0)
        w = rng.normal(size=(5, 7))
        b = rng.normal(size=5)
        x = rng.normal(size=7)
        layer = Dense(7, 5, "tanh", weight=w, bias=b)
        out = layer.forward_propagate(Tensor((7,), x), True, workers=3)
        np.testing.assert_allclose(
            out.flattened, np.tanh(w @ x + b), rtol=1e-12, atol=1e-12
        )

    def test_forward_sums_bias_then_inputs_in_ascending_order(self):
        rng = np.random.default_rng(5)
        w = rng.normal(size=(6, 40)) * 10.0 ** rng.integers(-8, 8, size=(6, 40))
        b = rng.normal(size=6)
        x = rng.normal(size=40)

        expected = b.copy()
        for k in range(40):
            expected = expected + w[:, k] * x[k]

        layer = Dense(40, 6, weight=w, bias=b)
        for workers in (1, 2, 4):
            with self.subTest(workers=workers):
                out = layer.forward_propagate(Tensor((40,), x), False, workers=workers)
                np.testing.assert_array_equal(out.flattened, expected)

    def test_forward_does_not_mutate_input_or_parameters(self):
        layer = _make_layer()
        x = _a_prev()
        layer.forward_propagate(x, True)
        self.assertEqual(x, _a_prev())
        np.testing.assert_array_equal(layer.weight, WEIGHT)


class TestDenseActivate(unittest.TestCase):
    def test_activate_literal_case(self):
        layer = Dense(
            Shape(2, 3),
            Shape(3, 4),
            Sigmoid(),
            weight=np.zeros(72),
            bias=np.zeros(12),
        )
        values = np.arange(-3.0, 9.0)
        output = Tensor(Shape(3, 4), values)
        expected = Tensor(Shape(3, 4), [Sigmoid().apply(v) for v in values])

        result = layer.activate(output)
        np.testing.assert_allclose(result.flattened, expected.flattened, rtol=1e-14)
        self.assertEqual(result.shape, Shape(3, 4))

    def test_activate_does_not_mutate_input(self):
        layer = _make_layer("relu")
        pre = Tensor(Shape(2), [-1.0, 2.0])
        post = layer.activate(pre)
        self.assertEqual(pre, Tensor(Shape(2), [-1.0, 2.0]))
        self.assertEqual(post, Tensor(Shape(2), [0.0, 2.0]))

    def test_activate_equals_forward_with_flag(self):
        layer = _make_layer("sigmoid")
        x = _a_prev()
        pre = layer.forward_propagate(x, False)
        self.assertEqual(layer.activate(pre), layer.forward_propagate(x, True))

    def test_activate_twice_is_well_defined_but_not_idempotent(self):
        layer = _make_layer("sigmoid")
        pre = Tensor(Shape(2), [0.0, 2.0])
        once = layer.activate(pre)
        twice = layer.activate(once)
        self.assertEqual(twice.shape, once.shape)
        self.assertFalse(np.allclose(once.flattened, twice.flattened))
        np.testing.assert_allclose(twice.flattened, Sigmoid().apply(once.flattened))


class TestDenseBackpropagate(unittest.TestCase):
    def test_backpropagate_literal_case(self):
        layer = _make_layer()
        delta = Tensor(Shape(2), [1.0, 7.0])
        answer = Tensor(Shape(2, 3), [9.0, 1.0, -1.0, 0.0, 9.0, 1.0])
        self.assertEqual(layer.backpropagate_delta(delta, _a_prev(), ReLU()), answer)

    def test_backpropagate_accepts_activation_name(self):
        layer = _make_layer()
        delta = Tensor(Shape(2), [1.0, 7.0])
        self.assertEqual(
            layer.backpropagate_delta(delta, _a_prev(), "relu"),
            layer.backpropagate_delta(delta, _a_prev(), ReLU()),
        )

    def test_identity_prev_activation_gives_transposed_product(self):
        layer = _make_layer()
        delta = Tensor(Shape(2), [1.0, 7.0])
        out = layer.backpropagate_delta(delta, _a_prev(), Identity())
        w = np.array(WEIGHT).reshape(2, 6)
        np.testing.assert_array_equal(out.flattened, w.T @ np.array([1.0, 7.0]))

    def test_backpropagate_matches_numpy_reference(self):
        rng = np.random.default_rng(1)
        w = rng.normal(size=(9, 4))
        d = rng.normal(size=9)
        a = rng.normal(size=4)
        layer = Dense(4, 9, weight=w, bias=np.zeros(9))
        out = layer.backpropagate_delta(
            Tensor((9,), d), Tensor((4,), a), Sigmoid(), workers=4
        )
        s = 1.0 / (1.0 + np.exp(-a))
        np.testing.assert_allclose(
            out.flattened, (w.T @ d) * s * (1 - s), rtol=1e-12, atol=1e-12
        )

    def test_backpropagate_does_not_mutate_parameters(self):
        layer = _make_layer()
        layer.backpropagate_delta(Tensor(Shape(2), [1.0, 7.0]), _a_prev(), ReLU())
        np.testing.assert_array_equal(layer.weight, WEIGHT)
        np.testing.assert_array_equal(layer.bias, BIAS)


class TestDenseDescend(unittest.TestCase):
    def test_descend_literal_case(self):
        layer = _make_layer()
        delta = Tensor(Shape(2), [1.0, 7.0])
        self.assertIsNone(layer.descend(0.1, delta, _a_prev()))

        w_ans = [
            2.0 - 0.1, 1.0 - 0.7, -1.0 - 0.8, 3.0 + 0.2, 2.0 - 0.3, 1.0 - 0.5,
            1.0 - 0.7, 0.0 - 4.9, 0.0 - 5.6, -2.0 + 1.4, 1.0 - 2.1, 0.0 - 3.5,
        ]
        b_ans = [-5.0 - 0.1, -1.0 - 0.7]
        np.testing.assert_allclose(layer.weight, w_ans, rtol=0, atol=1e-8)
        np.testing.assert_allclose(layer.bias, b_ans, rtol=0, atol=1e-8)

    def test_descend_matches_outer_product(self):
        rng = np.random.default_rng(2)
        w = rng.normal(size=(6, 5))
        b = rng.normal(size=6)
        d = rng.normal(size=6)
        a = rng.normal(size=5)
        layer = Dense(5, 6, weight=w, bias=b)
        layer.descend(0.05, Tensor((6,), d), Tensor((5,), a), workers=4)
        np.testing.assert_allclose(
            layer.weight, (w - 0.05 * np.outer(d, a)).ravel(), rtol=1e-12
        )
        np.testing.assert_allclose(layer.bias, b - 0.05 * d, rtol=1e-12)

    def test_zero_rate_is_noop(self):
        layer = _make_layer()
        layer.descend(0.0, Tensor(Shape(2), [1.0, 7.0]), _a_prev())
        np.testing.assert_array_equal(layer.weight, WEIGHT)
        np.testing.assert_array_equal(layer.bias, BIAS)


class TestDenseShapeEnforcement(unittest.TestCase):
    def setUp(self):
        self.layer = _make_layer()
        self.good_delta = Tensor(Shape(2), [1.0, 7.0])
        self.bad_delta = Tensor(Shape(3), [1.0, 7.0, 0.0])
        # same size as the input shape, different dims
        self.bad_a_prev = Tensor(Shape(3, 2), [1.0, 7.0, 8.0, -2.0, 3.0, 5.0])

    def _assert_unmutated(self):
        np.testing.assert_array_equal(self.layer.weight, WEIGHT)
        np.testing.assert_array_equal(self.layer.bias, BIAS)

    def test_forward_rejects_wrong_input_shape(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            self.layer.forward_propagate(self.bad_a_prev, True)
        self.assertEqual(ctx.exception.role, "input")
        self.assertEqual(ctx.exception.expected, Shape(2, 3))
        self.assertEqual(ctx.exception.actual, Shape(3, 2))
        self._assert_unmutated()

    def test_activate_rejects_wrong_output_shape(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            self.layer.activate(self.bad_delta)
        self.assertEqual(ctx.exception.role, "output")

    def test_backpropagate_rejects_wrong_delta_shape(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            self.layer.backpropagate_delta(self.bad_delta, _a_prev(), ReLU())
        self.assertEqual(ctx.exception.role, "delta")

    def test_backpropagate_rejects_wrong_a_prev_shape(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            self.layer.backpropagate_delta(self.good_delta, self.bad_a_prev, ReLU())
        self.assertEqual(ctx.exception.role, "a_prev")

    def test_descend_rejects_wrong_delta_without_partial_update(self):
        with self.assertRaises(ShapeMismatchError):
            self.layer.descend(0.1, self.bad_delta, _a_prev())
        self._assert_unmutated()

    def test_descend_rejects_wrong_a_prev_without_partial_update(self):
        # delta is valid, so a late check would already have touched weights
        with self.assertRaises(ShapeMismatchError):
            self.layer.descend(0.1, self.good_delta, self.bad_a_prev)
        self._assert_unmutated()

    def test_shape_mismatch_is_value_error(self):
        with self.assertRaises(ValueError):
            self.layer.forward_propagate(Tensor.zeros(6), True)


class TestDenseConfig(unittest.TestCase):
    def test_get_config(self):
        layer = Dense((2, 3), 4, "leaky_relu", weight_initializer="xavier", workers=2)
        cfg = layer.get_config()
        self.assertEqual(cfg["input_shape"], [2, 3])
        self.assertEqual(cfg["output_shape"], [4])
        self.assertEqual(
            cfg["activation"], {"type": "leaky_relu", "config": {"alpha": 0.01}}
        )
        self.assertEqual(cfg["weight_initializer"], "xavier")
        self.assertEqual(cfg["bias_initializer"], "ones")
        self.assertEqual(cfg["dtype"], "float64")
        self.assertEqual(cfg["workers"], 2)
        self.assertIsNone(cfg["seed"])

    def test_from_config_with_seed_reproduces_parameters(self):
        layer = Dense(6, 3, weight_initializer="xavier", seed=11)
        rebuilt = Dense.from_config(layer.get_config())
        self.assertEqual(rebuilt.seed, 11)
        np.testing.assert_array_equal(rebuilt.weight, layer.weight)
        np.testing.assert_array_equal(rebuilt.bias, layer.bias)

    def test_from_config_rebuilds_structure(self):
        layer = Dense((2, 3), 4, "tanh", dtype=np.float32, workers=3)
        rebuilt = Dense.from_config(layer.get_config())
        self.assertEqual(rebuilt.input_shape, layer.input_shape)
        self.assertEqual(rebuilt.output_shape, layer.output_shape)
        self.assertEqual(rebuilt.activation, layer.activation)
        self.assertEqual(rebuilt.dtype, np.float32)
        self.assertEqual(rebuilt.workers, 3)
        self.assertEqual(rebuilt.get_config(), layer.get_config())

    def test_repr(self):
        self.assertIn("Dense(", repr(_make_layer()))


if __name__ == "__main__":
    unittest.main()
