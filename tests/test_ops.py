import pytest
import numpy as np
from HGpy.core import Dim, Hypergraph
from HGpy.ops import (
    Identity, Sum, CwiseMultiply, MatrixMultiply, Negate, Softmax, LogSoftmax,
    Tanh, Rectify, LogisticSigmoid, Exp, Log, Square, SumElements, MaxPooling1D,
    Transpose, SquaredEuclideanDistance, PickNegLogSoftmax
)


def attach(function, dims):
    """Places a function on a graph over inputs of the given dims."""
    g = Hypergraph()
    args = [g.add_input(d, f"x{i}") for i, d in enumerate(dims)]
    g.add_function(function, args, "f")
    return function


# (function factory, argument shapes)
CASES = [
    (Identity, [(3, 2)]),
    (Sum, [(2, 3), (2, 3), (2, 3)]),
    (CwiseMultiply, [(3, 2), (3, 2)]),
    (MatrixMultiply, [(2, 3), (3, 4)]),
    (Negate, [(2, 2)]),
    (Softmax, [(4, 2)]),
    (LogSoftmax, [(4, 2)]),
    (Tanh, [(3, 3)]),
    (Rectify, [(3, 3)]),
    (LogisticSigmoid, [(3, 3)]),
    (Exp, [(2, 3)]),
    (Square, [(2, 3)]),
    (SumElements, [(3, 2)]),
    (lambda: MaxPooling1D(2), [(5, 2)]),
    (Transpose, [(2, 3)]),
    (SquaredEuclideanDistance, [(3, 1), (3, 1)]),
    (lambda: PickNegLogSoftmax(2), [(4, 1)]),
]


class TestGradients:
    """Finite-difference and shape checks for every function."""

    @pytest.mark.parametrize("factory,shapes", CASES)
    def test_finite_differences(self, factory, shapes):
        rng = np.random.default_rng(0)
        xs = [rng.standard_normal(s) for s in shapes]
        function = factory()
        assert function.verify_backward(xs, rng=rng)

    @pytest.mark.parametrize("factory,shapes", CASES)
    def test_gradient_shapes(self, factory, shapes):
        rng = np.random.default_rng(1)
        xs = [rng.standard_normal(s) for s in shapes]
        function = factory()
        fx = function.forward(xs)
        dEdf = rng.standard_normal(fx.shape)
        for i, x in enumerate(xs):
            assert function.backward(xs, fx, dEdf, i).shape == x.shape

    @pytest.mark.parametrize("factory,shapes", CASES)
    def test_shape_closure(self, factory, shapes):
        """Output shape agrees with dim_forward and depends only on input shapes."""
        rng = np.random.default_rng(2)
        function = factory()
        expected = function.dim_forward([Dim(*s) for s in shapes])
        for _ in range(2):
            xs = [rng.standard_normal(s) for s in shapes]
            assert function.forward(xs).shape == expected.shape

    @pytest.mark.parametrize("factory,shapes", CASES)
    def test_adjoint_linearity(self, factory, shapes):
        rng = np.random.default_rng(3)
        xs = [rng.standard_normal(s) for s in shapes]
        function = factory()
        fx = function.forward(xs)
        d1 = rng.standard_normal(fx.shape)
        d2 = rng.standard_normal(fx.shape)
        for i in range(len(xs)):
            combined = function.backward(xs, fx, 0.5 * d1 + d2, i)
            separate = 0.5 * function.backward(xs, fx, d1, i) + function.backward(xs, fx, d2, i)
            assert np.allclose(combined, separate)

    def test_log_finite_differences(self):
        """Log is checked on strictly positive inputs"""
        x = np.random.default_rng(0).uniform(0.5, 2.0, (3, 2))
        assert Log().verify_backward([x])


class TestBasicOps:
    """Tests for values and configuration of individual functions"""

    def test_sum_does_not_alias_inputs(self):
        a = np.ones((1, 2))
        Sum().forward([a, a])
        assert np.array_equal(a, np.ones((1, 2)))

    def test_sum_dims(self):
        with pytest.raises(ValueError):
            Sum().dim_forward([])
        with pytest.raises(ValueError):
            Sum().dim_forward([Dim(2), Dim(3)])

    def test_arity_checks(self):
        with pytest.raises(ValueError):
            CwiseMultiply().dim_forward([Dim(2)])
        with pytest.raises(ValueError):
            Tanh().dim_forward([Dim(2), Dim(2)])

    def test_matrix_multiply_values(self):
        W = np.array([[1.0, 2.0], [3.0, 4.0]])
        x = np.array([[1.0], [1.0]])
        f = MatrixMultiply()
        fx = f.forward([W, x])
        assert np.array_equal(fx, [[3.0], [7.0]])
        dEdf = np.ones((2, 1))
        assert np.array_equal(f.backward([W, x], fx, dEdf, 0), [[1.0, 1.0], [1.0, 1.0]])
        assert np.array_equal(f.backward([W, x], fx, dEdf, 1), [[4.0], [6.0]])

    def test_softmax_columns_sum_to_one(self):
        x = np.array([[1.0, 1000.0], [2.0, 1000.0], [3.0, 0.0]])
        fx = Softmax().forward([x])
        assert np.allclose(np.sum(fx, axis=0), [1.0, 1.0])
        assert np.all(np.isfinite(fx))
        assert np.allclose(np.exp(LogSoftmax().forward([x])), fx)

    def test_logistic_is_stable(self):
        fx = LogisticSigmoid().forward([np.array([[-1000.0, 0.0, 1000.0]])])
        assert np.allclose(fx, [[0.0, 0.5, 1.0]])

    def test_rectify(self):
        x = np.array([[-1.0, 0.0, 2.0]])
        f = Rectify()
        fx = f.forward([x])
        assert np.array_equal(fx, [[0.0, 0.0, 2.0]])
        assert np.array_equal(f.backward([x], fx, np.ones((1, 3)), 0), [[0.0, 0.0, 1.0]])

    def test_log_domain(self):
        with pytest.raises(ValueError):
            Log().forward([np.array([[1.0, 0.0]])])

    def test_exp_overflow_is_not_masked(self):
        with np.errstate(over="ignore"):
            fx = Exp().forward([np.array([[1000.0]])])
        assert np.isinf(fx[0, 0])

    def test_transpose_dims(self):
        assert Transpose().dim_forward([Dim(2, 3)]) == Dim(3, 2)

    def test_as_string(self):
        names = ["a", "b", "c"]
        assert attach(Sum(), [Dim(), Dim(), Dim()]).as_string(names) == "a + b + c"
        assert attach(MatrixMultiply(), [Dim(), Dim()]).as_string(names) == "a * b"
        assert attach(Tanh(), [Dim()]).as_string(names) == "tanh(a)"
        assert attach(Transpose(), [Dim()]).as_string(names) == "a^T"


class TestReductionOps:
    def test_sum_elements(self):
        x = np.array([[1.0, 2.0], [3.0, 4.0]])
        f = SumElements()
        fx = f.forward([x])
        assert np.array_equal(fx, [[10.0]])
        assert np.array_equal(f.backward([x], fx, np.array([[2.0]]), 0), np.full((2, 2), 2.0))

    def test_max_pooling_values(self):
        x = np.array([[1.0], [5.0], [3.0], [2.0], [4.0]])
        f = MaxPooling1D(2)
        assert f.dim_forward([Dim(5)]) == Dim(3, 1)
        fx = f.forward([x])
        assert np.array_equal(fx, [[5.0], [3.0], [4.0]])
        grad = f.backward([x], fx, np.array([[1.0], [2.0], [3.0]]), 0)
        assert np.array_equal(grad, [[0.0], [1.0], [2.0], [0.0], [3.0]])

    def test_max_pooling_width(self):
        with pytest.raises(ValueError):
            MaxPooling1D(0)
        assert "width=3" in attach(MaxPooling1D(3), [Dim(6)]).as_string(["x"])


class TestLossOps:
    def test_squared_distance(self):
        a = np.array([[1.0], [2.0]])
        b = np.array([[0.0], [4.0]])
        f = SquaredEuclideanDistance()
        fx = f.forward([a, b])
        assert np.array_equal(fx, [[5.0]])
        dEdf = np.ones((1, 1))
        assert np.array_equal(f.backward([a, b], fx, dEdf, 0), [[2.0], [-4.0]])
        assert np.array_equal(f.backward([a, b], fx, dEdf, 1), [[-2.0], [4.0]])
        with pytest.raises(ValueError):
            f.dim_forward([Dim(2), Dim(3)])

    def test_pick_neg_log_softmax_uniform(self):
        x = np.zeros((4, 1))
        f = PickNegLogSoftmax(1)
        assert np.allclose(f.forward([x]), [[np.log(4.0)]])
        grad = f.backward([x], f.forward([x]), np.ones((1, 1)), 0)
        assert np.allclose(grad, [[0.25], [-0.75], [0.25], [0.25]])

    def test_pick_neg_log_softmax_config(self):
        with pytest.raises(ValueError):
            PickNegLogSoftmax(4).dim_forward([Dim(4)])
        with pytest.raises(ValueError):
            PickNegLogSoftmax(0).dim_forward([Dim(4, 2)])

    def test_training_graph(self):
        """A loss built on a graph backpropagates into its parameters"""
        g = Hypergraph()
        W = g.add_parameter(Dim(3, 2), "W")
        x = g.add_input(Dim(2), "x", [[1.0], [-1.0]])
        h = g.add_function(MatrixMultiply, [W, x], "h")
        g.add_function(PickNegLogSoftmax(0), [h], "loss")

        loss = g.forward()
        assert loss.shape == (1, 1)
        g.backward()
        params = g.parameters()[0]
        assert np.allclose(params.grad, g.gradient(W))
        assert np.abs(params.grad).sum() > 0
