import pytest
import numpy as np
from HGpy.core import Dim, Function

class TestFunction:
    """Tests for Function base class and utilities"""

    class Double(Function):
        """Simple test function implementation"""

        def dim_forward(self, dims):
            return dims[0]

        def forward(self, xs):
            return xs[0] * 2

        def backward(self, xs, fx, dEdf, i):
            return dEdf * 2

        def as_string(self, var_names):
            return f"2 * {self.arg_names(var_names)[0]}"

    class WrongDouble(Double):
        """Same forward with a wrong derivative"""

        def backward(self, xs, fx, dEdf, i):
            return dEdf * 3

    class BadShape(Double):
        def backward(self, xs, fx, dEdf, i):
            return np.zeros((1, 1))

    def test_fresh_structure(self):
        """Test that a new function is not attached to any graph"""
        f = self.Double()
        assert f.head_node is None
        assert f.tail == []
        assert f.arity == 0
        assert not f.has_parameters

    def test_arity_follows_tail(self):
        f = self.Double()
        f.tail = [0, 3]
        assert f.arity == 2
        assert f.as_string(["a", "b", "c", "d"]) == "2 * a"

    def test_verify_backward(self):
        """Test gradient verification utility"""
        x = np.array([[1.0, -2.0], [0.5, 3.0]])

        # Test with correct gradients
        assert self.Double().verify_backward([x])

        # Test with incorrect gradients
        assert not self.WrongDouble().verify_backward([x])

    def test_verify_backward_shape(self):
        """Test that a gradient of the wrong shape fails verification"""
        x = np.ones((2, 2))
        assert not self.BadShape().verify_backward([x])

    def test_verify_backward_leaves_inputs(self):
        """Test that verification does not modify the caller's inputs"""
        x = np.array([[1.0, 2.0]])
        self.Double().verify_backward([x])
        assert np.array_equal(x, [[1.0, 2.0]])

    def test_accumulate_grad_default(self):
        """Test that functions without parameters ignore accumulated gradients"""
        self.Double().accumulate_grad(np.ones((1, 1)))

    def test_abstract_methods(self):
        """Test that incomplete functions cannot be instantiated"""

        class IncompleteFunction(Function):
            def forward(self, xs):
                return xs[0]

        with pytest.raises(TypeError):
            IncompleteFunction()
