import pytest
import numpy as np
from HGpy.core import Dim, MAX_DIM, zero, random

class TestDim:
    """Tests for the dimension descriptor"""

    def test_constructors(self):
        """Test default, vector and matrix construction"""
        assert Dim().shape == (1, 1)
        assert Dim(5).shape == (5, 1)
        assert Dim(2, 3).shape == (2, 3)
        assert Dim(2, 3).size == 6

    def test_transpose(self):
        """Test that transposition swaps rows and columns"""
        assert Dim(2, 3).transpose() == Dim(3, 2)

    def test_product(self):
        """Test matrix-product shape inference"""
        assert Dim(2, 3) * Dim(3, 4) == Dim(2, 4)
        assert Dim(4, 1).transpose() * Dim(4) == Dim(1, 1)

    def test_product_mismatch(self):
        """Test that mismatched inner dimensions are rejected"""
        with pytest.raises(ValueError, match="Shape mismatch"):
            _ = Dim(2, 3) * Dim(2, 3)

    def test_rendering(self):
        """Test stream rendering as (rows,cols)"""
        assert str(Dim(2, 3)) == "(2,3)"
        assert repr(Dim(2, 3)) == "Dim(2, 3)"

    def test_limits(self):
        """Test the 16-bit limit on each dimension"""
        assert Dim(MAX_DIM, 1).rows == 65535
        with pytest.raises(ValueError):
            Dim(MAX_DIM + 1)
        with pytest.raises(ValueError):
            Dim(-1, 2)

    def test_equality_and_hash(self):
        assert Dim(2, 2) == Dim(2, 2)
        assert Dim(2, 2) != Dim(2, 1)
        assert len({Dim(2, 2), Dim(2, 2), Dim(1, 2)}) == 2

    def test_of_matrix(self):
        """Test reading a Dim back from an array"""
        assert Dim.of(np.zeros((3, 2))) == Dim(3, 2)
        with pytest.raises(ValueError):
            Dim.of(np.zeros(3))

class TestMatrixHelpers:
    """Tests for zero and random matrices of a given shape"""

    def test_zero(self):
        z = zero(Dim(2, 3))
        assert z.shape == (2, 3)
        assert np.array_equal(z, np.zeros((2, 3)))

    def test_random_range(self):
        """Test that random entries lie within the init interval"""
        r = random(Dim(20, 30), rng=np.random.default_rng(0))
        assert r.shape == (20, 30)
        assert np.all(np.abs(r) <= 0.08)
        assert np.std(r) > 0

    def test_random_reproducible(self):
        a = random(Dim(3, 3), rng=np.random.default_rng(42))
        b = random(Dim(3, 3), rng=np.random.default_rng(42))
        assert np.array_equal(a, b)

    def test_random_invalid_scale(self):
        with pytest.raises(ValueError):
            random(Dim(2, 2), scale=-1.0)
