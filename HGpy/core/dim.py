from typing import Any, Optional

import numpy as np
from numpy.typing import NDArray

# rows and cols are stored as unsigned 16-bit quantities
MAX_DIM = 65535

DEFAULT_INIT_SCALE = 0.08


class Dim:
    """
    Shape of a matrix value in the hypergraph.

    A Dim is a (rows, cols) pair defaulting to (1, 1). ``Dim(m)`` describes a
    column vector. The product of two dims follows matrix-product shape
    inference and is used to detect shape errors while a graph is built.
    """

    __slots__ = ("rows", "cols")

    def __init__(self, rows: int = 1, cols: int = 1) -> None:
        for value in (rows, cols):
            if int(value) != value or not 0 <= value <= MAX_DIM:
                raise ValueError(f"Dimension must be an integer in [0, {MAX_DIM}], got {value}")
        self.rows = int(rows)
        self.cols = int(cols)

    @classmethod
    def of(cls, matrix: NDArray[Any]) -> "Dim":
        """Returns the Dim of a 2-D array."""
        if matrix.ndim != 2:
            raise ValueError(f"Expected a 2-D matrix, got shape {matrix.shape}")
        return cls(*matrix.shape)

    @property
    def shape(self):
        return (self.rows, self.cols)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    def transpose(self) -> "Dim":
        return Dim(self.cols, self.rows)

    def __mul__(self, other: "Dim") -> "Dim":
        if not isinstance(other, Dim):
            return NotImplemented
        if self.cols != other.rows:
            raise ValueError(f"Shape mismatch: cannot multiply {self} by {other}")
        return Dim(self.rows, other.cols)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dim):
            return NotImplemented
        return self.shape == other.shape

    def __hash__(self) -> int:
        return hash(self.shape)

    def __str__(self) -> str:
        return f"({self.rows},{self.cols})"

    def __repr__(self) -> str:
        return f"Dim({self.rows}, {self.cols})"


def zero(dim: Dim) -> NDArray[Any]:
    """All-zeros matrix of the given shape."""
    return np.zeros(dim.shape, dtype=np.float64)


def random(
    dim: Dim, scale: float = DEFAULT_INIT_SCALE, rng: Optional[np.random.Generator] = None
) -> NDArray[Any]:
    """
    Matrix of the given shape with entries drawn uniformly from [-scale, scale].

    Used to initialize parameters.

    Args:
        dim: Shape of the result
        scale: Half-width of the sampling interval
        rng: Random generator to draw from (a fresh default generator if omitted)
    """
    if scale < 0.0:
        raise ValueError(f"Invalid init scale: {scale}")
    rng = rng if rng is not None else np.random.default_rng()
    return rng.uniform(-scale, scale, size=dim.shape)
