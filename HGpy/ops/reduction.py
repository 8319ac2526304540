from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.dim import Dim
from ..core.function import Function
from .basic import check_arity


class SumElements(Function):
    """Sum of all entries of the argument, as a 1x1 matrix."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return Dim(1, 1)

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.full((1, 1), np.sum(xs[0]))

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # Every entry contributes with derivative 1
        return np.full(xs[0].shape, dEdf[0, 0])

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"sum_elements({self.arg_names(var_names)[0]})"


class MaxPooling1D(Function):
    """
    Max pooling down the rows of each column with a fixed window.

    Rows are split into consecutive windows of ``width`` (the last window may
    be shorter) and each window is replaced by its maximum.

    Args:
        width: Number of rows pooled into one output row
    """

    def __init__(self, width: int = 2) -> None:
        super().__init__()
        if width < 1:
            raise ValueError(f"Invalid pooling width: {width}")
        self.width = width

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return Dim(-(-dims[0].rows // self.width), dims[0].cols)

    def _windows(self, rows: int):
        for start in range(0, rows, self.width):
            yield start, min(start + self.width, rows)

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        x = xs[0]
        pooled = [np.max(x[start:stop], axis=0) for start, stop in self._windows(x.shape[0])]
        return np.array(pooled).reshape(len(pooled), x.shape[1])

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # The gradient of each window goes to the (first) entry holding its max
        x = xs[0]
        grad = np.zeros_like(x)
        cols = np.arange(x.shape[1])
        for k, (start, stop) in enumerate(self._windows(x.shape[0])):
            rows = start + np.argmax(x[start:stop], axis=0)
            grad[rows, cols] += dEdf[k]
        return grad

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"maxpool({self.arg_names(var_names)[0]}, width={self.width})"
