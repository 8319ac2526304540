from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.dim import Dim
from ..core.function import Function
from .basic import check_arity, check_same_dims


class SquaredEuclideanDistance(Function):
    """
    Squared Euclidean distance: L = Σ(a - b)²

    Both arguments are differentiable, so it serves as a regression loss
    against an input target or as a penalty between two computed values.
    """

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 2)
        check_same_dims(self, dims)
        return Dim(1, 1)

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        diff = xs[0] - xs[1]
        return np.full((1, 1), np.sum(diff * diff))

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        grad = 2 * dEdf[0, 0] * (xs[0] - xs[1])
        return grad if i == 0 else -grad

    def as_string(self, var_names: Sequence[str]) -> str:
        a, b = self.arg_names(var_names)
        return f"|| {a} - {b} ||^2"


class PickNegLogSoftmax(Function):
    """
    Negative log-probability of one class under softmax of a column vector of scores.

    L = -log(softmax(x)[index]), the cross entropy loss against a single
    correct class.

    Args:
        index: Row of the correct class
    """

    def __init__(self, index: int = 0) -> None:
        super().__init__()
        self.index = index

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        if dims[0].cols != 1:
            raise ValueError(f"PickNegLogSoftmax expects a column vector, got {dims[0]}")
        if not 0 <= self.index < dims[0].rows:
            raise ValueError(f"Index {self.index} out of range for {dims[0]}")
        return Dim(1, 1)

    @staticmethod
    def _log_softmax(x: NDArray[Any]) -> NDArray[Any]:
        # Compute log(softmax(x)) in a numerically stable way
        max_x = np.max(x)
        return (x - max_x) - np.log(np.sum(np.exp(x - max_x)))

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        log_softmax = self._log_softmax(xs[0])
        return np.full((1, 1), -log_softmax[self.index, 0])

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        grad = np.exp(self._log_softmax(xs[0]))
        grad[self.index, 0] -= 1
        return dEdf[0, 0] * grad

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"-log(softmax({self.arg_names(var_names)[0]})[{self.index}])"
