from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.dim import Dim
from ..core.function import Function


def check_arity(function: Function, dims: Sequence[Dim], expected: int) -> None:
    if len(dims) != expected:
        raise ValueError(
            f"{type(function).__name__} takes {expected} argument(s), got {len(dims)}"
        )


def check_same_dims(function: Function, dims: Sequence[Dim]) -> Dim:
    for d in dims[1:]:
        if d != dims[0]:
            raise ValueError(f"Shape mismatch in {type(function).__name__}: {dims[0]} vs {d}")
    return dims[0]


class Identity(Function):
    """f(x) = x"""

    def dim_forward(self, dims):
        check_arity(self, dims, 1)
        return dims[0]

    def forward(self, xs):
        return xs[0]

    def backward(self, xs, fx, dEdf, i):
        return dEdf

    def as_string(self, var_names):
        return self.arg_names(var_names)[0]


class Sum(Function):
    """Elementwise sum of one or more equally shaped arguments."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        if not dims:
            raise ValueError("Sum takes at least one argument")
        return check_same_dims(self, dims)

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        result = xs[0].copy()
        for x in xs[1:]:
            result += x
        return result

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # d(a + b + ...)/da = 1 for every argument
        return dEdf

    def as_string(self, var_names: Sequence[str]) -> str:
        return " + ".join(self.arg_names(var_names))


class CwiseMultiply(Function):
    """Elementwise (Hadamard) product of two equally shaped arguments."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 2)
        return check_same_dims(self, dims)

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return xs[0] * xs[1]

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # d(a*b)/da = b, d(a*b)/db = a
        return dEdf * xs[1 - i]

    def as_string(self, var_names: Sequence[str]) -> str:
        a, b = self.arg_names(var_names)
        return f"{a} .* {b}"


class MatrixMultiply(Function):
    """Matrix product of two arguments."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 2)
        return dims[0] * dims[1]

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.matmul(xs[0], xs[1])

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # d(A@B)/dA = grad @ B.T, d(A@B)/dB = A.T @ grad
        if i == 0:
            return np.matmul(dEdf, xs[1].T)
        return np.matmul(xs[0].T, dEdf)

    def as_string(self, var_names: Sequence[str]) -> str:
        a, b = self.arg_names(var_names)
        return f"{a} * {b}"


class Negate(Function):
    """f(x) = -x"""

    def dim_forward(self, dims):
        check_arity(self, dims, 1)
        return dims[0]

    def forward(self, xs):
        return -xs[0]

    def backward(self, xs, fx, dEdf, i):
        return -dEdf

    def as_string(self, var_names):
        return f"-{self.arg_names(var_names)[0]}"


class Softmax(Function):
    """Softmax over each column of the argument."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return dims[0]

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        # Subtract the max for numerical stability
        x = xs[0]
        exp_x = np.exp(x - np.max(x, axis=0, keepdims=True))
        return exp_x / np.sum(exp_x, axis=0, keepdims=True)

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # dsoftmax_i/dx_j = softmax_i * (1{i=j} - softmax_j)
        return fx * (dEdf - np.sum(dEdf * fx, axis=0, keepdims=True))

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"softmax({self.arg_names(var_names)[0]})"


class LogSoftmax(Function):
    """log(softmax(x)) over each column, computed without forming softmax."""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return dims[0]

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        x = xs[0]
        max_x = np.max(x, axis=0, keepdims=True)
        return (x - max_x) - np.log(np.sum(np.exp(x - max_x), axis=0, keepdims=True))

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return dEdf - np.exp(fx) * np.sum(dEdf, axis=0, keepdims=True)

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"log_softmax({self.arg_names(var_names)[0]})"
