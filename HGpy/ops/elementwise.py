from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.dim import Dim
from ..core.function import Function
from .basic import check_arity


class Elementwise(Function):
    """Base class for functions applied independently to every entry of one argument."""

    name = ""

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return dims[0]

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"{self.name}({self.arg_names(var_names)[0]})"


class Tanh(Elementwise):
    """
    Hyperbolic tangent.

    Backward reuses the forward result: d/dx tanh(x) = 1 - tanh(x)^2.
    """

    name = "tanh"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.tanh(xs[0])

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return dEdf * (1 - fx * fx)


class Rectify(Elementwise):
    """ReLU(x) = max(0, x); the gradient only flows where the input was positive."""

    name = "ReLU"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.maximum(0, xs[0])

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return dEdf * (xs[0] > 0)


class LogisticSigmoid(Elementwise):
    """σ(x) = 1 / (1 + e^(-x))"""

    name = "logistic"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        # For x < 0 use e^x / (1 + e^x) to avoid overflow
        x = xs[0]
        e = np.exp(-np.abs(x))
        return np.where(x >= 0, 1 / (1 + e), e / (1 + e))

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return dEdf * fx * (1 - fx)


class Exp(Elementwise):
    """
    Exponential.

    Note: large inputs overflow to inf; the result is returned as is.
    """

    name = "exp"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.exp(xs[0])

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        # d/dx(exp(x)) = exp(x)
        return dEdf * fx


class Log(Elementwise):
    """
    Natural logarithm.

    Raises:
        ValueError: If any input entry is less than or equal to zero
    """

    name = "log"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        if np.any(xs[0] <= 0):
            raise ValueError("Log of negative numbers or zero is undefined")
        return np.log(xs[0])

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return dEdf / xs[0]


class Square(Elementwise):
    name = "square"

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return xs[0] * xs[0]

    def backward(self, xs, fx: NDArray[Any], dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return 2 * xs[0] * dEdf
