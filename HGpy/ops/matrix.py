from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.dim import Dim
from ..core.function import Function
from .basic import check_arity


class Transpose(Function):
    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        check_arity(self, dims, 1)
        return dims[0].transpose()

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return np.transpose(xs[0])

    def backward(self, xs, fx, dEdf: NDArray[Any], i: int) -> NDArray[Any]:
        return np.transpose(dEdf)

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"{self.arg_names(var_names)[0]}^T"
