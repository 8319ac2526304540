from typing import Any, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .dim import DEFAULT_INIT_SCALE, Dim, random, zero
from .function import Function


class Parameters:
    """
    Trainable matrix and its accumulated gradient.

    Parameter stores live outside the hypergraph; a graph refers to one
    through a ParameterEdge, and several graphs (one per training example,
    say) may share the same store.

    Args:
        dim: Shape of the parameter matrix
        scale: Half-width of the uniform initialization interval
        rng: Random generator used for initialization
    """

    def __init__(
        self,
        dim: Dim,
        scale: float = DEFAULT_INIT_SCALE,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.dim = dim
        self.values: NDArray[Any] = random(dim, scale=scale, rng=rng)
        self.grad: NDArray[Any] = zero(dim)

    @property
    def size(self) -> int:
        return self.dim.size

    def accumulate_grad(self, g: NDArray[Any]) -> None:
        if g.shape != self.values.shape:
            raise ValueError(
                f"Gradient shape mismatch: grad shape {g.shape} vs parameter shape {self.values.shape}"
            )
        self.grad += g

    def zero_grad(self) -> None:
        self.grad.fill(0)

    def __repr__(self) -> str:
        return f"Parameters(dim={self.dim!r})"


class ParameterEdge(Function):
    """Zero-argument function whose value is the current content of a parameter store."""

    has_parameters = True

    def __init__(self, params: Parameters) -> None:
        super().__init__()
        self.params = params

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        return self.params.dim

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return self.params.values.copy()

    def backward(self, xs, fx, dEdf, i):
        raise IndexError("Parameters have no arguments to differentiate")

    def accumulate_grad(self, dEdf: NDArray[Any]) -> None:
        self.params.accumulate_grad(dEdf)

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"parameters{self.params.dim}"


class InputEdge(Function):
    """
    Zero-argument function supplying an externally bound matrix.

    The adjoint reaching an input is left in the gradient table and never
    routed anywhere.
    """

    def __init__(self, dim: Dim, value: Optional[NDArray[Any]] = None) -> None:
        super().__init__()
        self.dim = dim
        self.value = zero(dim)
        if value is not None:
            self.bind(value)

    def bind(self, value: Any) -> None:
        """Replaces the bound matrix, which must have this input's shape."""
        value = np.asarray(value, dtype=np.float64)
        if value.shape != self.dim.shape:
            raise ValueError(f"Shape mismatch: input is {self.dim}, got shape {value.shape}")
        self.value = value

    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        return self.dim

    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        return self.value.copy()

    def backward(self, xs, fx, dEdf, i):
        raise IndexError("Inputs have no arguments to differentiate")

    def as_string(self, var_names: Sequence[str]) -> str:
        return f"input{self.dim}"
