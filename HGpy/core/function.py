from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .dim import Dim


class Function(ABC):
    """
    Base class for all hyperedges of the computation graph.

    A function has a single head (the vertex whose value it defines) and an
    ordered tail of zero or more argument vertices. Constants, inputs and
    parameters are functions of zero arguments.

    Subclasses are stateless with respect to evaluation: everything
    ``backward`` needs is passed in as arguments, so the same graph can be
    evaluated any number of times. Configuration (a pooling width, a target
    index) is fixed when the function is constructed.
    """

    has_parameters: bool = False

    def __init__(self) -> None:
        self.head_node: Optional[int] = None
        self.tail: List[int] = []

    @property
    def arity(self) -> int:
        """Number of arguments to the function."""
        return len(self.tail)

    @abstractmethod
    def dim_forward(self, dims: Sequence[Dim]) -> Dim:
        """
        Infers the output shape from the argument shapes.

        Called when the function is added to a graph, so shape errors are
        reported at construction time.

        Raises:
            ValueError: If the argument shapes are incompatible
        """
        raise NotImplementedError

    @abstractmethod
    def forward(self, xs: Sequence[NDArray[Any]]) -> NDArray[Any]:
        """
        Computes f(xs).

        Args:
            xs: Values of the tail vertices, in tail order

        Returns:
            The value of the head vertex
        """
        raise NotImplementedError

    @abstractmethod
    def backward(
        self,
        xs: Sequence[NDArray[Any]],
        fx: NDArray[Any],
        dEdf: NDArray[Any],
        i: int,
    ) -> NDArray[Any]:
        """
        Computes the derivative of E with respect to the ith argument, xs[i].

        Args:
            xs: Values of the tail vertices used in the forward pass
            fx: The value forward produced from xs
            dEdf: Derivative of the objective with respect to fx
            i: Index of the argument to differentiate with respect to

        Returns:
            dEdf times df/dxs[i], with the shape of xs[i]
        """
        raise NotImplementedError

    @abstractmethod
    def as_string(self, var_names: Sequence[str]) -> str:
        """Short rendering of the function applied to the tail's variable names."""
        raise NotImplementedError

    def accumulate_grad(self, dEdf: NDArray[Any]) -> None:
        """Receives the head's adjoint after a backward pass if has_parameters is set."""

    def arg_names(self, var_names: Sequence[str]) -> List[str]:
        return [var_names[t] for t in self.tail]

    def verify_backward(
        self,
        xs: Sequence[NDArray[Any]],
        epsilon: float = 1e-6,
        tolerance: float = 1e-5,
        rng: Optional[np.random.Generator] = None,
    ) -> bool:
        """
        Verifies backward against central differences of forward.

        A random adjoint dEdf is drawn and, for every argument i, backward(i)
        is compared with the numerical gradient of sum(dEdf * f(xs)) with
        respect to xs[i].

        Args:
            xs: Argument values to check at
            epsilon: Step used for the central differences
            tolerance: Largest accepted error, relative for entries above one
            rng: Random generator for the adjoint

        Returns:
            True if gradients match within tolerance, False otherwise
        """
        rng = rng if rng is not None else np.random.default_rng()
        xs = [np.array(x, dtype=np.float64) for x in xs]
        fx = np.array(self.forward(xs))
        dEdf = rng.standard_normal(fx.shape)

        def objective(args: List[NDArray[Any]]) -> float:
            return float(np.sum(dEdf * self.forward(args)))

        for i in range(len(xs)):
            analytical = self.backward(xs, fx, dEdf, i)
            if analytical.shape != xs[i].shape:
                return False

            numerical = np.zeros_like(xs[i])
            it = np.nditer(xs[i], flags=["multi_index"])
            while not it.finished:
                ix = it.multi_index
                old_value = xs[i][ix]

                xs[i][ix] = old_value + epsilon
                pos_output = objective(xs)
                xs[i][ix] = old_value - epsilon
                neg_output = objective(xs)
                xs[i][ix] = old_value

                numerical[ix] = (pos_output - neg_output) / (2 * epsilon)
                it.iternext()

            rel_error = np.max(
                np.abs(analytical - numerical)
                / np.maximum(1.0, np.maximum(np.abs(analytical), np.abs(numerical))),
                initial=0.0,
            )
            if rel_error > tolerance:
                return False

        return True
