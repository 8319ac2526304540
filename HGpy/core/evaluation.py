from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from numpy.typing import NDArray


@dataclass
class Evaluation:
    """
    Working state of one forward/backward pair over a hypergraph.

    Values and gradients are side tables indexed by vertex, so the graph itself
    stays purely structural and several evaluations of the same graph may
    coexist.

    Attributes:
        values: Value of every vertex, filled by the forward pass
        gradients: dE/dv for every vertex, filled by the backward pass
        bindings: Values substituted for zero-argument vertices in this evaluation
    """

    values: List[Optional[NDArray[Any]]] = field(default_factory=list)
    gradients: List[NDArray[Any]] = field(default_factory=list)
    bindings: Dict[int, NDArray[Any]] = field(default_factory=dict)

    @property
    def output(self) -> NDArray[Any]:
        """Value of the last vertex."""
        return self.value(len(self.values) - 1)

    def value(self, vertex: int) -> NDArray[Any]:
        """
        Returns the value computed for a vertex.

        Raises:
            IndexError: If the vertex does not exist
            RuntimeError: If the forward pass has not produced it
        """
        if not 0 <= vertex < len(self.values):
            raise IndexError(f"No value for vertex {vertex}")
        value = self.values[vertex]
        if value is None:
            raise RuntimeError(f"Vertex {vertex} has not been evaluated")
        return value

    def gradient(self, vertex: int) -> NDArray[Any]:
        """
        Returns the accumulated gradient of a vertex.

        Raises:
            RuntimeError: If no backward pass has run on this evaluation
            IndexError: If the vertex does not exist
        """
        if not self.gradients:
            raise RuntimeError("No gradients: backward has not been run")
        if not 0 <= vertex < len(self.gradients):
            raise IndexError(f"No gradient for vertex {vertex}")
        return self.gradients[vertex]
