"""
Computation graph where nodes represent intermediate values and edges
represent functions of multiple values.

A function may have several arguments, so edges have a single head and zero
or more tails: given z = f(x, y), z, x and y are nodes, and the edge for f
points to z (its head) with x and y as its tails. Constants, inputs and
parameters are functions of zero arguments.
"""

import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO, Type, Union

import numpy as np
from numpy.typing import NDArray

from .dim import Dim, zero
from .evaluation import Evaluation
from .function import Function
from .parameters import InputEdge, ParameterEdge, Parameters

logger = logging.getLogger(__name__)


class Node:
    """
    A single-assignment variable of the graph.

    Attributes:
        in_edge: Index of the function that computes the variable
        out_edges: Indices of the functions that use the variable
        var_name: Name used for debugging output
        dim: Shape of the variable's value
    """

    def __init__(self, in_edge: int, name: str = "", dim: Optional[Dim] = None) -> None:
        self.in_edge = in_edge
        self.out_edges: List[int] = []
        self.var_name = name
        self.dim = dim if dim is not None else Dim()

    @property
    def variable_name(self) -> str:
        return self.var_name

    def __repr__(self) -> str:
        return f"Node(in_edge={self.in_edge}, out_edges={self.out_edges}, name={self.var_name!r})"


class Hypergraph:
    """
    Owns the vertices and hyperedges of an expression graph and evaluates it.

    Nodes are stored in topological order: a node is only appended once all
    of its arguments exist, and the structure is never changed afterwards.
    Builder methods return the new node's index, which stays valid for the
    lifetime of the graph.

    The most recent evaluation is kept on the graph for convenience; use
    run_forward/run_backward directly to hold several evaluations at once.
    """

    def __init__(self) -> None:
        self.nodes: List[Node] = []
        self.edges: List[Function] = []
        self._evaluation: Optional[Evaluation] = None

    def __len__(self) -> int:
        return len(self.nodes)

    # construct a graph

    def add_parameter(
        self, dim: Dim, name: str = "", params: Optional[Parameters] = None
    ) -> int:
        """
        Adds a node holding a trainable parameter.

        Args:
            dim: Shape of the parameter
            name: Debug name of the node
            params: Existing store to share; a new one is created if omitted

        Returns:
            Index of the new node
        """
        if params is None:
            params = Parameters(dim)
        elif params.dim != dim:
            raise ValueError(f"Shape mismatch: parameter store is {params.dim}, node is {dim}")
        return self._add_edge(ParameterEdge(params), [], name)

    def add_input(self, dim: Dim, name: str = "", value: Optional[Any] = None) -> int:
        """Adds a node whose value is supplied by the caller (zeros until bound)."""
        return self._add_edge(InputEdge(dim, value), [], name)

    def add_function(
        self,
        function: Union[Type[Function], Function],
        arguments: Sequence[int],
        name: str = "",
    ) -> int:
        """
        Adds a node computed by a function of existing nodes.

        Args:
            function: A Function subclass (constructed without arguments) or a
                configured Function instance not yet part of any graph
            arguments: Indices of the argument nodes, in argument order
            name: Debug name of the new node

        Returns:
            Index of the new node

        Raises:
            TypeError: If function is not a Function
            IndexError: If an argument does not refer to an existing node
            ValueError: If the argument shapes are incompatible with the function
        """
        if isinstance(function, type) and issubclass(function, Function):
            function = function()
        if not isinstance(function, Function):
            raise TypeError(f"Expected a Function, got {type(function).__name__}")
        return self._add_edge(function, arguments, name)

    def _add_edge(self, edge: Function, arguments: Sequence[int], name: str) -> int:
        if edge.head_node is not None:
            raise ValueError("Function instance is already part of a graph")

        arguments = list(arguments)
        for ni in arguments:
            if isinstance(ni, bool) or not isinstance(ni, (int, np.integer)):
                raise IndexError(f"Argument {ni!r} is not a node index")
            if not 0 <= ni < len(self.nodes):
                raise IndexError(f"Argument {ni} does not refer to an existing node")

        dim = edge.dim_forward([self.nodes[ni].dim for ni in arguments])

        new_node_index = len(self.nodes)
        new_edge_index = len(self.edges)
        self.nodes.append(Node(new_edge_index, name, dim))
        self.edges.append(edge)
        edge.head_node = new_node_index
        for ni in arguments:
            edge.tail.append(int(ni))
            self.nodes[ni].out_edges.append(new_edge_index)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Added node %d %s = %s", new_node_index, dim, edge.as_string(self.var_names())
            )
        return new_node_index

    # accessors

    def var_names(self) -> List[str]:
        """Debug names of all nodes, with positional names for unnamed ones."""
        return [node.var_name or f"v{i}" for i, node in enumerate(self.nodes)]

    def in_edge(self, vertex: int) -> Function:
        """Returns the function that computes a node."""
        if not 0 <= vertex < len(self.nodes):
            raise IndexError(f"Node {vertex} does not exist")
        return self.edges[self.nodes[vertex].in_edge]

    def parameters(self) -> List[Parameters]:
        """Parameter stores referenced by the graph, in construction order."""
        stores: List[Parameters] = []
        seen = set()
        for edge in self.edges:
            if isinstance(edge, ParameterEdge) and id(edge.params) not in seen:
                seen.add(id(edge.params))
                stores.append(edge.params)
        return stores

    def set_input(self, vertex: int, value: Any) -> None:
        """Binds a new value to an input node."""
        edge = self.in_edge(vertex)
        if not isinstance(edge, InputEdge):
            raise ValueError(f"Node {vertex} is not an input")
        edge.bind(value)

    # perform computations

    def forward(self, bindings: Optional[Dict[int, Any]] = None) -> NDArray[Any]:
        """Evaluates every node and returns the value of the last one."""
        self._evaluation = None
        self._evaluation = run_forward(self, bindings)
        return self._evaluation.output

    def backward(self) -> None:
        """Computes dE/dv for every node, where E is the value of the last node."""
        if self._evaluation is None:
            raise RuntimeError("backward called before forward")
        run_backward(self, self._evaluation)

    @property
    def evaluation(self) -> Optional[Evaluation]:
        return self._evaluation

    def value(self, vertex: int) -> NDArray[Any]:
        if self._evaluation is None:
            raise RuntimeError("No values: forward has not been run")
        return self._evaluation.value(vertex)

    def gradient(self, vertex: int) -> NDArray[Any]:
        if self._evaluation is None:
            raise RuntimeError("No gradients: forward has not been run")
        return self._evaluation.gradient(vertex)

    # debugging

    def validate_graph(self) -> List[str]:
        """
        Checks the structural invariants of the graph.

        Returns:
            Human-readable warnings; empty if the graph is well formed
        """
        warnings: List[str] = []

        if not self.nodes:
            return warnings

        if len(self.nodes) != len(self.edges):
            warnings.append(
                f"Node/edge count mismatch: {len(self.nodes)} nodes vs {len(self.edges)} edges"
            )

        heads: Dict[int, int] = {}
        for ei, edge in enumerate(self.edges):
            head = edge.head_node
            if head is None or not 0 <= head < len(self.nodes):
                warnings.append(f"Edge {ei} has no valid head node")
                continue
            if head in heads:
                warnings.append(f"Node {head} is the head of edges {heads[head]} and {ei}")
            heads[head] = ei
            if self.nodes[head].in_edge != ei:
                warnings.append(f"Edge {ei} computes node {head} but is not its in_edge")

            for t in edge.tail:
                if not 0 <= t < len(self.nodes):
                    warnings.append(f"Edge {ei} has nonexistent tail node {t}")
                    continue
                if t >= head:
                    warnings.append(
                        f"Topological order violated: edge {ei} has tail {t} >= head {head}"
                    )
                if ei not in self.nodes[t].out_edges:
                    warnings.append(f"Node {t} does not list edge {ei} among its out_edges")

        for ni, node in enumerate(self.nodes):
            for ei in node.out_edges:
                if not 0 <= ei < len(self.edges) or ni not in self.edges[ei].tail:
                    warnings.append(f"Node {ni} lists edge {ei} which does not use it")

        # Nodes the output does not depend on receive no gradient
        connected = {len(self.nodes) - 1}
        for ni in reversed(range(len(self.nodes))):
            if ni in connected and 0 <= self.nodes[ni].in_edge < len(self.edges):
                connected.update(self.edges[self.nodes[ni].in_edge].tail)
        unconnected = len(self.nodes) - len(connected)
        if unconnected:
            warnings.append(f"Found {unconnected} nodes not connected to the output")

        return warnings

    def as_graphviz(self) -> str:
        """Renders the graph in Graphviz dot syntax."""
        var_names = self.var_names()
        lines = ["digraph G {", "  rankdir=LR;", "  nodesep=.05;"]
        for ni, node in enumerate(self.nodes):
            label = f"{var_names[ni]} = {self.edges[node.in_edge].as_string(var_names)}"
            label = label.replace('"', '\\"')
            lines.append(f'  N{ni} [label="{label}"];')
        for edge in self.edges:
            for t in edge.tail:
                lines.append(f"  N{t} -> N{edge.head_node};")
        lines.append("}")
        return "\n".join(lines) + "\n"

    def print_graphviz(self, file: TextIO = sys.stdout) -> None:
        file.write(self.as_graphviz())


def run_forward(graph: Hypergraph, bindings: Optional[Dict[int, Any]] = None) -> Evaluation:
    """
    Evaluates every node of the graph in topological order.

    Args:
        graph: Graph to evaluate
        bindings: Values to use for zero-argument nodes in place of what
            their functions supply, keyed by node index

    Returns:
        Evaluation holding the value of every node

    Raises:
        RuntimeError: If the graph is empty
        ValueError: If a binding or a computed value has the wrong shape
    """
    if not graph.nodes:
        raise RuntimeError("Cannot evaluate an empty graph")

    evaluation = Evaluation(values=[None] * len(graph.nodes))
    for vertex, value in (bindings or {}).items():
        edge = graph.in_edge(vertex)
        if edge.arity != 0:
            raise ValueError(f"Only nodes without arguments can be bound, node {vertex} has {edge.arity}")
        if edge.has_parameters:
            raise ValueError(f"Node {vertex} holds parameters and cannot be bound")
        evaluation.bindings[vertex] = np.array(value, dtype=np.float64)

    logger.debug("Forward pass over %d nodes", len(graph.nodes))
    values = evaluation.values
    for ni, node in enumerate(graph.nodes):
        edge = graph.edges[node.in_edge]
        if ni in evaluation.bindings:
            fx = evaluation.bindings[ni]
        else:
            xs = [values[t] for t in edge.tail]
            fx = np.asarray(edge.forward(xs))
        if fx.shape != node.dim.shape:
            raise ValueError(
                f"Shape mismatch: node {ni} expects {node.dim}, "
                f"{type(edge).__name__} produced shape {fx.shape}"
            )
        values[ni] = fx

    return evaluation


def run_backward(graph: Hypergraph, evaluation: Evaluation) -> None:
    """
    Propagates dE/dv from the last node back to every node.

    The last node's value is the objective E and must be 1x1. Gradient
    tables are reset on entry, so the same evaluation may be differentiated
    repeatedly. Functions with parameters receive their head's adjoint once
    the sweep is complete.

    Raises:
        RuntimeError: If the evaluation does not hold a forward pass of graph
        ValueError: If the last node is not a scalar, or a function returns a
            gradient of the wrong shape
    """
    num_nodes = len(graph.nodes)
    if num_nodes == 0 or len(evaluation.values) != num_nodes or any(
        v is None for v in evaluation.values
    ):
        raise RuntimeError("backward called before a matching forward")

    values = evaluation.values
    if values[-1].shape != (1, 1):
        raise ValueError(
            f"Final node must be a scalar (1,1) objective, got shape {values[-1].shape}"
        )

    logger.debug("Backward pass over %d nodes", num_nodes)
    gradients = [zero(node.dim) for node in graph.nodes]
    gradients[-1] = np.ones((1, 1))

    for ni in reversed(range(num_nodes)):
        edge = graph.edges[graph.nodes[ni].in_edge]
        if edge.arity == 0:
            continue
        xs = [values[t] for t in edge.tail]
        dEdf = gradients[ni]
        for i, t in enumerate(edge.tail):
            contribution = np.asarray(edge.backward(xs, values[ni], dEdf, i))
            if contribution.shape != xs[i].shape:
                raise ValueError(
                    f"Gradient shape mismatch: {type(edge).__name__} returned {contribution.shape} "
                    f"for argument {i} of shape {xs[i].shape}"
                )
            gradients[t] += contribution

    evaluation.gradients = gradients

    for edge in graph.edges:
        if edge.has_parameters:
            edge.accumulate_grad(gradients[edge.head_node])
