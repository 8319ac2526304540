"""
HGpy: reverse-mode automatic differentiation over an expression hypergraph

Vertices of the graph hold matrix values and hyperedges are differentiable
functions of zero or more vertices. A graph is built once, then evaluated in
topological order and differentiated in reverse.
"""

from .core import Dim, Function, Hypergraph, Parameters
from .ops import CwiseMultiply, MatrixMultiply, Sum, SumElements

__version__ = "0.1.0"

__all__ = [
    'Dim',
    'Function',
    'Hypergraph',
    'Parameters',
    'Sum',
    'CwiseMultiply',
    'MatrixMultiply',
    'SumElements',
]
