"""
Core functionality for HGpy.

This module contains the hypergraph, the function contract and the
collaborators every graph needs: dimensions, parameter stores and inputs.
"""

from .dim import MAX_DIM, Dim, random, zero
from .evaluation import Evaluation
from .function import Function
from .graph import Hypergraph, Node, run_backward, run_forward
from .parameters import InputEdge, ParameterEdge, Parameters

__all__ = [
    "Dim",
    "MAX_DIM",
    "zero",
    "random",
    "Function",
    "Parameters",
    "ParameterEdge",
    "InputEdge",
    "Evaluation",
    "Node",
    "Hypergraph",
    "run_forward",
    "run_backward",
]
