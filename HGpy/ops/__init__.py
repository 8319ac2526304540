"""
Operations module for HGpy.

This module contains the concrete functions that can be placed on the
hyperedges of a graph.
"""

from .basic import CwiseMultiply, Identity, LogSoftmax, MatrixMultiply, Negate, Softmax, Sum
from .elementwise import Exp, Log, LogisticSigmoid, Rectify, Square, Tanh
from .loss import PickNegLogSoftmax, SquaredEuclideanDistance
from .matrix import Transpose
from .reduction import MaxPooling1D, SumElements

__all__ = [
    # Basic operations
    "Identity",
    "Sum",
    "CwiseMultiply",
    "MatrixMultiply",
    "Negate",
    "Softmax",
    "LogSoftmax",
    # Element-wise operations
    "Tanh",
    "Rectify",
    "LogisticSigmoid",
    "Exp",
    "Log",
    "Square",
    # Reduction operations
    "SumElements",
    "MaxPooling1D",
    # Matrix operations
    "Transpose",
    # Loss functions
    "SquaredEuclideanDistance",
    "PickNegLogSoftmax",
]
