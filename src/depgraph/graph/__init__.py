"""Graph module for dependency graphs and cycle detection.

This module provides an incrementally built dependency graph with
depth-first traversal and Tarjan strongly-connected-component detection.
"""

from depgraph.graph.dependency_graph import CycleDetectedError, DependencyGraph, UnknownVertexError
from depgraph.graph.validator import GraphValidator, ValidationReport
from depgraph.graph.vertex import Vertex

__all__ = [
    "CycleDetectedError",
    "DependencyGraph",
    "GraphValidator",
    "UnknownVertexError",
    "ValidationReport",
    "Vertex",
]
