"""depgraph: dependency graphs with circular dependency detection."""

from depgraph.graph import (
    CycleDetectedError,
    DependencyGraph,
    GraphValidator,
    UnknownVertexError,
    ValidationReport,
    Vertex,
)

__version__ = "0.1.0"

__all__ = [
    "CycleDetectedError",
    "DependencyGraph",
    "GraphValidator",
    "UnknownVertexError",
    "ValidationReport",
    "Vertex",
]
