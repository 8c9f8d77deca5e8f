"""Text serializers for dependency graphs.

These functions render a graph as Graphviz DOT text and render detected
cycles as the human-readable message carried by ``CycleDetectedError``.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from depgraph.graph.dependency_graph import DependencyGraph


def format_cycle(cycle: Sequence[str]) -> str:
    """Render one cycle as ``a -> b -> a``.

    Args:
        cycle: Ordered vertex names forming the cycle

    Returns:
        Names joined by arrows with the first name repeated at the end
    """
    return " -> ".join([*cycle, cycle[0]])


def format_cycle_message(cycles: Sequence[Sequence[str]]) -> str:
    """Render the multi-line message reported for detected cycles.

    Args:
        cycles: Detected cycles, each an ordered sequence of vertex names

    Returns:
        A header line followed by one indented line per cycle

    Example:
        >>> print(format_cycle_message([["a", "b"]]))
        Detected 1 cycle:
          a -> b -> a
    """
    plural = "" if len(cycles) == 1 else "s"
    lines = [f"Detected {len(cycles)} cycle{plural}:"]
    lines.extend(f"  {format_cycle(cycle)}" for cycle in cycles)
    return "\n".join(lines)


def to_dot(graph: "DependencyGraph") -> str:
    """Generate a Graphviz DOT representation of the graph.

    Each detected cycle is drawn as a red cluster, followed by one line per
    edge for every vertex that has successors.

    Args:
        graph: The DependencyGraph to render

    Returns:
        DOT text terminated by a newline
    """
    lines = ["digraph {"]

    for i, cycle in enumerate(graph.get_cycles()):
        lines.append(f"  subgraph cluster{i} {{")
        lines.append("    color=red;")
        lines.append("    " + "; ".join(v.name for v in cycle) + ";")
        lines.append("  }")

    for name in graph.names():
        lines.extend(f"  {name} -> {successor}" for successor in graph.get_successors(name))

    lines.append("}")
    return "\n".join(lines) + "\n"
