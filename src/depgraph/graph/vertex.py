"""Vertex records stored in a dependency graph arena.

A vertex holds its name, the arena indices of its successors, and two
independent groups of transient traversal state: one used by Tarjan's
strongly-connected-component search and one used by plain depth-first
traversal.
"""


class Vertex:
    """A named node in a dependency graph.

    Attributes:
        name: Unique vertex name (immutable)
        successors: Ordered arena indices of the vertices this one depends on
        index: Tarjan discovery index, -1 while undiscovered
        low_link: Tarjan low-link value, -1 while undiscovered
        on_stack: True while the vertex is on Tarjan's component stack
        visited: True once depth-first traversal has visited the vertex
    """

    __slots__ = ("_name", "index", "low_link", "on_stack", "successors", "visited")

    def __init__(self, name: str, successors: list[int] | None = None):
        """Create a vertex with no traversal state.

        Args:
            name: Unique vertex name
            successors: Optional initial successor indices
        """
        self._name = name
        self.successors: list[int] = list(successors) if successors else []
        self.index = -1
        self.low_link = -1
        self.on_stack = False
        self.visited = False

    @property
    def name(self) -> str:
        """Vertex name."""
        return self._name

    def reset_tarjan(self) -> None:
        """Mark the vertex undiscovered and off the component stack."""
        self.index = -1
        self.low_link = -1
        self.on_stack = False

    def reset_visit(self) -> None:
        """Mark the vertex unvisited for depth-first traversal."""
        self.visited = False

    def reset(self) -> None:
        """Reset both groups of traversal state."""
        self.reset_tarjan()
        self.reset_visit()

    @property
    def is_discovered(self) -> bool:
        """Whether Tarjan's search has assigned a discovery index."""
        return self.index >= 0

    def __repr__(self) -> str:
        return f"Vertex({self._name!r})"
