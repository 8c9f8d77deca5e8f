"""Dependency graph construction, traversal and cycle detection.

This module provides the DependencyGraph class, an incrementally built
directed graph of named vertices. Cycles are found with Tarjan's
strongly-connected-component algorithm, run iteratively so that deep
dependency chains are bounded by memory rather than the recursion limit.
"""

from collections.abc import Callable, Iterable

import structlog

from depgraph.graph import render
from depgraph.graph.vertex import Vertex

logger = structlog.get_logger(__name__)

Descendants = str | Iterable[str]


class CycleDetectedError(Exception):
    """Exception raised when a cycle is detected in the dependency graph.

    The graph is left in its mutated state; the cycles that were found are
    available as lists of vertex names.
    """

    def __init__(self, message: str, cycles: list[list[str]] | None = None):
        """Initialize the exception with a message and the detected cycles.

        Args:
            message: Human-readable description listing every cycle
            cycles: Detected cycles, each an ordered list of vertex names
        """
        super().__init__(message)
        self.message = message
        self.cycles = cycles or []


class UnknownVertexError(KeyError):
    """Exception raised when a traversal starts from a name never referenced."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown vertex: {self.name!r}"


def _as_names(descendants: Descendants) -> list[str]:
    if isinstance(descendants, str):
        return [descendants]
    return list(descendants)


class DependencyGraph:
    """Directed graph of named vertices and their dependency edges.

    Vertices live in an arena list and are resolved by name through an index
    table, so the same name always yields the same Vertex. Edges are stored
    as arena indices. Vertices are created on first reference, either as a
    key or as a descendant, and are never removed.

    Thread-safety:
        This class is NOT thread-safe. Traversals mutate per-vertex state, so
        even read-only queries must not run concurrently on one instance.
        Serialize access externally or work on a clone().

    Example:
        >>> graph = DependencyGraph()
        >>> graph.add("app", ["lib", "utils"])
        >>> graph.add("lib", "utils")
        >>> graph.get_descendants("app")
        ['utils', 'lib']
        >>> graph.has_cycle()
        False
    """

    def __init__(self):
        """Initialize an empty dependency graph."""
        self._vertices: list[Vertex] = []
        self._lookup: dict[str, int] = {}
        self._declared: set[str] = set()

    def __len__(self) -> int:
        return len(self._vertices)

    def __contains__(self, name: object) -> bool:
        return name in self._lookup

    def _ensure(self, name: str) -> int:
        """Return the arena index for name, creating an edgeless vertex if new."""
        idx = self._lookup.get(name)
        if idx is None:
            idx = len(self._vertices)
            self._vertices.append(Vertex(name))
            self._lookup[name] = idx
        return idx

    def _index_of(self, name: str) -> int:
        try:
            return self._lookup[name]
        except KeyError:
            raise UnknownVertexError(name) from None

    def _set_successors(self, key: str, names: list[str]) -> "DependencyGraph":
        # Descendants are registered before the key so a fresh key follows them
        successors = [self._ensure(name) for name in names]
        key_idx = self._ensure(key)
        self._vertices[key_idx].successors = successors
        self._declared.add(key)

        logger.debug(
            "vertex_added",
            key=key,
            descendants=names,
            descendant_count=len(names),
        )

        return self

    def add(self, key: str, descendants: Descendants) -> "DependencyGraph":
        """Set the successors of key, creating any vertex not yet known.

        The successor list of key is replaced, not merged, and keeps the given
        order including duplicates. Existing descendants keep their own edges.

        Args:
            key: Name of the dependent vertex
            descendants: A single name or a sequence of names key depends on

        Returns:
            This graph, for chaining

        Example:
            >>> graph = DependencyGraph()
            >>> graph.add("a", ["b"]).add("a", ["c"]).get_successors("a")
            ['c']
        """
        return self._set_successors(key, _as_names(descendants))

    def add_and_filter_descendants(
        self,
        key: str,
        descendants: Descendants,
        filter: Callable[[str], bool] | None = None,  # noqa: A002
    ) -> "DependencyGraph":
        """Like add(), dropping descendants rejected by filter.

        Rejected names get no edge and are not created by this call.

        Args:
            key: Name of the dependent vertex
            descendants: A single name or a sequence of names key depends on
            filter: Optional predicate; descendants for which it returns False
                are excluded

        Returns:
            This graph, for chaining
        """
        names = _as_names(descendants)
        if filter is not None:
            kept = [name for name in names if filter(name)]
            if len(kept) != len(names):
                logger.debug(
                    "descendants_filtered",
                    key=key,
                    dropped_count=len(names) - len(kept),
                )
            names = kept
        return self._set_successors(key, names)

    def add_and_verify(self, key: str, dependencies: Descendants) -> "DependencyGraph":
        """Add key's dependencies, then check the whole graph for cycles.

        The insertion is not rolled back when a cycle is found. Callers that
        need an all-or-nothing insertion should verify against a clone() first.

        Args:
            key: Name of the dependent vertex
            dependencies: A single name or a sequence of names key depends on

        Returns:
            This graph, for chaining

        Raises:
            CycleDetectedError: If the graph contains one or more cycles

        Example:
            >>> graph = DependencyGraph()
            >>> graph.add_and_verify("a", ["b"])
            >>> graph.add_and_verify("b", ["a"])  # Raises CycleDetectedError
        """
        self.add(key, dependencies)

        cycles = [[v.name for v in scc] for scc in self.get_cycles()]
        if cycles:
            message = render.format_cycle_message(cycles)
            logger.error(
                "cycles_detected",
                key=key,
                cycle_count=len(cycles),
                cycles=cycles,
            )
            raise CycleDetectedError(message, cycles)

        return self

    def reset(self) -> None:
        """Reset the traversal state of every vertex."""
        for vertex in self._vertices:
            vertex.reset()

    def dfs(self, key: str, visitor: Callable[[Vertex], None]) -> None:
        """Pre-order depth-first traversal from key.

        Successors are pushed in successor-list order, so among siblings the
        last-added edge is followed first. Each vertex is visited once.

        Args:
            key: Name of the start vertex
            visitor: Called with each vertex as it is first visited

        Raises:
            UnknownVertexError: If key has never been referenced
        """
        start = self._index_of(key)
        self.reset()

        stack = [start]
        while stack:
            vertex = self._vertices[stack.pop()]
            if vertex.visited:
                continue

            visitor(vertex)
            vertex.visited = True

            stack.extend(vertex.successors)

    def get_descendants(self, key: str) -> list[str]:
        """Return every vertex reachable from key, excluding key itself.

        Args:
            key: Name of the start vertex

        Returns:
            Vertex names in visitation order

        Raises:
            UnknownVertexError: If key has never been referenced
        """
        visited: list[str] = []
        self.dfs(key, lambda v: visited.append(v.name))
        # The start vertex is always visited first
        return visited[1:]

    def get_strongly_connected_components(self) -> list[list[Vertex]]:
        """Find strongly connected components using Tarjan's algorithm.

        Roots are tried in key order. Each component lists its vertices in
        the order they were popped, root last; components are returned in
        the order they close, which is the reverse topological order of the
        condensation graph.

        Returns:
            List of components, each a list of vertices
        """
        vertices = self._vertices
        for vertex in vertices:
            vertex.reset_tarjan()

        counter = 0
        stack: list[int] = []
        components: list[list[Vertex]] = []

        for root in range(len(vertices)):
            if vertices[root].is_discovered:
                continue

            # Each frame is (vertex index, position of next successor to try)
            frames: list[tuple[int, int]] = [(root, 0)]
            while frames:
                v_idx, pos = frames[-1]
                v = vertices[v_idx]

                if not v.is_discovered:
                    v.index = v.low_link = counter
                    counter += 1
                    stack.append(v_idx)
                    v.on_stack = True

                descended = False
                while pos < len(v.successors):
                    w_idx = v.successors[pos]
                    w = vertices[w_idx]
                    pos += 1
                    if not w.is_discovered:
                        frames[-1] = (v_idx, pos)
                        frames.append((w_idx, 0))
                        descended = True
                        break
                    if w.on_stack:
                        v.low_link = min(v.low_link, w.index)
                if descended:
                    continue

                frames.pop()

                if v.low_link == v.index:
                    component: list[Vertex] = []
                    while True:
                        w = vertices[stack.pop()]
                        w.on_stack = False
                        component.append(w)
                        if w is v:
                            break
                    components.append(component)

                if frames:
                    parent = vertices[frames[-1][0]]
                    parent.low_link = min(parent.low_link, v.low_link)

        logger.debug(
            "strongly_connected_components_computed",
            vertex_count=len(vertices),
            component_count=len(components),
        )

        return components

    def get_cycles(self) -> list[list[Vertex]]:
        """Return the strongly connected components with more than one vertex.

        A vertex with an edge to itself forms a singleton component and is
        not reported here; see get_self_dependencies().
        """
        return [scc for scc in self.get_strongly_connected_components() if len(scc) > 1]

    def has_cycle(self) -> bool:
        """Return True if get_cycles() finds at least one cycle."""
        return len(self.get_cycles()) > 0

    def get_self_dependencies(self) -> list[str]:
        """Return names of vertices that list themselves as a successor."""
        return [
            vertex.name
            for idx, vertex in enumerate(self._vertices)
            if idx in vertex.successors
        ]

    def get_vertex(self, name: str) -> Vertex:
        """Return the vertex registered under name.

        Raises:
            UnknownVertexError: If name has never been referenced
        """
        return self._vertices[self._index_of(name)]

    def get_successors(self, name: str) -> list[str]:
        """Return the successor names of a vertex in edge order.

        Raises:
            UnknownVertexError: If name has never been referenced
        """
        return [self._vertices[idx].name for idx in self.get_vertex(name).successors]

    def names(self) -> list[str]:
        """Return all vertex names in order of first reference."""
        return [vertex.name for vertex in self._vertices]

    def declared_keys(self) -> set[str]:
        """Return the names that have been added as keys."""
        return set(self._declared)

    def clone(self) -> "DependencyGraph":
        """Create an independent copy of the graph.

        Vertices are rebuilt through add() from successor names, so the copy
        shares no vertex objects with this graph. Traversal state is not
        copied.

        Returns:
            A new DependencyGraph with the same vertices and edges
        """
        new_graph = DependencyGraph()
        for vertex in self._vertices:
            new_graph.add(vertex.name, [self._vertices[idx].name for idx in vertex.successors])
        new_graph._declared = set(self._declared)

        logger.debug("dependency_graph_cloned", vertex_count=len(self._vertices))

        return new_graph

    def to_dot(self) -> str:
        """Render the graph as DOT text with cycles drawn as red clusters."""
        return render.to_dot(self)

    def get_stats(self) -> dict[str, int]:
        """Get statistics about the current graph.

        Returns:
            Dictionary with graph statistics including:
                - total_vertices: Number of vertices
                - total_edges: Number of edges, counting duplicates
                - cycle_count: Number of cycles found by get_cycles()
                - self_dependency_count: Number of vertices depending on themselves
        """
        stats = {
            "total_vertices": len(self._vertices),
            "total_edges": sum(len(v.successors) for v in self._vertices),
            "cycle_count": len(self.get_cycles()),
            "self_dependency_count": len(self.get_self_dependencies()),
        }

        logger.debug("graph_stats_retrieved", **stats)

        return stats
