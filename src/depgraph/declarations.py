"""Parser for plain-text dependency declarations.

Each non-blank line declares one key and the names it depends on:

    app depends on lib, utils
    lib requires utils
    cli: app

Lines starting with ``#`` are comments.
"""

import re
from dataclasses import dataclass, field
from typing import ClassVar

import structlog

from depgraph.graph.dependency_graph import DependencyGraph

logger = structlog.get_logger(__name__)


class DeclarationError(ValueError):
    """Raised when a declaration line cannot be parsed."""

    def __init__(self, line_number: int, line: str):
        super().__init__(f"Invalid declaration on line {line_number}: {line!r}")
        self.line_number = line_number
        self.line = line


@dataclass
class Declaration:
    """A single "key depends on dependencies" statement."""

    key: str
    dependencies: list[str] = field(default_factory=list)


class DeclarationParser:
    """Parser for dependency declaration text."""

    DECLARATION_PATTERNS: ClassVar[list[str]] = [
        r"^(?P<key>[^\s:,#]+)\s+depends\s+on\s+(?P<deps>.+)$",
        r"^(?P<key>[^\s:,#]+)\s+requires\s+(?P<deps>.+)$",
        r"^(?P<key>[^\s:,#]+)\s*:\s*(?P<deps>.*)$",
    ]

    def __init__(self):
        """Initialize the declaration parser."""
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in self.DECLARATION_PATTERNS
        ]

    def parse(self, text: str) -> list[Declaration]:
        """Parse every declaration in text.

        Args:
            text: Declaration text, one declaration per line

        Returns:
            Declarations in file order

        Raises:
            DeclarationError: If a non-comment line matches no known form

        Examples:
            >>> DeclarationParser().parse("a depends on b, c")
            [Declaration(key='a', dependencies=['b', 'c'])]
        """
        declarations = []

        for line_number, raw in enumerate(text.splitlines(), 1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            declarations.append(self._parse_line(line_number, line))

        logger.debug("declarations_parsed", count=len(declarations))

        return declarations

    def _parse_line(self, line_number: int, line: str) -> Declaration:
        for pattern in self.compiled_patterns:
            match = pattern.match(line)
            if match:
                deps = [dep.strip() for dep in match.group("deps").split(",")]
                return Declaration(match.group("key"), [dep for dep in deps if dep])

        logger.warning("invalid_declaration", line_number=line_number, line=line)
        raise DeclarationError(line_number, line)


def load_into(
    graph: DependencyGraph,
    declarations: list[Declaration],
    verify: bool = True,
) -> DependencyGraph:
    """Apply declarations to a graph in order.

    Args:
        graph: Graph to mutate
        declarations: Declarations to add
        verify: Check for cycles after each declaration

    Returns:
        The mutated graph

    Raises:
        CycleDetectedError: If verify is set and a declaration closes a cycle
    """
    for decl in declarations:
        if verify:
            graph.add_and_verify(decl.key, decl.dependencies)
        else:
            graph.add(decl.key, decl.dependencies)
    return graph
