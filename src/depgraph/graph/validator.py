"""Graph validation with cycle and self-dependency reporting.

This module provides a report-style view over a DependencyGraph: every
cycle found by Tarjan's algorithm, every vertex that depends on itself, and
every vertex referenced as a dependency without being declared.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from depgraph.graph.render import format_cycle

if TYPE_CHECKING:
    from depgraph.graph.dependency_graph import DependencyGraph

logger = structlog.get_logger(__name__)


@dataclass
class ValidationReport:
    """Report containing validation results for a dependency graph.

    Attributes:
        is_valid: Whether the graph passed all validation checks
        errors: List of error messages (critical issues)
        warnings: List of warning messages (potential issues)
        cycles: List of detected cycles, each represented as a list of vertex names
        self_dependencies: Names of vertices with an edge to themselves
        undeclared: Names referenced as dependencies but never added as keys
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    self_dependencies: list[str] = field(default_factory=list)
    undeclared: set[str] = field(default_factory=set)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = []
        lines.append(f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append(f"Cycles: {len(self.cycles)}")
        lines.append(f"Self Dependencies: {len(self.self_dependencies)}")
        lines.append(f"Undeclared: {len(self.undeclared)}")

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {format_cycle(cycle)}")

        return "\n".join(lines)


class GraphValidator:
    """Validator for dependency graphs with detailed error reporting.

    Cycles are always errors. Self-dependencies are not cycles under
    DependencyGraph.get_cycles(), so they are reported on their own: as
    errors when flag_self_dependencies is set, otherwise as warnings.
    """

    def __init__(self, flag_self_dependencies: bool = False):
        """Initialize the graph validator.

        Args:
            flag_self_dependencies: Treat self-dependencies as errors
        """
        self.flag_self_dependencies = flag_self_dependencies

    def validate(self, graph: "DependencyGraph") -> ValidationReport:
        """Validate a dependency graph and generate a detailed report.

        Args:
            graph: The DependencyGraph to validate

        Returns:
            ValidationReport containing all validation results
        """
        logger.info("starting_graph_validation", vertex_count=len(graph))

        report = ValidationReport()

        cycles = [[v.name for v in scc] for scc in graph.get_cycles()]
        if cycles:
            report.cycles = cycles
            for cycle in cycles:
                report.add_error(f"Cycle detected: {format_cycle(cycle)}")

        self_deps = graph.get_self_dependencies()
        if self_deps:
            report.self_dependencies = self_deps
            for name in self_deps:
                message = f"Self dependency: {name} -> {name}"
                if self.flag_self_dependencies:
                    report.add_error(message)
                else:
                    report.add_warning(message)

        undeclared = set(graph.names()) - graph.declared_keys()
        if undeclared:
            report.undeclared = undeclared
            names = ", ".join(sorted(undeclared))
            report.add_warning(f"Referenced as dependencies but not declared: {names}")

        logger.info(
            "graph_validation_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
            warning_count=len(report.warnings),
        )

        return report
