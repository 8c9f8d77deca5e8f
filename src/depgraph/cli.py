"""Command-line interface for depgraph.

Loads dependency declarations from a YAML manifest or a plain-text
declarations file, then checks them for cycles, renders them as DOT, or
lists the descendants of a vertex.
"""

import argparse
import sys
from pathlib import Path

import structlog

from depgraph.config import DepGraphConfig
from depgraph.declarations import DeclarationParser
from depgraph.graph.dependency_graph import CycleDetectedError, UnknownVertexError
from depgraph.graph.validator import GraphValidator
from depgraph.log_config import bind_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def load_manifest(path: Path) -> DepGraphConfig:
    """Load a manifest, parsing non-YAML files as text declarations.

    Args:
        path: Path to a YAML manifest or a declarations file

    Returns:
        Manifest with the declared dependencies

    Raises:
        FileNotFoundError: If the file doesn't exist
        DeclarationError: If a declarations file contains an invalid line
    """
    if path.suffix.lower() in YAML_SUFFIXES:
        return DepGraphConfig.from_yaml(path)

    if not path.exists():
        msg = f"Declarations file not found: {path}"
        raise FileNotFoundError(msg)

    return DepGraphConfig.from_declarations(DeclarationParser().parse(path.read_text()))


def cmd_check(manifest: DepGraphConfig) -> int:
    """Validate the manifest and print the report summary."""
    if manifest.validation.verify_on_add:
        try:
            graph = manifest.build_graph(verify=True)
        except CycleDetectedError as e:
            print(e.message)
            return 1
    else:
        graph = manifest.build_graph(verify=False)

    validator = GraphValidator(
        flag_self_dependencies=manifest.validation.flag_self_dependencies,
    )
    report = validator.validate(graph)
    print(report.summary())
    return 0 if report.is_valid else 1


def cmd_dot(manifest: DepGraphConfig) -> int:
    graph = manifest.build_graph(verify=False)
    sys.stdout.write(graph.to_dot())
    return 0


def cmd_descendants(manifest: DepGraphConfig, name: str) -> int:
    graph = manifest.build_graph(verify=False)
    try:
        descendants = graph.get_descendants(name)
    except UnknownVertexError as e:
        logger.error("unknown_vertex", name=name)
        print(str(e), file=sys.stderr)
        return 1

    for descendant in descendants:
        print(descendant)
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="depgraph",
        description="Validate dependency declarations and detect circular dependencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check a manifest for cycles
  depgraph check deps.yaml

  # Render the graph with cycles highlighted
  depgraph dot deps.txt | dot -Tsvg > deps.svg

  # List everything "app" depends on, directly or not
  depgraph descendants deps.yaml app
        """,
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default: from manifest, else WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Render logs as JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check declarations for cycles")
    check.add_argument("manifest", type=Path, help="YAML manifest or declarations file")

    dot = subparsers.add_parser("dot", help="Print the graph in DOT format")
    dot.add_argument("manifest", type=Path, help="YAML manifest or declarations file")

    descendants = subparsers.add_parser("descendants", help="List descendants of a vertex")
    descendants.add_argument("manifest", type=Path, help="YAML manifest or declarations file")
    descendants.add_argument("name", help="Vertex name")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    # Loggers are not cached so the manifest settings below reach every module
    configure_logging(
        level=args.log_level or "WARNING",
        json_logs=args.json_logs,
        cache_loggers=False,
    )
    bind_context(manifest=str(args.manifest))

    try:
        manifest = load_manifest(args.manifest)

        configure_logging(
            level=args.log_level or manifest.logging_level,
            json_logs=args.json_logs or manifest.json_logs,
            cache_loggers=False,
        )

        if args.command == "check":
            return cmd_check(manifest)
        if args.command == "dot":
            return cmd_dot(manifest)
        return cmd_descendants(manifest, args.name)

    except FileNotFoundError as e:
        logger.error("manifest_not_found", error=str(e))
        print(str(e), file=sys.stderr)
        return 1

    except ValueError as e:
        # DeclarationError and pydantic.ValidationError are both ValueErrors
        logger.error("manifest_invalid", error=str(e))
        print(str(e), file=sys.stderr)
        return 1

    finally:
        clear_context()


if __name__ == "__main__":
    sys.exit(main())
