"""Tests for the depgraph command-line interface."""

from pathlib import Path

import pytest
import structlog

from depgraph.cli import load_manifest, main, parse_args
from depgraph.declarations import Declaration

ENV_VARS = [
    "DEPGRAPH_LOGGING_LEVEL",
    "DEPGRAPH_JSON_LOGS",
    "DEPGRAPH_FLAG_SELF_DEPENDENCIES",
    "DEPGRAPH_VERIFY_ON_ADD",
]


@pytest.fixture(autouse=True)
def clean_env_vars(monkeypatch):
    """Clean environment variables before each test."""
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def acyclic_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "deps.yaml"
    path.write_text(
        "logging_level: WARNING\n"
        "dependencies:\n"
        "  app: [lib, utils]\n"
        "  lib: utils\n"
        "  utils: []\n",
    )
    return path


@pytest.fixture
def cyclic_declarations(tmp_path: Path) -> Path:
    path = tmp_path / "deps.txt"
    path.write_text("a depends on b\nb: a\n")
    return path


class TestParseArgs:
    """Test argument parsing."""

    def test_check_command(self):
        args = parse_args(["check", "deps.yaml"])
        assert args.command == "check"
        assert args.manifest == Path("deps.yaml")
        assert args.log_level is None

    def test_descendants_command(self):
        args = parse_args(["--log-level", "DEBUG", "descendants", "deps.yaml", "app"])
        assert args.command == "descendants"
        assert args.name == "app"
        assert args.log_level == "DEBUG"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestLoadManifest:
    """Test manifest loading."""

    def test_yaml_manifest(self, acyclic_manifest):
        manifest = load_manifest(acyclic_manifest)
        assert manifest.dependencies["lib"] == ["utils"]

    def test_declarations_file(self, cyclic_declarations):
        """Test that non-YAML files are parsed as declarations."""
        manifest = load_manifest(cyclic_declarations)
        assert manifest.dependencies == {"a": ["b"], "b": ["a"]}

    def test_declarations_file_keeps_order(self, tmp_path):
        """Test that a redeclared key keeps every declaration in order."""
        path = tmp_path / "deps.txt"
        path.write_text("a: b\nb: a\na: c\n")

        manifest = load_manifest(path)

        assert manifest.declarations() == [
            Declaration("a", ["b"]),
            Declaration("b", ["a"]),
            Declaration("a", ["c"]),
        ]

    def test_declarations_file_env_overrides(self, cyclic_declarations, monkeypatch):
        """Test that DEPGRAPH_* overrides apply to text declarations."""
        monkeypatch.setenv("DEPGRAPH_FLAG_SELF_DEPENDENCIES", "true")
        monkeypatch.setenv("DEPGRAPH_VERIFY_ON_ADD", "false")

        manifest = load_manifest(cyclic_declarations)

        assert manifest.validation.flag_self_dependencies is True
        assert manifest.validation.verify_on_add is False

    def test_missing_declarations_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path / "missing.txt")


class TestMain:
    """Test CLI commands end to end."""

    def test_check_valid(self, acyclic_manifest, capsys):
        """Test that a valid manifest exits with 0."""
        exit_code = main(["check", str(acyclic_manifest)])

        assert exit_code == 0
        assert "Validation Status: PASS" in capsys.readouterr().out

    def test_check_cycle(self, cyclic_declarations, capsys):
        """Test that a cyclic manifest reports the cycle and exits with 1."""
        exit_code = main(["check", str(cyclic_declarations)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "Detected 1 cycle:" in out
        assert "a -> b -> a" in out

    def test_check_cycle_without_verify_on_add(self, tmp_path, capsys):
        """Test that the full report is printed when verification is off."""
        path = tmp_path / "deps.yaml"
        path.write_text(
            "logging_level: WARNING\n"
            "validation:\n"
            "  verify_on_add: false\n"
            "dependencies:\n"
            "  a: b\n"
            "  b: a\n",
        )

        exit_code = main(["check", str(path)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "Validation Status: FAIL" in out
        assert "1. a -> b -> a" in out

    def test_dot(self, tmp_path, capsys):
        """Test DOT output of a single edge."""
        path = tmp_path / "deps.txt"
        path.write_text("a: b\n")

        exit_code = main(["--log-level", "ERROR", "dot", str(path)])

        assert exit_code == 0
        assert capsys.readouterr().out == "digraph {\n  a -> b\n}\n"

    def test_dot_with_cycle(self, cyclic_declarations, capsys):
        """Test that dot renders cyclic graphs instead of failing."""
        exit_code = main(["--log-level", "ERROR", "dot", str(cyclic_declarations)])

        assert exit_code == 0
        assert "subgraph cluster0" in capsys.readouterr().out

    def test_descendants(self, acyclic_manifest, capsys):
        """Test listing descendants."""
        exit_code = main(["descendants", str(acyclic_manifest), "app"])

        assert exit_code == 0
        assert capsys.readouterr().out.splitlines() == ["utils", "lib"]

    def test_descendants_unknown(self, acyclic_manifest, capsys):
        """Test that an unknown vertex exits with 1."""
        exit_code = main(["descendants", str(acyclic_manifest), "missing"])

        assert exit_code == 1
        assert "Unknown vertex" in capsys.readouterr().err

    def test_missing_manifest(self, tmp_path, capsys):
        exit_code = main(["check", str(tmp_path / "missing.yaml")])

        assert exit_code == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_declarations(self, tmp_path, capsys):
        """Test that an unparseable declarations file exits with 1."""
        path = tmp_path / "deps.txt"
        path.write_text("not a declaration\n")

        exit_code = main(["check", str(path)])

        assert exit_code == 1
        assert "line 1" in capsys.readouterr().err

    def test_check_redeclared_key_verifies_each_declaration(self, tmp_path, capsys):
        """Test that a cycle closed and then reopened by a redeclaration is rejected."""
        path = tmp_path / "deps.txt"
        path.write_text("a: b\nb: a\na: c\n")

        exit_code = main(["check", str(path)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "Detected 1 cycle:" in out
        assert "a -> b -> a" in out

    def test_redeclared_key_keeps_superseded_vertices(self, tmp_path, capsys):
        """Test that names only referenced by an earlier declaration stay in the graph."""
        path = tmp_path / "deps.txt"
        path.write_text("a: b\na: c\n")

        exit_code = main(["--log-level", "ERROR", "descendants", str(path), "b"])

        assert exit_code == 0
        assert capsys.readouterr().out == ""

    def test_check_self_dependency_flagged_by_env(self, tmp_path, capsys, monkeypatch):
        """Test that DEPGRAPH_FLAG_SELF_DEPENDENCIES turns a text self-loop into an error."""
        path = tmp_path / "deps.txt"
        path.write_text("a: a\n")
        monkeypatch.setenv("DEPGRAPH_FLAG_SELF_DEPENDENCIES", "true")

        exit_code = main(["check", str(path)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "Validation Status: FAIL" in out
        assert "Self dependency: a -> a" in out

    def test_check_text_without_verify_by_env(self, cyclic_declarations, capsys, monkeypatch):
        """Test that DEPGRAPH_VERIFY_ON_ADD=false prints the full report for text files."""
        monkeypatch.setenv("DEPGRAPH_VERIFY_ON_ADD", "false")

        exit_code = main(["check", str(cyclic_declarations)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "Validation Status: FAIL" in out
        assert "1. a -> b -> a" in out

    def test_manifest_json_logs_applied(self, tmp_path):
        """Test that the manifest logging settings replace the startup configuration."""
        path = tmp_path / "deps.yaml"
        path.write_text(
            "logging_level: ERROR\n"
            "json_logs: true\n"
            "dependencies:\n"
            "  a: b\n",
        )

        exit_code = main(["check", str(path)])

        config = structlog.get_config()
        assert exit_code == 0
        assert config["cache_logger_on_first_use"] is False
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
