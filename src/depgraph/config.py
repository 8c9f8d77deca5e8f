"""Configuration Management with Pydantic.

This module implements the depgraph manifest model using Pydantic for
parsing and validation of YAML files with environment variable overrides.
A manifest carries both the tool settings and the dependency declarations:

    logging_level: INFO
    validation:
      flag_self_dependencies: true
    dependencies:
      app: [lib, utils]
      lib: utils
"""

import os
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator

from depgraph.declarations import Declaration, load_into
from depgraph.graph.dependency_graph import DependencyGraph

logger = structlog.get_logger(__name__)

TRUE_VALUES = ("true", "1", "yes")


class ValidationConfig(BaseModel):
    """Validation behaviour settings.

    Attributes:
        flag_self_dependencies: Report self-dependencies as errors instead of warnings
        verify_on_add: Check for cycles after each declaration is added
    """

    flag_self_dependencies: bool = Field(
        default=False,
        description="Treat self-dependencies as errors",
    )
    verify_on_add: bool = Field(
        default=True,
        description="Verify the graph after each declaration",
    )


class DepGraphConfig(BaseModel):
    """Main manifest combining settings and dependency declarations.

    Attributes:
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render logs as JSON
        validation: Validation settings
        dependencies: Mapping of each key to the names it depends on
    """

    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON",
    )
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    dependencies: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Dependency declarations",
    )
    _ordered: list[Declaration] | None = PrivateAttr(default=None)

    @field_validator("logging_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def coerce_dependencies(cls, v: object) -> object:
        """Accept a single name or null in place of a list of names.

        Args:
            v: The raw dependencies mapping

        Returns:
            Mapping with every value as a list
        """
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        coerced = {}
        for key, deps in v.items():
            if deps is None:
                coerced[key] = []
            elif isinstance(deps, str):
                coerced[key] = [deps]
            else:
                coerced[key] = deps
        return coerced

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DepGraphConfig":
        """Load a manifest from a YAML file.

        Args:
            path: Path to the YAML manifest

        Returns:
            Parsed and validated DepGraphConfig instance

        Raises:
            FileNotFoundError: If the manifest doesn't exist
            ValueError: If the manifest is empty or not valid YAML
            pydantic.ValidationError: If the manifest fails validation
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not config_data:
            msg = "Configuration file is empty"
            raise ValueError(msg)

        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))

        logger.info(
            "configuration_loaded",
            declaration_count=len(config.dependencies),
            logging_level=config.logging_level,
        )

        return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: DEPGRAPH_<KEY>

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("logging_level",): "DEPGRAPH_LOGGING_LEVEL",
            ("json_logs",): "DEPGRAPH_JSON_LOGS",
            ("validation", "flag_self_dependencies"): "DEPGRAPH_FLAG_SELF_DEPENDENCIES",
            ("validation", "verify_on_add"): "DEPGRAPH_VERIFY_ON_ADD",
        }
        bool_vars = {
            "DEPGRAPH_JSON_LOGS",
            "DEPGRAPH_FLAG_SELF_DEPENDENCIES",
            "DEPGRAPH_VERIFY_ON_ADD",
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            if env_var in bool_vars:
                current[path[-1]] = value.lower() in TRUE_VALUES
            else:
                current[path[-1]] = value

            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data

    @classmethod
    def from_declarations(cls, declarations: list[Declaration]) -> "DepGraphConfig":
        """Build a manifest from parsed text declarations.

        Settings take their defaults plus any DEPGRAPH_* environment
        overrides. The declarations are kept in order, so a key declared more
        than once is applied (and verified) once per declaration.

        Args:
            declarations: Declarations in file order

        Returns:
            Manifest carrying the ordered declarations
        """
        dependencies: dict[str, list[str]] = {}
        for decl in declarations:
            dependencies[decl.key] = list(decl.dependencies)

        config = cls(**cls._apply_env_overrides({"dependencies": dependencies}))
        config._ordered = [Declaration(d.key, list(d.dependencies)) for d in declarations]

        logger.info("declarations_loaded", declaration_count=len(declarations))

        return config

    def declarations(self) -> list[Declaration]:
        """Return the declarations in the order they were written."""
        if self._ordered is not None:
            return [Declaration(d.key, list(d.dependencies)) for d in self._ordered]
        return [Declaration(key, list(deps)) for key, deps in self.dependencies.items()]

    def build_graph(self, verify: bool | None = None) -> DependencyGraph:
        """Build a graph from the declared dependencies.

        Declarations are added in manifest order.

        Args:
            verify: Check for cycles after each declaration; defaults to
                validation.verify_on_add

        Raises:
            CycleDetectedError: If verification is on and a cycle is introduced
        """
        if verify is None:
            verify = self.validation.verify_on_add
        return load_into(DependencyGraph(), self.declarations(), verify=verify)


def load_config(config_path: str | Path) -> DepGraphConfig:
    """Load a manifest from file."""
    return DepGraphConfig.from_yaml(config_path)


__all__ = [
    "DepGraphConfig",
    "ValidationConfig",
    "load_config",
]
