"""Configuration management for dependsight."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from dependsight.errors import ConfigurationError

CONFIG_FILENAMES = (".dependsight.yml", ".dependsight.yaml")

DEFAULT_EXTENSIONS = [".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"]
DEFAULT_EXCLUDE_PATTERNS = ["node_modules", "dist", "build", ".git", "coverage"]


class ScannerConfig(BaseModel):
    """Configuration for manifest reading and source file discovery."""

    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="Source file extensions to analyze",
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Patterns to exclude from file discovery",
    )
    exclude_dev: bool = Field(
        default=False,
        description="Exclude development dependencies",
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Normalize extensions to a leading dot."""
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]


class RegistryConfig(BaseModel):
    """Configuration for the npm registry client."""

    url: str = Field(
        default="https://registry.npmjs.org",
        description="npm registry base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries on server and connection errors",
    )


class GitHubConfig(BaseModel):
    """Configuration for GitHub release lookups."""

    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API URL",
    )
    token: str | None = Field(
        default=None,
        description="GitHub personal access token (prefer GITHUB_TOKEN env var)",
    )
    max_release_pages: int = Field(
        default=3,
        ge=1,
        description="Maximum pages of 100 releases fetched per repository",
    )
    releases_timeout: float | None = Field(
        default=20.0,
        gt=0,
        description="Seconds allowed for listing one repository's releases (null disables)",
    )


class ImpactConfig(BaseModel):
    """Configuration for the impact analysis stage."""

    max_concurrency: int = Field(
        default=8,
        ge=1,
        description="Dependencies resolved in parallel",
    )
    dependency_timeout: float | None = Field(
        default=60.0,
        gt=0,
        description="Per-dependency resolution timeout in seconds (null disables)",
    )
    min_relevance: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Minimum relevance score to report",
    )


class DependsightConfig(BaseModel):
    """Complete dependsight configuration."""

    version: int = Field(default=1, description="Configuration file version")
    log_level: str = Field(default="INFO", description="Log level")
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    impact: ImpactConfig = Field(default_factory=ImpactConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v.upper()


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest .dependsight.yml configuration file.

    Searches from start_path up to the root directory.

    Args:
        start_path: Starting directory for search (defaults to cwd).

    Returns:
        Path to config file if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.exists():
                return config_path

        if current == current.parent:
            return None
        current = current.parent


def load_config(
    config_path: Path | None = None,
    env_prefix: str = "DEPENDSIGHT_",
) -> DependsightConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Defaults

    Args:
        config_path: Path to config file (searches if not provided).
        env_prefix: Prefix for environment variables.

    Returns:
        Loaded configuration.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                file_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid configuration file {config_path}: {e}",
                hint="Check the YAML syntax.",
            ) from e
        if file_data:
            config_data = file_data

    github_token = os.environ.get("GITHUB_TOKEN")
    if github_token:
        config_data.setdefault("github", {})["token"] = github_token

    registry_url = os.environ.get(f"{env_prefix}REGISTRY_URL")
    if registry_url:
        config_data.setdefault("registry", {})["url"] = registry_url

    log_level = os.environ.get(f"{env_prefix}LOG_LEVEL")
    if log_level:
        config_data["log_level"] = log_level

    try:
        return DependsightConfig(**config_data)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            hint="Run 'dependsight config show' to inspect the active settings.",
        ) from e


def generate_example_config() -> str:
    """Generate an example configuration file.

    Returns:
        YAML string of example configuration.
    """
    example = """# dependsight configuration

version: 1

# DEBUG, INFO, WARNING, ERROR or CRITICAL
log_level: INFO

# Manifest and source discovery
scanner:
  extensions: [".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"]
  exclude_patterns:
    - node_modules
    - dist
    - build
    - .git
    - coverage
  exclude_dev: false

# npm registry
registry:
  url: https://registry.npmjs.org
  timeout: 30
  max_retries: 3

# GitHub release notes (token via GITHUB_TOKEN env var)
github:
  api_url: https://api.github.com
  max_release_pages: 3
  releases_timeout: 20

# Impact analysis
impact:
  max_concurrency: 8
  dependency_timeout: 60
  min_relevance: 50
"""
    return example
