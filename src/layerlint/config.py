"""Configuration loading and management for layerlint.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.layerlint.toml)
    3. Project config (./layerlint.toml)
    4. Explicit config file
    5. Environment variables (LAYERLINT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(max_depth=3)
    >>> config.max_depth
    3
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError

Verbosity = Literal["quiet", "normal", "verbose"]

# Standard-library and common third-party namespace roots.
DEFAULT_EXCLUDE_PACKAGES: tuple[str, ...] = (
    "java.",
    "javax.",
    "jakarta.",
    "jdk.",
    "sun.",
    "kotlin.",
    "org.springframework.",
    "org.jetbrains.",
    "com.intellij.",
    "com.fasterxml.",
    "com.google.",
    "org.apache.",
    "org.slf4j.",
    "ch.qos.logback.",
    "org.hibernate.",
    "org.mybatis.",
    "org.junit.",
    "org.testng.",
)


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for call-graph analysis, rule loading and caching.

    Attributes:
        Traversal bounds:
            max_depth: Maximum downward call depth from the root
            max_up_hops: Maximum caller hops searched for a presentation anchor

        Package filtering:
            include_packages: Allowlist of class-name prefixes (empty = all)
            exclude_packages: Class-name prefixes always dropped from the graph

        Caching:
            cache_enabled: Enable the result cache
            cache_dir: Directory for cache storage
            cache_ttl_minutes: Entry time-to-live from insertion
            cache_sweep_minutes: Interval of the background expiry sweep
            cache_max_entries: Entry ceiling that triggers FIFO eviction

        Rules:
            rules_db: Optional SQLite rule store path (None = built-in rules)

        Output control:
            verbosity: Logging verbosity level
    """

    # Traversal bounds
    max_depth: int = 5
    max_up_hops: int = 8

    # Package filtering
    include_packages: list[str] = field(default_factory=list)
    exclude_packages: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PACKAGES))

    # Caching
    cache_enabled: bool = True
    cache_dir: str = ".layerlint-cache"
    cache_ttl_minutes: float = 30.0
    cache_sweep_minutes: float = 10.0
    cache_max_entries: int = 1000

    # Rules
    rules_db: Optional[str] = None

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if self.max_up_hops < 0:
            raise ValueError("max_up_hops must be non-negative")

        if self.cache_ttl_minutes <= 0:
            raise ValueError("cache_ttl_minutes must be positive")
        if self.cache_sweep_minutes <= 0:
            raise ValueError("cache_sweep_minutes must be positive")
        if self.cache_max_entries < 1:
            raise ValueError("cache_max_entries must be at least 1")

        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError("verbosity must be one of quiet, normal, verbose")

    @property
    def cache_ttl_seconds(self) -> float:
        """Get cache TTL in seconds."""
        return self.cache_ttl_minutes * 60

    @property
    def cache_sweep_seconds(self) -> float:
        """Get sweep interval in seconds."""
        return self.cache_sweep_minutes * 60


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".layerlint.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "layerlint.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return AnalysisConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from LAYERLINT_* environment variables.

    List fields accept comma-separated prefixes, e.g.
    ``LAYERLINT_INCLUDE_PACKAGES=com.acme.,org.acme.``.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"LAYERLINT_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list:
        return [part.strip() for part in value.split(",") if part.strip()]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    with open(path, "rb") as f:
        return tomllib.load(f)
