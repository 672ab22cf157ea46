"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..architecture.models import Severity
from ..config import AnalysisConfig, load_config

console = Console()

SEVERITY_STYLES = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}


def resolve_config(
    config: Optional[Path] = None,
    max_depth: Optional[int] = None,
    no_cache: bool = False,
    rules_db: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build config from CLI options."""
    overrides = {}
    if max_depth is not None:
        overrides["max_depth"] = max_depth
    if no_cache:
        overrides["cache_enabled"] = False
    if rules_db is not None:
        overrides["rules_db"] = str(rules_db)
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)
