"""Exception hierarchy for layerlint."""

from .analysis import (
    AnalysisCancelled,
    AnalysisError,
    CacheCorruption,
    MalformedRuleData,
    ResolutionUnavailable,
    RuleStorageUnavailable,
)
from .base import LayerlintError
from .config import ConfigurationError, InvalidConfigError

__all__ = [
    "LayerlintError",
    "AnalysisError",
    "ResolutionUnavailable",
    "RuleStorageUnavailable",
    "MalformedRuleData",
    "CacheCorruption",
    "AnalysisCancelled",
    "ConfigurationError",
    "InvalidConfigError",
]
