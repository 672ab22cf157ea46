"""Analysis-related exceptions: symbol resolution, rule data, cache payloads.

None of these reach the caller of the analysis core. Each one marks a
locally recovered condition: the builder falls back to a synthetic graph,
the rule engine falls back to built-in rules, the cache reports a miss.
"""

from typing import Optional

from .base import LayerlintError


class AnalysisError(LayerlintError):
    """Base class for analysis-related errors."""
    pass


class ResolutionUnavailable(AnalysisError):
    """Raised when the symbol index cannot answer a query."""

    def __init__(self, reason: str, query: Optional[str] = None):
        details = {"reason": reason}
        if query:
            details["query"] = query
        super().__init__("Symbol resolution unavailable", details=details)
        self.reason = reason
        self.query = query


class RuleStorageUnavailable(AnalysisError):
    """Raised when the rule store cannot be read at all."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Rule storage unavailable: {source}",
            details={"source": source, "reason": reason},
        )
        self.source = source
        self.reason = reason


class MalformedRuleData(AnalysisError):
    """Raised when a single stored rule category cannot be parsed."""

    def __init__(self, category: str, reason: str):
        super().__init__(
            f"Malformed rule data for category '{category}'",
            details={"category": category, "reason": reason},
        )
        self.category = category
        self.reason = reason


class CacheCorruption(AnalysisError):
    """Raised when a cached payload fails to deserialize."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Corrupt cache entry: {key}",
            details={"key": key, "reason": reason},
        )
        self.key = key
        self.reason = reason


class AnalysisCancelled(AnalysisError):
    """Raised when the caller cancels between graph build and rule evaluation."""

    def __init__(self, method_key: str):
        super().__init__("Analysis cancelled", details={"method": method_key})
        self.method_key = method_key
