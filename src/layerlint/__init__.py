"""
layerlint - Layered-architecture checks over method call graphs

Builds a bounded call graph for a method over a symbol index, classifies
every reached method into presentation, application, domain or
infrastructure, and reports layer-dependency, naming and signature
violations. Results are memoized in a TTL- and size-bounded disk cache.
"""

__version__ = "0.1.0"

from .analysis import Advisor, AnalysisResult, Analyzer
from .architecture import Layer, RuleEngine, RuleSet, Severity, Violation, ViolationType
from .cache import CacheKind, ResultCache
from .config import AnalysisConfig, load_config
from .graph import CallGraph, CallGraphBuilder, MethodInfo
from .resolution import InMemoryResolver, SymbolResolver

__all__ = [
    "Analyzer",  # Main entry point
    "AnalysisResult",
    "Advisor",
    "CallGraph",
    "CallGraphBuilder",
    "MethodInfo",
    "RuleEngine",
    "RuleSet",
    "Violation",
    "ViolationType",
    "Severity",
    "Layer",
    "ResultCache",
    "CacheKind",
    "AnalysisConfig",
    "load_config",
    "SymbolResolver",
    "InMemoryResolver",
]
