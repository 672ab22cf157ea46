"""Call graph construction: models, package filtering, builder, fallback."""

from .builder import BuildState, CallGraphBuilder, TraversalState
from .fallback import synthesize_graph
from .filters import PackageFilter
from .models import CallGraph, MethodInfo

__all__ = [
    "BuildState",
    "CallGraph",
    "CallGraphBuilder",
    "MethodInfo",
    "PackageFilter",
    "TraversalState",
    "synthesize_graph",
]
