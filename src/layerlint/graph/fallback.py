"""Synthetic call graph used when the symbol index cannot be queried.

The pattern is fixed so results stay deterministic: the root calls a
repository lookup and a validation service, and each of those repeats the
same two calls one level deeper.
"""

from __future__ import annotations

from ..architecture.layers import classify_class_name
from .models import CallGraph, MethodInfo

SYNTHETIC_PACKAGE = "com.example.demo"
SYNTHETIC_LIMIT = 3

# (method, class) pairs appended below every expanded synthetic node
SYNTHETIC_CALLS = (
    ("findById", "UserRepository"),
    ("validateUser", "ValidationService"),
)


def synthetic_method(method_name: str, class_name: str) -> MethodInfo:
    """MethodInfo with placeholder signature data and a name-inferred layer."""
    return MethodInfo(
        method_name=method_name,
        class_name=class_name,
        return_type="Object",
        parameters=["Object param"],
        markers=["@Override"],
        package_name=SYNTHETIC_PACKAGE,
        layer=classify_class_name(class_name),
    )


def synthesize_graph(method_name: str, class_name: str, limit: int = SYNTHETIC_LIMIT) -> CallGraph:
    """Build the fallback graph for ``class_name.method_name``."""
    root = synthetic_method(method_name, class_name)
    graph = CallGraph(root=root, is_fallback=True)
    _simulate(graph, root, 0, limit)
    return graph


def _simulate(graph: CallGraph, caller: MethodInfo, depth: int, limit: int) -> None:
    # Only depths 0 and 1 expand, so entries land at depths 1 and 2.
    if depth >= limit or depth >= 2:
        return
    callees = [synthetic_method(name, owner) for name, owner in SYNTHETIC_CALLS]
    for callee in callees:
        graph.add_call(callee, depth + 1, caller=caller)
    for callee in callees:
        _simulate(graph, callee, depth + 1, limit)
