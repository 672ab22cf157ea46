"""Call graph data models.

A CallGraph is a depth-bucketed record of every method reached from a root
(anchor) method. It tracks call *occurrences*: the same method may appear
several times in ``all_methods`` when reached through different call sites.
Explicit (caller, callee) signature pairs are recorded alongside; the depth
buckets are a derived view kept for display and for graphs that carry no
edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..architecture.models import Layer, SymbolMetadata


@dataclass(eq=False)
class MethodInfo:
    """Value snapshot of a resolved method symbol.

    Equality and hashing use ``signature`` so the same method reached twice
    compares equal.
    """

    method_name: str
    class_name: str
    return_type: str = "void"
    parameters: list[str] = field(default_factory=list)
    markers: list[str] = field(default_factory=list)
    type_markers: list[str] = field(default_factory=list)  # markers on the containing type
    package_name: Optional[str] = None
    layer: Layer = Layer.UNKNOWN  # corrected post-hoc by the rule engine

    def __post_init__(self) -> None:
        if self.package_name is None:
            self.package_name = derive_package_name(self.class_name)

    @property
    def signature(self) -> str:
        """``returnType className.methodName(params)``"""
        return f"{self.return_type} {self.class_name}.{self.method_name}({', '.join(self.parameters)})"

    @property
    def method_key(self) -> str:
        """``className.methodName``, the expansion guard key."""
        return f"{self.class_name}.{self.method_name}"

    @property
    def simple_class_name(self) -> str:
        return self.class_name.rsplit(".", 1)[-1]

    def metadata(self) -> SymbolMetadata:
        return SymbolMetadata(
            markers=tuple(self.type_markers) + tuple(self.markers),
            type_name=self.simple_class_name,
            namespace=self.package_name or "",
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MethodInfo):
            return NotImplemented
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(self.signature)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method_name": self.method_name,
            "class_name": self.class_name,
            "return_type": self.return_type,
            "parameters": list(self.parameters),
            "markers": list(self.markers),
            "type_markers": list(self.type_markers),
            "package_name": self.package_name,
            "layer": self.layer.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MethodInfo":
        if not isinstance(data, dict):
            raise ValueError(f"method record must be a mapping, got {type(data).__name__}")
        return cls(
            method_name=data["method_name"],
            class_name=data["class_name"],
            return_type=data.get("return_type", "void"),
            parameters=list(data.get("parameters", [])),
            markers=list(data.get("markers", [])),
            type_markers=list(data.get("type_markers", [])),
            package_name=data.get("package_name"),
            layer=Layer.parse(data.get("layer")),
        )


def derive_package_name(class_name: str) -> str:
    """Everything before the last ``.`` of a qualified class name."""
    if "." in class_name:
        return class_name.rsplit(".", 1)[0]
    return ""


class CallGraph:
    """Depth-bucketed call graph rooted at an anchor method.

    Depth 0 is the root; its direct callees sit at depth 1.
    """

    def __init__(self, root: Optional[MethodInfo] = None, is_fallback: bool = False) -> None:
        self._root: Optional[MethodInfo] = None
        self.calls_by_depth: dict[int, list[MethodInfo]] = {}
        self.all_methods: list[MethodInfo] = []
        self.calls: list[tuple[int, MethodInfo]] = []  # (depth, method) in insertion order
        self.edges: list[tuple[str, str]] = []
        self.is_fallback = is_fallback
        if root is not None:
            self.root = root

    @property
    def root(self) -> Optional[MethodInfo]:
        return self._root

    @root.setter
    def root(self, method: MethodInfo) -> None:
        if self._root is not None:
            raise ValueError("CallGraph root can only be set once")
        self._root = method
        self.all_methods.insert(0, method)

    def add_call(self, method: MethodInfo, depth: int, caller: Optional[MethodInfo] = None) -> None:
        """Record that ``method`` was reached at ``depth`` (from ``caller``)."""
        if depth < 1:
            raise ValueError(f"call depth must be >= 1, got {depth}")
        self.calls_by_depth.setdefault(depth, []).append(method)
        self.calls.append((depth, method))
        self.all_methods.append(method)
        if caller is not None:
            self.edges.append((caller.signature, method.signature))

    def methods_at(self, depth: int) -> list[MethodInfo]:
        if depth == 0:
            return [self._root] if self._root is not None else []
        return list(self.calls_by_depth.get(depth, []))

    @property
    def max_depth(self) -> int:
        return max(self.calls_by_depth, default=0)

    @property
    def total_method_count(self) -> int:
        return len(self.all_methods)

    def unique_methods(self) -> list[MethodInfo]:
        """Flat method list with repeated signatures dropped, first seen wins."""
        seen: set[str] = set()
        unique = []
        for method in self.all_methods:
            if method.signature not in seen:
                seen.add(method.signature)
                unique.append(method)
        return unique

    def method_by_signature(self) -> dict[str, MethodInfo]:
        return {m.signature: m for m in reversed(self.all_methods)}

    def call_edges(self) -> list[tuple[MethodInfo, MethodInfo]]:
        """Caller/callee pairs, deduplicated, in discovery order.

        Uses the explicit edges captured during traversal. A graph without
        recorded edges falls back to the depth-bucket approximation: every
        method at depth D is treated as a caller of every method at D+1.
        """
        pairs: list[tuple[MethodInfo, MethodInfo]] = []
        seen: set[tuple[str, str]] = set()

        if self.edges:
            lookup = self.method_by_signature()
            for caller_sig, callee_sig in self.edges:
                if (caller_sig, callee_sig) in seen:
                    continue
                caller, callee = lookup.get(caller_sig), lookup.get(callee_sig)
                if caller is None or callee is None:
                    continue
                seen.add((caller_sig, callee_sig))
                pairs.append((caller, callee))
            return pairs

        for depth in range(0, self.max_depth):
            for caller in self.methods_at(depth):
                for callee in self.methods_at(depth + 1):
                    key = (caller.signature, callee.signature)
                    if key not in seen:
                        seen.add(key)
                        pairs.append((caller, callee))
        return pairs

    def to_tree_string(self) -> str:
        """Indented text rendering, one line per call occurrence."""
        lines = []
        if self._root is not None:
            lines.append(f"Root: {self._root.signature}")
        for depth in range(1, self.max_depth + 1):
            for method in self.methods_at(depth):
                lines.append(f"{'  ' * depth}├─ {method.signature}")
        return "\n".join(lines) + ("\n" if lines else "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self._root.to_dict() if self._root is not None else None,
            "calls": [{"depth": depth, "method": m.to_dict()} for depth, m in self.calls],
            "edges": [list(edge) for edge in self.edges],
            "is_fallback": self.is_fallback,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CallGraph":
        if not isinstance(data, dict):
            raise ValueError(f"call graph record must be a mapping, got {type(data).__name__}")
        root_data = data.get("root")
        graph = cls(
            root=MethodInfo.from_dict(root_data) if root_data else None,
            is_fallback=bool(data.get("is_fallback", False)),
        )
        for call in data.get("calls", []):
            graph.add_call(MethodInfo.from_dict(call["method"]), int(call["depth"]))
        graph.edges = [(caller, callee) for caller, callee in data.get("edges", [])]
        return graph

    def __repr__(self) -> str:
        root_name = self._root.method_name if self._root is not None else None
        return (
            f"CallGraph(root={root_name!r}, total_methods={self.total_method_count}, "
            f"max_depth={self.max_depth})"
        )
