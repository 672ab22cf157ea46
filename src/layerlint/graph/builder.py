"""Call graph construction over a symbol resolver.

A build runs in two phases:

1. Upward anchoring. Unless the target is already a presentation-layer
   method, a breadth-first search over "who references this" looks for the
   nearest presentation method (bounded by ``max_up_hops``). The first one
   found becomes the root; otherwise the target itself does.
2. Downward traversal. A depth-first walk from the root, bounded by
   ``max_depth``, appends every resolved callee that passes the package
   filter. Abstract methods are walked through their overriding
   implementations. A method is expanded (its body walked) at most once per
   build, though it may be appended many times.

Any resolver failure abandons the real graph and returns the synthetic one
from :mod:`.fallback`. ``build`` never raises.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional

from ..architecture.layers import HeuristicLayerClassifier, LayerClassifier
from ..architecture.models import Layer
from ..exceptions import ResolutionUnavailable
from ..logging_config import get_logger
from .fallback import synthesize_graph
from .filters import PackageFilter
from .models import CallGraph, MethodInfo

if TYPE_CHECKING:
    from ..config import AnalysisConfig
    from ..resolution.base import Symbol, SymbolResolver

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_UP_HOPS = 8


class BuildState(Enum):
    """Lifecycle of a single ``build()`` call."""

    IDLE = "idle"
    ANCHOR_RESOLVE = "anchor_resolve"
    ANCHORED = "anchored"
    FALLBACK = "fallback"
    TRAVERSE = "traverse"
    DONE = "done"


@dataclass
class TraversalState:
    """Visited bookkeeping for one build, owned outside the walk itself."""

    anchor_visited: set[str] = field(default_factory=set)  # signatures seen going up
    max_hops_reached: int = 0
    expanded: set[str] = field(default_factory=set)  # method keys whose body was walked
    expansion_order: list[str] = field(default_factory=list)


class CallGraphBuilder:
    """Builds bounded, cycle-safe call graphs for a method."""

    def __init__(
        self,
        resolver: "SymbolResolver",
        classifier: Optional[LayerClassifier] = None,
        package_filter: Optional[PackageFilter] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_up_hops: int = DEFAULT_MAX_UP_HOPS,
    ) -> None:
        self.resolver = resolver
        self.classifier = classifier or HeuristicLayerClassifier()
        self.package_filter = package_filter or PackageFilter()
        self.max_depth = max_depth
        self.max_up_hops = max_up_hops

        self.state = BuildState.IDLE
        self.traversal = TraversalState()

    @classmethod
    def from_config(
        cls,
        resolver: "SymbolResolver",
        config: "AnalysisConfig",
        classifier: Optional[LayerClassifier] = None,
    ) -> "CallGraphBuilder":
        return cls(
            resolver,
            classifier=classifier,
            package_filter=PackageFilter.from_config(config),
            max_depth=config.max_depth,
            max_up_hops=config.max_up_hops,
        )

    def build(self, method_name: str, class_name: str) -> CallGraph:
        """Build the call graph for ``class_name.method_name``."""
        self.state = BuildState.IDLE
        self.traversal = TraversalState()

        try:
            with self.resolver.read_scope():
                self.state = BuildState.ANCHOR_RESOLVE
                target = self.resolver.resolve_method(class_name, method_name)
                if target is None:
                    logger.info(
                        "Method %s.%s not found in index, using synthetic graph",
                        class_name,
                        method_name,
                    )
                    return self._fallback(method_name, class_name)

                root_symbol = self._find_anchor(target)
                self.state = BuildState.ANCHORED
                graph = CallGraph(root=self._snapshot(root_symbol))

                self.state = BuildState.TRAVERSE
                self._traverse(root_symbol, graph)
        except ResolutionUnavailable as e:
            logger.warning("Symbol index unavailable (%s), using synthetic graph", e)
            return self._fallback(method_name, class_name)
        except Exception as e:
            logger.warning(
                "Resolver failed while analyzing %s.%s: %s", class_name, method_name, e
            )
            return self._fallback(method_name, class_name)

        self.state = BuildState.DONE
        logger.debug(
            "Built graph for %s: %d methods, max depth %d",
            graph.root.method_key,
            graph.total_method_count,
            graph.max_depth,
        )
        return graph

    # ── phase 1: upward anchoring ────────────────────────────────

    def _find_anchor(self, target: "Symbol") -> "Symbol":
        if self._layer_of(target) is Layer.PRESENTATION:
            return target

        visited = self.traversal.anchor_visited
        queue: deque[tuple["Symbol", int]] = deque([(target, 0)])

        while queue:
            current, hops = queue.popleft()
            if current.signature in visited:
                continue
            visited.add(current.signature)
            self.traversal.max_hops_reached = max(self.traversal.max_hops_reached, hops)

            if self._layer_of(current) is Layer.PRESENTATION:
                logger.debug("Anchored %s at %s (%d hops)", target.method_key, current.method_key, hops)
                return current
            if hops >= self.max_up_hops:
                continue

            for caller in self.resolver.find_references(current):
                if caller.signature not in visited:
                    queue.append((caller, hops + 1))

        return target

    # ── phase 2: downward traversal ──────────────────────────────

    def _traverse(self, root_symbol: "Symbol", graph: CallGraph) -> None:
        root = graph.root
        stack: list[tuple[MethodInfo, int, Iterator["Symbol"]]] = [
            (root, 0, self._expand(root_symbol, 0))
        ]

        while stack:
            caller, depth, callees = stack[-1]
            callee = next(callees, None)
            if callee is None:
                stack.pop()
                continue

            info = self._snapshot(callee)
            if not self.package_filter.keep(info.class_name):
                continue

            graph.add_call(info, depth + 1, caller=caller)
            stack.append((info, depth + 1, self._expand(callee, depth + 1)))

    def _expand(self, symbol: "Symbol", depth: int) -> Iterator["Symbol"]:
        """Yield the callees of ``symbol`` unless it is too deep or already expanded.

        Bodiless (abstract/interface) methods yield the callees of each
        overriding implementation at the same depth.
        """
        if depth >= self.max_depth:
            return
        key = symbol.method_key
        if key in self.traversal.expanded:
            return
        self.traversal.expanded.add(key)
        self.traversal.expansion_order.append(key)

        if symbol.has_body:
            yield from self.resolver.find_call_sites(symbol)
        else:
            for implementation in self.resolver.find_overrides(symbol):
                yield from self._expand(implementation, depth)

    # ── helpers ───────────────────────────────────────────────────

    def _layer_of(self, symbol: "Symbol") -> Layer:
        return self.classifier.classify(self.resolver.classify_metadata(symbol))

    def _snapshot(self, symbol: "Symbol") -> MethodInfo:
        return MethodInfo(
            method_name=symbol.name,
            class_name=symbol.containing_type,
            return_type=symbol.return_type,
            parameters=list(symbol.parameters),
            markers=list(symbol.markers),
            type_markers=list(symbol.type_markers),
            package_name=symbol.namespace,
            layer=self._layer_of(symbol),
        )

    def _fallback(self, method_name: str, class_name: str) -> CallGraph:
        self.state = BuildState.FALLBACK
        graph = synthesize_graph(method_name, class_name)
        self.state = BuildState.DONE
        return graph
