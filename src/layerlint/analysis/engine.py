"""Analyzer — orchestrates one method analysis end to end.

Phases:
    1. Cache lookup by ``className.methodName``
    2. Call graph build (anchoring + bounded traversal, or synthetic fallback)
    3. Cooperative cancellation check
    4. Rule evaluation
    5. Optional advisory pass (failures are logged and ignored)
    6. Cache store
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from ..architecture.engine import RuleEngine
from ..architecture.layers import HeuristicLayerClassifier, LayerClassifier
from ..architecture.models import Severity, Violation
from ..architecture.rules import RuleSet, load_rule_set
from ..cache import CacheKind, ResultCache, method_key
from ..exceptions import AnalysisCancelled
from ..graph.builder import CallGraphBuilder
from ..graph.models import CallGraph
from ..logging_config import get_logger
from ..persistence.rules_store import SqliteRuleStore

if TYPE_CHECKING:
    from ..config import AnalysisConfig
    from ..resolution.base import SymbolResolver

logger = get_logger(__name__)


class Advisor(Protocol):
    """Turns rule violations into additional remediation advice."""

    def advise(self, graph: CallGraph, violations: list[Violation]) -> list[Violation]: ...


@dataclass
class AnalysisResult:
    """Everything produced for one analyzed method."""

    method_key: str
    graph: CallGraph
    violations: list[Violation]
    advisories: list[Violation] = field(default_factory=list)
    from_cache: bool = False

    def count_by_severity(self) -> dict[str, int]:
        counts = {severity.label: 0 for severity in Severity}
        for violation in self.violations:
            counts[violation.severity.label] += 1
        return counts

    @property
    def has_high_severity(self) -> bool:
        return any(v.severity is Severity.HIGH for v in self.violations)

    def to_dict(self) -> dict:
        return {
            "method": self.method_key,
            "from_cache": self.from_cache,
            "graph": self.graph.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "advisories": [v.to_dict() for v in self.advisories],
            "summary": self.count_by_severity(),
        }


class Analyzer:
    """Builds, evaluates and caches call-graph analyses."""

    def __init__(
        self,
        resolver: "SymbolResolver",
        rules: Optional[RuleSet] = None,
        classifier: Optional[LayerClassifier] = None,
        cache: Optional[ResultCache] = None,
        advisor: Optional[Advisor] = None,
        builder: Optional[CallGraphBuilder] = None,
    ) -> None:
        self.classifier = classifier or HeuristicLayerClassifier()
        self.builder = builder or CallGraphBuilder(resolver, classifier=self.classifier)
        self.engine = RuleEngine(rules, classifier=self.classifier)
        self.cache = cache
        self.advisor = advisor

    @classmethod
    def from_config(
        cls,
        resolver: "SymbolResolver",
        config: "AnalysisConfig",
        cache: Optional[ResultCache] = None,
        advisor: Optional[Advisor] = None,
    ) -> "Analyzer":
        """Wire an analyzer from settings; rules come from ``config.rules_db`` when set."""
        store = SqliteRuleStore(config.rules_db) if config.rules_db else None
        classifier = HeuristicLayerClassifier()
        return cls(
            resolver,
            rules=load_rule_set(store),
            classifier=classifier,
            cache=cache,
            advisor=advisor,
            builder=CallGraphBuilder.from_config(resolver, config, classifier=classifier),
        )

    def build_and_evaluate(
        self,
        method_name: str,
        class_name: str,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> tuple[CallGraph, list[Violation]]:
        """Return the call graph of ``class_name.method_name`` and its violations.

        Raises:
            AnalysisCancelled: If ``should_cancel`` returns True after the build
        """
        result = self.analyze(method_name, class_name, should_cancel=should_cancel)
        return result.graph, result.violations

    def analyze(
        self,
        method_name: str,
        class_name: str,
        should_cancel: Optional[Callable[[], bool]] = None,
        use_cache: bool = True,
    ) -> AnalysisResult:
        key = method_key(class_name, method_name)

        # ── Phase 1: Cache ────────────────────────────────────────
        if use_cache:
            cached = self._load_cached(key)
            if cached is not None:
                logger.debug("Using cached analysis for %s", key)
                return cached

        # ── Phase 2: Build ────────────────────────────────────────
        graph = self.builder.build(method_name, class_name)

        # ── Phase 3: Cancellation point ───────────────────────────
        if should_cancel is not None and should_cancel():
            logger.info("Analysis of %s cancelled after graph build", key)
            raise AnalysisCancelled(key)

        # ── Phase 4: Rules ────────────────────────────────────────
        violations = self.engine.evaluate(graph)

        # ── Phase 5: Advisor ──────────────────────────────────────
        advisories = self._advise(graph, violations)

        result = AnalysisResult(key, graph, violations, advisories)

        # ── Phase 6: Store ────────────────────────────────────────
        if use_cache:
            self._store(result)

        logger.info(
            "Analyzed %s: %d methods, %d violations%s",
            key,
            graph.total_method_count,
            len(violations),
            " (synthetic graph)" if graph.is_fallback else "",
        )
        return result

    # ── helpers ───────────────────────────────────────────────────

    def _advise(self, graph: CallGraph, violations: list[Violation]) -> list[Violation]:
        if self.advisor is None or not violations:
            return []
        try:
            return list(self.advisor.advise(graph, violations))
        except Exception as e:
            logger.warning("Advisor failed, continuing without advice: %s", e)
            return []

    def _load_cached(self, key: str) -> Optional[AnalysisResult]:
        if self.cache is None:
            return None
        graph_data = self.cache.get(key, CacheKind.CALL_CHAIN)
        violation_data = self.cache.get(key, CacheKind.RULE_CHECK)
        if graph_data is None or violation_data is None:
            return None
        try:
            graph = CallGraph.from_dict(graph_data)
            violations = [Violation.from_dict(v) for v in violation_data]
            advisories = [
                Violation.from_dict(v) for v in self.cache.get(key, CacheKind.AI_ANALYSIS) or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug("Cached analysis for %s unreadable (%s), recomputing", key, e)
            return None
        return AnalysisResult(key, graph, violations, advisories, from_cache=True)

    def _store(self, result: AnalysisResult) -> None:
        if self.cache is None:
            return
        # A synthetic graph stands in for an unavailable index; don't let it
        # shadow the real graph once the index is ready.
        if result.graph.is_fallback:
            return
        self.cache.put(result.method_key, CacheKind.CALL_CHAIN, result.graph.to_dict())
        self.cache.put(
            result.method_key, CacheKind.RULE_CHECK, [v.to_dict() for v in result.violations]
        )
        if result.advisories:
            self.cache.put(
                result.method_key,
                CacheKind.AI_ANALYSIS,
                [v.to_dict() for v in result.advisories],
            )
