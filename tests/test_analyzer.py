"""Tests for the Analyzer orchestration: build, evaluate, advise, cache."""

import pytest

from layerlint.analysis.engine import Analyzer
from layerlint.architecture.models import Layer, Severity, Violation, ViolationType
from layerlint.cache import CacheKind, ResultCache
from layerlint.config import AnalysisConfig
from layerlint.exceptions import AnalysisCancelled
from layerlint.persistence.rules_store import SqliteRuleStore
from layerlint.resolution.memory import InMemoryResolver

CONTROLLER = "com.acme.web.controller.UserController"
GATEWAY = "com.acme.gateway.ApiGateway"


@pytest.fixture
def cache(tmp_path, clock):
    with ResultCache(str(tmp_path / "cache"), clock=clock) as c:
        yield c


class EchoAdvisor:
    """Turns every violation into one advisory."""

    def __init__(self):
        self.calls = 0

    def advise(self, graph, violations):
        self.calls += 1
        return [
            Violation(
                violation_type=ViolationType.ADVISORY,
                description=f"Consider fixing: {v.description}",
                location=v.location,
                suggestion=v.suggestion,
                severity=Severity.LOW,
            )
            for v in violations
        ]


class FailingAdvisor:
    def advise(self, graph, violations):
        raise ConnectionError("advisory service offline")


class TestBuildAndEvaluate:
    def test_returns_graph_and_violations(self, leaky_resolver):
        graph, violations = Analyzer(leaky_resolver).build_and_evaluate("dispatch", GATEWAY)
        assert graph.root.method_key == f"{GATEWAY}.dispatch"
        assert [v.violation_type for v in violations] == [ViolationType.LAYER_VIOLATION]

    def test_clean_graph(self, layered_resolver):
        graph, violations = Analyzer(layered_resolver).build_and_evaluate("getUser", CONTROLLER)
        assert graph.total_method_count == 4
        assert violations == []

    def test_fallback_still_evaluated(self, layered_resolver):
        layered_resolver.mark_unavailable("indexing")
        graph, violations = Analyzer(layered_resolver).build_and_evaluate("getUser", "OrderController")
        assert graph.is_fallback
        # Synthetic controller calls a repository directly
        assert any(v.violation_type == ViolationType.LAYER_VIOLATION for v in violations)

    def test_cancel_between_build_and_evaluate(self, leaky_resolver):
        analyzer = Analyzer(leaky_resolver)
        with pytest.raises(AnalysisCancelled) as exc:
            analyzer.build_and_evaluate("dispatch", GATEWAY, should_cancel=lambda: True)
        assert exc.value.method_key == f"{GATEWAY}.dispatch"

    def test_not_cancelled(self, leaky_resolver):
        graph, _ = Analyzer(leaky_resolver).build_and_evaluate("dispatch", GATEWAY, should_cancel=lambda: False)
        assert graph is not None


class TestCaching:
    def test_second_call_served_from_cache(self, leaky_resolver, cache):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        first = analyzer.analyze("dispatch", GATEWAY)
        second = analyzer.analyze("dispatch", GATEWAY)

        assert not first.from_cache
        assert second.from_cache
        assert second.violations == first.violations
        assert second.graph.all_methods == first.graph.all_methods
        assert cache.has_result(f"{GATEWAY}.dispatch")

    def test_cached_graph_keeps_layers(self, leaky_resolver, cache):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        first = analyzer.analyze("dispatch", GATEWAY)
        second = analyzer.analyze("dispatch", GATEWAY)
        assert [m.layer for m in second.graph.all_methods] == [m.layer for m in first.graph.all_methods]

    def test_cache_bypass(self, leaky_resolver, cache):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        analyzer.analyze("dispatch", GATEWAY)
        assert not analyzer.analyze("dispatch", GATEWAY, use_cache=False).from_cache

    def test_expired_result_recomputed(self, leaky_resolver, cache, clock):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        analyzer.analyze("dispatch", GATEWAY)
        clock.advance(31 * 60)
        assert not analyzer.analyze("dispatch", GATEWAY).from_cache

    def test_fallback_graph_not_cached(self, layered_resolver, cache):
        layered_resolver.mark_unavailable("indexing")
        analyzer = Analyzer(layered_resolver, cache=cache)
        analyzer.analyze("getUser", CONTROLLER)
        assert len(cache) == 0

        layered_resolver.mark_available()
        result = analyzer.analyze("getUser", CONTROLLER)
        assert not result.graph.is_fallback
        assert not result.from_cache

    def test_corrupt_cached_graph_recomputed(self, leaky_resolver, cache):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        analyzer.analyze("dispatch", GATEWAY)
        cache.put(f"{GATEWAY}.dispatch", CacheKind.CALL_CHAIN, {"calls": "nope"})
        assert not analyzer.analyze("dispatch", GATEWAY).from_cache

    @pytest.mark.parametrize(
        "kind,payload",
        [
            (CacheKind.CALL_CHAIN, ["not", "a", "graph"]),
            (CacheKind.CALL_CHAIN, {"root": ["x"]}),
            (CacheKind.RULE_CHECK, ["not a violation"]),
            (CacheKind.RULE_CHECK, {"violations": []}),
            (CacheKind.AI_ANALYSIS, [42]),
        ],
    )
    def test_wrong_shape_cached_payload_recomputed(self, leaky_resolver, cache, kind, payload):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        fresh = analyzer.analyze("dispatch", GATEWAY)
        cache.put(f"{GATEWAY}.dispatch", kind, payload)

        result = analyzer.analyze("dispatch", GATEWAY)

        assert not result.from_cache
        assert result.violations == fresh.violations
        assert result.graph.total_method_count == fresh.graph.total_method_count

    def test_non_string_enum_fields_in_cache_do_not_raise(self, leaky_resolver, cache):
        analyzer = Analyzer(leaky_resolver, cache=cache)
        analyzer.analyze("dispatch", GATEWAY)
        graph_data = cache.get(f"{GATEWAY}.dispatch", CacheKind.CALL_CHAIN)
        graph_data["root"]["layer"] = 7
        cache.put(f"{GATEWAY}.dispatch", CacheKind.CALL_CHAIN, graph_data)
        cache.put(
            f"{GATEWAY}.dispatch",
            CacheKind.RULE_CHECK,
            [{"violation_type": None, "description": "d", "location": "l", "suggestion": "s"}],
        )

        result = analyzer.analyze("dispatch", GATEWAY)

        assert result.from_cache
        assert result.graph.root.layer == Layer.UNKNOWN
        assert result.violations[0].violation_type == ViolationType.ADVISORY


class TestAdvisor:
    def test_advisories_cached(self, leaky_resolver, cache):
        advisor = EchoAdvisor()
        analyzer = Analyzer(leaky_resolver, cache=cache, advisor=advisor)
        first = analyzer.analyze("dispatch", GATEWAY)
        assert len(first.advisories) == 1
        assert first.advisories[0].violation_type == ViolationType.ADVISORY

        second = analyzer.analyze("dispatch", GATEWAY)
        assert second.advisories == first.advisories
        assert advisor.calls == 1
        assert cache.get(f"{GATEWAY}.dispatch", CacheKind.AI_ANALYSIS) is not None

    def test_not_called_without_violations(self, layered_resolver):
        advisor = EchoAdvisor()
        Analyzer(layered_resolver, advisor=advisor).analyze("getUser", CONTROLLER)
        assert advisor.calls == 0

    def test_failure_ignored(self, leaky_resolver):
        result = Analyzer(leaky_resolver, advisor=FailingAdvisor()).analyze("dispatch", GATEWAY)
        assert result.advisories == []
        assert len(result.violations) == 1


class TestResult:
    def test_summary(self, leaky_resolver):
        result = Analyzer(leaky_resolver).analyze("dispatch", GATEWAY)
        assert result.count_by_severity() == {"high": 1, "medium": 0, "low": 0}
        assert result.has_high_severity
        data = result.to_dict()
        assert data["method"] == f"{GATEWAY}.dispatch"
        assert data["summary"]["high"] == 1


class TestFromConfig:
    def test_depth_and_rules_from_config(self, tmp_path, entry):
        db = tmp_path / "rules.db"
        with SqliteRuleStore(db) as store:
            store.save("signature", {"max_parameters": 0})

        resolver = InMemoryResolver.from_dict(
            {
                "symbols": [
                    entry("com.acme.service.A", "one", calls=["com.acme.service.B.two"], parameters=["int x"]),
                    entry("com.acme.service.B", "two", calls=["com.acme.service.C.three"]),
                    entry("com.acme.service.C", "three"),
                ]
            }
        )
        config = AnalysisConfig(max_depth=1, rules_db=str(db), cache_enabled=False)
        graph, violations = Analyzer.from_config(resolver, config).build_and_evaluate("one", "com.acme.service.A")

        assert graph.max_depth == 1
        assert [v.violation_type for v in violations if v.violation_type != ViolationType.LAYER_VIOLATION] == [
            ViolationType.SIGNATURE_VIOLATION
        ]

    def test_missing_rules_db_uses_defaults(self, tmp_path, layered_resolver):
        config = AnalysisConfig(rules_db=str(tmp_path / "absent.db"))
        analyzer = Analyzer.from_config(layered_resolver, config)
        assert analyzer.engine.rules.signature.max_parameters == 5
