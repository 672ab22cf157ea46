"""Tests for CallGraphBuilder: anchoring, traversal bounds, fallback."""

import pytest

from layerlint.architecture.models import Layer
from layerlint.graph.builder import BuildState, CallGraphBuilder
from layerlint.graph.filters import PackageFilter
from layerlint.resolution.memory import InMemoryResolver

CONTROLLER = "com.acme.web.controller.UserController"
SERVICE = "com.acme.service.UserService"
REPOSITORY = "com.acme.repository.UserRepository"
CHAIN = "com.acme.service.ChainService"


def signatures(graph):
    return {m.signature for m in graph.all_methods}


class TestAnchoring:
    """Upward search for a presentation entry point."""

    def test_presentation_target_is_its_own_root(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("getUser", CONTROLLER)
        assert graph.root.method_key == f"{CONTROLLER}.getUser"
        assert graph.root.layer == Layer.PRESENTATION
        assert not graph.is_fallback

    def test_service_target_anchors_at_controller(self, layered_resolver):
        builder = CallGraphBuilder(layered_resolver)
        graph = builder.build("findUser", SERVICE)
        assert graph.root.method_key == f"{CONTROLLER}.getUser"
        assert builder.traversal.max_hops_reached == 1

    def test_repository_target_anchors_two_hops_up(self, layered_resolver):
        builder = CallGraphBuilder(layered_resolver)
        graph = builder.build("findById", REPOSITORY)
        assert graph.root.method_key == f"{CONTROLLER}.getUser"
        assert builder.traversal.max_hops_reached == 2

    def test_no_presentation_caller_keeps_target(self, entry):
        resolver = InMemoryResolver.from_dict(
            {"symbols": [entry(SERVICE, "nightlyJob", calls=[f"{REPOSITORY}.purge"]), entry(REPOSITORY, "purge")]}
        )
        graph = CallGraphBuilder(resolver).build("nightlyJob", SERVICE)
        assert graph.root.method_key == f"{SERVICE}.nightlyJob"
        assert graph.methods_at(1)[0].method_key == f"{REPOSITORY}.purge"

    def test_caller_cycle_terminates(self, entry):
        resolver = InMemoryResolver.from_dict(
            {
                "symbols": [
                    entry(SERVICE, "ping", calls=[f"{SERVICE}.pong"]),
                    entry(SERVICE, "pong", calls=[f"{SERVICE}.ping"]),
                ]
            }
        )
        graph = CallGraphBuilder(resolver).build("ping", SERVICE)
        assert graph.root.method_key == f"{SERVICE}.ping"

    def test_hop_limit(self, entry):
        """A controller 10 callers up is out of reach; hops never exceed 8."""
        symbols = [entry(CONTROLLER, "entry", calls=[f"{CHAIN}.up9"])]
        for i in range(9, 0, -1):
            symbols.append(entry(CHAIN, f"up{i}", calls=[f"{CHAIN}.up{i - 1}"]))
        symbols.append(entry(CHAIN, "up0"))
        resolver = InMemoryResolver.from_dict({"symbols": symbols})

        builder = CallGraphBuilder(resolver)
        graph = builder.build("up0", CHAIN)
        assert graph.root.method_key == f"{CHAIN}.up0"
        assert builder.traversal.max_hops_reached == 8

    def test_hop_limit_reached_exactly(self, entry):
        symbols = [entry(CONTROLLER, "entry", calls=[f"{CHAIN}.up7"])]
        for i in range(7, 0, -1):
            symbols.append(entry(CHAIN, f"up{i}", calls=[f"{CHAIN}.up{i - 1}"]))
        symbols.append(entry(CHAIN, "up0"))
        resolver = InMemoryResolver.from_dict({"symbols": symbols})

        graph = CallGraphBuilder(resolver).build("up0", CHAIN)
        assert graph.root.method_key == f"{CONTROLLER}.entry"


class TestTraversal:
    """Downward walk: depth bound, single expansion, filtering, overrides."""

    def test_layered_graph(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("getUser", CONTROLLER)
        assert [m.method_key for m in graph.methods_at(1)] == [f"{SERVICE}.findUser"]
        depth2 = [m.method_key for m in graph.methods_at(2)]
        assert depth2 == [f"{REPOSITORY}.findById", "com.acme.domain.User.isActive"]
        assert graph.total_method_count == 4

    def test_excluded_packages_dropped(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("getUser", CONTROLLER)
        assert not any(m.class_name.startswith("java.") for m in graph.all_methods)

    def test_custom_filter(self, layered_resolver):
        package_filter = PackageFilter(include=["com.acme.web.", "com.acme.service."])
        graph = CallGraphBuilder(layered_resolver, package_filter=package_filter).build("getUser", CONTROLLER)
        assert graph.max_depth == 1

    def test_depth_bound(self, entry):
        symbols = [entry(CHAIN, f"step{i}", calls=[f"{CHAIN}.step{i + 1}"]) for i in range(12)]
        symbols.append(entry(CHAIN, "step12"))
        resolver = InMemoryResolver.from_dict({"symbols": symbols})

        graph = CallGraphBuilder(resolver).build("step0", CHAIN)
        assert graph.max_depth == 5
        assert graph.total_method_count == 6

    def test_custom_depth_bound(self, entry):
        symbols = [entry(CHAIN, f"step{i}", calls=[f"{CHAIN}.step{i + 1}"]) for i in range(5)]
        symbols.append(entry(CHAIN, "step5"))
        resolver = InMemoryResolver.from_dict({"symbols": symbols})

        graph = CallGraphBuilder(resolver, max_depth=2).build("step0", CHAIN)
        assert graph.max_depth == 2

    def test_every_call_below_root(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("getUser", CONTROLLER)
        assert min(graph.calls_by_depth) >= 1

    def test_diamond_expands_shared_callee_once(self, entry):
        resolver = InMemoryResolver.from_dict(
            {
                "symbols": [
                    entry(CHAIN, "top", calls=[f"{CHAIN}.left", f"{CHAIN}.right"]),
                    entry(CHAIN, "left", calls=[f"{CHAIN}.shared"]),
                    entry(CHAIN, "right", calls=[f"{CHAIN}.shared"]),
                    entry(CHAIN, "shared", calls=[f"{CHAIN}.leaf"]),
                    entry(CHAIN, "leaf"),
                ]
            }
        )
        builder = CallGraphBuilder(resolver)
        graph = builder.build("top", CHAIN)

        order = builder.traversal.expansion_order
        assert len(order) == len(set(order))
        # Appended once per call site, expanded once
        assert [m.method_name for m in graph.methods_at(2)] == ["shared", "shared"]
        assert [m.method_name for m in graph.methods_at(3)] == ["leaf"]

    def test_cycle_terminates(self, entry):
        resolver = InMemoryResolver.from_dict(
            {
                "symbols": [
                    entry(CHAIN, "ping", calls=[f"{CHAIN}.pong"]),
                    entry(CHAIN, "pong", calls=[f"{CHAIN}.ping"]),
                ]
            }
        )
        builder = CallGraphBuilder(resolver)
        graph = builder.build("ping", CHAIN)
        assert [m.method_name for m in graph.all_methods] == ["ping", "pong", "ping"]
        assert builder.traversal.expansion_order == [f"{CHAIN}.ping", f"{CHAIN}.pong"]

    def test_recursive_method(self, entry):
        resolver = InMemoryResolver.from_dict({"symbols": [entry(CHAIN, "walk", calls=[f"{CHAIN}.walk"])]})
        graph = CallGraphBuilder(resolver).build("walk", CHAIN)
        assert graph.total_method_count == 2
        assert graph.max_depth == 1

    def test_unresolvable_calls_dropped(self, entry):
        resolver = InMemoryResolver.from_dict(
            {"symbols": [entry(CHAIN, "run", calls=["com.acme.plugin.Dynamic.invoke"])]}
        )
        graph = CallGraphBuilder(resolver).build("run", CHAIN)
        assert graph.total_method_count == 1
        assert not graph.is_fallback

    def test_abstract_method_walks_overrides(self, entry):
        resolver = InMemoryResolver.from_dict(
            {
                "symbols": [
                    entry(SERVICE, "register", calls=["com.acme.port.Notifier.send"]),
                    entry("com.acme.port.Notifier", "send", abstract=True),
                    entry(
                        "com.acme.infra.EmailNotifier",
                        "send",
                        overrides="com.acme.port.Notifier.send",
                        calls=["com.acme.infra.SmtpClient.deliver"],
                    ),
                    entry("com.acme.infra.SmtpClient", "deliver"),
                ]
            }
        )
        graph = CallGraphBuilder(resolver).build("register", SERVICE)
        assert [m.method_key for m in graph.methods_at(1)] == ["com.acme.port.Notifier.send"]
        assert [m.method_key for m in graph.methods_at(2)] == ["com.acme.infra.SmtpClient.deliver"]

    def test_edges_follow_call_sites(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("getUser", CONTROLLER)
        edges = {(a.method_name, b.method_name) for a, b in graph.call_edges()}
        assert edges == {("getUser", "findUser"), ("findUser", "findById"), ("findUser", "isActive")}


class TestIdempotence:
    def test_repeated_builds_match(self, layered_resolver):
        builder = CallGraphBuilder(layered_resolver)
        first = builder.build("findUser", SERVICE)
        second = builder.build("findUser", SERVICE)

        assert first.root == second.root
        assert set(first.calls_by_depth) == set(second.calls_by_depth)
        assert signatures(first) == signatures(second)

    def test_state_done_after_build(self, layered_resolver):
        builder = CallGraphBuilder(layered_resolver)
        assert builder.state == BuildState.IDLE
        builder.build("getUser", CONTROLLER)
        assert builder.state == BuildState.DONE


class FlakyResolver(InMemoryResolver):
    """Resolver that breaks while walking callees."""

    def find_call_sites(self, symbol):
        raise RuntimeError("index corrupted")


class TestFallback:
    """Absent target and resolver failures yield the synthetic graph."""

    def test_absent_target(self, layered_resolver):
        graph = CallGraphBuilder(layered_resolver).build("process", "OrderController")
        assert graph.is_fallback
        assert graph.root.method_name == "process"
        assert graph.root.class_name == "OrderController"
        assert graph.root.package_name == "com.example.demo"
        assert graph.root.layer == Layer.PRESENTATION
        assert graph.total_method_count == 7

    def test_unavailable_index(self, layered_resolver):
        layered_resolver.mark_unavailable("indexing in progress")
        builder = CallGraphBuilder(layered_resolver)
        graph = builder.build("getUser", CONTROLLER)
        assert graph.is_fallback
        assert graph.root.class_name == CONTROLLER
        assert builder.state == BuildState.DONE

    def test_index_ready_again(self, layered_resolver):
        layered_resolver.mark_unavailable("indexing in progress")
        builder = CallGraphBuilder(layered_resolver)
        assert builder.build("getUser", CONTROLLER).is_fallback
        layered_resolver.mark_available()
        assert not builder.build("getUser", CONTROLLER).is_fallback

    def test_failure_mid_traversal_is_not_mixed(self, layered_index):
        resolver = FlakyResolver.from_dict(layered_index)
        graph = CallGraphBuilder(resolver).build("getUser", CONTROLLER)
        assert graph.is_fallback
        assert graph.total_method_count == 7
        assert not any(m.class_name == SERVICE for m in graph.all_methods)

    @pytest.mark.parametrize("method_name", ["getUser", "FindUser"])
    def test_never_raises(self, method_name):
        resolver = InMemoryResolver()
        resolver.mark_unavailable("no index")
        graph = CallGraphBuilder(resolver).build(method_name, "Anything")
        assert graph.root is not None
