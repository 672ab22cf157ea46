"""Rule engine: evaluates a call graph against a rule set.

Per unique class:
    - naming: the simple class name must fully match the class pattern (HIGH)

Per unique method (root included):
    - naming: the method name must fully match the naming pattern (HIGH)
    - signature: parameter count must not exceed the maximum (MEDIUM)

Per caller -> callee edge:
    - layer dependency: both ends are classified and checked against the
      adjacency table (HIGH). Edges touching an UNKNOWN layer are skipped.

Evaluation is a function of the graph alone: the same graph always yields
the same violations in the same order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..logging_config import get_logger
from .layers import HeuristicLayerClassifier, LayerClassifier
from .models import Layer, Severity, Violation, ViolationType
from .rules import LAYER, NAMING, SIGNATURE, RuleSet

if TYPE_CHECKING:
    from ..graph.models import CallGraph, MethodInfo

logger = get_logger(__name__)

PRES, APP, DOM, INFRA = Layer.PRESENTATION, Layer.APPLICATION, Layer.DOMAIN, Layer.INFRASTRUCTURE

# (caller, callee) -> (description, suggestion)
LAYER_GUIDANCE: dict[tuple[Layer, Layer], tuple[str, str]] = {
    (PRES, INFRA): (
        "Presentation layer calls data access directly",
        "Presentation should route through application, not call infrastructure "
        "utilities directly except for shared helpers.",
    ),
    (PRES, DOM): (
        "Presentation layer calls domain logic directly",
        "Presentation should route through an application service that orchestrates "
        "the domain objects.",
    ),
    (PRES, PRES): (
        "Presentation layer calls another presentation component",
        "Extract the shared behaviour into an application service and call it from "
        "both entry points.",
    ),
    (APP, PRES): (
        "Application layer calls presentation layer",
        "Application services must not depend on controllers; return results and let "
        "presentation adapt them.",
    ),
    (APP, APP): (
        "Application service calls another application service",
        "Move the shared logic into the domain layer or a domain service, and keep "
        "application services as thin orchestrators.",
    ),
    (DOM, PRES): (
        "Domain layer calls presentation layer",
        "Domain must depend only downward; invert the dependency with an interface "
        "owned by the domain.",
    ),
    (DOM, APP): (
        "Domain layer calls application layer",
        "Domain violates dependency inversion by calling application services; expose "
        "a domain event or support interface instead.",
    ),
    (INFRA, PRES): (
        "Infrastructure layer calls presentation layer",
        "Infrastructure must not reach up into presentation; have it implement a "
        "domain support interface instead.",
    ),
    (INFRA, APP): (
        "Infrastructure layer calls application layer",
        "Infrastructure should implement domain support interfaces rather than call "
        "application services.",
    ),
}

GENERIC_GUIDANCE = (
    "Layer dependency violation",
    "Follow presentation -> application -> domain -> infrastructure, depending only "
    "downward or through abstractions.",
)


class RuleEngine:
    """Evaluates naming, signature and layer-dependency rules."""

    def __init__(
        self,
        rules: Optional[RuleSet] = None,
        classifier: Optional[LayerClassifier] = None,
    ) -> None:
        self.rules = rules or RuleSet.default()
        self.classifier = classifier or HeuristicLayerClassifier()

    def evaluate(self, graph: "CallGraph") -> list[Violation]:
        violations: list[Violation] = []
        if graph.root is None:
            return violations

        methods = graph.unique_methods()
        checked_classes: set[str] = set()
        for method in methods:
            self.correct_layer(method)
            if method.class_name not in checked_classes:
                checked_classes.add(method.class_name)
                class_naming = self.check_class_naming(method)
                if class_naming is not None:
                    violations.append(class_naming)
            violations.extend(self.check_method(method))

        violations.extend(self.check_layer_dependencies(graph))

        logger.debug(
            "Evaluated %d methods of %s: %d violations",
            len(methods),
            graph.root.method_key,
            len(violations),
        )
        return violations

    # ── per-method rules ─────────────────────────────────────────

    def check_method(self, method: "MethodInfo") -> list[Violation]:
        violations = []
        naming = self.check_naming(method)
        if naming is not None:
            violations.append(naming)
        signature = self.check_signature(method)
        if signature is not None:
            violations.append(signature)
        return violations

    def check_naming(self, method: "MethodInfo") -> Optional[Violation]:
        pattern = self.rules.naming.method_pattern
        if pattern.fullmatch(method.method_name):
            return None
        return Violation(
            violation_type=ViolationType.NAMING_VIOLATION,
            description=f"Method name '{method.method_name}' does not follow the naming convention",
            location=method.signature,
            suggestion="Method names should start with a lowercase letter and use camelCase.",
            severity=Severity.HIGH,
            rule_reference=f"{NAMING}.method_naming_pattern",
        )

    def check_class_naming(self, method: "MethodInfo") -> Optional[Violation]:
        pattern = self.rules.naming.class_pattern
        name = method.simple_class_name
        if pattern.fullmatch(name):
            return None
        return Violation(
            violation_type=ViolationType.NAMING_VIOLATION,
            description=f"Class name '{name}' does not follow the naming convention",
            location=method.class_name,
            suggestion="Class names should start with an uppercase letter and use PascalCase.",
            severity=Severity.HIGH,
            rule_reference=f"{NAMING}.class_naming_pattern",
        )

    def check_signature(self, method: "MethodInfo") -> Optional[Violation]:
        limit = self.rules.signature.max_parameters
        count = len(method.parameters)
        if count <= limit:
            return None
        return Violation(
            violation_type=ViolationType.SIGNATURE_VIOLATION,
            description=f"Method has {count} parameters (maximum {limit})",
            location=method.signature,
            suggestion="Wrap the parameters in a parameter object or split the method.",
            severity=Severity.MEDIUM,
            rule_reference=f"{SIGNATURE}.max_parameters",
        )

    # ── layer rules ──────────────────────────────────────────────

    def correct_layer(self, method: "MethodInfo") -> Layer:
        """Re-classify ``method`` and store the result on it.

        The classifier wins unless it cannot tell (UNKNOWN), in which case the
        layer recorded at snapshot time is kept.
        """
        layer = self.classifier.classify(method.metadata())
        if layer is not Layer.UNKNOWN:
            method.layer = layer
        return method.layer

    def check_layer_dependencies(self, graph: "CallGraph") -> list[Violation]:
        violations = []
        for caller, callee in graph.call_edges():
            violation = self.check_edge(caller, callee)
            if violation is not None:
                violations.append(violation)
        return violations

    def check_edge(self, caller: "MethodInfo", callee: "MethodInfo") -> Optional[Violation]:
        caller_layer = self.correct_layer(caller)
        callee_layer = self.correct_layer(callee)
        if Layer.UNKNOWN in (caller_layer, callee_layer):
            return None
        if self._allowed(caller_layer, callee, callee_layer):
            return None

        description, suggestion = LAYER_GUIDANCE.get((caller_layer, callee_layer), GENERIC_GUIDANCE)
        return Violation(
            violation_type=ViolationType.LAYER_VIOLATION,
            description=f"{description} ({caller_layer.value} -> {callee_layer.value})",
            location=f"{caller.signature} -> {callee.signature}",
            suggestion=suggestion,
            severity=Severity.HIGH,
            rule_reference=f"{LAYER}.allowed_dependencies.{caller_layer.value}",
        )

    def _allowed(self, caller_layer: Layer, callee: "MethodInfo", callee_layer: Layer) -> bool:
        layer_rules = self.rules.layer
        if not layer_rules.allows(caller_layer, callee_layer):
            return False
        # Presentation may only use infrastructure helpers, not data access.
        if caller_layer is Layer.PRESENTATION and callee_layer is Layer.INFRASTRUCTURE:
            return not self.is_data_access(callee)
        return True

    def is_data_access(self, method: "MethodInfo") -> bool:
        layer_rules = self.rules.layer
        namespace = method.package_name or ""
        return method.simple_class_name.endswith(layer_rules.data_access_suffixes) or any(
            segment in namespace for segment in layer_rules.data_access_namespaces
        )
