"""Layered-architecture rules: layer classification, rule sets, rule engine."""

from .engine import RuleEngine
from .layers import HeuristicLayerClassifier, LayerClassifier, classify_class_name
from .models import Layer, Severity, SymbolMetadata, Violation, ViolationType
from .rules import DEFAULT_RULES, RuleSet, load_rule_set

__all__ = [
    "DEFAULT_RULES",
    "HeuristicLayerClassifier",
    "Layer",
    "LayerClassifier",
    "RuleEngine",
    "RuleSet",
    "Severity",
    "SymbolMetadata",
    "Violation",
    "ViolationType",
    "classify_class_name",
    "load_rule_set",
]
