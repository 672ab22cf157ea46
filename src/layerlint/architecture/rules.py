"""Rule set: the data the rule engine evaluates against.

Rules are grouped by category (``naming``, ``signature``, ``layer``), each a
JSON-like parameter object. Stored rules are validated one category at a
time; a malformed category is replaced by its built-in default while the
others keep their stored values.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ..exceptions import MalformedRuleData, RuleStorageUnavailable
from ..logging_config import get_logger
from .models import Layer

if TYPE_CHECKING:
    from ..persistence.rules_store import RuleStore

logger = get_logger(__name__)

NAMING = "naming"
SIGNATURE = "signature"
LAYER = "layer"

DEFAULT_RULES: dict[str, dict[str, Any]] = {
    NAMING: {
        "method_naming_pattern": r"^[a-z][a-zA-Z0-9]*$",
        "class_naming_pattern": r"^[A-Z][a-zA-Z0-9]*$",
    },
    SIGNATURE: {
        "max_parameters": 5,
    },
    LAYER: {
        # caller layer -> callee layers it may depend on
        "allowed_dependencies": {
            "PRESENTATION": ["APPLICATION", "INFRASTRUCTURE"],
            "APPLICATION": ["DOMAIN", "INFRASTRUCTURE"],
            "DOMAIN": ["DOMAIN", "INFRASTRUCTURE"],
            "INFRASTRUCTURE": ["INFRASTRUCTURE", "DOMAIN"],
        },
        # infrastructure that presentation may not reach directly
        "data_access_suffixes": ["Repository", "Dao", "Mapper"],
        "data_access_namespaces": [".repository", ".dao", ".mapper"],
    },
}


@dataclass(frozen=True)
class NamingRules:
    method_pattern: re.Pattern
    class_pattern: re.Pattern


@dataclass(frozen=True)
class SignatureRules:
    max_parameters: int


@dataclass(frozen=True)
class LayerRules:
    allowed: dict[Layer, frozenset[Layer]]
    data_access_suffixes: tuple[str, ...]
    data_access_namespaces: tuple[str, ...]

    def allows(self, caller: Layer, callee: Layer) -> bool:
        return callee in self.allowed.get(caller, frozenset())


@dataclass(frozen=True)
class RuleSet:
    """Validated, typed rules plus the raw parameters they came from."""

    naming: NamingRules
    signature: SignatureRules
    layer: LayerRules
    raw: dict[str, dict[str, Any]] = field(default_factory=dict, compare=False)
    defaulted: frozenset[str] = frozenset()  # categories that fell back to defaults

    @classmethod
    def default(cls) -> "RuleSet":
        return cls.from_raw({})

    @classmethod
    def from_raw(cls, stored: Mapping[str, Any]) -> "RuleSet":
        """Build a rule set from stored category payloads.

        Payloads may be JSON text or already-decoded mappings. Missing or
        malformed categories use ``DEFAULT_RULES``.
        """
        raw: dict[str, dict[str, Any]] = {}
        parsed: dict[str, Any] = {}
        defaulted: set[str] = set()

        for category, parser in _PARSERS.items():
            params = copy.deepcopy(DEFAULT_RULES[category])
            if category in stored:
                try:
                    params = _decode(category, stored[category])
                    parsed[category] = parser(params)
                except MalformedRuleData as e:
                    logger.warning("%s, using built-in defaults for it", e)
                    params = copy.deepcopy(DEFAULT_RULES[category])
                    parsed[category] = parser(params)
                    defaulted.add(category)
            else:
                parsed[category] = parser(params)
                defaulted.add(category)
            raw[category] = params

        return cls(
            naming=parsed[NAMING],
            signature=parsed[SIGNATURE],
            layer=parsed[LAYER],
            raw=raw,
            defaulted=frozenset(defaulted),
        )


def load_rule_set(store: Optional["RuleStore"] = None) -> RuleSet:
    """Load rules from ``store``; never raises.

    An absent or unreachable store yields the built-in defaults.
    """
    if store is None:
        return RuleSet.default()
    try:
        stored = store.load()
    except RuleStorageUnavailable as e:
        logger.warning("%s, using built-in rules", e)
        return RuleSet.default()
    return RuleSet.from_raw(stored)


# ── category parsers ─────────────────────────────────────────────


def _decode(category: str, payload: Any) -> dict[str, Any]:
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedRuleData(category, f"invalid JSON: {e}")
    if not isinstance(payload, Mapping):
        raise MalformedRuleData(category, f"expected an object, got {type(payload).__name__}")
    merged = copy.deepcopy(DEFAULT_RULES[category])
    merged.update(payload)
    return merged


def _compile(category: str, key: str, pattern: Any) -> re.Pattern:
    if not isinstance(pattern, str):
        raise MalformedRuleData(category, f"{key} must be a string")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise MalformedRuleData(category, f"{key} is not a valid pattern: {e}")


def _parse_naming(params: dict[str, Any]) -> NamingRules:
    return NamingRules(
        method_pattern=_compile(NAMING, "method_naming_pattern", params["method_naming_pattern"]),
        class_pattern=_compile(NAMING, "class_naming_pattern", params["class_naming_pattern"]),
    )


def _parse_signature(params: dict[str, Any]) -> SignatureRules:
    value = params["max_parameters"]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedRuleData(SIGNATURE, f"max_parameters must be a non-negative integer, got {value!r}")
    return SignatureRules(max_parameters=value)


def _parse_layer(params: dict[str, Any]) -> LayerRules:
    table = params["allowed_dependencies"]
    if not isinstance(table, Mapping):
        raise MalformedRuleData(LAYER, "allowed_dependencies must be an object")

    allowed: dict[Layer, frozenset[Layer]] = {}
    for caller_name, callee_names in table.items():
        caller = _layer_name(caller_name)
        if not isinstance(callee_names, (list, tuple)):
            raise MalformedRuleData(LAYER, f"allowed_dependencies.{caller_name} must be a list")
        allowed[caller] = frozenset(_layer_name(name) for name in callee_names)

    return LayerRules(
        allowed=allowed,
        data_access_suffixes=_string_tuple(params, "data_access_suffixes"),
        data_access_namespaces=_string_tuple(params, "data_access_namespaces"),
    )


def _layer_name(name: Any) -> Layer:
    layer = Layer.parse(name) if isinstance(name, str) else Layer.UNKNOWN
    if layer is Layer.UNKNOWN:
        raise MalformedRuleData(LAYER, f"unknown layer {name!r}")
    return layer


def _string_tuple(params: dict[str, Any], key: str) -> tuple[str, ...]:
    value = params[key]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise MalformedRuleData(LAYER, f"{key} must be a list of strings")
    return tuple(value)


_PARSERS = {
    NAMING: _parse_naming,
    SIGNATURE: _parse_signature,
    LAYER: _parse_layer,
}
