"""Layer classification.

Assigns an architectural layer to a symbol from naming conventions:
markers (annotations/decorators), the containing type's simple name and
its namespace. First matching rule wins (priority-based).

The heuristic is deliberately shallow. Symbols whose naming diverges from
convention come out UNKNOWN and are exempt from layer-dependency checks.
"""

from __future__ import annotations

from typing import Protocol

from .models import Layer, SymbolMetadata

# Marker names (matched as suffix of the qualified marker name)
PRESENTATION_MARKERS = ("RestController", "Controller")

PRESENTATION_NAMESPACES = (".controller",)
APPLICATION_NAMESPACES = (".service",)
INFRASTRUCTURE_NAMESPACES = (".repository", ".dao")
DOMAIN_NAMESPACES = (".domain",)

PRESENTATION_SUFFIXES = ("Controller",)
APPLICATION_SUFFIXES = ("Service",)
INFRASTRUCTURE_SUFFIXES = ("Repository", "Dao")


class LayerClassifier(Protocol):
    """Capability interface: symbol metadata -> layer."""

    def classify(self, metadata: SymbolMetadata) -> Layer: ...


class HeuristicLayerClassifier:
    """Suffix/namespace matching classifier.

    Priority order:
        1. presentation marker or ``*Controller`` type     -> PRESENTATION
        2. ``.controller`` namespace                       -> PRESENTATION
        3. ``*Service`` type or ``.service`` namespace     -> APPLICATION
        4. ``*Repository``/``*Dao`` type or
           ``.repository``/``.dao`` namespace              -> INFRASTRUCTURE
        5. ``.domain`` namespace                           -> DOMAIN
        6. otherwise                                       -> UNKNOWN
    """

    def __init__(
        self,
        presentation_markers: tuple[str, ...] = PRESENTATION_MARKERS,
        domain_namespaces: tuple[str, ...] = DOMAIN_NAMESPACES,
    ) -> None:
        self.presentation_markers = presentation_markers
        self.domain_namespaces = domain_namespaces

    def classify(self, metadata: SymbolMetadata) -> Layer:
        type_name = metadata.type_name or ""
        namespace = metadata.namespace or ""

        if self._has_presentation_marker(metadata.markers) or type_name.endswith(
            PRESENTATION_SUFFIXES
        ):
            return Layer.PRESENTATION
        if _contains_any(namespace, PRESENTATION_NAMESPACES):
            return Layer.PRESENTATION
        if type_name.endswith(APPLICATION_SUFFIXES) or _contains_any(
            namespace, APPLICATION_NAMESPACES
        ):
            return Layer.APPLICATION
        if type_name.endswith(INFRASTRUCTURE_SUFFIXES) or _contains_any(
            namespace, INFRASTRUCTURE_NAMESPACES
        ):
            return Layer.INFRASTRUCTURE
        if _contains_any(namespace, self.domain_namespaces):
            return Layer.DOMAIN
        return Layer.UNKNOWN

    def _has_presentation_marker(self, markers: tuple[str, ...]) -> bool:
        for marker in markers:
            qualified = marker.lstrip("@").split("(", 1)[0]
            if qualified.endswith(self.presentation_markers):
                return True
        return False


def classify_class_name(class_name: str) -> Layer:
    """Classify from the class name alone (no markers, no namespace).

    Used when the symbol index is unavailable and only the caller-supplied
    class name is known.
    """
    if "Controller" in class_name:
        return Layer.PRESENTATION
    if "Service" in class_name:
        return Layer.APPLICATION
    if "Repository" in class_name or "Dao" in class_name:
        return Layer.INFRASTRUCTURE
    return Layer.UNKNOWN


def _contains_any(namespace: str, segments: tuple[str, ...]) -> bool:
    return any(segment in namespace for segment in segments)
