"""Boundary with the symbol-resolution (indexing) collaborator.

The analysis core never builds an index itself. It asks a resolver to turn
names into method symbols and to enumerate callers, callees and overriding
implementations. Resolvers signal "index not ready / query unsupported" by
raising ``ResolutionUnavailable``; the graph builder treats that, and any
other resolver failure, as a cue to fall back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Optional

from ..architecture.models import SymbolMetadata


@dataclass(frozen=True)
class Symbol:
    """A resolvable method declaration as seen by the resolver."""

    name: str
    containing_type: str  # qualified class name
    return_type: str = "void"
    parameters: tuple[str, ...] = ()
    markers: tuple[str, ...] = ()  # method markers
    type_markers: tuple[str, ...] = ()  # markers on the containing type
    namespace: str = ""
    has_body: bool = True

    @property
    def signature(self) -> str:
        return f"{self.return_type} {self.containing_type}.{self.name}({', '.join(self.parameters)})"

    @property
    def method_key(self) -> str:
        return f"{self.containing_type}.{self.name}"


class SymbolResolver(ABC):
    """Abstract resolver over a code index."""

    @abstractmethod
    def resolve_method(self, qualified_class_name: str, method_name: str) -> Optional[Symbol]:
        """Find a method by owner and name; ``None`` when absent."""

    @abstractmethod
    def find_call_sites(self, symbol: Symbol) -> list[Symbol]:
        """Callees directly invoked in the method body (resolvable ones only)."""

    @abstractmethod
    def find_overrides(self, symbol: Symbol) -> list[Symbol]:
        """Implementations of an abstract or interface method."""

    @abstractmethod
    def find_references(self, symbol: Symbol) -> list[Symbol]:
        """Methods that call ``symbol``."""

    def classify_metadata(self, symbol: Symbol) -> SymbolMetadata:
        """Markers, simple type name and namespace used for layer classification."""
        return SymbolMetadata(
            markers=tuple(symbol.type_markers) + tuple(symbol.markers),
            type_name=symbol.containing_type.rsplit(".", 1)[-1],
            namespace=symbol.namespace,
        )

    def read_scope(self) -> AbstractContextManager:
        """Coarse read lock held for one whole graph build."""
        return nullcontext()
