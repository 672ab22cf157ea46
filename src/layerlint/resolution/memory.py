"""In-memory symbol index loaded from JSON.

Index layout::

    {
      "symbols": [
        {
          "id": "com.acme.web.UserController.getUser",   # optional, defaults to class.method
          "class": "com.acme.web.UserController",
          "method": "getUser",
          "return_type": "User",
          "parameters": ["Long id"],
          "markers": ["@GetMapping"],
          "class_markers": ["@RestController"],
          "namespace": "com.acme.web",                    # optional, derived from class
          "abstract": false,
          "calls": ["com.acme.service.UserService.findUser"],
          "overrides": null                               # id of the overridden method
        }
      ]
    }

Calls to ids that are not in the index are treated as unresolvable call
sites and silently dropped.
"""

from __future__ import annotations

import json
import threading
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Optional

from ..exceptions import ResolutionUnavailable
from ..logging_config import get_logger
from .base import Symbol, SymbolResolver

logger = get_logger(__name__)


class InMemoryResolver(SymbolResolver):
    """Resolver over a dict-based call index, guarded by one re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._symbols: dict[str, Symbol] = {}
        self._calls: dict[str, list[str]] = {}
        self._overridden_by: dict[str, list[str]] = {}
        self._ids: dict[Symbol, str] = {}
        self._unavailable_reason: Optional[str] = None

    # ── construction ──────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryResolver":
        resolver = cls()
        for entry in data.get("symbols", []):
            resolver.add_symbol(
                class_name=entry["class"],
                method_name=entry["method"],
                symbol_id=entry.get("id"),
                return_type=entry.get("return_type", "void"),
                parameters=entry.get("parameters", ()),
                markers=entry.get("markers", ()),
                class_markers=entry.get("class_markers", ()),
                namespace=entry.get("namespace"),
                abstract=bool(entry.get("abstract", False)),
                calls=entry.get("calls", ()),
                overrides=entry.get("overrides"),
            )
        return resolver

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryResolver":
        """Load an index file.

        An unreadable or malformed file yields a resolver that reports
        itself unavailable on every query instead of raising here.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            resolver = cls.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Symbol index %s could not be loaded: %s", path, e)
            resolver = cls()
            resolver.mark_unavailable(f"index not loaded: {e}")
            return resolver
        logger.debug("Loaded %d symbols from %s", len(resolver), path)
        return resolver

    def add_symbol(
        self,
        class_name: str,
        method_name: str,
        symbol_id: Optional[str] = None,
        return_type: str = "void",
        parameters=(),
        markers=(),
        class_markers=(),
        namespace: Optional[str] = None,
        abstract: bool = False,
        calls=(),
        overrides: Optional[str] = None,
    ) -> Symbol:
        symbol_id = symbol_id or f"{class_name}.{method_name}"
        if namespace is None:
            namespace = class_name.rsplit(".", 1)[0] if "." in class_name else ""
        symbol = Symbol(
            name=method_name,
            containing_type=class_name,
            return_type=return_type,
            parameters=tuple(parameters),
            markers=tuple(markers),
            type_markers=tuple(class_markers),
            namespace=namespace,
            has_body=not abstract,
        )
        with self._lock:
            self._symbols[symbol_id] = symbol
            self._ids[symbol] = symbol_id
            self._calls[symbol_id] = list(calls)
            if overrides:
                self._overridden_by.setdefault(overrides, []).append(symbol_id)
        return symbol

    def mark_unavailable(self, reason: str) -> None:
        """Simulate an index that is not ready (e.g. still building)."""
        self._unavailable_reason = reason

    def mark_available(self) -> None:
        self._unavailable_reason = None

    def __len__(self) -> int:
        return len(self._symbols)

    # ── SymbolResolver ───────────────────────────────────────────

    def read_scope(self) -> AbstractContextManager:
        return self._lock

    def resolve_method(self, qualified_class_name: str, method_name: str) -> Optional[Symbol]:
        self._check_available(f"resolve {qualified_class_name}.{method_name}")
        with self._lock:
            for symbol in self._symbols.values():
                if symbol.containing_type == qualified_class_name and symbol.name == method_name:
                    return symbol
        return None

    def find_call_sites(self, symbol: Symbol) -> list[Symbol]:
        self._check_available(f"call sites of {symbol.method_key}")
        with self._lock:
            symbol_id = self._ids.get(symbol)
            if symbol_id is None:
                return []
            return [self._symbols[c] for c in self._calls.get(symbol_id, []) if c in self._symbols]

    def find_overrides(self, symbol: Symbol) -> list[Symbol]:
        self._check_available(f"overrides of {symbol.method_key}")
        with self._lock:
            symbol_id = self._ids.get(symbol)
            if symbol_id is None:
                return []
            return [self._symbols[o] for o in self._overridden_by.get(symbol_id, [])]

    def find_references(self, symbol: Symbol) -> list[Symbol]:
        self._check_available(f"references to {symbol.method_key}")
        with self._lock:
            target_id = self._ids.get(symbol)
            if target_id is None:
                return []
            return [
                self._symbols[caller_id]
                for caller_id, callees in self._calls.items()
                if target_id in callees
            ]

    def _check_available(self, query: str) -> None:
        if self._unavailable_reason is not None:
            raise ResolutionUnavailable(self._unavailable_reason, query=query)
