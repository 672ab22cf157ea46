"""Symbol-resolution boundary and the bundled in-memory index."""

from .base import Symbol, SymbolResolver
from .memory import InMemoryResolver

__all__ = ["Symbol", "SymbolResolver", "InMemoryResolver"]
