"""Package filter: keeps the call graph focused on user code.

Exclude prefixes are checked first; any match drops the class regardless of
the include list. With no include prefixes configured everything else is
kept, otherwise the class must match at least one include prefix.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from ..config import DEFAULT_EXCLUDE_PACKAGES

if TYPE_CHECKING:
    from ..config import AnalysisConfig


class PackageFilter:
    """Prefix-based keep/drop predicate over qualified class names."""

    def __init__(
        self,
        include: Iterable[str] = (),
        exclude: Iterable[str] = DEFAULT_EXCLUDE_PACKAGES,
    ) -> None:
        self.include: tuple[str, ...] = tuple(p for p in include if p)
        self.exclude: tuple[str, ...] = tuple(p for p in exclude if p)

    @classmethod
    def from_config(cls, config: "AnalysisConfig") -> "PackageFilter":
        return cls(include=config.include_packages, exclude=config.exclude_packages)

    def keep(self, qualified_class_name: Optional[str]) -> bool:
        if not qualified_class_name:
            return False
        if qualified_class_name.startswith(self.exclude):
            return False
        if not self.include:
            return True
        return qualified_class_name.startswith(self.include)

    def __repr__(self) -> str:
        return f"PackageFilter(include={list(self.include)}, exclude={len(self.exclude)} prefixes)"
