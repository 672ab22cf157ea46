"""Architecture models: layers, classifier input, rule violations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Layer(Enum):
    """Architectural tier of a method's containing type."""

    PRESENTATION = "PRESENTATION"
    APPLICATION = "APPLICATION"
    DOMAIN = "DOMAIN"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "Layer":
        """Parse a layer name, mapping anything unrecognised to UNKNOWN."""
        if not isinstance(value, str) or not value:
            return cls.UNKNOWN
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class SymbolMetadata:
    """What the classifier sees of a symbol."""

    markers: tuple[str, ...] = ()
    type_name: str = ""  # simple name, e.g. "UserController"
    namespace: str = ""  # e.g. "com.acme.web.controller"


class ViolationType(Enum):
    """Kinds of detected deviations."""

    NAMING_VIOLATION = "NAMING_VIOLATION"
    SIGNATURE_VIOLATION = "SIGNATURE_VIOLATION"
    LAYER_VIOLATION = "LAYER_VIOLATION"
    ADVISORY = "ADVISORY"  # produced by an external advisor, not by rules

    @classmethod
    def parse(cls, value: Any) -> "ViolationType":
        if not isinstance(value, str):
            return cls.ADVISORY
        try:
            return cls(value.upper())
        except ValueError:
            return cls.ADVISORY


class Severity(Enum):
    """Ordered severity; the value is the sort level."""

    HIGH = 3
    MEDIUM = 2
    LOW = 1

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Parse "high"/"medium"/"low"; anything else is LOW."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            return _SEVERITY_NAMES.get(value.strip().lower(), cls.LOW)
        return cls.LOW

    @property
    def label(self) -> str:
        return self.name.lower()


_SEVERITY_NAMES = {"high": Severity.HIGH, "medium": Severity.MEDIUM, "low": Severity.LOW}


@dataclass(frozen=True)
class Violation:
    """A single deviation from naming, signature or layer-dependency rules."""

    violation_type: ViolationType
    description: str
    location: str  # method signature, or "caller -> callee"
    suggestion: str
    severity: Severity = Severity.LOW
    rule_reference: Optional[str] = None

    @property
    def severity_level(self) -> int:
        return self.severity.value

    def to_report_string(self) -> str:
        """Render the human-readable display block."""
        lines = [
            f"[{self.severity.name}] {self.description}",
            f"Location: {self.location}",
            f"Suggestion: {self.suggestion}",
        ]
        if self.rule_reference is not None:
            lines.append(f"Rule: {self.rule_reference}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "violation_type": self.violation_type.value,
            "description": self.description,
            "location": self.location,
            "suggestion": self.suggestion,
            "severity": self.severity.label,
            "rule_reference": self.rule_reference,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Violation":
        if not isinstance(data, dict):
            raise ValueError(f"violation record must be a mapping, got {type(data).__name__}")
        return cls(
            violation_type=ViolationType.parse(data["violation_type"]),
            description=data["description"],
            location=data["location"],
            suggestion=data["suggestion"],
            severity=Severity.parse(data.get("severity")),
            rule_reference=data.get("rule_reference"),
        )
