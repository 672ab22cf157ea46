"""Persistent rule storage."""

from .rules_store import RuleStore, SqliteRuleStore

__all__ = ["RuleStore", "SqliteRuleStore"]
