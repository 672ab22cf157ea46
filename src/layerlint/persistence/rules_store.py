"""Rule storage: where rule categories are loaded from.

A store returns ``{category: JSON text}``. Stores raise
``RuleStorageUnavailable`` when they cannot be read at all; parsing and
per-category fallback happen in :mod:`layerlint.architecture.rules`.
"""

from __future__ import annotations

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

from ..exceptions import RuleStorageUnavailable
from ..logging_config import get_logger

logger = get_logger(__name__)


class RuleStore(ABC):
    """Source of stored rule categories."""

    @abstractmethod
    def load(self) -> dict[str, str]:
        """Return active rules as ``{category: JSON text}``."""


class SqliteRuleStore(RuleStore):
    """Rules kept in a SQLite ``layer_rules`` table.

    Usage::

        with SqliteRuleStore("rules.db") as store:
            store.seed(DEFAULT_RULES)
        rules = load_rule_set(SqliteRuleStore("rules.db"))
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    # ── lifecycle ─────────────────────────────────────────────────

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("SqliteRuleStore is not connected. Use as context manager or call connect().")
        return self._conn

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and create the table."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self._migrate()
        logger.debug("Rule store connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteRuleStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _migrate(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS layer_rules (
                id           INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_type    TEXT    NOT NULL,
                rule_name    TEXT    NOT NULL DEFAULT '',
                rule_content TEXT    NOT NULL,
                description  TEXT,
                is_active    INTEGER NOT NULL DEFAULT 1,
                created_at   TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_layer_rules_type ON layer_rules(rule_type, is_active)"
        )
        self.conn.commit()

    # ── RuleStore ────────────────────────────────────────────────

    def load(self) -> dict[str, str]:
        """Read active rules; the newest row of a category wins."""
        if not self.db_path.exists():
            raise RuleStorageUnavailable(str(self.db_path), "database file does not exist")
        try:
            conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
            try:
                rows = conn.execute(
                    "SELECT rule_type, rule_content FROM layer_rules WHERE is_active = 1 ORDER BY id"
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RuleStorageUnavailable(str(self.db_path), str(e))

        rules = {rule_type: content for rule_type, content in rows}
        logger.debug("Loaded %d rule categories from %s", len(rules), self.db_path)
        return rules

    def save(
        self,
        category: str,
        params: Mapping[str, Any] | str,
        name: str = "",
        description: Optional[str] = None,
    ) -> None:
        """Store a category; earlier rows of the same category are deactivated."""
        content = params if isinstance(params, str) else json.dumps(dict(params), sort_keys=True)
        self.conn.execute("UPDATE layer_rules SET is_active = 0 WHERE rule_type = ?", (category,))
        self.conn.execute(
            "INSERT INTO layer_rules (rule_type, rule_name, rule_content, description) VALUES (?, ?, ?, ?)",
            (category, name, content, description),
        )
        self.conn.commit()

    def seed(self, rules: Mapping[str, Mapping[str, Any]]) -> int:
        """Write every category of ``rules``; returns the number written."""
        for category, params in rules.items():
            self.save(category, params, name=f"default {category} rules")
        return len(rules)
