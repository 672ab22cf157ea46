"""Rule store commands."""

from pathlib import Path

import typer

from ..architecture.rules import DEFAULT_RULES
from ..persistence.rules_store import SqliteRuleStore
from . import app
from ._common import console


@app.command()
def rules_init(
    db: Path = typer.Argument(..., help="SQLite file to create or update"),
):
    """
    Seed a SQLite rule store with the built-in rules.

    Edit the stored JSON afterwards and pass the file to [bold]check --rules-db[/bold].
    """
    with SqliteRuleStore(db) as store:
        written = store.seed(DEFAULT_RULES)
    console.print(f"[green]Wrote {written} rule categories to[/green] [blue]{db}[/blue]")
