"""Cache management commands."""

from pathlib import Path
from typing import Optional

import typer

from . import app
from ._common import console, resolve_config


@app.command()
def cache_info(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
):
    """Show cache information and statistics."""
    from ..cache import ResultCache

    settings = resolve_config(config=config)

    if not settings.cache_enabled:
        console.print("Status: [red]Disabled[/red]")
        return

    with ResultCache.from_config(settings) as cache:
        stats = cache.stats()

    console.print("[bold cyan]layerlint Cache Info[/bold cyan]")
    console.print()
    console.print("Status: [green]Enabled[/green]")
    console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
    console.print(f"Entries: [yellow]{stats.get('size', 0)}[/yellow] / {stats.get('max_entries')}")
    console.print(f"Expired: [yellow]{stats.get('expired', 0)}[/yellow]")
    for kind, count in stats.get("by_kind", {}).items():
        console.print(f"  {kind}: {count}")
    console.print(f"Size: [yellow]{stats.get('volume', 0)} bytes[/yellow]")


@app.command()
def cache_clear(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
):
    """Clear the result cache."""
    from ..cache import ResultCache

    settings = resolve_config(config=config)

    if not settings.cache_enabled:
        console.print("[yellow]Cache is disabled[/yellow]")
        raise typer.Exit(0)

    with ResultCache.from_config(settings) as cache:
        cache.clear()
    console.print("[green]Cache cleared successfully[/green]")
