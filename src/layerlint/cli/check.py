"""Check command — analyze one method's call graph against the layer rules."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..analysis.engine import AnalysisResult, Analyzer
from ..cache import ResultCache
from ..exceptions import LayerlintError
from ..graph.models import CallGraph, MethodInfo
from ..logging_config import setup_logging
from ..resolution.memory import InMemoryResolver
from . import app
from ._common import SEVERITY_STYLES, console, resolve_config


@app.command()
def check(
    class_name: str = typer.Argument(..., help="Qualified class name, e.g. com.acme.web.UserController"),
    method_name: str = typer.Argument(..., help="Method name, e.g. getUser"),
    index: Path = typer.Option(
        ...,
        "--index",
        "-i",
        help="Symbol index (JSON) to resolve calls against",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: rich (human-readable) or json",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    rules_db: Optional[Path] = typer.Option(
        None,
        "--rules-db",
        help="SQLite rule store (defaults to built-in rules)",
    ),
    max_depth: Optional[int] = typer.Option(
        None,
        "--max-depth",
        "-d",
        help="Maximum downward call depth",
        min=1,
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Disable the result cache",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress logging",
    ),
):
    """
    Check a method's call graph for layer, naming and signature violations.

    Exits with status 1 when any HIGH severity violation is found.

    [bold cyan]Examples:[/bold cyan]

      layerlint check com.acme.web.UserController getUser --index index.json

      layerlint check com.acme.service.UserService findUser -i index.json --format json
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    try:
        settings = resolve_config(
            config=config,
            max_depth=max_depth,
            no_cache=no_cache,
            rules_db=rules_db,
            verbose=verbose,
            quiet=quiet,
        )

        resolver = InMemoryResolver.from_file(index)
        with ResultCache.from_config(settings) as cache:
            analyzer = Analyzer.from_config(resolver, settings, cache=cache)
            result = analyzer.analyze(method_name, class_name)

        if fmt == "json":
            print(json.dumps(result.to_dict(), indent=2))
        else:
            _output_rich(result, verbose=verbose)

    except typer.Exit:
        raise
    except LayerlintError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    if result.has_high_severity:
        raise typer.Exit(1)


def _output_rich(result: AnalysisResult, verbose: bool = False):
    """Human-readable terminal output: call tree, then violations."""
    graph = result.graph

    console.print()
    console.print(f"[bold cyan]layerlint — {escape(result.method_key)}[/bold cyan]")
    if graph.is_fallback:
        console.print("[yellow]Symbol index unavailable, showing a synthetic call graph[/yellow]")
    if result.from_cache:
        console.print("[dim](cached result)[/dim]")
    console.print()

    console.print(_render_tree(graph))
    console.print(
        f"  [bold]{graph.total_method_count}[/bold] calls, max depth [bold]{graph.max_depth}[/bold]"
    )
    console.print()

    if not result.violations:
        console.print("[green]No violations found[/green]")
        return

    table = Table(title="Violations", show_lines=verbose)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Location")
    table.add_column("Description")
    if verbose:
        table.add_column("Suggestion")

    for violation in sorted(result.violations, key=lambda v: -v.severity_level):
        row = [
            Text(violation.severity.name, style=SEVERITY_STYLES[violation.severity]),
            Text(violation.violation_type.value),
            Text(violation.location),
            Text(violation.description),
        ]
        if verbose:
            row.append(Text(violation.suggestion))
        table.add_row(*row)
    console.print(table)

    counts = result.count_by_severity()
    console.print(
        f"  [bold red]{counts['high']}[/bold red] high, "
        f"[yellow]{counts['medium']}[/yellow] medium, "
        f"[dim]{counts['low']}[/dim] low"
    )

    for advisory in result.advisories:
        console.print()
        console.print(Text(advisory.to_report_string()))


def _render_tree(graph: CallGraph) -> Tree:
    """Rich tree of the call graph following recorded caller -> callee edges."""
    root = graph.root
    tree = Tree(_method_label(root))

    children: dict[str, list[MethodInfo]] = {}
    for caller, callee in graph.call_edges():
        children.setdefault(caller.signature, []).append(callee)

    def attach(node: Tree, method: MethodInfo, path: set[str]) -> None:
        for callee in children.get(method.signature, []):
            child = node.add(_method_label(callee))
            if callee.signature not in path:
                attach(child, callee, path | {callee.signature})

    attach(tree, root, {root.signature})
    return tree


def _method_label(method: MethodInfo) -> Text:
    label = Text(method.signature)
    label.append(f"  [{method.layer.value}]", style="dim")
    return label
