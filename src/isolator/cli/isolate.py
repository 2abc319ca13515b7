"""
CLI: ``isolator isolate`` and ``isolator trace``.

Usage::

    isolator isolate -i packages/web -o dist/web.zip           # default glob **/*.{js,json}
    isolator isolate -i packages/web -o web.zip -p "src/**/*.js" -v
    isolator isolate -i packages/api -o api.zip --tracer nft --archiver zip
    isolator trace -i packages/web --json                      # closure only, nothing staged

Exit code is 0 on success and 1 on any failure, with the error on stderr
(as a JSON object when ``--json`` is given).
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from isolator.core.errors import IsolatorError
from isolator.core.logging import configure_logging, level_for
from isolator.core.result import Err
from isolator.isolation.config import IsolateConfig
from isolator.isolation.pipeline import IsolationRunner
from isolator.isolation.results import ArchiveStatus, IsolationResult

console = Console()
err_console = Console(stderr=True)


def _fail(exc: Exception, json_out: bool = False) -> typer.Exit:
    if json_out:
        typer.echo(json.dumps(Err(exc).to_dict()), err=True)
    elif isinstance(exc, IsolatorError):
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {exc}")
    return typer.Exit(code=1)


# ── isolate ──────────────────────────────────────────────────────────────


def isolate_command(
    input: Path | None = typer.Option(None, "--input", "-i", help="Package directory to isolate (i.e. packages/web)."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Where to write the zip (i.e. packages/web/deploy.zip)."),
    pattern: str | None = typer.Option(None, "--pattern", "-p", help="Entry glob relative to the package. Default: **/*.{js,json}"),
    tracer: str | None = typer.Option(None, "--tracer", help="Closure tracer: scan (built-in) or nft (@vercel/nft via node)."),
    archiver: str | None = typer.Option(None, "--archiver", help="Archiver: zipfile (built-in) or zip (external command)."),
    strict_archive: bool = typer.Option(False, "--strict-archive", help="Fail the run when archiving fails."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output."),
    json_out: bool = typer.Option(False, "--json", help="Output the run result as JSON."),
) -> None:
    """Isolate a package and its runtime closure into a zip archive."""
    configure_logging(level=level_for(verbose))
    try:
        config = IsolateConfig.from_env(
            input=input,
            output=output,
            pattern=pattern,
            tracer=tracer,
            archiver=archiver,
            strict_archive=strict_archive or None,
            verbose=verbose or None,
        )
        result = IsolationRunner(config).run()
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(exc, json_out) from exc

    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_isolation_result(result)


# ── trace ────────────────────────────────────────────────────────────────


def trace_command(
    input: Path | None = typer.Option(None, "--input", "-i", help="Package directory to trace."),
    pattern: str | None = typer.Option(None, "--pattern", "-p", help="Entry glob relative to the package."),
    tracer: str | None = typer.Option(None, "--tracer", help="Closure tracer: scan or nft."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Print the dependency closure of a package without building anything."""
    configure_logging(level=level_for(verbose))
    try:
        config = IsolateConfig.from_env(input=input, pattern=pattern, tracer=tracer, verbose=verbose or None)
        workspace_root, entries, closure = IsolationRunner(config).trace()
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(exc, json_out) from exc

    members = sorted(closure)
    if json_out:
        payload = {
            "workspace_root": str(workspace_root),
            "entries": entries,
            "closure": members,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    console.print(f"[bold]workspace:[/] {workspace_root}")
    console.print(f"[bold]entries:[/] {len(entries)}  [bold]closure:[/] {len(members)}")
    for member in members:
        console.print(f"  {member}")


# ── Private helpers ──────────────────────────────────────────────────────


def _print_isolation_result(result: IsolationResult) -> None:
    table = Table(title=f"isolate — run {result.run_id}", show_header=False, pad_edge=False)
    table.add_column("key", style="cyan")
    table.add_column("value", overflow="fold")
    table.add_row("workspace", result.workspace_root or "-")
    table.add_row("package", result.input)
    table.add_row("entries", str(len(result.entries)))
    table.add_row("closure", str(result.closure_size))
    archive = "[green]ok[/]" if result.archive_status == ArchiveStatus.OK else f"[red]{result.archive_status.value}[/]"
    table.add_row("archive", archive)
    table.add_row("output", result.published_to or "-")
    table.add_row("duration", f"{result.duration_seconds:.2f}s")
    console.print(table)

    if result.archive_error:
        err_console.print(f"[yellow]⚠ archive:[/] {result.archive_error}")
    for warning in result.warnings:
        err_console.print(f"[yellow]⚠[/] {warning}")
