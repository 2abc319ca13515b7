"""
Root Typer application for the isolator CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from isolator import __version__

app = Typer(
    name="isolator",
    help="isolator — carve a workspace package into a self-contained deploy.zip.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"isolator {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """isolator CLI — isolate packages and inspect their dependency closure."""


# ── Command registration ─────────────────────────────────────────────────

from isolator.cli.isolate import isolate_command, trace_command  # noqa: E402

app.command("isolate")(isolate_command)
app.command("trace")(trace_command)
