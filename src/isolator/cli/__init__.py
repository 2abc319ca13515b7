"""
CLI layer for isolator.

A Typer application whose commands only build an ``IsolateConfig``,
call the isolation pipeline and render the outcome. All behaviour lives
in ``isolator.isolation``.

Entry point::

    isolator --help
"""

from isolator.cli.app import app

__all__ = ["app"]
