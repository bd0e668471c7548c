"""Console output helpers.

Progress and diagnostics go to stderr so that reports written to stdout
stay byte-for-byte reproducible.
"""

from __future__ import annotations

import click


def step(msg: str) -> None:
    """Print a visually distinct step header."""
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}", err=True)


def warn(msg: str) -> None:
    click.secho(f"WARNING: {msg}", fg="yellow", err=True)


def fatal(msg: str) -> None:
    """Abort the command with an error message and exit code 1."""
    raise click.ClickException(msg)
