"""Global options callback."""

from pathlib import Path
from typing import Optional

import typer

from ..logging_config import setup_logging
from . import app
from ._common import console


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="Diagnostics database path (default: ~/.finding-ledger/diagnostics.db)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    manifest_dir: Optional[str] = typer.Option(
        None,
        "--manifest-dir",
        help="Directory for project manifests",
        hidden=True,
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
        help="Only log errors",
    ),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Also append log records to this file",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
):
    """
    Record static-analysis findings and compare them across runs.

    [bold cyan]Examples:[/bold cyan]

      finding-ledger ingest eslint.sarif --project acme --tree-hash $(git rev-parse HEAD^{tree}) --config-hash abc

      finding-ledger runs --project acme

      finding-ledger diff BASE_RUN HEAD_RUN
    """
    ctx.ensure_object(dict)
    ctx.obj.update(
        {"db": db, "config": config, "manifest_dir": manifest_dir, "verbose": verbose, "quiet": quiet}
    )

    if version:
        from .. import __version__

        console.print(f"[bold cyan]finding-ledger[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)
