"""Shared CLI helpers."""

from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..api import DiagnosticsService, open_service
from ..config import LedgerConfig, load_config
from ..exceptions import FindingLedgerError

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    db: Optional[str] = None,
    manifest_dir: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> LedgerConfig:
    """Build configuration from CLI options."""
    overrides: dict[str, Any] = {}
    if db is not None:
        overrides["db_path"] = db
    if manifest_dir is not None:
        overrides["manifest_dir"] = manifest_dir
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def service_from_context(ctx: typer.Context) -> DiagnosticsService:
    """Open the service described by the global options; exit 1 on failure."""
    options = ctx.obj or {}
    try:
        config = resolve_config(
            config=options.get("config"),
            db=options.get("db"),
            manifest_dir=options.get("manifest_dir"),
            verbose=options.get("verbose", False),
            quiet=options.get("quiet", False),
        )
        return open_service(config)
    except FindingLedgerError as e:
        fail(e)


def fail(error: Exception) -> NoReturn:
    """Print ``error`` and exit with status 1."""
    console.print(f"[red]Error:[/red] {escape(str(error))}", highlight=False)
    raise typer.Exit(1)


def short(value: Optional[str], width: int = 12) -> str:
    return value[:width] if value else "-"


def format_timestamp(ts: str) -> str:
    """Trim an ISO timestamp to date + time (no fraction, no offset)."""
    if "T" in ts:
        ts = ts.replace("T", " ")
    if "+" in ts:
        ts = ts[: ts.index("+")]
    if "." in ts:
        ts = ts[: ts.index(".")]
    return ts


SEVERITY_STYLES = {
    "error": "bold red",
    "warning": "yellow",
    "info": "cyan",
    "note": "dim",
}
