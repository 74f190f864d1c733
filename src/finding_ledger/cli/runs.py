"""Runs CLI command -- list stored runs of a project."""

import json
from typing import Optional

import typer
from rich.markup import escape

from ..diagnostics.models import DiagnosticRun, DiagnosticsQueryFilter
from ..exceptions import FindingLedgerError
from . import app
from ._common import console, fail, format_timestamp, service_from_context, short

_STATUS_STYLES = {"passed": "green", "partial": "yellow", "failed": "red"}


@app.command()
def runs(
    ctx: typer.Context,
    project: str = typer.Option(..., "--project", "-p", help="Project identifier"),
    tool: Optional[str] = typer.Option(None, "--tool", help="Only runs of this tool"),
    tool_version: Optional[str] = typer.Option(
        None, "--tool-version", help="Only runs of this tool version"
    ),
    tree_hash: Optional[str] = typer.Option(None, "--tree-hash", help="Only runs of this tree"),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of runs to list",
        min=1,
        max=1000,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List stored runs of a project, newest first.

    [bold cyan]Examples:[/bold cyan]

      finding-ledger runs -p acme

      finding-ledger runs -p acme --tool eslint --json
    """
    query_filter = DiagnosticsQueryFilter(
        project_id=project, tool_name=tool, tool_version=tool_version, tree_hash=tree_hash
    )
    with service_from_context(ctx) as service:
        try:
            found = service.query(query_filter, limit=limit)
        except FindingLedgerError as e:
            fail(e)

    if json_output:
        print(json.dumps([r.to_dict() for r in found], indent=2))
        return
    if not found:
        console.print(f"[yellow]No runs recorded for project {escape(project)}.[/yellow]")
        return
    _output_rich(found, project)


def _output_rich(found: list[DiagnosticRun], project: str) -> None:
    from rich.table import Table

    table = Table(title=f"Runs of {escape(project)}", show_lines=False, pad_edge=True)
    table.add_column("Run", style="bold")
    table.add_column("Created", style="green")
    table.add_column("Tool", style="cyan")
    table.add_column("Version")
    table.add_column("Tree", style="dim")
    table.add_column("Status")
    table.add_column("Digest", style="dim")

    for run in found:
        style = _STATUS_STYLES.get(run.status, "")
        table.add_row(
            run.run_id,
            format_timestamp(run.created_at),
            escape(run.tool.name),
            escape(run.tool.version),
            escape(short(run.tree_hash)),
            f"[{style}]{run.status}[/{style}]" if style else run.status,
            short(run.findings_digest),
        )

    console.print()
    console.print(table)
    console.print()
