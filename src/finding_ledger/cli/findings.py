"""Findings CLI command -- list the findings of one run."""

import json

import typer
from rich.markup import escape

from ..diagnostics.models import NormalizedFinding
from ..exceptions import FindingLedgerError, RunNotFoundError
from . import app
from ._common import SEVERITY_STYLES, console, fail, service_from_context, short


def _location(f: NormalizedFinding) -> str:
    loc = f.file_path
    if f.start_line is not None:
        loc += f":{f.start_line}"
        if f.start_column is not None:
            loc += f":{f.start_column}"
    return loc


@app.command()
def findings(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run to list"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List the findings of a run ordered by file and position.
    """
    with service_from_context(ctx) as service:
        try:
            if service.get_run(run_id) is None:
                raise RunNotFoundError(run_id)
            items = service.findings(run_id)
        except FindingLedgerError as e:
            fail(e)

    if json_output:
        print(json.dumps([f.to_dict() for f in items], indent=2))
        return
    if not items:
        console.print("[green]No findings.[/green]")
        return

    from rich.table import Table

    table = Table(title=f"Findings of {run_id}", show_lines=False, pad_edge=True)
    table.add_column("Severity")
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Location", no_wrap=True)
    table.add_column("Message")
    table.add_column("Fingerprint", style="dim")
    for f in items:
        style = SEVERITY_STYLES[f.severity]
        table.add_row(
            f"[{style}]{f.severity}[/{style}]",
            escape(f.rule_id),
            escape(_location(f)),
            escape(f.message),
            short(f.fingerprint),
        )
    console.print()
    console.print(table)
    console.print()
