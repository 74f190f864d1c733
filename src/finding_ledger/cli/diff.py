"""Diff CLI command -- compare two runs by fingerprint."""

import json

import typer
from rich.markup import escape

from ..exceptions import FindingLedgerError
from ..persistence import RunDiff
from . import app
from ._common import SEVERITY_STYLES, console, fail, service_from_context, short


@app.command(name="diff")
def diff_cmd(
    ctx: typer.Context,
    base_run_id: str = typer.Argument(..., help="Earlier run"),
    head_run_id: str = typer.Argument(..., help="Later run"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Show which findings a run introduced, resolved or changed in severity.
    """
    with service_from_context(ctx) as service:
        try:
            result = service.diff(base_run_id, head_run_id)
        except FindingLedgerError as e:
            fail(e)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _output_rich(result)


def _output_rich(result: RunDiff) -> None:
    console.print()
    console.print(
        f"[bold]{escape(result.base_run_id)}[/bold] -> [bold]{escape(result.head_run_id)}[/bold]"
    )
    console.print(
        f"[red]+{len(result.introduced)} introduced[/red], "
        f"[green]-{len(result.resolved)} resolved[/green], "
        f"{len(result.unchanged)} unchanged"
    )
    if not result.has_changes:
        console.print("[green]No changes.[/green]")
        return

    for fp in result.introduced:
        console.print(f"  [red]+[/red] {escape(short(fp, 16))}")
    for fp in result.resolved:
        console.print(f"  [green]-[/green] {escape(short(fp, 16))}")
    for change in result.severity_changed:
        old = SEVERITY_STYLES[change.old_severity]
        new = SEVERITY_STYLES[change.new_severity]
        console.print(
            f"  [yellow]~[/yellow] {escape(short(change.fingerprint, 16))} "
            f"[{old}]{change.old_severity}[/{old}] -> [{new}]{change.new_severity}[/{new}] "
            f"({change.direction})"
        )
    console.print()
