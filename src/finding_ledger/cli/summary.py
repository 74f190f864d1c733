"""Summary CLI command -- finding totals of one run."""

import json

import typer
from rich.markup import escape

from ..exceptions import FindingLedgerError
from ..persistence import RunSummary
from . import app
from ._common import SEVERITY_STYLES, console, fail, service_from_context

_TOP_N = 10


@app.command()
def summary(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run to summarize"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Count a run's findings by severity, rule and file.
    """
    with service_from_context(ctx) as service:
        try:
            result = service.summary(run_id)
        except FindingLedgerError as e:
            fail(e)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _output_rich(result)


def _output_rich(result: RunSummary) -> None:
    from rich.table import Table

    console.print()
    console.print(f"[bold]{result.run_id}[/bold]: {result.status}, {result.total} findings")
    if result.by_severity:
        console.print(
            "  "
            + ", ".join(
                f"[{SEVERITY_STYLES[sev]}]{n} {sev}[/{SEVERITY_STYLES[sev]}]"
                for sev, n in result.by_severity.items()
            )
        )

    for title, counts in (("Top rules", result.by_rule), ("Top files", result.by_file)):
        if not counts:
            continue
        table = Table(title=title, show_lines=False, pad_edge=True)
        table.add_column("Name")
        table.add_column("Findings", justify="right", style="yellow")
        for name, n in list(counts.items())[:_TOP_N]:
            table.add_row(escape(name), str(n))
        console.print(table)
    console.print()
