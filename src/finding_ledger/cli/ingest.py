"""Ingest CLI command -- record one tool report as a diagnostic run."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from ..adapters import available_adapters, get_adapter
from ..api import IngestionResult
from ..exceptions import FindingLedgerError
from . import app
from ._common import console, fail, service_from_context, short

_FORMATS = ", ".join(available_adapters())


@app.command()
def ingest(
    ctx: typer.Context,
    report: Path = typer.Argument(
        ...,
        help="Tool report to ingest (SARIF or JSON findings)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    project: str = typer.Option(..., "--project", "-p", help="Project identifier"),
    tree_hash: str = typer.Option(..., "--tree-hash", help="Content hash of the analyzed tree"),
    config_hash: str = typer.Option(..., "--config-hash", help="Hash of the tool configuration"),
    commit: Optional[str] = typer.Option(None, "--commit", help="Commit the tree belongs to"),
    environment_hash: Optional[str] = typer.Option(
        None, "--environment-hash", help="Hash of the runtime environment"
    ),
    tool_name: Optional[str] = typer.Option(
        None, "--tool-name", help="Override the tool name found in the report"
    ),
    tool_version: Optional[str] = typer.Option(
        None, "--tool-version", help="Override the tool version found in the report"
    ),
    fmt: str = typer.Option(
        "sarif",
        "--format",
        "-f",
        help=f"Report format ({_FORMATS})",
    ),
    record_repeats: bool = typer.Option(
        False,
        "--record-repeats",
        help="Store a run even when it repeats an earlier identical run",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Ingest a tool report as a new diagnostic run.

    An identical earlier run (same project, tool, configuration, tree and
    findings) is reported instead of stored, unless --record-repeats is set.

    [bold cyan]Examples:[/bold cyan]

      finding-ledger ingest eslint.sarif -p acme --tree-hash 4b825dc6 --config-hash c0ffee

      finding-ledger ingest findings.json -f json --tool-name mylint --tool-version 1.2.0 ...
    """
    with service_from_context(ctx) as service:
        try:
            raw = report.read_text(encoding="utf-8", errors="replace")
            parsed = get_adapter(fmt).parse(raw)
            if tool_name:
                parsed.tool_name = tool_name
            if tool_version:
                parsed.tool_version = tool_version
            result = service.ingest(
                parsed,
                project_id=project,
                tree_hash=tree_hash,
                config_hash=config_hash,
                commit_hash=commit,
                environment_hash=environment_hash,
                raw_report=raw,
                repeat_policy="record" if record_repeats else None,
            )
        except FindingLedgerError as e:
            fail(e)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _output_rich(result)


def _output_rich(result: IngestionResult) -> None:
    run = result.run
    if result.stored:
        console.print(
            f"[green]Stored run[/green] [bold]{result.run_id}[/bold] "
            f"({run.status}, {len(result.findings)} findings, "
            f"{escape(run.tool.name)} {escape(run.tool.version)})"
        )
    else:
        console.print(
            f"[yellow]Repeat[/yellow] of run [bold]{result.run_id}[/bold]; nothing stored "
            f"(digest {short(run.findings_digest)})"
        )
    if result.manifest_error is not None:
        console.print(
            f"[red]Manifest not updated:[/red] {escape(str(result.manifest_error))}",
            highlight=False,
        )
    for error in result.errors:
        console.print(
            f"  [yellow]skipped finding #{error.index}[/yellow]: "
            f"{escape(error.field)}: {escape(error.reason)}",
            highlight=False,
        )
