"""CLI entry point: registers all subcommands."""

import typer

app = typer.Typer(
    name="finding-ledger",
    help="finding-ledger - history of static-analysis findings across runs",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .main import main as _main_callback  # noqa: F401, E402
from .ingest import ingest as _ingest  # noqa: F401, E402
from .runs import runs as _runs  # noqa: F401, E402
from .findings import findings as _findings  # noqa: F401, E402
from .diff import diff_cmd as _diff  # noqa: F401, E402
from .summary import summary as _summary  # noqa: F401, E402
