"""
finding-ledger - content-addressed history of static-analysis findings

Ingests tool reports (SARIF or plain JSON), normalizes every finding into a
fingerprinted record and stores each tool execution as an immutable run, so
that findings can be compared across trees, tool versions and
configurations.
"""

__version__ = "0.1.0"

from .api import DiagnosticsService, IngestionResult, open_service
from .config import LedgerConfig, load_config
from .diagnostics import (
    DiagnosticRun,
    DiagnosticsQueryFilter,
    FindingInput,
    IdempotentRepeat,
    NormalizedFinding,
    RecordedRun,
    RunRecorder,
    ToolIdentity,
    normalize_finding,
    normalize_findings,
)
from .exceptions import FindingLedgerError
from .persistence import FindingStore

__all__ = [
    "open_service",  # Main entry point
    "DiagnosticsService",
    "IngestionResult",
    "LedgerConfig",
    "load_config",
    "FindingStore",
    "RunRecorder",
    "normalize_finding",
    "normalize_findings",
    "DiagnosticRun",
    "DiagnosticsQueryFilter",
    "FindingInput",
    "IdempotentRepeat",
    "NormalizedFinding",
    "RecordedRun",
    "ToolIdentity",
    "FindingLedgerError",
]
