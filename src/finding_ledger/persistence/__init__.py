"""SQLite persistence for diagnostic runs and their findings."""

from .database import DiagnosticsDB
from .diff_engine import diff_fingerprints
from .diff_models import RunDiff, SeverityChange
from .models import PutResult, RunSummary
from .store import FindingStore

__all__ = [
    "DiagnosticsDB",
    "FindingStore",
    "PutResult",
    "RunDiff",
    "RunSummary",
    "SeverityChange",
    "diff_fingerprints",
]
