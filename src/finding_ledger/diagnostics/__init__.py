"""Normalization, identity and run recording for tool findings."""

from .attribution import ChunkAttributor, CodeChunk
from .identity import (
    chunk_fingerprint,
    compute_analysis_id,
    compute_finding_id,
    compute_findings_digest,
    new_run_id,
    position_fingerprint,
)
from .models import (
    SEVERITIES,
    SEVERITY_RANK,
    DiagnosticRun,
    DiagnosticsQueryFilter,
    FindingError,
    FindingInput,
    IdempotentRepeat,
    NormalizationBatch,
    NormalizedFinding,
    PropertyBag,
    RecordedRun,
    RecordOutcome,
    ToolIdentity,
)
from .normalizer import normalize_finding, normalize_findings
from .recorder import RunRecorder, derive_status

__all__ = [
    "SEVERITIES",
    "SEVERITY_RANK",
    "ChunkAttributor",
    "CodeChunk",
    "DiagnosticRun",
    "DiagnosticsQueryFilter",
    "FindingError",
    "FindingInput",
    "IdempotentRepeat",
    "NormalizationBatch",
    "NormalizedFinding",
    "PropertyBag",
    "RecordOutcome",
    "RecordedRun",
    "RunRecorder",
    "ToolIdentity",
    "chunk_fingerprint",
    "compute_analysis_id",
    "compute_finding_id",
    "compute_findings_digest",
    "derive_status",
    "new_run_id",
    "normalize_finding",
    "normalize_findings",
    "position_fingerprint",
]
