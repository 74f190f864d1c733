"""Group a batch of normalized findings into one diagnostic run.

The recorder builds the run (analysis id, status, digest) and tells the
caller whether an identical run already exists. It never writes; storing a
repeat or skipping it is the caller's decision.
"""

import json
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from ..exceptions import ErrorCode, ValidationError
from ..logging_config import get_logger
from .identity import compute_analysis_id, compute_findings_digest, new_run_id
from .models import (
    DiagnosticRun,
    IdempotentRepeat,
    NormalizedFinding,
    PropertyBag,
    RecordedRun,
    RecordOutcome,
    RunStatus,
    ToolIdentity,
)

logger = get_logger(__name__)


class RunLookup(Protocol):
    """The slice of the finding store the recorder needs."""

    def find_repeat(
        self, analysis_id: str, tree_hash: str, findings_digest: str
    ) -> Optional[DiagnosticRun]: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _utc_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC so stored timestamps sort chronologically as text.

    Naive datetimes are taken to be UTC already.
    """
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc).isoformat()
    return moment.astimezone(timezone.utc).isoformat()


def derive_status(findings: Sequence[NormalizedFinding]) -> RunStatus:
    """``failed`` on any error, else ``partial`` on any warning, else ``passed``."""
    severities = {f.severity for f in findings}
    if "error" in severities:
        return "failed"
    if "warning" in severities:
        return "partial"
    return "passed"


def _require(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "missing", code=ErrorCode.FL101)
    return value


def _metadata_bag(metadata: Optional[Mapping[str, Any]]) -> PropertyBag:
    try:
        json.dumps(dict(metadata or {}), sort_keys=True)
        return PropertyBag(metadata)
    except (TypeError, ValueError) as e:
        raise ValidationError("metadata", f"not JSON-serializable: {e}", code=ErrorCode.FL101)


class RunRecorder:
    """Builds immutable ``DiagnosticRun`` records and detects repeats.

    Parameters
    ----------
    lookup:
        Store consulted for an earlier run with the same analysis, tree and
        digest. Without one every run is reported as new.
    clock:
        Returns the creation timestamp; injectable for tests.
    id_factory:
        Returns fresh run ids.
    """

    def __init__(
        self,
        lookup: Optional[RunLookup] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_run_id,
    ) -> None:
        self.lookup = lookup
        self.clock = clock
        self.id_factory = id_factory

    def record(
        self,
        project_id: str,
        tool: ToolIdentity,
        tree_hash: str,
        config_hash: str,
        findings: Sequence[NormalizedFinding],
        environment_hash: Optional[str] = None,
        *,
        commit_hash: Optional[str] = None,
        duration_ms: Optional[int] = None,
        raw_report: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> RecordOutcome:
        """Build a run for ``findings`` and check it against stored history.

        Returns
        -------
        RecordedRun
            When no identical run is stored.
        IdempotentRepeat
            When a run with the same analysis id, tree hash and findings
            digest already exists.

        Raises
        ------
        ValidationError
            Blank identifiers, a negative duration, or findings normalized
            for a different analysis.
        """
        _require(project_id, "project_id")
        _require(tree_hash, "tree_hash")
        _require(config_hash, "config_hash")
        _require(tool.name, "tool.name")
        _require(tool.version, "tool.version")
        if duration_ms is not None and (isinstance(duration_ms, bool) or duration_ms < 0):
            raise ValidationError("duration_ms", "must be non-negative", code=ErrorCode.FL101)

        bag = _metadata_bag(metadata)

        analysis_id = compute_analysis_id(project_id, tool.name, config_hash)
        for finding in findings:
            if finding.analysis_id != analysis_id:
                raise ValidationError(
                    "analysis_id",
                    f"finding {finding.finding_id[:12]} belongs to analysis "
                    f"{finding.analysis_id[:12]}, expected {analysis_id[:12]}",
                    code=ErrorCode.FL101,
                )

        run = DiagnosticRun(
            run_id=self.id_factory(),
            analysis_id=analysis_id,
            project_id=project_id,
            tree_hash=tree_hash,
            tool=tool,
            config_hash=config_hash,
            status=derive_status(findings),
            created_at=_utc_timestamp(self.clock()),
            findings_digest=compute_findings_digest(findings),
            commit_hash=commit_hash or None,
            environment_hash=environment_hash or None,
            duration_ms=duration_ms,
            raw_report=raw_report,
            metadata=bag,
        )
        frozen = tuple(findings)

        previous = None
        if self.lookup is not None:
            previous = self.lookup.find_repeat(analysis_id, tree_hash, run.findings_digest)

        if previous is not None:
            logger.info(
                "Run for %s/%s on tree %s repeats run %s",
                project_id,
                tool.name,
                tree_hash[:12],
                previous.run_id,
            )
            return IdempotentRepeat(run=run, findings=frozen, previous_run=previous)

        logger.debug(
            "Recorded run %s (%s, %d findings, digest %s)",
            run.run_id,
            run.status,
            len(frozen),
            run.findings_digest[:12],
        )
        return RecordedRun(run=run, findings=frozen)
