"""Public API for finding-ledger.

``DiagnosticsService`` runs the ingestion pipeline (adapter output ->
normalizer -> recorder -> store -> manifest) and exposes the read side of
the finding store.

Example:
    >>> from finding_ledger import open_service, load_config
    >>>
    >>> service = open_service(load_config(db_path=":memory:"))
    >>> result = service.ingest_report(
    ...     sarif_text,
    ...     project_id="acme",
    ...     tree_hash="4b825dc6",
    ...     config_hash="c0ffee",
    ... )
    >>> result.stored
    True
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .adapters import AdapterResult, get_adapter
from .adapters.base import Report
from .config import LedgerConfig, RepeatPolicy, load_config
from .diagnostics.attribution import ChunkAttributor
from .diagnostics.identity import compute_analysis_id
from .diagnostics.models import (
    DiagnosticRun,
    DiagnosticsQueryFilter,
    FindingError,
    FindingInput,
    IdempotentRepeat,
    NormalizedFinding,
    RecordOutcome,
    ToolIdentity,
)
from .diagnostics.normalizer import normalize_findings
from .diagnostics.recorder import RunRecorder
from .exceptions import FindingLedgerError, ManifestConflictError, StorageError
from .logging_config import get_logger
from .manifest import (
    DiskManifestStore,
    InMemoryManifestStore,
    ManifestStore,
    ProjectManifest,
    update_manifest,
)
from .persistence import FindingStore, RunDiff, RunSummary

logger = get_logger(__name__)

_ManifestUpdate = tuple[Optional[ProjectManifest], Optional[FindingLedgerError]]


@dataclass
class IngestionResult:
    """What happened to one ingested report.

    ``run_id`` is the id of the stored run, or of the earlier identical run
    when a repeat was skipped. ``manifest`` is the manifest saved by this
    ingestion, if any. ``manifest_error`` is set when the run is safely in
    the store but the manifest could not be updated; ingesting the same
    report again repairs the manifest.
    """

    outcome: RecordOutcome
    stored: bool
    run_id: str
    errors: list[FindingError] = field(default_factory=list)
    manifest: Optional[ProjectManifest] = None
    manifest_error: Optional[FindingLedgerError] = None

    @property
    def is_repeat(self) -> bool:
        return self.outcome.is_repeat

    @property
    def run(self) -> DiagnosticRun:
        return self.outcome.run

    @property
    def findings(self) -> tuple[NormalizedFinding, ...]:
        return self.outcome.findings

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "stored": self.stored,
            "is_repeat": self.is_repeat,
            "status": self.run.status,
            "findings": len(self.findings),
            "findings_digest": self.run.findings_digest,
            "analysis_id": self.run.analysis_id,
            "errors": [{"index": e.index, "field": e.field, "reason": e.reason} for e in self.errors],
            "manifest_error": str(self.manifest_error) if self.manifest_error else None,
        }


def _raw_text(report: Report) -> Optional[str]:
    if isinstance(report, str):
        return report
    if isinstance(report, bytes):
        return report.decode("utf-8", errors="replace")
    if isinstance(report, Path):
        return report.read_text(encoding="utf-8", errors="replace")
    return json.dumps(report, sort_keys=True)


class DiagnosticsService:
    """Ingests tool output and answers history queries.

    Parameters
    ----------
    store:
        Where runs and findings are persisted.
    manifest_store:
        Updated with the new run id after every stored run; optional.
    repeat_policy:
        ``"skip"`` leaves an idempotent repeat unstored, ``"record"`` stores
        it as a new run.
    store_raw_report:
        Keep the raw report text on the run row.
    attributor:
        Fills ``chunk_id`` for inputs that lack one.
    """

    def __init__(
        self,
        store: FindingStore,
        manifest_store: Optional[ManifestStore] = None,
        repeat_policy: RepeatPolicy = "skip",
        store_raw_report: bool = True,
        attributor: Optional[ChunkAttributor] = None,
        recorder: Optional[RunRecorder] = None,
    ) -> None:
        self.store = store
        self.manifest_store = manifest_store
        self.repeat_policy = repeat_policy
        self.store_raw_report = store_raw_report
        self.attributor = attributor
        self.recorder = recorder or RunRecorder(lookup=store)

    # ── ingestion ─────────────────────────────────────────────────

    def ingest(
        self,
        source: Union[AdapterResult, Sequence[FindingInput]],
        project_id: str,
        tree_hash: str,
        config_hash: str,
        tool: Optional[ToolIdentity] = None,
        *,
        environment_hash: Optional[str] = None,
        commit_hash: Optional[str] = None,
        duration_ms: Optional[int] = None,
        raw_report: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        repeat_policy: Optional[RepeatPolicy] = None,
    ) -> IngestionResult:
        """Normalize, record and persist one batch of findings.

        ``tool`` overrides the identity reported by an ``AdapterResult``.
        Malformed findings are dropped and reported in ``errors``; the rest
        of the batch is still recorded. Manifest failures never hide a
        stored run: they are returned in ``manifest_error``.

        Raises:
            ValidationError: If run-level parameters are invalid
            StorageError: If the run cannot be persisted
        """
        policy = repeat_policy or self.repeat_policy
        if isinstance(source, AdapterResult):
            inputs = list(source.findings)
            if tool is None:
                tool = ToolIdentity(name=source.tool_name or "", version=source.tool_version or "")
        else:
            inputs = list(source)
        if tool is None:
            tool = ToolIdentity(name="", version="")

        if self.attributor is not None:
            inputs = self.attributor.attribute_all(inputs)

        analysis_id = compute_analysis_id(project_id, tool.name, config_hash)
        batch = normalize_findings(inputs, analysis_id)

        outcome = self.recorder.record(
            project_id,
            tool,
            tree_hash,
            config_hash,
            batch.findings,
            environment_hash,
            commit_hash=commit_hash,
            duration_ms=duration_ms,
            raw_report=raw_report if self.store_raw_report else None,
            metadata=metadata,
        )

        if isinstance(outcome, IdempotentRepeat) and policy == "skip":
            logger.info("Skipping repeat of run %s", outcome.previous_run.run_id)
            manifest, manifest_error = self._repair_manifest(project_id, analysis_id)
            return IngestionResult(
                outcome=outcome,
                stored=False,
                run_id=outcome.previous_run.run_id,
                errors=batch.errors,
                manifest=manifest,
                manifest_error=manifest_error,
            )

        put = self.store.put(outcome.run, outcome.findings, skip_if_repeat=(policy == "skip"))
        if not put.stored:
            # Another writer stored the same run between record() and put().
            previous = self.store.get_run(put.existing_run_id) if put.existing_run_id else None
            if previous is not None:
                outcome = IdempotentRepeat(
                    run=outcome.run, findings=outcome.findings, previous_run=previous
                )
            manifest, manifest_error = self._repair_manifest(project_id, analysis_id)
            return IngestionResult(
                outcome=outcome,
                stored=False,
                run_id=put.existing_run_id or outcome.run.run_id,
                errors=batch.errors,
                manifest=manifest,
                manifest_error=manifest_error,
            )

        manifest, manifest_error = self._update_manifest(
            project_id, outcome.run.analysis_id, outcome.run.run_id
        )
        return IngestionResult(
            outcome=outcome,
            stored=True,
            run_id=outcome.run.run_id,
            errors=batch.errors,
            manifest=manifest,
            manifest_error=manifest_error,
        )

    def ingest_report(
        self,
        report: Report,
        project_id: str,
        tree_hash: str,
        config_hash: str,
        fmt: str = "sarif",
        tool: Optional[ToolIdentity] = None,
        **kwargs: Any,
    ) -> IngestionResult:
        """Parse ``report`` with the ``fmt`` adapter, then ``ingest`` it."""
        parsed = get_adapter(fmt).parse(report)
        if self.store_raw_report and "raw_report" not in kwargs:
            kwargs["raw_report"] = _raw_text(report)
        return self.ingest(parsed, project_id, tree_hash, config_hash, tool, **kwargs)

    # ── manifest ──────────────────────────────────────────────────

    def _update_manifest(self, project_id: str, analysis_id: str, run_id: str) -> _ManifestUpdate:
        if self.manifest_store is None:
            return None, None
        try:
            return update_manifest(self.manifest_store, project_id, analysis_id, run_id), None
        except (ManifestConflictError, StorageError) as e:
            logger.warning("Manifest of %s not updated with run %s: %s", project_id, run_id, e)
            return None, e

    def _repair_manifest(self, project_id: str, analysis_id: str) -> _ManifestUpdate:
        """Point a missing or stale manifest entry at the newest run of the analysis."""
        if self.manifest_store is None:
            return None, None
        newest = self.store.list_analysis_runs(analysis_id, limit=1)
        if not newest:
            return None, None
        try:
            current = self.manifest_store.load(project_id)
        except StorageError as e:
            logger.warning("Manifest of %s not readable: %s", project_id, e)
            return None, e
        if current is not None and current.analyses.get(analysis_id) == newest[0].run_id:
            return None, None
        logger.info("Manifest of %s is behind run %s", project_id, newest[0].run_id)
        return self._update_manifest(project_id, analysis_id, newest[0].run_id)

    # ── queries ───────────────────────────────────────────────────

    def query(
        self, query_filter: DiagnosticsQueryFilter, limit: Optional[int] = None
    ) -> list[DiagnosticRun]:
        return self.store.query(query_filter, limit)

    def latest(self, query_filter: DiagnosticsQueryFilter) -> Optional[DiagnosticRun]:
        return self.store.latest(query_filter)

    def get_run(self, run_id: str) -> Optional[DiagnosticRun]:
        return self.store.get_run(run_id)

    def findings(self, run_id: str) -> list[NormalizedFinding]:
        return self.store.list_findings(run_id)

    def diff(self, base_run_id: str, head_run_id: str) -> RunDiff:
        return self.store.diff_runs(base_run_id, head_run_id)

    def summary(self, run_id: str) -> RunSummary:
        return self.store.summarize_run(run_id)

    def manifest(self, project_id: str) -> Optional[ProjectManifest]:
        if self.manifest_store is None:
            return None
        return self.manifest_store.load(project_id)

    def close(self) -> None:
        self.store.close()
        close = getattr(self.manifest_store, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> DiagnosticsService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_service(config: Optional[LedgerConfig] = None) -> DiagnosticsService:
    """Build a service (store and manifest store) from configuration.

    An in-memory database pairs with an in-memory manifest store; a file
    database with a diskcache manifest store under ``manifest_dir``.
    """
    config = config or load_config()
    store = FindingStore.from_config(config)
    manifest_store: ManifestStore
    if config.in_memory:
        manifest_store = InMemoryManifestStore()
    else:
        manifest_store = DiskManifestStore(config.manifest_dir)
    logger.debug("Service opened on %s (repeat policy %s)", config.db_path, config.repeat_policy)
    return DiagnosticsService(
        store,
        manifest_store,
        repeat_policy=config.repeat_policy,
        store_raw_report=config.store_raw_report,
    )
