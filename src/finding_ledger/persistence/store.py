"""Finding store: thread-safe facade over the diagnostics database."""

import sqlite3
import threading
from collections.abc import Sequence
from typing import Optional

from ..config import LedgerConfig
from ..diagnostics.models import DiagnosticRun, DiagnosticsQueryFilter, NormalizedFinding
from ..exceptions import RunNotFoundError, StorageError
from ..logging_config import get_logger
from . import reader, writer
from .database import MEMORY_PATH, DiagnosticsDB
from .diff_engine import diff_fingerprints
from .diff_models import RunDiff
from .models import PutResult, RunSummary

logger = get_logger(__name__)


class FindingStore:
    """Persists immutable runs with their findings and answers history queries.

    One connection is shared by all threads and guarded by a re-entrant lock;
    other processes are serialized by SQLite's busy timeout. Every sqlite
    failure surfaces as ``StorageError``.

    Usage::

        with FindingStore.open(":memory:") as store:
            store.put(run, findings)
            store.query(DiagnosticsQueryFilter(project_id="acme"))
    """

    def __init__(self, db: DiagnosticsDB) -> None:
        self._db = db
        self._lock = threading.RLock()
        self._db.connect()

    @classmethod
    def open(cls, db_path: str = MEMORY_PATH, **kwargs) -> "FindingStore":
        return cls(DiagnosticsDB(db_path, **kwargs))

    @classmethod
    def from_config(cls, config: LedgerConfig) -> "FindingStore":
        return cls(
            DiagnosticsDB(
                config.db_path,
                wal_mode=config.wal_mode,
                foreign_keys=config.foreign_keys,
                busy_timeout_ms=config.busy_timeout_ms,
            )
        )

    @property
    def db_path(self) -> str:
        return self._db.db_path

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "FindingStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── writes ────────────────────────────────────────────────────

    def put(
        self,
        run: DiagnosticRun,
        findings: Sequence[NormalizedFinding],
        skip_if_repeat: bool = False,
    ) -> PutResult:
        """Store a run and its findings atomically.

        With ``skip_if_repeat`` an identical stored run (same analysis id,
        tree hash and findings digest) turns the call into a no-op that
        reports the existing run id.

        Raises
        ------
        StorageError
            Nothing of the run is visible afterwards.
        """
        with self._lock:
            try:
                result = writer.save_run(self._db.conn, run, findings, skip_if_repeat)
            except sqlite3.Error as e:
                logger.error("Failed to store run %s: %s", run.run_id, e)
                raise StorageError("put", str(e))
        if result.stored:
            logger.info(
                "Stored run %s (%s, %d findings)", run.run_id, run.status, result.finding_count
            )
        else:
            logger.info("Skipped run %s: repeats %s", run.run_id, result.existing_run_id)
        return result

    def delete_run(self, run_id: str) -> bool:
        """Delete a run and its findings. Returns False if it did not exist."""
        with self._lock:
            try:
                deleted = writer.delete_run(self._db.conn, run_id)
            except sqlite3.Error as e:
                raise StorageError("delete_run", str(e))
        if deleted:
            logger.info("Deleted run %s", run_id)
        return deleted

    # ── reads ─────────────────────────────────────────────────────

    def query(
        self, query_filter: DiagnosticsQueryFilter, limit: Optional[int] = None
    ) -> list[DiagnosticRun]:
        with self._lock:
            try:
                return reader.query_runs(self._db.conn, query_filter, limit)
            except sqlite3.Error as e:
                raise StorageError("query", str(e))

    def latest(self, query_filter: DiagnosticsQueryFilter) -> Optional[DiagnosticRun]:
        runs = self.query(query_filter, limit=1)
        return runs[0] if runs else None

    def get_run(self, run_id: str) -> Optional[DiagnosticRun]:
        with self._lock:
            try:
                return reader.load_run(self._db.conn, run_id)
            except sqlite3.Error as e:
                raise StorageError("get_run", str(e))

    def list_findings(self, run_id: str) -> list[NormalizedFinding]:
        with self._lock:
            try:
                return reader.list_findings(self._db.conn, run_id)
            except sqlite3.Error as e:
                raise StorageError("list_findings", str(e))

    def find_repeat(
        self, analysis_id: str, tree_hash: str, findings_digest: str
    ) -> Optional[DiagnosticRun]:
        with self._lock:
            try:
                return reader.find_repeat(self._db.conn, analysis_id, tree_hash, findings_digest)
            except sqlite3.Error as e:
                raise StorageError("find_repeat", str(e))

    def list_analysis_runs(
        self, analysis_id: str, limit: Optional[int] = None
    ) -> list[DiagnosticRun]:
        with self._lock:
            try:
                return reader.list_analysis_runs(self._db.conn, analysis_id, limit)
            except sqlite3.Error as e:
                raise StorageError("list_analysis_runs", str(e))

    def _require_run(self, run_id: str) -> DiagnosticRun:
        run = self.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def diff_runs(self, base_run_id: str, head_run_id: str) -> RunDiff:
        """Compare two runs by fingerprint.

        Raises
        ------
        RunNotFoundError
            Either run id is unknown.
        """
        with self._lock:
            self._require_run(base_run_id)
            self._require_run(head_run_id)
            try:
                base = reader.severity_by_fingerprint(self._db.conn, base_run_id)
                head = reader.severity_by_fingerprint(self._db.conn, head_run_id)
            except sqlite3.Error as e:
                raise StorageError("diff_runs", str(e))
        return diff_fingerprints(base_run_id, head_run_id, base, head)

    def summarize_run(self, run_id: str) -> RunSummary:
        """Finding totals of one run by severity, rule and file."""
        with self._lock:
            run = self._require_run(run_id)
            try:
                conn = self._db.conn
                by_severity = reader.count_findings(conn, run_id, "severity")
                by_rule = reader.count_findings(conn, run_id, "rule_id")
                by_file = reader.count_findings(conn, run_id, "file_path")
            except sqlite3.Error as e:
                raise StorageError("summarize_run", str(e))
        return RunSummary(
            run_id=run_id,
            status=run.status,
            total=sum(by_severity.values()),
            by_severity=by_severity,
            by_rule=by_rule,
            by_file=by_file,
        )
