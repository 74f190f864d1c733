"""SQLite-backed diagnostics database."""

import sqlite3
from pathlib import Path
from typing import Optional

from ..exceptions import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1


class DiagnosticsDB:
    """Manages the diagnostics SQLite database.

    The connection runs in autocommit mode; writers open explicit
    ``BEGIN IMMEDIATE`` transactions so a run and its findings land together.

    Usage::

        with DiagnosticsDB("/path/to/diagnostics.db") as db:
            save_run(db.conn, run, findings)
    """

    def __init__(
        self,
        db_path: str = MEMORY_PATH,
        wal_mode: bool = True,
        foreign_keys: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.foreign_keys = foreign_keys
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise StorageError("connection", "database is not connected")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def _ensure_dir(self) -> None:
        if self.in_memory:
            return
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError("connect", f"cannot create {Path(self.db_path).parent}: {e}")

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        if self._conn is not None:
            return self._conn
        self._ensure_dir()
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.busy_timeout_ms / 1000,
                isolation_level=None,
                check_same_thread=False,
            )
            if self.wal_mode and not self.in_memory:
                conn.execute("PRAGMA journal_mode=WAL")
            if self.foreign_keys:
                conn.execute("PRAGMA foreign_keys=ON")
            conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            conn.row_factory = sqlite3.Row
            self._conn = conn
            self._migrate()
        except sqlite3.Error as e:
            self.close()
            raise StorageError("connect", f"{self.db_path}: {e}")
        logger.debug("Diagnostics DB connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DiagnosticsDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables."""
        c = self.conn

        c.execute("BEGIN IMMEDIATE")
        try:
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER NOT NULL
                )
                """
            )
            row = c.execute("SELECT version FROM schema_version").fetchone()
            if row is None:
                c.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (_SCHEMA_VERSION,),
                )

            # ── runs ─────────────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS diagnostic_runs (
                    run_id           TEXT    PRIMARY KEY,
                    analysis_id      TEXT    NOT NULL,
                    project_id       TEXT    NOT NULL,
                    tree_hash        TEXT    NOT NULL,
                    commit_hash      TEXT,
                    tool_name        TEXT    NOT NULL,
                    tool_version     TEXT    NOT NULL,
                    config_hash      TEXT    NOT NULL,
                    environment_hash TEXT,
                    status           TEXT    NOT NULL,
                    created_at       TEXT    NOT NULL,
                    duration_ms      INTEGER,
                    findings_digest  TEXT    NOT NULL,
                    raw_report       TEXT,
                    metadata         TEXT    NOT NULL DEFAULT '{}'
                )
                """
            )

            # ── findings ─────────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS diagnostic_findings (
                    run_id       TEXT    NOT NULL
                                 REFERENCES diagnostic_runs(run_id) ON DELETE CASCADE,
                    finding_id   TEXT    NOT NULL,
                    ordinal      INTEGER NOT NULL,
                    analysis_id  TEXT    NOT NULL,
                    rule_id      TEXT    NOT NULL,
                    severity     TEXT    NOT NULL,
                    message      TEXT    NOT NULL,
                    file_path    TEXT    NOT NULL,
                    start_line   INTEGER,
                    start_col    INTEGER,
                    end_line     INTEGER,
                    end_col      INTEGER,
                    chunk_id     TEXT,
                    fingerprint  TEXT    NOT NULL,
                    properties   TEXT    NOT NULL DEFAULT '{}',
                    PRIMARY KEY (run_id, finding_id)
                )
                """
            )

            # ── indexes ──────────────────────────────────────────────
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_runs_project_created "
                "ON diagnostic_runs(project_id, created_at)"
            )
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_runs_project_tool "
                "ON diagnostic_runs(project_id, tool_name, tool_version)"
            )
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_runs_repeat "
                "ON diagnostic_runs(analysis_id, tree_hash, findings_digest)"
            )
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_findings_fingerprint "
                "ON diagnostic_findings(fingerprint)"
            )
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_findings_file ON diagnostic_findings(file_path)"
            )
            c.execute(
                "CREATE INDEX IF NOT EXISTS idx_findings_rule ON diagnostic_findings(rule_id)"
            )
            c.execute("COMMIT")
        except sqlite3.Error:
            c.execute("ROLLBACK")
            raise

    def schema_version(self) -> int:
        row = self.conn.execute("SELECT version FROM schema_version").fetchone()
        return int(row["version"]) if row is not None else 0
