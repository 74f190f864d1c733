"""Write a diagnostic run and its findings in a single transaction."""

import sqlite3
from collections.abc import Sequence

from ..diagnostics.models import DiagnosticRun, NormalizedFinding
from .models import PutResult

_REPEAT_SQL = """
    SELECT run_id FROM diagnostic_runs
    WHERE analysis_id = ? AND tree_hash = ? AND findings_digest = ?
    ORDER BY created_at ASC, rowid ASC
    LIMIT 1
"""


def save_run(
    conn: sqlite3.Connection,
    run: DiagnosticRun,
    findings: Sequence[NormalizedFinding],
    skip_if_repeat: bool = False,
) -> PutResult:
    """Persist ``run`` and ``findings`` atomically.

    ``BEGIN IMMEDIATE`` takes the write lock up front, so the repeat check
    and the inserts see the same database state even when another process
    is ingesting the same report.

    Parameters
    ----------
    conn:
        An autocommit connection (from ``DiagnosticsDB.connect()``).
    run:
        The run row to insert.
    findings:
        Findings owned by ``run``; their ``finding_id`` must be unique.
    skip_if_repeat:
        Return without writing if a run with the same analysis id, tree hash
        and findings digest is already stored.

    Returns
    -------
    PutResult

    Raises
    ------
    sqlite3.Error
        On any failure; the transaction is rolled back first.
    """
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")

        if skip_if_repeat:
            row = cur.execute(
                _REPEAT_SQL, (run.analysis_id, run.tree_hash, run.findings_digest)
            ).fetchone()
            if row is not None:
                cur.execute("COMMIT")
                return PutResult(run_id=run.run_id, stored=False, existing_run_id=row[0])

        # ── run row ──────────────────────────────────────────────
        cur.execute(
            """
            INSERT INTO diagnostic_runs (
                run_id, analysis_id, project_id, tree_hash, commit_hash,
                tool_name, tool_version, config_hash, environment_hash,
                status, created_at, duration_ms, findings_digest,
                raw_report, metadata
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run.run_id,
                run.analysis_id,
                run.project_id,
                run.tree_hash,
                run.commit_hash,
                run.tool.name,
                run.tool.version,
                run.config_hash,
                run.environment_hash,
                run.status,
                run.created_at,
                run.duration_ms,
                run.findings_digest,
                run.raw_report,
                run.metadata.canonical_json(),
            ),
        )

        # ── findings (batch) ─────────────────────────────────────
        finding_rows = [
            (
                run.run_id,
                f.finding_id,
                ordinal,
                f.analysis_id,
                f.rule_id,
                f.severity,
                f.message,
                f.file_path,
                f.start_line,
                f.start_column,
                f.end_line,
                f.end_column,
                f.chunk_id,
                f.fingerprint,
                f.properties.canonical_json(),
            )
            for ordinal, f in enumerate(findings)
        ]
        if finding_rows:
            cur.executemany(
                """
                INSERT INTO diagnostic_findings (
                    run_id, finding_id, ordinal, analysis_id, rule_id,
                    severity, message, file_path, start_line, start_col,
                    end_line, end_col, chunk_id, fingerprint, properties
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                finding_rows,
            )

        cur.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            cur.execute("ROLLBACK")
        raise

    return PutResult(run_id=run.run_id, stored=True, finding_count=len(finding_rows))


def delete_run(conn: sqlite3.Connection, run_id: str) -> bool:
    """Delete a run; its findings go with it. Returns False if absent."""
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        # Explicit child delete keeps this correct with foreign keys off.
        cur.execute("DELETE FROM diagnostic_findings WHERE run_id = ?", (run_id,))
        cur.execute("DELETE FROM diagnostic_runs WHERE run_id = ?", (run_id,))
        deleted = cur.rowcount > 0
        cur.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            cur.execute("ROLLBACK")
        raise
    return deleted
