"""Read diagnostic runs and findings back from the database."""

import json
import sqlite3
from typing import Optional

from ..diagnostics.models import (
    SEVERITY_RANK,
    DiagnosticRun,
    DiagnosticsQueryFilter,
    NormalizedFinding,
    PropertyBag,
    ToolIdentity,
)

# Newest first; rowid breaks ties between runs created in the same instant.
_RUN_ORDER = "ORDER BY created_at DESC, rowid DESC"


def _hydrate_run(row: sqlite3.Row) -> DiagnosticRun:
    return DiagnosticRun(
        run_id=row["run_id"],
        analysis_id=row["analysis_id"],
        project_id=row["project_id"],
        tree_hash=row["tree_hash"],
        tool=ToolIdentity(name=row["tool_name"], version=row["tool_version"]),
        config_hash=row["config_hash"],
        status=row["status"],
        created_at=row["created_at"],
        findings_digest=row["findings_digest"],
        commit_hash=row["commit_hash"],
        environment_hash=row["environment_hash"],
        duration_ms=row["duration_ms"],
        raw_report=row["raw_report"],
        metadata=PropertyBag(json.loads(row["metadata"])),
    )


def _hydrate_finding(row: sqlite3.Row) -> NormalizedFinding:
    return NormalizedFinding(
        finding_id=row["finding_id"],
        analysis_id=row["analysis_id"],
        rule_id=row["rule_id"],
        severity=row["severity"],
        message=row["message"],
        file_path=row["file_path"],
        fingerprint=row["fingerprint"],
        start_line=row["start_line"],
        start_column=row["start_col"],
        end_line=row["end_line"],
        end_column=row["end_col"],
        chunk_id=row["chunk_id"],
        properties=PropertyBag(json.loads(row["properties"])),
    )


def load_run(conn: sqlite3.Connection, run_id: str) -> Optional[DiagnosticRun]:
    """Load one run by id, or ``None``."""
    row = conn.execute("SELECT * FROM diagnostic_runs WHERE run_id = ?", (run_id,)).fetchone()
    return _hydrate_run(row) if row is not None else None


def query_runs(
    conn: sqlite3.Connection,
    query_filter: DiagnosticsQueryFilter,
    limit: Optional[int] = None,
) -> list[DiagnosticRun]:
    """Runs matching ``query_filter``, newest first.

    Parameters
    ----------
    conn:
        An open ``sqlite3.Connection``.
    query_filter:
        ``project_id`` must match exactly; every other field that is set is
        ANDed in.
    limit:
        Maximum number of runs to return; all when ``None``.

    Returns
    -------
    list[DiagnosticRun]
        Empty when nothing matches.
    """
    clauses = ["project_id = ?"]
    params: list[object] = [query_filter.project_id]
    for column, value in (
        ("tool_name", query_filter.tool_name),
        ("tool_version", query_filter.tool_version),
        ("tree_hash", query_filter.tree_hash),
    ):
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)

    sql = f"SELECT * FROM diagnostic_runs WHERE {' AND '.join(clauses)} {_RUN_ORDER}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [_hydrate_run(r) for r in conn.execute(sql, params).fetchall()]


def find_repeat(
    conn: sqlite3.Connection, analysis_id: str, tree_hash: str, findings_digest: str
) -> Optional[DiagnosticRun]:
    """Earliest stored run with the same analysis, tree and digest."""
    row = conn.execute(
        """
        SELECT * FROM diagnostic_runs
        WHERE analysis_id = ? AND tree_hash = ? AND findings_digest = ?
        ORDER BY created_at ASC, rowid ASC
        LIMIT 1
        """,
        (analysis_id, tree_hash, findings_digest),
    ).fetchone()
    return _hydrate_run(row) if row is not None else None


def list_analysis_runs(
    conn: sqlite3.Connection, analysis_id: str, limit: Optional[int] = None
) -> list[DiagnosticRun]:
    """History of one analysis stream, newest first."""
    sql = f"SELECT * FROM diagnostic_runs WHERE analysis_id = ? {_RUN_ORDER}"
    params: list[object] = [analysis_id]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [_hydrate_run(r) for r in conn.execute(sql, params).fetchall()]


def list_findings(conn: sqlite3.Connection, run_id: str) -> list[NormalizedFinding]:
    """Findings of one run ordered by file, line, column and rule.

    Missing positions sort before present ones.
    """
    rows = conn.execute(
        """
        SELECT * FROM diagnostic_findings
        WHERE run_id = ?
        ORDER BY file_path,
                 start_line IS NOT NULL, start_line,
                 start_col IS NOT NULL, start_col,
                 rule_id, ordinal
        """,
        (run_id,),
    ).fetchall()
    return [_hydrate_finding(r) for r in rows]


def severity_by_fingerprint(conn: sqlite3.Connection, run_id: str) -> dict[str, str]:
    """Map each fingerprint of a run to its most severe reported level."""
    rows = conn.execute(
        """
        SELECT fingerprint,
               MAX(CASE severity
                       WHEN 'error' THEN 3
                       WHEN 'warning' THEN 2
                       WHEN 'info' THEN 1
                       ELSE 0
                   END) AS rank
        FROM diagnostic_findings
        WHERE run_id = ?
        GROUP BY fingerprint
        """,
        (run_id,),
    ).fetchall()
    names = {rank: name for name, rank in SEVERITY_RANK.items()}
    return {r["fingerprint"]: names[r["rank"]] for r in rows}


def count_findings(conn: sqlite3.Connection, run_id: str, column: str) -> dict[str, int]:
    """Finding counts of one run grouped by ``severity``, ``rule_id`` or ``file_path``."""
    if column not in ("severity", "rule_id", "file_path"):
        raise ValueError(f"cannot group findings by {column!r}")
    rows = conn.execute(
        f"""
        SELECT {column} AS key, COUNT(*) AS n
        FROM diagnostic_findings
        WHERE run_id = ?
        GROUP BY {column}
        ORDER BY n DESC, key ASC
        """,
        (run_id,),
    ).fetchall()
    return {r["key"]: r["n"] for r in rows}
