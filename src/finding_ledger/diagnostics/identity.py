"""Stable identity keys for analyses, findings and runs.

Rules:
  analysis_id
    sha256 over (project_id, tool_name, config_hash). The same project, tool
    and configuration map to the same analysis stream across trees, commits
    and tool versions.

  fingerprint (first applicable rule wins)
    caller   -> the tool's own fingerprint, passed through unchanged
    chunk    -> ("chunk", rule_id, file_path, chunk_id)
    position -> ("position", rule_id, file_path, start_line, start_column)
    Message text, severity and properties never take part.

  findings_digest
    sha256 over the findings sorted by (fingerprint, severity rank), one
    "fingerprint<TAB>severity" line each. Tool-reported order is irrelevant.

  run_id
    time-ordered UUID (version 7 bit layout), globally unique.

Hash material is encoded as a compact JSON array so that separators inside
values cannot make two different tuples hash alike.
"""

import hashlib
import json
import os
import time
import uuid
from collections.abc import Iterable
from typing import Optional, Union

from .models import SEVERITY_RANK, NormalizedFinding

_Part = Union[str, int, None]


def _digest(parts: Iterable[_Part]) -> str:
    material = json.dumps(
        ["" if p is None else p for p in parts], separators=(",", ":"), ensure_ascii=False
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def compute_analysis_id(project_id: str, tool_name: str, config_hash: str) -> str:
    """Return the analysis stream id for (project, tool, configuration)."""
    hasher = hashlib.sha256()
    for index, part in enumerate((project_id, tool_name, config_hash)):
        if index:
            hasher.update(b"\n")
        hasher.update(part.encode("utf-8"))
    return hasher.hexdigest()


def chunk_fingerprint(rule_id: str, file_path: str, chunk_id: str) -> str:
    """Fingerprint anchored to a logical code unit; survives line drift."""
    return _digest(("chunk", rule_id, file_path, chunk_id))


def position_fingerprint(
    rule_id: str,
    file_path: str,
    start_line: Optional[int],
    start_column: Optional[int],
) -> str:
    """Fingerprint anchored to a source position; changes when lines move."""
    return _digest(("position", rule_id, file_path, start_line, start_column))


def compute_finding_id(
    analysis_id: str,
    ordinal: int,
    caller_fingerprint: Optional[str] = None,
    occurrence: int = 0,
) -> str:
    """Return a finding id unique within one normalized batch.

    Parameters
    ----------
    analysis_id:
        The owning analysis stream.
    ordinal:
        Position of the finding within its batch.
    caller_fingerprint:
        Tool-supplied fingerprint. When present the id derives from it so the
        same tool finding keeps its id across runs.
    occurrence:
        How many earlier findings in the batch carry the same caller
        fingerprint.
    """
    if caller_fingerprint:
        return _digest((analysis_id, "fingerprint", caller_fingerprint, occurrence))
    return _digest((analysis_id, "ordinal", ordinal))


def digest_sort_key(finding: NormalizedFinding) -> tuple[str, int]:
    return (finding.fingerprint, SEVERITY_RANK[finding.severity])


def compute_findings_digest(findings: Iterable[NormalizedFinding]) -> str:
    """Return the order-independent digest of a run's findings."""
    hasher = hashlib.sha256()
    for finding in sorted(findings, key=digest_sort_key):
        hasher.update(f"{finding.fingerprint}\t{finding.severity}\n".encode("utf-8"))
    return hasher.hexdigest()


def new_run_id() -> str:
    """Return a time-ordered UUID string (version 7 layout)."""
    millis = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    value = (millis & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= ((rand >> 68) & 0xFFF) << 64
    value |= 0b10 << 62
    value |= rand & ((1 << 62) - 1)
    return str(uuid.UUID(int=value))
