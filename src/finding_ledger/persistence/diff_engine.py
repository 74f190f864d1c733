"""Diff engine: compares two runs by fingerprint.

Fingerprints are matched as sets. A fingerprint reported several times in
one run counts once, at its most severe level.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..diagnostics.models import SEVERITY_RANK
from .diff_models import RunDiff, SeverityChange


def _direction(old: str, new: str) -> str:
    return "worsened" if SEVERITY_RANK[new] > SEVERITY_RANK[old] else "improved"


def diff_fingerprints(
    base_run_id: str,
    head_run_id: str,
    base: Mapping[str, str],
    head: Mapping[str, str],
) -> RunDiff:
    """Classify fingerprints of ``base`` and ``head`` (fingerprint -> severity)."""
    base_keys = set(base)
    head_keys = set(head)
    common = sorted(base_keys & head_keys)

    changes = [
        SeverityChange(
            fingerprint=fp,
            old_severity=base[fp],
            new_severity=head[fp],
            direction=_direction(base[fp], head[fp]),
        )
        for fp in common
        if base[fp] != head[fp]
    ]

    return RunDiff(
        base_run_id=base_run_id,
        head_run_id=head_run_id,
        introduced=sorted(head_keys - base_keys),
        resolved=sorted(base_keys - head_keys),
        unchanged=common,
        severity_changed=changes,
    )
