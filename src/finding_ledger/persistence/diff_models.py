"""Data models for run diffing: fingerprint-level deltas between two runs."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SeverityChange:
    """A fingerprint present in both runs whose severity moved."""

    fingerprint: str
    old_severity: str
    new_severity: str
    direction: str  # "worsened" | "improved"


@dataclass
class RunDiff:
    """Comparison of two runs by fingerprint.

    ``introduced`` / ``resolved`` / ``unchanged`` are sorted fingerprint
    lists; a fingerprint in ``severity_changed`` is also in ``unchanged``.
    """

    base_run_id: str
    head_run_id: str
    introduced: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    severity_changed: list[SeverityChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.introduced or self.resolved or self.severity_changed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_run_id": self.base_run_id,
            "head_run_id": self.head_run_id,
            "introduced": list(self.introduced),
            "resolved": list(self.resolved),
            "unchanged": list(self.unchanged),
            "severity_changed": [
                {
                    "fingerprint": c.fingerprint,
                    "old_severity": c.old_severity,
                    "new_severity": c.new_severity,
                    "direction": c.direction,
                }
                for c in self.severity_changed
            ],
        }
