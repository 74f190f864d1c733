"""Result records returned by the finding store."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class PutResult:
    """Outcome of ``FindingStore.put``.

    ``stored`` is False only when ``skip_if_repeat`` found an identical run
    inside the write transaction; ``existing_run_id`` then names it.
    """

    run_id: str
    stored: bool
    finding_count: int = 0
    existing_run_id: Optional[str] = None


@dataclass
class RunSummary:
    """Finding totals of one run."""

    run_id: str
    status: str
    total: int = 0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_rule: dict[str, int] = field(default_factory=dict)
    by_file: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "total": self.total,
            "by_severity": dict(self.by_severity),
            "by_rule": dict(self.by_rule),
            "by_file": dict(self.by_file),
        }
