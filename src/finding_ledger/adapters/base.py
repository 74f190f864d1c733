"""Base adapter interface: raw tool report in, finding inputs out."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..diagnostics.models import FindingInput
from ..exceptions import AdapterError

Report = Union[str, bytes, Path, dict, list]


@dataclass
class AdapterResult:
    """Finding inputs parsed from one report, plus the tool that produced it."""

    findings: list[FindingInput] = field(default_factory=list)
    tool_name: Optional[str] = None
    tool_version: Optional[str] = None


class ToolOutputAdapter(ABC):
    """Abstract base class for tool output adapters.

    Adapters only reshape data. They never validate findings; malformed
    entries are passed on so the normalizer can reject them by index.
    """

    name: str = ""

    @abstractmethod
    def parse(self, report: Report) -> AdapterResult:
        """Parse a decoded or raw report."""

    def load(self, report: Report) -> Any:
        """Decode ``report`` into JSON data; paths are read from disk."""
        if isinstance(report, (dict, list)):
            return report
        if isinstance(report, Path):
            try:
                report = report.read_bytes()
            except OSError as e:
                raise AdapterError(self.name, f"cannot read {report}: {e}")
        try:
            return json.loads(report)
        except (TypeError, ValueError) as e:
            raise AdapterError(self.name, f"invalid JSON: {e}")
