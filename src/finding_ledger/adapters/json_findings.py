"""Plain JSON adapter for tools that emit finding dicts directly.

Accepts either a bare list of findings or an object of the form::

    {"tool": {"name": "...", "version": "..."}, "findings": [...]}
"""

from ..diagnostics.models import FindingInput
from ..exceptions import AdapterError
from .base import AdapterResult, Report, ToolOutputAdapter


class JsonFindingsAdapter(ToolOutputAdapter):
    name = "json"

    def parse(self, report: Report) -> AdapterResult:
        data = self.load(report)
        tool: dict = {}
        if isinstance(data, dict):
            tool = data.get("tool") if isinstance(data.get("tool"), dict) else {}
            data = data.get("findings")
        if not isinstance(data, list):
            raise AdapterError(self.name, "expected a list of findings")

        return AdapterResult(
            findings=[
                FindingInput.from_dict(item) if isinstance(item, dict) else FindingInput()
                for item in data
            ],
            tool_name=tool.get("name") if isinstance(tool.get("name"), str) else None,
            tool_version=tool.get("version") if isinstance(tool.get("version"), str) else None,
        )
