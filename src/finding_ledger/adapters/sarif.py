"""SARIF 2.1.0 adapter.

Only the parts of SARIF a finding needs are read: the first run's driver,
and per result the rule, level, message, first physical location and the
line-hash fingerprint.
"""

from typing import Any, Optional

from ..diagnostics.models import FindingInput
from ..exceptions import AdapterError
from ..logging_config import get_logger
from .base import AdapterResult, Report, ToolOutputAdapter

logger = get_logger(__name__)

FINGERPRINT_KEY = "primaryLocationLineHash"

# SARIF "none" and an absent level both mean informational.
_LEVEL_MAP = {"none": "info"}

_PASSTHROUGH_KEYS = ("kind", "level", "baselineState")


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _rule_id(result: dict) -> Optional[str]:
    rule_id = _text(result.get("ruleId"))
    if rule_id is None:
        rule_id = _text(_dict(result.get("rule")).get("id"))
    return rule_id


def _severity(result: dict) -> str:
    level = result.get("level")
    if level is None:
        return "info"
    if not isinstance(level, str):
        return str(level)
    return _LEVEL_MAP.get(level.lower(), level)


def _fingerprint(result: dict) -> Optional[str]:
    fp = _text(_dict(result.get("fingerprints")).get(FINGERPRINT_KEY))
    if fp is None:
        fp = _text(_dict(result.get("partialFingerprints")).get(FINGERPRINT_KEY))
    return fp or None


def _strip_scheme(uri: Optional[str]) -> Optional[str]:
    if uri is not None and uri.startswith("file://"):
        return uri[len("file://"):]
    return uri


def result_to_input(result: Any) -> FindingInput:
    """Convert one SARIF result object into a finding input."""
    if not isinstance(result, dict):
        return FindingInput()

    locations = result.get("locations")
    location = _dict(locations[0]) if isinstance(locations, list) and locations else {}
    physical = _dict(location.get("physicalLocation"))
    region = _dict(physical.get("region"))
    uri = _text(_dict(physical.get("artifactLocation")).get("uri"))

    properties = dict(_dict(result.get("properties")))
    chunk_id = properties.pop("chunkId", None)
    for key in _PASSTHROUGH_KEYS:
        if result.get(key) is not None:
            properties[key] = result[key]

    return FindingInput(
        rule_id=_rule_id(result),
        severity=_severity(result),
        message=_text(_dict(result.get("message")).get("text")),
        file_path=_strip_scheme(uri),
        start_line=region.get("startLine"),
        start_column=region.get("startColumn"),
        end_line=region.get("endLine"),
        end_column=region.get("endColumn"),
        chunk_id=chunk_id if isinstance(chunk_id, str) else None,
        fingerprint=_fingerprint(result),
        properties=properties,
    )


class SarifAdapter(ToolOutputAdapter):
    """Reads SARIF logs given as dicts, JSON text or file paths."""

    name = "sarif"

    def parse(self, report: Report) -> AdapterResult:
        log = self.load(report)
        if not isinstance(log, dict):
            raise AdapterError(self.name, "SARIF log must be a JSON object")
        runs = log.get("runs", [])
        if not isinstance(runs, list):
            raise AdapterError(self.name, "'runs' must be an array")

        result = AdapterResult()
        for run in runs:
            run = _dict(run)
            driver = _dict(_dict(run.get("tool")).get("driver"))
            if result.tool_name is None:
                result.tool_name = _text(driver.get("name"))
            if result.tool_version is None:
                result.tool_version = _text(driver.get("version")) or _text(
                    driver.get("semanticVersion")
                )
            results = run.get("results")
            if isinstance(results, list):
                result.findings.extend(result_to_input(r) for r in results)

        logger.debug(
            "Parsed %d SARIF results from %d runs (tool %s)",
            len(result.findings),
            len(runs),
            result.tool_name,
        )
        return result
