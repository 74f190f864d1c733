"""Validate and complete finding inputs into canonical findings."""

import json
import re
from collections.abc import Sequence
from typing import Any, Optional

from ..exceptions import ValidationError
from ..logging_config import get_logger
from .identity import chunk_fingerprint, compute_finding_id, position_fingerprint
from .models import (
    SEVERITIES,
    FindingError,
    FindingInput,
    NormalizationBatch,
    NormalizedFinding,
    PropertyBag,
    Severity,
)

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_severity(value: Any) -> Severity:
    """Map a severity onto the closed enum, case-insensitively.

    Unknown values are rejected, never coerced.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("severity", "missing")
    lowered = value.strip().lower()
    if lowered not in SEVERITIES:
        raise ValidationError(
            "severity", f"'{value}' is not one of {', '.join(SEVERITIES)}"
        )
    return lowered  # type: ignore[return-value]


def normalize_message(message: str) -> str:
    return _WHITESPACE.sub(" ", message).strip()


def normalize_file_path(file_path: str) -> str:
    """Forward slashes, no ``file://`` scheme, no leading ``./``."""
    path = file_path.strip().replace("\\", "/")
    if path.startswith("file://"):
        path = path[len("file://"):]
    while path.startswith("./"):
        path = path[2:]
    return path


def _required_text(value: Any, field: str) -> str:
    if value is None:
        raise ValidationError(field, "missing")
    if not isinstance(value, str):
        raise ValidationError(field, f"expected a string, got {type(value).__name__}")
    if not value.strip():
        raise ValidationError(field, "blank")
    return value


def _optional_position(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"expected an integer, got {value!r}")
    if value < 0:
        raise ValidationError(field, f"must be non-negative, got {value}")
    return value


def _check_span(finding: FindingInput) -> tuple[
    Optional[int], Optional[int], Optional[int], Optional[int]
]:
    start_line = _optional_position(finding.start_line, "start_line")
    start_column = _optional_position(finding.start_column, "start_column")
    end_line = _optional_position(finding.end_line, "end_line")
    end_column = _optional_position(finding.end_column, "end_column")

    if start_line is not None and end_line is not None and start_line > end_line:
        raise ValidationError("end_line", f"{end_line} is before start_line {start_line}")

    # Columns are only comparable when the span stays on one line.
    single_line = start_line is None or end_line is None or start_line == end_line
    if (
        single_line
        and start_column is not None
        and end_column is not None
        and start_column > end_column
    ):
        raise ValidationError(
            "end_column", f"{end_column} is before start_column {start_column}"
        )
    return start_line, start_column, end_line, end_column


def _check_properties(properties: Any) -> PropertyBag:
    if properties is None:
        return PropertyBag()
    if not isinstance(properties, dict):
        raise ValidationError("properties", f"expected a mapping, got {type(properties).__name__}")
    try:
        json.dumps(properties, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise ValidationError("properties", f"not JSON-serializable: {e}")
    return PropertyBag(properties)


def _optional_text(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field, f"expected a string, got {type(value).__name__}")
    stripped = value.strip()
    return stripped or None


def normalize_finding(
    finding: FindingInput,
    analysis_id: str,
    ordinal: int = 0,
    occurrence: int = 0,
) -> NormalizedFinding:
    """Validate ``finding`` and return its canonical, fingerprinted form.

    Parameters
    ----------
    finding:
        Raw adapter output.
    analysis_id:
        The analysis stream the finding belongs to.
    ordinal:
        Position within the batch; feeds the finding id when the tool did
        not supply a fingerprint.
    occurrence:
        Number of earlier findings in the batch with the same caller
        fingerprint.

    Raises
    ------
    ValidationError
        Missing ``rule_id`` / ``message`` / ``file_path``, unknown severity,
        inverted spans or unserializable properties.
    """
    rule_id = _required_text(finding.rule_id, "rule_id").strip()
    message = normalize_message(_required_text(finding.message, "message"))
    file_path = normalize_file_path(_required_text(finding.file_path, "file_path"))
    if not file_path:
        raise ValidationError("file_path", "blank")
    severity = normalize_severity(finding.severity)
    start_line, start_column, end_line, end_column = _check_span(finding)
    chunk_id = _optional_text(finding.chunk_id, "chunk_id")
    properties = _check_properties(finding.properties)

    caller_fingerprint = finding.fingerprint
    if caller_fingerprint is not None and not isinstance(caller_fingerprint, str):
        raise ValidationError("fingerprint", "expected a string")
    if caller_fingerprint is not None and not caller_fingerprint.strip():
        caller_fingerprint = None

    if caller_fingerprint is not None:
        fingerprint = caller_fingerprint
        source = "caller"
    elif chunk_id is not None:
        fingerprint = chunk_fingerprint(rule_id, file_path, chunk_id)
        source = "chunk"
    else:
        fingerprint = position_fingerprint(rule_id, file_path, start_line, start_column)
        source = "position"

    return NormalizedFinding(
        finding_id=compute_finding_id(analysis_id, ordinal, caller_fingerprint, occurrence),
        analysis_id=analysis_id,
        rule_id=rule_id,
        severity=severity,
        message=message,
        file_path=file_path,
        fingerprint=fingerprint,
        start_line=start_line,
        start_column=start_column,
        end_line=end_line,
        end_column=end_column,
        chunk_id=chunk_id,
        properties=properties.with_internal("fingerprint_source", source),
    )


def normalize_findings(
    findings: Sequence[FindingInput], analysis_id: str
) -> NormalizationBatch:
    """Normalize a batch, collecting per-finding rejections.

    One malformed finding never discards the rest of the batch; successful
    findings keep their input order.
    """
    batch = NormalizationBatch()
    seen_fingerprints: dict[str, int] = {}

    for index, finding in enumerate(findings):
        caller = finding.fingerprint if isinstance(finding.fingerprint, str) else None
        caller = caller if caller and caller.strip() else None
        occurrence = seen_fingerprints.get(caller, 0) if caller else 0
        try:
            normalized = normalize_finding(finding, analysis_id, index, occurrence)
        except ValidationError as e:
            logger.warning("Rejected finding #%d: %s", index, e)
            batch.errors.append(FindingError(index=index, field=e.field, reason=e.reason))
            continue
        if caller:
            seen_fingerprints[caller] = occurrence + 1
        batch.findings.append(normalized)

    logger.debug(
        "Normalized %d/%d findings for analysis %s",
        len(batch.findings),
        len(findings),
        analysis_id[:12],
    )
    return batch
