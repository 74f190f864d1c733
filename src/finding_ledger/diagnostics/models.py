"""Data models for diagnostic runs and findings.

``FindingInput`` is the raw candidate handed over by a tool output adapter;
``NormalizedFinding`` and ``DiagnosticRun`` are the canonical, immutable
records that get fingerprinted, digested and stored.
"""

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional, Union

Severity = Literal["error", "warning", "info", "note"]
RunStatus = Literal["passed", "failed", "partial"]
FingerprintSource = Literal["caller", "chunk", "position"]

SEVERITIES: tuple[str, ...] = ("error", "warning", "info", "note")

# Higher rank dominates: one error outweighs any number of warnings.
SEVERITY_RANK: dict[str, int] = {"error": 3, "warning": 2, "info": 1, "note": 0}

RESERVED_NAMESPACE = "ledger:"
COLLISION_PREFIX = "tool:"


class PropertyBag(Mapping):
    """Immutable string-keyed bag of opaque, JSON-compatible values.

    Keys starting with ``ledger:`` are reserved for values injected by
    finding-ledger itself. Tool-supplied keys are kept as given unless they
    collide with an injected key, in which case the tool value is moved to
    ``tool:<key>``.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        items: dict[str, Any] = {}
        for key, value in (data or {}).items():
            if not isinstance(key, str):
                raise TypeError(f"property keys must be strings, got {type(key).__name__}")
            items[key] = value
        self._data = items

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PropertyBag):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.canonical_json())

    def __repr__(self) -> str:
        return f"PropertyBag({self.to_dict()!r})"

    @staticmethod
    def internal_key(name: str) -> str:
        return f"{RESERVED_NAMESPACE}{name}"

    def with_internal(self, name: str, value: Any) -> "PropertyBag":
        """Return a copy carrying ``ledger:<name> = value``.

        Meant for bags holding tool-supplied properties: a value already
        sitting at the reserved key is moved to ``tool:ledger:<name>``.
        """
        key = self.internal_key(name)
        data = dict(self._data)
        if key in data:
            data[f"{COLLISION_PREFIX}{key}"] = data.pop(key)
        data[key] = value
        return PropertyBag(data)

    def internal(self, name: str, default: Any = None) -> Any:
        return self._data.get(self.internal_key(name), default)

    def tool_properties(self) -> dict[str, Any]:
        """Properties excluding injected ``ledger:`` keys."""
        return {
            k: self._data[k] for k in sorted(self._data) if not k.startswith(RESERVED_NAMESPACE)
        }

    def to_dict(self) -> dict[str, Any]:
        return {k: self._data[k] for k in sorted(self._data)}

    def canonical_json(self) -> str:
        return json.dumps(self._data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class ToolIdentity:
    """Producer of a run."""

    name: str
    version: str


@dataclass
class FindingInput:
    """Unvalidated finding candidate as produced by a tool output adapter.

    Required fields are typed ``Optional`` so that malformed input can be
    represented and rejected by the normalizer with a named field.
    """

    rule_id: Optional[str] = None
    severity: Optional[str] = None
    message: Optional[str] = None
    file_path: Optional[str] = None
    start_line: Optional[int] = None
    start_column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    chunk_id: Optional[str] = None
    fingerprint: Optional[str] = None
    properties: dict[str, Any] = field(default_factory=dict)

    _ALIASES = {
        "ruleId": "rule_id",
        "filePath": "file_path",
        "startLine": "start_line",
        "startColumn": "start_column",
        "endLine": "end_line",
        "endColumn": "end_column",
        "chunkId": "chunk_id",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FindingInput":
        """Build from a JSON-style mapping (camelCase or snake_case keys).

        Unknown keys are folded into ``properties``.
        """
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        fields = set(cls.__dataclass_fields__)
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name == "properties":
                extra.update(value or {})
            elif name in fields and not name.startswith("_"):
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(**kwargs, properties=extra)

    def with_chunk(self, chunk_id: str) -> "FindingInput":
        return replace(self, chunk_id=chunk_id, properties=dict(self.properties))


@dataclass(frozen=True)
class NormalizedFinding:
    """Canonical, stored form of a finding.

    ``fingerprint`` is always set; ``finding_id`` is unique within the batch
    of the run that owns the finding.
    """

    finding_id: str
    analysis_id: str
    rule_id: str
    severity: Severity
    message: str
    file_path: str
    fingerprint: str
    start_line: Optional[int] = None
    start_column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    chunk_id: Optional[str] = None
    properties: PropertyBag = field(default_factory=PropertyBag)

    @property
    def fingerprint_source(self) -> Optional[str]:
        return self.properties.internal("fingerprint_source")

    def to_dict(self) -> dict[str, Any]:
        return {
            "finding_id": self.finding_id,
            "analysis_id": self.analysis_id,
            "rule_id": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "chunk_id": self.chunk_id,
            "fingerprint": self.fingerprint,
            "properties": self.properties.to_dict(),
        }


@dataclass(frozen=True)
class DiagnosticRun:
    """One execution of one tool against one snapshot of a project.

    Immutable: a run is a point-in-time fact, corrections need a new run.
    """

    run_id: str
    analysis_id: str
    project_id: str
    tree_hash: str
    tool: ToolIdentity
    config_hash: str
    status: RunStatus
    created_at: str  # ISO-8601, UTC
    findings_digest: str
    commit_hash: Optional[str] = None
    environment_hash: Optional[str] = None
    duration_ms: Optional[int] = None
    raw_report: Optional[str] = None
    metadata: PropertyBag = field(default_factory=PropertyBag)

    def to_dict(self, include_raw: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "run_id": self.run_id,
            "analysis_id": self.analysis_id,
            "project_id": self.project_id,
            "tree_hash": self.tree_hash,
            "commit_hash": self.commit_hash,
            "tool": {"name": self.tool.name, "version": self.tool.version},
            "config_hash": self.config_hash,
            "environment_hash": self.environment_hash,
            "status": self.status,
            "created_at": self.created_at,
            "duration_ms": self.duration_ms,
            "findings_digest": self.findings_digest,
            "metadata": self.metadata.to_dict(),
        }
        if include_raw:
            data["raw_report"] = self.raw_report
        return data


@dataclass(frozen=True)
class DiagnosticsQueryFilter:
    """Read filter: exact project match, optional fields ANDed when set."""

    project_id: str
    tool_name: Optional[str] = None
    tool_version: Optional[str] = None
    tree_hash: Optional[str] = None


@dataclass(frozen=True)
class FindingError:
    """A finding input rejected during batch normalization."""

    index: int
    field: str
    reason: str


@dataclass
class NormalizationBatch:
    """Successfully normalized findings plus per-input rejections."""

    findings: list[NormalizedFinding] = field(default_factory=list)
    errors: list[FindingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class RecordedRun:
    """A new run, not seen before for this analysis and tree."""

    run: DiagnosticRun
    findings: tuple[NormalizedFinding, ...]
    is_repeat: bool = False


@dataclass(frozen=True)
class IdempotentRepeat:
    """An identical run (same analysis, tree and digest) is already stored.

    ``run`` is the freshly built candidate, so callers that keep an audit
    trail can still store it.
    """

    run: DiagnosticRun
    findings: tuple[NormalizedFinding, ...]
    previous_run: DiagnosticRun
    is_repeat: bool = True


RecordOutcome = Union[RecordedRun, IdempotentRepeat]
