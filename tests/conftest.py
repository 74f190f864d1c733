"""Shared test fixtures for finding-ledger tests."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from finding_ledger.diagnostics.identity import compute_analysis_id
from finding_ledger.diagnostics.models import FindingInput, ToolIdentity
from finding_ledger.diagnostics.normalizer import normalize_findings
from finding_ledger.diagnostics.recorder import RunRecorder
from finding_ledger.persistence import FindingStore

PROJECT = "acme"
TOOL = ToolIdentity(name="eslint", version="8.56.0")
TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
CONFIG = "c0ffee"


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self._ticks = itertools.count()
        self._start = start

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=next(self._ticks))


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store():
    """Fresh in-memory finding store."""
    s = FindingStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture
def recorder(store, clock):
    return RunRecorder(lookup=store, clock=clock)


@pytest.fixture
def sample_inputs():
    """Three findings: one error, one warning, one note."""
    return [
        FindingInput(
            rule_id="no-unused-vars",
            severity="error",
            message="'x' is assigned a value but never used.",
            file_path="src/app.js",
            start_line=10,
            start_column=5,
            end_line=10,
            end_column=6,
        ),
        FindingInput(
            rule_id="eqeqeq",
            severity="warning",
            message="Expected '===' and instead saw '=='.",
            file_path="src/util.js",
            start_line=3,
            start_column=9,
        ),
        FindingInput(
            rule_id="prefer-const",
            severity="note",
            message="'y' is never reassigned.",
            file_path="src/app.js",
            start_line=2,
            chunk_id="app.js#main",
        ),
    ]


@pytest.fixture
def analysis_id():
    return compute_analysis_id(PROJECT, TOOL.name, CONFIG)


@pytest.fixture
def normalize(analysis_id):
    """Normalize inputs for the default analysis and return the findings."""

    def _normalize(inputs):
        batch = normalize_findings(inputs, analysis_id)
        assert batch.ok, batch.errors
        return batch.findings

    return _normalize


@pytest.fixture
def record(recorder, normalize):
    """Record inputs as a run of the default analysis (not stored)."""

    def _record(inputs, tree_hash=TREE, tool=TOOL, **kwargs):
        return recorder.record(PROJECT, tool, tree_hash, CONFIG, normalize(inputs), **kwargs)

    return _record


@pytest.fixture
def sarif_log():
    """Minimal SARIF 2.1.0 log with two results."""
    return {
        "version": "2.1.0",
        "runs": [
            {
                "tool": {"driver": {"name": "eslint", "version": "8.56.0"}},
                "results": [
                    {
                        "ruleId": "no-unused-vars",
                        "level": "error",
                        "message": {"text": "'x' is  assigned\na value but never used."},
                        "locations": [
                            {
                                "physicalLocation": {
                                    "artifactLocation": {"uri": "file://src/app.js"},
                                    "region": {
                                        "startLine": 10,
                                        "startColumn": 5,
                                        "endLine": 10,
                                        "endColumn": 6,
                                    },
                                }
                            }
                        ],
                        "partialFingerprints": {"primaryLocationLineHash": "abc123:1"},
                        "baselineState": "new",
                    },
                    {
                        "rule": {"id": "eqeqeq"},
                        "level": "warning",
                        "kind": "fail",
                        "message": {"text": "Expected '==='."},
                        "locations": [
                            {
                                "physicalLocation": {
                                    "artifactLocation": {"uri": "src/util.js"},
                                    "region": {"startLine": 3, "startColumn": 9},
                                }
                            }
                        ],
                        "properties": {"chunkId": "util.js#compare", "tags": ["style"]},
                    },
                ],
            }
        ],
    }
