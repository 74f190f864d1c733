"""Tests for historical queries over stored runs."""

from dataclasses import replace

import pytest

from conftest import PROJECT, TOOL
from finding_ledger.diagnostics.models import DiagnosticsQueryFilter, FindingInput, ToolIdentity


@pytest.fixture
def history(store, record, sample_inputs):
    """Five stored runs across trees, tools and versions, oldest first."""
    stored = []
    for tree, tool, inputs in [
        ("tree-1", TOOL, sample_inputs),
        ("tree-2", TOOL, sample_inputs[:1]),
        ("tree-2", ToolIdentity("eslint", "9.0.0"), sample_inputs[:2]),
        ("tree-3", ToolIdentity("tsc", "5.3.3"), sample_inputs),
        ("tree-3", TOOL, []),
    ]:
        outcome = record(inputs, tree_hash=tree, tool=tool)
        store.put(outcome.run, outcome.findings)
        stored.append(outcome.run)
    return stored


class TestQueryFilters:
    def test_project_only_returns_all_newest_first(self, store, history):
        runs = store.query(DiagnosticsQueryFilter(project_id=PROJECT))
        assert [r.run_id for r in runs] == [r.run_id for r in reversed(history)]

    def test_unknown_project_empty(self, store, history):
        assert store.query(DiagnosticsQueryFilter(project_id="nobody")) == []

    def test_tool_name(self, store, history):
        runs = store.query(DiagnosticsQueryFilter(project_id=PROJECT, tool_name="tsc"))
        assert [r.run_id for r in runs] == [history[3].run_id]

    def test_tool_version(self, store, history):
        runs = store.query(
            DiagnosticsQueryFilter(project_id=PROJECT, tool_name="eslint", tool_version="9.0.0")
        )
        assert [r.run_id for r in runs] == [history[2].run_id]

    def test_tree_hash(self, store, history):
        runs = store.query(DiagnosticsQueryFilter(project_id=PROJECT, tree_hash="tree-2"))
        assert [r.run_id for r in runs] == [history[2].run_id, history[1].run_id]

    def test_filters_are_anded(self, store, history):
        runs = store.query(
            DiagnosticsQueryFilter(project_id=PROJECT, tool_name="tsc", tree_hash="tree-1")
        )
        assert runs == []

    def test_limit(self, store, history):
        runs = store.query(DiagnosticsQueryFilter(project_id=PROJECT), limit=2)
        assert [r.run_id for r in runs] == [history[4].run_id, history[3].run_id]

    def test_project_match_is_exact(self, store, history):
        assert store.query(DiagnosticsQueryFilter(project_id=PROJECT[:-1])) == []

    def test_read_only(self, store, history):
        store.query(DiagnosticsQueryFilter(project_id=PROJECT))
        assert len(store.query(DiagnosticsQueryFilter(project_id=PROJECT))) == len(history)


class TestLatest:
    def test_latest(self, store, history):
        latest = store.latest(DiagnosticsQueryFilter(project_id=PROJECT, tool_name="eslint"))
        assert latest.run_id == history[4].run_id

    def test_latest_none(self, store):
        assert store.latest(DiagnosticsQueryFilter(project_id=PROJECT)) is None


class TestOrdering:
    def test_same_timestamp_newest_insert_first(self, store, record):
        a = record([], tree_hash="t-a")
        b = replace(record([], tree_hash="t-b").run, created_at=a.run.created_at)
        store.put(a.run, a.findings)
        store.put(b, ())
        runs = store.query(DiagnosticsQueryFilter(project_id=PROJECT))
        assert [r.run_id for r in runs] == [b.run_id, a.run.run_id]

    def test_analysis_history(self, store, history):
        runs = store.list_analysis_runs(history[0].analysis_id)
        # tsc is a separate analysis stream.
        assert history[3].run_id not in {r.run_id for r in runs}
        assert [r.run_id for r in runs] == [
            history[4].run_id,
            history[2].run_id,
            history[1].run_id,
            history[0].run_id,
        ]


class TestListFindings:
    def test_ordered_by_file_then_position(self, store, record):
        inputs = [
            FindingInput(rule_id="b", severity="info", message="m", file_path="z.py", start_line=1),
            FindingInput(rule_id="a", severity="info", message="m", file_path="a.py", start_line=9),
            FindingInput(rule_id="c", severity="info", message="m", file_path="a.py", start_line=2),
            FindingInput(rule_id="d", severity="info", message="m", file_path="a.py"),
        ]
        outcome = record(inputs)
        store.put(outcome.run, outcome.findings)
        found = store.list_findings(outcome.run.run_id)
        assert [(f.file_path, f.rule_id) for f in found] == [
            ("a.py", "d"),
            ("a.py", "c"),
            ("a.py", "a"),
            ("z.py", "b"),
        ]

    def test_unknown_run(self, store):
        assert store.list_findings("missing") == []
