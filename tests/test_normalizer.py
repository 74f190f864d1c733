"""Tests for finding normalization: validation, canonical form, fingerprints."""

import pytest

from finding_ledger.diagnostics.identity import chunk_fingerprint, position_fingerprint
from finding_ledger.diagnostics.models import FindingInput
from finding_ledger.diagnostics.normalizer import (
    normalize_file_path,
    normalize_finding,
    normalize_findings,
    normalize_message,
    normalize_severity,
)
from finding_ledger.exceptions import ErrorCode, ValidationError

AID = "a" * 64


def _input(**overrides):
    base = dict(rule_id="r1", severity="warning", message="msg", file_path="a.py")
    base.update(overrides)
    return FindingInput(**base)


class TestCanonicalization:
    def test_message_whitespace_collapsed(self):
        assert normalize_message("  too   many\n\tspaces ") == "too many spaces"

    def test_file_path_forward_slashes(self):
        assert normalize_file_path("src\\pkg\\mod.py") == "src/pkg/mod.py"

    def test_file_path_scheme_and_dot_prefix_removed(self):
        assert normalize_file_path("file://src/a.py") == "src/a.py"
        assert normalize_file_path("./././src/a.py") == "src/a.py"

    def test_severity_case_insensitive(self):
        assert normalize_severity("ERROR") == "error"
        assert normalize_severity(" Warning ") == "warning"

    def test_rule_id_trimmed(self):
        f = normalize_finding(_input(rule_id="  r1 "), AID)
        assert f.rule_id == "r1"


class TestValidation:
    @pytest.mark.parametrize("field", ["rule_id", "message", "file_path"])
    def test_missing_required_field(self, field):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(**{field: None}), AID)
        assert exc.value.field == field
        assert exc.value.code == ErrorCode.FL100

    @pytest.mark.parametrize("field", ["rule_id", "message", "file_path"])
    def test_blank_required_field(self, field):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(**{field: "   "}), AID)
        assert exc.value.field == field

    @pytest.mark.parametrize("severity", [None, "critical", "fatal", ""])
    def test_unknown_severity_rejected_not_coerced(self, severity):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(severity=severity), AID)
        assert exc.value.field == "severity"

    def test_negative_position_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(start_line=-1), AID)
        assert exc.value.field == "start_line"

    def test_bool_position_rejected(self):
        with pytest.raises(ValidationError):
            normalize_finding(_input(start_column=True), AID)

    def test_inverted_lines_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(start_line=10, end_line=3), AID)
        assert exc.value.field == "end_line"

    def test_inverted_columns_on_single_line_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(
                _input(start_line=4, end_line=4, start_column=9, end_column=2), AID
            )
        assert exc.value.field == "end_column"

    def test_columns_not_compared_across_lines(self):
        f = normalize_finding(_input(start_line=4, end_line=6, start_column=9, end_column=2), AID)
        assert f.end_column == 2

    def test_unserializable_properties_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_finding(_input(properties={"obj": object()}), AID)
        assert exc.value.field == "properties"

    def test_zero_positions_allowed(self):
        f = normalize_finding(_input(start_line=0, start_column=0), AID)
        assert f.start_line == 0
        assert f.start_column == 0


class TestFingerprint:
    def test_caller_fingerprint_passed_through(self):
        f = normalize_finding(_input(fingerprint="tool-fp", chunk_id="c1"), AID)
        assert f.fingerprint == "tool-fp"
        assert f.fingerprint_source == "caller"

    def test_chunk_fingerprint_when_no_caller_fingerprint(self):
        f = normalize_finding(_input(chunk_id="c1", start_line=5), AID)
        assert f.fingerprint == chunk_fingerprint("r1", "a.py", "c1")
        assert f.fingerprint_source == "chunk"

    def test_position_fingerprint_fallback(self):
        f = normalize_finding(_input(start_line=5, start_column=2), AID)
        assert f.fingerprint == position_fingerprint("r1", "a.py", 5, 2)
        assert f.fingerprint_source == "position"

    def test_chunk_fingerprint_survives_line_drift(self):
        a = normalize_finding(_input(chunk_id="c1", start_line=5), AID)
        b = normalize_finding(_input(chunk_id="c1", start_line=50), AID)
        assert a.fingerprint == b.fingerprint

    def test_position_fingerprint_follows_lines(self):
        a = normalize_finding(_input(start_line=5), AID)
        b = normalize_finding(_input(start_line=6), AID)
        assert a.fingerprint != b.fingerprint

    def test_fingerprint_ignores_message_and_severity(self):
        a = normalize_finding(_input(start_line=5, message="one"), AID)
        b = normalize_finding(_input(start_line=5, message="two", severity="error"), AID)
        assert a.fingerprint == b.fingerprint

    def test_fingerprint_ignores_property_order(self):
        a = normalize_finding(_input(properties={"x": 1, "y": 2}), AID)
        b = normalize_finding(_input(properties={"y": 2, "x": 1}), AID)
        assert a.fingerprint == b.fingerprint
        assert a.properties == b.properties

    def test_strategies_never_collide(self):
        # A chunk id equal to the line number must not alias a position hash.
        chunk = normalize_finding(_input(chunk_id="5"), AID)
        position = normalize_finding(_input(start_line=5), AID)
        assert chunk.fingerprint != position.fingerprint

    def test_blank_caller_fingerprint_ignored(self):
        f = normalize_finding(_input(fingerprint="  ", start_line=1), AID)
        assert f.fingerprint_source == "position"

    def test_reserved_property_collision_preserved(self):
        f = normalize_finding(
            _input(properties={"ledger:fingerprint_source": "tool value"}), AID
        )
        assert f.properties["ledger:fingerprint_source"] == "position"
        assert f.properties["tool:ledger:fingerprint_source"] == "tool value"


class TestBatch:
    def test_errors_collected_per_finding(self):
        batch = normalize_findings(
            [_input(), _input(severity="bogus"), _input(rule_id=None), _input(start_line=2)],
            AID,
        )
        assert len(batch.findings) == 2
        assert [(e.index, e.field) for e in batch.errors] == [(1, "severity"), (2, "rule_id")]
        assert not batch.ok

    def test_order_preserved(self):
        batch = normalize_findings([_input(rule_id=f"r{i}") for i in range(5)], AID)
        assert [f.rule_id for f in batch.findings] == [f"r{i}" for i in range(5)]

    def test_finding_ids_unique_within_batch(self):
        batch = normalize_findings([_input() for _ in range(4)], AID)
        assert len({f.finding_id for f in batch.findings}) == 4

    def test_duplicate_caller_fingerprints_get_distinct_ids(self):
        batch = normalize_findings([_input(fingerprint="same"), _input(fingerprint="same")], AID)
        ids = {f.finding_id for f in batch.findings}
        assert len(ids) == 2
        assert {f.fingerprint for f in batch.findings} == {"same"}

    def test_caller_fingerprint_id_stable_across_positions(self):
        # The tool's fingerprint fixes the id even when batch order changes.
        one = normalize_findings([_input(fingerprint="fp-a"), _input(fingerprint="fp-b")], AID)
        two = normalize_findings([_input(fingerprint="fp-b"), _input(fingerprint="fp-a")], AID)
        ids_one = {f.fingerprint: f.finding_id for f in one.findings}
        ids_two = {f.fingerprint: f.finding_id for f in two.findings}
        assert ids_one == ids_two

    def test_empty_batch(self):
        batch = normalize_findings([], AID)
        assert batch.ok
        assert batch.findings == []
