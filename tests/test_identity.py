"""Tests for identity keys: analysis ids, digests and run ids."""

import random
import uuid

from finding_ledger.diagnostics.identity import (
    compute_analysis_id,
    compute_finding_id,
    compute_findings_digest,
    new_run_id,
)
from finding_ledger.diagnostics.models import FindingInput
from finding_ledger.diagnostics.normalizer import normalize_findings

AID = "b" * 64


def _findings(specs):
    inputs = [
        FindingInput(rule_id=rule, severity=sev, message="m", file_path="f.py", start_line=line)
        for rule, sev, line in specs
    ]
    return normalize_findings(inputs, AID).findings


class TestAnalysisId:
    def test_deterministic(self):
        assert compute_analysis_id("p", "eslint", "cfg") == compute_analysis_id("p", "eslint", "cfg")

    def test_sensitive_to_each_part(self):
        base = compute_analysis_id("p", "eslint", "cfg")
        assert compute_analysis_id("q", "eslint", "cfg") != base
        assert compute_analysis_id("p", "tsc", "cfg") != base
        assert compute_analysis_id("p", "eslint", "cfg2") != base

    def test_newline_separated(self):
        import hashlib

        expected = hashlib.sha256(b"p\neslint\ncfg").hexdigest()
        assert compute_analysis_id("p", "eslint", "cfg") == expected


class TestFindingsDigest:
    SPECS = [("r1", "error", 1), ("r2", "warning", 2), ("r3", "note", 3), ("r1", "info", 9)]

    def test_order_independent(self):
        findings = _findings(self.SPECS)
        shuffled = list(findings)
        random.Random(7).shuffle(shuffled)
        assert compute_findings_digest(findings) == compute_findings_digest(shuffled)
        assert compute_findings_digest(findings) == compute_findings_digest(reversed(findings))

    def test_severity_change_alters_digest(self):
        a = _findings([("r1", "error", 1)])
        b = _findings([("r1", "warning", 1)])
        assert compute_findings_digest(a) != compute_findings_digest(b)

    def test_message_change_keeps_digest(self):
        a = normalize_findings(
            [FindingInput(rule_id="r", severity="error", message="one", file_path="f")], AID
        ).findings
        b = normalize_findings(
            [FindingInput(rule_id="r", severity="error", message="two", file_path="f")], AID
        ).findings
        assert compute_findings_digest(a) == compute_findings_digest(b)

    def test_multiset_counts_duplicates(self):
        one = _findings([("r1", "error", 1)])
        two = _findings([("r1", "error", 1), ("r1", "error", 1)])
        assert compute_findings_digest(one) != compute_findings_digest(two)

    def test_empty_digest_is_sha256_of_nothing(self):
        assert compute_findings_digest([]) == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )


class TestFindingId:
    def test_ordinal_ids_differ(self):
        assert compute_finding_id(AID, 0) != compute_finding_id(AID, 1)

    def test_caller_fingerprint_ignores_ordinal(self):
        assert compute_finding_id(AID, 0, "fp") == compute_finding_id(AID, 7, "fp")

    def test_occurrence_distinguishes_duplicates(self):
        assert compute_finding_id(AID, 0, "fp", 0) != compute_finding_id(AID, 1, "fp", 1)

    def test_scoped_to_analysis(self):
        assert compute_finding_id("x" * 64, 0) != compute_finding_id("y" * 64, 0)


class TestRunId:
    def test_uuid_version_7(self):
        parsed = uuid.UUID(new_run_id())
        assert parsed.version == 7
        assert parsed.variant == uuid.RFC_4122

    def test_unique(self):
        ids = {new_run_id() for _ in range(500)}
        assert len(ids) == 500
