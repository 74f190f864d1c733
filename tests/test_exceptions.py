"""Tests for the error hierarchy."""

import pytest

from finding_ledger.exceptions import (
    AdapterError,
    ConfigurationError,
    ErrorCode,
    FindingLedgerError,
    InvalidConfigError,
    ManifestConflictError,
    RunNotFoundError,
    StorageError,
    ValidationError,
)


class TestErrorCodes:
    """Codes are grouped by layer."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ValidationError("rule_id", "missing"), ErrorCode.FL100),
            (AdapterError("sarif", "bad"), ErrorCode.FL200),
            (StorageError("put", "disk full"), ErrorCode.FL300),
            (RunNotFoundError("r1"), ErrorCode.FL301),
            (ManifestConflictError("acme", 1, 2), ErrorCode.FL400),
            (InvalidConfigError("db_path", "", "empty"), ErrorCode.FL500),
        ],
    )
    def test_codes(self, error, code):
        assert error.code == code
        assert isinstance(error, FindingLedgerError)

    def test_code_override(self):
        assert ValidationError("x", "y", code=ErrorCode.FL101).code == ErrorCode.FL101
        assert StorageError("x", "y", code=ErrorCode.FL401).code == ErrorCode.FL401
        # Class default untouched.
        assert ValidationError.code == ErrorCode.FL100


class TestHierarchy:
    def test_run_not_found_is_storage_error(self):
        assert issubclass(RunNotFoundError, StorageError)

    def test_invalid_config_is_configuration_error(self):
        assert issubclass(InvalidConfigError, ConfigurationError)


class TestRendering:
    def test_str_includes_code_and_details(self):
        text = str(ValidationError("severity", "'x' is not one of error"))
        assert text.startswith("[FL100] Invalid severity")
        assert "field=severity" in text

    def test_str_without_details(self):
        assert str(ConfigurationError("boom")) == "[FL500] boom"

    def test_to_json(self):
        data = ManifestConflictError("acme", 3, None).to_json()
        assert data["error_code"] == "FL400"
        assert data["details"]["actual_version"] == "absent"

    def test_attributes(self):
        e = RunNotFoundError("r9")
        assert e.run_id == "r9"
        assert "r9" in e.message
