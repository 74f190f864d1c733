"""Base exception and error codes for finding-ledger.

Error Code Convention:
    FL1xx - Finding validation errors
    FL2xx - Tool output adapter errors
    FL3xx - Storage errors
    FL4xx - Manifest errors
    FL5xx - Configuration errors
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Structured error codes for logging and machine-readable output."""

    # Validation errors (FL1xx)
    FL100 = "FL100"  # Finding input failed validation
    FL101 = "FL101"  # Run parameters failed validation

    # Adapter errors (FL2xx)
    FL200 = "FL200"  # Raw report could not be parsed
    FL201 = "FL201"  # No adapter registered for format

    # Storage errors (FL3xx)
    FL300 = "FL300"  # SQLite open/write failed
    FL301 = "FL301"  # Run not found

    # Manifest errors (FL4xx)
    FL400 = "FL400"  # Optimistic version check failed
    FL401 = "FL401"  # Manifest backend failure

    # Configuration errors (FL5xx)
    FL500 = "FL500"  # Invalid configuration


class FindingLedgerError(Exception):
    """Base exception for all finding-ledger errors."""

    code: ErrorCode = ErrorCode.FL300

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, str]] = None,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.value}] {self.message} ({details_str})"
        return f"[{self.code.value}] {self.message}"

    def to_json(self) -> Dict[str, object]:
        """Structured logging format."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "details": dict(self.details),
        }
