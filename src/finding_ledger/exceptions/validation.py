"""Input validation and adapter exceptions."""

from typing import Optional

from .base import ErrorCode, FindingLedgerError


class ValidationError(FindingLedgerError):
    """Raised when a finding input or run parameter is malformed.

    ``field`` names the offending field so callers can report it, skip the
    finding and continue with the rest of the batch.
    """

    code = ErrorCode.FL100

    def __init__(self, field: str, reason: str, code: Optional[ErrorCode] = None):
        super().__init__(
            f"Invalid {field}: {reason}",
            details={"field": field, "reason": reason},
            code=code,
        )
        self.field = field
        self.reason = reason


class AdapterError(FindingLedgerError):
    """Raised when a raw tool report cannot be turned into finding inputs."""

    code = ErrorCode.FL200

    def __init__(self, adapter: str, reason: str, code: Optional[ErrorCode] = None):
        super().__init__(
            f"Cannot parse report with adapter '{adapter}'",
            details={"adapter": adapter, "reason": reason},
            code=code,
        )
        self.adapter = adapter
        self.reason = reason
