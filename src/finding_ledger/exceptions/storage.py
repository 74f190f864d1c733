"""Persistence exceptions: finding store and manifest store."""

from typing import Optional

from .base import ErrorCode, FindingLedgerError


class StorageError(FindingLedgerError):
    """Raised when the persistence layer is unavailable or a write failed.

    A failed ``put`` never leaves a partial run visible.
    """

    code = ErrorCode.FL300

    def __init__(self, operation: str, reason: str, code: Optional[ErrorCode] = None):
        super().__init__(
            f"Storage operation '{operation}' failed",
            details={"operation": operation, "reason": reason},
            code=code,
        )
        self.operation = operation
        self.reason = reason


class RunNotFoundError(StorageError):
    """Raised when a lookup names a run that does not exist."""

    code = ErrorCode.FL301

    def __init__(self, run_id: str):
        super().__init__("lookup", f"no run with id {run_id}")
        self.message = f"Run not found: {run_id}"
        self.run_id = run_id


class ManifestConflictError(FindingLedgerError):
    """Raised when a manifest save loses an optimistic version check."""

    code = ErrorCode.FL400

    def __init__(self, project_id: str, expected: int, actual: Optional[int]):
        super().__init__(
            f"Manifest for project '{project_id}' was modified concurrently",
            details={
                "project_id": project_id,
                "expected_version": str(expected),
                "actual_version": "absent" if actual is None else str(actual),
            },
        )
        self.project_id = project_id
        self.expected = expected
        self.actual = actual
