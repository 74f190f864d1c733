"""Exception hierarchy for finding-ledger."""

from .base import ErrorCode, FindingLedgerError
from .config import ConfigurationError, InvalidConfigError
from .storage import ManifestConflictError, RunNotFoundError, StorageError
from .validation import AdapterError, ValidationError

__all__ = [
    "ErrorCode",
    "FindingLedgerError",
    "ValidationError",
    "AdapterError",
    "StorageError",
    "RunNotFoundError",
    "ManifestConflictError",
    "ConfigurationError",
    "InvalidConfigError",
]
