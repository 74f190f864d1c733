"""Configuration exceptions."""

from typing import Any

from .base import ErrorCode, FindingLedgerError


class ConfigurationError(FindingLedgerError):
    """Base class for configuration-related errors."""

    code = ErrorCode.FL500


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
