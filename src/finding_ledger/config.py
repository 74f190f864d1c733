"""Configuration loading and management for finding-ledger.

Configuration sources are merged in priority order:
    1. Defaults (defined in LedgerConfig)
    2. Global config (~/.finding-ledger.toml)
    3. Project config (./finding-ledger.toml)
    4. Explicit config file
    5. Environment variables (FINDING_LEDGER_* prefix)
    6. Overrides (passed as kwargs, typically CLI flags)

Example:
    >>> config = load_config(db_path=":memory:", verbose=True)
    >>> config.verbosity
    'verbose'
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
RepeatPolicy = Literal["skip", "record"]

ENV_PREFIX = "FINDING_LEDGER_"
MEMORY_DB = ":memory:"

_DEFAULT_HOME = Path.home() / ".finding-ledger"


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for the finding store, manifest store and ingestion.

    Attributes:
        Storage:
            db_path: SQLite database file, or ":memory:"
            wal_mode: Use WAL journaling (ignored for in-memory databases)
            foreign_keys: Enforce run -> finding cascade
            busy_timeout_ms: How long a writer waits on a locked database

        Manifest:
            manifest_dir: Directory backing the disk manifest store

        Ingestion:
            repeat_policy: "skip" drops idempotent repeats, "record" stores
                them as new runs for an audit trail
            store_raw_report: Keep the raw tool report on the run row

        Output control:
            verbosity: Logging verbosity level
    """

    # Storage
    db_path: str = str(_DEFAULT_HOME / "diagnostics.db")
    wal_mode: bool = True
    foreign_keys: bool = True
    busy_timeout_ms: int = 5000

    # Manifest
    manifest_dir: str = str(_DEFAULT_HOME / "manifests")

    # Ingestion
    repeat_policy: RepeatPolicy = "skip"
    store_raw_report: bool = True

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.db_path:
            raise InvalidConfigError("db_path", self.db_path, "must not be empty")
        if self.busy_timeout_ms < 0:
            raise InvalidConfigError(
                "busy_timeout_ms", self.busy_timeout_ms, "must be non-negative"
            )
        if not self.manifest_dir:
            raise InvalidConfigError("manifest_dir", self.manifest_dir, "must not be empty")
        if self.repeat_policy not in ("skip", "record"):
            raise InvalidConfigError(
                "repeat_policy", self.repeat_policy, "must be 'skip' or 'record'"
            )
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "must be 'quiet', 'normal' or 'verbose'"
            )

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY_DB


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> LedgerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options do not mask files.

    Returns:
        Validated LedgerConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a value fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".finding-ledger.toml"
    if global_config.exists():
        merged.update(_load_config_file(global_config, "global"))

    project_config = Path.cwd() / "finding-ledger.toml"
    if project_config.exists():
        merged.update(_load_config_file(project_config, "project"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_config_file(config_file, "explicit"))

    merged.update(_load_env_vars())

    # Convert verbosity boolean flags to string
    if "verbose" in overrides:
        if overrides.pop("verbose"):
            overrides["verbosity"] = "verbose"
    if "quiet" in overrides:
        if overrides.pop("quiet"):
            overrides["verbosity"] = "quiet"

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return LedgerConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_config_file(path: Path, label: str) -> dict[str, Any]:
    """Read a TOML config file; settings may live at top level or under [ledger]."""
    try:
        data = _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid {label} config '{path}': {e}")
    section = data.get("ledger", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid {label} config '{path}': [ledger] must be a table")
    return dict(section)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from FINDING_LEDGER_* environment variables.

    Supported environment variables:
        FINDING_LEDGER_DB_PATH: str
        FINDING_LEDGER_WAL_MODE: bool (true/false/1/0)
        FINDING_LEDGER_FOREIGN_KEYS: bool
        FINDING_LEDGER_BUSY_TIMEOUT_MS: int
        FINDING_LEDGER_MANIFEST_DIR: str
        FINDING_LEDGER_REPEAT_POLICY: skip/record
        FINDING_LEDGER_STORE_RAW_REPORT: bool
        FINDING_LEDGER_VERBOSITY: quiet/normal/verbose

    Returns:
        Dict of field_name -> parsed_value for any FINDING_LEDGER_* vars found.
    """
    type_hints = get_type_hints(LedgerConfig)

    result: dict[str, Any] = {}

    for field_name in LedgerConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(field_name, env_value, f"{env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
