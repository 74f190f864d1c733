"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from finding_ledger.config import LedgerConfig, load_config
from finding_ledger.exceptions import ConfigurationError, InvalidConfigError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep the user's home and working directory out of config discovery."""
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("FINDING_LEDGER_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self):
        config = LedgerConfig()
        assert config.wal_mode is True
        assert config.busy_timeout_ms == 5000
        assert config.repeat_policy == "skip"
        assert config.db_path.endswith("diagnostics.db")

    def test_in_memory(self):
        assert LedgerConfig(db_path=":memory:").in_memory


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"db_path": ""},
            {"busy_timeout_ms": -1},
            {"repeat_policy": "sometimes"},
            {"verbosity": "loud"},
            {"manifest_dir": ""},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidConfigError):
            LedgerConfig(**kwargs)


class TestLoadConfig:
    def test_project_file(self, tmp_path):
        (tmp_path / "finding-ledger.toml").write_text('db_path = "proj.db"\n')
        assert load_config().db_path == "proj.db"

    def test_ledger_table(self, tmp_path):
        cfg = tmp_path / "custom.toml"
        cfg.write_text('[ledger]\nrepeat_policy = "record"\nbusy_timeout_ms = 100\n')
        config = load_config(config_file=cfg)
        assert config.repeat_policy == "record"
        assert config.busy_timeout_ms == 100

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "finding-ledger.toml").write_text('db_path = "proj.db"\n')
        monkeypatch.setenv("FINDING_LEDGER_DB_PATH", "env.db")
        monkeypatch.setenv("FINDING_LEDGER_WAL_MODE", "false")
        config = load_config()
        assert config.db_path == "env.db"
        assert config.wal_mode is False

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("FINDING_LEDGER_DB_PATH", "env.db")
        assert load_config(db_path=":memory:").db_path == ":memory:"

    def test_none_override_ignored(self, monkeypatch):
        monkeypatch.setenv("FINDING_LEDGER_DB_PATH", "env.db")
        assert load_config(db_path=None).db_path == "env.db"

    def test_verbosity_flags(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"
        assert load_config(verbose=False).verbosity == "normal"

    def test_bad_env_bool(self, monkeypatch):
        monkeypatch.setenv("FINDING_LEDGER_WAL_MODE", "maybe")
        with pytest.raises(InvalidConfigError):
            load_config()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(config_file=tmp_path / "absent.toml")

    def test_unknown_key(self, tmp_path):
        (tmp_path / "finding-ledger.toml").write_text("colour = 1\n")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_invalid_toml(self, tmp_path):
        (tmp_path / "finding-ledger.toml").write_text("db_path = \n")
        with pytest.raises(ConfigurationError):
            load_config()
