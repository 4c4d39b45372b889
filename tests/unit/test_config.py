"""Tests for configuration loading."""

from __future__ import annotations

import os

import pytest
from pydantic import ValidationError

from scanbridge.config import (
    ConfigNotFoundError,
    ScannerSettings,
    find_config,
    load_config,
    load_settings,
)


class TestScannerSettings:
    """Tests for ScannerSettings."""

    def test_defaults(self):
        """Test default settings values."""
        settings = ScannerSettings()

        assert settings.server_name == "scanbridge"
        assert settings.concurrency == (os.cpu_count() or 1)
        assert settings.verify is True
        assert settings.max_results == 1000
        assert settings.scan_timeout == 300.0
        assert settings.log_level == "WARNING"

    def test_environment_overrides(self, monkeypatch):
        """Test SCANBRIDGE_* environment variables are read."""
        monkeypatch.setenv("SCANBRIDGE_MAX_RESULTS", "25")
        monkeypatch.setenv("SCANBRIDGE_VERIFY", "false")

        settings = ScannerSettings()

        assert settings.max_results == 25
        assert settings.verify is False

    def test_from_dict_overrides_environment(self, monkeypatch):
        """Test values from a config file win over the environment."""
        monkeypatch.setenv("SCANBRIDGE_MAX_RESULTS", "25")

        settings = ScannerSettings.from_dict({"scanner": {"max_results": 5}})

        assert settings.max_results == 5

    def test_from_dict_ignores_unknown_keys(self):
        """Test unknown keys in the scanner table are ignored."""
        settings = ScannerSettings.from_dict({"scanner": {"colour": "blue", "concurrency": 3}})

        assert settings.concurrency == 3

    def test_from_dict_empty(self):
        """Test an empty config gives defaults."""
        assert ScannerSettings.from_dict({}).max_results == 1000

    def test_log_level_uppercased(self):
        """Test log level names are normalized."""
        assert ScannerSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_concurrency(self):
        """Test concurrency must be at least one."""
        with pytest.raises(ValidationError):
            ScannerSettings(concurrency=0)

    def test_invalid_max_results(self):
        """Test max_results cannot be negative."""
        with pytest.raises(ValidationError):
            ScannerSettings(max_results=-1)


class TestFindConfig:
    """Tests for config discovery."""

    def test_finds_scanbridge_toml(self, tmp_path):
        """Test scanbridge.toml is found in the start directory."""
        config = tmp_path / "scanbridge.toml"
        config.write_text("[scanner]\nconcurrency = 2\n")

        assert find_config(tmp_path) == config

    def test_finds_in_parent(self, tmp_path):
        """Test discovery walks up to parent directories."""
        config = tmp_path / "scanbridge.toml"
        config.write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config(nested) == config

    def test_scanbridge_toml_wins_over_pyproject(self, tmp_path):
        """Test scanbridge.toml is preferred in the same directory."""
        (tmp_path / "pyproject.toml").write_text("[tool.scanbridge.scanner]\nconcurrency = 2\n")
        (tmp_path / "scanbridge.toml").write_text("")

        assert find_config(tmp_path) == tmp_path / "scanbridge.toml"

    def test_pyproject_with_tool_table(self, tmp_path):
        """Test a pyproject.toml with [tool.scanbridge] is found."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.scanbridge.scanner]\nconcurrency = 2\n")

        assert find_config(tmp_path) == pyproject

    def test_pyproject_without_tool_table(self, tmp_path):
        """Test a pyproject.toml without [tool.scanbridge] is ignored."""
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")

        assert find_config(tmp_path) is None


class TestLoadConfig:
    """Tests for load_config and load_settings."""

    def test_explicit_missing_path(self, tmp_path):
        """Test an explicit missing path raises ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_nothing_found(self, tmp_path, monkeypatch):
        """Test auto-detection without a config file gives an empty dict."""
        monkeypatch.chdir(tmp_path)

        assert load_config() == {}

    def test_pyproject_returns_tool_table(self, tmp_path):
        """Test a pyproject.toml yields its [tool.scanbridge] table."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.scanbridge.scanner]\nmax_results = 7\n")

        assert load_config(pyproject) == {"scanner": {"max_results": 7}}

    def test_load_settings(self, tmp_path):
        """Test load_settings applies the scanner table."""
        config = tmp_path / "scanbridge.toml"
        config.write_text('[scanner]\nverify = false\nlog_level = "info"\n')

        settings = load_settings(config)

        assert settings.verify is False
        assert settings.log_level == "INFO"

    def test_auto_detected_settings(self, tmp_path, monkeypatch):
        """Test load_settings finds the config in the working directory."""
        (tmp_path / "scanbridge.toml").write_text("[scanner]\nmax_results = 3\n")
        monkeypatch.chdir(tmp_path)

        assert load_settings().max_results == 3
