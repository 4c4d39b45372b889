"""Configuration loading for scanbridge.

Settings come from, in increasing priority:
- field defaults
- ``SCANBRIDGE_*`` environment variables
- the ``[scanner]`` table of ``scanbridge.toml`` (or ``[tool.scanbridge.scanner]``
  in ``pyproject.toml``)

Example scanbridge.toml:
    [scanner]
    concurrency = 8
    verify = false
    max_results = 500
    scan_timeout = 120
    log_level = "INFO"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = "scanbridge.toml"


class ConfigNotFoundError(Exception):
    """Configuration file not found."""

    pass


def _default_concurrency() -> int:
    return os.cpu_count() or 1


class ScannerSettings(BaseSettings):
    """Deployment-level scanner settings.

    Attributes:
        server_name: Name reported to callers.
        concurrency: Pipeline worker threads per scan.
        verify: Verify found secrets when a request does not say.
        max_results: Maximum findings returned per scan (0 = unlimited).
        scan_timeout: Seconds before a scan is cancelled (0 = no deadline).
        log_level: Logging level name.
    """

    model_config = SettingsConfigDict(env_prefix="SCANBRIDGE_", extra="ignore")

    server_name: str = "scanbridge"
    concurrency: int = Field(default_factory=_default_concurrency, ge=1)
    verify: bool = True
    max_results: int = Field(default=1000, ge=0)
    scan_timeout: float = Field(default=300.0, ge=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ScannerSettings:
        """Create settings from a parsed config file.

        Args:
            config: Dictionary with a ``scanner`` table (e.g. from scanbridge.toml).

        Returns:
            ScannerSettings with file values overriding the environment.
        """
        scanner_config = config.get("scanner", {})
        known = {k: v for k, v in scanner_config.items() if k in cls.model_fields}
        return cls(**known)


def find_config(start: Path | None = None) -> Path | None:
    """Find a config file in ``start`` or its parents.

    ``scanbridge.toml`` wins over a ``pyproject.toml`` in the same directory;
    a ``pyproject.toml`` only counts if it has a ``[tool.scanbridge]`` table.

    Returns:
        Path to the config file, or None if there is none.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate

        pyproject = directory / "pyproject.toml"
        if pyproject.is_file():
            try:
                with open(pyproject, "rb") as f:
                    if "scanbridge" in tomllib.load(f).get("tool", {}):
                        return pyproject
            except (OSError, tomllib.TOMLDecodeError):
                continue
    return None


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load a config file.

    Args:
        path: Explicit config path. Auto-detected when None.

    Returns:
        The config dictionary (the ``[tool.scanbridge]`` table for pyproject.toml).
        Empty when auto-detection finds nothing.

    Raises:
        ConfigNotFoundError: If an explicit path does not exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    if path is None:
        path = find_config()
        if path is None:
            return {}
    elif not path.is_file():
        raise ConfigNotFoundError(f"config file not found: {path}")

    with open(path, "rb") as f:
        data = tomllib.load(f)

    if path.name == "pyproject.toml":
        return data.get("tool", {}).get("scanbridge", {})
    return data


def load_settings(path: Path | None = None) -> ScannerSettings:
    """Load settings from the environment and an optional config file."""
    return ScannerSettings.from_dict(load_config(path))
