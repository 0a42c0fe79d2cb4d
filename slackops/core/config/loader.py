"""
Configuration loader — reads the console settings file.

Settings are optional: with no file at all the console runs on the
defaults below. When a file is found it must be a YAML mapping that
validates against ``ConsoleSettings``.

Search order:
    1. explicit path (``slackops --config``)
    2. ``$SLACKOPS_CONFIG``
    3. ``/etc/slackops/config.yml``
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from slackops.core.detection.risk import KERNEL_PACKAGE_PATTERNS

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SLACKOPS_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/slackops/config.yml")

SBOPKG_URL = (
    "https://github.com/sbopkg/sbopkg/releases/download/0.38.2/"
    "sbopkg-0.38.2-noarch-1_wsr.tgz"
)
SBO_REPO_URL = "https://gitlab.com/SlackBuilds.org/slackbuilds.git"


class ConfigError(Exception):
    """Raised when the settings file exists but cannot be used."""


class ConsoleSettings(BaseModel):
    """Operator-tunable settings."""

    log_lines: int = Field(default=1000, ge=1)
    preview_lines: int = Field(default=10, ge=0)
    download_dir: str = "/tmp"
    system_root: str = "/"
    kernel_patterns: list[str] = Field(default_factory=lambda: list(KERNEL_PACKAGE_PATTERNS))

    # sbotools bootstrap
    sbopkg_url: str = SBOPKG_URL
    sbopkg_filename: str = ""
    sbo_repo_url: str = SBO_REPO_URL

    # Audit ledger
    audit_enabled: bool = True
    audit_file: str = "/var/log/slackops/audit.ndjson"

    model_config = {"extra": "forbid"}

    @field_validator("kernel_patterns")
    @classmethod
    def _non_empty_patterns(cls, v: list[str]) -> list[str]:
        patterns = [p for p in v if p.strip()]
        if not patterns:
            raise ValueError("kernel_patterns must list at least one fragment")
        return patterns

    @property
    def sbopkg_package(self) -> str:
        """File name of the sbopkg package (taken from the URL by default)."""
        return self.sbopkg_filename or self.sbopkg_url.rstrip("/").rsplit("/", 1)[-1]

    @property
    def sbopkg_path(self) -> str:
        return str(Path(self.download_dir) / self.sbopkg_package)


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which settings file to read, or None for defaults.

    An explicit path or ``$SLACKOPS_CONFIG`` is returned even when the
    file is missing, so ``load_settings`` can report it.
    """
    if explicit is not None:
        return explicit
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def load_settings(path: Path | None = None) -> ConsoleSettings:
    """Load and validate console settings.

    Args:
        path: Explicit settings file. If None, the search order applies.

    Raises:
        ConfigError: If a named file is missing, or any file is unreadable
            or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No settings file found, using defaults")
        return ConsoleSettings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ConsoleSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = ConsoleSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
