"""Configuration for WMac.

Paths default to ``~/.config/wmac`` and can be overridden through
environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "wmac"
CONFIG_DIR = Path(os.getenv("WMAC_CONFIG_DIR", DEFAULT_CONFIG_DIR))

DEVICES_FILENAME = "devices.json"
SETTINGS_FILENAME = "settings.json"

# Binary used to run the bundled ssh_command.exp script
EXPECT_BINARY = os.getenv("WMAC_EXPECT", "expect")

DEFAULT_HOST = "192.168.1.1"
DEFAULT_USER = "root"


def get_config_dir(override: str | os.PathLike[str] | None = None) -> Path:
    """Return the configuration directory, honouring an explicit override."""
    return Path(override) if override else CONFIG_DIR


def get_devices_path(config_dir: Path | None = None) -> Path:
    """Get path to the persisted device list."""
    return (config_dir or CONFIG_DIR) / DEVICES_FILENAME


def get_settings_path(config_dir: Path | None = None) -> Path:
    """Get path to the persisted connection settings."""
    return (config_dir or CONFIG_DIR) / SETTINGS_FILENAME
