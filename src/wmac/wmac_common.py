"""Shared data structures and helpers for the WMac filter controller."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

class DeviceType(enum.Enum):
    """Local category of a device.  The router has no notion of it."""

    NOTEBOOK = "Notebook"
    DESKTOP = "Desktop"
    PHONE = "Phone"
    TABLET = "Tablet"
    TV = "TV"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> DeviceType:
        """Return the member matching *value* (value or name, any case).

        Unknown or missing values fall back to :attr:`OTHER`.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.lower()):
                    return member
        return cls.OTHER


def _new_device_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Device:
    """A device known to the local registry.

    ``mac_address`` is the reconciliation key; ``id`` is assigned once on
    first observation and never changes afterwards.
    """

    mac_address: str                # lowercase, e.g. "2a:77:3c:e8:bc:2e"
    user_label: str = ""            # "" means unnamed
    is_enabled: bool = True
    device_type: DeviceType = DeviceType.OTHER
    enabled_at: datetime | None = None
    id: str = field(default_factory=_new_device_id)

    @property
    def display_name(self) -> str:
        return self.user_label or "Unnamed device"


# ---------------------------------------------------------------------------
# Command runner protocol (subprocess injection seam)
# ---------------------------------------------------------------------------

class CommandRunner(Protocol):
    """Protocol for running external commands.

    Provides an injection seam so callers can substitute a fake runner in
    tests instead of patching ``subprocess`` globally.
    """

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
        input: str | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* and return a CompletedProcess."""
        ...  # pragma: no cover


class SubprocessRunner:
    """Default CommandRunner that delegates to the real ``subprocess`` module."""

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
        input: str | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* via ``subprocess.run``."""
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            env=env,
            input=input,
        )


def _minimal_env() -> dict[str, str]:
    """Build a minimal environment for subprocess calls.

    Only passes PATH, LC_ALL, and HOME so the full user environment does
    not leak into child processes.
    """
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "LC_ALL": "C",
        "HOME": os.environ.get("HOME", ""),
    }


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

_MAC_RE = re.compile(r"^([0-9a-fA-F]{2}:){5}[0-9a-fA-F]{2}$")

_IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def is_valid_mac(mac: str) -> bool:
    """Return True if *mac* is a 6-octet colon-separated hex address."""
    return bool(_MAC_RE.fullmatch(mac))


def normalize_mac(mac: str) -> str:
    """Return the canonical (stripped, lowercase) form of *mac*."""
    return mac.strip().lower()


def is_valid_ipv4(address: str) -> bool:
    """Return True if *address* is a dotted-quad IPv4 address."""
    return bool(_IPV4_RE.fullmatch(address))
