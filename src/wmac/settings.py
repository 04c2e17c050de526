"""Connection settings for the router.

Settings live in a small JSON file next to the device list::

    {"host": "192.168.1.1", "user": "root", "password": "...", "filterIndex": "SSID-1"}

The password is stored in plain text, so the file is written with mode
600 and a warning is printed when it is readable by others.  Setting
``WMAC_PASSWORD`` in the environment overrides the stored password.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from wmac import config
from wmac.gateway import detect_gateway

logger = logging.getLogger(__name__)

FILTER_INDEXES = tuple(f"SSID-{n}" for n in range(1, 9))
DEFAULT_FILTER_INDEX = FILTER_INDEXES[0]


@dataclass
class ConnectionProfile:
    """Where and how to reach the router, and which SSID filter to edit."""

    host: str
    user: str = config.DEFAULT_USER
    password: str = ""
    filter_index: str = DEFAULT_FILTER_INDEX

    @property
    def is_complete(self) -> bool:
        """True when host, user and password are all set."""
        return bool(self.host and self.user and self.password)


def _coerce_filter_index(value: object) -> str:
    if isinstance(value, str) and value in FILTER_INDEXES:
        return value
    if value is not None:
        logger.debug("settings: unknown filter index %r, using %s", value, DEFAULT_FILTER_INDEX)
    return DEFAULT_FILTER_INDEX


def load_profile(
    path: str | os.PathLike[str],
    *,
    gateway_detector: Callable[[], str | None] = detect_gateway,
) -> ConnectionProfile:
    """Load the connection profile from *path*.

    Missing values get defaults: the host falls back to the detected
    default gateway, then to ``192.168.1.1``; the user to ``root``; the
    filter index to ``SSID-1``.  A missing or unreadable file yields an
    all-default profile.
    """
    data: dict = {}
    try:
        with open(path, encoding="utf-8") as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            data = loaded
        else:
            logger.warning("settings: expected a JSON object in %s", path)
    except FileNotFoundError:
        pass
    except (OSError, ValueError) as exc:
        logger.warning("settings: failed to load %s: %s", path, exc)

    if data:
        try:
            mode = os.stat(path).st_mode
            if mode & stat.S_IROTH:
                print(
                    f"WARNING: settings file {str(path)!r} is world-readable "
                    "(chmod 600 recommended)",
                    file=sys.stderr,
                )
        except OSError:
            pass

    host = data.get("host") or ""
    if not host:
        host = gateway_detector() or config.DEFAULT_HOST

    password = os.getenv("WMAC_PASSWORD") or data.get("password") or ""

    return ConnectionProfile(
        host=str(host),
        user=str(data.get("user") or config.DEFAULT_USER),
        password=str(password),
        filter_index=_coerce_filter_index(data.get("filterIndex")),
    )


def save_profile(path: str | os.PathLike[str], profile: ConnectionProfile) -> bool:
    """Write *profile* to *path*.

    Returns:
        True on success, False if the file could not be written.
    """
    data = {
        "host": profile.host,
        "user": profile.user,
        "password": profile.password,
        "filterIndex": profile.filter_index,
    }
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.chmod(target, 0o600)
    except OSError as exc:
        logger.warning("settings: failed to write %s: %s", path, exc)
        return False

    logger.debug("settings: saved to %s", path)
    return True
