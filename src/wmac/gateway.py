"""Default gateway detection from the system routing table.

Used to pre-fill the router address when no host has been configured.
The parser handles both the BSD/macOS ``netstat -nr`` layout::

    default            192.168.1.1        UGScg          en0

and the Linux ``netstat -nr`` / ``route -n`` layout::

    0.0.0.0         192.168.1.1     0.0.0.0         UG    600    0        0 wlan0
"""

from __future__ import annotations

import logging
import subprocess

from wmac.wmac_common import (
    CommandRunner,
    SubprocessRunner,
    _minimal_env,
    is_valid_ipv4,
)

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()

_ROUTE_COMMANDS = (
    ["netstat", "-nr"],
    ["route", "-n"],
)


def parse_default_gateway(output: str) -> str | None:
    """Return the gateway of the first default route in *output*, or None.

    A default route is a line containing ``default`` or starting with
    ``0.0.0.0``; its second column must be a valid IPv4 address.
    """
    for line in output.splitlines():
        if "default" not in line and not line.startswith("0.0.0.0"):
            continue
        fields = line.split()
        if len(fields) >= 2 and is_valid_ipv4(fields[1]):
            return fields[1]
    return None


def detect_gateway(*, runner: CommandRunner | None = None) -> str | None:
    """Return the default gateway IPv4 address, or None if unavailable.

    Tries ``netstat -nr`` first and ``route -n`` as a fallback.

    Args:
        runner: Optional CommandRunner for subprocess calls (testing seam).
    """
    runner = runner or _DEFAULT_RUNNER
    env = _minimal_env()
    for cmd in _ROUTE_COMMANDS:
        try:
            result = runner.run(cmd, capture_output=True, text=True, timeout=5, env=env)
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            logger.debug("gateway: %s unavailable", cmd[0])
            continue
        if result.returncode != 0:
            continue
        gateway = parse_default_gateway(result.stdout or "")
        if gateway:
            logger.debug("gateway: %s via %s", gateway, cmd[0])
            return gateway
    return None
