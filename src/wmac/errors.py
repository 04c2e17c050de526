"""Exception types raised by the WMac engine.

Persistence failures are not represented here: the registry logs and
absorbs them.  Output that cannot be scraped degrades to an empty or
partial result instead of raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wmac.ssh.session import SessionResult


class WmacError(Exception):
    """Base class for all WMac errors."""


class InvalidInputError(WmacError):
    """Host, user, password or MAC address rejected before any remote call."""


class SpawnError(WmacError):
    """The automation script is missing or the ``expect`` process could not start."""


class RemoteCommandError(WmacError):
    """The remote session ended with a non-success exit status."""

    def __init__(self, result: SessionResult) -> None:
        super().__init__(result.message)
        self.result = result

    @property
    def outcome(self):
        return self.result.outcome


class FilterCommandError(WmacError):
    """The router ran the filter command but did not report success."""
