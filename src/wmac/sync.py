"""Filter synchronisation between the router and the local registry.

Each operation is a short fixed sequence with no retries:

- list:   ``display wifi filter`` -> parse -> merge into the registry
- admit:  ``add wifi filter index N mac M`` -> mark enabled on success
- revoke: ``del wifi filter index N mac M`` -> mark disabled on success

Remote failures are raised as :class:`~wmac.errors.RemoteCommandError`
carrying the session result, so the caller decides whether to try again.
Concurrent calls are not serialised; two quick toggles of the same MAC
run as two independent sessions.
"""

from __future__ import annotations

import logging

from wmac.errors import FilterCommandError, InvalidInputError, RemoteCommandError
from wmac.registry import DeviceRegistry
from wmac.settings import FILTER_INDEXES, ConnectionProfile
from wmac.ssh.scraper import parse_device_list
from wmac.ssh.session import ConnectivityResult, RemoteSession, SessionResult
from wmac.wmac_common import Device, DeviceType, is_valid_mac, normalize_mac

logger = logging.getLogger(__name__)

# Substring the router prints when a filter command is accepted
SUCCESS_MARKER = "success"


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------

def filter_index_number(filter_index: str) -> str:
    """Return the numeric part of an ``SSID-N`` filter index."""
    return filter_index.replace("SSID-", "")


def build_list_command() -> str:
    return "display wifi filter"


def build_add_command(filter_index: str, mac_address: str) -> str:
    return f"add wifi filter index {filter_index_number(filter_index)} mac {mac_address}"


def build_delete_command(filter_index: str, mac_address: str) -> str:
    return f"del wifi filter index {filter_index_number(filter_index)} mac {mac_address}"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _require_profile(profile: ConnectionProfile) -> None:
    if not profile.is_complete:
        raise InvalidInputError("Connection settings are incomplete")
    if profile.filter_index not in FILTER_INDEXES:
        raise InvalidInputError(f"Unknown filter index {profile.filter_index!r}")


def _require_mac(mac_address: str) -> str:
    mac = normalize_mac(mac_address)
    if not is_valid_mac(mac):
        raise InvalidInputError(f"Invalid MAC address {mac_address!r}")
    return mac


# ---------------------------------------------------------------------------
# FilterSyncService
# ---------------------------------------------------------------------------

class FilterSyncService:
    """Run list/admit/revoke against the router and record the results.

    Args:
        session: Executes commands on the router.
        registry: Local device registry updated on success.
    """

    def __init__(self, session: RemoteSession, registry: DeviceRegistry) -> None:
        self.session = session
        self.registry = registry

    async def _run(self, profile: ConnectionProfile, command: str) -> SessionResult:
        result = await self.session.execute(
            profile.host, profile.user, profile.password, command
        )
        if not result.ok:
            raise RemoteCommandError(result)
        return result

    # -- core operations ----------------------------------------------------

    async def list_devices(self, profile: ConnectionProfile) -> list[Device]:
        """Fetch the filter list and merge it into the registry.

        Returns:
            The registry contents after the merge.
        """
        _require_profile(profile)
        result = await self._run(profile, build_list_command())
        fetched = parse_device_list(result.text)
        self.registry.merge_fetched(fetched)
        return self.registry.devices

    async def admit(self, profile: ConnectionProfile, mac_address: str) -> str:
        """Add *mac_address* to the router's filter whitelist."""
        _require_profile(profile)
        mac = _require_mac(mac_address)
        result = await self._run(profile, build_add_command(profile.filter_index, mac))
        if SUCCESS_MARKER not in result.text:
            logger.info("admit %s: no success marker in %r", mac, result.text)
            raise FilterCommandError("Failed to add device")
        self.registry.update_status(mac, True)
        return "Device added successfully"

    async def revoke(self, profile: ConnectionProfile, mac_address: str) -> str:
        """Remove *mac_address* from the router's filter whitelist."""
        _require_profile(profile)
        mac = _require_mac(mac_address)
        result = await self._run(profile, build_delete_command(profile.filter_index, mac))
        if SUCCESS_MARKER not in result.text:
            logger.info("revoke %s: no success marker in %r", mac, result.text)
            raise FilterCommandError("Failed to delete device")
        self.registry.update_status(mac, False)
        return "Device deleted successfully"

    # -- user flows ---------------------------------------------------------

    async def set_enabled(
        self, profile: ConnectionProfile, mac_address: str, enabled: bool
    ) -> str:
        """Admit or revoke *mac_address* depending on *enabled*."""
        if enabled:
            return await self.admit(profile, mac_address)
        return await self.revoke(profile, mac_address)

    async def add_device(
        self,
        profile: ConnectionProfile,
        mac_address: str,
        label: str,
        device_type: DeviceType = DeviceType.OTHER,
    ) -> Device | None:
        """Admit a new device, refresh the list and attach label and type.

        If the refresh fails the device stays admitted on the router and
        the refresh error propagates.

        Returns:
            The stored device, or None if the router did not list it.
        """
        if not label.strip():
            raise InvalidInputError("Device label cannot be empty")
        mac = _require_mac(mac_address)

        await self.admit(profile, mac)
        await self.list_devices(profile)

        device = self.registry.get(mac)
        if device is None:
            logger.warning("add %s: admitted but missing from the filter list", mac)
            return None
        device.user_label = label.strip()
        device.device_type = device_type
        self.registry.update(device)
        return self.registry.get(mac)

    async def delete_device(self, profile: ConnectionProfile, mac_address: str) -> str:
        """Forget a device, revoking it on the router first if enabled.

        The local record is only dropped once the revoke succeeded.
        """
        mac = _require_mac(mac_address)
        device = self.registry.get(mac)
        if device is not None and device.is_enabled:
            message = await self.revoke(profile, mac)
            self.registry.remove(mac)
            return message
        self.registry.remove(mac)
        return "Device removed"

    def rename_device(
        self,
        mac_address: str,
        label: str,
        device_type: DeviceType | None = None,
    ) -> Device:
        """Change the local label (and optionally type) of a known device."""
        mac = normalize_mac(mac_address)
        device = self.registry.get(mac)
        if device is None:
            raise InvalidInputError(f"Unknown device {mac_address!r}")
        device.user_label = label.strip()
        if device_type is not None:
            device.device_type = device_type
        self.registry.update(device)
        return device

    async def test_connection(self, profile: ConnectionProfile) -> ConnectivityResult:
        """Check that the profile's credentials open a session."""
        return await self.session.test_connection(
            profile.host, profile.user, profile.password
        )
