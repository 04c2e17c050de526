"""Local device registry with write-through JSON persistence.

The registry is the only owner of the device list.  Every mutation is
followed by a full save; a failed save is logged and ignored, and the
in-memory change stays.

Reconciliation with the router (:meth:`DeviceRegistry.merge_fetched`)
follows one rule: the router decides *which* MACs exist, the registry
decides everything else (label, type, enabled flag, enable timestamp).

The registry has no internal locking.  It expects to be driven from a
single thread (the CLI's event loop).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from wmac.wmac_common import Device, DeviceType, normalize_mac, utc_now

logger = logging.getLogger(__name__)

Listener = Callable[[list[Device]], None]


# ---------------------------------------------------------------------------
# Record encoding
# ---------------------------------------------------------------------------

class RecordError(ValueError):
    """A persisted device record is missing a required field."""


def device_to_record(device: Device) -> dict[str, Any]:
    """Encode *device* as a JSON-compatible dict."""
    return {
        "id": device.id,
        "macAddress": device.mac_address,
        "userLabel": device.user_label,
        "isEnabled": device.is_enabled,
        "deviceType": device.device_type.value,
        "enabledAt": device.enabled_at.isoformat() if device.enabled_at else None,
    }


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Naive timestamps are taken as UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def device_from_record(
    record: Any,
    *,
    now: Callable[[], datetime] = utc_now,
) -> tuple[Device, bool]:
    """Decode a persisted record.

    Older records may lack ``deviceType`` (defaults to Other) or
    ``enabledAt``.  An enabled device without a usable timestamp is
    stamped with *now*.

    Returns:
        ``(device, repaired)`` where *repaired* tells whether the
        timestamp was back-filled.

    Raises:
        RecordError: the record is not a dict or lacks a required field.
    """
    if not isinstance(record, dict):
        raise RecordError(f"expected an object, got {type(record).__name__}")

    try:
        device_id = record["id"]
        mac = record["macAddress"]
        label = record["userLabel"]
        is_enabled = record["isEnabled"]
    except KeyError as exc:
        raise RecordError(f"missing field {exc.args[0]!r}") from exc

    if not isinstance(device_id, str) or not isinstance(mac, str) or not isinstance(label, str):
        raise RecordError("id, macAddress and userLabel must be strings")
    if not isinstance(is_enabled, bool):
        raise RecordError("isEnabled must be a boolean")

    enabled_at = _parse_timestamp(record.get("enabledAt"))
    repaired = False
    if enabled_at is None and is_enabled:
        enabled_at = now()
        repaired = True

    device = Device(
        id=device_id,
        mac_address=normalize_mac(mac),
        user_label=label,
        is_enabled=is_enabled,
        device_type=DeviceType.parse(record.get("deviceType")),
        enabled_at=enabled_at,
    )
    return device, repaired


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class DeviceStore(Protocol):
    """Blocking load/save primitive used by the registry."""

    def load(self) -> Any | None:
        """Return the decoded document, or None if nothing is stored."""
        ...  # pragma: no cover

    def save(self, records: list[dict[str, Any]]) -> None:
        """Replace the stored document with *records*."""
        ...  # pragma: no cover


class JsonFileStore:
    """Store the device list as a JSON array in a single file.

    Writes go to a temporary file in the same directory which then
    replaces the target, so a crash never leaves half a document behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> Any | None:
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("devices: failed to load %s: %s", self.path, exc)
            return None

    def save(self, records: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".devices-", suffix=".json", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
                f.write("\n")
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


# ---------------------------------------------------------------------------
# DeviceRegistry
# ---------------------------------------------------------------------------

class DeviceRegistry:
    """Owner of the local device collection.

    Args:
        store: Persistence primitive; every mutation saves through it.
        clock: Returns the current time (testing seam).
    """

    def __init__(
        self,
        store: DeviceStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._devices: list[Device] = []
        self._listeners: list[Listener] = []

    # -- queries ------------------------------------------------------------

    @property
    def devices(self) -> list[Device]:
        """Copies of the known devices, in registry order."""
        return [replace(d) for d in self._devices]

    def get(self, mac_address: str) -> Device | None:
        index = self._index_of(mac_address)
        return replace(self._devices[index]) if index is not None else None

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, mac_address: object) -> bool:
        return isinstance(mac_address, str) and self._index_of(mac_address) is not None

    def _index_of(self, mac_address: str) -> int | None:
        mac = normalize_mac(mac_address)
        for i, device in enumerate(self._devices):
            if device.mac_address == mac:
                return i
        return None

    # -- change notification ------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with the device list after every mutation.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.devices)
            except Exception:
                logger.exception("devices: change listener failed")

    # -- persistence --------------------------------------------------------

    def _save(self) -> None:
        records = [device_to_record(d) for d in self._devices]
        try:
            self._store.save(records)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("devices: failed to save %d device(s): %s", len(records), exc)

    def _commit(self) -> None:
        self._save()
        self._notify()

    def load(self) -> None:
        """Replace the collection with the persisted one.

        A missing or undecodable document leaves the collection empty.
        Back-filled ``enabledAt`` timestamps are written back at once.
        """
        self._devices = []
        data = self._store.load()
        if data is None:
            logger.debug("devices: nothing stored")
            self._notify()
            return
        if not isinstance(data, list):
            logger.warning("devices: expected a JSON array, got %s", type(data).__name__)
            self._notify()
            return

        loaded: list[Device] = []
        seen: set[str] = set()
        any_repaired = False
        try:
            for record in data:
                device, repaired = device_from_record(record, now=self._clock)
                any_repaired = any_repaired or repaired
                if device.mac_address in seen:
                    logger.debug("devices: dropping duplicate %s", device.mac_address)
                    continue
                seen.add(device.mac_address)
                loaded.append(device)
        except RecordError as exc:
            logger.warning("devices: stored list is undecodable: %s", exc)
            self._notify()
            return

        self._devices = loaded
        logger.debug("devices: loaded %d device(s)", len(loaded))
        if any_repaired:
            self._save()
        self._notify()

    # -- mutations ----------------------------------------------------------

    def update(self, device: Device) -> None:
        """Replace the record with the same ``id``; no-op if unknown."""
        for i, existing in enumerate(self._devices):
            if existing.id == device.id:
                # MAC is immutable for a given id
                self._devices[i] = replace(device, mac_address=existing.mac_address)
                self._commit()
                return
        logger.debug("devices: update for unknown id %s ignored", device.id)

    def update_status(self, mac_address: str, is_enabled: bool) -> None:
        """Set the enabled flag and timestamp; no-op if *mac_address* is unknown."""
        index = self._index_of(mac_address)
        if index is None:
            logger.debug("devices: status update for unknown %s ignored", mac_address)
            return
        device = self._devices[index]
        device.is_enabled = is_enabled
        device.enabled_at = self._clock() if is_enabled else None
        self._commit()

    def merge_fetched(self, fetched: list[Device]) -> None:
        """Reconcile the collection with a device list fetched from the router.

        Membership follows *fetched*: known devices missing from it are
        dropped.  Metadata follows the registry: for a MAC already known,
        label, type, enabled flag, timestamp and id are kept.  A new MAC
        is added as enabled, stamped with the current time.  Only the
        first occurrence of a repeated MAC is used.
        """
        known = {d.mac_address: d for d in self._devices}
        merged: list[Device] = []
        seen: set[str] = set()

        for remote in fetched:
            mac = normalize_mac(remote.mac_address)
            if mac in seen:
                continue
            seen.add(mac)

            local = known.get(mac)
            if local is not None:
                merged.append(replace(local, mac_address=mac))
            else:
                merged.append(replace(
                    remote,
                    mac_address=mac,
                    is_enabled=True,
                    enabled_at=self._clock(),
                ))

        dropped = len(known) - sum(1 for mac in known if mac in seen)
        logger.debug(
            "devices: merged %d fetched, %d new, %d dropped",
            len(merged),
            sum(1 for mac in seen if mac not in known),
            dropped,
        )
        self._devices = merged
        self._commit()

    def remove(self, mac_address: str) -> None:
        """Delete any record with *mac_address*."""
        mac = normalize_mac(mac_address)
        self._devices = [d for d in self._devices if d.mac_address != mac]
        self._commit()
