"""Tests for wmac.wmac_common — data structures, runner and validators."""

from __future__ import annotations

from unittest.mock import patch

from wmac.wmac_common import (
    Device,
    DeviceType,
    SubprocessRunner,
    _minimal_env,
    is_valid_ipv4,
    is_valid_mac,
    normalize_mac,
)


# ---------------------------------------------------------------------------
# is_valid_ipv4
# ---------------------------------------------------------------------------

class TestIsValidIpv4:
    """is_valid_ipv4 accepts dotted quads with octets 0-255 only."""

    def test_accepts_private_address(self):
        assert is_valid_ipv4("192.168.1.1") is True

    def test_accepts_boundaries(self):
        assert is_valid_ipv4("0.0.0.0") is True
        assert is_valid_ipv4("255.255.255.255") is True

    def test_rejects_octet_above_255(self):
        assert is_valid_ipv4("192.168.1.256") is False

    def test_rejects_words(self):
        assert is_valid_ipv4("not.an.ip") is False

    def test_rejects_empty_string(self):
        assert is_valid_ipv4("") is False

    def test_rejects_three_octets(self):
        assert is_valid_ipv4("10.0.1") is False

    def test_rejects_trailing_newline(self):
        assert is_valid_ipv4("192.168.1.1\n") is False

    def test_rejects_surrounding_text(self):
        assert is_valid_ipv4("via 192.168.1.1") is False


# ---------------------------------------------------------------------------
# MAC helpers
# ---------------------------------------------------------------------------

class TestMacHelpers:
    """is_valid_mac / normalize_mac handle colon-hex MAC addresses."""

    def test_valid_lowercase(self):
        assert is_valid_mac("2a:77:3c:e8:bc:2e") is True

    def test_valid_uppercase(self):
        assert is_valid_mac("AA:BB:CC:DD:EE:FF") is True

    def test_rejects_dashes(self):
        assert is_valid_mac("aa-bb-cc-dd-ee-ff") is False

    def test_rejects_five_octets(self):
        assert is_valid_mac("aa:bb:cc:dd:ee") is False

    def test_rejects_non_hex(self):
        assert is_valid_mac("gg:bb:cc:dd:ee:ff") is False

    def test_normalize_lowercases_and_strips(self):
        assert normalize_mac("  AA:BB:CC:DD:EE:FF\n") == "aa:bb:cc:dd:ee:ff"


# ---------------------------------------------------------------------------
# DeviceType / Device
# ---------------------------------------------------------------------------

class TestDeviceType:
    """DeviceType.parse accepts stored values and CLI names."""

    def test_parses_stored_value(self):
        assert DeviceType.parse("Notebook") is DeviceType.NOTEBOOK

    def test_parses_name_case_insensitive(self):
        assert DeviceType.parse("tv") is DeviceType.TV

    def test_passes_member_through(self):
        assert DeviceType.parse(DeviceType.PHONE) is DeviceType.PHONE

    def test_unknown_falls_back_to_other(self):
        assert DeviceType.parse("Toaster") is DeviceType.OTHER

    def test_none_falls_back_to_other(self):
        assert DeviceType.parse(None) is DeviceType.OTHER


class TestDevice:
    """Device defaults match a freshly observed, unnamed device."""

    def test_defaults(self):
        device = Device(mac_address="aa:bb:cc:dd:ee:ff")
        assert device.user_label == ""
        assert device.is_enabled is True
        assert device.device_type is DeviceType.OTHER
        assert device.enabled_at is None

    def test_ids_are_unique(self):
        a = Device(mac_address="aa:bb:cc:dd:ee:ff")
        b = Device(mac_address="aa:bb:cc:dd:ee:ff")
        assert a.id and b.id and a.id != b.id

    def test_display_name(self):
        assert Device("aa:bb:cc:dd:ee:ff").display_name == "Unnamed device"
        assert Device("aa:bb:cc:dd:ee:ff", user_label="TV").display_name == "TV"


# ---------------------------------------------------------------------------
# SubprocessRunner / _minimal_env
# ---------------------------------------------------------------------------

class TestSubprocessRunner:
    """SubprocessRunner forwards arguments to subprocess.run."""

    @patch("wmac.wmac_common.subprocess.run")
    def test_forwards_input(self, mock_run):
        SubprocessRunner().run(["expect", "-f", "x"], input="secret\n", timeout=5)
        _, kwargs = mock_run.call_args
        assert kwargs["input"] == "secret\n"
        assert kwargs["timeout"] == 5
        assert kwargs["capture_output"] is True


class TestMinimalEnv:
    """_minimal_env only exposes PATH, LC_ALL and HOME."""

    def test_keys(self):
        env = _minimal_env()
        assert set(env) == {"PATH", "LC_ALL", "HOME"}
        assert env["LC_ALL"] == "C"

    @patch.dict("os.environ", {"WMAC_PASSWORD": "leak"}, clear=False)
    def test_does_not_leak_other_variables(self):
        assert "WMAC_PASSWORD" not in _minimal_env()
