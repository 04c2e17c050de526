"""Tests for wmac.cli — argument parsing and command dispatch."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from wmac import cli
from wmac.registry import device_to_record
from wmac.settings import ConnectionProfile, load_profile, save_profile
from wmac.ssh.session import RemoteSession
from wmac.wmac_common import Device

from helpers import FakeRouter, completed

MAC_A = "2a:77:3c:e8:bc:2e"
MAC_B = "aa:bb:cc:dd:ee:ff"


@pytest.fixture(autouse=True)
def _no_password_env(monkeypatch):
    monkeypatch.delenv("WMAC_PASSWORD", raising=False)


@pytest.fixture(autouse=True)
def _no_route_table(monkeypatch):
    runner = MagicMock()
    runner.run.return_value = completed(1, "")
    monkeypatch.setattr("wmac.gateway._DEFAULT_RUNNER", runner)


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "wmac"
    save_profile(path / "settings.json", ConnectionProfile("192.168.1.1", "root", "pw"))
    return path


@pytest.fixture
def router():
    return FakeRouter(MAC_A)


@pytest.fixture
def fake_session(router, script_path):
    with patch("wmac.cli.RemoteSession", lambda: RemoteSession(router, script_path=script_path)):
        yield router


def _run(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(list(argv))
    return excinfo.value.code


def _stored(config_dir) -> list[dict]:
    return json.loads((config_dir / "devices.json").read_text())


# ---------------------------------------------------------------------------
# _parse_args
# ---------------------------------------------------------------------------

class TestParseArgs:
    """Subcommands and their options."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli._parse_args([])

    def test_add(self):
        args = cli._parse_args(["add", MAC_B, "--label", "TV", "--type", "tv"])
        assert args.command == "add"
        assert args.mac == MAC_B
        assert args.label == "TV"
        assert args.type == "tv"

    def test_add_requires_label(self):
        with pytest.raises(SystemExit):
            cli._parse_args(["add", MAC_B])

    def test_add_rejects_unknown_type(self):
        with pytest.raises(SystemExit):
            cli._parse_args(["add", MAC_B, "-l", "x", "-t", "fridge"])

    def test_global_options(self):
        args = cli._parse_args(["--debug", "--config-dir", "/tmp/x", "show"])
        assert args.debug is True
        assert args.config_dir == "/tmp/x"

    def test_configure(self):
        args = cli._parse_args(["configure", "--host", "10.0.0.1", "--index", "SSID-3"])
        assert args.host == "10.0.0.1"
        assert args.index == "SSID-3"
        assert args.password_prompt is False


# ---------------------------------------------------------------------------
# Local commands
# ---------------------------------------------------------------------------

class TestLocalCommands:
    """Commands that never open an SSH session."""

    def test_gateway(self, capsys):
        with patch("wmac.cli.detect_gateway", return_value="10.0.0.138"):
            assert _run("gateway") == 0
        assert "10.0.0.138" in capsys.readouterr().out

    def test_gateway_missing(self, capsys):
        with patch("wmac.cli.detect_gateway", return_value=None):
            assert _run("gateway") == 1
        assert "No default gateway" in capsys.readouterr().out

    def test_configure_writes_settings(self, tmp_path):
        config_dir = tmp_path / "cfg"
        with patch("wmac.cli.getpass.getpass", return_value="secret"):
            status = _run(
                "--config-dir", str(config_dir), "configure",
                "--host", "192.168.100.1", "--user", "admin", "--password-prompt",
                "--index", "SSID-2",
            )
        assert status == 0
        profile = load_profile(config_dir / "settings.json", gateway_detector=lambda: None)
        assert profile == ConnectionProfile("192.168.100.1", "admin", "secret", "SSID-2")

    def test_configure_rejects_bad_host(self, tmp_path, capsys):
        status = _run("--config-dir", str(tmp_path), "configure", "--host", "300.1.1.1")
        assert status == 1
        assert "Invalid IP address format" in capsys.readouterr().out
        assert not (tmp_path / "settings.json").exists()

    def test_show(self, config_dir, capsys):
        (config_dir / "devices.json").write_text(
            json.dumps([device_to_record(Device(MAC_B, "Phone"))])
        )
        assert _run("--config-dir", str(config_dir), "show") == 0
        assert "Phone" in capsys.readouterr().out

    def test_label_unknown_device(self, config_dir, capsys):
        assert _run("--config-dir", str(config_dir), "label", MAC_B, "Phone") == 1
        assert "Unknown device" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Router commands
# ---------------------------------------------------------------------------

class TestRouterCommands:
    """Commands that talk to the router through the session."""

    def test_incomplete_settings(self, tmp_path, fake_session, capsys):
        save_profile(tmp_path / "settings.json", ConnectionProfile("192.168.1.1"))
        assert _run("--config-dir", str(tmp_path), "list") == 1
        assert "wmac configure" in capsys.readouterr().out
        assert fake_session.commands == []

    def test_list_merges(self, config_dir, fake_session):
        assert _run("--config-dir", str(config_dir), "list") == 0
        assert [r["macAddress"] for r in _stored(config_dir)] == [MAC_A]

    def test_add(self, config_dir, fake_session):
        status = _run("--config-dir", str(config_dir), "add", MAC_B, "-l", "Kitchen", "-t", "tablet")
        assert status == 0
        assert fake_session.commands[0] == f"add wifi filter index 1 mac {MAC_B}"
        record = next(r for r in _stored(config_dir) if r["macAddress"] == MAC_B)
        assert record["userLabel"] == "Kitchen"
        assert record["deviceType"] == "Tablet"
        assert record["isEnabled"] is True

    def test_disable(self, config_dir, fake_session):
        _run("--config-dir", str(config_dir), "list")
        assert _run("--config-dir", str(config_dir), "disable", MAC_A) == 0
        assert _stored(config_dir)[0]["isEnabled"] is False
        assert MAC_A not in fake_session.filters["1"]

    def test_remote_failure_exits_one(self, config_dir, fake_session, capsys):
        fake_session.exit_code = 2
        assert _run("--config-dir", str(config_dir), "list") == 1
        assert "Authentication failed" in capsys.readouterr().out

    def test_test_command(self, config_dir, fake_session, capsys):
        assert _run("--config-dir", str(config_dir), "test") == 0
        assert "Connection successful" in capsys.readouterr().out
        assert fake_session.inputs == ["pw\n"]
