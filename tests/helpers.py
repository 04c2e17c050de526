"""Test doubles shared across the WMac test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock


class FakeClock:
    """Clock returning a fixed time that tests can advance."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MemoryStore:
    """DeviceStore keeping the last saved document in memory."""

    def __init__(self, data=None) -> None:
        self.data = data
        self.saves = 0

    def load(self):
        return self.data

    def save(self, records) -> None:
        self.saves += 1
        self.data = records


def completed(returncode: int = 0, stdout: str = "") -> MagicMock:
    """Build a CompletedProcess-like mock."""
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    return result


def transcript(command: str, *body: str, prompt: str = "WAP>") -> str:
    """Build an expect transcript with *body* as the command output."""
    lines = [
        "spawn ssh -o StrictHostKeyChecking=no -p 22 root@192.168.1.1",
        "root@192.168.1.1's password:",
        "",
        f"{prompt}{command}",
        *body,
        prompt,
    ]
    return "\r\n".join(lines) + "\r\n"


class FakeRouter:
    """CommandRunner emulating the router's ``wifi filter`` commands.

    Keeps a per-index whitelist and answers with expect-style transcripts.
    Set ``exit_code`` to simulate a failing session, or ``reply`` to force
    the cleaned output of the next commands.
    """

    def __init__(self, *macs: str, index: str = "1") -> None:
        self.filters: dict[str, list[str]] = {index: list(macs)}
        self.exit_code = 0
        self.reply: str | None = None
        self.commands: list[str] = []
        self.inputs: list[str | None] = []

    def _listing(self) -> list[str]:
        rows = [
            "SSID Index  MAC Address        List Type",
            "------------------------------------------",
        ]
        for index, macs in self.filters.items():
            rows.extend(f"SSID-{index}      {mac}  Whitelist" for mac in macs)
        rows.append("success!")
        return rows

    def _handle(self, command: str) -> list[str]:
        words = command.split()
        if command == "display wifi filter":
            return self._listing()
        if len(words) == 7 and words[1:4] == ["wifi", "filter", "index"]:
            index, mac = words[4], words[6]
            macs = self.filters.setdefault(index, [])
            if words[0] == "add" and mac not in macs:
                macs.append(mac)
            elif words[0] == "del" and mac in macs:
                macs.remove(mac)
            return ["success!"]
        return ["ERROR: unknown command"]

    def run(self, cmd, *, capture_output=True, text=True, timeout=None, env=None, input=None):
        command = cmd[-1]
        self.commands.append(command)
        self.inputs.append(input)
        if self.exit_code != 0:
            return completed(self.exit_code, "")
        body = [self.reply] if self.reply is not None else self._handle(command)
        return completed(0, transcript(command, *body))
