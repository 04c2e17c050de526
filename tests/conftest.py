"""Shared fixtures for the WMac test suite."""

from __future__ import annotations

import pytest

from helpers import FakeClock, MemoryStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def script_path(tmp_path):
    """A stand-in automation script so RemoteSession finds a file."""
    path = tmp_path / "ssh_command.exp"
    path.write_text("#!/usr/bin/expect -f\n")
    return path
