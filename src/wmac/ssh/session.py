"""Remote command execution over an interactive SSH session.

Each call spawns the bundled ``ssh_command.exp`` script under ``expect``.
Host and user go on the command line; the password is written to the
script's standard input so it never shows up in the process list.  The
script exit status is mapped to a closed set of outcomes::

    0 -> SUCCESS                 4 -> CONNECTION_REFUSED
    2 -> AUTHENTICATION_FAILED   5 -> HOST_UNREACHABLE
    3 -> COMMAND_TIMEOUT         6 -> CONNECTION_TIMEOUT
    anything else -> UNKNOWN

Waiting for the process happens in a worker thread, so the coroutines
here never block the event loop.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import subprocess
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from wmac import config
from wmac.errors import InvalidInputError, SpawnError
from wmac.ssh.scraper import clean_output
from wmac.wmac_common import (
    CommandRunner,
    SubprocessRunner,
    _minimal_env,
    is_valid_ipv4,
)

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()

SCRIPT_NAME = "ssh_command.exp"


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class SessionOutcome(enum.Enum):
    """Result kind of one remote session, derived from the exit status."""

    SUCCESS = "success"
    AUTHENTICATION_FAILED = "authentication_failed"
    COMMAND_TIMEOUT = "command_timeout"
    CONNECTION_REFUSED = "connection_refused"
    HOST_UNREACHABLE = "host_unreachable"
    CONNECTION_TIMEOUT = "connection_timeout"
    UNKNOWN = "unknown"


_EXIT_CODES: dict[int, SessionOutcome] = {
    0: SessionOutcome.SUCCESS,
    2: SessionOutcome.AUTHENTICATION_FAILED,
    3: SessionOutcome.COMMAND_TIMEOUT,
    4: SessionOutcome.CONNECTION_REFUSED,
    5: SessionOutcome.HOST_UNREACHABLE,
    6: SessionOutcome.CONNECTION_TIMEOUT,
}

# Messages shown for failed commands
_COMMAND_MESSAGES: dict[SessionOutcome, str] = {
    SessionOutcome.AUTHENTICATION_FAILED: "Authentication failed",
    SessionOutcome.COMMAND_TIMEOUT: "Command timeout",
    SessionOutcome.CONNECTION_REFUSED: "Connection refused",
    SessionOutcome.HOST_UNREACHABLE: "Host unreachable",
    SessionOutcome.CONNECTION_TIMEOUT: "Connection timeout",
}

# Messages shown by the connection test
_CONNECTIVITY_MESSAGES: dict[SessionOutcome, str] = {
    SessionOutcome.SUCCESS: "Connection successful",
    SessionOutcome.AUTHENTICATION_FAILED: "Check user and password",
    SessionOutcome.COMMAND_TIMEOUT: "Terminal did not respond",
    SessionOutcome.CONNECTION_REFUSED: "Connection was refused",
    SessionOutcome.HOST_UNREACHABLE: "Network is not reachable",
    SessionOutcome.CONNECTION_TIMEOUT: "Connection timed out",
    SessionOutcome.UNKNOWN: "Connection could not establish",
}


def classify_exit_code(code: int) -> SessionOutcome:
    """Map an automation script exit status to a :class:`SessionOutcome`."""
    return _EXIT_CODES.get(code, SessionOutcome.UNKNOWN)


@dataclass
class SessionResult:
    """Outcome of :meth:`RemoteSession.execute`.

    ``output`` is the raw transcript; ``text`` is the cleaned command
    output and is only filled in on success.
    """

    outcome: SessionOutcome
    exit_code: int
    output: str = ""
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is SessionOutcome.SUCCESS

    @property
    def message(self) -> str:
        """Reason string for the command path."""
        if self.ok:
            return "Command executed successfully"
        if self.outcome is SessionOutcome.UNKNOWN:
            return f"Command failed with exit code {self.exit_code}"
        return _COMMAND_MESSAGES[self.outcome]


@dataclass
class ConnectivityResult:
    """Outcome of :meth:`RemoteSession.test_connection`.

    ``outcome`` is None when the test failed locally before any process
    was started; ``error`` then names the reason (``"empty_host"``,
    ``"empty_user"``, ``"empty_password"``, ``"invalid_address"`` or
    ``"spawn_failed"``).
    """

    message: str
    outcome: SessionOutcome | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is SessionOutcome.SUCCESS


def _default_script_path() -> Path:
    return Path(str(resources.files("wmac.ssh").joinpath(SCRIPT_NAME)))


# ---------------------------------------------------------------------------
# RemoteSession
# ---------------------------------------------------------------------------

class RemoteSession:
    """Run single commands on a router through ``expect`` and ``ssh``.

    Args:
        runner: Optional CommandRunner for subprocess calls (testing seam).
        script_path: Override for the automation script location.
        expect_binary: Override for the ``expect`` executable.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        script_path: Path | None = None,
        expect_binary: str | None = None,
    ) -> None:
        self._runner = runner or _DEFAULT_RUNNER
        self._script_path = script_path or _default_script_path()
        self._expect = expect_binary or config.EXPECT_BINARY

    def _build_argv(self, host: str, user: str, command: str) -> list[str]:
        # Password goes through stdin, never argv.
        return [self._expect, "-f", str(self._script_path), host, user, command]

    def _spawn(self, host: str, user: str, password: str, command: str) -> tuple[int, str]:
        """Start the script, feed the password and wait for it to exit.

        Blocking; callers run it in a worker thread.
        """
        if not self._script_path.is_file():
            raise SpawnError("SSH script not found")

        argv = self._build_argv(host, user, command)
        logger.debug("ssh: %s@%s running %r", user, host, command)
        try:
            result = self._runner.run(
                argv,
                capture_output=True,
                text=True,
                env=_minimal_env(),
                input=password + "\n",
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise SpawnError(f"Failed to execute command: {exc}") from exc

        logger.debug("ssh: %s@%s exited with %d", user, host, result.returncode)
        return result.returncode, result.stdout or ""

    async def execute(self, host: str, user: str, password: str, command: str) -> SessionResult:
        """Execute *command* on *host* and classify the result.

        Raises:
            InvalidInputError: host, user or password is empty.
            SpawnError: the script is missing or ``expect`` cannot start.
        """
        if not host or not user or not password:
            raise InvalidInputError("Invalid connection parameters")

        code, output = await asyncio.to_thread(self._spawn, host, user, password, command)
        outcome = classify_exit_code(code)
        if outcome is SessionOutcome.SUCCESS:
            return SessionResult(outcome, code, output, clean_output(output, command))
        logger.info("ssh: %s@%s %r failed: %s (exit %d)", user, host, command, outcome.value, code)
        return SessionResult(outcome, code, output)

    async def test_connection(self, host: str, user: str, password: str) -> ConnectivityResult:
        """Log in without running a command to validate the credentials.

        Input problems are reported without starting any process.
        """
        if not host:
            return ConnectivityResult("IP address cannot be empty", error="empty_host")
        if not user:
            return ConnectivityResult("SSH user cannot be empty", error="empty_user")
        if not password:
            return ConnectivityResult("SSH password cannot be empty", error="empty_password")
        if not is_valid_ipv4(host):
            return ConnectivityResult("Invalid IP address format", error="invalid_address")

        try:
            code, _ = await asyncio.to_thread(self._spawn, host, user, password, "")
        except SpawnError as exc:
            logger.warning("ssh: connection test could not start: %s", exc)
            return ConnectivityResult("Test execution has failed", error="spawn_failed")

        outcome = classify_exit_code(code)
        return ConnectivityResult(_CONNECTIVITY_MESSAGES[outcome], outcome=outcome)
