"""Session manager backends.

SessionManager is the narrow interface the launcher, registry and console
talk to. ScreenSessionManager drives GNU screen through subprocess; unit
tests use an in-memory implementation of the same interface.
"""

import logging
import re
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from nodefleet.core.errors import SessionManagerError

logger = logging.getLogger(__name__)


class SessionManager(ABC):
    """create / list / attach / snapshot / terminate over named sessions."""

    name: str = "session manager"

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the backend can be used on this host."""

    @abstractmethod
    def create(self, session_name: str, command: list[str]) -> None:
        """Start a detached session running `command`. Raises SessionManagerError."""

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Names of the sessions currently known to the backend."""

    @abstractmethod
    def attach(self, session_name: str) -> int:
        """Hand the terminal to the session; blocks until the operator detaches."""

    @abstractmethod
    def snapshot(self, session_name: str, output_path: Path) -> None:
        """Write the session's screen buffer to `output_path`."""

    @abstractmethod
    def terminate(self, session_name: str) -> None:
        """Stop the session. Succeeds if it is already gone."""

    @abstractmethod
    def terminate_command(self, session_name: str) -> list[str]:
        """Shell command that terminates the session, for the stop-all script."""

    @abstractmethod
    def run_script(self, script_path: Path) -> None:
        """Execute a generated shell script. Raises SessionManagerError."""

    def management_hints(self) -> list[tuple[str, str]]:
        """(description, command) pairs shown to the operator."""
        return []


# Lines of `screen -ls` look like "\t12345.nexus_node_0\t(Detached)".
_SCREEN_LS_LINE = re.compile(r"^\s*\d+\.(\S+)\s+\(", re.MULTILINE)


def parse_screen_list(output: str) -> list[str]:
    """Extract session names from `screen -ls` output."""
    return _SCREEN_LS_LINE.findall(output)


class ScreenSessionManager(SessionManager):
    """GNU screen backend."""

    name = "screen"

    def __init__(self, binary: str = "screen", timeout: int = 30):
        self.binary = binary
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = [self.binary, *args]
        logger.debug(f"Running: {shlex.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise SessionManagerError(f"{self.binary} not found") from e
        except subprocess.TimeoutExpired as e:
            raise SessionManagerError(f"{shlex.join(cmd)} timed out after {self.timeout}s") from e

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def create(self, session_name: str, command: list[str]) -> None:
        result = self._run(["-dmS", session_name, *command])
        if result.returncode != 0:
            raise SessionManagerError(
                f"Failed to create session {session_name}: "
                f"{(result.stderr or result.stdout).strip() or f'exit code {result.returncode}'}"
            )

    def list_sessions(self) -> list[str]:
        # screen -ls exits non-zero on some versions even when sessions exist,
        # and with "No Sockets found" when none do; the output is what counts.
        try:
            result = self._run(["-ls"])
        except SessionManagerError as e:
            logger.warning(f"Unable to list sessions: {e}")
            return []
        return parse_screen_list(result.stdout)

    def attach(self, session_name: str) -> int:
        # Inherit the controlling terminal; no capture and no timeout.
        try:
            return subprocess.run([self.binary, "-r", session_name]).returncode
        except FileNotFoundError as e:
            raise SessionManagerError(f"{self.binary} not found") from e

    def snapshot(self, session_name: str, output_path: Path) -> None:
        result = self._run(["-S", session_name, "-p", "0", "-X", "hardcopy", str(output_path)])
        if result.returncode != 0:
            raise SessionManagerError(
                f"Failed to capture {session_name}: "
                f"{(result.stderr or result.stdout).strip() or f'exit code {result.returncode}'}"
            )

    def terminate(self, session_name: str) -> None:
        result = self._run(self.terminate_command(session_name)[1:])
        if result.returncode != 0 and session_name in self.list_sessions():
            raise SessionManagerError(
                f"Failed to stop {session_name}: {(result.stderr or result.stdout).strip()}"
            )

    def terminate_command(self, session_name: str) -> list[str]:
        return [self.binary, "-S", session_name, "-X", "quit"]

    def run_script(self, script_path: Path) -> None:
        try:
            result = subprocess.run(["bash", str(script_path)], timeout=self.timeout * 10)
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise SessionManagerError(f"Failed to run {script_path}: {e}") from e
        if result.returncode != 0:
            raise SessionManagerError(f"{script_path} exited with code {result.returncode}")

    def management_hints(self) -> list[tuple[str, str]]:
        return [
            ("List sessions", f"{self.binary} -ls"),
            ("Attach to a node", f"{self.binary} -r <session_name>"),
            ("Detach from a session", "Ctrl+A, D"),
            ("Stop one node", f"{self.binary} -S <session_name> -X quit"),
        ]
