# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the nodefleet test suite.

This module provides:
- FakeSessionManager, an in-memory SessionManager (no screen processes)
- Patched psutil host readings
- Sample policies, worker specs and a captured rich Console

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
"""

from __future__ import annotations

import io
import shlex
from pathlib import Path
from unittest.mock import Mock

import pytest
from rich.console import Console

from nodefleet.core.errors import SessionManagerError
from nodefleet.core.models import CapacityPolicy, PolicyMode, WorkerSpec
from nodefleet.sessions.screen import SessionManager

# =============================================================================
# Session Manager Fake
# =============================================================================


class FakeSessionManager(SessionManager):
    """In-memory SessionManager.

    Sessions named in `fail_on` fail to create. `run_script` understands the
    terminate lines this fake writes into stop-all scripts.
    """

    name = "fake-screen"

    def __init__(self, fail_on: set[str] | None = None, available: bool = True):
        self.sessions: dict[str, list[str]] = {}
        self.buffers: dict[str, str] = {}
        self.fail_on = set(fail_on or ())
        self.available = available
        self.created: list[str] = []
        self.attached: list[str] = []
        self.scripts_run: list[Path] = []

    def is_available(self) -> bool:
        return self.available

    def create(self, session_name: str, command: list[str]) -> None:
        if session_name in self.fail_on:
            raise SessionManagerError(f"cannot create {session_name}")
        if session_name in self.sessions:
            raise SessionManagerError(f"{session_name} already exists")
        self.sessions[session_name] = list(command)
        self.created.append(session_name)

    def list_sessions(self) -> list[str]:
        return list(self.sessions)

    def attach(self, session_name: str) -> int:
        if session_name not in self.sessions:
            raise SessionManagerError(f"no session {session_name}")
        self.attached.append(session_name)
        return 0

    def snapshot(self, session_name: str, output_path: Path) -> None:
        if session_name not in self.sessions:
            raise SessionManagerError(f"no session {session_name}")
        Path(output_path).write_text(self.buffers.get(session_name, f"output of {session_name}\n"))

    def terminate(self, session_name: str) -> None:
        self.sessions.pop(session_name, None)

    def terminate_command(self, session_name: str) -> list[str]:
        return [self.name, "-S", session_name, "-X", "quit"]

    def run_script(self, script_path: Path) -> None:
        self.scripts_run.append(Path(script_path))
        for line in Path(script_path).read_text().splitlines():
            tokens = shlex.split(line)
            if tokens[:2] == [self.name, "-S"] and tokens[-2:] == ["-X", "quit"]:
                self.terminate(tokens[2])

    def kill(self, session_name: str) -> None:
        """Simulate a worker dying outside our control."""
        self.sessions.pop(session_name, None)


@pytest.fixture
def fake_manager() -> FakeSessionManager:
    return FakeSessionManager()


# =============================================================================
# Host Fixtures
# =============================================================================

GB = 1024**3


def virtual_memory(**fields_gb: float) -> Mock:
    """A psutil.virtual_memory() result built from GB values.

    Only the named fields exist on the result; leaving out buffers/cached
    mimics platforms where psutil does not report them.
    """
    return Mock(spec=list(fields_gb), **{k: int(v * GB) for k, v in fields_gb.items()})


@pytest.fixture
def host(mocker):
    """Patch psutil to report the given host: host(cores=8, total=16, ...)."""

    def _set(cores: int | None = 8, **fields_gb: float) -> None:
        mocker.patch("psutil.virtual_memory", return_value=virtual_memory(**fields_gb))
        mocker.patch("psutil.cpu_count", return_value=cores)

    return _set


@pytest.fixture
def host_16gb(host) -> None:
    """16GB host: 10GB available, 4GB free, 1GB buffers, 5GB cached, 8 cores."""
    host(total=16, available=10, free=4, buffers=1, cached=5)


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def advisory_policy() -> CapacityPolicy:
    return CapacityPolicy(memory_per_worker_gb=3.5, system_reserved_memory_gb=2)


@pytest.fixture
def hard_cap_policy() -> CapacityPolicy:
    return CapacityPolicy(
        memory_per_worker_gb=4.5,
        system_reserved_memory_gb=1,
        cpu_per_worker_cores=1,
        mode=PolicyMode.HARD_CAP,
    )


@pytest.fixture
def three_specs() -> list[WorkerSpec]:
    return [WorkerSpec(identity=str(1000 + i), index=i) for i in range(3)]


# =============================================================================
# Output Fixtures
# =============================================================================


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def test_console(output: io.StringIO) -> Console:
    """Rich console writing plain text into the `output` buffer."""
    return Console(file=output, width=120, force_terminal=False, color_system=None)


@pytest.fixture
def make_manager():
    """Factory for FakeSessionManager with custom failures/availability."""
    return FakeSessionManager

