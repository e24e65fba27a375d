"""Serial worker launcher.

For each WorkerSpec, in index order:
1. Write an executable launch script binding NODE_ID / NODE_INDEX.
2. Ask the session manager for a detached session named <prefix>_<index>.
3. Record the outcome (handle or error) and keep going.
4. Pause before the next worker so heavy processes don't start in a burst.

After the loop the stop-all script is regenerated from the handles that
actually launched.
"""

import logging
import shlex
import stat
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from nodefleet.core.errors import SessionManagerError
from nodefleet.core.models import (
    CapacityPolicy,
    LaunchOutcome,
    LaunchReport,
    SessionHandle,
    WorkerSpec,
)
from nodefleet.sessions.screen import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_SESSION_PREFIX = "nexus_node"
STOP_SCRIPT_NAME = "stop_all_nodes.sh"

_EXECUTABLE = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def session_name_for(prefix: str, index: int) -> str:
    return f"{prefix}_{index}"


def launch_script_name(index: int) -> str:
    return f"start_node_{index}.sh"


def runtime_heap_mb(policy: CapacityPolicy) -> int:
    """Managed-runtime heap ceiling: the per-worker budget minus 512MB headroom."""
    return max(512, int((policy.memory_per_worker_gb - 0.5) * 1024))


def _make_executable(path: Path) -> None:
    path.chmod(path.stat().st_mode | _EXECUTABLE)


def render_launch_script(
    spec: WorkerSpec,
    worker_cli_path: Path,
    policy: CapacityPolicy | None = None,
) -> str:
    lines = [
        "#!/bin/bash",
        f"export NODE_ID={shlex.quote(spec.identity)}",
        f"export NODE_INDEX={spec.index}",
        'echo "Starting node $NODE_INDEX, Node ID: $NODE_ID"',
        "",
    ]
    if policy is not None:
        heap_mb = runtime_heap_mb(policy)
        lines += [
            "# Resource ceilings",
            f'export NODE_OPTIONS="--max-old-space-size={heap_mb}"',
            f"ulimit -m {heap_mb * 1024}",
            "",
        ]
    lines += [
        'cd "$HOME"',
        f'{shlex.quote(str(worker_cli_path))} start --node-id "$NODE_ID"',
    ]
    return "\n".join(lines) + "\n"


def write_launch_script(
    work_dir: Path,
    spec: WorkerSpec,
    worker_cli_path: Path,
    policy: CapacityPolicy | None = None,
) -> Path:
    script_path = Path(work_dir) / launch_script_name(spec.index)
    script_path.write_text(render_launch_script(spec, worker_cli_path, policy))
    _make_executable(script_path)
    return script_path


def render_stop_script(session_names: Sequence[str], manager: SessionManager) -> str:
    lines = ["#!/bin/bash"]
    lines += [shlex.join(manager.terminate_command(name)) for name in session_names]
    lines.append('echo "All nodes stopped"')
    return "\n".join(lines) + "\n"


def write_stop_script(
    path: Path,
    handles: Sequence[SessionHandle],
    manager: SessionManager,
) -> Path:
    """Regenerate the stop-all script: one terminate line per handle, in order."""
    path = Path(path)
    path.write_text(render_stop_script([h.session_name for h in handles], manager))
    _make_executable(path)
    logger.debug(f"Wrote {path} for {len(handles)} session(s)")
    return path


class SessionLauncher:
    """Launches workers one by one under a SessionManager."""

    def __init__(
        self,
        manager: SessionManager,
        worker_cli_path: Path,
        work_dir: Path | None = None,
        policy: CapacityPolicy | None = None,
        session_prefix: str = DEFAULT_SESSION_PREFIX,
        launch_delay: float = 1.0,
        resource_limits: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.manager = manager
        self.worker_cli_path = Path(worker_cli_path)
        self.work_dir = Path(work_dir) if work_dir else Path.cwd()
        self.policy = policy or CapacityPolicy()
        self.session_prefix = session_prefix
        self.launch_delay = launch_delay
        self.resource_limits = resource_limits
        self._sleep = sleep

    @property
    def stop_script_path(self) -> Path:
        return self.work_dir / STOP_SCRIPT_NAME

    def launch(
        self,
        specs: Sequence[WorkerSpec],
        on_outcome: Callable[[LaunchOutcome], None] | None = None,
    ) -> LaunchReport:
        """Launch every spec; a failed worker never stops the rest."""
        self.work_dir.mkdir(parents=True, exist_ok=True)
        ordered = sorted(specs, key=lambda s: s.index)
        outcomes = []

        for position, spec in enumerate(ordered):
            outcome = self.launch_one(spec)
            outcomes.append(outcome)
            if on_outcome:
                on_outcome(outcome)
            if position < len(ordered) - 1 and self.launch_delay > 0:
                self._sleep(self.launch_delay)

        handles = [o.handle for o in outcomes if o.handle is not None]
        try:
            stop_script = write_stop_script(self.stop_script_path, handles, self.manager)
        except OSError as e:
            logger.error(f"Unable to write {self.stop_script_path}: {e}")
            stop_script = None
        report = LaunchReport(outcomes=outcomes, stop_script=stop_script)
        logger.info(f"Launched {len(report.handles)}/{len(ordered)} worker(s)")
        return report

    def launch_one(self, spec: WorkerSpec) -> LaunchOutcome:
        session_name = session_name_for(self.session_prefix, spec.index)
        try:
            script_path = write_launch_script(
                self.work_dir,
                spec,
                self.worker_cli_path,
                self.policy if self.resource_limits else None,
            )
            self.manager.create(session_name, ["bash", str(script_path)])
        except (SessionManagerError, OSError) as e:
            logger.error(f"Node {spec.index} (Node ID {spec.identity}) failed to start: {e}")
            return LaunchOutcome(worker=spec, session_name=session_name, error=str(e))

        logger.info(f"Node {spec.index} started (Node ID {spec.identity}, session {session_name})")
        handle = SessionHandle(
            session_name=session_name,
            worker=spec,
            launch_script=script_path,
        )
        return LaunchOutcome(worker=spec, session_name=session_name, handle=handle)
