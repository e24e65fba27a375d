"""External dependency checks.

Both the session manager and the worker binary get one install attempt
when missing; if they are still absent afterwards the run cannot continue.
"""

import logging
import subprocess
from pathlib import Path

from nodefleet.core.errors import DependencyMissingError
from nodefleet.sessions.screen import SessionManager

logger = logging.getLogger(__name__)


def run_install_command(command: str) -> bool:
    """Run an install pipeline through bash with the operator's terminal attached."""
    logger.info(f"Running install command: {command}")
    try:
        result = subprocess.run(["bash", "-c", command])
    except FileNotFoundError as e:
        logger.error(f"Install command could not be started: {e}")
        return False
    if result.returncode != 0:
        logger.error(f"Install command exited with code {result.returncode}")
        return False
    return True


def ensure_session_manager(manager: SessionManager, install_command: str | None) -> bool:
    """Make sure the session manager is usable.

    Returns:
        True if an install was performed, False if it was already present.

    Raises:
        DependencyMissingError: still unavailable after the install attempt.
    """
    if manager.is_available():
        return False

    if install_command:
        logger.warning(f"{manager.name} is not installed; attempting install")
        run_install_command(install_command)

    if not manager.is_available():
        raise DependencyMissingError(
            f"{manager.name} is not installed and could not be installed automatically"
        )
    return True


def ensure_worker_binary(cli_path: Path, install_command: str | None) -> bool:
    """Make sure the worker binary exists at `cli_path`.

    Returns:
        True if an install was performed, False if it was already present.

    Raises:
        DependencyMissingError: still missing after the install attempt.
    """
    cli_path = Path(cli_path).expanduser()
    if cli_path.exists():
        return False

    if install_command:
        logger.warning(f"Worker binary not found at {cli_path}; attempting install")
        run_install_command(install_command)

    if not cli_path.exists():
        raise DependencyMissingError(
            f"Worker binary not found at {cli_path}; check your network connection"
        )
    return True
