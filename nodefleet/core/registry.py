"""In-memory registry of the sessions launched in this run."""

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

from nodefleet.core.errors import SessionNotFoundError
from nodefleet.core.launcher import write_stop_script
from nodefleet.core.models import SessionHandle, SessionStatus
from nodefleet.sessions.screen import SessionManager

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Ordered session handles, insertion order = launch order.

    Liveness is never cached: every status query re-lists the session
    manager, since workers can die on their own. Stopped sessions stay
    listed until the registry is discarded.
    """

    def __init__(
        self,
        manager: SessionManager,
        handles: Sequence[SessionHandle] = (),
        stop_script_path: Path | None = None,
    ):
        self.manager = manager
        self.stop_script_path = Path(stop_script_path) if stop_script_path else None
        self._handles: list[SessionHandle] = []
        for handle in handles:
            self._append(handle)

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[SessionHandle]:
        return iter(self._handles)

    @property
    def handles(self) -> list[SessionHandle]:
        return list(self._handles)

    @property
    def identities(self) -> list[str]:
        return [h.identity for h in self._handles]

    @property
    def session_names(self) -> list[str]:
        return [h.session_name for h in self._handles]

    def _append(self, handle: SessionHandle) -> None:
        if handle.session_name in self.session_names:
            raise ValueError(f"Session {handle.session_name} is already registered")
        self._handles.append(handle)

    def add(self, handle: SessionHandle) -> None:
        """Register a launched session and regenerate the stop-all script."""
        self._append(handle)
        self.regenerate_stop_script()

    def regenerate_stop_script(self) -> Path | None:
        if self.stop_script_path is None:
            return None
        return write_stop_script(self.stop_script_path, self._handles, self.manager)

    def status_of(self, handle: SessionHandle) -> SessionStatus:
        live = set(self.manager.list_sessions())
        return SessionStatus.ALIVE if handle.session_name in live else SessionStatus.STOPPED

    def statuses(self) -> list[tuple[SessionHandle, SessionStatus]]:
        """Status of every handle from a single listing."""
        live = set(self.manager.list_sessions())
        return [
            (h, SessionStatus.ALIVE if h.session_name in live else SessionStatus.STOPPED)
            for h in self._handles
        ]

    def find_by_ordinal(self, ordinal: int | str) -> SessionHandle:
        """Resolve a 1-based operator-facing index."""
        try:
            position = int(str(ordinal).strip())
        except ValueError:
            raise SessionNotFoundError(f"Invalid selection {ordinal!r}")

        if not 1 <= position <= len(self._handles):
            raise SessionNotFoundError(
                f"Selection {position} is out of range (1-{len(self._handles)})"
            )
        return self._handles[position - 1]
