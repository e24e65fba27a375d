"""Session manager backends for detached worker sessions."""

from nodefleet.sessions.screen import ScreenSessionManager, SessionManager

__all__ = ["ScreenSessionManager", "SessionManager"]
