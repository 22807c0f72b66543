"""Local session store mapping session tokens to authenticated contexts."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass
class AuthContext:
    """Authenticated caller context attached to a local session."""

    session_token: str
    user_id: str
    upstream_token: Optional[str] = None  # Identity provider bearer credential
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once the local session has passed its expiry."""
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def __repr__(self) -> str:
        # Credentials stay out of reprs so they never reach log output
        return (
            f"AuthContext(user_id={self.user_id!r}, "
            f"has_upstream_token={self.upstream_token is not None}, "
            f"expires_at={self.expires_at!r})"
        )


class SessionStore:
    """In-memory store for local sessions.

    The identity integration creates sessions; the relay only reads them.
    """

    def __init__(self):
        self._sessions: Dict[str, AuthContext] = {}

    def create(self, context: AuthContext) -> None:
        """Store a new session."""
        self._sessions[context.session_token] = context

    def get(self, session_token: str) -> Optional[AuthContext]:
        """Retrieve a live session by token, dropping it if expired."""
        context = self._sessions.get(session_token)
        if context is not None and context.is_expired():
            self.delete(session_token)
            return None
        return context

    def delete(self, session_token: str) -> None:
        """Remove a session if present."""
        self._sessions.pop(session_token, None)


# Singleton instance
session_store = SessionStore()
