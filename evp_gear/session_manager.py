"""In-memory manager for pack sessions."""

import logging
from typing import Dict, Optional

from .config import config
from .pack import PackSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages pack sessions in memory."""

    def __init__(self, ttl_minutes: int | None = None):
        """Initialize empty session store."""
        self.ttl_minutes = ttl_minutes or config.pack_session_ttl_minutes
        self._sessions: Dict[str, PackSession] = {}
        logger.info("SessionManager initialized")

    def create_session(self) -> PackSession:
        """Create a new, empty pack session."""
        session = PackSession(ttl_minutes=self.ttl_minutes)
        self._sessions[session.session_id] = session
        logger.info(f"Created pack session {session.session_id}")
        return session

    def get_session(self, session_id: str) -> Optional[PackSession]:
        """Get a session by ID."""
        session = self._sessions.get(session_id)
        if session and session.is_expired():
            logger.info(f"Session {session_id} expired, removing")
            self.delete_session(session_id)
            return None
        return session

    def delete_session(self, session_id: str) -> bool:
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"Deleted session {session_id}")
            return True
        return False

    def forget_items(self, item_ids: set[str]) -> None:
        """Deselect deleted items from every session."""
        for session in self._sessions.values():
            if session.selection.item_ids & item_ids:
                session.deselect(item_ids)

    def cleanup_expired(self) -> int:
        """Remove all expired sessions. Returns count removed."""
        expired = [
            sid for sid, session in self._sessions.items()
            if session.is_expired()
        ]
        for sid in expired:
            self.delete_session(sid)

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def get_stats(self) -> dict:
        """Get session statistics."""
        self.cleanup_expired()
        analysed = sum(1 for s in self._sessions.values() if s.analysis.value is not None)
        return {
            "total_sessions": len(self._sessions),
            "with_analysis": analysed,
            "selected_items": sum(len(s.selection) for s in self._sessions.values()),
        }


# Global session manager instance
session_manager = SessionManager()
