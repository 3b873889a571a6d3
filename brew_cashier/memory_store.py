# brew_cashier/memory_store.py
"""
MemoryStore

A very simple in-memory store for ConversationSessions, keyed by session id.

Sessions live only as long as the process and expire after a period without
activity. Orders are not kept here; they live in the order store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .conversation import ConversationSession


class MemoryStore:
    """
    In-memory dictionary-based session store.
    """

    def __init__(self, ttl_minutes: int = 60) -> None:
        self._store: Dict[str, ConversationSession] = {}
        self.ttl = timedelta(minutes=ttl_minutes)

    def _expired(self, session: ConversationSession, now: datetime) -> bool:
        return now - session.state.last_seen_at > self.ttl

    def load(self, session_id: str) -> Optional[ConversationSession]:
        """
        Return the session if it exists and is not expired, else None.
        """
        session = self._store.get(session_id)
        if session is None:
            return None

        if self._expired(session, datetime.now(timezone.utc)):
            session.close()
            self._store.pop(session_id, None)
            return None

        return session

    def save(self, session: ConversationSession) -> None:
        self._store[session.session_id] = session

    def purge_expired(self) -> int:
        """
        Drop expired sessions. Returns how many were removed.
        """
        now = datetime.now(timezone.utc)
        expired = [sid for sid, s in self._store.items() if self._expired(s, now)]
        for sid in expired:
            self._store.pop(sid).close()
        return len(expired)

    def __len__(self) -> int:
        return len(self._store)
