# brew_cashier/session_context.py
"""
ConversationState

Everything one ordering conversation carries:
- Identity and timestamps (session_id, created_at, last_seen_at).
- The ordered transcript of Turns, resent in full on every completion call.
- The phase (greeting / active / finalized) and the extracted receipt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

from .errors import SessionFinalizedError
from .models import Receipt


Role = Literal["user", "agent"]


@dataclass(frozen=True)
class Turn:
    """
    One message in the transcript: who said what, and when.
    """
    role: Role
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionPhase(str, Enum):
    GREETING = "greeting"
    ACTIVE = "active"
    FINALIZED = "finalized"


@dataclass
class ConversationState:
    session_id: str
    created_at: datetime
    last_seen_at: datetime
    turns: List[Turn] = field(default_factory=list)
    phase: SessionPhase = SessionPhase.GREETING
    pending_receipt: Optional[Receipt] = None

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------
    @classmethod
    def new(cls, session_id: str, created_at: Optional[datetime] = None) -> "ConversationState":
        now = created_at or datetime.now(timezone.utc)
        return cls(session_id=session_id, created_at=now, last_seen_at=now)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    @property
    def finalized(self) -> bool:
        return self.phase is SessionPhase.FINALIZED

    def transcript(self) -> Tuple[Turn, ...]:
        return tuple(self.turns)

    def touch(self, now: datetime) -> None:
        self.last_seen_at = now

    def _append(self, role: Role, text: str) -> Turn:
        if self.finalized:
            raise SessionFinalizedError(f"Session {self.session_id} is finalized")
        turn = Turn(role=role, text=text)
        self.turns.append(turn)
        self.touch(turn.timestamp)
        return turn

    def append_user_turn(self, text: str) -> Turn:
        return self._append("user", text)

    def append_agent_turn(self, text: str) -> Turn:
        return self._append("agent", text)

    def finalize(self, receipt: Optional[Receipt] = None) -> None:
        """
        Close the conversation. Irreversible.
        """
        if receipt is not None:
            self.pending_receipt = receipt
        self.phase = SessionPhase.FINALIZED
