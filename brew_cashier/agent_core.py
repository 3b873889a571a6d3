# brew_cashier/agent_core.py
"""
AgentCore

Request-level entrypoint for the text/voice client.

Responsibilities:
- Load or create the ConversationSession for a request (MemoryStore).
- Pass the customer's message to the session.
- Shape the result into an HTTP response payload.

This module does NOT:
- Deal with HTTP / FastAPI directly (that happens in app.py).
- Deal with audio (the VoiceController does, on the client side).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from .completion_engine import CompletionEngine
from .conversation import ConversationSession
from .lifecycle import OrderLifecycleManager
from .memory_store import MemoryStore
from .models import ChatRequest, ChatResponse, StartSessionResponse
from .session_context import ConversationState

logger = logging.getLogger(__name__)


class AgentCore:
    """
    You typically create this once at startup and reuse it for all requests.
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        engine: CompletionEngine,
        lifecycle: OrderLifecycleManager,
    ) -> None:
        self.memory_store = memory_store
        self.engine = engine
        self.lifecycle = lifecycle

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    def start_session(self, customer_name: Optional[str] = None) -> StartSessionResponse:
        session = self._new_session(str(uuid.uuid4()), customer_name)
        greeting = session.greet()
        self.memory_store.save(session)
        logger.info("Started session %s", session.session_id)
        return StartSessionResponse(session_id=session.session_id, greeting=greeting)

    async def handle(self, req: ChatRequest) -> ChatResponse:
        """
        Main entrypoint for one customer message.

        Errors from the session (finalized, busy, engine failure) propagate;
        the HTTP layer turns them into status codes.
        """
        session = self._resolve_session(req.session_id)
        try:
            result = await session.submit(req.text)
        finally:
            self.memory_store.save(session)

        return ChatResponse(
            reply_text=result.reply_text,
            finalized=result.finalized,
            receipt=result.receipt,
            order=result.order,
            order_saved=result.order_saved,
        )

    def end_session(self, session_id: str) -> None:
        session = self.memory_store.load(session_id)
        if session is not None:
            session.close()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------
    def _new_session(self, session_id: str, customer_name: Optional[str]) -> ConversationSession:
        state = ConversationState.new(session_id, datetime.now(timezone.utc))
        return ConversationSession(
            engine=self.engine,
            lifecycle=self.lifecycle,
            state=state,
            customer_name=customer_name or "Guest",
        )

    def _resolve_session(self, session_id: str) -> ConversationSession:
        """
        Load the session, or open a fresh one under the client's id.
        """
        session = self.memory_store.load(session_id)
        if session is None:
            session = self._new_session(session_id, None)
            self.memory_store.save(session)
        return session
