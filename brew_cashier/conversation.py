# brew_cashier/conversation.py
"""
ConversationSession

Drives one ordering conversation:

    GREETING --greet()--> ACTIVE --receipt in reply--> FINALIZED

Each submit():
- appends the user Turn,
- sends the full transcript to the completion engine,
- looks for a receipt in the raw reply,
- appends the cleaned reply as an agent Turn,
- on a receipt, finalizes and hands it to the lifecycle manager.

Only one submit may wait on the engine at a time; a second one is rejected,
not queued. A finalized session accepts no more input.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from . import receipt_codec
from .completion_engine import CompletionEngine
from .errors import (
    CompletionError,
    EmptyInputError,
    InvalidTransitionError,
    SessionFinalizedError,
    TurnInProgressError,
)
from .lifecycle import OrderLifecycleManager
from .menu import welcome_message
from .models import Order, Receipt
from .session_context import ConversationState, SessionPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnResult:
    """
    What one exchange produced. `order` / `order_saved` are only set when the
    reply finalized the session.
    """
    reply_text: str
    receipt: Optional[Receipt] = None
    order: Optional[Order] = None
    order_saved: Optional[bool] = None

    @property
    def finalized(self) -> bool:
        return self.receipt is not None


class ConversationSession:
    def __init__(
        self,
        engine: CompletionEngine,
        lifecycle: OrderLifecycleManager,
        state: Optional[ConversationState] = None,
        customer_name: str = "Guest",
        welcome: Optional[str] = None,
    ) -> None:
        self.engine = engine
        self.lifecycle = lifecycle
        self.state = state or ConversationState.new(session_id=str(uuid.uuid4()))
        self.customer_name = customer_name
        self.welcome = welcome or welcome_message()
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def finalized(self) -> bool:
        return self.state.finalized

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    def greet(self) -> str:
        """
        Open the conversation with the fixed welcome line.
        """
        if self.phase is not SessionPhase.GREETING:
            raise InvalidTransitionError(f"Session {self.session_id} already greeted")
        self.state.append_agent_turn(self.welcome)
        self.state.phase = SessionPhase.ACTIVE
        return self.welcome

    async def submit(self, text: str) -> TurnResult:
        """
        Send one customer message and return the agent's answer.

        Raises:
        - EmptyInputError for blank text,
        - SessionFinalizedError once the order is placed,
        - TurnInProgressError while another submit is waiting,
        - CompletionError if the engine fails (the user Turn is kept and the
          session stays active; call retry()).
        """
        text = (text or "").strip()
        if not text:
            raise EmptyInputError("Nothing to send")
        self._check_open()

        async with self._lock:
            if self.phase is SessionPhase.GREETING:
                self.greet()
            self.state.append_user_turn(text)
            return await self._exchange()

    async def retry(self) -> TurnResult:
        """
        Re-send the transcript after a failed completion, without adding a
        new user Turn.
        """
        self._check_open()
        turns = self.state.turns
        if not turns or turns[-1].role != "user":
            raise InvalidTransitionError("No unanswered message to retry")

        async with self._lock:
            return await self._exchange()

    def close(self) -> None:
        """
        End the conversation without an order (customer left, page closed).
        """
        if not self.finalized:
            logger.info("Session %s closed without an order", self.session_id)
        self.state.finalize()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------
    def _check_open(self) -> None:
        if self.finalized:
            raise SessionFinalizedError(f"Session {self.session_id} is finalized")
        if self._lock.locked():
            raise TurnInProgressError(f"Session {self.session_id} is waiting on a reply")

    async def _exchange(self) -> TurnResult:
        try:
            raw_reply = await self.engine.complete(self.state.transcript())
        except CompletionError:
            logger.warning(
                "Completion failed for session %s; %d turns kept",
                self.session_id,
                len(self.state.turns),
            )
            raise

        if self.finalized:
            # Closed while we were waiting: the reply belongs to a dead session.
            logger.info("Discarding late reply for closed session %s", self.session_id)
            raise SessionFinalizedError(f"Session {self.session_id} was closed")

        receipt = receipt_codec.extract(raw_reply)
        reply_text = receipt_codec.strip(raw_reply)
        self.state.append_agent_turn(reply_text)

        if receipt is None:
            return TurnResult(reply_text=reply_text)

        self.state.finalize(receipt)
        logger.info(
            "Session %s finalized with %d items, total %.2f",
            self.session_id,
            len(receipt.items),
            receipt.total,
        )
        placement = await self.lifecycle.place(receipt, customer_name=self.customer_name)
        return TurnResult(
            reply_text=reply_text,
            receipt=receipt,
            order=placement.order,
            order_saved=placement.saved,
        )
