# brew_cashier/completion_engine.py
"""
Completion Engine

Thin wrapper around the OpenAI Responses API that plays the cashier.

The engine keeps no server-side conversation: every call sends the system
instruction plus the whole transcript, oldest turn first.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from .config import settings
from .errors import CompletionError
from .menu import build_system_prompt
from .session_context import Turn

logger = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "agent": "assistant"}


class CompletionEngine:
    """
    Sends a transcript to the model and returns the reply text.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> None:
        self._client = client
        self.model = model or settings.COMPLETION_MODEL
        self.system_prompt = system_prompt or build_system_prompt()
        self.max_output_tokens = max_output_tokens or settings.COMPLETION_MAX_TOKENS

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use; OPENAI_API_KEY may be unset at start-up.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.COMPLETION_TIMEOUT_SECONDS,
            )
        return self._client

    @staticmethod
    def build_input(turns: Sequence[Turn]) -> List[Dict[str, str]]:
        return [{"role": _ROLE_MAP[t.role], "content": t.text} for t in turns]

    async def complete(self, turns: Sequence[Turn]) -> str:
        """
        Return the agent's next reply for the given transcript.

        Raises CompletionError on any client failure or an empty reply.
        """
        try:
            resp = await self.client.responses.create(
                model=self.model,
                instructions=self.system_prompt,
                input=self.build_input(turns),
                max_output_tokens=self.max_output_tokens,
            )
        except OpenAIError as exc:
            logger.error("Completion call failed: %s", exc)
            raise CompletionError("Failed to get response from AI") from exc

        text = _reply_text(resp)
        if not text:
            raise CompletionError("Completion engine returned no text")

        logger.debug("Completion reply (%d chars) for %d turns", len(text), len(turns))
        return text


def _reply_text(resp: Any) -> Optional[str]:
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text
    # The exact shape of resp depends on SDK version.
    try:
        text = resp.output[0].content[0].text
    except (AttributeError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None
