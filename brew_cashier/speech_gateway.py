# brew_cashier/speech_gateway.py
"""
Speech Gateway

Text-to-speech through the ElevenLabs HTTP API.

Input is cleaned with the receipt codec first, so the receipt JSON and
markdown emphasis are never read aloud. Returns the MPEG bytes; playing them
is the voice controller's job.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from . import receipt_codec
from .config import settings
from .errors import SynthesisError

logger = logging.getLogger(__name__)


class SpeechSynthesizer:
    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.ELEVENLABS_API_KEY
        self.voice_id = voice_id or settings.TTS_VOICE_ID
        self.model_id = model_id or settings.TTS_MODEL_ID
        self.base_url = (base_url or settings.TTS_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TTS_TIMEOUT_SECONDS
        self._transport = transport

    async def synthesize(self, text: str) -> bytes:
        clean_text = receipt_codec.strip(text)
        if not clean_text:
            raise SynthesisError("No text provided")
        if not self.api_key:
            raise SynthesisError("ELEVENLABS_API_KEY not configured")

        payload = {
            "text": clean_text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": settings.TTS_STABILITY,
                "similarity_boost": settings.TTS_SIMILARITY_BOOST,
            },
        }
        headers = {"xi-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/{self.voice_id}", json=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.error("TTS request failed: %s", exc)
            raise SynthesisError("Failed to generate audio") from exc

        if resp.status_code >= 400:
            logger.error("TTS error %s: %s", resp.status_code, resp.text[:500])
            raise SynthesisError(f"TTS API error: {resp.status_code}")

        logger.debug("Synthesized %d bytes for %d chars", len(resp.content), len(clean_text))
        return resp.content
