# brew_cashier/voice.py
"""
Voice I/O Controller

Owns the microphone and the speaker for one conversation and makes sure they
are never used at the same time.

    IDLE -> LISTENING -> SUBMITTING -> SPEAKING -> IDLE -> (auto) LISTENING ...
    IDLE -> LISTENING -> IDLE        (nothing heard / cancelled)

After a reply has been played, listening resumes on its own after a short
delay, unless voice mode was switched off or the order was just placed.

Speech capture and audio playback are platform services; they are plugged in
through the SpeechRecognizer and AudioPlayer interfaces below.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from . import receipt_codec
from .config import settings
from .conversation import ConversationSession, TurnResult
from .errors import (
    InvalidTransitionError,
    OrderingError,
    PlaybackError,
    RecognitionError,
    SessionFinalizedError,
    SynthesisError,
    UnsupportedCapabilityError,
)
from .speech_gateway import SpeechSynthesizer

logger = logging.getLogger(__name__)

UNSUPPORTED_NOTICE = "Speech recognition is not supported here. Please switch to text mode."
NOT_HEARD_NOTICE = "Could not hear you. Please try again."
FAILED_NOTICE = "Something went wrong. Please try again."
ORDER_SAVED_NOTICE = "Order saved successfully!"
ORDER_NOT_SAVED_NOTICE = "Failed to save order"


class VoiceState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SUBMITTING = "submitting"
    SPEAKING = "speaking"


class SpeechRecognizer(abc.ABC):
    """
    Single-utterance speech capture: one activation, one transcript.
    """

    locale: str = settings.SPEECH_LOCALE

    @property
    def available(self) -> bool:
        return True

    @abc.abstractmethod
    async def recognize(self) -> str:
        """Listen for one utterance. Raises RecognitionError on failure."""

    @abc.abstractmethod
    def abort(self) -> None:
        """Close the microphone stream immediately."""


class AudioPlayer(abc.ABC):
    @abc.abstractmethod
    async def play(self, audio: bytes) -> None:
        """Play a clip, returning when playback ends. Raises PlaybackError."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Halt playback and release the clip."""


class VoiceController:
    def __init__(
        self,
        session: ConversationSession,
        recognizer: SpeechRecognizer,
        synthesizer: SpeechSynthesizer,
        player: AudioPlayer,
        *,
        voice_mode: bool = True,
        auto_listen_delay: Optional[float] = None,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session = session
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.player = player
        self.auto_listen_delay = (
            auto_listen_delay if auto_listen_delay is not None else settings.AUTO_LISTEN_DELAY_SECONDS
        )
        self._notify = notify
        self._voice_mode = voice_mode
        self._state = VoiceState.IDLE
        self._last_spoken: Optional[str] = None

        self._capture: Optional[asyncio.Task] = None
        self._capture_aborted = False
        self._playback: Optional[asyncio.Task] = None
        self._speech_gen = 0
        self._resume: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------
    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is VoiceState.LISTENING

    @property
    def is_speaking(self) -> bool:
        return self._state is VoiceState.SPEAKING

    @property
    def voice_mode(self) -> bool:
        return self._voice_mode

    @property
    def pending_resume(self) -> Optional[asyncio.Task]:
        return self._resume

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    async def start(self) -> str:
        """Greet the customer, out loud in voice mode."""
        greeting = self.session.greet()
        if self._voice_mode:
            await self.speak(greeting)
        return greeting

    async def begin_listening(self) -> Optional[TurnResult]:
        """
        Capture one utterance, submit it and speak the reply.

        Only legal from IDLE in voice mode. Returns None when nothing usable
        was heard or the turn failed; the customer gets a notice instead.
        """
        if not self._voice_mode:
            raise InvalidTransitionError("Voice mode is off")
        if self._state is not VoiceState.IDLE:
            raise InvalidTransitionError(f"Cannot start listening while {self._state.value}")
        if self.session.finalized:
            raise SessionFinalizedError("Order already placed")
        if not self.recognizer.available:
            self._notice(UNSUPPORTED_NOTICE)
            return None

        self._cancel_resume()
        self._halt_playback()
        self._state = VoiceState.LISTENING
        try:
            transcript = await self._run_capture()
        except RecognitionError as exc:
            if self._capture_aborted:
                return None
            self._state = VoiceState.IDLE
            if isinstance(exc, UnsupportedCapabilityError):
                self._notice(UNSUPPORTED_NOTICE)
            else:
                logger.info("Recognition failed: %s", exc)
                self._notice(NOT_HEARD_NOTICE)
            return None

        if transcript is None:
            # Capture was stopped from outside; whoever stopped it owns the state.
            return None
        transcript = transcript.strip()
        if not transcript:
            self._state = VoiceState.IDLE
            self._notice(NOT_HEARD_NOTICE)
            return None

        self._state = VoiceState.SUBMITTING
        try:
            result = await self.session.submit(transcript)
        except OrderingError as exc:
            logger.warning("Voice turn failed: %s", exc)
            self._end_submit()
            self._notice(FAILED_NOTICE)
            return None

        self._end_submit()
        self._report_order(result)
        if self._voice_mode:
            await self.speak(result.reply_text)
        return result

    async def submit_text(self, text: str) -> TurnResult:
        """
        Typed input. The reply is still spoken when voice mode is on.
        """
        if self._state in (VoiceState.LISTENING, VoiceState.SUBMITTING):
            raise InvalidTransitionError(f"Cannot submit text while {self._state.value}")

        self._cancel_resume()
        self._halt_playback()
        self._state = VoiceState.SUBMITTING
        try:
            result = await self.session.submit(text)
        finally:
            self._end_submit()

        self._report_order(result)
        if self._voice_mode:
            await self.speak(result.reply_text)
        return result

    async def speak(self, text: str) -> bool:
        """
        Synthesize and play `text`. Returns True if it played to the end.

        Text identical to the previous synthesized text is skipped, but
        auto-listen is still scheduled. Any capture or playback in progress is
        stopped first.
        """
        cleaned = receipt_codec.strip(text)
        if not cleaned:
            return False
        if cleaned == self._last_spoken:
            logger.debug("Skipping repeat of the last spoken reply")
            if self._state is VoiceState.IDLE:
                self._cancel_resume()
                self._schedule_resume()
            return False

        self._cancel_resume()
        self._stop_capture()
        self._halt_playback()
        self._speech_gen += 1
        gen = self._speech_gen
        self._state = VoiceState.SPEAKING

        finished = False
        try:
            audio = await self.synthesizer.synthesize(cleaned)
            self._last_spoken = cleaned
            if gen != self._speech_gen:
                return False
            self._playback = asyncio.create_task(self.player.play(audio))
            await self._playback
            finished = True
        except (SynthesisError, PlaybackError) as exc:
            logger.error("TTS error: %s", exc)
        except asyncio.CancelledError:
            if gen == self._speech_gen:
                raise
            # Halted or replaced by newer speech.
        finally:
            if gen == self._speech_gen:
                self._playback = None
                if self._state is VoiceState.SPEAKING:
                    self._state = VoiceState.IDLE

        if finished:
            self._schedule_resume()
        return finished

    def set_voice_mode(self, enabled: bool) -> None:
        """
        Switching voice mode off stops the microphone and the speaker at once
        and cancels any pending auto-listen.
        """
        self._voice_mode = enabled
        if not enabled:
            self._release()

    def close(self) -> None:
        self.set_voice_mode(False)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------
    async def _run_capture(self) -> Optional[str]:
        self._capture_aborted = False
        self._capture = asyncio.create_task(self.recognizer.recognize())
        try:
            return await self._capture
        except asyncio.CancelledError:
            if self._capture_aborted:
                return None
            raise
        finally:
            self._capture = None

    def _stop_capture(self) -> None:
        if self._capture is not None and not self._capture.done():
            self._capture_aborted = True
            self.recognizer.abort()
            self._capture.cancel()
        if self._state is VoiceState.LISTENING:
            self._state = VoiceState.IDLE

    def _end_submit(self) -> None:
        if self._state is VoiceState.SUBMITTING:
            self._state = VoiceState.IDLE

    def _halt_playback(self) -> None:
        self._speech_gen += 1
        if self._playback is not None and not self._playback.done():
            self.player.stop()
            self._playback.cancel()
        self._playback = None
        if self._state is VoiceState.SPEAKING:
            self._state = VoiceState.IDLE

    def _cancel_resume(self) -> None:
        task = self._resume
        self._resume = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _release(self) -> None:
        self._cancel_resume()
        self._stop_capture()
        self._halt_playback()

    def _schedule_resume(self) -> None:
        if not self._voice_mode or self.session.finalized:
            return
        self._resume = asyncio.create_task(self._resume_after_delay())

    async def _resume_after_delay(self) -> None:
        await asyncio.sleep(self.auto_listen_delay)
        self._resume = None
        if not self._voice_mode or self.session.finalized or self._state is not VoiceState.IDLE:
            return
        try:
            await self.begin_listening()
        except OrderingError as exc:
            logger.debug("Auto-listen skipped: %s", exc)

    def _report_order(self, result: TurnResult) -> None:
        if result.order_saved is True:
            self._notice(ORDER_SAVED_NOTICE)
        elif result.order_saved is False:
            self._notice(ORDER_NOT_SAVED_NOTICE)

    def _notice(self, message: str) -> None:
        logger.info("Notice: %s", message)
        if self._notify is not None:
            self._notify(message)
