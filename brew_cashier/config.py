# brew_cashier/config.py
"""
Settings

All external endpoints, credentials and tunables, loaded from the
environment (or a local .env file) with pydantic-settings.

Nothing here is required at import time: a missing key only disables the
collaborator that needs it (completion engine, speech synthesis, order store),
which then reports the failure when used.
"""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Shop persona
    SHOP_NAME: str = "Brew & Co"
    AGENT_NAME: str = "Brew"

    # Completion engine (OpenAI)
    OPENAI_API_KEY: Optional[str] = None
    COMPLETION_MODEL: str = "gpt-4o"
    COMPLETION_MAX_TOKENS: int = 1024
    COMPLETION_TIMEOUT_SECONDS: float = 30.0

    # Order store (remote sheet web app)
    ORDER_STORE_URL: str = ""
    ORDER_STORE_TIMEOUT_SECONDS: float = 20.0
    ORDER_POLL_INTERVAL_SECONDS: float = 15.0

    # Speech synthesis (ElevenLabs)
    ELEVENLABS_API_KEY: Optional[str] = None
    TTS_BASE_URL: str = "https://api.elevenlabs.io/v1/text-to-speech"
    TTS_VOICE_ID: str = "EXAVITQu4vr4xnSDxMaL"
    TTS_MODEL_ID: str = "eleven_turbo_v2_5"
    TTS_STABILITY: float = 0.5
    TTS_SIMILARITY_BOOST: float = 0.75
    TTS_TIMEOUT_SECONDS: float = 30.0

    # Voice loop
    SPEECH_LOCALE: str = "en-US"
    AUTO_LISTEN_DELAY_SECONDS: float = 0.5

    # Sessions
    SESSION_TTL_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"


settings = Settings()
