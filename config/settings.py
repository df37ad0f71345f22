from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. Values are read when
    the instance is created, so tests can patch the environment and call
    ``get_settings.cache_clear()``.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")

        # Provider
        self.google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or None
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
        self.top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
        self.provider_timeout_seconds: float = float(
            os.getenv("PROVIDER_TIMEOUT_SECONDS", "60")
        )
        self.history_max_turns: Optional[int] = _env_optional_int("HISTORY_MAX_TURNS")

        # Relay
        self.relay_host: str = os.getenv("RELAY_HOST", "127.0.0.1")
        self.relay_port: int = int(os.getenv("RELAY_PORT", "3001"))
        self.stream_by_default: bool = _env_bool("RELAY_STREAM_DEFAULT", True)

        # UI
        self.relay_url: str = os.getenv(
            "RELAY_URL", f"http://{self.relay_host}:{self.relay_port}/api/query"
        )
        self.relay_timeout_seconds: float = float(os.getenv("RELAY_TIMEOUT_SECONDS", "120"))
        self.reveal_delay_ms: int = int(os.getenv("UI_REVEAL_DELAY_MS", "50"))

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
