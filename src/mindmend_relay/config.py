import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_seed() -> int | None:
    raw = os.getenv("FALLBACK_SEED", "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Generative model
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "").strip()
    gemini_api_base_url: str = os.getenv(
        "GEMINI_API_BASE_URL", "https://generativelanguage.googleapis.com"
    )
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    # Text-to-speech (same provider, separate key allowed)
    gemini_tts_api_key: str = (
        os.getenv("GEMINI_TTS_API_KEY", "").strip() or os.getenv("GEMINI_API_KEY", "").strip()
    )
    gemini_tts_model: str = os.getenv("GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts")
    tts_voice: str = os.getenv("TTS_VOICE", "Aoede")
    tts_sample_rate: int = int(os.getenv("TTS_SAMPLE_RATE", "24000"))

    # Database collaborator and project (reported by /health only)
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_service_key: str = os.getenv("SUPABASE_SERVICE_KEY", "")
    project_id: str = os.getenv("PROJECT_ID", "")

    # Response cache
    cache_enabled: bool = _env_bool("CACHE_ENABLED", "true")
    cache_ttl_seconds: float = float(os.getenv("CACHE_TTL_SECONDS", "300"))  # 5 minutes
    cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "100"))
    cache_key_length: int = int(os.getenv("CACHE_KEY_LENGTH", "50"))

    # Retry with backoff
    chat_max_attempts: int = int(os.getenv("CHAT_MAX_ATTEMPTS", "3"))
    stream_max_attempts: int = int(os.getenv("STREAM_MAX_ATTEMPTS", "3"))
    tts_max_attempts: int = int(os.getenv("TTS_MAX_ATTEMPTS", "5"))
    retry_base_delay: float = float(os.getenv("RETRY_BASE_DELAY", "1.0"))
    retry_max_jitter: float = float(os.getenv("RETRY_MAX_JITTER", "1.0"))
    retry_max_delay: float = float(os.getenv("RETRY_MAX_DELAY", "8.0"))  # caps Retry-After hints

    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "30.0"))

    # Fallback
    fallback_seed: int | None = _env_seed()

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = _env_bool("API_RELOAD", "true")

    @property
    def has_gemini_key(self) -> bool:
        """Check whether a key for the generative model is configured."""
        return bool(self.gemini_api_key)

    @property
    def has_tts_key(self) -> bool:
        """Check whether a key for the speech model is configured."""
        return bool(self.gemini_tts_api_key)

    @property
    def has_database(self) -> bool:
        """Check whether the database collaborator is configured."""
        return bool(self.supabase_url and self.supabase_service_key)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_ttl_seconds <= 0:
            raise ValueError("CACHE_TTL_SECONDS must be positive")

        if self.cache_max_entries < 1:
            raise ValueError("CACHE_MAX_ENTRIES must be at least 1")

        if self.cache_key_length < 1:
            raise ValueError("CACHE_KEY_LENGTH must be at least 1")

        for name in ("chat_max_attempts", "stream_max_attempts", "tts_max_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name.upper()} must be at least 1, got {getattr(self, name)}")

        if self.retry_base_delay < 0 or self.retry_max_jitter < 0 or self.retry_max_delay < 0:
            raise ValueError(
                "RETRY_BASE_DELAY, RETRY_MAX_JITTER and RETRY_MAX_DELAY must not be negative"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
