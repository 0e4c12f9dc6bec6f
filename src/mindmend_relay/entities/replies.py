"""Reply entities produced by the services."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChatReply:
    """Outcome of a chat pipeline run.

    Attributes:
        text: Reply text shown to the user
        model: Model that produced the text (also set for fallbacks)
        personalized: Whether user context shaped the request
        cached: Whether the text came from the response cache
        fallback: Whether the text came from the fallback generator
        timestamp: When the reply was produced
    """

    text: str
    model: str
    personalized: bool = False
    cached: bool = False
    fallback: bool = False
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class SpeechResult:
    """Outcome of a speech synthesis run.

    Attributes:
        audio: Raw PCM audio (empty for fallbacks)
        content_type: Mime type of the audio
        sample_rate: Samples per second
        encoding: Audio encoding name
        model: Speech model used
        voice: Prebuilt voice used
        fallback: Whether synthesis failed and a fallback was produced
        text: Text the client should speak itself when falling back
        timestamp: When the result was produced
    """

    audio: bytes
    content_type: str
    sample_rate: int
    encoding: str
    model: str
    voice: str
    fallback: bool = False
    text: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def duration_seconds(self) -> float:
        """Length of the audio, assuming 16-bit mono PCM."""
        if not self.audio or self.sample_rate <= 0:
            return 0.0
        return round(len(self.audio) / (2 * self.sample_rate), 3)
