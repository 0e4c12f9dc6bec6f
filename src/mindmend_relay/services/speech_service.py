"""Text-to-speech service.

Speech requests go through the same backoff invoker as chat, with a
larger attempt bound since the speech model is rate limited more often.
When synthesis fails, the result carries no audio and ``fallback=True``
with the text the client should speak with its local engine.
"""

import logging
import re

from mindmend_relay.config import Settings, settings
from mindmend_relay.entities import SpeechResult
from mindmend_relay.protocols import GenerativeModel

from .backoff import BackoffInvoker
from .fallback import FallbackGenerator

LOGGER = logging.getLogger("mindmend.tts")

EMOTION_PROMPTS = {
    "supportive": "Say the following in a warm, supportive, and empathetic way",
    "encouraging": "Say the following in an encouraging and uplifting way",
    "calming": "Say the following in a calm, soothing, and gentle way",
    "energetic": "Say the following in an energetic and enthusiastic way",
    "curious": "Say the following in a curious and engaged way",
    "compassionate": "Say the following with deep compassion and understanding",
}
DEFAULT_EMOTION = "supportive"

ENCODING = "LINEAR16"
FALLBACK_CONTENT_TYPE = "audio/l16"

_RATE = re.compile(r"rate=(\d+)")


def style_prompt(emotion: str | None, prompt: str | None = None, speaking_rate: float = 1.0) -> str:
    """Build the delivery instruction sent ahead of the text.

    An explicit ``prompt`` wins over the emotion preset. The speech model
    has no rate parameter, so a non-default rate becomes a pace hint.
    """
    style = prompt or EMOTION_PROMPTS.get(emotion or DEFAULT_EMOTION)
    style = style or EMOTION_PROMPTS[DEFAULT_EMOTION]
    if speaking_rate < 1.0:
        style += ", speaking slowly"
    elif speaking_rate > 1.0:
        style += ", speaking a little faster than usual"
    return style


def sample_rate_from_mime(mime_type: str, default: int) -> int:
    """Read ``rate=`` from a mime type like ``audio/L16;codec=pcm;rate=24000``."""
    match = _RATE.search(mime_type or "")
    return int(match.group(1)) if match else default


class SpeechService:
    """Synthesize speech with retries and a text fallback."""

    def __init__(
        self,
        model: GenerativeModel,
        invoker: BackoffInvoker,
        fallback: FallbackGenerator,
        voice: str = "Aoede",
        sample_rate: int = 24000,
        max_attempts: int = 5,
    ) -> None:
        self._model = model
        self._invoker = invoker
        self._fallback = fallback
        self._voice = voice
        self._sample_rate = sample_rate
        self._max_attempts = max_attempts

    @classmethod
    def create(
        cls,
        model: GenerativeModel,
        config: Settings | None = None,
        invoker: BackoffInvoker | None = None,
    ) -> "SpeechService":
        """Factory method to create SpeechService from settings."""
        config = config or settings
        return cls(
            model=model,
            invoker=invoker
            or BackoffInvoker(
                max_attempts=config.tts_max_attempts,
                base_delay=config.retry_base_delay,
                max_jitter=config.retry_max_jitter,
                max_delay=config.retry_max_delay,
            ),
            fallback=FallbackGenerator.create(seed=config.fallback_seed),
            voice=config.tts_voice,
            sample_rate=config.tts_sample_rate,
            max_attempts=config.tts_max_attempts,
        )

    @property
    def voice(self) -> str:
        return self._voice

    async def synthesize(
        self,
        text: str,
        prompt: str | None = None,
        emotion: str | None = DEFAULT_EMOTION,
        language_code: str | None = "en-US",
        speaking_rate: float = 1.0,
    ) -> SpeechResult:
        """Synthesize ``text``.

        Args:
            text: Text to speak
            prompt: Custom delivery instruction (overrides ``emotion``)
            emotion: Emotion preset name; unknown names use "supportive"
            language_code: BCP-47 language code
            speaking_rate: Relative pace, 1.0 is normal

        Returns:
            SpeechResult with PCM audio, or an empty fallback result
        """
        style = style_prompt(emotion, prompt, speaking_rate)
        try:
            audio, mime_type = await self._invoker.invoke(
                lambda: self._model.synthesize(text, self._voice, style, language_code),
                max_attempts=self._max_attempts,
            )
        except Exception as e:
            LOGGER.warning("Speech synthesis failed, client will speak locally: %s", e)
            return SpeechResult(
                audio=b"",
                content_type=FALLBACK_CONTENT_TYPE,
                sample_rate=self._sample_rate,
                encoding=ENCODING,
                model=self._model.tts_model_name,
                voice=self._voice,
                fallback=True,
                text=self._fallback.speech_text(text),
            )

        LOGGER.info("Synthesized %s bytes of audio (%s)", len(audio), mime_type)
        return SpeechResult(
            audio=audio,
            content_type=mime_type,
            sample_rate=sample_rate_from_mime(mime_type, self._sample_rate),
            encoding=ENCODING,
            model=self._model.tts_model_name,
            voice=self._voice,
        )
